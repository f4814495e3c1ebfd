"""Structured JSON logging for production observability"""

import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict

from pythonjsonlogger import jsonlogger

from credit_usage.config import settings
from credit_usage.domain.models import LimitEvaluation, UsageStatus


class CustomJsonFormatter(jsonlogger.JsonFormatter):
    """Custom JSON formatter with timestamp and service metadata"""

    def add_fields(self, log_record: Dict[str, Any], record: logging.LogRecord, message_dict: Dict[str, Any]) -> None:
        super().add_fields(log_record, record, message_dict)
        log_record["timestamp"] = datetime.now(timezone.utc).isoformat()
        log_record["level"] = record.levelname
        log_record["service"] = settings.service_name


def setup_logging(level: str = "INFO") -> None:
    """Configure structured JSON logging"""
    logger = logging.getLogger()
    logger.setLevel(level)

    # Remove existing handlers
    logger.handlers.clear()

    handler = logging.StreamHandler(sys.stdout)
    formatter = CustomJsonFormatter(
        "%(timestamp)s %(level)s %(name)s %(message)s"
    )
    handler.setFormatter(formatter)
    logger.addHandler(handler)


def log_limit_evaluation(evaluation: LimitEvaluation) -> None:
    """Log structured limit outcome; limits at or above their alert threshold log as warnings"""
    usage = evaluation.usage
    level = logging.INFO if usage.status is UsageStatus.NORMAL else logging.WARNING
    logging.getLogger(__name__).log(
        level,
        "Limit evaluated",
        extra={
            "step": "limit_evaluated",
            "limit_id": evaluation.limit.id,
            "limit_name": evaluation.limit.name,
            "window_start": evaluation.window.start.isoformat(),
            "window_end": evaluation.window.end.isoformat(),
            "used_amount": str(usage.used_amount),
            "available_amount": str(usage.available_amount),
            "utilization_percentage": usage.utilization_percentage,
            "status": usage.status.value,
        },
    )


def log_skipped_transactions(skipped: int, total: int, step: str) -> None:
    """Log aggregate count of malformed ledger rows the engine ignored"""
    if skipped == 0:
        return
    logging.getLogger(__name__).warning(
        "Skipped malformed ledger rows",
        extra={"step": step, "skipped_rows": skipped, "total_rows": total},
    )
