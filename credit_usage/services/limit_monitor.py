"""Limit monitoring - evaluates every credit limit against one ledger snapshot"""

import logging
import time
from datetime import datetime
from typing import List

from credit_usage.domain.exceptions import InvalidLimitError
from credit_usage.domain.models import LimitEvaluation
from credit_usage.domain.reports import summarize_limits
from credit_usage.domain.usage import evaluate_limit, find_malformed
from credit_usage.infrastructure.clients.ledger import LedgerClient
from credit_usage.infrastructure.observability.logging import (
    log_limit_evaluation,
    log_skipped_transactions,
)
from credit_usage.infrastructure.observability.metrics import (
    invalid_limit_counter,
    record_limit_status,
    skipped_transactions_counter,
)
from credit_usage.utils.date_utils import utc_now

logger = logging.getLogger(__name__)


async def check_limits(client: LedgerClient, now: datetime | None = None) -> List[LimitEvaluation]:
    """
    Evaluate all credit limits and surface the ones at or above their alert threshold.

    Flow:
    1. Fetch limits and transactions (one read each, used as a consistent snapshot)
    2. Count malformed rows once so data-quality drift is visible
    3. Resolve each limit's window and aggregate usage
    4. Log and count every evaluation by status

    Raises:
        InvalidLimitError: a limit definition is structurally broken; this is a
            configuration bug and is never swallowed
        LedgerAPIError: the Debt Manager API could not be read
    """
    start_time = time.time()
    now = now or utc_now()

    limits = await client.get_limits()
    transactions = await client.get_transactions()

    skipped = len(find_malformed(transactions))
    if skipped:
        skipped_transactions_counter.labels(job="limits").inc(skipped)
    log_skipped_transactions(skipped, len(transactions), step="limit_check")

    evaluations: List[LimitEvaluation] = []
    for limit in limits:
        try:
            evaluation = evaluate_limit(limit, transactions, now)
        except InvalidLimitError as e:
            invalid_limit_counter.inc()
            logger.error(f"Invalid limit definition: {e}", extra={"limit_id": limit.id})
            raise

        record_limit_status(evaluation.usage.status)
        log_limit_evaluation(evaluation)
        evaluations.append(evaluation)

    summary = summarize_limits(evaluations)
    duration_ms = (time.time() - start_time) * 1000
    logger.info(
        "Limit check completed",
        extra={
            "step": "limit_check_complete",
            "total_limits": summary.total_limits,
            "alert_count": summary.alert_count,
            "utilization_percentage": summary.utilization_percentage,
            "duration_ms": duration_ms,
        },
    )

    return evaluations
