"""Background worker for scheduled limit checks and ledger reconciliation

Can be run as a standalone script or integrated with a scheduler.
"""

import argparse
import asyncio
import logging
from typing import List

from credit_usage.config import settings
from credit_usage.domain.models import LimitEvaluation, UsageStatus
from credit_usage.infrastructure.clients.ledger import LedgerClient
from credit_usage.infrastructure.observability.logging import setup_logging
from credit_usage.services.limit_monitor import check_limits
from credit_usage.services.reconciliation import ReconciliationReport, reconcile_accounts

logger = logging.getLogger(__name__)

JOBS = ("limits", "reconcile")


class CreditUsageWorker:
    """
    Runs engine jobs against the Debt Manager API

    Usage:
        worker = CreditUsageWorker()
        report = await worker.run_once("reconcile")
        await worker.run_forever("limits", interval_seconds=3600)
    """

    def __init__(self, client: LedgerClient | None = None):
        self.client = client or LedgerClient()

    async def run_once(self, job: str) -> List[LimitEvaluation] | ReconciliationReport:
        if job == "limits":
            return await check_limits(self.client)
        if job == "reconcile":
            return await reconcile_accounts(self.client)
        raise ValueError(f"Unknown job {job!r}, expected one of {JOBS}")

    async def run_forever(self, job: str, interval_seconds: int | None = None) -> None:
        """Run a job continuously; a failed cycle is logged and the next one still runs"""
        interval_seconds = interval_seconds or settings.worker_interval_seconds
        logger.info(f"Starting continuous {job} job with {interval_seconds}s interval")

        while True:
            try:
                await self.run_once(job)
            except Exception as e:
                logger.error(f"{job} cycle failed: {e}")

            await asyncio.sleep(interval_seconds)


def _print_result(result: List[LimitEvaluation] | ReconciliationReport) -> None:
    if isinstance(result, ReconciliationReport):
        print("Reconciliation complete:")
        print(f"  Accounts checked: {result.total_accounts_checked}")
        print(f"  Discrepancies found: {result.discrepancies_found}")
        print(f"  Execution time: {result.execution_time_ms}ms")
        for d in result.discrepancies:
            print(
                f"  - Account {d.account_id}: stored={d.stored_used}, "
                f"derived={d.derived_used}, diff={d.discrepancy}"
            )
        return

    alerts = [e for e in result if e.usage.status is not UsageStatus.NORMAL]
    print(f"Limit check complete: {len(result)} limits, {len(alerts)} alerts")
    for e in alerts:
        print(
            f"  - {e.limit.name} ({e.limit.id}): {e.usage.utilization_percentage}% "
            f"used, status={e.usage.status.value}"
        )


async def main(argv: List[str] | None = None) -> None:
    """
    Entry point for running the worker as a standalone script

    Usage:
        python -m credit_usage.worker --job reconcile --once
        python -m credit_usage.worker --job limits --interval 3600
    """
    parser = argparse.ArgumentParser(description="Credit usage worker")
    parser.add_argument("--job", choices=JOBS, required=True, help="Job to run")
    parser.add_argument("--once", action="store_true", help="Run once and exit")
    parser.add_argument(
        "--interval", type=int, default=None,
        help="Interval between runs in seconds (default: worker_interval_seconds setting)",
    )
    args = parser.parse_args(argv)

    setup_logging(settings.log_level)
    worker = CreditUsageWorker()

    try:
        if args.once:
            _print_result(await worker.run_once(args.job))
        else:
            await worker.run_forever(args.job, interval_seconds=args.interval)
    except KeyboardInterrupt:
        logger.info("Received shutdown signal")


if __name__ == "__main__":
    asyncio.run(main())
