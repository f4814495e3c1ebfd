"""Account reconciliation - compares stored used credit against the transaction ledger"""

import logging
import time
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import List

from credit_usage.config import settings
from credit_usage.domain.reconciliation import AccountDiscrepancy, find_discrepancies
from credit_usage.domain.usage import find_malformed
from credit_usage.infrastructure.clients.ledger import LedgerClient
from credit_usage.infrastructure.observability.logging import log_skipped_transactions
from credit_usage.infrastructure.observability.metrics import (
    reconciliation_discrepancy_counter,
    skipped_transactions_counter,
)
from credit_usage.utils.date_utils import utc_now

logger = logging.getLogger(__name__)


@dataclass
class ReconciliationReport:
    """Outcome of one reconciliation run"""

    total_accounts_checked: int
    discrepancies_found: int
    reconciliation_time: datetime
    execution_time_ms: int
    discrepancies: List[AccountDiscrepancy] = field(default_factory=list)


async def reconcile_accounts(
    client: LedgerClient,
    tolerance: Decimal | None = None,
) -> ReconciliationReport:
    """
    Reconcile every credit account's stored used amount against its ledger.

    Read-only: discrepancies are reported and logged, never corrected.

    Raises:
        LedgerAPIError: the Debt Manager API could not be read
    """
    start_time = time.time()
    reconciliation_time = utc_now()
    tolerance = settings.reconciliation_tolerance if tolerance is None else tolerance

    logger.info("Starting credit account reconciliation")

    accounts = await client.get_credit_accounts()
    transactions = await client.get_transactions()

    skipped = len(find_malformed(transactions))
    if skipped:
        skipped_transactions_counter.labels(job="reconcile").inc(skipped)
    log_skipped_transactions(skipped, len(transactions), step="reconciliation")

    discrepancies = find_discrepancies(accounts, transactions, tolerance)

    for d in discrepancies:
        reconciliation_discrepancy_counter.inc()
        logger.warning(
            f"Discrepancy found for account {d.account_id} ({d.account_name}): "
            f"stored_used={d.stored_used}, "
            f"derived_used={d.derived_used}, "
            f"discrepancy={d.discrepancy}"
        )

    execution_time_ms = int((time.time() - start_time) * 1000)

    if discrepancies:
        logger.warning(
            f"Reconciliation complete. Found {len(discrepancies)} discrepancies "
            f"out of {len(accounts)} accounts in {execution_time_ms}ms"
        )
    else:
        logger.info(
            f"Reconciliation complete. All {len(accounts)} accounts match the ledger "
            f"in {execution_time_ms}ms"
        )

    return ReconciliationReport(
        total_accounts_checked=len(accounts),
        discrepancies_found=len(discrepancies),
        reconciliation_time=reconciliation_time,
        execution_time_ms=execution_time_ms,
        discrepancies=discrepancies,
    )
