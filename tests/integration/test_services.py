"""Integration tests for limit monitoring, reconciliation and the worker"""

import asyncio

import pytest
from unittest.mock import AsyncMock, patch
from datetime import datetime, timezone
from decimal import Decimal

from credit_usage.domain.exceptions import InvalidLimitError, LedgerAPIError
from credit_usage.domain.models import (
    CreditAccount,
    LimitDefinition,
    LimitType,
    Transaction,
    TransactionKind,
    UsageStatus,
)
from credit_usage.infrastructure.clients.ledger import LedgerClient
from credit_usage.services.limit_monitor import check_limits
from credit_usage.services.reconciliation import ReconciliationReport, reconcile_accounts
from credit_usage.worker import CreditUsageWorker, main

pytestmark = pytest.mark.integration

NOW = datetime(2024, 1, 20, tzinfo=timezone.utc)


@pytest.fixture
def ledger_transactions() -> list[Transaction]:
    """Account 7: 800 withdrawn, 50 repaid. Account 9: 300 withdrawn. One broken row."""
    return [
        Transaction(id="1", account_id="7", amount=Decimal("800"), kind=TransactionKind.WITHDRAWAL,
                    occurred_at=datetime(2024, 1, 12, tzinfo=timezone.utc), category="stock"),
        Transaction(id="2", account_id="7", amount=Decimal("50"), kind=TransactionKind.PAYMENT,
                    occurred_at=datetime(2024, 1, 15, tzinfo=timezone.utc), category="stock"),
        Transaction(id="3", account_id="9", amount=Decimal("300"), kind=TransactionKind.WITHDRAWAL,
                    occurred_at=datetime(2024, 1, 18, tzinfo=timezone.utc), category="fuel"),
        Transaction(id="4", account_id="9", amount=None, kind=TransactionKind.WITHDRAWAL,
                    occurred_at=None),
    ]


@pytest.fixture
def mock_client(ledger_transactions) -> AsyncMock:
    client = AsyncMock(spec=LedgerClient)
    client.get_transactions.return_value = ledger_transactions
    client.get_limits.return_value = [
        LimitDefinition(id="1", name="Stock", limit_amount=Decimal("1000"),
                        limit_type=LimitType.MONTHLY, start_date="2024-01-01", category="stock"),
        LimitDefinition(id="2", name="Fuel", limit_amount=Decimal("1000"),
                        limit_type=LimitType.MONTHLY, start_date="2024-01-01", category="fuel"),
    ]
    client.get_credit_accounts.return_value = [
        CreditAccount(id="7", name="Equity Bank", credit_limit=Decimal("2000"), stored_used=Decimal("750")),
        CreditAccount(id="9", name="KCB", credit_limit=Decimal("1000"), stored_used=Decimal("250")),
    ]
    return client


@pytest.mark.asyncio
async def test_check_limits_evaluates_every_limit(mock_client):
    """Stock limit crosses its 80% threshold, fuel stays normal"""
    evaluations = await check_limits(mock_client, now=NOW)

    by_name = {e.limit.name: e for e in evaluations}
    assert by_name["Stock"].usage.used_amount == Decimal("850")
    assert by_name["Stock"].usage.status is UsageStatus.WARNING
    assert by_name["Fuel"].usage.used_amount == Decimal("300")
    assert by_name["Fuel"].usage.status is UsageStatus.NORMAL
    mock_client.get_transactions.assert_awaited_once()


@pytest.mark.asyncio
async def test_check_limits_reraises_invalid_limit(mock_client):
    mock_client.get_limits.return_value = [
        LimitDefinition(id="bad", name="Broken", limit_amount=Decimal("0"), start_date="2024-01-01"),
    ]

    with pytest.raises(InvalidLimitError) as exc_info:
        await check_limits(mock_client, now=NOW)

    assert exc_info.value.limit_id == "bad"


@pytest.mark.asyncio
async def test_check_limits_propagates_api_failure(mock_client):
    mock_client.get_limits.side_effect = LedgerAPIError("Debt Manager API error: 503")

    with pytest.raises(LedgerAPIError):
        await check_limits(mock_client, now=NOW)


@pytest.mark.asyncio
async def test_reconcile_accounts_reports_stale_account(mock_client):
    """Account 7 matches its ledger; account 9 stored 250 but the ledger says 300"""
    report = await reconcile_accounts(mock_client)

    assert isinstance(report, ReconciliationReport)
    assert report.total_accounts_checked == 2
    assert report.discrepancies_found == 1
    d = report.discrepancies[0]
    assert d.account_id == "9"
    assert d.stored_used == Decimal("250")
    assert d.derived_used == Decimal("300")
    assert d.discrepancy == Decimal("-50")


@pytest.mark.asyncio
async def test_reconcile_accounts_with_tolerance(mock_client):
    report = await reconcile_accounts(mock_client, tolerance=Decimal("50"))

    assert report.discrepancies_found == 0
    assert report.discrepancies == []


@pytest.mark.asyncio
async def test_worker_dispatches_jobs(mock_client):
    worker = CreditUsageWorker(client=mock_client)

    report = await worker.run_once("reconcile")
    evaluations = await worker.run_once("limits")

    assert report.total_accounts_checked == 2
    assert len(evaluations) == 2


@pytest.mark.asyncio
async def test_worker_rejects_unknown_job(mock_client):
    with pytest.raises(ValueError, match="Unknown job"):
        await CreditUsageWorker(client=mock_client).run_once("invoices")


@pytest.mark.asyncio
@patch("credit_usage.worker.asyncio.sleep", new_callable=AsyncMock)
async def test_run_forever_survives_failed_cycle(mock_sleep: AsyncMock, mock_client):
    """A failing cycle is logged and the loop continues until cancelled"""
    mock_client.get_credit_accounts.side_effect = [LedgerAPIError("down"), []]
    mock_sleep.side_effect = [None, asyncio.CancelledError()]

    with pytest.raises(asyncio.CancelledError):
        await CreditUsageWorker(client=mock_client).run_forever("reconcile", interval_seconds=1)

    assert mock_client.get_credit_accounts.await_count == 2
    mock_sleep.assert_awaited_with(1)


@pytest.mark.asyncio
@patch("credit_usage.worker.setup_logging")
@patch("credit_usage.worker.CreditUsageWorker.run_once", new_callable=AsyncMock)
async def test_main_runs_single_job(mock_run_once: AsyncMock, mock_setup_logging, capsys):
    mock_run_once.return_value = ReconciliationReport(
        total_accounts_checked=3,
        discrepancies_found=0,
        reconciliation_time=NOW,
        execution_time_ms=12,
    )

    await main(["--job", "reconcile", "--once"])

    mock_run_once.assert_awaited_once_with("reconcile")
    assert "Accounts checked: 3" in capsys.readouterr().out
