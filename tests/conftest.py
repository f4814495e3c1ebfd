"""Pytest fixtures for testing"""

import pytest
from datetime import datetime, timezone
from decimal import Decimal

from credit_usage.domain.models import LimitDefinition, LimitType, Transaction, TransactionKind


def utc(year: int, month: int, day: int, hour: int = 0) -> datetime:
    return datetime(year, month, day, hour, tzinfo=timezone.utc)


@pytest.fixture
def make_transaction():
    """Factory for ledger transactions with sensible defaults"""
    counter = {"next": 0}

    def _make(
        amount="100",
        kind=TransactionKind.WITHDRAWAL,
        occurred_at=utc(2024, 1, 15),
        account_id="1",
        category=None,
    ) -> Transaction:
        counter["next"] += 1
        return Transaction(
            id=str(counter["next"]),
            account_id=account_id,
            amount=Decimal(amount) if isinstance(amount, str) else amount,
            kind=kind,
            occurred_at=occurred_at,
            category=category,
        )

    return _make


@pytest.fixture
def monthly_limit() -> LimitDefinition:
    """KES 1000 monthly limit starting January 10th, 2024"""
    return LimitDefinition(
        id="limit_1",
        name="Monthly Business Spend",
        limit_amount=Decimal("1000"),
        limit_type=LimitType.MONTHLY,
        start_date="2024-01-10",
        alert_threshold=Decimal("80"),
    )


@pytest.fixture
def api_transactions() -> list[dict]:
    """Rows as returned by GET /credits/transactions/recent"""
    return [
        {
            "id": 1,
            "credit_account_id": 7,
            "amount": "200.00",
            "transaction_type": "withdrawal",
            "description": "Stock purchase",
            "transaction_date": "2024-01-12T09:30:00.000Z",
            "status": "completed",
            "account_name": "Equity Bank",
        },
        {
            "id": 2,
            "credit_account_id": 7,
            "amount": "50.00",
            "transaction_type": "payment",
            "description": "Repayment",
            "transaction_date": "2024-01-20T14:00:00.000Z",
            "status": "completed",
            "account_name": "Equity Bank",
        },
        {
            "id": 3,
            "credit_account_id": 9,
            "amount": "300.00",
            "transaction_type": "withdrawal",
            "description": "Fuel",
            "transaction_date": "2024-01-25 08:00:00",
            "status": "completed",
            "account_name": "KCB",
        },
    ]
