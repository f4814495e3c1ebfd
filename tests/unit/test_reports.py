"""Unit tests for dashboard report aggregations"""

from datetime import datetime, timezone
from decimal import Decimal

from credit_usage.domain.models import (
    AccountUsage,
    LimitDefinition,
    LimitEvaluation,
    ResolvedWindow,
    UsageResult,
    UsageStatus,
)
from credit_usage.domain.reports import (
    UNCATEGORIZED,
    breakdown_by_category,
    summarize_accounts,
    summarize_limits,
    usage_by_month,
)

WINDOW = ResolvedWindow(
    start=datetime(2024, 1, 1, tzinfo=timezone.utc),
    end=datetime(2024, 2, 1, tzinfo=timezone.utc),
)


def make_evaluation(limit_amount: str, used: str, status: UsageStatus) -> LimitEvaluation:
    limit = LimitDefinition(
        id=f"limit_{limit_amount}_{used}",
        name="Limit",
        limit_amount=Decimal(limit_amount),
        start_date="2024-01-01",
    )
    usage = UsageResult(
        used_amount=Decimal(used),
        available_amount=Decimal(limit_amount) - Decimal(used),
        utilization_percentage=0,
        status=status,
    )
    return LimitEvaluation(limit=limit, window=WINDOW, usage=usage)


def make_account_usage(account_id: str, limit: str, used: str) -> AccountUsage:
    return AccountUsage(
        account_id=account_id,
        name=f"Account {account_id}",
        credit_limit=Decimal(limit),
        used_amount=Decimal(used),
        available_credit=Decimal(limit) - Decimal(used),
        utilization_percentage=0,
    )


def test_summarize_limits_totals_and_alert_counts():
    evaluations = [
        make_evaluation("1000", "200", UsageStatus.NORMAL),
        make_evaluation("500", "450", UsageStatus.WARNING),
        make_evaluation("500", "600", UsageStatus.DANGER),
    ]

    summary = summarize_limits(evaluations)

    assert summary.total_limits == 3
    assert summary.total_limit_amount == Decimal("2000")
    assert summary.total_used_amount == Decimal("1250")
    assert summary.utilization_percentage == 63  # 62.5 rounds half up
    assert summary.warning_count == 1
    assert summary.danger_count == 1
    assert summary.alert_count == 2


def test_summarize_limits_with_no_limits():
    summary = summarize_limits([])

    assert summary.total_limits == 0
    assert summary.utilization_percentage == 0
    assert summary.alert_count == 0


def test_summarize_accounts_is_not_clamped():
    usages = [
        make_account_usage("1", "1000", "1200"),
        make_account_usage("2", "500", "-100"),
    ]

    summary = summarize_accounts(usages)

    assert summary.total_accounts == 2
    assert summary.total_limit == Decimal("1500")
    assert summary.total_used == Decimal("1100")
    assert summary.total_available == Decimal("400")
    assert summary.utilization_percentage == 73


def test_breakdown_by_category_orders_largest_first(make_transaction):
    transactions = [
        make_transaction("100", category="fuel"),
        make_transaction("300", category="stock"),
        make_transaction("50", category="fuel"),
        make_transaction("50"),
        make_transaction(None, category="stock"),
    ]

    breakdown = breakdown_by_category(transactions)

    assert [b.category for b in breakdown] == ["stock", "fuel", UNCATEGORIZED]
    assert breakdown[0].total == Decimal("300")
    assert breakdown[0].count == 1
    assert breakdown[0].share_percentage == 60
    assert breakdown[1].total == Decimal("150")
    assert breakdown[1].count == 2


def test_breakdown_by_category_breaks_ties_by_name(make_transaction):
    transactions = [
        make_transaction("10", category="rent"),
        make_transaction("10", category="fees"),
    ]

    assert [b.category for b in breakdown_by_category(transactions)] == ["fees", "rent"]


def test_usage_by_month_newest_first(make_transaction):
    transactions = [
        make_transaction("100", occurred_at=datetime(2023, 12, 31, 23, tzinfo=timezone.utc)),
        make_transaction("200", occurred_at="2024-01-05T10:00:00.000Z"),
        make_transaction("300", occurred_at=datetime(2024, 1, 28, tzinfo=timezone.utc)),
        make_transaction("999", occurred_at=None),
    ]

    months = usage_by_month(transactions)

    assert [m.month for m in months] == ["2024-01", "2023-12"]
    assert months[0].count == 2
    assert months[0].total == Decimal("500")
    assert months[1].total == Decimal("100")


def test_usage_by_month_empty():
    assert usage_by_month([]) == []
