"""Report aggregations over evaluated limits, credit accounts and ledger transactions"""

from collections import defaultdict
from dataclasses import dataclass
from decimal import Decimal
from typing import Dict, Iterable, List

from credit_usage.domain.models import AccountUsage, LimitEvaluation, Transaction, UsageStatus
from credit_usage.domain.usage import ZERO, usable_amount, utilization_percentage
from credit_usage.utils.amounts import to_decimal
from credit_usage.utils.date_utils import month_key, parse_instant

UNCATEGORIZED = "other"


@dataclass(frozen=True)
class LimitsSummary:
    """Totals across all evaluated limits"""

    total_limits: int
    total_limit_amount: Decimal
    total_used_amount: Decimal
    utilization_percentage: int
    warning_count: int
    danger_count: int

    @property
    def alert_count(self) -> int:
        return self.warning_count + self.danger_count


@dataclass(frozen=True)
class PortfolioSummary:
    """Totals across credit accounts using ledger-derived usage"""

    total_accounts: int
    total_used: Decimal
    total_limit: Decimal
    total_available: Decimal  # Negative when the portfolio is over limit
    utilization_percentage: int


@dataclass(frozen=True)
class CategoryBreakdown:
    category: str
    count: int
    total: Decimal
    share_percentage: int  # Share of the grand total across categories


@dataclass(frozen=True)
class MonthlyUsage:
    month: str  # YYYY-MM
    count: int
    total: Decimal


def summarize_limits(evaluations: Iterable[LimitEvaluation]) -> LimitsSummary:
    """
    Aggregate limit evaluations into dashboard totals.

    Overall utilization is total used over total limit amount, with the same
    rounding rule as individual limits (0 when there is no limit amount).
    """
    evaluations = list(evaluations)
    total_limit = sum(
        (to_decimal(e.limit.limit_amount) or ZERO for e in evaluations),
        ZERO,
    )
    total_used = sum((e.usage.used_amount for e in evaluations), ZERO)

    return LimitsSummary(
        total_limits=len(evaluations),
        total_limit_amount=total_limit,
        total_used_amount=total_used,
        utilization_percentage=utilization_percentage(total_used, total_limit),
        warning_count=sum(1 for e in evaluations if e.usage.status is UsageStatus.WARNING),
        danger_count=sum(1 for e in evaluations if e.usage.status is UsageStatus.DANGER),
    )


def summarize_accounts(usages: Iterable[AccountUsage]) -> PortfolioSummary:
    """Portfolio totals; available is limit minus used and is not clamped"""
    usages = list(usages)
    total_used = sum((u.used_amount for u in usages), ZERO)
    total_limit = sum((u.credit_limit for u in usages), ZERO)

    return PortfolioSummary(
        total_accounts=len(usages),
        total_used=total_used,
        total_limit=total_limit,
        total_available=total_limit - total_used,
        utilization_percentage=utilization_percentage(total_used, total_limit),
    )


def breakdown_by_category(transactions: Iterable[Transaction]) -> List[CategoryBreakdown]:
    """
    Group transaction amounts by category, largest total first.

    Rows without a category are grouped under "other"; rows without a usable
    amount are ignored.
    """
    counts: Dict[str, int] = defaultdict(int)
    totals: Dict[str, Decimal] = defaultdict(lambda: ZERO)

    for txn in transactions:
        amount = usable_amount(txn)
        if amount is None:
            continue
        category = txn.category or UNCATEGORIZED
        counts[category] += 1
        totals[category] += amount

    grand_total = sum(totals.values(), ZERO)
    breakdown = [
        CategoryBreakdown(
            category=category,
            count=counts[category],
            total=total,
            share_percentage=utilization_percentage(total, grand_total),
        )
        for category, total in totals.items()
    ]
    return sorted(breakdown, key=lambda b: (-b.total, b.category))


def usage_by_month(transactions: Iterable[Transaction]) -> List[MonthlyUsage]:
    """Transaction count and total per calendar month of occurred_at, newest first"""
    counts: Dict[str, int] = defaultdict(int)
    totals: Dict[str, Decimal] = defaultdict(lambda: ZERO)

    for txn in transactions:
        occurred_at = parse_instant(txn.occurred_at)
        amount = usable_amount(txn)
        if occurred_at is None or amount is None:
            continue
        key = month_key(occurred_at)
        counts[key] += 1
        totals[key] += amount

    return [
        MonthlyUsage(month=key, count=counts[key], total=totals[key])
        for key in sorted(totals, reverse=True)
    ]
