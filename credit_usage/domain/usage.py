"""Usage aggregation engine - derives used/available figures from ledger transactions"""

from collections import defaultdict
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal
from typing import Dict, Iterable, Iterator, List

from credit_usage.domain.models import (
    DEFAULT_ALERT_THRESHOLD,
    AccountUsage,
    CreditAccount,
    LimitDefinition,
    LimitEvaluation,
    ResolvedWindow,
    Transaction,
    TransactionKind,
    UsageResult,
    UsageStatus,
)
from credit_usage.domain.windows import resolve_window
from credit_usage.utils.amounts import to_decimal
from credit_usage.utils.date_utils import parse_instant

ZERO = Decimal("0")
HUNDRED = Decimal("100")


def usable_amount(txn: Transaction) -> Decimal | None:
    """Amount a row may contribute, or None for missing, non-finite or negative amounts"""
    amount = to_decimal(txn.amount)
    if amount is None or amount < 0:
        return None
    return amount


def _coerce_kind(txn: Transaction) -> TransactionKind | None:
    try:
        return TransactionKind(txn.kind)
    except ValueError:
        return None


def _signed_amount(txn: Transaction) -> Decimal | None:
    """Withdrawals add to used credit, payments subtract"""
    amount = usable_amount(txn)
    if amount is None:
        return None
    kind = _coerce_kind(txn)
    if kind is TransactionKind.WITHDRAWAL:
        return amount
    if kind is TransactionKind.PAYMENT:
        return -amount
    return None


def _exact_percentage(used: Decimal, limit: Decimal) -> Decimal:
    if limit <= 0:
        return ZERO
    return used / limit * HUNDRED


def utilization_percentage(used: Decimal, limit: Decimal) -> int:
    """
    Used amount as an integer percentage of limit.

    Rounds half up and is never clamped, so over-limit usage reads above 100.
    A non-positive limit yields 0.
    """
    return int(_exact_percentage(used, limit).to_integral_value(rounding=ROUND_HALF_UP))


def determine_status(percentage: Decimal, alert_threshold: Decimal | None = None) -> UsageStatus:
    """
    Map a utilization percentage to a status tier.

    Tiers:
    - danger:  percentage >= 100
    - warning: percentage >= alert_threshold (default 80)
    - normal:  otherwise
    """
    threshold = to_decimal(alert_threshold)
    if threshold is None:
        threshold = DEFAULT_ALERT_THRESHOLD

    if percentage >= HUNDRED:
        return UsageStatus.DANGER
    elif percentage >= threshold:
        return UsageStatus.WARNING
    return UsageStatus.NORMAL


def _qualifying_amounts(
    limit: LimitDefinition,
    window: ResolvedWindow,
    transactions: Iterable[Transaction],
) -> Iterator[Decimal]:
    if window.is_empty:
        return
    for txn in transactions:
        occurred_at = parse_instant(txn.occurred_at)
        if occurred_at is None or not window.contains(occurred_at):
            continue
        if limit.category and txn.category != limit.category:
            continue
        amount = usable_amount(txn)
        if amount is not None:
            yield amount


def compute_usage(
    limit: LimitDefinition,
    window: ResolvedWindow,
    transactions: Iterable[Transaction],
) -> UsageResult:
    """
    Compute how much of a limit is used within its resolved window.

    Requirements:
    - A transaction counts iff window.start <= occurred_at < window.end and
      the limit has no category or the categories match
    - Every qualifying amount counts positively (spend against a budget),
      withdrawal/payment is not distinguished here
    - available_amount = limit_amount - used_amount, never clamped
    - Status is taken from the exact ratio; the reported percentage is rounded,
      so 79.9% reads as 80 but is still below an 80% alert threshold

    Malformed rows (no timestamp, missing or non-finite amount) contribute 0.
    """
    limit_amount = to_decimal(limit.limit_amount)
    if limit_amount is None:
        limit_amount = ZERO

    used = sum(_qualifying_amounts(limit, window, transactions), ZERO)

    return UsageResult(
        used_amount=used,
        available_amount=limit_amount - used,
        utilization_percentage=utilization_percentage(used, limit_amount),
        status=determine_status(_exact_percentage(used, limit_amount), limit.alert_threshold),
    )


def evaluate_limit(
    limit: LimitDefinition,
    transactions: Iterable[Transaction],
    now: datetime | None = None,
) -> LimitEvaluation:
    """
    Main entry point: resolve the limit's window and aggregate usage within it.

    Raises:
        InvalidLimitError: propagated unchanged from resolve_window
    """
    window = resolve_window(limit, now)
    usage = compute_usage(limit, window, transactions)
    return LimitEvaluation(limit=limit, window=window, usage=usage)


def derive_account_usage(account_id: str, transactions: Iterable[Transaction]) -> Decimal:
    """
    Re-derive an account's used credit from its ledger instead of a stored running total.

    used = sum(withdrawals) - sum(payments) for rows of this account. Returns 0
    when the account has no transactions and is never clamped: a negative
    result is a credit balance.
    """
    used = ZERO
    for txn in transactions:
        if txn.account_id != account_id:
            continue
        delta = _signed_amount(txn)
        if delta is not None:
            used += delta
    return used


def derive_usage_by_account(transactions: Iterable[Transaction]) -> Dict[str, Decimal]:
    """Signed used-credit reduction for every account in one pass"""
    used_by_account: Dict[str, Decimal] = defaultdict(lambda: ZERO)
    for txn in transactions:
        if txn.account_id is None:
            continue
        delta = _signed_amount(txn)
        if delta is not None:
            used_by_account[txn.account_id] += delta
    return dict(used_by_account)


def available_credit(credit_limit: Decimal, used: Decimal) -> Decimal:
    """Remaining credit; exceeds the nominal limit when used is negative"""
    return credit_limit - used


def account_usage(account: CreditAccount, transactions: Iterable[Transaction]) -> AccountUsage:
    """Enrich a credit account with used/available/utilization derived from its ledger"""
    credit_limit = to_decimal(account.credit_limit)
    if credit_limit is None:
        credit_limit = ZERO
    used = derive_account_usage(account.id, transactions)

    return AccountUsage(
        account_id=account.id,
        name=account.name,
        credit_limit=credit_limit,
        used_amount=used,
        available_credit=available_credit(credit_limit, used),
        utilization_percentage=utilization_percentage(used, credit_limit),
    )


def find_malformed(transactions: Iterable[Transaction]) -> List[Transaction]:
    """
    Rows with data-quality problems that the aggregators ignore.

    The engine never logs; callers use this to report aggregate skip counts.
    A row is malformed when its amount is missing, non-finite or negative,
    its timestamp is missing or unparseable, or its kind is unknown.
    """
    return [
        txn
        for txn in transactions
        if usable_amount(txn) is None
        or parse_instant(txn.occurred_at) is None
        or _coerce_kind(txn) is None
    ]
