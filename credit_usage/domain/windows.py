"""Window resolution - maps a limit definition and an instant to its active [start, end) interval"""

from datetime import datetime, timedelta
from typing import Callable, Dict

from credit_usage.domain.exceptions import InvalidLimitError
from credit_usage.domain.models import LimitDefinition, LimitType, ResolvedWindow
from credit_usage.utils.amounts import to_decimal
from credit_usage.utils.date_utils import (
    add_elapsed,
    ensure_aware,
    first_day_of_next_month,
    first_day_of_next_year,
    parse_instant,
    start_of_next_day,
    utc_now,
)

# Forward projection of the window end when a limit has no explicit end date
_PROJECTIONS: Dict[LimitType, Callable[[datetime], datetime]] = {
    LimitType.DAILY: lambda now: add_elapsed(now, timedelta(hours=24)),
    LimitType.WEEKLY: lambda now: add_elapsed(now, timedelta(days=7)),
    LimitType.MONTHLY: first_day_of_next_month,
    LimitType.YEARLY: first_day_of_next_year,
    LimitType.CUSTOM: lambda now: now,
}


def _coerce_limit_type(limit: LimitDefinition) -> LimitType:
    if limit.limit_type is None or limit.limit_type == "":
        return LimitType.MONTHLY
    try:
        return LimitType(limit.limit_type)
    except ValueError:
        raise InvalidLimitError(f"unknown limit_type {limit.limit_type!r}", limit.id) from None


def resolve_window(limit: LimitDefinition, now: datetime | None = None) -> ResolvedWindow:
    """
    Resolve the concrete window a limit covers at evaluation instant `now`.

    Rules:
    - start is always the limit's start_date
    - explicit end_date wins: the whole end_date calendar day is included,
      so end is midnight of the following day
    - otherwise end is projected from limit_type relative to now:
      daily +24h, weekly +7d, monthly/yearly to the next calendar boundary,
      custom stops at now
    - end <= start is a valid, empty window

    Raises:
        InvalidLimitError: start_date missing/unparseable, end_date unparseable,
            limit_amount missing or <= 0, or unknown limit_type
    """
    now = ensure_aware(now) if now is not None else utc_now()

    limit_amount = to_decimal(limit.limit_amount)
    if limit_amount is None or limit_amount <= 0:
        raise InvalidLimitError("limit_amount must be a positive number", limit.id)

    start = parse_instant(limit.start_date)
    if start is None:
        raise InvalidLimitError("start_date is missing or not a valid date", limit.id)

    if limit.end_date is not None and limit.end_date != "":
        end_date = parse_instant(limit.end_date)
        if end_date is None:
            raise InvalidLimitError("end_date is not a valid date", limit.id)
        return ResolvedWindow(start=start, end=start_of_next_day(end_date))

    limit_type = _coerce_limit_type(limit)
    return ResolvedWindow(start=start, end=_PROJECTIONS[limit_type](now))
