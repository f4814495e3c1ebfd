"""Domain models - pure Python dataclasses representing ledger and limit entities"""

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Union

from credit_usage.utils.date_utils import ensure_aware

DEFAULT_ALERT_THRESHOLD = Decimal("80")

# Raw date input accepted on limit definitions (API rows carry ISO strings)
DateInput = Union[date, datetime, str, None]


class TransactionKind(str, Enum):
    """Ledger transaction kinds"""

    WITHDRAWAL = "withdrawal"  # Credit used, increases used amount
    PAYMENT = "payment"  # Credit repaid, decreases used amount


class LimitType(str, Enum):
    """How a limit window is projected forward when no end date is set"""

    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    YEARLY = "yearly"
    CUSTOM = "custom"


class UsageStatus(str, Enum):
    """Coarse risk tier derived from utilization vs. alert threshold"""

    NORMAL = "normal"
    WARNING = "warning"
    DANGER = "danger"


@dataclass(frozen=True)
class Transaction:
    """Immutable ledger entry against a credit account"""

    id: str
    account_id: str | None
    amount: Decimal | None  # None when the feed row carried no usable amount
    kind: Union[TransactionKind, str]
    occurred_at: datetime | None  # Used for windowing
    category: str | None = None
    recorded_at: datetime | None = None  # Creation time, never used for windowing
    description: str | None = None


@dataclass(frozen=True)
class LimitDefinition:
    """Spending ceiling over a window, optionally restricted to one category"""

    id: str
    name: str
    limit_amount: Decimal | None
    start_date: DateInput
    limit_type: Union[LimitType, str] = LimitType.MONTHLY
    end_date: DateInput = None
    alert_threshold: Decimal | None = DEFAULT_ALERT_THRESHOLD
    category: str | None = None


@dataclass(frozen=True)
class ResolvedWindow:
    """Half-open interval [start, end) in effect for one evaluation"""

    start: datetime
    end: datetime

    def __post_init__(self):
        # Naive bounds are UTC, like every other instant in the engine
        object.__setattr__(self, "start", ensure_aware(self.start))
        object.__setattr__(self, "end", ensure_aware(self.end))

    @property
    def is_empty(self) -> bool:
        return self.end <= self.start

    def contains(self, instant: datetime) -> bool:
        return self.start <= instant < self.end


@dataclass(frozen=True)
class UsageResult:
    """Aggregate usage of one limit within its window"""

    used_amount: Decimal
    available_amount: Decimal  # Negative when over limit
    utilization_percentage: int  # Unclamped, may exceed 100
    status: UsageStatus


@dataclass(frozen=True)
class LimitEvaluation:
    """A limit together with the window and usage it was evaluated against"""

    limit: LimitDefinition
    window: ResolvedWindow
    usage: UsageResult


@dataclass(frozen=True)
class CreditAccount:
    """Credit account as held by the persistence layer"""

    id: str
    name: str
    credit_limit: Decimal
    stored_used: Decimal | None = None  # Running figure, possibly stale
    category: str | None = None


@dataclass(frozen=True)
class AccountUsage:
    """Credit account enriched with ledger-derived figures"""

    account_id: str
    name: str
    credit_limit: Decimal
    used_amount: Decimal  # Negative means a credit balance
    available_credit: Decimal
    utilization_percentage: int
