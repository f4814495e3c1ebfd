"""Prometheus metrics for monitoring limit status, ledger data quality and reconciliation"""

from prometheus_client import Counter, Histogram

from credit_usage.domain.models import UsageStatus

# Limit metrics
limit_evaluation_counter = Counter(
    "credit_limit_evaluations_total",
    "Credit limits evaluated",
    ["status"],  # normal | warning | danger
)

invalid_limit_counter = Counter(
    "credit_invalid_limits_total",
    "Limit definitions rejected as structurally invalid",
)

# Ledger data quality
skipped_transactions_counter = Counter(
    "ledger_skipped_transactions_total",
    "Malformed ledger rows ignored during aggregation",
    ["job"],  # limits | reconcile
)

# Reconciliation
reconciliation_discrepancy_counter = Counter(
    "ledger_reconciliation_discrepancies_total",
    "Accounts whose stored used amount disagrees with the ledger",
)

# Ledger API
ledger_fetch_failures_counter = Counter(
    "ledger_fetch_failures_total",
    "Failed Debt Manager API calls",
    ["resource"],  # transactions | accounts | limits
)

ledger_fetch_latency_histogram = Histogram(
    "ledger_fetch_latency_seconds",
    "Debt Manager API response time",
    ["resource"],
    buckets=[0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0],
)


def record_limit_status(status: UsageStatus) -> None:
    """Record one limit evaluation by status tier"""
    limit_evaluation_counter.labels(status=status.value).inc()
