"""Prometheus metrics for monitoring settlements, attributions and scheduler matching"""

from prometheus_client import Counter, Histogram

# Payment metrics
payments_created_counter = Counter(
    "household_payments_created_total",
    "Payments created",
)

payments_settled_counter = Counter(
    "household_payments_settled_total",
    "Payment settlements recorded",
    ["outcome"],  # paid | partial | reverted
)

# Ledger metrics
attribution_counter = Counter(
    "household_attributions_total",
    "Attribution ledger mutations",
    ["action", "kind"],  # create | remove | replace, manual | automatic
)

ledger_conflict_counter = Counter(
    "household_ledger_conflicts_total",
    "Transactions aborted by concurrent modification",
)

# Scheduler metrics
auto_attribution_matched_counter = Counter(
    "household_auto_attribution_matched_total",
    "Payments attributed by the scheduler",
)

auto_attribution_skipped_counter = Counter(
    "household_auto_attribution_skipped_total",
    "Planned attributions dropped at commit time",
)

auto_attribution_duration_histogram = Histogram(
    "household_auto_attribution_duration_seconds",
    "Scheduler run time per household",
    buckets=[0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0],
)

# Service health
request_duration_histogram = Histogram(
    "http_request_duration_seconds",
    "HTTP request latency",
    ["method", "endpoint", "status"],
)


def record_settlement(status: str) -> None:
    """Record settlement outcome (paid vs partial vs reverted)"""
    payments_settled_counter.labels(outcome=status).inc()


def record_attribution(action: str, kind: str) -> None:
    attribution_counter.labels(action=action, kind=kind).inc()
