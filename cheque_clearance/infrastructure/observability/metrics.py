"""Prometheus metrics for cheque transitions, due-date extensions and partner calls"""

from prometheus_client import Counter, Histogram

# Ledger metrics
instrument_created_counter = Counter(
    "cheque_instrument_created_total",
    "Cheque instruments received",
)

transition_counter = Counter(
    "cheque_transition_total",
    "Committed cheque status transitions",
    ["from_status", "to_status"],
)

transition_rejected_counter = Counter(
    "cheque_transition_rejected_total",
    "Transition commands refused before commit",
    ["reason"],  # invalid_transition | missing_evidence | concurrent_modification | upstream_unavailable
)

due_date_extension_counter = Counter(
    "obligation_due_date_extended_total",
    "Obligations whose effective due date moved to a later cheque date",
)

# Publish metrics
publish_latency_histogram = Histogram(
    "status_publish_latency_seconds",
    "Obligation service snapshot publish response time",
    buckets=[0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0],
)

publish_failure_counter = Counter(
    "status_publish_failures_total",
    "Failed snapshot publish attempts",
)

# Read-side metrics
status_fetch_degraded_counter = Counter(
    "status_fetch_degraded_total",
    "Batch rows served with the default projection",
    ["reason"],  # unavailable | malformed
)

# Service health
request_duration_histogram = Histogram(
    "http_request_duration_seconds",
    "HTTP request latency",
    ["method", "endpoint", "status"],
)


def record_transition(from_status: str, to_status: str) -> None:
    transition_counter.labels(from_status=from_status, to_status=to_status).inc()


def record_rejection(reason: str) -> None:
    transition_rejected_counter.labels(reason=reason).inc()
