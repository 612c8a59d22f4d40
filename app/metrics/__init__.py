# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""Prometheus metrics for the request service."""
from prometheus_client import Counter, Gauge, Histogram

REQUESTS_CREATED = Counter(
    "delivery_requests_created_total", "Total delivery requests created", ["category"]
)
REQUESTS_TOTAL = Gauge(
    "delivery_requests_total", "Current delivery requests by status", ["status"]
)
TRANSITIONS = Counter(
    "delivery_transitions_total",
    "Lifecycle transition attempts by outcome",
    ["transition", "outcome"],
)
CODE_MISMATCHES = Counter(
    "delivery_code_mismatches_total", "Completion attempts rejected for a wrong code"
)
TIME_TO_ACCEPT = Histogram(
    "delivery_time_to_accept_seconds",
    "Time from creation to acceptance (seconds)",
    buckets=[30, 60, 120, 300, 600, 1800, 3600],
)
TIME_TO_COMPLETE = Histogram(
    "delivery_time_to_complete_seconds",
    "Time from acceptance to completion (seconds)",
    buckets=[60, 300, 600, 1800, 3600, 7200, 14400],
)
REQUEST_COUNT = Counter(
    "http_requests_total", "Total HTTP requests", ["method", "endpoint", "status"]
)
REQUEST_LATENCY = Histogram(
    "http_request_duration_seconds", "HTTP request latency", ["method", "endpoint"]
)
HTTP_ERRORS = Counter(
    "http_errors_total", "Total HTTP errors", ["method", "endpoint", "status"]
)
