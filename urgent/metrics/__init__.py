# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""Prometheus metrics for the urgent service."""
from prometheus_client import Counter, Gauge, Histogram

URGENTS_DECLARED = Counter(
    "urgents_declared_total", "Total urgents declared"
)
URGENTS_RESOLVED = Counter(
    "urgents_resolved_total", "Total urgents resolved"
)
URGENTS_PLANB = Counter(
    "urgents_planb_total", "Total Plan-B annotations applied"
)
RESOLVE_SKIPPED = Counter(
    "urgent_resolve_skipped_total", "Resolve requests with no NOK urgent for the Unico"
)
EVENTS_PUBLISHED = Counter(
    "urgent_events_published_total", "Lifecycle events published to the realtime channel", ["event"]
)
EVENTS_DROPPED = Counter(
    "urgent_events_dropped_total", "Lifecycle events dropped because the channel was full"
)
WS_CONNECTIONS = Gauge(
    "urgent_ws_connections", "Currently connected realtime observers"
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
