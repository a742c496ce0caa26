"""Prometheus metrics for DocFlow.

HTTP traffic, workflow outcomes and the cache and activity failures that
never reach callers.
"""

from prometheus_client import Counter, Gauge, Histogram

# HTTP metrics
http_requests_total = Counter(
    "docflow_http_requests_total",
    "HTTP requests handled",
    ["method", "route", "status_code"]
)

http_request_duration_seconds = Histogram(
    "docflow_http_request_duration_seconds",
    "HTTP request latency in seconds",
    ["method", "route"],
    buckets=[0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0]
)

# Cache metrics
cache_operations_total = Counter(
    "docflow_cache_operations_total",
    "Cache-aside operations",
    ["operation", "result"]  # operation: get|set|invalidate|clear, result: hit|miss|ok|error|disabled
)

cache_backend_errors_total = Counter(
    "docflow_cache_backend_errors_total",
    "Errors raised by a cache backend and absorbed by the coordinator",
    ["backend", "operation"]  # backend: redis|memory
)

cache_invalidated_keys_total = Counter(
    "docflow_cache_invalidated_keys_total",
    "Cache keys removed through tag invalidation"
)

# Workflow metrics
status_transitions_total = Counter(
    "docflow_status_transitions_total",
    "Document status transition attempts",
    ["from_status", "to_status", "result"]  # result: success|<error code>
)

verifications_total = Counter(
    "docflow_verifications_total",
    "Supplementary file verification decisions",
    ["result"]  # result: verified|rejected|<error code>
)

receipts_total = Counter(
    "docflow_receipts_total",
    "District receipts of sent-back documents",
    ["receipt", "result"]  # receipt: paper|additional_docs, result: recorded|<error code>
)

# Activity log metrics
activity_events_total = Counter(
    "docflow_activity_events_total",
    "Activity events handled by the recorder",
    ["result"]  # result: recorded|dropped|error
)

activity_queue_depth = Gauge(
    "docflow_activity_queue_depth",
    "Number of activity events waiting to be written"
)
