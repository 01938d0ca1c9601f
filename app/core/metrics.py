"""Prometheus metric inventory.

Every metric the service exports is declared here; the modules that own
the behavior import and update them.  The engine itself stays free of
side effects: progress metrics are recorded by the service layer after
a batch returns.
"""

from __future__ import annotations

from prometheus_client import Counter, Gauge, Histogram

# ---------------------------------------------------------------------------
# HTTP (MetricsMiddleware)
# ---------------------------------------------------------------------------

REQUEST_COUNT = Counter(
    "http_requests_total",
    "Total HTTP requests by method, endpoint, and status code",
    ["method", "endpoint", "status_code"],
)

REQUEST_DURATION = Histogram(
    "http_request_duration_seconds",
    "HTTP request duration in seconds",
    ["method", "endpoint"],
    buckets=[0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0],
)

ACTIVE_REQUESTS = Gauge(
    "http_active_requests",
    "Number of HTTP requests currently being processed",
)

# ---------------------------------------------------------------------------
# Progress engine
# ---------------------------------------------------------------------------

PROGRESS_STATUSES = Counter(
    "progress_statuses_total",
    "Derived assignment statuses by lifecycle state",
    ["status"],
)

PROGRESS_REJECTED = Counter(
    "progress_rejected_records_total",
    "Assignments rejected during a batch",
    ["reason"],  # invalid_score|invalid_assignment
)

PROGRESS_BATCH_DURATION = Histogram(
    "progress_batch_duration_seconds",
    "Time to compute statuses for one snapshot",
    # Batches are in-process and CPU-bound; most finish well under 50ms.
    buckets=[0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0],
)

CACHE_OPERATIONS = Counter(
    "cache_operations_total",
    "Report cache lookups by result",
    ["operation"],  # hit|miss
)
