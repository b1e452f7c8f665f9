"""Prometheus metric inventory.

Every metric the service exposes is defined here; the modules that own a
behavior import the metric and increment/observe it at the point of action.
Counters only go up, so tests assert on deltas.
"""

from __future__ import annotations

from prometheus_client import Counter, Gauge, Histogram

# ---------------------------------------------------------------------------
# HTTP metrics (populated by the MetricsMiddleware)
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
# Progress rollups
# ---------------------------------------------------------------------------

ROLLUP_COMPUTATIONS = Counter(
    "path_rollup_computations_total",
    "Path progress rollups computed, by resulting status",
    ["status"],  # not_started|in_progress|completed
)

ROLLUP_LOOKUP_FAILURES = Counter(
    "path_rollup_lookup_failures_total",
    "Course progress lookups that failed and were treated as no progress",
)

# ---------------------------------------------------------------------------
# Lifecycle and batch jobs
# ---------------------------------------------------------------------------

LIFECYCLE_TRANSITIONS = Counter(
    "lifecycle_transitions_total",
    "Lifecycle transitions requested, by operation and result",
    ["operation", "result"],  # result: ok|invalid
)

JOB_ITEMS = Counter(
    "content_job_items_total",
    "Items handled by the scheduled content jobs",
    ["job", "outcome"],  # outcome: expired|published|skipped|conflict|error
)

JOB_RUN_DURATION = Histogram(
    "content_job_run_duration_seconds",
    "Wall-clock duration of one content job run",
    ["job"],
    buckets=[0.1, 0.5, 1.0, 5.0, 15.0, 60.0, 300.0, 900.0],
)

NOTIFICATIONS = Counter(
    "notifications_total",
    "Notification fanout attempts by event kind and result",
    ["kind", "result"],  # result: created|duplicate|failed
)

QUEUE_DEPTH = Gauge(
    "task_queue_depth",
    "Number of tasks waiting in a queue",
    ["queue_name"],  # "path_rollup", "content_expiry", "scheduled_publish"
)
