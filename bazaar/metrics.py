"""Prometheus metrics for the marketplace backend."""

from prometheus_client import Counter, Gauge, Histogram, Info

# Application info
app_info = Info("bazaar", "Marketplace backend application info")
app_info.info({"version": "0.1.0", "name": "bazaar"})

# AI metrics
ai_requests_total = Counter(
    "ai_requests_total",
    "Total number of generative-AI requests",
    ["operation", "status"],
)

ai_request_duration_seconds = Histogram(
    "ai_request_duration_seconds",
    "Time spent waiting on the generative-AI API",
    ["operation"],
    buckets=[0.5, 1.0, 2.0, 5.0, 10.0, 30.0, 60.0],
)

translation_cache_lookups_total = Counter(
    "translation_cache_lookups_total",
    "Translation cache lookups",
    ["language", "result"],
)

# Auto-review metrics
auto_review_runs_total = Counter(
    "auto_review_runs_total",
    "Total number of auto-review pipeline runs",
    ["trigger", "status"],
)

auto_review_decisions_total = Counter(
    "auto_review_decisions_total",
    "Auto-review outcomes per listing",
    ["decision"],
)

auto_review_last_run_timestamp = Gauge(
    "auto_review_last_run_timestamp",
    "Timestamp of last auto-review run",
)

# Order metrics
order_transitions_total = Counter(
    "order_transitions_total",
    "Order state transitions",
    ["event"],
)

orders_created_total = Counter(
    "orders_created_total",
    "Orders created",
    ["order_type", "payment_method"],
)

# Chat notifications
chat_notifications_total = Counter(
    "chat_notifications_total",
    "System messages written into conversations",
    ["kind", "status"],
)

# Search engine pings
indexnow_submissions_total = Counter(
    "indexnow_submissions_total",
    "IndexNow URL submissions",
    ["status"],
)

# Ratings
ratings_submitted_total = Counter(
    "ratings_submitted_total",
    "Ratings submitted after completed orders",
    ["score"],
)
