"""Prometheus metrics for monitoring."""

from prometheus_client import Counter, Histogram

# Auth metrics
registrations_total = Counter("registrations_total", "Total number of accounts registered", ["role"])

logins_total = Counter("logins_total", "Total number of login attempts", ["outcome"])

# Pair metrics
pairs_uploaded_total = Counter("pairs_uploaded_total", "Total number of pairs inserted by uploads")

pairs_skipped_total = Counter("pairs_skipped_total", "Total number of upload lines skipped", ["reason"])

# Match metrics
offers_total = Counter("match_offers_total", "Total number of pair offers", ["outcome"])

matches_created_total = Counter("matches_created_total", "Total number of recorded matches")

match_conflicts_total = Counter(
    "match_conflicts_total", "Reveals rejected by a uniqueness constraint", ["constraint"]
)

messages_sent_total = Counter("match_messages_sent_total", "Total number of messages sent to matches")

exports_total = Counter("match_exports_total", "Total number of CSV exports")

# Store failures
store_errors_total = Counter("store_errors_total", "Store operations that failed", ["endpoint"])

# Response time metrics
api_request_duration = Histogram(
    "api_request_duration_seconds", "API request duration in seconds", ["method", "endpoint", "status"]
)
