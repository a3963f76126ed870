"""Prometheus metrics for secretsboard."""

from __future__ import annotations

from prometheus_client import Counter, Gauge

# Watch metrics
watcher_events_total = Counter(
    "secretsboard_watcher_events_total",
    "Total watch events processed",
    ["kind", "event_type"],
)

watcher_errors_total = Counter(
    "secretsboard_watcher_errors_total",
    "Total watch API errors",
    ["kind", "status_code"],
)

watcher_relistings_total = Counter(
    "secretsboard_watcher_relistings_total",
    "Total full relists performed by watchers",
    ["kind"],
)

watched_resources = Gauge(
    "secretsboard_watched_resources",
    "Number of resources in the latest watch snapshot",
    ["kind", "scope"],
)

# Action metrics
delete_requests_total = Counter(
    "secretsboard_delete_requests_total",
    "Total confirmed delete requests",
    ["kind", "outcome"],
)

inspect_requests_total = Counter(
    "secretsboard_inspect_requests_total",
    "Total inspect lookups",
    ["outcome"],
)
