"""Application metrics using the Prometheus client library.

All metrics are defined here as a single inventory.  Other modules import
specific metrics and increment/observe them at the point of action.

Registry counters answer the operator questions that logs answer badly:

  - "How many issuances were rejected as duplicates today?"
      credential_operations_total{operation="issue", outcome="DuplicateHolder"}
  - "Is anyone trying to move credentials around?"
      rate(soulbound_violations_total[1h])
  - "How often does the leasing gate turn people away?"
      credential_validity_checks_total{result="invalid"}
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
# Registry metrics
# ---------------------------------------------------------------------------

CREDENTIAL_OPERATIONS = Counter(
    "credential_operations_total",
    "Mutating credential operations by outcome",
    ["operation", "outcome"],  # issue|revoke|extend, ok|<error kind>
)

CREDENTIAL_EVENTS = Counter(
    "credential_events_total",
    "Lifecycle events published to observers",
    ["event"],
)

SOULBOUND_VIOLATIONS = Counter(
    "soulbound_violations_total",
    "Custody changes rejected by the transfer guard",
)

VALIDITY_CHECKS = Counter(
    "credential_validity_checks_total",
    "Credential validity lookups by result",
    ["result"],  # "valid" or "invalid"
)
