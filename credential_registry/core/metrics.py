"""Prometheus metric inventory for both services.

Every metric either service records is declared here; the owning module
imports it and increments at the point of action.  Each service runs in
its own process, so each /metrics endpoint only reports what that
process did.

Label values are always drawn from small closed sets.  Credential ids
never appear in labels: they are caller-chosen and unbounded.
"""

from __future__ import annotations

from prometheus_client import Counter, Gauge, Histogram

# ---------------------------------------------------------------------------
# HTTP (MetricsMiddleware)
# ---------------------------------------------------------------------------

REQUEST_COUNT = Counter(
    "http_requests_total",
    "Total HTTP requests by method, route, and status code",
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
# Issuance
# ---------------------------------------------------------------------------

CREDENTIAL_ISSUANCES = Counter(
    "credential_issuances_total",
    "Issuance attempts by outcome",
    ["outcome"],  # created|duplicate|invalid
)

# ---------------------------------------------------------------------------
# Verification
# ---------------------------------------------------------------------------

CREDENTIAL_VERIFICATIONS = Counter(
    "credential_verifications_total",
    "Verification attempts by result",
    ["result"],  # verified|not_found|mismatch|invalid|upstream_error|storage_error
)

ISSUANCE_LOOKUP_DURATION = Histogram(
    "issuance_lookup_duration_seconds",
    "Round-trip time of verifier lookups against the issuance service",
    # Upper buckets bracket the default 5s hard timeout.
    buckets=[0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0],
)
