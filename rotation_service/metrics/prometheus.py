# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Prometheus metrics — single source of truth for all metric objects.
Imported by services and middleware. Never instantiated in controllers.
"""

from prometheus_client import Counter, Histogram

# ── HTTP Metrics (used by middleware) ──
REQUEST_COUNT = Counter(
    "rotation_requests_total",
    "Total HTTP requests to rotation service",
    ["method", "endpoint", "status"],
)
REQUEST_LATENCY = Histogram(
    "rotation_request_duration_seconds",
    "Request latency in seconds",
    ["method", "endpoint"],
)
HTTP_ERRORS = Counter(
    "rotation_http_errors_total",
    "Total HTTP error responses",
    ["method", "endpoint", "status"],
)

# ── Business Metrics (updated by service layer only) ──
PROJECTS_CREATED = Counter(
    "rotation_projects_created_total",
    "Total projects created with their first rotation",
)
PROJECT_ROLLBACKS = Counter(
    "rotation_project_rollbacks_total",
    "Compensating deletes after a failed project creation",
    ["outcome"],
)
ROTATION_UPDATES = Counter(
    "rotation_rotation_updates_total",
    "Total rotation role-set replacements",
)
ACCOUNT_UPDATES = Counter(
    "rotation_account_updates_total",
    "Self-service account updates by outcome",
    ["outcome"],
)
DIRECTORY_OPERATIONS = Counter(
    "rotation_directory_operations_total",
    "User directory operations by outcome",
    ["operation", "outcome"],
)
ACCESS_DENIED = Counter(
    "rotation_access_denied_total",
    "Admin gate rejections",
    ["reason"],
)
UPSTREAM_ERRORS = Counter(
    "rotation_upstream_errors_total",
    "Failures reported by the store or the identity provider",
    ["target"],
)
