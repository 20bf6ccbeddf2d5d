"""
Prometheus metrics for monitoring.

Metrics collected:
- HTTP request duration (histogram)
- HTTP request count by status code (counter)
- Active requests (gauge)
- Access-control business events (counters)
"""

from prometheus_client import Counter, Gauge, Histogram, Info

# Application info
app_info = Info("collaboranexio_app", "CollaboraNexio application information")

# HTTP metrics
http_requests_total = Counter(
    "http_requests_total",
    "Total HTTP requests",
    ["method", "endpoint", "status_code"],
)

http_request_duration_seconds = Histogram(
    "http_request_duration_seconds",
    "HTTP request duration in seconds",
    ["method", "endpoint"],
    buckets=(0.01, 0.05, 0.1, 0.5, 1.0, 2.5, 5.0, 10.0),
)

http_requests_in_progress = Gauge(
    "http_requests_in_progress",
    "Number of HTTP requests in progress",
    ["method", "endpoint"],
)

# Business metrics
tenants_created_total = Counter(
    "tenants_created_total",
    "Total companies created",
    ["plan_type"],
)

tenants_deleted_total = Counter(
    "tenants_deleted_total",
    "Total companies deleted",
)

users_created_total = Counter(
    "users_created_total",
    "Total users created",
    ["role"],
)

assignment_changes_total = Counter(
    "assignment_changes_total",
    "Admin company assignment rows added or removed",
    ["change"],
)

authorization_denied_total = Counter(
    "authorization_denied_total",
    "Operations rejected for acting outside role or tenant scope",
    ["operation"],
)

login_attempts_total = Counter(
    "login_attempts_total",
    "Login attempts by outcome",
    ["result"],
)
