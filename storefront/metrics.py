"""
Prometheus metrics for the storefront checkout client.

Tracks outbound service calls, checkout phase transitions, order submissions
and address book mutations.
"""

from prometheus_client import (CONTENT_TYPE_LATEST, Counter, Gauge, Histogram,
                               generate_latest)

# Outbound service request metrics
storefront_service_requests_total = Counter(
    "storefront_service_requests_total",
    "Total requests to backend services",
    ["service", "endpoint", "status"],
)

storefront_service_request_duration_seconds = Histogram(
    "storefront_service_request_duration_seconds",
    "Backend service request duration in seconds",
    ["service", "endpoint"],
    buckets=(0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0),
)

storefront_service_errors_total = Counter(
    "storefront_service_errors_total",
    "Total backend service errors",
    ["service", "error_type"],
)

# Checkout metrics
storefront_checkout_transitions_total = Counter(
    "storefront_checkout_transitions_total",
    "Checkout session phase transitions",
    ["from_phase", "to_phase"],
)

storefront_order_submissions_total = Counter(
    "storefront_order_submissions_total",
    "Order placement attempts by outcome",
    ["outcome"],
)

storefront_active_checkouts = Gauge(
    "storefront_active_checkouts", "Number of open checkout sessions"
)

# Address book metrics
storefront_address_operations_total = Counter(
    "storefront_address_operations_total",
    "Address book mutations",
    ["operation", "status"],
)


def track_service_request(
    service: str, endpoint: str, status_code: int, duration: float
):
    """Track backend service request metrics."""
    storefront_service_requests_total.labels(
        service=service, endpoint=endpoint, status=status_code
    ).inc()
    storefront_service_request_duration_seconds.labels(
        service=service, endpoint=endpoint
    ).observe(duration)


def track_service_error(service: str, error_type: str):
    """Track backend service errors."""
    storefront_service_errors_total.labels(service=service, error_type=error_type).inc()


def track_checkout_transition(from_phase: str, to_phase: str):
    storefront_checkout_transitions_total.labels(
        from_phase=from_phase, to_phase=to_phase
    ).inc()


def track_order_submission(outcome: str):
    storefront_order_submissions_total.labels(outcome=outcome).inc()


def track_address_operation(operation: str, success: bool):
    """Track address book mutations."""
    status = "success" if success else "failure"
    storefront_address_operations_total.labels(operation=operation, status=status).inc()


def checkout_opened():
    storefront_active_checkouts.inc()


def checkout_closed():
    storefront_active_checkouts.dec()


def render_metrics() -> tuple:
    """
    Render metrics in Prometheus exposition format.

    Returns:
        Tuple of (payload bytes, content type)
    """
    return generate_latest(), CONTENT_TYPE_LATEST
