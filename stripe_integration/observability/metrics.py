"""
Metrics Collection with Prometheus.

Exposes integration metrics: checkout sessions, webhook deliveries and
Stripe API calls.
"""

import time
from collections.abc import Callable

from prometheus_client import REGISTRY, Counter, Histogram, Info, generate_latest

from stripe_integration.config import settings


class IntegrationMetrics:
    """
    Centralized metrics for the Stripe integration.

    Covers:
    - HTTP requests (rate, duration)
    - Checkout sessions (rate by mode and outcome)
    - Webhook events (rate by type and outcome, signature failures)
    - Stripe API calls (rate, duration, failures)
    - Errors by kind
    """

    def __init__(self) -> None:
        self.service_info = Info(
            "stripe_integration_service",
            "Service information",
        )
        self.service_info.info(
            {
                "version": settings.service_version,
                "service_name": settings.service_name,
            }
        )

        # ====================================================================
        # HTTP Metrics
        # ====================================================================
        self.http_requests_total = Counter(
            "stripe_integration_http_requests_total",
            "Total HTTP requests",
            ["endpoint", "method", "status_code"],
        )

        self.http_request_duration_seconds = Histogram(
            "stripe_integration_http_request_duration_seconds",
            "HTTP request duration in seconds",
            ["endpoint", "method"],
            buckets=(0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0),
        )

        # ====================================================================
        # Checkout Metrics
        # ====================================================================
        self.checkout_sessions_total = Counter(
            "stripe_integration_checkout_sessions_total",
            "Checkout session creation attempts",
            ["mode", "outcome"],
        )

        # ====================================================================
        # Webhook Metrics
        # ====================================================================
        self.webhook_events_total = Counter(
            "stripe_integration_webhook_events_total",
            "Verified webhook events by dispatch outcome",
            ["event_type", "outcome"],
        )

        self.webhook_signature_failures_total = Counter(
            "stripe_integration_webhook_signature_failures_total",
            "Webhook payloads rejected by signature verification",
        )

        # ====================================================================
        # Stripe API Metrics
        # ====================================================================
        self.provider_calls_total = Counter(
            "stripe_integration_provider_calls_total",
            "Stripe API calls",
            ["operation", "success"],
        )

        self.provider_call_duration_seconds = Histogram(
            "stripe_integration_provider_call_duration_seconds",
            "Stripe API call duration in seconds",
            ["operation"],
            buckets=(0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0),
        )

        # ====================================================================
        # Error Metrics
        # ====================================================================
        self.errors_total = Counter(
            "stripe_integration_errors_total",
            "Total errors by kind",
            ["error_kind", "operation"],
        )

    def record_http_request(
        self, endpoint: str, method: str, status_code: int, duration: float
    ) -> None:
        """Record HTTP request metrics."""
        self.http_requests_total.labels(
            endpoint=endpoint, method=method, status_code=status_code
        ).inc()
        self.http_request_duration_seconds.labels(endpoint=endpoint, method=method).observe(
            duration
        )

    def record_checkout_session(self, mode: str, outcome: str) -> None:
        """Record a checkout session attempt."""
        self.checkout_sessions_total.labels(mode=mode, outcome=outcome).inc()

    def record_webhook_event(self, event_type: str, outcome: str) -> None:
        """Record a dispatched webhook event."""
        self.webhook_events_total.labels(event_type=event_type, outcome=outcome).inc()

    def record_provider_call(self, operation: str, success: bool, duration: float) -> None:
        """Record a Stripe API call."""
        self.provider_calls_total.labels(operation=operation, success=str(success)).inc()
        self.provider_call_duration_seconds.labels(operation=operation).observe(duration)

    def record_error(self, error_kind: str, operation: str) -> None:
        """Record error occurrence."""
        self.errors_total.labels(error_kind=error_kind, operation=operation).inc()


# Global metrics instance
metrics = IntegrationMetrics()


class track_provider_call:
    """
    Context manager timing a Stripe API call.

    Usage:
        with track_provider_call("charges.list"):
            page = client.charges.list(params=params)
    """

    def __init__(self, operation: str) -> None:
        self.operation = operation
        self.start_time: float = 0.0

    def __enter__(self) -> "track_provider_call":
        self.start_time = time.perf_counter()
        return self

    def __exit__(self, exc_type: type, exc_val: Exception, exc_tb: object) -> None:
        duration = time.perf_counter() - self.start_time
        metrics.record_provider_call(self.operation, exc_type is None, duration)


def get_metrics_handler() -> Callable[[], bytes]:
    """Get a callable rendering the default registry in Prometheus text format."""

    def metrics_endpoint() -> bytes:
        return generate_latest(REGISTRY)

    return metrics_endpoint
