"""
Prometheus metrics module for the SkillSwap platform.

Service operations are fed from @BaseService.measure_operation; lifecycle
transitions and notification delivery have their own counters.
"""

from typing import Optional, cast

from prometheus_client import (
    CONTENT_TYPE_LATEST,
    CollectorRegistry,
    Counter,
    Histogram,
    generate_latest,
)

# Create a custom registry to avoid conflicts with default metrics
REGISTRY = CollectorRegistry()

service_operation_duration_seconds = Histogram(
    "skillswap_service_operation_duration_seconds",
    "Service operation duration in seconds",
    ["service", "operation"],
    registry=REGISTRY,
    buckets=(0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5),
)

service_operations_total = Counter(
    "skillswap_service_operations_total",
    "Total number of service operations",
    ["service", "operation", "status"],
    registry=REGISTRY,
)

errors_total = Counter(
    "skillswap_errors_total",
    "Total number of errors",
    ["service", "operation", "error_type"],
    registry=REGISTRY,
)

session_transitions_total = Counter(
    "skillswap_session_transitions_total",
    "Committed session status transitions",
    ["from_status", "to_status"],
    registry=REGISTRY,
)

session_transition_conflicts_total = Counter(
    "skillswap_session_transition_conflicts_total",
    "Transitions rejected because another writer changed the status first",
    ["action"],
    registry=REGISTRY,
)

notifications_total = Counter(
    "skillswap_notifications_total",
    "Notification delivery outcomes",
    ["event_type", "status"],
    registry=REGISTRY,
)


class PrometheusMetrics:
    """Manages Prometheus metrics collection and exposure."""

    @staticmethod
    def record_service_operation(
        service: str,
        operation: str,
        duration: float,
        status: str = "success",
        error_type: Optional[str] = None,
    ) -> None:
        """
        Record service operation metrics from @measure_operation decorator.

        Args:
            service: Service name (e.g., 'BookingService')
            operation: Operation/method name (e.g., 'create_session')
            duration: Operation duration in seconds
            status: Operation status ('success' or 'error')
            error_type: Type of error if status is 'error'
        """
        service_operation_duration_seconds.labels(service=service, operation=operation).observe(
            duration
        )
        service_operations_total.labels(service=service, operation=operation, status=status).inc()
        if status == "error" and error_type:
            errors_total.labels(service=service, operation=operation, error_type=error_type).inc()

    @staticmethod
    def record_transition(from_status: str, to_status: str) -> None:
        session_transitions_total.labels(from_status=from_status, to_status=to_status).inc()

    @staticmethod
    def record_transition_conflict(action: str) -> None:
        session_transition_conflicts_total.labels(action=action).inc()

    @staticmethod
    def record_notification_outcome(event_type: str, status: str) -> None:
        """Record outcome ('delivered', 'failed', 'retried', 'dropped') for a notification."""
        notifications_total.labels(event_type=event_type, status=status).inc()

    @staticmethod
    def get_metrics() -> bytes:
        """Generate Prometheus metrics in exposition format."""
        return cast(bytes, generate_latest(REGISTRY))

    @staticmethod
    def get_content_type() -> str:
        """Get the content type for Prometheus metrics."""
        return cast(str, CONTENT_TYPE_LATEST)


prometheus_metrics = PrometheusMetrics()
