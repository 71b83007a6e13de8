"""
Prometheus metrics for the scheduling backend.

Service timings come from the @measure_operation decorator; the scheduling
counters are incremented by the auto-scheduler and the conflict checker.
"""

from typing import Optional

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
    "drivingschool_service_operation_duration_seconds",
    "Service operation duration in seconds",
    ["service", "operation"],
    registry=REGISTRY,
    buckets=(0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0),
)

service_operations_total = Counter(
    "drivingschool_service_operations_total",
    "Total number of service operations",
    ["service", "operation", "status"],
    registry=REGISTRY,
)

errors_total = Counter(
    "drivingschool_errors_total",
    "Total number of errors",
    ["service", "operation", "error_type"],
    registry=REGISTRY,
)

candidate_windows_evaluated_total = Counter(
    "drivingschool_candidate_windows_evaluated_total",
    "Lesson windows checked for conflicts by the auto-scheduler",
    registry=REGISTRY,
)

suggestions_returned_total = Counter(
    "drivingschool_suggestions_returned_total",
    "Suggestions returned by the auto-scheduler",
    registry=REGISTRY,
)

auto_schedule_truncated_total = Counter(
    "drivingschool_auto_schedule_truncated_total",
    "Auto-schedule requests that stopped early",
    ["reason"],
    registry=REGISTRY,
)

conflict_check_failures_total = Counter(
    "drivingschool_conflict_check_failures_total",
    "Conflict checks that failed and were reported as unsafe",
    registry=REGISTRY,
)

instructors_skipped_total = Counter(
    "drivingschool_auto_schedule_instructors_skipped_total",
    "Instructors left out of a suggestion run because their data could not be read",
    ["reason"],
    registry=REGISTRY,
)

booking_lock_operations_total = Counter(
    "drivingschool_booking_lock_operations_total",
    "Booking lock acquire/release outcomes",
    ["action", "outcome"],
    registry=REGISTRY,
)


class PrometheusMetrics:
    """Thin facade so callers never touch metric objects directly."""

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
            service: Service name (e.g., 'AutoScheduleService')
            operation: Operation name (e.g., 'auto_schedule_lesson')
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
    def record_candidates_evaluated(count: int) -> None:
        if count > 0:
            candidate_windows_evaluated_total.inc(count)

    @staticmethod
    def record_suggestions_returned(count: int) -> None:
        if count > 0:
            suggestions_returned_total.inc(count)

    @staticmethod
    def record_auto_schedule_truncated(reason: str) -> None:
        auto_schedule_truncated_total.labels(reason=reason).inc()

    @staticmethod
    def record_conflict_check_failure() -> None:
        conflict_check_failures_total.inc()

    @staticmethod
    def record_instructor_skipped(reason: str) -> None:
        instructors_skipped_total.labels(reason=reason).inc()

    @staticmethod
    def record_booking_lock(action: str, outcome: str) -> None:
        booking_lock_operations_total.labels(action=action, outcome=outcome).inc()

    @staticmethod
    def get_metrics() -> bytes:
        return generate_latest(REGISTRY)

    @staticmethod
    def get_content_type() -> str:
        return CONTENT_TYPE_LATEST


prometheus_metrics = PrometheusMetrics()
