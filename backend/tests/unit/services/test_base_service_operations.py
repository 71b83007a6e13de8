from unittest.mock import Mock, patch

import pytest

from drivingschool.services.base import BaseService

pytestmark = pytest.mark.unit


class _LessonService(BaseService):
    @BaseService.measure_operation("plan_lesson")
    def plan_lesson(self, fail: bool = False) -> str:
        if fail:
            raise ValueError("no slot")
        return "planned"


def test_measured_operation_reports_success_to_prometheus():
    service = _LessonService(Mock())

    with patch("drivingschool.services.base.prometheus_metrics") as metrics:
        assert service.plan_lesson() == "planned"

    kwargs = metrics.record_service_operation.call_args.kwargs
    assert kwargs["service"] == "_LessonService"
    assert kwargs["operation"] == "plan_lesson"
    assert kwargs["status"] == "success"
    assert kwargs["error_type"] is None


def test_measured_operation_reports_error_type_and_reraises():
    service = _LessonService(Mock())

    with patch("drivingschool.services.base.prometheus_metrics") as metrics:
        with pytest.raises(ValueError):
            service.plan_lesson(fail=True)

    kwargs = metrics.record_service_operation.call_args.kwargs
    assert kwargs["status"] == "error"
    assert kwargs["error_type"] == "ValueError"


def test_services_keep_no_in_process_metric_store():
    assert not hasattr(BaseService, "_class_metrics")
    assert not hasattr(_LessonService(Mock()), "get_metrics")
