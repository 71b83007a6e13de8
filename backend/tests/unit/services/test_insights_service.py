from datetime import date, time
from unittest.mock import Mock, patch

import pytest

from drivingschool.core.exceptions import RepositoryException
from drivingschool.models import BookingStatus
from drivingschool.repositories.insights_repository import InsightsRepository
from drivingschool.services.insights_service import InsightsService, day_of_week_sunday_first

pytestmark = pytest.mark.unit

TODAY = date(2024, 6, 30)
SUNDAY = date(2024, 6, 23)
MONDAY = date(2024, 6, 24)


@pytest.fixture(autouse=True)
def fixed_today():
    with patch("drivingschool.services.insights_service.get_school_today", return_value=TODAY):
        yield


@pytest.fixture
def data(make_user, make_course, make_availability, make_booking):
    ivy = make_user(first_name="Ivy", last_name="Instructor")
    olly = make_user(first_name="Olly", last_name="Other")
    student = make_user(role="student")
    standard = make_course(name="Standard Lesson", duration_minutes=60)
    motorway = make_course(name="Motorway", duration_minutes=120)
    make_course(name="Retired", is_active=False)

    make_availability(ivy, MONDAY, time(9, 0), time(13, 0))
    make_availability(olly, MONDAY, time(9, 0), time(11, 0))
    make_availability(olly, MONDAY, time(14, 0), time(15, 0), is_available=False)

    make_booking(student, ivy, standard, MONDAY, time(9, 0), rating=4)
    make_booking(student, ivy, standard, MONDAY, time(10, 0), rating=2)
    make_booking(student, ivy, motorway, SUNDAY, time(9, 30))
    make_booking(student, olly, standard, MONDAY, time(14, 0), status=BookingStatus.CANCELLED.value)
    # outside the 30 day window
    make_booking(student, ivy, standard, date(2024, 5, 1), time(9, 0))
    return ivy, olly


class TestSchedulingInsights:
    def test_day_of_week_is_sunday_first(self):
        assert day_of_week_sunday_first(SUNDAY.isoweekday()) == 1
        assert day_of_week_sunday_first(MONDAY.isoweekday()) == 2
        assert day_of_week_sunday_first(date(2024, 6, 29).isoweekday()) == 7

    def test_peak_hours_and_busy_days(self, unit_db, data):
        insights = InsightsService(unit_db).get_scheduling_insights()

        assert [(p.hour, p.booking_count) for p in insights.peak_hours] == [(9, 2), (10, 1), (14, 1)]
        assert [(d.day_of_week, d.booking_count) for d in insights.busy_days] == [(2, 3), (1, 1)]

    def test_utilization_counts_only_active_bookings(self, unit_db, data):
        ivy, olly = data
        insights = InsightsService(unit_db).get_scheduling_insights()

        by_id = {u.instructor_id: u for u in insights.instructor_utilization}
        # 4 available hours, 60 + 60 + 120 booked minutes
        assert by_id[ivy.id].total_hours == 4.0
        assert by_id[ivy.id].booked_hours == 4.0
        assert by_id[ivy.id].utilization_rate == 100.0
        assert by_id[olly.id].booked_hours == 0.0
        assert by_id[olly.id].utilization_rate == 0.0
        assert insights.instructor_utilization[0].instructor_id == ivy.id

    def test_popular_courses(self, unit_db, data):
        insights = InsightsService(unit_db).get_scheduling_insights()

        courses = [(c.course_name, c.booking_count, c.avg_rating) for c in insights.popular_courses]
        assert courses == [("Standard Lesson", 3, 3.0), ("Motorway", 1, 0.0)]

    def test_instructor_filter_scopes_reports_and_drops_utilization(self, unit_db, data):
        ivy, olly = data
        insights = InsightsService(unit_db).get_scheduling_insights(instructor_id=olly.id)

        assert [(p.hour, p.booking_count) for p in insights.peak_hours] == [(14, 1)]
        assert insights.instructor_utilization == []

    def test_each_report_fails_independently(self, unit_db):
        repository = Mock(spec=InsightsRepository)
        repository.get_booking_slots_since.side_effect = RepositoryException("db down")
        repository.get_active_instructors.return_value = []
        repository.get_available_windows_since.return_value = []
        repository.get_booked_minutes_since.return_value = []
        repository.get_popular_courses.return_value = [("C1", "Standard Lesson", 2, 4.5)]

        insights = InsightsService(unit_db, repository=repository).get_scheduling_insights()

        assert insights.peak_hours == []
        assert insights.busy_days == []
        assert insights.instructor_utilization == []
        assert insights.popular_courses[0].avg_rating == 4.5
