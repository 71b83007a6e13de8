from datetime import date, time
from unittest.mock import Mock

from fastapi.testclient import TestClient
import pytest

from drivingschool.api.dependencies.database import get_db
from drivingschool.api.dependencies.services import get_conflict_checker
from drivingschool.core.enums import ConflictType
from drivingschool.main import fastapi_app
from drivingschool.models import InstructorAvailability
from drivingschool.schemas.scheduling import ScheduleConflict
from drivingschool.services.conflict_checker import ConflictChecker

pytestmark = pytest.mark.unit

MONDAY = date(2024, 6, 10)
BASE = "/api/v1/calendar"


@pytest.fixture
def client(unit_db):
    def _get_db():
        yield unit_db

    fastapi_app.dependency_overrides[get_db] = _get_db
    try:
        yield TestClient(fastapi_app)
    finally:
        fastapi_app.dependency_overrides.clear()


@pytest.fixture
def people(make_user, make_course):
    return {
        "instructor": make_user(first_name="Ivy", last_name="Instructor"),
        "other_instructor": make_user(first_name="Olly", last_name="Other"),
        "student": make_user(role="student", first_name="Sam", last_name="Learner"),
        "other_student": make_user(role="student", first_name="Tia", last_name="Learner"),
        "admin": make_user(role="admin", first_name="Ada", last_name="Admin"),
        "course": make_course(duration_minutes=60),
    }


def _as(user):
    return {"X-User-Id": user.id}


def _slot(instructor_id, **overrides):
    body = {
        "instructor_id": instructor_id,
        "date": "2024-06-10",
        "start_time": "09:00",
        "end_time": "12:00",
    }
    body.update(overrides)
    return body


class TestAuthentication:
    def test_missing_header_is_unauthorized(self, client):
        response = client.get(f"{BASE}/schedule", params={"instructor_id": "x", "start_date": "2024-06-10", "end_date": "2024-06-10"})
        assert response.status_code == 401
        assert response.json()["code"] == "NOT_AUTHENTICATED"

    def test_unknown_and_inactive_users_are_unauthorized(self, client, make_user):
        inactive = make_user(is_active=False)
        params = {"instructor_id": inactive.id, "start_date": "2024-06-10", "end_date": "2024-06-10"}

        assert client.get(f"{BASE}/schedule", params=params, headers={"X-User-Id": "nobody"}).status_code == 401
        assert client.get(f"{BASE}/schedule", params=params, headers=_as(inactive)).status_code == 401


class TestAvailabilityRoutes:
    def test_instructor_creates_own_slots(self, client, unit_db, people):
        instructor = people["instructor"]

        response = client.post(
            f"{BASE}/availability",
            json=_slot(
                instructor.id,
                is_recurring=True,
                recurrence_pattern="weekly",
                recurrence_end_date="2024-06-24",
            ),
            headers=_as(instructor),
        )

        assert response.status_code == 201
        body = response.json()
        assert body["success"] is True
        assert body["message"] == "Successfully created 1 availability slot(s)"
        assert body["created"] == 3
        assert unit_db.query(InstructorAvailability).filter_by(instructor_id=instructor.id).count() == 3

    def test_batch_with_bad_slot_is_rejected(self, client, unit_db, people):
        instructor = people["instructor"]

        response = client.post(
            f"{BASE}/availability",
            json=[_slot(instructor.id), _slot(instructor.id, start_time="13:00", end_time="12:00")],
            headers=_as(instructor),
        )

        assert response.status_code == 400
        assert response.json()["code"] == "INVALID_TIME_RANGE"
        assert unit_db.query(InstructorAvailability).filter_by(instructor_id=instructor.id).count() == 0

    def test_instructor_cannot_manage_other_instructor(self, client, people):
        response = client.post(
            f"{BASE}/availability",
            json=_slot(people["other_instructor"].id),
            headers=_as(people["instructor"]),
        )
        assert response.status_code == 403
        assert response.json()["code"] == "FORBIDDEN"

    def test_student_cannot_view_availability(self, client, people):
        response = client.get(
            f"{BASE}/availability",
            params={"instructor_id": people["instructor"].id, "start_date": "2024-06-10", "end_date": "2024-06-10"},
            headers=_as(people["student"]),
        )
        assert response.status_code == 403

    def test_admin_upserts_and_reads_availability(self, client, people):
        instructor = people["instructor"]
        body = {
            "instructor_id": instructor.id,
            "date": "2024-06-10",
            "start_time": "09:00",
            "end_time": "10:00",
            "is_available": False,
        }

        put = client.put(f"{BASE}/availability", json=body, headers=_as(people["admin"]))
        got = client.get(
            f"{BASE}/availability",
            params={"instructor_id": instructor.id, "start_date": "2024-06-10", "end_date": "2024-06-10"},
            headers=_as(people["admin"]),
        )

        assert put.status_code == 200
        assert put.json()["is_available"] is False
        assert got.status_code == 200
        assert [(row["start_time"], row["end_time"]) for row in got.json()] == [("09:00", "10:00")]


class TestScheduleRoutes:
    def test_schedule_for_own_calendar(self, client, people, make_booking, make_availability):
        instructor = people["instructor"]
        make_availability(instructor, MONDAY, time(9, 0), time(12, 0))
        make_booking(people["student"], instructor, people["course"], MONDAY, time(10, 0))

        response = client.get(
            f"{BASE}/schedule",
            params={"instructor_id": instructor.id, "start_date": "2024-06-10", "end_date": "2024-06-10"},
            headers=_as(instructor),
        )

        assert response.status_code == 200
        body = response.json()
        assert body["bookings"][0]["title"] == "Standard Lesson - Sam Learner"
        assert body["availability"][0]["title"] == "Available"

    def test_instructor_cannot_view_other_schedule(self, client, people):
        response = client.get(
            f"{BASE}/schedule",
            params={"instructor_id": people["other_instructor"].id, "start_date": "2024-06-10", "end_date": "2024-06-10"},
            headers=_as(people["instructor"]),
        )
        assert response.status_code == 403

    def test_conflict_check(self, client, people, make_booking):
        instructor = people["instructor"]
        make_booking(people["student"], instructor, people["course"], MONDAY, time(10, 0))
        body = {"instructor_id": instructor.id, "date": "2024-06-10", "start_time": "10:30", "end_time": "11:30"}

        response = client.post(f"{BASE}/schedule/conflicts", json=body, headers=_as(people["admin"]))

        assert response.status_code == 200
        assert response.json()["has_conflicts"] is True
        assert response.json()["conflicts"][0]["type"] == "booking"

    def test_conflict_check_failure_reports_conflict(self, client, people):
        checker = Mock(spec=ConflictChecker)
        checker.check_schedule_conflicts.return_value = [
            ScheduleConflict(type=ConflictType.OVERLAPPING, message="Error checking for conflicts")
        ]
        fastapi_app.dependency_overrides[get_conflict_checker] = lambda: checker
        body = {"instructor_id": "x", "date": "2024-06-10", "start_time": "10:00", "end_time": "11:00"}

        response = client.post(f"{BASE}/schedule/conflicts", json=body, headers=_as(people["admin"]))

        assert response.json() == {
            "has_conflicts": True,
            "conflicts": [
                {
                    "type": "overlapping",
                    "message": "Error checking for conflicts",
                    "conflicting_id": None,
                    "conflicting_time": None,
                }
            ],
        }


    def test_conflict_check_is_limited_like_the_schedule_view(self, client, people, make_booking):
        instructor = people["instructor"]
        make_booking(people["student"], instructor, people["course"], MONDAY, time(10, 0))
        body = {"instructor_id": instructor.id, "date": "2024-06-10", "start_time": "10:00", "end_time": "11:00"}
        url = f"{BASE}/schedule/conflicts"

        as_student = client.post(url, json=body, headers=_as(people["student"]))
        as_other = client.post(url, json=body, headers=_as(people["other_instructor"]))
        as_owner = client.post(url, json=body, headers=_as(instructor))

        assert as_student.status_code == 403
        assert as_other.status_code == 403
        assert as_owner.status_code == 200
        assert as_owner.json()["has_conflicts"] is True

class TestAutoScheduleRoutes:
    def _body(self, people, **overrides):
        body = {
            "course_id": people["course"].id,
            "student_id": people["student"].id,
            "duration_minutes": 60,
            "earliest_date": "2024-06-10",
            "latest_date": "2024-06-10",
            "preferred_times": ["11:00"],
        }
        body.update(overrides)
        return body

    def test_student_gets_ranked_suggestions(self, client, people, make_availability, make_booking):
        instructor = people["instructor"]
        make_availability(instructor, MONDAY, time(9, 0), time(12, 0))
        make_booking(people["other_student"], instructor, people["course"], MONDAY, time(10, 0))

        response = client.post(f"{BASE}/auto-schedule", json=self._body(people), headers=_as(people["student"]))

        assert response.status_code == 200
        body = response.json()
        assert body["total_suggestions"] == 2
        assert body["best_suggestion"]["start_time"] == "11:00"
        assert body["best_suggestion"]["end_time"] == "12:00"
        assert [s["score"] for s in body["suggestions"]] == [130, 115]

    def test_student_cannot_schedule_for_someone_else(self, client, people):
        response = client.post(
            f"{BASE}/auto-schedule",
            json=self._body(people, student_id=people["other_student"].id),
            headers=_as(people["student"]),
        )
        assert response.status_code == 403

    def test_unknown_course_is_not_found(self, client, people):
        response = client.post(
            f"{BASE}/auto-schedule", json=self._body(people, course_id="missing"), headers=_as(people["admin"])
        )
        assert response.status_code == 404
        assert response.json()["detail"] == "Course not found"

    def test_malformed_preferred_time_is_rejected(self, client, people):
        response = client.post(
            f"{BASE}/auto-schedule", json=self._body(people, preferred_times=["9am"]), headers=_as(people["admin"])
        )
        assert response.status_code == 422

    def test_insights_permissions(self, client, people):
        url = f"{BASE}/auto-schedule/insights"

        assert client.get(url, headers=_as(people["student"])).status_code == 403
        assert client.get(url, headers=_as(people["admin"])).status_code == 200

        own = client.get(url, headers=_as(people["instructor"]))
        assert own.status_code == 200
        assert own.json()["instructor_utilization"] == []


class TestBookingRoutes:
    def test_commit_then_conflict_then_cancel(self, client, people):
        body = {
            "student_id": people["student"].id,
            "instructor_id": people["instructor"].id,
            "course_id": people["course"].id,
            "lesson_date": "2024-06-10",
            "lesson_time": "09:00",
        }

        created = client.post(f"{BASE}/bookings", json=body, headers=_as(people["student"]))
        clash = client.post(f"{BASE}/bookings", json=body, headers=_as(people["admin"]))

        assert created.status_code == 201
        assert created.json()["lesson_time"] == "09:00"
        assert clash.status_code == 409
        assert clash.json()["code"] == "BOOKING_CONFLICT"
        assert clash.json()["errors"]["conflicts"][0]["conflicting_id"] == created.json()["id"]

        booking_id = created.json()["id"]
        other = client.post(f"{BASE}/bookings/{booking_id}/cancel", headers=_as(people["other_student"]))
        cancelled = client.post(f"{BASE}/bookings/{booking_id}/cancel", headers=_as(people["student"]))

        assert other.status_code == 403
        assert cancelled.status_code == 200
        assert cancelled.json()["status"] == "cancelled"

    def test_reschedule(self, client, people, make_booking):
        booking = make_booking(people["student"], people["instructor"], people["course"], MONDAY, time(9, 0))

        response = client.post(
            f"{BASE}/bookings/{booking.id}/reschedule",
            json={"lesson_date": "2024-06-11", "lesson_time": "14:00"},
            headers=_as(people["instructor"]),
        )

        assert response.status_code == 200
        assert response.json()["lesson_date"] == "2024-06-11"
        assert response.json()["lesson_time"] == "14:00"

    def test_student_cannot_book_for_another_student(self, client, people):
        body = {
            "student_id": people["other_student"].id,
            "instructor_id": people["instructor"].id,
            "course_id": people["course"].id,
            "lesson_date": "2024-06-10",
            "lesson_time": "09:00",
        }
        assert client.post(f"{BASE}/bookings", json=body, headers=_as(people["student"])).status_code == 403


def test_metrics_endpoint_exposes_scheduling_counters(client):
    response = client.get("/metrics")

    assert response.status_code == 200
    assert "drivingschool_candidate_windows_evaluated_total" in response.text
