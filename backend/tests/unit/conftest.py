from datetime import date, time
from itertools import count
from typing import Dict

import pytest
from sqlalchemy import create_engine, event
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from drivingschool.core.enums import RoleName
from drivingschool.database import Base

# Import models so Base.metadata is populated for create_all.
import drivingschool.models  # noqa: F401
from drivingschool.models import Booking, BookingStatus, Course, InstructorAvailability, User

_sequence = count(1)


@pytest.fixture(scope="session")
def _unit_engine():
    engine = create_engine(
        "sqlite+pysqlite:///:memory:",
        future=True,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )

    # pysqlite manages BEGIN itself and breaks SAVEPOINT; let SQLAlchemy emit it.
    @event.listens_for(engine, "connect")
    def _disable_pysqlite_transactions(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def _emit_begin(conn):
        conn.exec_driver_sql("BEGIN")

    Base.metadata.create_all(engine)
    yield engine
    Base.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture(scope="function")
def unit_db(_unit_engine) -> Session:
    """
    Provide a session joined to an outer transaction that is rolled back.

    Service commits only release a SAVEPOINT, so nothing outlives the test.
    """
    connection = _unit_engine.connect()
    transaction = connection.begin()
    SessionLocal = sessionmaker(
        bind=connection,
        expire_on_commit=False,
        future=True,
        join_transaction_mode="create_savepoint",
    )
    session = SessionLocal()

    try:
        yield session
    finally:
        session.close()
        transaction.rollback()
        connection.close()


class InMemoryRedis:
    """SET NX / DELETE subset of redis.Redis shared by every caller of the fixture."""

    def __init__(self) -> None:
        self.store: Dict[str, str] = {}

    def set(self, key, value, nx=False, ex=None):
        if nx and key in self.store:
            return None
        self.store[key] = value
        return True

    def delete(self, key):
        return 1 if self.store.pop(key, None) is not None else 0


@pytest.fixture(autouse=True)
def lock_redis(monkeypatch) -> InMemoryRedis:
    """Back the booking lock with a process-wide in-memory store."""
    client = InMemoryRedis()
    monkeypatch.setattr("drivingschool.core.booking_lock._get_sync_redis", lambda: client)
    return client


@pytest.fixture
def make_user(unit_db):
    def _make(
        role: str = RoleName.INSTRUCTOR.value,
        first_name: str = "Alex",
        last_name: str = "Driver",
        is_active: bool = True,
        timezone: str = "Europe/London",
    ) -> User:
        n = next(_sequence)
        user = User(
            email=f"user{n}@example.com",
            first_name=first_name,
            last_name=last_name,
            role=role,
            is_active=is_active,
            timezone=timezone,
        )
        unit_db.add(user)
        unit_db.flush()
        return user

    return _make


@pytest.fixture
def make_course(unit_db):
    def _make(name: str = "Standard Lesson", duration_minutes: int = 60, is_active: bool = True) -> Course:
        course = Course(name=name, duration_minutes=duration_minutes, is_active=is_active)
        unit_db.add(course)
        unit_db.flush()
        return course

    return _make


@pytest.fixture
def make_availability(unit_db):
    def _make(
        instructor: User,
        on_date: date,
        start: time,
        end: time,
        is_available: bool = True,
    ) -> InstructorAvailability:
        row = InstructorAvailability(
            instructor_id=instructor.id,
            date=on_date,
            start_time=start,
            end_time=end,
            is_available=is_available,
            is_recurring=False,
            recurrence_pattern="none",
        )
        unit_db.add(row)
        unit_db.flush()
        return row

    return _make


@pytest.fixture
def make_booking(unit_db):
    def _make(
        student: User,
        instructor: User,
        course: Course,
        on_date: date,
        start: time,
        status: str = BookingStatus.CONFIRMED.value,
        rating=None,
    ) -> Booking:
        booking = Booking(
            student_id=student.id,
            instructor_id=instructor.id,
            course_id=course.id,
            lesson_date=on_date,
            lesson_time=start,
            status=status,
            rating=rating,
        )
        unit_db.add(booking)
        unit_db.flush()
        return booking

    return _make
