"""Root conftest for all tests.

Shared fixtures for the attendance planner: a sample term snapshot on disk and
a small in-memory store with a Monday timetable.
"""

from datetime import date
from pathlib import Path

import pytest
from loguru import logger

from bunkplanner.attendance.models import ClassSlot, Course, UserPreferences, WeeklySchedule
from bunkplanner.schedule.store import InMemoryScheduleStore

MONDAY = date(2024, 1, 15)


@pytest.fixture(scope="session", autouse=True)
def quiet_logger():
    """Keep loguru output out of test reports unless a test opts in."""
    logger.remove()
    logger.add(lambda _: None, level="DEBUG")
    yield
    logger.remove()


@pytest.fixture
def sample_term_path() -> Path:
    """Path to the bundled sample term snapshot."""
    return Path(__file__).parent.parent / "data" / "sample_term.json"


@pytest.fixture
def monday() -> date:
    return MONDAY


@pytest.fixture
def monday_store() -> InMemoryScheduleStore:
    """Store with three healthy courses on a compact Monday.

    Term ends on the analyzed Monday so remaining-class counts are 1 per course.
    """
    courses = [
        Course(id="CS101", name="Computer Science", total_classes_scheduled=40, classes_attended=36),
        Course(id="MATH201", name="Calculus II", total_classes_scheduled=40, classes_attended=35),
        Course(id="PHYS101", name="Physics I", total_classes_scheduled=40, classes_attended=34),
    ]
    weekly = WeeklySchedule(
        days={
            "monday": (
                ClassSlot(course_id="CS101", start_time="09:00", end_time="10:30", location="Room 101"),
                ClassSlot(course_id="MATH201", start_time="11:00", end_time="12:30", location="Room 205"),
                ClassSlot(course_id="PHYS101", start_time="13:00", end_time="14:30", location="Room 301"),
            ),
        }
    )
    return InMemoryScheduleStore(
        courses=courses,
        weekly_schedule=weekly,
        preferences=UserPreferences(),
        term_end=MONDAY,
    )
