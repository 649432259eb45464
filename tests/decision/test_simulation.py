from datetime import date

import pytest
from pydantic import ValidationError

from bunkplanner.attendance.models import ClassSlot, Course, WeeklySchedule
from bunkplanner.decision.engine import DecisionEngine
from bunkplanner.schedule.store import InMemoryScheduleStore

MONDAY = date(2024, 1, 15)


@pytest.fixture
def engine() -> DecisionEngine:
    courses = [
        Course(id="MATH201", name="Calculus II", total_classes_scheduled=40, classes_attended=28),
        Course(id="PHYS101", name="Physics I", total_classes_scheduled=40, classes_attended=31),
        Course(id="CS101", name="Computer Science", total_classes_scheduled=40, classes_attended=36),
    ]
    weekly = WeeklySchedule(
        days={
            "monday": (
                ClassSlot(course_id="MATH201", start_time="09:00", end_time="10:00"),
                ClassSlot(course_id="PHYS101", start_time="10:00", end_time="11:00"),
                ClassSlot(course_id="CS101", start_time="11:00", end_time="12:00"),
            )
        }
    )
    return DecisionEngine(InMemoryScheduleStore(courses=courses, weekly_schedule=weekly, term_end=MONDAY))


class TestSimulate:
    def test_projects_each_scheduled_course(self, engine):
        outcomes = engine.simulate(MONDAY, ["MATH201"])

        assert outcomes["MATH201"].new_percentage == 70.73
        assert outcomes["MATH201"].impact == "critical"
        assert outcomes["PHYS101"].new_percentage == 75.61
        assert outcomes["PHYS101"].impact == "warning"
        assert outcomes["CS101"].new_percentage == 87.8
        assert outcomes["CS101"].impact == "safe"

    def test_simulation_does_not_modify_courses(self, engine):
        before = engine.store.get_courses()

        engine.simulate(MONDAY, ["MATH201", "CS101"])

        assert engine.store.get_courses() == before

    def test_empty_day(self, engine):
        assert engine.simulate(date(2024, 1, 16), ["MATH201"]) == {}


def test_course_summary_levels(engine):
    summaries = {summary.course_id: summary for summary in engine.course_summary()}

    assert summaries["MATH201"].status == "critical"
    assert summaries["MATH201"].classes_needed == 2
    assert summaries["PHYS101"].status == "warning"
    assert summaries["PHYS101"].classes_can_skip == 1
    assert summaries["CS101"].status == "safe"
    assert summaries["CS101"].attendance_percentage == 90.0
    assert summaries["CS101"].classes_can_skip == 6


def test_attendance_statuses_follow_roster_order(engine):
    assert [status.course_id for status in engine.attendance_statuses()] == ["MATH201", "PHYS101", "CS101"]


def test_outputs_are_immutable(engine):
    outcome = engine.simulate(MONDAY, ["MATH201"])["MATH201"]
    summary = engine.course_summary()[0]
    decision = engine.decide_today(MONDAY)

    with pytest.raises(ValidationError):
        outcome.new_percentage = 100.0
    with pytest.raises(ValidationError):
        summary.status = "safe"
    with pytest.raises(ValidationError):
        decision.should_go = False
