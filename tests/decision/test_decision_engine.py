"""Tests for go / no-go day analysis."""

from datetime import date, timedelta

import pytest

from bunkplanner.attendance.models import ClassSlot, Course, ScheduleOverride, UserPreferences, WeeklySchedule
from bunkplanner.attendance.tracker import attendance_status
from bunkplanner.decision.engine import DecisionEngine, classify_impact, is_must_attend
from bunkplanner.decision.models import DecisionThresholds
from bunkplanner.schedule.selector import SelectionResult
from bunkplanner.schedule.store import InMemoryScheduleStore

MONDAY = date(2024, 1, 15)


def make_course(course_id: str, name: str, *, attended: int = 36, scheduled: int = 40) -> Course:
    return Course(id=course_id, name=name, total_classes_scheduled=scheduled, classes_attended=attended)


def make_slot(course_id: str, start: str, end: str) -> ClassSlot:
    return ClassSlot(course_id=course_id, start_time=start, end_time=end)


def make_store(
    courses: list[Course],
    monday_slots: list[ClassSlot],
    *,
    preferences: UserPreferences | None = None,
    term_end: date | None = MONDAY,
) -> InMemoryScheduleStore:
    return InMemoryScheduleStore(
        courses=courses,
        weekly_schedule=WeeklySchedule(days={"monday": tuple(monday_slots)}),
        preferences=preferences,
        term_end=term_end,
    )


@pytest.fixture
def scattered_store() -> InMemoryScheduleStore:
    """Three healthy courses spread across the day with a strict one-hour gap limit."""
    return make_store(
        [
            make_course("CS101", "Computer Science"),
            make_course("HIST101", "World History"),
            make_course("ART110", "Drawing"),
        ],
        [
            make_slot("CS101", "08:00", "09:00"),
            make_slot("HIST101", "12:00", "13:00"),
            make_slot("ART110", "16:00", "17:00"),
        ],
        preferences=UserPreferences(max_gap_between_classes=60, minimum_classes_per_day=2),
    )


@pytest.fixture
def critical_store() -> InMemoryScheduleStore:
    """Calculus is below its requirement; the other courses are comfortable."""
    return make_store(
        [
            make_course("MATH201", "Calculus II", attended=28),
            make_course("HIST101", "World History"),
            make_course("ART110", "Drawing"),
            make_course("BIO150", "Biology"),
        ],
        [
            make_slot("HIST101", "08:00", "09:00"),
            make_slot("MATH201", "11:00", "12:00"),
            make_slot("ART110", "14:00", "15:00"),
            make_slot("BIO150", "18:00", "19:00"),
        ],
    )


class TestNoClasses:
    def test_holiday_override(self, monday_store):
        monday_store.add_override(ScheduleOverride(date=MONDAY, reason="Holiday"))

        analysis = DecisionEngine(monday_store).analyze(MONDAY)

        assert analysis.status == "NO_CLASSES"
        assert analysis.should_go is False
        assert analysis.confidence == 100
        assert analysis.recommended_classes == []
        assert "no classes" in analysis.reasoning[0].lower()
        assert "Schedule override: Holiday" in analysis.reasoning

    def test_day_without_template(self, monday_store):
        analysis = DecisionEngine(monday_store).analyze(MONDAY + timedelta(days=1))

        assert analysis.status == "NO_CLASSES"
        assert analysis.scheduled_classes == []


class TestCompactDay:
    def test_go_when_every_class_fits(self, monday_store):
        analysis = DecisionEngine(monday_store).analyze(MONDAY)

        assert analysis.status == "GO"
        assert analysis.should_go is True
        assert analysis.must_attend == []
        assert analysis.recommended_classes == ["CS101", "MATH201", "PHYS101"]
        assert analysis.confidence == 70
        assert analysis.reasoning[0] == "No attendance-critical classes; 3 classes worth attending within preferences"
        assert analysis.reasoning[-1] == "Good efficiency: 5.5h at college for 4h travel"
        assert [gap.duration_minutes for gap in analysis.time_gaps] == [30, 30]

    def test_impact_reported_for_each_course(self, monday_store):
        analysis = DecisionEngine(monday_store).analyze(MONDAY)

        assert set(analysis.attendance_impact) == {"CS101", "MATH201", "PHYS101"}
        assert analysis.attendance_impact["CS101"].current_percentage == 90.0
        assert analysis.attendance_impact["CS101"].is_required is False

    def test_analysis_is_repeatable(self, monday_store):
        engine = DecisionEngine(monday_store)

        assert engine.analyze(MONDAY) == engine.analyze(MONDAY)

    def test_iso_string_date(self, monday_store):
        engine = DecisionEngine(monday_store)

        assert engine.analyze("2024-01-15") == engine.analyze(MONDAY)

    def test_invalid_date_string(self, monday_store):
        with pytest.raises(ValueError):
            DecisionEngine(monday_store).analyze("15/01/2024")

    def test_zero_travel_time_skips_efficiency(self, monday_store):
        engine = DecisionEngine(monday_store, thresholds=DecisionThresholds(travel_time_minutes=0))

        analysis = engine.analyze(MONDAY)

        assert analysis.confidence == 70
        assert not any("efficiency" in reason for reason in analysis.reasoning)

    def test_override_noted_in_reasoning(self, monday_store):
        monday_store.add_override(
            ScheduleOverride(
                date=MONDAY,
                classes=(make_slot("CS101", "10:00", "11:30"), make_slot("MATH201", "12:00", "13:30")),
                reason="Rescheduled after exams",
            )
        )

        analysis = DecisionEngine(monday_store).analyze(MONDAY)

        assert analysis.recommended_classes == ["CS101", "MATH201"]
        assert "Schedule override in effect: Rescheduled after exams" in analysis.reasoning


class TestScatteredDay:
    def test_no_go_when_preferences_cannot_be_met(self, scattered_store):
        analysis = DecisionEngine(scattered_store).analyze(MONDAY)

        assert analysis.status == "NO_GO"
        assert analysis.should_go is False
        assert analysis.recommended_classes == ["CS101"]
        assert analysis.reasoning[0] == "Only 1 classes, below minimum of 2"
        assert analysis.confidence == 50

    def test_decide_today_summary(self, scattered_store):
        decision = DecisionEngine(scattered_store).decide_today(MONDAY)

        assert decision.should_go is False
        assert decision.summary == "No, stay home. Only 1 classes, below minimum of 2."


class TestCriticalDay:
    def test_must_attend_forces_go(self, critical_store):
        analysis = DecisionEngine(critical_store).analyze(MONDAY)

        assert analysis.status == "GO"
        assert analysis.must_attend == ["MATH201"]
        assert analysis.recommended_classes == ["MATH201", "HIST101", "ART110", "BIO150"]
        assert analysis.confidence == 90

    def test_reasoning_names_the_course(self, critical_store):
        reasoning = DecisionEngine(critical_store).analyze(MONDAY).reasoning

        assert reasoning[0] == "1 required classes to maintain attendance: Calculus II"
        assert "Critical attendance: Calculus II" in reasoning
        assert any(
            reason.startswith("Calculus II cannot reach 75% this term") for reason in reasoning
        )

    def test_unrecoverable_course_still_analyzed(self, critical_store):
        analysis = DecisionEngine(critical_store).analyze(MONDAY)

        assert analysis.attendance_impact["MATH201"].after_attending == 70.73
        assert analysis.attendance_impact["MATH201"].is_required is True

    def test_must_attend_never_dropped(self, critical_store):
        critical_store.set_preferences(UserPreferences(max_gap_between_classes=0, minimum_classes_per_day=5))

        analysis = DecisionEngine(critical_store).analyze(MONDAY)

        assert "MATH201" in analysis.recommended_classes
        assert analysis.should_go is True


def test_unknown_course_treated_as_optional(monday_store):
    monday_store.add_override(
        ScheduleOverride(
            date=MONDAY,
            classes=(make_slot("CS101", "09:00", "10:30"), make_slot("GHOST", "11:00", "12:00")),
        )
    )

    analysis = DecisionEngine(monday_store).analyze(MONDAY)

    assert "GHOST" not in analysis.must_attend
    assert "GHOST" not in analysis.attendance_impact
    assert analysis.recommended_classes == ["CS101", "GHOST"]


def test_decide_today_go_summary(monday_store):
    decision = DecisionEngine(monday_store).decide_today(MONDAY)

    assert decision.should_go is True
    assert decision.confidence == 70
    assert decision.summary == "Yes, go to college. 3 classes recommended."


def test_analyze_upcoming_covers_consecutive_days(monday_store):
    analyses = DecisionEngine(monday_store).analyze_upcoming(MONDAY, days=7)

    assert [a.date for a in analyses] == [MONDAY + timedelta(days=i) for i in range(7)]
    assert [a.status for a in analyses] == ["GO"] + ["NO_CLASSES"] * 6


class TestRemainingClasses:
    def test_counts_until_term_end(self, monday_store):
        store = make_store(monday_store.get_courses(), monday_store.schedule_for_date(MONDAY), term_end=date(2024, 1, 29))

        assert DecisionEngine(store).remaining_classes(MONDAY) == {"CS101": 3, "MATH201": 3, "PHYS101": 3}

    def test_uses_horizon_without_term_end(self, monday_store):
        store = make_store(monday_store.get_courses(), monday_store.schedule_for_date(MONDAY), term_end=None)
        engine = DecisionEngine(store, thresholds=DecisionThresholds(projection_horizon_days=7))

        assert engine.remaining_classes(MONDAY) == {"CS101": 2, "MATH201": 2, "PHYS101": 2}


class TestConfidence:
    @staticmethod
    def make_must_attend_store(second_start: str, second_end: str) -> InMemoryScheduleStore:
        return make_store(
            [
                make_course("MATH201", "Calculus II", attended=28),
                make_course("PHYS101", "Physics I", attended=28),
            ],
            [
                make_slot("MATH201", "09:00", "10:00"),
                make_slot("PHYS101", second_start, second_end),
            ],
        )

    def test_bonus_per_must_attend_class(self):
        analysis = DecisionEngine(self.make_must_attend_store("10:30", "11:30")).analyze(MONDAY)

        assert analysis.must_attend == ["MATH201", "PHYS101"]
        assert analysis.confidence == 90

    def test_gap_over_large_gap_threshold_lowers_confidence(self):
        analysis = DecisionEngine(self.make_must_attend_store("13:01", "14:00")).analyze(MONDAY)

        assert analysis.must_attend == ["MATH201", "PHYS101"]
        assert [gap.duration_minutes for gap in analysis.time_gaps] == [181]
        assert analysis.confidence == 75

    def test_gap_at_large_gap_threshold_keeps_confidence(self):
        analysis = DecisionEngine(self.make_must_attend_store("13:00", "14:00")).analyze(MONDAY)

        assert [gap.duration_minutes for gap in analysis.time_gaps] == [180]
        assert analysis.confidence == 90


def test_confidence_for_go_without_classes(monday_store):
    engine = DecisionEngine(monday_store)
    empty = SelectionResult(selected=[], skipped=[], score=-30.0, reasoning=[])

    assert engine._confidence(should_go=True, selection=empty, must_attend_count=0, largest_gap=0) == 20


class TestClassification:
    def test_below_requirement_is_must_attend(self):
        course = make_course("MATH201", "Calculus II", attended=28)

        assert is_must_attend(course, attendance_status(course)) is True

    def test_no_skips_left_is_must_attend(self):
        course = make_course("MATH201", "Calculus II", attended=30)

        assert is_must_attend(course, attendance_status(course)) is True

    def test_comfortable_course_is_optional(self):
        course = make_course("CS101", "Computer Science", attended=36)

        assert is_must_attend(course, attendance_status(course)) is False

    @pytest.mark.parametrize(
        ("percentage", "expected"),
        [(74.99, "critical"), (75.0, "warning"), (79.99, "warning"), (80.0, "safe")],
    )
    def test_classify_impact(self, percentage, expected):
        assert classify_impact(percentage, 75.0, 5.0) == expected
