"""Schedule store: the collaborator that supplies courses, schedules and preferences.

The decision engine depends only on the read-only ``ScheduleStore`` protocol
and receives it explicitly. ``InMemoryScheduleStore`` is the reference
implementation used by the CLI and tests; it also implements the write side of
the attendance contract (one record per date and course, counters kept
consistent), which callers use after acting on a recommendation.
"""

from __future__ import annotations

from collections.abc import Iterable
from datetime import date, timedelta
from pathlib import Path
from typing import Protocol

from loguru import logger
from pydantic import BaseModel, Field, ValidationError

from bunkplanner.attendance.models import (
    AttendanceRecord,
    ClassSlot,
    Course,
    ScheduleOverride,
    UserPreferences,
    WeeklySchedule,
    weekday_name,
)
from bunkplanner.errors import DataIntegrityError, UnknownCourseError

# -------------------------------------------------------------------
# Store Interface (Contract)
# -------------------------------------------------------------------


class ScheduleStore(Protocol):
    """Read-only view the engine needs. Implementations may be in-memory or persisted."""

    def get_courses(self) -> list[Course]: ...

    def get_course(self, course_id: str) -> Course | None: ...

    def get_preferences(self) -> UserPreferences: ...

    def get_override(self, day: date) -> ScheduleOverride | None: ...

    def schedule_for_date(self, day: date) -> list[ClassSlot]: ...

    def get_term_end(self) -> date | None: ...


# -------------------------------------------------------------------
# Snapshot (serialized form)
# -------------------------------------------------------------------


class TermSnapshot(BaseModel):
    """Everything known about one term, as loaded from or saved to JSON."""

    courses: list[Course] = Field(default_factory=list)
    weekly_schedule: WeeklySchedule = Field(default_factory=WeeklySchedule)
    schedule_overrides: list[ScheduleOverride] = Field(default_factory=list)
    attendance_records: list[AttendanceRecord] = Field(default_factory=list)
    preferences: UserPreferences = Field(default_factory=UserPreferences)
    term_end: date | None = None


def load_snapshot(path: str | Path) -> TermSnapshot:
    """Load a term snapshot from a JSON file.

    Raises:
        DataIntegrityError: If the file is not valid JSON or violates a model invariant
    """
    snapshot_path = Path(path)
    try:
        return TermSnapshot.model_validate_json(snapshot_path.read_text(encoding="utf-8"))
    except ValidationError as e:
        logger.error(f"Invalid term snapshot {snapshot_path}: {e.error_count()} validation errors")
        raise DataIntegrityError(f"Invalid term snapshot {snapshot_path}: {e}") from e


def save_snapshot(snapshot: TermSnapshot, path: str | Path) -> None:
    snapshot_path = Path(path)
    snapshot_path.parent.mkdir(parents=True, exist_ok=True)
    snapshot_path.write_text(snapshot.model_dump_json(indent=2), encoding="utf-8")


# -------------------------------------------------------------------
# In-memory store
# -------------------------------------------------------------------


class InMemoryScheduleStore:
    """Dictionary-backed ScheduleStore with attendance bookkeeping.

    Courses are immutable; recording attendance replaces the stored Course with
    an updated copy. Every recorded class counts once toward
    ``total_classes_scheduled``; re-recording the same date and course first
    reverses the earlier record so counters never drift.
    """

    def __init__(
        self,
        *,
        courses: Iterable[Course] = (),
        weekly_schedule: WeeklySchedule | None = None,
        overrides: Iterable[ScheduleOverride] = (),
        preferences: UserPreferences | None = None,
        term_end: date | None = None,
    ):
        self._courses: dict[str, Course] = {}
        self._weekly_schedule = weekly_schedule or WeeklySchedule()
        self._overrides: dict[date, ScheduleOverride] = {}
        self._records: dict[tuple[date, str], AttendanceRecord] = {}
        self._preferences = preferences or UserPreferences()
        self._term_end = term_end

        for course in courses:
            self.add_course(course)
        for override in overrides:
            self.add_override(override)

    @classmethod
    def from_snapshot(cls, snapshot: TermSnapshot) -> InMemoryScheduleStore:
        """Build a store from a snapshot. Records are restored without touching counters."""
        store = cls(
            courses=snapshot.courses,
            weekly_schedule=snapshot.weekly_schedule,
            overrides=snapshot.schedule_overrides,
            preferences=snapshot.preferences,
            term_end=snapshot.term_end,
        )
        for record in snapshot.attendance_records:
            if record.course_id not in store._courses:
                raise UnknownCourseError(record.course_id)
            store._records[(record.date, record.course_id)] = record
        return store

    def to_snapshot(self) -> TermSnapshot:
        return TermSnapshot(
            courses=list(self._courses.values()),
            weekly_schedule=self._weekly_schedule,
            schedule_overrides=sorted(self._overrides.values(), key=lambda o: o.date),
            attendance_records=sorted(self._records.values(), key=lambda r: (r.date, r.course_id)),
            preferences=self._preferences,
            term_end=self._term_end,
        )

    # --- Courses ---

    def add_course(self, course: Course) -> None:
        """Add a course, replacing any course with the same ID."""
        self._courses[course.id] = course

    def get_course(self, course_id: str) -> Course | None:
        return self._courses.get(course_id)

    def get_courses(self) -> list[Course]:
        return list(self._courses.values())

    # --- Weekly schedule ---

    def set_weekly_schedule(self, schedule: WeeklySchedule) -> None:
        self._weekly_schedule = schedule

    def get_weekly_schedule(self) -> WeeklySchedule:
        return self._weekly_schedule

    # --- Overrides ---

    def add_override(self, override: ScheduleOverride) -> None:
        """Add an override, replacing any existing override for the same date."""
        self._overrides[override.date] = override

    def remove_override(self, day: date) -> bool:
        return self._overrides.pop(day, None) is not None

    def get_override(self, day: date) -> ScheduleOverride | None:
        return self._overrides.get(day)

    def get_overrides(self) -> list[ScheduleOverride]:
        return sorted(self._overrides.values(), key=lambda o: o.date)

    # --- Resolution ---

    def schedule_for_date(self, day: date) -> list[ClassSlot]:
        """Classes on a date: the override if one exists, otherwise the weekday template."""
        override = self._overrides.get(day)
        if override is not None:
            return list(override.classes)
        return list(self._weekly_schedule.classes_for(weekday_name(day)))

    def upcoming_schedule(self, start: date, end: date) -> list[ScheduleOverride]:
        """Resolved schedules for every date in [start, end] that has classes."""
        upcoming: list[ScheduleOverride] = []
        day = start
        while day <= end:
            classes = self.schedule_for_date(day)
            if classes:
                upcoming.append(ScheduleOverride(date=day, classes=tuple(classes), reason="scheduled"))
            day += timedelta(days=1)
        return upcoming

    def all_scheduled_course_ids(self) -> list[str]:
        course_ids: dict[str, None] = {}
        for slots in self._weekly_schedule.days.values():
            for slot in slots:
                course_ids.setdefault(slot.course_id)
        for override in self._overrides.values():
            for slot in override.classes:
                course_ids.setdefault(slot.course_id)
        return list(course_ids)

    # --- Preferences / term ---

    def get_preferences(self) -> UserPreferences:
        return self._preferences

    def set_preferences(self, preferences: UserPreferences) -> None:
        self._preferences = preferences

    def get_term_end(self) -> date | None:
        return self._term_end

    # --- Attendance records ---

    def record_attendance(self, record: AttendanceRecord) -> Course:
        """Record one class outcome, superseding any earlier record for the same date and course.

        Returns:
            The updated Course

        Raises:
            UnknownCourseError: If the course is not in the roster
            DataIntegrityError: If reversing the superseded record would break the counters
        """
        course = self._courses.get(record.course_id)
        if course is None:
            raise UnknownCourseError(record.course_id)

        scheduled = course.total_classes_scheduled
        attended = course.classes_attended
        cancelled = course.classes_cancelled

        previous = self._records.get((record.date, record.course_id))
        if previous is not None:
            scheduled -= 1
            attended -= int(previous.attended)
            cancelled -= int(previous.cancelled)
            if min(scheduled, attended, cancelled) < 0:
                raise DataIntegrityError(
                    f"Cannot supersede record for {record.course_id} on {record.date}: counters would go negative"
                )
            logger.debug(
                "Superseding attendance record",
                course_id=record.course_id,
                date=record.date.isoformat(),
            )

        try:
            updated = Course.model_validate(
                {
                    **course.model_dump(),
                    "total_classes_scheduled": scheduled + 1,
                    "classes_attended": attended + int(record.attended),
                    "classes_cancelled": cancelled + int(record.cancelled),
                }
            )
        except ValidationError as e:
            raise DataIntegrityError(f"Recording {record.course_id} on {record.date} breaks course counters: {e}") from e

        self._courses[course.id] = updated
        self._records[(record.date, record.course_id)] = record
        logger.info(
            "Attendance recorded",
            course_id=record.course_id,
            date=record.date.isoformat(),
            attended=record.attended,
            cancelled=record.cancelled,
        )
        return updated

    def mark_cancelled(self, day: date, course_id: str, reason: str | None = None) -> Course:
        return self.record_attendance(
            AttendanceRecord(
                date=day,
                course_id=course_id,
                attended=False,
                cancelled=True,
                reason=reason or "Class cancelled",
            )
        )

    def get_records(
        self,
        course_id: str | None = None,
        start: date | None = None,
        end: date | None = None,
    ) -> list[AttendanceRecord]:
        records = sorted(self._records.values(), key=lambda r: (r.date, r.course_id))
        if course_id is not None:
            records = [r for r in records if r.course_id == course_id]
        if start is not None:
            records = [r for r in records if r.date >= start]
        if end is not None:
            records = [r for r in records if r.date <= end]
        return records
