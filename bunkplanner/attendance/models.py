"""Immutable input models for attendance planning.

Everything the engine reasons over enters through these models. They are
frozen snapshots: validation happens once at construction and data-integrity
defects (impossible attendance counters, classes that end before they start)
are rejected here with a ``pydantic.ValidationError``, never inside the
algorithms.
"""

from __future__ import annotations

from datetime import date, time
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

Weekday = Literal["monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday"]

WEEKDAYS: tuple[Weekday, ...] = (
    "monday",
    "tuesday",
    "wednesday",
    "thursday",
    "friday",
    "saturday",
    "sunday",
)


def weekday_name(day: date) -> Weekday:
    """Return the lowercase weekday name for a date (``monday`` ... ``sunday``)."""
    return WEEKDAYS[day.weekday()]


class Course(BaseModel):
    """A course with its running attendance counters.

    Cancelled classes never count toward the denominator, so the number of
    classes actually held is ``total_classes_scheduled - classes_cancelled``.
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., min_length=1)
    name: str
    required_attendance_percentage: float = Field(default=75.0, ge=0, le=100)
    total_classes_scheduled: int = Field(default=0, ge=0)
    classes_attended: int = Field(default=0, ge=0)
    classes_cancelled: int = Field(default=0, ge=0)

    @model_validator(mode="after")
    def validate_counters(self) -> Course:
        if self.classes_cancelled > self.total_classes_scheduled:
            raise ValueError(
                f"Course {self.id}: classes_cancelled ({self.classes_cancelled}) exceeds "
                f"total_classes_scheduled ({self.total_classes_scheduled})"
            )
        if self.classes_attended > self.held_classes:
            raise ValueError(
                f"Course {self.id}: classes_attended ({self.classes_attended}) exceeds "
                f"classes held ({self.held_classes})"
            )
        return self

    @property
    def held_classes(self) -> int:
        return self.total_classes_scheduled - self.classes_cancelled


class ClassSlot(BaseModel):
    """A single time-boxed class on one day (minute precision)."""

    model_config = ConfigDict(frozen=True)

    course_id: str = Field(..., min_length=1)
    start_time: time
    end_time: time
    location: str | None = None

    @field_validator("start_time", "end_time")
    @classmethod
    def validate_minute_precision(cls, value: time) -> time:
        if value.second or value.microsecond:
            raise ValueError(f"Class times must have minute precision, got {value.isoformat()}")
        if value.tzinfo is not None:
            raise ValueError("Class times must be naive local times")
        return value

    @model_validator(mode="after")
    def validate_time_range(self) -> ClassSlot:
        if self.end_time < self.start_time:
            raise ValueError(
                f"Class {self.course_id} ends ({self.end_time:%H:%M}) before it starts ({self.start_time:%H:%M})"
            )
        return self

    @property
    def duration_minutes(self) -> int:
        return (self.end_time.hour * 60 + self.end_time.minute) - (self.start_time.hour * 60 + self.start_time.minute)


class ScheduleOverride(BaseModel):
    """Date-specific schedule that fully replaces the weekly template.

    An empty ``classes`` tuple marks a holiday.
    """

    model_config = ConfigDict(frozen=True)

    date: date
    classes: tuple[ClassSlot, ...] = ()
    reason: str | None = None


class AttendanceRecord(BaseModel):
    """Outcome of one class on one date. At most one per (date, course)."""

    model_config = ConfigDict(frozen=True)

    date: date
    course_id: str = Field(..., min_length=1)
    attended: bool
    cancelled: bool = False
    reason: str | None = None

    @model_validator(mode="after")
    def validate_outcome(self) -> AttendanceRecord:
        if self.attended and self.cancelled:
            raise ValueError(f"Record for {self.course_id} on {self.date} cannot be both attended and cancelled")
        return self


class UserPreferences(BaseModel):
    """Immutable preference snapshot used for one decision.

    Attributes:
        max_gap_between_classes: Longest tolerable idle gap in minutes
        priority_courses: Course IDs the student cares most about, in order
        minimum_classes_per_day: Fewest classes that make a campus trip worthwhile
        minimize_trips: Whether the student prefers fewer campus days overall
    """

    model_config = ConfigDict(frozen=True)

    max_gap_between_classes: int = Field(default=180, ge=0)
    priority_courses: tuple[str, ...] = ()
    minimum_classes_per_day: int = Field(default=2, ge=0)
    minimize_trips: bool = True


class WeeklySchedule(BaseModel):
    """Recurring weekly template keyed by lowercase weekday name."""

    model_config = ConfigDict(frozen=True)

    days: dict[Weekday, tuple[ClassSlot, ...]] = Field(default_factory=dict)

    @field_validator("days", mode="before")
    @classmethod
    def normalize_day_keys(cls, value: object) -> object:
        if isinstance(value, dict):
            return {str(key).lower(): slots for key, slots in value.items()}
        return value

    def classes_for(self, weekday: Weekday) -> tuple[ClassSlot, ...]:
        return self.days.get(weekday, ())
