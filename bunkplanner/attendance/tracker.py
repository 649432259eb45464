"""Attendance tracking and projection.

Pure arithmetic over a single Course snapshot:
- where the course stands today (status)
- what the rest of the term demands (projection)
- whether the requirement can still be met at all (recoverability)
- how attending or skipping one more class moves the percentage (impact)

No function here mutates a Course or touches a store.
"""

from __future__ import annotations

import math
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from fractions import Fraction

from pydantic import BaseModel, ConfigDict

from bunkplanner.attendance.models import ClassSlot, Course

DEFAULT_AT_RISK_RATIO = 0.8


@dataclass(frozen=True)
class AttendanceStatus:
    """Current standing of a course.

    Attributes:
        course_id: Course identifier
        course_name: Display name
        classes_attended: Classes attended so far
        held_classes: Classes actually held (scheduled minus cancelled)
        current_percentage: Attendance percentage, 100 when nothing was held yet
        required_classes: Attended classes needed to meet the requirement today
        classes_still_needed: Shortfall against required_classes
        classes_skippable: Surplus over required_classes
        remaining_scheduled: Scheduled classes not yet held
        at_risk: Shortfall exceeds the at-risk share of remaining classes
    """

    course_id: str
    course_name: str
    classes_attended: int
    held_classes: int
    current_percentage: float
    required_classes: int
    classes_still_needed: int
    classes_skippable: int
    remaining_scheduled: int
    at_risk: bool


@dataclass(frozen=True)
class FutureProjection:
    """Requirement for the rest of the term."""

    minimum_must_attend: int
    maximum_can_skip: int
    must_attend_ratio: float


@dataclass(frozen=True)
class AttendanceStrategy:
    """Partition of upcoming course IDs by how much slack they have."""

    must_attend: list[str]
    can_skip: list[str]
    recommended: list[str]


class CourseImpact(BaseModel):
    """Effect of attending vs. skipping the next class of a course."""

    model_config = ConfigDict(frozen=True)

    current_percentage: float
    after_attending: float
    after_skipping: float
    is_required: bool


def _percentage(attended: int, held: int) -> float:
    if held <= 0:
        return 100.0
    return round(attended / held * 100, 2)


def _required_count(required_percentage: float, classes: int) -> int:
    # 55% of 100 held classes is exactly 55
    return math.ceil(Fraction(str(required_percentage)) * classes / 100)


def _check_remaining(remaining_classes_in_term: int) -> None:
    if remaining_classes_in_term < 0:
        raise ValueError(f"remaining_classes_in_term must be >= 0, got {remaining_classes_in_term}")


def attendance_status(course: Course, at_risk_ratio: float = DEFAULT_AT_RISK_RATIO) -> AttendanceStatus:
    """Compute the current attendance standing of a course.

    Args:
        course: Course snapshot
        at_risk_ratio: Share of remaining scheduled classes above which the
            shortfall marks the course at risk

    Returns:
        AttendanceStatus for the course
    """
    held = course.held_classes
    required_classes = _required_count(course.required_attendance_percentage, held)
    still_needed = max(0, required_classes - course.classes_attended)
    skippable = max(0, course.classes_attended - required_classes)
    remaining_scheduled = course.total_classes_scheduled - held

    return AttendanceStatus(
        course_id=course.id,
        course_name=course.name,
        classes_attended=course.classes_attended,
        held_classes=held,
        current_percentage=_percentage(course.classes_attended, held),
        required_classes=required_classes,
        classes_still_needed=still_needed,
        classes_skippable=skippable,
        remaining_scheduled=remaining_scheduled,
        at_risk=still_needed > at_risk_ratio * remaining_scheduled,
    )


def project_future(course: Course, remaining_classes_in_term: int) -> FutureProjection:
    """Project how many of the remaining classes must be attended.

    Args:
        course: Course snapshot
        remaining_classes_in_term: Classes still to be held this term

    Returns:
        FutureProjection with the minimum to attend and the maximum that can be skipped
    """
    _check_remaining(remaining_classes_in_term)

    total_future = course.held_classes + remaining_classes_in_term
    required_future = _required_count(course.required_attendance_percentage, total_future)
    minimum_must_attend = max(0, required_future - course.classes_attended)
    maximum_can_skip = max(0, remaining_classes_in_term - minimum_must_attend)
    must_attend_ratio = (
        round(minimum_must_attend / remaining_classes_in_term * 100, 2) if remaining_classes_in_term > 0 else 0.0
    )

    return FutureProjection(
        minimum_must_attend=minimum_must_attend,
        maximum_can_skip=maximum_can_skip,
        must_attend_ratio=must_attend_ratio,
    )


def is_recoverable(course: Course, remaining_classes_in_term: int) -> bool:
    """Return True if attending every remaining class would still meet the requirement."""
    _check_remaining(remaining_classes_in_term)

    total_future = course.held_classes + remaining_classes_in_term
    if total_future == 0:
        return True
    best_case = (course.classes_attended + remaining_classes_in_term) / total_future * 100
    return best_case >= course.required_attendance_percentage


def day_impact(course: Course, remaining_classes_in_term: int) -> CourseImpact:
    """Compute the percentage after attending or skipping the next class.

    A class is required when the course is short of its term-end requirement
    and even attending every remaining class only just reaches it.
    """
    _check_remaining(remaining_classes_in_term)

    held = course.held_classes
    attended = course.classes_attended
    required_future = _required_count(course.required_attendance_percentage, held + remaining_classes_in_term)

    return CourseImpact(
        current_percentage=_percentage(attended, held),
        after_attending=round((attended + 1) / (held + 1) * 100, 2),
        after_skipping=round(attended / (held + 1) * 100, 2),
        is_required=attended < required_future and attended + remaining_classes_in_term <= required_future,
    )


def attendance_summary(
    courses: Iterable[Course],
    at_risk_ratio: float = DEFAULT_AT_RISK_RATIO,
) -> list[AttendanceStatus]:
    return [attendance_status(course, at_risk_ratio) for course in courses]


def optimal_strategy(
    courses: Iterable[Course],
    upcoming_classes: Iterable[ClassSlot],
    remaining_counts: Mapping[str, int],
) -> AttendanceStrategy:
    """Partition upcoming classes into must-attend, can-skip and recommended.

    Classes whose course is not in the roster are ignored.
    """
    by_id = {course.id: course for course in courses}
    strategy = AttendanceStrategy(must_attend=[], can_skip=[], recommended=[])

    for slot in upcoming_classes:
        course = by_id.get(slot.course_id)
        if course is None:
            continue

        future = project_future(course, remaining_counts.get(course.id, 0))
        if future.minimum_must_attend > future.maximum_can_skip:
            strategy.must_attend.append(slot.course_id)
        elif future.maximum_can_skip > future.minimum_must_attend * 2:
            strategy.can_skip.append(slot.course_id)
        else:
            strategy.recommended.append(slot.course_id)

    return strategy
