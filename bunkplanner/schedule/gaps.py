"""Gap and span geometry for same-day classes.

All functions sort internally by start time (stable, so equal start times keep
their input order) and never mutate their input.
"""

from __future__ import annotations

from collections.abc import Iterable
from datetime import time

from pydantic import BaseModel, ConfigDict

from bunkplanner.attendance.models import ClassSlot


class Gap(BaseModel):
    """Idle time between two consecutive classes."""

    model_config = ConfigDict(frozen=True)

    start: time
    end: time
    duration_minutes: int


def to_minutes(value: time) -> int:
    """Convert a time of day to minutes since midnight."""
    return value.hour * 60 + value.minute


def from_minutes(minutes: int) -> time:
    """Convert minutes since midnight to a time of day."""
    if not 0 <= minutes < 24 * 60:
        raise ValueError(f"Minutes out of range for a time of day: {minutes}")
    return time(minutes // 60, minutes % 60)


def format_hours(minutes: float) -> str:
    """Format minutes as hours with one decimal (e.g. 210 -> "3.5")."""
    return f"{round(minutes / 60, 1):g}"


def sort_slots(slots: Iterable[ClassSlot]) -> list[ClassSlot]:
    return sorted(slots, key=lambda slot: to_minutes(slot.start_time))


def compute_gaps(slots: Iterable[ClassSlot]) -> list[Gap]:
    """Compute strictly positive gaps between consecutive classes.

    Overlapping or back-to-back classes produce no gap entry.

    Args:
        slots: Classes on the same day, in any order

    Returns:
        Gaps ordered by start time
    """
    ordered = sort_slots(slots)
    gaps: list[Gap] = []

    for current, following in zip(ordered, ordered[1:]):
        duration = to_minutes(following.start_time) - to_minutes(current.end_time)
        if duration > 0:
            gaps.append(
                Gap(
                    start=current.end_time,
                    end=following.start_time,
                    duration_minutes=duration,
                )
            )

    return gaps


def total_span(slots: Iterable[ClassSlot]) -> int:
    """Minutes from the first class start to the last class end (0 if empty).

    The end is taken from the class that starts last, so a short late class
    nested inside a long earlier one shortens the span.
    """
    ordered = sort_slots(slots)
    if not ordered:
        return 0
    return to_minutes(ordered[-1].end_time) - to_minutes(ordered[0].start_time)


def max_gap(slots: Iterable[ClassSlot]) -> int:
    gaps = compute_gaps(slots)
    return max((gap.duration_minutes for gap in gaps), default=0)


def total_gap_minutes(slots: Iterable[ClassSlot]) -> int:
    return sum(gap.duration_minutes for gap in compute_gaps(slots))
