"""Day selection: which of today's classes are worth attending.

Greedy forward selection over a preference-weighted score. Must-attend classes
are always included; optional classes are added one at a time while the score
strictly improves. The first candidate (in schedule order) reaching the best
score wins ties, so results are reproducible. This is a hill climb, not an
exhaustive search; days rarely have more than a handful of classes.
"""

from __future__ import annotations

from collections.abc import Collection, Sequence
from dataclasses import dataclass, field

from loguru import logger

from bunkplanner.attendance.models import ClassSlot, UserPreferences
from bunkplanner.schedule.gaps import compute_gaps, format_hours

POINTS_PER_CLASS = 10
MUST_ATTEND_BONUS = 20
PRIORITY_BONUS = 5
GAP_LIMIT_PENALTY = 50
BELOW_MINIMUM_PENALTY = 30


@dataclass(frozen=True)
class PreferenceViolations:
    """Preference checks for a selection, reported independently."""

    violates_gap_limit: bool
    violates_minimum_classes: bool
    max_gap_minutes: int
    class_count: int
    reasons: list[str] = field(default_factory=list)

    @property
    def has_violations(self) -> bool:
        return self.violates_gap_limit or self.violates_minimum_classes


@dataclass(frozen=True)
class SelectionResult:
    """Outcome of a day selection."""

    selected: list[ClassSlot]
    skipped: list[ClassSlot]
    score: float
    reasoning: list[str]

    @property
    def selected_course_ids(self) -> list[str]:
        return [slot.course_id for slot in self.selected]

    @property
    def skipped_course_ids(self) -> list[str]:
        return [slot.course_id for slot in self.skipped]


def score_selection(
    selection: Sequence[ClassSlot],
    preferences: UserPreferences,
    must_attend: Collection[str] = (),
) -> float:
    """Score a set of same-day classes; higher is a better day.

    Args:
        selection: Classes being considered together
        preferences: Preference snapshot
        must_attend: Course IDs that must be attended today

    Returns:
        Unrounded score
    """
    gaps = compute_gaps(selection)
    total_gap = sum(gap.duration_minutes for gap in gaps)
    largest_gap = max((gap.duration_minutes for gap in gaps), default=0)

    score = float(POINTS_PER_CLASS * len(selection))
    score += MUST_ATTEND_BONUS * sum(1 for slot in selection if slot.course_id in must_attend)
    score -= total_gap / 60

    if largest_gap > preferences.max_gap_between_classes:
        score -= GAP_LIMIT_PENALTY
    if len(selection) < preferences.minimum_classes_per_day:
        score -= BELOW_MINIMUM_PENALTY

    score += PRIORITY_BONUS * sum(1 for slot in selection if slot.course_id in preferences.priority_courses)
    return score


def violates_preferences(selection: Sequence[ClassSlot], preferences: UserPreferences) -> PreferenceViolations:
    """Check a selection against the max-gap and minimum-classes preferences."""
    gaps = compute_gaps(selection)
    largest_gap = max((gap.duration_minutes for gap in gaps), default=0)
    violates_gap_limit = largest_gap > preferences.max_gap_between_classes
    violates_minimum = len(selection) < preferences.minimum_classes_per_day

    reasons: list[str] = []
    if violates_gap_limit:
        reasons.append(
            f"Gap of {format_hours(largest_gap)} hours exceeds limit of "
            f"{format_hours(preferences.max_gap_between_classes)} hours"
        )
    if violates_minimum:
        reasons.append(f"Only {len(selection)} classes, minimum is {preferences.minimum_classes_per_day}")

    return PreferenceViolations(
        violates_gap_limit=violates_gap_limit,
        violates_minimum_classes=violates_minimum,
        max_gap_minutes=largest_gap,
        class_count=len(selection),
        reasons=reasons,
    )


class DaySelector:
    """Builds the best-scoring subset of a day's classes.

    USAGE:
        selector = DaySelector(preferences)
        result = selector.select(day_classes, must_attend={"MATH201"})
    """

    def __init__(self, preferences: UserPreferences):
        self.preferences = preferences

    def score(self, selection: Sequence[ClassSlot], must_attend: Collection[str] = ()) -> float:
        return score_selection(selection, self.preferences, must_attend)

    def violates_preferences(self, selection: Sequence[ClassSlot]) -> PreferenceViolations:
        return violates_preferences(selection, self.preferences)

    def select(self, day_classes: Sequence[ClassSlot], must_attend: Collection[str]) -> SelectionResult:
        """Greedily select classes to attend.

        Args:
            day_classes: All classes scheduled on the day
            must_attend: Course IDs whose classes are always included

        Returns:
            SelectionResult; ``selected`` always contains every must-attend class
        """
        must_attend = frozenset(must_attend)
        selected = [slot for slot in day_classes if slot.course_id in must_attend]
        optional = [slot for slot in day_classes if slot.course_id not in must_attend]

        best_score = self.score(selected, must_attend)
        reasoning = [f"Including {len(selected)} required classes"]

        while optional:
            best_index: int | None = None
            best_candidate_score = best_score

            for index, candidate in enumerate(optional):
                candidate_score = self.score([*selected, candidate], must_attend)
                if candidate_score > best_candidate_score:
                    best_candidate_score = candidate_score
                    best_index = index

            if best_index is None:
                break

            addition = optional.pop(best_index)
            selected.append(addition)
            best_score = best_candidate_score

            violations = self.violates_preferences(selected)
            if violations.has_violations:
                reasoning.append(f"Added {addition.course_id} despite {', '.join(violations.reasons)}")
            else:
                reasoning.append(f"Added optional class {addition.course_id}")

            logger.debug(
                "Optional class added",
                course_id=addition.course_id,
                score=round(best_score, 1),
            )

        if optional:
            reasoning.append(f"Skipping {len(optional)} classes: {', '.join(slot.course_id for slot in optional)}")

        return SelectionResult(
            selected=selected,
            skipped=optional,
            score=round(best_score, 1),
            reasoning=reasoning,
        )
