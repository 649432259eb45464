"""Decision engine: should the student go to college on a given date?

Each call walks a fixed sequence:
1. Resolve the schedule (override replaces the weekly template)
2. Classify must-attend courses from their attendance status
3. Optimize the day with DaySelector
4. Decide go / no-go
5. Assemble the reasoning trail
6. Derive a confidence score

The engine holds only a read-only store reference and thresholds. It never
records attendance; callers do that through the store after acting on a
recommendation.
"""

from __future__ import annotations

from collections import Counter
from datetime import date, datetime, timedelta

from loguru import logger

from bunkplanner.attendance.models import ClassSlot, Course
from bunkplanner.attendance.tracker import (
    AttendanceStatus,
    CourseImpact,
    attendance_status,
    day_impact,
    is_recoverable,
)
from bunkplanner.decision.models import (
    CourseSummary,
    DayAnalysis,
    DecisionThresholds,
    ImpactLevel,
    SimulationOutcome,
    TodayDecision,
)
from bunkplanner.schedule.gaps import compute_gaps, format_hours, total_span
from bunkplanner.schedule.selector import DaySelector, SelectionResult
from bunkplanner.schedule.store import ScheduleStore

BASE_CONFIDENCE = 70
NO_CLASSES_CONFIDENCE = 100
INCONSISTENT_CONFIDENCE = 20
MUST_ATTEND_CONFIDENCE_BONUS = 10
LARGE_GAP_CONFIDENCE_PENALTY = 15
LOW_EFFICIENCY_RATIO = 0.5
LOW_EFFICIENCY_PENALTY = 20
HIGH_EFFICIENCY_RATIO = 1.5
HIGH_EFFICIENCY_BONUS = 10


def _parse_date(value: date | str) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return date.fromisoformat(value)


def is_must_attend(course: Course, status: AttendanceStatus) -> bool:
    """Must attend when below the requirement, out of skips, or at risk."""
    return (
        status.current_percentage < course.required_attendance_percentage
        or status.classes_skippable == 0
        or status.at_risk
    )


def classify_impact(percentage: float, required_percentage: float, warning_margin: float) -> ImpactLevel:
    if percentage < required_percentage:
        return "critical"
    if percentage < required_percentage + warning_margin:
        return "warning"
    return "safe"


class DecisionEngine:
    """Go / no-go recommendations over a ScheduleStore.

    USAGE:
        engine = DecisionEngine(store, thresholds=DecisionThresholds(travel_time_minutes=240))
        analysis = engine.analyze("2024-01-15")
        today = engine.decide_today()
    """

    def __init__(self, store: ScheduleStore, thresholds: DecisionThresholds | None = None):
        self.store = store
        self.thresholds = thresholds or DecisionThresholds()

    # -----------------------------
    # Main entry points
    # -----------------------------

    def analyze(self, day: date | str) -> DayAnalysis:
        """Analyze one date and produce a complete recommendation.

        Args:
            day: Target date (``date`` or ISO ``YYYY-MM-DD`` string)

        Returns:
            DayAnalysis for the date
        """
        target = _parse_date(day)
        preferences = self.store.get_preferences()
        override = self.store.get_override(target)
        scheduled = self.store.schedule_for_date(target)

        # Step 1: no actionable data
        if not scheduled:
            reasoning = ["No classes scheduled for this day"]
            if override is not None and override.reason:
                reasoning.append(f"Schedule override: {override.reason}")
            logger.info("Day analyzed", date=target.isoformat(), status="NO_CLASSES")
            return DayAnalysis(
                date=target,
                status="NO_CLASSES",
                scheduled_classes=[],
                should_go=False,
                reasoning=reasoning,
                confidence=NO_CLASSES_CONFIDENCE,
            )

        courses = {course.id: course for course in self.store.get_courses()}
        remaining = self.remaining_classes(target)

        # Step 2: must-attend classification
        must_attend = self._find_must_attend(scheduled, courses)
        impact = self._attendance_impact(scheduled, courses, remaining)

        # Step 3: optimize
        selector = DaySelector(preferences)
        selection = selector.select(scheduled, must_attend)

        # Step 4: decide
        violations = selector.violates_preferences(selection.selected)
        if must_attend:
            should_go = True
        else:
            should_go = not violations.violates_minimum_classes and not violations.violates_gap_limit

        # Step 5: reasoning
        must_attend_slots = [slot for slot in scheduled if slot.course_id in must_attend]
        reasoning: list[str] = []
        if must_attend_slots:
            names = ", ".join(self._course_name(courses, course_id) for course_id in must_attend)
            reasoning.append(f"{len(must_attend_slots)} required classes to maintain attendance: {names}")
        else:
            if violations.violates_minimum_classes:
                reasoning.append(
                    f"Only {violations.class_count} classes, below minimum of {preferences.minimum_classes_per_day}"
                )
            if violations.violates_gap_limit:
                reasoning.append(
                    f"Time gaps too large: {format_hours(violations.max_gap_minutes)}h gap exceeds limit of "
                    f"{format_hours(preferences.max_gap_between_classes)}h"
                )
            if should_go:
                reasoning.append(
                    f"No attendance-critical classes; {len(selection.selected)} classes worth attending within preferences"
                )

        if override is not None:
            reasoning.append(f"Schedule override in effect: {override.reason or 'no reason given'}")

        reasoning.extend(self._unrecoverable_warnings(scheduled, courses, remaining))

        critical = [course_id for course_id, course_impact in impact.items() if course_impact.is_required]
        if critical:
            reasoning.append(
                f"Critical attendance: {', '.join(self._course_name(courses, course_id) for course_id in critical)}"
            )

        reasoning.extend(selection.reasoning)

        efficiency_remark = self._efficiency_remark(selection)
        if efficiency_remark:
            reasoning.append(efficiency_remark)

        # Step 6: confidence
        time_gaps = compute_gaps(selection.selected)
        confidence = self._confidence(
            should_go=should_go,
            selection=selection,
            must_attend_count=len(must_attend_slots),
            largest_gap=max((gap.duration_minutes for gap in time_gaps), default=0),
        )

        status = "GO" if should_go else "NO_GO"
        logger.info(
            "Day analyzed",
            date=target.isoformat(),
            status=status,
            must_attend=must_attend,
            selected=selection.selected_course_ids,
            confidence=confidence,
        )

        return DayAnalysis(
            date=target,
            status=status,
            scheduled_classes=scheduled,
            should_go=should_go,
            recommended_classes=selection.selected_course_ids,
            must_attend=must_attend,
            reasoning=reasoning,
            time_gaps=time_gaps,
            attendance_impact=impact,
            confidence=confidence,
        )

    def decide_today(self, today: date | str | None = None) -> TodayDecision:
        """Quick answer: should I go to college today?"""
        analysis = self.analyze(today if today is not None else date.today())

        if analysis.should_go:
            summary = f"Yes, go to college. {len(analysis.recommended_classes)} classes recommended."
        else:
            first_reason = analysis.reasoning[0] if analysis.reasoning else "Not worth the travel time"
            summary = f"No, stay home. {first_reason}."

        return TodayDecision(
            should_go=analysis.should_go,
            confidence=analysis.confidence,
            summary=summary,
        )

    def analyze_upcoming(self, start: date | str | None = None, days: int = 7) -> list[DayAnalysis]:
        """Analyze ``days`` consecutive dates starting at ``start`` (default today)."""
        first = _parse_date(start) if start is not None else date.today()
        return [self.analyze(first + timedelta(days=offset)) for offset in range(days)]

    def simulate(self, day: date | str, attended_course_ids: list[str] | set[str]) -> dict[str, SimulationOutcome]:
        """Project each scheduled course's percentage after attending or skipping today.

        Pure projection; no Course is modified.
        """
        target = _parse_date(day)
        attended_ids = set(attended_course_ids)
        result: dict[str, SimulationOutcome] = {}

        for slot in self.store.schedule_for_date(target):
            if slot.course_id in result:
                continue
            course = self.store.get_course(slot.course_id)
            if course is None:
                logger.warning("Scheduled class for unknown course", course_id=slot.course_id, date=target.isoformat())
                continue

            new_attended = course.classes_attended + (1 if slot.course_id in attended_ids else 0)
            new_percentage = round(new_attended / (course.held_classes + 1) * 100, 2)
            result[slot.course_id] = SimulationOutcome(
                new_percentage=new_percentage,
                impact=classify_impact(
                    new_percentage,
                    course.required_attendance_percentage,
                    self.thresholds.warning_margin,
                ),
            )

        return result

    def course_summary(self) -> list[CourseSummary]:
        """Attendance standing of every course in the roster."""
        summaries: list[CourseSummary] = []
        for course in self.store.get_courses():
            status = attendance_status(course, self.thresholds.at_risk_ratio)
            if status.at_risk:
                level: ImpactLevel = "critical"
            elif status.current_percentage < course.required_attendance_percentage + self.thresholds.warning_margin:
                level = "warning"
            else:
                level = "safe"

            summaries.append(
                CourseSummary(
                    course_id=course.id,
                    name=course.name,
                    attendance_percentage=status.current_percentage,
                    status=level,
                    classes_can_skip=status.classes_skippable,
                    classes_needed=status.classes_still_needed,
                )
            )
        return summaries

    def attendance_statuses(self) -> list[AttendanceStatus]:
        return [attendance_status(course, self.thresholds.at_risk_ratio) for course in self.store.get_courses()]

    def remaining_classes(self, day: date | str) -> dict[str, int]:
        """Count classes per course from ``day`` (inclusive) to the end of the term.

        Without a term end, looks ``projection_horizon_days`` ahead.
        """
        start = _parse_date(day)
        end = self.store.get_term_end() or start + timedelta(days=self.thresholds.projection_horizon_days)

        counts: Counter[str] = Counter()
        current = start
        while current <= end:
            counts.update(slot.course_id for slot in self.store.schedule_for_date(current))
            current += timedelta(days=1)
        return dict(counts)

    # -----------------------------
    # Internals
    # -----------------------------

    def _find_must_attend(self, scheduled: list[ClassSlot], courses: dict[str, Course]) -> list[str]:
        must_attend: list[str] = []
        for slot in scheduled:
            if slot.course_id in must_attend:
                continue
            course = courses.get(slot.course_id)
            if course is None:
                logger.warning("Scheduled class for unknown course treated as optional", course_id=slot.course_id)
                continue
            if is_must_attend(course, attendance_status(course, self.thresholds.at_risk_ratio)):
                must_attend.append(slot.course_id)
        return must_attend

    def _attendance_impact(
        self,
        scheduled: list[ClassSlot],
        courses: dict[str, Course],
        remaining: dict[str, int],
    ) -> dict[str, CourseImpact]:
        impact: dict[str, CourseImpact] = {}
        for slot in scheduled:
            course = courses.get(slot.course_id)
            if course is None or course.id in impact:
                continue
            impact[course.id] = day_impact(course, remaining.get(course.id, 0))
        return impact

    def _unrecoverable_warnings(
        self,
        scheduled: list[ClassSlot],
        courses: dict[str, Course],
        remaining: dict[str, int],
    ) -> list[str]:
        warnings: list[str] = []
        seen: set[str] = set()
        for slot in scheduled:
            course = courses.get(slot.course_id)
            if course is None or course.id in seen:
                continue
            seen.add(course.id)

            remaining_count = remaining.get(course.id, 0)
            if not is_recoverable(course, remaining_count):
                logger.warning(
                    "Attendance requirement unreachable",
                    course_id=course.id,
                    remaining=remaining_count,
                )
                warnings.append(
                    f"{course.name} cannot reach {course.required_attendance_percentage:g}% this term "
                    f"even by attending all {remaining_count} remaining classes"
                )
        return warnings

    def _efficiency_remark(self, selection: SelectionResult) -> str | None:
        travel = self.thresholds.travel_time_minutes
        if not selection.selected or travel <= 0:
            return None

        campus_minutes = total_span(selection.selected)
        if campus_minutes < travel:
            return f"Low efficiency: {format_hours(campus_minutes)}h at college vs {format_hours(travel)}h travel"
        return f"Good efficiency: {format_hours(campus_minutes)}h at college for {format_hours(travel)}h travel"

    def _confidence(
        self,
        *,
        should_go: bool,
        selection: SelectionResult,
        must_attend_count: int,
        largest_gap: int,
    ) -> int:
        if should_go and not selection.selected:
            logger.warning("Inconsistent decision: go recommended with no classes selected")
            return INCONSISTENT_CONFIDENCE

        confidence = BASE_CONFIDENCE
        confidence += MUST_ATTEND_CONFIDENCE_BONUS * must_attend_count

        if largest_gap > self.thresholds.large_gap_minutes:
            confidence -= LARGE_GAP_CONFIDENCE_PENALTY

        travel = self.thresholds.travel_time_minutes
        if selection.selected and travel > 0:
            efficiency = total_span(selection.selected) / travel
            if efficiency < LOW_EFFICIENCY_RATIO:
                confidence -= LOW_EFFICIENCY_PENALTY
            elif efficiency > HIGH_EFFICIENCY_RATIO:
                confidence += HIGH_EFFICIENCY_BONUS

        return max(0, min(100, round(confidence)))

    @staticmethod
    def _course_name(courses: dict[str, Course], course_id: str) -> str:
        course = courses.get(course_id)
        return course.name if course else course_id

