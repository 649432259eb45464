"""Output models for day decisions."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

from bunkplanner.attendance.models import ClassSlot
from bunkplanner.attendance.tracker import CourseImpact
from bunkplanner.schedule.gaps import Gap

DayStatus = Literal["NO_CLASSES", "GO", "NO_GO"]
ImpactLevel = Literal["critical", "warning", "safe"]


class DayAnalysis(BaseModel):
    """Complete recommendation for one date.

    Attributes:
        date: Analyzed date
        status: NO_CLASSES when nothing is scheduled, otherwise GO or NO_GO
        scheduled_classes: Resolved schedule (override or weekly template)
        should_go: Go/no-go decision
        recommended_classes: Course IDs of the selected classes, in selection order
        must_attend: Course IDs classified as must-attend
        reasoning: Human-readable justification, in order
        time_gaps: Gaps between the recommended classes
        attendance_impact: Per-course effect of attending vs. skipping
        confidence: Derived confidence in the decision (0-100)
    """

    model_config = ConfigDict(frozen=True)

    date: date
    status: DayStatus
    scheduled_classes: list[ClassSlot] = Field(default_factory=list)
    should_go: bool
    recommended_classes: list[str] = Field(default_factory=list)
    must_attend: list[str] = Field(default_factory=list)
    reasoning: list[str] = Field(default_factory=list)
    time_gaps: list[Gap] = Field(default_factory=list)
    attendance_impact: dict[str, CourseImpact] = Field(default_factory=dict)
    confidence: int = Field(..., ge=0, le=100)


class TodayDecision(BaseModel):
    model_config = ConfigDict(frozen=True)

    should_go: bool
    confidence: int = Field(..., ge=0, le=100)
    summary: str


class SimulationOutcome(BaseModel):
    model_config = ConfigDict(frozen=True)

    new_percentage: float
    impact: ImpactLevel


class CourseSummary(BaseModel):
    model_config = ConfigDict(frozen=True)

    course_id: str
    name: str
    attendance_percentage: float
    status: ImpactLevel
    classes_can_skip: int
    classes_needed: int


@dataclass(frozen=True)
class DecisionThresholds:
    """Tunable constants for classification, efficiency and confidence.

    Attributes:
        travel_time_minutes: Round-trip travel budget compared against on-campus time
        at_risk_ratio: Share of remaining classes above which a shortfall is "at risk"
        large_gap_minutes: Selected gap length that lowers confidence
        warning_margin: Points above the requirement still reported as "warning"
        projection_horizon_days: Look-ahead for remaining classes when the term end is unknown
    """

    travel_time_minutes: int = 240
    at_risk_ratio: float = 0.8
    large_gap_minutes: int = 180
    warning_margin: float = 5.0
    projection_horizon_days: int = 30

    @classmethod
    def from_settings(cls, settings) -> DecisionThresholds:
        return cls(
            travel_time_minutes=settings.travel_time_minutes,
            at_risk_ratio=settings.at_risk_ratio,
            large_gap_minutes=settings.large_gap_minutes,
            warning_margin=settings.warning_margin,
            projection_horizon_days=settings.projection_horizon_days,
        )
