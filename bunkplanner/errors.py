"""Domain-specific errors for the attendance planner.

Only data-integrity problems are exceptions. Unreachable attendance targets,
empty days and inconsistent decisions are reported in the analysis output.
"""


class BunkPlannerError(Exception):
    """Base exception for all planner errors."""

    pass


class DataIntegrityError(BunkPlannerError):
    """Raised when roster or attendance data violates its invariants."""

    pass


class UnknownCourseError(DataIntegrityError):
    """Raised when a record or lookup references a course that is not in the roster."""

    def __init__(self, course_id: str):
        super().__init__(f"Unknown course: {course_id}")
        self.course_id = course_id
