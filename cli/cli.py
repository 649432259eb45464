"""CLI for the attendance planner.

Loads a term snapshot (courses, weekly schedule, overrides, preferences) from
JSON and answers "should I go today?" style questions against it.
"""

from datetime import date
from pathlib import Path

import typer
from loguru import logger
from pydantic import ValidationError
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from bunkplanner.attendance.models import UserPreferences
from bunkplanner.config.settings import settings
from bunkplanner.core.logger import setup_logger
from bunkplanner.decision.engine import DecisionEngine
from bunkplanner.decision.models import DayAnalysis, DecisionThresholds
from bunkplanner.errors import DataIntegrityError
from bunkplanner.schedule.gaps import format_hours
from bunkplanner.schedule.store import InMemoryScheduleStore, load_snapshot

console = Console()

app = typer.Typer(
    name="bunkplanner",
    help="Attendance planner - decide which classes are worth the trip",
    add_completion=False,
)

STATUS_STYLES = {
    "critical": "red",
    "warning": "yellow",
    "safe": "green",
}

TermOption = typer.Option(None, "--term", "-t", help="Term snapshot JSON (defaults to TERM_FILE)")
DebugOption = typer.Option(False, "--debug", help="Enable debug logging")


def _preferences_with(preferences: UserPreferences, **changes) -> UserPreferences:
    """Copy a preference snapshot with some fields replaced, re-validating the result."""
    return UserPreferences.model_validate(preferences.model_copy(update=changes).model_dump())


def _build_engine(
    term: Path | None,
    debug: bool,
    max_gap: int | None = None,
    min_classes: int | None = None,
) -> DecisionEngine:
    setup_logger(level="DEBUG" if debug else settings.log_level, log_file=settings.log_file or None)

    term_path = term or Path(settings.term_file)
    if not term_path.exists():
        console.print(f"[red]Term file not found: {term_path}[/red]")
        raise typer.Exit(code=1)

    try:
        store = InMemoryScheduleStore.from_snapshot(load_snapshot(term_path))
    except DataIntegrityError as e:
        console.print(f"[red]Invalid term data:[/red] {e}")
        raise typer.Exit(code=1) from e

    changes = {}
    if max_gap is not None:
        changes["max_gap_between_classes"] = max_gap
    if min_classes is not None:
        changes["minimum_classes_per_day"] = min_classes
    if changes:
        try:
            store.set_preferences(_preferences_with(store.get_preferences(), **changes))
        except ValidationError as e:
            console.print(f"[red]Invalid preference override:[/red] {e.errors()[0]['msg']}")
            raise typer.Exit(code=2) from e

    logger.debug(f"Loaded term snapshot from {term_path}")
    return DecisionEngine(store, thresholds=DecisionThresholds.from_settings(settings))


def _parse_date_argument(value: str | None) -> date:
    if value is None:
        return date.today()
    try:
        return date.fromisoformat(value)
    except ValueError as e:
        console.print(f"[red]Invalid date '{value}', expected YYYY-MM-DD[/red]")
        raise typer.Exit(code=2) from e


def _render_analysis(analysis: DayAnalysis) -> None:
    decision = "[green]GO[/green]" if analysis.should_go else "[red]SKIP[/red]"
    console.print(
        Panel(
            f"{decision}  confidence {analysis.confidence}%\n"
            f"Recommended: {', '.join(analysis.recommended_classes) or 'None'}",
            title=f"{analysis.date.isoformat()} ({analysis.date:%A})",
        )
    )

    if analysis.scheduled_classes:
        table = Table(title="Scheduled classes")
        table.add_column("Course")
        table.add_column("Time")
        table.add_column("Location")
        table.add_column("Now %", justify="right")
        table.add_column("Attend %", justify="right")
        table.add_column("Skip %", justify="right")
        for slot in analysis.scheduled_classes:
            impact = analysis.attendance_impact.get(slot.course_id)
            table.add_row(
                slot.course_id,
                f"{slot.start_time:%H:%M}-{slot.end_time:%H:%M}",
                slot.location or "",
                f"{impact.current_percentage:.2f}" if impact else "-",
                f"{impact.after_attending:.2f}" if impact else "-",
                f"{impact.after_skipping:.2f}" if impact else "-",
            )
        console.print(table)

    console.print("[bold]Reasoning[/bold]")
    for reason in analysis.reasoning:
        console.print(f"  - {reason}")

    if analysis.time_gaps:
        console.print("[bold]Time gaps[/bold]")
        for gap in analysis.time_gaps:
            console.print(f"  - {gap.start:%H:%M}-{gap.end:%H:%M}: {format_hours(gap.duration_minutes)}h")


@app.command()
def today(
    on: str | None = typer.Option(None, "--date", "-d", help="Date to treat as today (YYYY-MM-DD)"),
    term: Path | None = TermOption,
    debug: bool = DebugOption,
) -> None:
    """Should I go to college today?"""
    engine = _build_engine(term, debug)
    decision = engine.decide_today(_parse_date_argument(on))

    verdict = "[green]YES[/green]" if decision.should_go else "[red]NO[/red]"
    console.print(f"{verdict} - {decision.summary}")
    console.print(f"Confidence: {decision.confidence}%")


@app.command()
def analyze(
    day: str = typer.Argument(..., help="Date to analyze (YYYY-MM-DD)"),
    term: Path | None = TermOption,
    max_gap: int | None = typer.Option(None, "--max-gap", help="Override max gap between classes (minutes)"),
    min_classes: int | None = typer.Option(None, "--min-classes", help="Override minimum classes per day"),
    as_json: bool = typer.Option(False, "--json", help="Print the analysis as JSON"),
    debug: bool = DebugOption,
) -> None:
    """Full analysis of one day: decision, reasoning, gaps and attendance impact."""
    engine = _build_engine(term, debug, max_gap=max_gap, min_classes=min_classes)
    analysis = engine.analyze(_parse_date_argument(day))

    if as_json:
        typer.echo(analysis.model_dump_json(indent=2))
        return
    _render_analysis(analysis)


@app.command()
def week(
    start: str | None = typer.Option(None, "--start", "-s", help="First date (YYYY-MM-DD), defaults to today"),
    days: int = typer.Option(7, "--days", "-n", min=1, help="Number of days to analyze"),
    term: Path | None = TermOption,
    debug: bool = DebugOption,
) -> None:
    """Go / skip overview for the coming days."""
    engine = _build_engine(term, debug)
    analyses = engine.analyze_upcoming(_parse_date_argument(start), days=days)

    table = Table(title="Upcoming days")
    table.add_column("Date")
    table.add_column("Day")
    table.add_column("Decision")
    table.add_column("Classes", justify="right")
    table.add_column("Confidence", justify="right")
    for analysis in analyses:
        if analysis.status == "NO_CLASSES":
            decision = "[dim]NO CLASSES[/dim]"
        elif analysis.should_go:
            decision = "[green]GO[/green]"
        else:
            decision = "[red]SKIP[/red]"
        table.add_row(
            analysis.date.isoformat(),
            f"{analysis.date:%a}",
            decision,
            str(len(analysis.recommended_classes)),
            f"{analysis.confidence}%",
        )
    console.print(table)


@app.command()
def courses(
    term: Path | None = TermOption,
    debug: bool = DebugOption,
) -> None:
    """Attendance standing of every course."""
    engine = _build_engine(term, debug)

    table = Table(title="Course attendance")
    table.add_column("Course")
    table.add_column("Name")
    table.add_column("Attendance %", justify="right")
    table.add_column("Status")
    table.add_column("Can skip", justify="right")
    table.add_column("Needed", justify="right")
    for summary in engine.course_summary():
        style = STATUS_STYLES[summary.status]
        table.add_row(
            summary.course_id,
            summary.name,
            f"{summary.attendance_percentage:.2f}",
            f"[{style}]{summary.status}[/{style}]",
            str(summary.classes_can_skip),
            str(summary.classes_needed),
        )
    console.print(table)


@app.command()
def simulate(
    day: str = typer.Argument(..., help="Date to simulate (YYYY-MM-DD)"),
    attend: list[str] = typer.Option([], "--attend", "-a", help="Course ID attended (repeatable)"),
    term: Path | None = TermOption,
    debug: bool = DebugOption,
) -> None:
    """Project attendance after attending only the given courses on a day."""
    engine = _build_engine(term, debug)
    outcomes = engine.simulate(_parse_date_argument(day), attend)

    if not outcomes:
        console.print("[yellow]No classes scheduled for this day[/yellow]")
        return

    table = Table(title=f"Simulation for {day}")
    table.add_column("Course")
    table.add_column("Attended")
    table.add_column("New %", justify="right")
    table.add_column("Impact")
    for course_id, outcome in outcomes.items():
        style = STATUS_STYLES[outcome.impact]
        table.add_row(
            course_id,
            "yes" if course_id in attend else "no",
            f"{outcome.new_percentage:.2f}",
            f"[{style}]{outcome.impact}[/{style}]",
        )
    console.print(table)


if __name__ == "__main__":
    app()
