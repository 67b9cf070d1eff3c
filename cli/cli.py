"""CLI for the session rescheduling engine.

Developer CLI to preview reschedules against a JSON snapshot of students
without a host application, using the same engine code path as the API.
"""

import json
import os
from datetime import date
from pathlib import Path

import typer
import uvicorn
from loguru import logger
from pydantic import TypeAdapter, ValidationError
from rich.console import Console
from rich.table import Table

from app.config.settings import settings
from app.core.logger import setup_logger
from app.scheduling.errors import SchedulingError
from app.scheduling.models import (
    CandidateChange,
    CategorizedChanges,
    DayChangeRule,
    ModificationRule,
    OffsetRule,
    Period,
    SpecificTimeRule,
    Student,
    Weekday,
)
from app.scheduling.periods import custom_period, month_period, week_period
from app.scheduling.service import ScheduleEngine
from app.scheduling.slots import available_slots, suggest_times

# Initialize Rich console for output
console = Console()

# Initialize Typer app
app = typer.Typer(
    name="tutor-schedule",
    help="Tutor Schedule CLI - preview session reschedules against a snapshot",
    add_completion=False,
)

DEFAULT_HOST = os.getenv("SERVER_HOST", "127.0.0.1")

WEEKDAY_NAMES = {
    **{day.name.lower(): day for day in Weekday},
    **{day.name.lower()[:3]: day for day in Weekday},
}

_students_adapter = TypeAdapter(list[Student])


def _load_snapshot(path: Path) -> list[Student]:
    """Load students from a JSON file: either a list or ``{"students": [...]}``."""
    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        raise typer.BadParameter(f"Cannot read snapshot {path}: {e}") from e
    if isinstance(raw, dict):
        raw = raw.get("students", [])
    try:
        return _students_adapter.validate_python(raw)
    except ValidationError as e:
        raise typer.BadParameter(f"Invalid snapshot {path}: {e}") from e


def _parse_date(value: str) -> date:
    try:
        return date.fromisoformat(value.strip())
    except ValueError as e:
        raise typer.BadParameter(f"Expected YYYY-MM-DD, got: {value}") from e


def parse_period(value: str) -> Period:
    """Parse ``START:END`` (ISO dates) into a custom period."""
    start, sep, end = value.partition(":")
    if not sep:
        raise typer.BadParameter(f"Expected START:END, got: {value}")
    start_date, end_date = _parse_date(start), _parse_date(end)
    if start_date > end_date:
        raise typer.BadParameter(f"Period start {start_date} is after end {end_date}")
    return custom_period(start_date, end_date)


def parse_offset(value: str) -> OffsetRule:
    """Parse ``+H:MM`` / ``-H:MM`` into an offset rule."""
    value = value.strip()
    direction = -1 if value.startswith("-") else 1
    hours, sep, minutes = value.lstrip("+-").partition(":")
    if not sep or not hours.isdigit() or not minutes.isdigit():
        raise typer.BadParameter(f"Expected ±H:MM, got: {value}")
    return OffsetRule(direction=direction, hours=int(hours), minutes=int(minutes))


def _parse_weekday_slot(value: str) -> tuple[Weekday, str]:
    day, sep, time_str = value.strip().partition("@")
    weekday = WEEKDAY_NAMES.get(day.strip().lower())
    if not sep or weekday is None:
        raise typer.BadParameter(f"Expected DAY@HH:MM, got: {value}")
    return weekday, time_str.strip()


def parse_day_change(value: str) -> DayChangeRule:
    """Parse ``FROM@HH:MM->TO@HH:MM`` (e.g. ``mon@16:00->wed@17:00``)."""
    source, sep, target = value.partition("->")
    if not sep:
        raise typer.BadParameter(f"Expected FROM@HH:MM->TO@HH:MM, got: {value}")
    from_weekday, from_time = _parse_weekday_slot(source)
    to_weekday, to_time = _parse_weekday_slot(target)
    try:
        return DayChangeRule(from_weekday=from_weekday, from_time=from_time, to_weekday=to_weekday, to_time=to_time)
    except ValidationError as e:
        raise typer.BadParameter(str(e)) from e


def build_rule(offset: str | None, at: str | None, day_change: str | None) -> ModificationRule:
    chosen = [option for option in (offset, at, day_change) if option]
    if len(chosen) != 1:
        raise typer.BadParameter("Pass exactly one of --offset, --at or --day-change")
    if offset:
        return parse_offset(offset)
    if at:
        try:
            return SpecificTimeRule(time=at)
        except ValidationError as e:
            raise typer.BadParameter(str(e)) from e
    return parse_day_change(day_change)


def _changes_table(title: str, rows: list[CandidateChange], changes: CategorizedChanges, style: str) -> Table:
    table = Table(title=title, title_style=style)
    table.add_column("Session")
    table.add_column("Date")
    table.add_column("Time")
    table.add_column("New date")
    table.add_column("New time")
    table.add_column("Details")
    for candidate in rows:
        info = changes.info_for(candidate)
        table.add_row(
            candidate.session.id,
            candidate.original_date.isoformat(),
            candidate.original_time,
            candidate.new_date.isoformat(),
            candidate.new_time,
            "; ".join(detail.message for detail in info.details),
        )
    return table


def _print_changes(changes: CategorizedChanges) -> None:
    if changes.is_empty:
        console.print("[yellow]No sessions match the selected periods and rule.[/yellow]")
        return
    for title, rows, style in (
        ("Safe", changes.safe, "bold green"),
        ("Warnings", changes.warnings, "bold yellow"),
        ("Conflicts", changes.conflicts, "bold red"),
    ):
        if rows:
            console.print(_changes_table(title, rows, changes, style))
    console.print(
        f"[bold]{len(changes.safe)} safe, {len(changes.warnings)} warning(s), {len(changes.conflicts)} conflict(s)[/bold]"
    )


@app.command()
def server(
    host: str = typer.Option(DEFAULT_HOST, "--host", "-h", help="Host to bind to"),
    port: int = typer.Option(8000, "--port", "-p", help="Port to bind to"),
    reload: bool = typer.Option(False, "--reload", help="Enable auto-reload"),
) -> None:
    """Run the FastAPI server.

    This command starts the FastAPI application using uvicorn.
    """
    logger.info(f"Starting FastAPI server on {host}:{port} (reload={reload})")
    uvicorn.run("app.main:app", host=host, port=port, reload=reload)


@app.command()
def preview(
    snapshot: Path = typer.Option(..., "--snapshot", "-s", help="JSON file with the students snapshot"),
    student_id: str = typer.Option(..., "--student-id", help="Student whose sessions are rescheduled"),
    period: list[str] = typer.Option(None, "--period", help="START:END in ISO dates; repeatable"),
    week: str | None = typer.Option(None, "--week", help="'this' or 'next' week relative to --today"),
    month: str | None = typer.Option(None, "--month", help="Whole month as YYYY-MM"),
    offset: str | None = typer.Option(None, "--offset", help="Shift time by ±H:MM"),
    at: str | None = typer.Option(None, "--at", help="Set time to HH:MM"),
    day_change: str | None = typer.Option(None, "--day-change", help="FROM@HH:MM->TO@HH:MM, e.g. mon@16:00->wed@17:00"),
    today: str | None = typer.Option(None, "--today", help="Reference day (YYYY-MM-DD); earlier sessions are skipped"),
    debug: bool = typer.Option(False, "--debug", help="Enable debug logging"),
) -> None:
    """Preview a reschedule and print safe / warning / conflict tables.

    Examples:
        # Push every session in March back by 30 minutes
        python cli/cli.py preview -s students.json --student-id s1 --month 2024-03 --offset +0:30

        # Move Monday 16:00 sessions to Wednesday 17:00 over two ranges
        python cli/cli.py preview -s students.json --student-id s1 \\
            --period 2024-03-01:2024-03-15 --period 2024-04-01:2024-04-15 --day-change mon@16:00->wed@17:00
    """
    setup_logger(level="DEBUG" if debug else "WARNING")

    students = _load_snapshot(snapshot)
    reference_day = _parse_date(today) if today else None
    rule = build_rule(offset, at, day_change)

    periods = [parse_period(value) for value in period or []]
    if week:
        if week not in {"this", "next"}:
            raise typer.BadParameter("--week must be 'this' or 'next'")
        anchor = reference_day or date.today()
        periods.append(week_period(anchor, 0 if week == "this" else 1, Weekday(settings.week_starts_on)))
    if month:
        year, sep, month_number = month.partition("-")
        if not sep or not year.isdigit() or not month_number.isdigit() or not 1 <= int(month_number) <= 12:
            raise typer.BadParameter(f"Expected YYYY-MM, got: {month}")
        periods.append(month_period(int(year), int(month_number)))

    engine = ScheduleEngine(students)
    try:
        changes = engine.preview(student_id, periods, rule, today=reference_day)
    except SchedulingError as e:
        console.print(f"[red]Error:[/red] {e.message}", style="bold red")
        raise typer.Exit(1) from e

    _print_changes(changes)


@app.command()
def slots(
    snapshot: Path = typer.Option(..., "--snapshot", "-s", help="JSON file with the students snapshot"),
    day: str = typer.Option(..., "--date", "-d", help="Day to inspect (YYYY-MM-DD)"),
    duration: int = typer.Option(60, "--duration", help="Session length in minutes"),
) -> None:
    """List free slots and suggested times for a day."""
    students = _load_snapshot(snapshot)
    target = _parse_date(day)

    free = available_slots(students, target, duration=duration)
    table = Table(title=f"Free slots on {target.isoformat()}")
    table.add_column("Time")
    table.add_column("Part of day")
    for slot in free:
        table.add_row(slot.display, slot.day_part)
    console.print(table)

    for suggestion in suggest_times(students, target, duration=duration):
        console.print(f"[cyan]{suggestion.label}[/cyan]")


if __name__ == "__main__":
    app()
