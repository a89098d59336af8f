from __future__ import annotations

import json

import typer

from ...infra.exceptions import ValidationError
from ...infra.settings import settings
from ...runtime.grid import days, hours, next_hour
from ...scheduling.audit import audit_schedule
from ...scheduling.exceptions import UnsatisfiableScheduleError
from ...scheduling.scheduler import (
    SchedulingParameters,
    is_valid_placement,
    plan_schedule,
)
from ...shared.instant import Instant
from ...shared.structural_map import StructuralMap

app = typer.Typer(name="schedule", help="Generate and check rerun-avoiding schedules")


def _parse_instant(text: str, option: str) -> Instant:
    try:
        return Instant.parse(text)
    except ValueError:
        typer.echo(f"Error: {option} expects an ISO date or datetime, got '{text}'", err=True)
        raise typer.Exit(1)


def _parse_override(text: str) -> tuple[Instant, str]:
    at, sep, value = text.partition("=")
    if not sep or not value:
        typer.echo(f"Error: --override expects DATE=VALUE, got '{text}'", err=True)
        raise typer.Exit(1)
    return _parse_instant(at, "--override"), value


def _resolve_ms(
    ms: int | None,
    scaled: float | None,
    to_ms,
    default: int,
    names: tuple[str, str],
) -> int:
    if ms is not None and scaled is not None:
        typer.echo(f"Error: use either {names[0]} or {names[1]}, not both", err=True)
        raise typer.Exit(1)
    if ms is not None:
        return ms
    if scaled is not None:
        return to_ms(scaled)
    return default


@app.command("generate")
def generate(
    values: list[str] = typer.Argument(..., help="Rotation of values, in scan order"),
    start: str | None = typer.Option(None, "--start", help="ISO start date/datetime (default: next full hour, UTC)"),
    intervals: int | None = typer.Option(None, "--intervals", "-n", help="Number of slots"),
    interval_ms: int | None = typer.Option(None, "--interval-ms", help="Slot length in milliseconds"),
    interval_hours: float | None = typer.Option(None, "--interval-hours", help="Slot length in hours"),
    reruns_after_ms: int | None = typer.Option(None, "--reruns-after-ms", help="Minimum spacing between reruns in milliseconds"),
    reruns_after_days: float | None = typer.Option(None, "--reruns-after-days", help="Minimum spacing between reruns in days"),
    override: list[str] | None = typer.Option(None, "--override", "-o", help="Fixed placement as DATE=VALUE (repeatable)"),
    validate: bool = typer.Option(False, "--validate", help="Audit the result and fail on violations"),
    json_output: bool = typer.Option(False, "--json", help="Output in JSON format"),
):
    """Generate a schedule from a rotation of values.

    Examples:
        retrocal schedule generate A B C D --start 2020-01-01 -n 14 --reruns-after-days 2
        retrocal schedule generate A B C D --start 2020-01-01 -o 2020-01-05=A --json
    """
    start_at = _parse_instant(start, "--start") if start else next_hour()
    overrides = [_parse_override(item) for item in override or []]
    interval_duration_ms = _resolve_ms(
        interval_ms,
        interval_hours,
        hours,
        settings.default_interval_duration_ms,
        ("--interval-ms", "--interval-hours"),
    )
    allow_reruns_after_ms = _resolve_ms(
        reruns_after_ms,
        reruns_after_days,
        days,
        settings.default_allow_reruns_after_ms,
        ("--reruns-after-ms", "--reruns-after-days"),
    )

    try:
        params = SchedulingParameters(
            values=values,
            start=start_at,
            intervals=intervals if intervals is not None else settings.default_intervals,
            interval_duration_ms=interval_duration_ms,
            allow_reruns_after_ms=allow_reruns_after_ms,
            overrides=tuple(overrides),
        )
        plan = plan_schedule(params)
    except ValidationError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)
    except UnsatisfiableScheduleError as e:
        if json_output:
            payload = {
                "status": "error",
                "error": e.message,
                "slot_index": e.slot_index,
                "at": str(e.at),
                "violations": e.violations,
            }
            typer.echo(json.dumps(payload, indent=2))
        else:
            typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)

    audit = audit_schedule(plan.schedule, params) if validate else None

    if json_output:
        payload = {
            "status": "ok" if audit is None or audit.ok else "invalid",
            "schedule": [{"at": str(at), "value": value} for at, value in plan.schedule.items()],
            "shadowed_overrides": [
                {"at": str(at), "value": value} for at, value in plan.shadowed_overrides
            ],
            "ignored_overrides": [
                {"at": str(at), "value": value} for at, value in plan.ignored_overrides
            ],
        }
        if audit is not None:
            payload["violations"] = audit.violations()
        typer.echo(json.dumps(payload, indent=2))
    else:
        for at, value in plan.schedule.items():
            typer.echo(f"{at}  {value}")
        for at, value in plan.shadowed_overrides:
            typer.echo(f"Shadowed override: {at} {value}", err=True)
        for at, value in plan.ignored_overrides:
            typer.echo(f"Ignored override (out of range): {at} {value}", err=True)
        if audit is not None and not audit.ok:
            typer.echo("Schedule failed validation:", err=True)
            for line in audit.violations():
                typer.echo(f"  - {line}", err=True)

    if audit is not None and not audit.ok:
        raise typer.Exit(1)


@app.command("check")
def check(
    value: str = typer.Argument(..., help="Candidate value"),
    at: str = typer.Option(..., "--at", help="ISO date/datetime of the slot to check"),
    placed: list[str] | None = typer.Option(None, "--placed", "-p", help="ISO instant the value already airs at (repeatable)"),
    reruns_after_ms: int | None = typer.Option(None, "--reruns-after-ms", help="Minimum spacing between reruns in milliseconds"),
    reruns_after_days: float | None = typer.Option(None, "--reruns-after-days", help="Minimum spacing between reruns in days"),
    json_output: bool = typer.Option(False, "--json", help="Output in JSON format"),
):
    """Check whether a value may air at an instant given where it already airs.

    Exits with status 1 when the placement would be a rerun.

    Examples:
        retrocal schedule check A --at 2020-01-05 -p 2020-01-02 --reruns-after-days 2
    """
    slot_at = _parse_instant(at, "--at")
    allow_reruns_after_ms = _resolve_ms(
        reruns_after_ms,
        reruns_after_days,
        days,
        settings.default_allow_reruns_after_ms,
        ("--reruns-after-ms", "--reruns-after-days"),
    )
    placements: StructuralMap[str, list[Instant]] = StructuralMap()
    dates = [_parse_instant(item, "--placed") for item in placed or []]
    if dates:
        placements.set(value, dates)

    valid = is_valid_placement(value, slot_at, placements, allow_reruns_after_ms)

    if json_output:
        payload = {
            "value": value,
            "at": str(slot_at),
            "valid": valid,
            "allow_reruns_after_ms": allow_reruns_after_ms,
        }
        typer.echo(json.dumps(payload, indent=2))
    else:
        typer.echo(f"{value} at {slot_at}: {'valid' if valid else 'rerun'}")

    if not valid:
        raise typer.Exit(1)
