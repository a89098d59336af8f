"""
Schedule audit: independent checks over a generated schedule.

These checks re-walk a schedule using only its public output and the
parameters it was generated from:

- instants are in chronological order
- every in-range override airs at its rounded slot
- no instant falls outside ``[start, start + intervals * interval_duration_ms]``
- no value reruns within ``allow_reruns_after_ms`` of its previous airing

The scheduler itself never calls into this module.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Any, TypeVar

from retrocal.scheduling.exceptions import ScheduleValidationError
from retrocal.scheduling.scheduler import SchedulingParameters, slot_index_for, slot_instant
from retrocal.shared.instant import Instant
from retrocal.shared.structural_map import StructuralMap

K = TypeVar("K")
V = TypeVar("V")


def _pairs(schedule: Iterable[tuple[Instant, V]]) -> list[tuple[Instant, V]]:
    """Accept a StructuralMap or any iterable of (instant, value) pairs."""
    if isinstance(schedule, StructuralMap):
        return list(schedule.items())
    return list(schedule)


def pivot_all(pairs: Iterable[tuple[K, V]]) -> StructuralMap[V, list[K]]:
    """Group keys by value, keeping first-seen value order."""
    result: StructuralMap[V, list[K]] = StructuralMap()
    for key, value in _pairs(pairs):
        result.update_with(value, lambda keys, key=key: [*(keys or []), key])
    return result


def find_unsorted_instants(schedule: Iterable[tuple[Instant, Any]]) -> list[tuple[Instant, Instant]]:
    """Adjacent ``(earlier_entry, later_entry)`` instants that go backwards in time."""
    out_of_order: list[tuple[Instant, Instant]] = []
    previous: Instant | None = None
    for at, _ in _pairs(schedule):
        if previous is not None and at < previous:
            out_of_order.append((previous, at))
        previous = at
    return out_of_order


def find_instants_out_of_range(
    schedule: Iterable[tuple[Instant, V]],
    params: SchedulingParameters[Any],
) -> StructuralMap[V, list[Instant]]:
    """Value -> instants it airs at outside the schedule's range."""
    out_of_range: StructuralMap[V, list[Instant]] = StructuralMap()
    for at, value in _pairs(schedule):
        if at < params.start or at > params.end:
            out_of_range.update_with(value, lambda dates, at=at: [*(dates or []), at])
    return out_of_range


def find_unmatched_overrides(
    schedule: Iterable[tuple[Instant, V]],
    params: SchedulingParameters[V],
) -> StructuralMap[tuple[Instant, V], list[Instant]]:
    """
    In-range overrides that do not air at their rounded slot.

    Maps ``(override_instant, value)`` to the instants where the value does
    air, which helps explain where it went.
    """
    entries = _pairs(schedule)
    by_value = pivot_all(entries)
    unmatched: StructuralMap[tuple[Instant, V], list[Instant]] = StructuralMap()
    for at, value in params.overrides:
        index = slot_index_for(at, params.start, params.interval_duration_ms)
        if not 0 <= index < params.intervals:
            continue
        expected = slot_instant(params.start, index, params.interval_duration_ms)
        found = by_value.get(value) or []
        if expected not in found:
            unmatched.set((at, value), list(found))
    return unmatched


def find_invalid_reruns(
    schedule: Iterable[tuple[Instant, V]],
    params: SchedulingParameters[Any],
) -> StructuralMap[V, list[tuple[Instant, Instant]]]:
    """Value -> ``(last_seen, rerun)`` pairs closer than ``allow_reruns_after_ms``."""
    reruns: StructuralMap[V, list[tuple[Instant, Instant]]] = StructuralMap()
    last_seen: StructuralMap[V, Instant] = StructuralMap()
    for at, value in _pairs(schedule):
        seen = last_seen.get(value)
        if seen is not None and at - seen < params.allow_reruns_after_ms:
            reruns.update_with(value, lambda pairs, pair=(seen, at): [*(pairs or []), pair])
        last_seen.set(value, at)
    return reruns


@dataclass(frozen=True)
class ScheduleAudit:
    """Findings of :func:`audit_schedule`; empty findings mean the schedule is clean."""

    unsorted: list[tuple[Instant, Instant]] = field(default_factory=list)
    out_of_range: StructuralMap[Any, list[Instant]] = field(default_factory=StructuralMap)
    unmatched_overrides: StructuralMap[Any, list[Instant]] = field(default_factory=StructuralMap)
    invalid_reruns: StructuralMap[Any, list[tuple[Instant, Instant]]] = field(
        default_factory=StructuralMap
    )

    @property
    def ok(self) -> bool:
        return not (
            self.unsorted or self.out_of_range or self.unmatched_overrides or self.invalid_reruns
        )

    def violations(self) -> list[str]:
        """One human-readable line per finding."""
        lines: list[str] = []
        for earlier, later in self.unsorted:
            lines.append(f"{later} is listed after {earlier} but airs earlier")
        for value, dates in self.out_of_range.items():
            lines.append(f"{value!r} airs outside the schedule range at {_join(dates)}")
        for (at, value), dates in self.unmatched_overrides.items():
            where = f"scheduled for {_join(dates)}" if dates else "not scheduled"
            lines.append(f"{at}: expected to run {value!r}, but {value!r} is {where}")
        for value, pairs in self.invalid_reruns.items():
            for seen, rerun in pairs:
                lines.append(
                    f"{value!r}: seen on {seen} and rerun on {rerun} ({rerun - seen}ms later)"
                )
        return lines


def _join(dates: Iterable[Instant]) -> str:
    return ", ".join(str(d) for d in dates)


def audit_schedule(
    schedule: Iterable[tuple[Instant, V]],
    params: SchedulingParameters[V],
) -> ScheduleAudit:
    """Run every check over a schedule (a StructuralMap or any ``(instant, value)`` pairs)."""
    entries = _pairs(schedule)
    return ScheduleAudit(
        unsorted=find_unsorted_instants(entries),
        out_of_range=find_instants_out_of_range(entries, params),
        unmatched_overrides=find_unmatched_overrides(entries, params),
        invalid_reruns=find_invalid_reruns(entries, params),
    )


def validate_schedule(
    schedule: Iterable[tuple[Instant, V]],
    params: SchedulingParameters[V],
) -> None:
    """
    Audit a schedule and raise if anything is wrong.

    Raises:
        ScheduleValidationError: With one violation line per finding
    """
    audit = audit_schedule(schedule, params)
    if not audit.ok:
        raise ScheduleValidationError("Schedule failed validation", violations=audit.violations())
