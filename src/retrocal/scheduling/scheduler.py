"""
Rerun-avoiding slot scheduler.

Fills ``intervals`` equally spaced slots with values from a fixed rotation so
that no value airs twice within ``allow_reruns_after_ms`` of itself, while
keeping caller-supplied overrides exactly where they were placed.

The fill is a single first-fit greedy pass:

1. Overrides seed the placement index (value -> instants it airs at), including
   overrides outside the generated range, so they still push reruns away.
2. Each in-range override is rounded to its nearest slot and locks it. When
   two overrides round to the same slot, the later one wins; the earlier one is
   reported as shadowed.
3. Remaining slots are swept left to right. For each one the rotation is
   scanned starting just after the last value placed, and the first value that
   passes :func:`is_valid_placement` is taken. If no value passes, the whole
   call fails with :class:`UnsatisfiableScheduleError`.

The output is deterministic for fixed inputs and round-robins through the
rotation when nothing conflicts. It is not an optimal assignment.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Generic, TypeVar

from retrocal.infra.exceptions import ValidationError
from retrocal.infra.logging import get_logger
from retrocal.infra.settings import settings
from retrocal.runtime.grid import next_hour
from retrocal.scheduling.exceptions import UnsatisfiableScheduleError
from retrocal.shared.instant import Instant
from retrocal.shared.structural_hash import ABSENT, fingerprint
from retrocal.shared.structural_map import StructuralMap

V = TypeVar("V")

Override = tuple[Instant, Any]
PlacementIndex = StructuralMap[Any, list[Instant]]
Schedule = StructuralMap[Instant, Any]

OverridesLike = Mapping[Any, Any] | Iterable[tuple[Any, Any]]


def _normalize_overrides(overrides: OverridesLike) -> tuple[Override, ...]:
    pairs = overrides.items() if isinstance(overrides, Mapping) else overrides
    normalized: list[Override] = []
    for pair in pairs:
        try:
            at, value = pair
        except (TypeError, ValueError) as e:
            raise ValidationError(f"Override must be an (instant, value) pair, got {pair!r}") from e
        if not isinstance(at, (Instant, datetime, date, str)):
            raise ValidationError(
                f"Override instant must be an Instant, datetime or ISO string, got {type(at).__name__}"
            )
        try:
            normalized.append((Instant.coerce(at), value))
        except ValueError as e:
            raise ValidationError(f"Invalid override instant {at!r}: {e}") from e
    return tuple(normalized)


def _whole_number(value: Any) -> int | None:
    """Integral ints and floats as ``int``; None for anything else, bools included."""
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return None


@dataclass(frozen=True)
class SchedulingParameters(Generic[V]):
    """
    Immutable inputs to :func:`create_schedule`.

    Attributes:
        values: Rotation of candidate values, scanned in this order
        start: Instant of slot 0
        intervals: Number of slots to generate
        interval_duration_ms: Spacing between consecutive slots
        allow_reruns_after_ms: Minimum spacing between two placements of the
            same value; a gap exactly equal to it is still a rerun. A value
            shorter than ``interval_duration_ms`` has no effect.
        overrides: Fixed ``(instant, value)`` placements; may lie outside the
            generated range, where they only constrain reruns
    """

    values: Sequence[V]
    start: Instant
    intervals: int
    interval_duration_ms: int
    allow_reruns_after_ms: int
    overrides: tuple[tuple[Instant, V], ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "values", tuple(self.values))
        object.__setattr__(self, "overrides", _normalize_overrides(self.overrides))
        if not isinstance(self.start, Instant):
            object.__setattr__(self, "start", Instant.coerce(self.start))

        violations: list[str] = []
        for name in ("intervals", "interval_duration_ms", "allow_reruns_after_ms"):
            whole = _whole_number(getattr(self, name))
            if whole is None:
                raise ValidationError(
                    f"Invalid scheduling parameters: {name} must be a whole number, "
                    f"got {getattr(self, name)!r}"
                )
            object.__setattr__(self, name, whole)

        if not self.values:
            violations.append("values must contain at least one value")
        if self.intervals <= 0:
            violations.append(f"intervals must be positive, got {self.intervals}")
        if self.interval_duration_ms <= 0:
            violations.append(
                f"interval_duration_ms must be positive, got {self.interval_duration_ms}"
            )
        if self.allow_reruns_after_ms < 0:
            violations.append(
                f"allow_reruns_after_ms must be non-negative, got {self.allow_reruns_after_ms}"
            )
        if violations:
            raise ValidationError("Invalid scheduling parameters: " + "; ".join(violations))

        # Reject unusable values before any slot is filled
        for value in self.values:
            fingerprint(value)

    @property
    def end(self) -> Instant:
        """Instant just past the last slot."""
        return self.start + self.intervals * self.interval_duration_ms


def scheduling_parameters(values: Sequence[V], **params: Any) -> SchedulingParameters[V]:
    """
    Build SchedulingParameters with defaults for everything but ``values``.

    Defaults come from settings: the next full hour as start,
    ``default_intervals`` slots of ``default_interval_duration_ms`` each,
    reruns allowed after ``default_allow_reruns_after_ms``, no overrides.
    """
    defaults: dict[str, Any] = {
        "start": next_hour(),
        "intervals": settings.default_intervals,
        "interval_duration_ms": settings.default_interval_duration_ms,
        "allow_reruns_after_ms": settings.default_allow_reruns_after_ms,
        "overrides": (),
    }
    defaults.update(params)
    return SchedulingParameters(values=values, **defaults)


def schedule_overrides(pairs: Iterable[tuple[Any, V]]) -> StructuralMap[Instant, V]:
    """Override table keyed by instant; a later pair for the same instant replaces the earlier."""
    overrides: StructuralMap[Instant, V] = StructuralMap()
    for at, value in pairs:
        overrides.set(Instant.coerce(at), value)
    return overrides


@dataclass(frozen=True)
class SchedulePlan(Generic[V]):
    """
    Result of :func:`plan_schedule`.

    Attributes:
        schedule: Slot instant -> value, one entry per slot, chronological
        placements: Value -> instants it was placed at (overrides first,
            then generated placements, in assignment order)
        shadowed_overrides: In-range overrides replaced by a later override
            that rounded to the same slot
        ignored_overrides: Overrides whose slot falls outside the range
    """

    schedule: StructuralMap[Instant, V]
    placements: StructuralMap[V, list[Instant]]
    shadowed_overrides: tuple[tuple[Instant, V], ...] = field(default=())
    ignored_overrides: tuple[tuple[Instant, V], ...] = field(default=())


def slot_index_for(at: Instant, start: Instant, interval_duration_ms: int) -> int:
    """Index of the slot nearest to ``at``; exact half-way points round up."""
    offset_ms = at - start
    return (2 * offset_ms + interval_duration_ms) // (2 * interval_duration_ms)


def slot_instant(start: Instant, index: int, interval_duration_ms: int) -> Instant:
    return start + index * interval_duration_ms


def _add_placement(placements: PlacementIndex, value: Any, at: Instant) -> None:
    def append(dates: Any) -> list[Instant]:
        dates = dates or []
        dates.append(at)
        return dates

    placements.update_with(value, append)


def build_placement_index(overrides: Iterable[tuple[Instant, V]]) -> StructuralMap[V, list[Instant]]:
    """Value -> instants for every override, in input order, without dedup."""
    placements: StructuralMap[V, list[Instant]] = StructuralMap()
    for at, value in overrides:
        _add_placement(placements, value, at)
    return placements


def is_valid_placement(
    candidate: Any,
    at: Instant,
    placements: PlacementIndex,
    allow_reruns_after_ms: int,
) -> bool:
    """
    Whether ``candidate`` may air at ``at`` given its recorded placements.

    Valid iff every recorded placement, past or future, is strictly more than
    ``allow_reruns_after_ms`` away from ``at``.
    """
    recorded = placements.get(candidate)
    if not recorded:
        return True
    return all(abs(placed - at) > allow_reruns_after_ms for placed in recorded)


def _rejection(candidate: Any, at: Instant, placements: PlacementIndex) -> str:
    closest = min(placements.get(candidate) or [], key=lambda placed: abs(placed - at))
    return f"{candidate!r}: placed at {closest} ({abs(closest - at)}ms away)"


def plan_schedule(params: SchedulingParameters[V]) -> SchedulePlan[V]:
    """
    Fill every slot and report how overrides were applied.

    Raises:
        UnsatisfiableScheduleError: If some empty slot has no valid candidate
    """
    log = get_logger(__name__)
    values = params.values
    slots: list[Any] = [ABSENT] * params.intervals
    placements = build_placement_index(params.overrides)

    locked: dict[int, tuple[Instant, V]] = {}
    shadowed: list[tuple[Instant, V]] = []
    ignored: list[tuple[Instant, V]] = []
    for at, value in params.overrides:
        index = slot_index_for(at, params.start, params.interval_duration_ms)
        if not 0 <= index < params.intervals:
            ignored.append((at, value))
            log.debug("override_out_of_range", at=str(at), slot_index=index)
            continue
        if index in locked:
            earlier_at, earlier_value = locked[index]
            shadowed.append((earlier_at, earlier_value))
            log.warning(
                "override_shadowed",
                slot_index=index,
                shadowed_at=str(earlier_at),
                shadowed_value=repr(earlier_value),
                at=str(at),
                value=repr(value),
            )
        locked[index] = (at, value)
        slots[index] = value

    cur_index = 0
    for index in range(params.intervals):
        if slots[index] is not ABSENT:
            continue
        at = slot_instant(params.start, index, params.interval_duration_ms)

        chosen: int | None = None
        for step in range(1, len(values)):
            candidate_index = (cur_index + step) % len(values)
            if is_valid_placement(
                values[candidate_index], at, placements, params.allow_reruns_after_ms
            ):
                chosen = candidate_index
                break

        if chosen is None:
            rejections = [
                _rejection(values[(cur_index + step) % len(values)], at, placements)
                for step in range(1, len(values))
            ]
            log.warning("schedule_unsatisfiable", slot_index=index, at=str(at))
            raise UnsatisfiableScheduleError(slot_index=index, at=at, violations=rejections)

        slots[index] = values[chosen]
        _add_placement(placements, values[chosen], at)
        cur_index = chosen

    schedule: StructuralMap[Instant, V] = StructuralMap(
        (slot_instant(params.start, index, params.interval_duration_ms), value)
        for index, value in enumerate(slots)
    )
    log.debug(
        "schedule_planned",
        start=str(params.start),
        intervals=params.intervals,
        overrides=len(params.overrides),
        shadowed=len(shadowed),
        ignored=len(ignored),
    )
    return SchedulePlan(
        schedule=schedule,
        placements=placements,
        shadowed_overrides=tuple(shadowed),
        ignored_overrides=tuple(ignored),
    )


def create_schedule(params: SchedulingParameters[V]) -> StructuralMap[Instant, V]:
    """
    Create a schedule for the given parameters.

    Overrides inside the range appear in the result at their rounded slot.
    Overrides may themselves violate the rerun threshold; they are kept as
    given and only generated placements are checked.

    Returns:
        Slot instant -> value for every slot, in chronological order

    Raises:
        UnsatisfiableScheduleError: If the schedule cannot be completed
    """
    return plan_schedule(params).schedule
