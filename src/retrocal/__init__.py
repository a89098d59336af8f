"""
RetroCal: a rerun-avoiding content calendar.

Assigns a fixed rotation of values to equally spaced time slots, keeping
fixed overrides in place and never airing a value twice within the
configured rerun window.
"""

from retrocal.scheduling import (
    SchedulePlan,
    SchedulingParameters,
    UnsatisfiableScheduleError,
    create_schedule,
    is_valid_placement,
    plan_schedule,
    scheduling_parameters,
)
from retrocal.shared import ABSENT, Instant, StructuralMap, fingerprint

__all__ = [
    "ABSENT",
    "Instant",
    "SchedulePlan",
    "SchedulingParameters",
    "StructuralMap",
    "UnsatisfiableScheduleError",
    "create_schedule",
    "fingerprint",
    "is_valid_placement",
    "plan_schedule",
    "scheduling_parameters",
]
