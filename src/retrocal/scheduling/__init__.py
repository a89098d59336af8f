"""
Scheduling: slot filling and schedule audit.

This package provides:
- create_schedule / plan_schedule
- is_valid_placement
- audit_schedule / validate_schedule
"""

from .audit import ScheduleAudit, audit_schedule, validate_schedule
from .exceptions import (
    ScheduleError,
    ScheduleValidationError,
    UnsatisfiableScheduleError,
)
from .scheduler import (
    SchedulePlan,
    SchedulingParameters,
    build_placement_index,
    create_schedule,
    is_valid_placement,
    plan_schedule,
    schedule_overrides,
    scheduling_parameters,
    slot_index_for,
    slot_instant,
)

__all__ = [
    # Scheduling
    "SchedulingParameters",
    "SchedulePlan",
    "create_schedule",
    "plan_schedule",
    "is_valid_placement",
    "build_placement_index",
    "schedule_overrides",
    "scheduling_parameters",
    "slot_index_for",
    "slot_instant",
    # Audit
    "ScheduleAudit",
    "audit_schedule",
    "validate_schedule",
    # Exceptions
    "ScheduleError",
    "ScheduleValidationError",
    "UnsatisfiableScheduleError",
]
