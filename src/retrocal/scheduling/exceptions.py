"""
Scheduling exceptions.

This module defines the errors raised while generating a schedule and when
the schedule audit detects violations.
"""

from __future__ import annotations

from typing import Any

from retrocal.infra.exceptions import RetroCalError

UNSATISFIABLE_MESSAGE = "Cannot compute a valid schedule with the given parameters and values"


class ScheduleError(RetroCalError):
    """Base exception for all scheduling errors."""

    def __init__(self, message: str, violations: list[str] | None = None):
        """
        Initialize a scheduling error.

        Args:
            message: Human-readable error message
            violations: List of specific violation descriptions
        """
        super().__init__(message)
        self.message = message
        self.violations = violations or []

    def __str__(self) -> str:
        """Return formatted error message with violations."""
        if self.violations:
            violations_text = "\n  - ".join(self.violations)
            return f"{self.message}\nViolations:\n  - {violations_text}"
        return self.message


class UnsatisfiableScheduleError(ScheduleError):
    """Raised when no value in the rotation can be placed in some slot."""

    def __init__(
        self,
        message: str = UNSATISFIABLE_MESSAGE,
        slot_index: int | None = None,
        at: Any = None,
        violations: list[str] | None = None,
    ):
        """
        Initialize an unsatisfiable schedule error.

        Args:
            message: Human-readable error message
            slot_index: Index of the first slot that could not be filled
            at: Instant of that slot
            violations: Per-candidate reasons the slot could not be filled
        """
        super().__init__(message, violations)
        self.slot_index = slot_index
        self.at = at


class ScheduleValidationError(ScheduleError):
    """Raised when a generated schedule fails the audit."""

    pass
