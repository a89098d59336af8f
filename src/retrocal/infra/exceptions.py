"""
Custom exceptions for RetroCal operations.

This module provides the base exception classes shared by the structural
key layer and the scheduler.
"""


class RetroCalError(Exception):
    """Base exception for all RetroCal errors."""

    pass


class ValidationError(RetroCalError, ValueError):
    """Raised when scheduling parameters fail validation."""

    pass


class KeyShapeError(RetroCalError, TypeError):
    """Raised when a value cannot be used as a structural map key."""

    pass
