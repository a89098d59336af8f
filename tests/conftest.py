"""
Test configuration and fixtures for RetroCal.
"""

from __future__ import annotations

import pytest

from retrocal.shared.instant import Instant


@pytest.fixture
def rotation() -> list[str]:
    """Eight-value rotation used across the scheduler tests."""
    return ["A", "B", "C", "D", "E", "F", "G", "H"]


@pytest.fixture
def new_year() -> Instant:
    return Instant.parse("2020-01-01")
