"""
Tests for CLI command group registration.
"""

from __future__ import annotations

import pytest
import typer

from retrocal.cli.router import CliRouter
from util.cli_utils import run_cli


class TestCliRouter:
    def test_registers_groups_in_order(self):
        router = CliRouter(typer.Typer())
        router.register("schedule", typer.Typer(), help_text="Schedules")
        router.register("audit", typer.Typer())
        assert router.list_registered_groups() == ["schedule", "audit"]

    def test_duplicate_group_rejected(self):
        router = CliRouter(typer.Typer())
        router.register("schedule", typer.Typer())
        with pytest.raises(ValueError, match="already registered"):
            router.register("schedule", typer.Typer())

    def test_main_app_exposes_schedule_group(self):
        exit_code, stdout, _ = run_cli(["schedule", "--help"])
        assert exit_code == 0
        assert "generate" in stdout
        assert "check" in stdout
