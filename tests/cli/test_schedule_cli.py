"""
Tests for the `retrocal schedule` command group.

Covers JSON and text output of `generate`, failure exit codes for
unsatisfiable and invalid schedules, and the `check` predicate command.
"""

from __future__ import annotations

import json

from util.cli_utils import run_cli

PREDICTABLE_OVERRIDES = [
    "-o", "2020-01-01=A",
    "-o", "2020-01-02=B",
    "-o", "2020-01-04=C",
    "-o", "2020-01-05=D",
    "-o", "2020-01-07=F",
    "-o", "2020-01-08=G",
    "-o", "2020-01-09=H",
]  # fmt: skip


def _generate(*args: str) -> tuple[int, str, str]:
    return run_cli(["schedule", "generate", "A", "B", "C", "D", "E", "F", "G", "H", *args])


class TestGenerate:
    def test_json_output_follows_overrides(self):
        exit_code, stdout, _ = _generate(
            "--start", "2020-01-01",
            "-n", "10",
            "--reruns-after-days", "2",
            *PREDICTABLE_OVERRIDES,
            "--json",
        )  # fmt: skip
        assert exit_code == 0
        payload = json.loads(stdout)
        assert payload["status"] == "ok"
        assert len(payload["schedule"]) == 10
        assert payload["schedule"][2] == {"at": "2020-01-03T00:00:00.000Z", "value": "E"}
        assert payload["schedule"][5]["value"] == "H"
        assert payload["schedule"][9]["value"] == "A"
        assert payload["shadowed_overrides"] == []
        assert payload["ignored_overrides"] == []

    def test_text_output_one_line_per_slot(self):
        exit_code, stdout, _ = _generate(
            "--start", "2020-01-01", "-n", "3", "--interval-hours", "24"
        )
        assert exit_code == 0
        lines = stdout.strip().splitlines()
        assert lines[:3] == [
            "2020-01-01T00:00:00.000Z  B",
            "2020-01-02T00:00:00.000Z  C",
            "2020-01-03T00:00:00.000Z  D",
        ]

    def test_ignored_override_reported(self):
        exit_code, stdout, _ = _generate(
            "--start", "2020-01-01", "-n", "3", "-o", "2019-12-01=A", "--json"
        )
        assert exit_code == 0
        payload = json.loads(stdout)
        assert payload["ignored_overrides"] == [{"at": "2019-12-01T00:00:00.000Z", "value": "A"}]

    def test_validate_flags_rerunning_overrides(self):
        exit_code, stdout, _ = _generate(
            "--start", "2020-01-01",
            "-n", "30",
            "--reruns-after-days", "2",
            "-o", "2020-01-15=A",
            "-o", "2020-01-16=A",
            "--validate",
            "--json",
        )  # fmt: skip
        assert exit_code == 1
        payload = json.loads(stdout)
        assert payload["status"] == "invalid"
        assert any("'A': seen on" in line for line in payload["violations"])

    def test_validate_passes_clean_schedule(self):
        exit_code, stdout, _ = _generate("--start", "2020-01-01", "-n", "14", "--validate", "--json")
        assert exit_code == 0
        payload = json.loads(stdout)
        assert payload["status"] == "ok"
        assert payload["violations"] == []

    def test_unsatisfiable_exits_with_error(self):
        exit_code, _, output = run_cli(
            [
                "schedule", "generate", "A", "B",
                "--start", "2020-01-01",
                "-n", "3",
                "--reruns-after-days", "10",
                "--json",
            ]
        )  # fmt: skip
        assert exit_code == 1
        assert '"status": "error"' in output
        assert '"slot_index": 2' in output

    def test_invalid_parameters_exit_with_error(self):
        exit_code, _, output = _generate("--start", "2020-01-01", "-n", "0")
        assert exit_code == 1
        assert "intervals must be positive" in output

    def test_malformed_override_rejected(self):
        exit_code, _, output = _generate("--start", "2020-01-01", "-o", "2020-01-05")
        assert exit_code == 1
        assert "DATE=VALUE" in output

    def test_malformed_start_rejected(self):
        exit_code, _, output = _generate("--start", "yesterday")
        assert exit_code == 1
        assert "--start" in output

    def test_conflicting_duration_options_rejected(self):
        exit_code, _, output = _generate(
            "--start", "2020-01-01", "--interval-ms", "1000", "--interval-hours", "1"
        )
        assert exit_code == 1
        assert "not both" in output


class TestCheck:
    def test_valid_placement_exits_zero(self):
        exit_code, stdout, _ = run_cli(
            ["schedule", "check", "A", "--at", "2020-01-04", "-p", "2020-01-01", "--reruns-after-days", "2"]
        )
        assert exit_code == 0
        assert "A at 2020-01-04T00:00:00.000Z: valid" in stdout

    def test_rerun_exits_one(self):
        exit_code, stdout, _ = run_cli(
            ["schedule", "check", "A", "--at", "2020-01-03", "-p", "2020-01-01", "--reruns-after-days", "2"]
        )
        assert exit_code == 1
        assert "A at 2020-01-03T00:00:00.000Z: rerun" in stdout

    def test_future_placement_counts(self):
        exit_code, _, _ = run_cli(
            ["schedule", "check", "A", "--at", "2020-01-03", "-p", "2020-01-04", "--reruns-after-ms", "0"]
        )
        assert exit_code == 0

    def test_json_output(self):
        exit_code, stdout, _ = run_cli(
            ["schedule", "check", "A", "--at", "2020-01-02", "-p", "2020-01-01", "--json"]
        )
        assert exit_code == 1
        payload = json.loads(stdout)
        assert payload["valid"] is False
        assert payload["at"] == "2020-01-02T00:00:00.000Z"

    def test_no_placements_is_valid(self):
        exit_code, _, _ = run_cli(["schedule", "check", "A", "--at", "2020-01-02"])
        assert exit_code == 0
