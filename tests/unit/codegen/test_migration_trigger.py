"""
forgekit — unit tests for the migration trigger

File: tests/unit/codegen/test_migration_trigger.py

Purpose
- Validate step ordering, failure wrapping and stop-on-first-failure behavior.
"""

from __future__ import annotations

from pathlib import Path

import pytest

from forgekit.codegen.migrate import (
    DEFAULT_ENTITIES_COMMAND,
    DEFAULT_MIGRATE_COMMAND,
    MigrationError,
    MigrationTrigger,
)
from forgekit.process import CommandError


def test_runs_migrate_then_entities_in_project_dir(tmp_path: Path, recording_runner) -> None:
    runner = recording_runner(lambda argv, cwd: (0, f"ran {argv[-1]}\n"))
    trigger = MigrationTrigger(runner=runner)

    output = trigger.run(tmp_path)

    assert runner.commands == [DEFAULT_MIGRATE_COMMAND, DEFAULT_ENTITIES_COMMAND]
    assert all(cwd == tmp_path for _command, cwd in runner.calls)
    assert output == "ran migrate\nran entities\n"


def test_failed_migration_stops_before_entities(tmp_path: Path, recording_runner) -> None:
    runner = recording_runner(lambda argv, cwd: (1, "error: no database\n"))
    trigger = MigrationTrigger(runner=runner)

    with pytest.raises(MigrationError) as excinfo:
        trigger.run(tmp_path)

    assert excinfo.value.step == "db migration"
    assert str(excinfo.value).startswith("failed to run db migration. error details:")
    assert "no database" in str(excinfo.value)
    assert runner.commands == [DEFAULT_MIGRATE_COMMAND]


def test_failed_entities_step_is_named(tmp_path: Path, recording_runner) -> None:
    runner = recording_runner(lambda argv, cwd: (2, "boom") if argv[-1] == "entities" else (0, ""))
    trigger = MigrationTrigger(runner=runner)

    with pytest.raises(MigrationError, match="failed to run db entities"):
        trigger.run(tmp_path)
    assert len(runner.calls) == 2


def test_runner_error_is_wrapped(tmp_path: Path) -> None:
    class MissingToolRunner:
        def run(self, command, *, cwd, env=None, timeout_seconds=None):  # noqa: ANN001
            raise CommandError("unable to start command cargo", command=command)

    trigger = MigrationTrigger(runner=MissingToolRunner(), migrate_command=("cargo", "migrate"))

    with pytest.raises(MigrationError) as excinfo:
        trigger.run(tmp_path)
    assert isinstance(excinfo.value.__cause__, CommandError)
    assert "unable to start command" in excinfo.value.details
