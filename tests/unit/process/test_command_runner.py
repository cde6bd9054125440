"""
forgekit — unit tests for the subprocess command runner

File: tests/unit/process/test_command_runner.py

Purpose
- Validate output capture with merged stderr, environment layering, timeouts and
  missing executables. Uses the running interpreter as a portable child process.
"""

from __future__ import annotations

import sys
from pathlib import Path

import pytest

from forgekit.process import CommandError, CommandTimeoutError, SubprocessCommandRunner


def test_captures_stdout_and_stderr_in_one_stream(tmp_path: Path) -> None:
    runner = SubprocessCommandRunner()
    script = "import sys; print('out'); sys.stdout.flush(); print('err', file=sys.stderr); sys.exit(3)"

    result = runner.run([sys.executable, "-c", script], cwd=tmp_path)

    assert result.returncode == 3
    assert result.succeeded is False
    assert "out" in result.output
    assert "err" in result.output
    assert result.first_line() == "out"
    assert result.cwd == tmp_path.resolve()


def test_env_overrides_are_layered_on_inherited_env(tmp_path: Path, monkeypatch) -> None:
    monkeypatch.setenv("FORGEKIT_INHERITED", "from-host")
    runner = SubprocessCommandRunner(env_overrides={"FORGEKIT_OVERRIDE": "layer"})
    script = (
        "import os; print(os.environ['FORGEKIT_INHERITED'], os.environ['FORGEKIT_OVERRIDE'],"
        " os.environ['FORGEKIT_CALL'])"
    )

    result = runner.run([sys.executable, "-c", script], cwd=tmp_path, env={"FORGEKIT_CALL": "call"})

    assert result.output.strip() == "from-host layer call"


def test_timeout_raises_command_timeout_error(tmp_path: Path) -> None:
    runner = SubprocessCommandRunner()

    with pytest.raises(CommandTimeoutError, match="timed out"):
        runner.run([sys.executable, "-c", "import time; time.sleep(5)"], cwd=tmp_path, timeout_seconds=0.2)


def test_missing_executable_raises_command_error(tmp_path: Path) -> None:
    runner = SubprocessCommandRunner()

    with pytest.raises(CommandError, match="unable to start command"):
        runner.run(["forgekit-definitely-not-installed"], cwd=tmp_path)


def test_rejects_string_commands(tmp_path: Path) -> None:
    with pytest.raises(TypeError):
        SubprocessCommandRunner().run("cargo test", cwd=tmp_path)  # type: ignore[arg-type]
