"""
forgekit — shared test fixtures

File: tests/conftest.py

Purpose
- Provide an offline command runner that records invocations and returns scripted
  results, so no test ever shells out to real build tooling.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from pathlib import Path

import pytest

from forgekit.process import CommandResult

Responder = Callable[[tuple[str, ...], Path], "tuple[int, str]"]


class RecordingRunner:
    """``CommandRunner`` double: records ``(command, cwd)`` and answers via ``responder``."""

    def __init__(self, responder: Responder | None = None) -> None:
        self.calls: list[tuple[tuple[str, ...], Path]] = []
        self._responder = responder

    def run(
        self,
        command: Sequence[str],
        *,
        cwd: Path,
        env: object = None,
        timeout_seconds: float | None = None,
    ) -> CommandResult:
        argv = tuple(command)
        self.calls.append((argv, Path(cwd)))
        returncode, output = (0, "") if self._responder is None else self._responder(argv, Path(cwd))
        return CommandResult(command=argv, cwd=Path(cwd), returncode=returncode, output=output)

    @property
    def commands(self) -> list[tuple[str, ...]]:
        return [command for command, _cwd in self.calls]


@pytest.fixture
def recording_runner() -> type[RecordingRunner]:
    return RecordingRunner
