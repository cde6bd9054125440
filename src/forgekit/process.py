"""Blocking external-command execution behind an injectable runner interface."""

from __future__ import annotations

import os
import subprocess
import time
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Protocol

import structlog

if TYPE_CHECKING:
    from collections.abc import Mapping, Sequence

logger = structlog.get_logger(__name__)


class CommandError(RuntimeError):
    """Raised when an external command cannot be started or runs past its deadline."""

    def __init__(self, message: str, *, command: Sequence[str], output: str = "") -> None:
        self.command = tuple(command)
        self.output = output
        super().__init__(message)


class CommandTimeoutError(CommandError):
    """Raised when an external command exceeds its caller-supplied timeout."""


@dataclass(frozen=True, slots=True)
class CommandResult:
    """Normalized result of one blocking command with stderr merged into ``output``."""

    command: tuple[str, ...]
    cwd: Path
    returncode: int
    output: str
    duration_ms: float = 0.0

    @property
    def succeeded(self) -> bool:
        return self.returncode == 0

    def first_line(self) -> str:
        """First non-blank output line, used for one-line diagnostics."""

        for line in self.output.splitlines():
            if line.strip():
                return line.strip()
        return f"exit status {self.returncode}"


class CommandRunner(Protocol):
    """Injectable command runner used for deterministic/offline testing."""

    def run(
        self,
        command: Sequence[str],
        *,
        cwd: Path,
        env: Mapping[str, str] | None = None,
        timeout_seconds: float | None = None,
    ) -> CommandResult: ...


class SubprocessCommandRunner:
    """Default command runner backed by ``subprocess.run``.

    Commands inherit the full host environment; ``env`` entries are layered on top.
    Non-zero exit codes are returned, not raised, so callers decide how a failed
    step is reported.
    """

    def __init__(self, *, env_overrides: Mapping[str, str] | None = None) -> None:
        self._env_overrides = dict(env_overrides or {})

    def run(
        self,
        command: Sequence[str],
        *,
        cwd: Path,
        env: Mapping[str, str] | None = None,
        timeout_seconds: float | None = None,
    ) -> CommandResult:
        argv = _normalize_command(command)
        resolved_cwd = Path(cwd).resolve(strict=True)
        if not resolved_cwd.is_dir():
            raise NotADirectoryError(f"{resolved_cwd!s} is not a directory")
        if timeout_seconds is not None and timeout_seconds <= 0:
            raise ValueError("timeout_seconds must be > 0")

        run_env = dict(os.environ)
        run_env.update(self._env_overrides)
        run_env.update(env or {})

        logger.debug("command_started", command=list(argv), cwd=str(resolved_cwd))
        started = time.perf_counter()
        try:
            completed = subprocess.run(
                list(argv),
                cwd=resolved_cwd,
                check=False,
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                text=True,
                timeout=timeout_seconds,
                env=run_env,
            )
        except subprocess.TimeoutExpired as exc:
            raise CommandTimeoutError(
                f"command timed out after {timeout_seconds} seconds: {' '.join(argv)}",
                command=argv,
                output=_coerce_timeout_stream(exc.stdout),
            ) from exc
        except OSError as exc:
            raise CommandError(
                f"unable to start command {' '.join(argv)}: {exc}", command=argv
            ) from exc

        duration_ms = (time.perf_counter() - started) * 1000.0
        logger.debug(
            "command_finished",
            command=list(argv),
            returncode=completed.returncode,
            duration_ms=round(duration_ms, 3),
        )
        return CommandResult(
            command=argv,
            cwd=resolved_cwd,
            returncode=completed.returncode,
            output=completed.stdout or "",
            duration_ms=duration_ms,
        )


def _normalize_command(command: Sequence[str]) -> tuple[str, ...]:
    if isinstance(command, str):
        raise TypeError("command must be a sequence of arguments, not a string")
    argv = tuple(command)
    if not argv:
        raise ValueError("command must not be empty")
    for item in argv:
        if not isinstance(item, str):
            raise TypeError("command arguments must be strings")
    return argv


def _coerce_timeout_stream(value: str | bytes | None) -> str:
    if value is None:
        return ""
    if isinstance(value, bytes):
        return value.decode("utf-8", errors="replace")
    return value


__all__ = [
    "CommandError",
    "CommandResult",
    "CommandRunner",
    "CommandTimeoutError",
    "SubprocessCommandRunner",
]
