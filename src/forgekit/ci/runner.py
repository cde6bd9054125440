"""
forgekit — CI orchestration across workspace resources.

File: src/forgekit/ci/runner.py

Purpose
- Run the configured CI steps (format check, lint, tests) in each resource of the
  workspace and collect one immutable result per resource.

Functional requirements
- Steps run in order inside a resource; the first failing step fails the resource and
  its combined output becomes the diagnostic. Later steps of that resource are skipped.
- A failing resource never stops the batch; every resource gets a result.
- Results are returned in resource order regardless of ``max_workers``.
"""

from __future__ import annotations

import time
from collections.abc import Mapping, Sequence
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from enum import StrEnum
from pathlib import Path

import structlog

from forgekit.process import CommandError, CommandRunner, SubprocessCommandRunner

logger = structlog.get_logger(__name__)

DEFAULT_RESOURCE_DIRS: tuple[str, ...] = ("starters", "examples")
DEFAULT_MANIFEST_NAME = "Cargo.toml"


class Outcome(StrEnum):
    PASS = "pass"
    FAIL = "fail"


@dataclass(frozen=True, slots=True)
class CiStep:
    name: str
    command: tuple[str, ...]

    @classmethod
    def from_mapping(cls, payload: Mapping[str, object]) -> CiStep:
        name = payload.get("name")
        command = payload.get("command")
        if not isinstance(name, str) or not isinstance(command, (list, tuple)):
            raise ValueError("ci step requires a name and a command list")
        return cls(name=name, command=tuple(str(item) for item in command))


DEFAULT_STEPS: tuple[CiStep, ...] = (
    CiStep("fmt", ("cargo", "fmt", "--all", "--", "--check")),
    CiStep(
        "clippy",
        (
            "cargo",
            "clippy",
            "--all-features",
            "--",
            "-D",
            "warnings",
            "-W",
            "clippy::pedantic",
            "-W",
            "clippy::nursery",
        ),
    ),
    CiStep("test", ("cargo", "test", "--all-features", "--all")),
)


@dataclass(frozen=True, slots=True)
class ResourceResult:
    """Outcome of all CI steps for one resource directory."""

    resource: Path
    outcome: Outcome
    diagnostic: str = ""
    duration_ms: float = 0.0
    failed_step: str | None = None

    @property
    def passed(self) -> bool:
        return self.outcome is Outcome.PASS


class CiOrchestrator:
    def __init__(
        self,
        *,
        runner: CommandRunner | None = None,
        steps: Sequence[CiStep] = DEFAULT_STEPS,
        resource_dirs: Sequence[str] = DEFAULT_RESOURCE_DIRS,
        manifest_name: str = DEFAULT_MANIFEST_NAME,
        max_workers: int = 1,
        timeout_seconds: float | None = None,
    ) -> None:
        if max_workers < 1:
            raise ValueError("max_workers must be >= 1")
        if not steps:
            raise ValueError("at least one CI step is required")
        self._runner = runner if runner is not None else SubprocessCommandRunner()
        self._steps = tuple(steps)
        self._resource_dirs = tuple(resource_dirs)
        self._manifest_name = manifest_name
        self._max_workers = max_workers
        self._timeout_seconds = timeout_seconds

    def run(self, directory: Path) -> ResourceResult:
        """Run every step in ``directory`` and report the first failure."""

        resource = Path(directory)
        started = time.perf_counter()
        logger.info("ci_resource_started", resource=str(resource))
        for step in self._steps:
            try:
                result = self._runner.run(
                    step.command, cwd=resource, timeout_seconds=self._timeout_seconds
                )
            except CommandError as exc:
                diagnostic = f"{exc}\n{exc.output}" if exc.output else str(exc)
                return self._finish(resource, started, Outcome.FAIL, diagnostic, step.name)
            if not result.succeeded:
                return self._finish(resource, started, Outcome.FAIL, result.output, step.name)
        return self._finish(resource, started, Outcome.PASS, "", None)

    def discover_resources(self, root: Path) -> list[Path]:
        """Workspace root first, then manifest-bearing subdirectories in sorted order."""

        workspace_root = Path(root)
        found: list[Path] = []
        for name in self._resource_dirs:
            base = workspace_root / name
            if not base.is_dir():
                continue
            for directory in base.iterdir():
                if directory.is_dir() and (directory / self._manifest_name).is_file():
                    found.append(directory)
        return [workspace_root, *sorted(found)]

    def all_resources(self, root: Path) -> list[ResourceResult]:
        resources = self.discover_resources(root)
        if self._max_workers == 1 or len(resources) == 1:
            return [self.run(resource) for resource in resources]
        with ThreadPoolExecutor(max_workers=self._max_workers) as pool:
            return list(pool.map(self.run, resources))

    def _finish(
        self,
        resource: Path,
        started: float,
        outcome: Outcome,
        diagnostic: str,
        failed_step: str | None,
    ) -> ResourceResult:
        duration_ms = (time.perf_counter() - started) * 1000.0
        logger.info(
            "ci_resource_finished",
            resource=str(resource),
            outcome=outcome.value,
            failed_step=failed_step,
            duration_ms=round(duration_ms, 3),
        )
        return ResourceResult(
            resource=resource,
            outcome=outcome,
            diagnostic=diagnostic,
            duration_ms=duration_ms,
            failed_step=failed_step,
        )


def run(directory: Path, *, runner: CommandRunner | None = None) -> ResourceResult:
    """Run the default CI steps in a single directory."""

    return CiOrchestrator(runner=runner).run(directory)


def all_resources(root: Path, *, runner: CommandRunner | None = None) -> list[ResourceResult]:
    """Run the default CI steps in the workspace root and every discovered resource."""

    return CiOrchestrator(runner=runner).all_resources(root)


__all__ = [
    "CiOrchestrator",
    "CiStep",
    "DEFAULT_RESOURCE_DIRS",
    "DEFAULT_STEPS",
    "Outcome",
    "ResourceResult",
    "all_resources",
    "run",
]
