"""
forgekit — fuzzy scenario runner.

File: src/forgekit/fuzzy/runner.py

Purpose
- Drive one randomized end-to-end scenario (fresh project generation, optionally
  followed by resource scaffolding) inside a scratch directory and report the outcome.

Functional requirements
- All decisions are drawn before the first command runs, so a failing run can be
  replayed from its seed.
- Each run works in a fresh subdirectory of the scratch base, removed on every exit
  path. Removal failures are logged and never replace the scenario's own result.
- Step failures are captured in the returned ``ScenarioResult``; they are not retried.
"""

from __future__ import annotations

import tempfile
from collections.abc import Sequence
from dataclasses import dataclass, field
from enum import StrEnum
from pathlib import Path

import structlog

from forgekit.fuzzy.randomizer import Randomizer
from forgekit.fuzzy.steps import (
    ProjectChoices,
    ResourceChoices,
    ScenarioStepError,
    draw_project_choices,
    draw_scaffold_choices,
)
from forgekit.process import CommandError, CommandRunner, SubprocessCommandRunner
from forgekit.utils.fs import scratch_directory

logger = structlog.get_logger(__name__)

DEFAULT_NEW_COMMAND: tuple[str, ...] = ("loco", "new")
DEFAULT_GENERATE_COMMAND: tuple[str, ...] = ("cargo", "loco", "generate")
DEFAULT_VERIFY_COMMAND: tuple[str, ...] = ("cargo", "test")


class Scenario(StrEnum):
    GENERATE_TEMPLATE = "generate-template"
    SCAFFOLD = "scaffold"


@dataclass(frozen=True, slots=True)
class StepRecord:
    name: str
    command: tuple[str, ...]
    returncode: int
    duration_ms: float


@dataclass(frozen=True, slots=True)
class ScenarioPlan:
    """Every randomized decision of one scenario run."""

    scenario: Scenario
    seed: int
    project: ProjectChoices
    resources: tuple[ResourceChoices, ...] = ()


@dataclass(frozen=True, slots=True)
class ScenarioResult:
    scenario: Scenario
    seed: int
    succeeded: bool
    steps: tuple[StepRecord, ...] = ()
    error: ScenarioStepError | None = field(default=None, compare=False)


def default_scratch_dir() -> Path:
    return Path(tempfile.gettempdir()) / "forgekit-fuzzy"


def plan_scenario(
    scenario: Scenario, randomizer: Randomizer, *, max_resources: int = 3
) -> ScenarioPlan:
    project = draw_project_choices(randomizer)
    resources: tuple[ResourceChoices, ...] = ()
    if scenario is Scenario.SCAFFOLD:
        resources = draw_scaffold_choices(randomizer, max_resources=max_resources)
    return ScenarioPlan(
        scenario=scenario, seed=randomizer.seed, project=project, resources=resources
    )


class FuzzyRunner:
    def __init__(
        self,
        *,
        runner: CommandRunner | None = None,
        new_command: Sequence[str] = DEFAULT_NEW_COMMAND,
        generate_command: Sequence[str] = DEFAULT_GENERATE_COMMAND,
        verify_command: Sequence[str] = DEFAULT_VERIFY_COMMAND,
        max_resources: int = 3,
        timeout_seconds: float | None = None,
    ) -> None:
        self._runner = runner if runner is not None else SubprocessCommandRunner()
        self._new_command = tuple(new_command)
        self._generate_command = tuple(generate_command)
        self._verify_command = tuple(verify_command)
        self._max_resources = max_resources
        self._timeout_seconds = timeout_seconds

    def run_scenario(
        self,
        scenario: Scenario,
        randomizer: Randomizer,
        scratch_dir: Path | None = None,
    ) -> ScenarioResult:
        plan = plan_scenario(scenario, randomizer, max_resources=self._max_resources)
        scratch = Path(scratch_dir) if scratch_dir is not None else default_scratch_dir()
        logger.info(
            "fuzzy_scenario_started",
            scenario=scenario.value,
            seed=plan.seed,
            scratch_dir=str(scratch),
            project=plan.project.name,
            template=plan.project.template,
            db=plan.project.db,
            bg=plan.project.bg,
            assets=plan.project.assets,
            resources=[resource.name for resource in plan.resources],
        )

        steps: list[StepRecord] = []
        error: ScenarioStepError | None = None
        with scratch_directory(scratch, prefix=f"{scenario.value}-{plan.seed}-") as workdir:
            try:
                self._execute(plan, workdir, steps)
            except ScenarioStepError as exc:
                error = exc

        result = ScenarioResult(
            scenario=scenario,
            seed=plan.seed,
            succeeded=error is None,
            steps=tuple(steps),
            error=error,
        )
        if error is None:
            logger.info("fuzzy_scenario_finished", scenario=scenario.value, seed=plan.seed)
        else:
            logger.error(
                "fuzzy_scenario_failed",
                scenario=scenario.value,
                seed=plan.seed,
                step=error.step,
            )
        return result

    def _execute(self, plan: ScenarioPlan, workdir: Path, steps: list[StepRecord]) -> None:
        project = plan.project
        self._step(
            "generate project", project.new_argv(self._new_command, workdir), workdir, steps
        )
        project_dir = workdir / project.name
        if not project_dir.is_dir():
            raise ScenarioStepError(
                "generate project", f"project directory was not created: {project_dir}"
            )

        for resource in plan.resources:
            self._step(
                f"scaffold {resource.name}",
                resource.scaffold_argv(self._generate_command),
                project_dir,
                steps,
            )

        if self._verify_command:
            self._step("verify", self._verify_command, project_dir, steps)

    def _step(
        self, name: str, command: Sequence[str], cwd: Path, steps: list[StepRecord]
    ) -> None:
        logger.info("fuzzy_step_started", step=name, command=list(command))
        try:
            result = self._runner.run(command, cwd=cwd, timeout_seconds=self._timeout_seconds)
        except CommandError as exc:
            raise ScenarioStepError(name, str(exc)) from exc
        steps.append(
            StepRecord(
                name=name,
                command=tuple(command),
                returncode=result.returncode,
                duration_ms=result.duration_ms,
            )
        )
        if not result.succeeded:
            raise ScenarioStepError(name, f"exit status {result.returncode}\n{result.output}")


def run_scenario(
    scenario: Scenario,
    randomizer: Randomizer,
    scratch_dir: Path | None = None,
    *,
    runner: CommandRunner | None = None,
) -> ScenarioResult:
    return FuzzyRunner(runner=runner).run_scenario(scenario, randomizer, scratch_dir)


__all__ = [
    "DEFAULT_GENERATE_COMMAND",
    "DEFAULT_NEW_COMMAND",
    "DEFAULT_VERIFY_COMMAND",
    "FuzzyRunner",
    "Scenario",
    "ScenarioPlan",
    "ScenarioResult",
    "StepRecord",
    "default_scratch_dir",
    "plan_scenario",
    "run_scenario",
]
