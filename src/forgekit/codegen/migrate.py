"""Post-generation schema migration: apply migrations, then regenerate entity bindings.

The two steps are not transactional with the artifacts already written by the
renderer. When a step fails the generated files stay on disk and the database may
not match them; the operator fixes the cause and re-runs the migration by hand.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING

import structlog

from forgekit.process import CommandError, CommandRunner, SubprocessCommandRunner

if TYPE_CHECKING:
    from collections.abc import Sequence

logger = structlog.get_logger(__name__)

DEFAULT_MIGRATE_COMMAND: tuple[str, ...] = ("cargo", "loco-tool", "db", "migrate")
DEFAULT_ENTITIES_COMMAND: tuple[str, ...] = ("cargo", "loco-tool", "db", "entities")


class MigrationError(RuntimeError):
    """Raised when one migration step exits non-zero or cannot run."""

    def __init__(self, step: str, details: str) -> None:
        self.step = step
        self.details = details
        super().__init__(f"failed to run {step}. error details: `{details.strip()}`")


@dataclass(frozen=True, slots=True)
class MigrationStep:
    name: str
    command: tuple[str, ...]


class MigrationTrigger:
    """Run the migrate and entity-regeneration commands in a project directory."""

    def __init__(
        self,
        *,
        runner: CommandRunner | None = None,
        migrate_command: Sequence[str] = DEFAULT_MIGRATE_COMMAND,
        entities_command: Sequence[str] = DEFAULT_ENTITIES_COMMAND,
        timeout_seconds: float | None = None,
    ) -> None:
        self._runner = runner if runner is not None else SubprocessCommandRunner()
        self._steps = (
            MigrationStep("db migration", tuple(migrate_command)),
            MigrationStep("db entities", tuple(entities_command)),
        )
        self._timeout_seconds = timeout_seconds

    @property
    def steps(self) -> tuple[MigrationStep, ...]:
        return self._steps

    def run(self, project_dir: Path) -> str:
        """Run every step in order, stopping at the first failure.

        Returns the combined output of all steps.
        """

        outputs: list[str] = []
        for step in self._steps:
            logger.info("migration_step_started", step=step.name, command=list(step.command))
            try:
                result = self._runner.run(
                    step.command,
                    cwd=Path(project_dir),
                    timeout_seconds=self._timeout_seconds,
                )
            except CommandError as exc:
                logger.error("migration_step_failed", step=step.name, error=str(exc))
                raise MigrationError(step.name, str(exc)) from exc

            if not result.succeeded:
                logger.error(
                    "migration_step_failed",
                    step=step.name,
                    returncode=result.returncode,
                    detail=result.first_line(),
                )
                raise MigrationError(
                    step.name, f"exit status {result.returncode}\n{result.output}"
                )
            logger.info("migration_step_finished", step=step.name)
            outputs.append(result.output)
        return "".join(outputs)


__all__ = [
    "DEFAULT_ENTITIES_COMMAND",
    "DEFAULT_MIGRATE_COMMAND",
    "MigrationError",
    "MigrationStep",
    "MigrationTrigger",
]
