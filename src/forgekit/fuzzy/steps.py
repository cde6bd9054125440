"""
forgekit — fuzzy scenario decisions and step commands.

File: src/forgekit/fuzzy/steps.py

Purpose
- Draw every randomized decision of a scenario from a ``Randomizer`` up front and
  turn the decisions into project-generation and scaffolding argv.

Functional requirements
- Decision drawing is pure: the same seed yields the same choices, in the same order.
- Candidate values are fixed constants so replays stay valid across releases of the
  generator tooling's own defaults.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path

from forgekit.fuzzy.randomizer import Randomizer

TEMPLATE_CANDIDATES: tuple[str, ...] = ("saas", "rest-api", "lightweight-service")
DB_CANDIDATES: tuple[str, ...] = ("sqlite", "postgres", "none")
BG_CANDIDATES: tuple[str, ...] = ("async", "queue", "blocking", "none")
ASSETS_CANDIDATES: tuple[str, ...] = ("serverside", "clientside", "none")
SCAFFOLD_KIND_CANDIDATES: tuple[str, ...] = ("api", "html", "htmx")
FIELD_TYPE_CANDIDATES: tuple[str, ...] = (
    "string",
    "string!",
    "string^",
    "text",
    "int",
    "big_int",
    "bool",
    "date",
    "tstz",
    "uuid",
    "json",
    "float",
)
MAX_FIELDS_PER_RESOURCE = 4


class ScenarioStepError(RuntimeError):
    """Raised when one scenario step exits non-zero or cannot run."""

    def __init__(self, step: str, details: str) -> None:
        self.step = step
        self.details = details
        super().__init__(f"step {step!r} failed: {details.strip()}")


@dataclass(frozen=True, slots=True)
class ProjectChoices:
    name: str
    template: str
    db: str
    bg: str
    assets: str

    def new_argv(self, base_command: Sequence[str], destination: Path) -> tuple[str, ...]:
        return (
            *base_command,
            "--name",
            self.name,
            "--template",
            self.template,
            "--db",
            self.db,
            "--bg",
            self.bg,
            "--assets",
            self.assets,
            "--path",
            str(destination),
        )


@dataclass(frozen=True, slots=True)
class ResourceChoices:
    name: str
    fields: tuple[str, ...]
    kind: str

    def scaffold_argv(self, base_command: Sequence[str]) -> tuple[str, ...]:
        return (*base_command, "scaffold", self.name, *self.fields, f"--{self.kind}")


def draw_project_choices(randomizer: Randomizer) -> ProjectChoices:
    return ProjectChoices(
        name=randomizer.identifier(10, prefix="app_"),
        template=randomizer.choice(TEMPLATE_CANDIDATES),
        db=randomizer.choice(DB_CANDIDATES),
        bg=randomizer.choice(BG_CANDIDATES),
        assets=randomizer.choice(ASSETS_CANDIDATES),
    )


def draw_scaffold_choices(
    randomizer: Randomizer, *, max_resources: int = 3
) -> tuple[ResourceChoices, ...]:
    """Draw 1..``max_resources`` resources with distinct names and field names."""

    if max_resources < 1:
        raise ValueError("max_resources must be >= 1")
    count = randomizer.integer(1, max_resources)
    resources: list[ResourceChoices] = []
    used_names: set[str] = set()
    while len(resources) < count:
        name = randomizer.identifier(8)
        if name in used_names:
            continue
        used_names.add(name)
        field_count = randomizer.integer(1, MAX_FIELDS_PER_RESOURCE)
        fields = tuple(
            f"field{index}_{randomizer.identifier(4)}:{randomizer.choice(FIELD_TYPE_CANDIDATES)}"
            for index in range(field_count)
        )
        resources.append(
            ResourceChoices(name=name, fields=fields, kind=randomizer.choice(SCAFFOLD_KIND_CANDIDATES))
        )
    return tuple(resources)


__all__ = [
    "ASSETS_CANDIDATES",
    "BG_CANDIDATES",
    "DB_CANDIDATES",
    "FIELD_TYPE_CANDIDATES",
    "ProjectChoices",
    "ResourceChoices",
    "SCAFFOLD_KIND_CANDIDATES",
    "ScenarioStepError",
    "TEMPLATE_CANDIDATES",
    "draw_project_choices",
    "draw_scaffold_choices",
]
