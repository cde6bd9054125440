"""Randomized end-to-end scenarios for the project generation pipeline."""

from forgekit.fuzzy.randomizer import Randomizer
from forgekit.fuzzy.runner import (
    FuzzyRunner,
    Scenario,
    ScenarioPlan,
    ScenarioResult,
    plan_scenario,
    run_scenario,
)
from forgekit.fuzzy.steps import (
    ProjectChoices,
    ResourceChoices,
    ScenarioStepError,
    draw_project_choices,
    draw_scaffold_choices,
)

__all__ = [
    "FuzzyRunner",
    "ProjectChoices",
    "Randomizer",
    "ResourceChoices",
    "Scenario",
    "ScenarioPlan",
    "ScenarioResult",
    "ScenarioStepError",
    "draw_project_choices",
    "draw_scaffold_choices",
    "plan_scenario",
    "run_scenario",
]
