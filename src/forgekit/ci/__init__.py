"""CI orchestration over the workspace root and its starter/example resources."""

from forgekit.ci.report import format_results
from forgekit.ci.runner import (
    CiOrchestrator,
    CiStep,
    Outcome,
    ResourceResult,
    all_resources,
    run,
)

__all__ = [
    "CiOrchestrator",
    "CiStep",
    "Outcome",
    "ResourceResult",
    "all_resources",
    "format_results",
    "run",
]
