"""Plain-text summary table for CI results."""

from __future__ import annotations

from collections.abc import Sequence
from pathlib import Path

from forgekit.ci.runner import Outcome, ResourceResult


def first_diagnostic_line(diagnostic: str) -> str:
    for line in diagnostic.splitlines():
        if line.strip():
            return line.strip()
    return ""


def format_results(results: Sequence[ResourceResult], *, root: Path | None = None) -> str:
    """Render one row per resource plus a summary line.

    Failing rows carry the failed step and the first non-blank diagnostic line.
    """

    headers = ("resource", "status", "detail")
    rows: list[tuple[str, str, str]] = []
    for result in results:
        detail = ""
        if result.outcome is Outcome.FAIL:
            line = first_diagnostic_line(result.diagnostic)
            detail = f"[{result.failed_step}] {line}" if result.failed_step else line
        rows.append((_label(result.resource, root), result.outcome.value.upper(), detail))

    widths = [len(header) for header in headers]
    for row in rows:
        for index, cell in enumerate(row):
            widths[index] = max(widths[index], len(cell))

    def _pad(cells: Sequence[str]) -> str:
        return "  ".join(cell.ljust(widths[index]) for index, cell in enumerate(cells)).rstrip()

    lines = [_pad(headers), "  ".join("-" * width for width in widths)]
    lines.extend(_pad(row) for row in rows)

    failed = sum(1 for result in results if result.outcome is Outcome.FAIL)
    lines.append("")
    lines.append(f"{len(results)} resources, {len(results) - failed} passed, {failed} failed")
    return "\n".join(lines)


def _label(resource: Path, root: Path | None) -> str:
    if root is None:
        return str(resource)
    try:
        relative = resource.relative_to(root)
    except ValueError:
        return str(resource)
    return "." if not relative.parts else relative.as_posix()


__all__ = ["first_diagnostic_line", "format_results"]
