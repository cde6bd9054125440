"""Output rendering abstraction for the forgekit CLI.

File: src/forgekit/ui/render.py

Purpose
- Provide a thin plain-text rendering layer for command output on stdout.
- Keep diagnostics and log events off stdout (they go to stderr).

Functional requirements
- Output is deterministic and free of terminal control sequences.
"""

from __future__ import annotations

import sys
from typing import IO, TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Sequence


class CLIRenderer:
    """Thin CLI output renderer writing to ``stream`` (stdout by default)."""

    def __init__(self, *, stream: IO[str] | None = None) -> None:
        self._stream = stream

    def text(self, line: str) -> None:
        """Print a plain text line."""

        print(line, file=self._out())

    def kv(self, key: str, value: object) -> None:
        print(f"{key}: {value}", file=self._out())

    def section(self, title: str) -> None:
        """Print a section header with a preceding blank line."""

        print(f"\n{title}", file=self._out())

    def items(self, entries: Sequence[str], *, prefix: str = "- ") -> None:
        for entry in entries:
            print(f"  {prefix}{entry}", file=self._out())

    def block(self, text: str) -> None:
        """Print pre-formatted multi-line text without adding a trailing blank line."""

        if text:
            self._out().write(text if text.endswith("\n") else f"{text}\n")

    def _out(self) -> IO[str]:
        # Resolved per call so pytest's capsys replacement of sys.stdout is honored.
        return self._stream if self._stream is not None else sys.stdout


def create_renderer(*, stream: IO[str] | None = None) -> CLIRenderer:
    """Create a CLI renderer writing to ``stream`` (stdout by default)."""

    return CLIRenderer(stream=stream)


__all__ = ["CLIRenderer", "create_renderer"]
