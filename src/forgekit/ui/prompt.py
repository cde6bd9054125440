"""Interactive yes/no confirmation for commands that rewrite files."""

from __future__ import annotations

from collections.abc import Callable

_AFFIRMATIVE = frozenset({"y", "yes"})


def confirmation(message: str, *, input_fn: Callable[[str], str] | None = None) -> bool:
    """Ask ``message`` and return ``True`` only for an explicit yes.

    End of input (closed stdin, non-interactive runs) counts as a no.
    """

    ask = input_fn if input_fn is not None else input
    try:
        answer = ask(f"{message}. continue? [y/N] ")
    except EOFError:
        return False
    return answer.strip().lower() in _AFFIRMATIVE


__all__ = ["confirmation"]
