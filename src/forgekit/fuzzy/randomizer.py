"""Seeded pseudo-random driver for replayable fuzzy scenarios."""

from __future__ import annotations

import random
import secrets
import string
from collections.abc import Sequence
from typing import TypeVar

T = TypeVar("T")

_IDENTIFIER_HEAD = string.ascii_lowercase
_IDENTIFIER_TAIL = string.ascii_lowercase + string.digits


class Randomizer:
    """Private ``random.Random`` keyed by a seed that is always known.

    Two randomizers built from the same seed produce the same decision sequence
    for the same sequence of calls.
    """

    def __init__(self, seed: int | None = None) -> None:
        if seed is not None and (isinstance(seed, bool) or not isinstance(seed, int) or seed < 0):
            raise ValueError("seed must be a non-negative integer")
        self._seed = seed if seed is not None else secrets.randbits(63)
        self._random = random.Random(self._seed)

    @property
    def seed(self) -> int:
        return self._seed

    def choice(self, candidates: Sequence[T]) -> T:
        if not candidates:
            raise ValueError("cannot choose from an empty candidate set")
        return candidates[self._random.randrange(len(candidates))]

    def sample(self, candidates: Sequence[T], count: int) -> list[T]:
        if count < 0 or count > len(candidates):
            raise ValueError(f"cannot sample {count} items from {len(candidates)} candidates")
        return self._random.sample(list(candidates), count)

    def integer(self, low: int, high: int) -> int:
        """Uniform integer in ``[low, high]``."""

        if low > high:
            raise ValueError("low must be <= high")
        return self._random.randint(low, high)

    def identifier(self, length: int = 8, *, prefix: str = "") -> str:
        """Lowercase identifier safe for package, table and module names."""

        if length < 1:
            raise ValueError("length must be >= 1")
        head = "" if prefix else self.choice(_IDENTIFIER_HEAD)
        remaining = length - len(head)
        tail = "".join(self.choice(_IDENTIFIER_TAIL) for _ in range(remaining))
        return f"{prefix}{head}{tail}"


__all__ = ["Randomizer"]
