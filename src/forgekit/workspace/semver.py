"""Semantic version parsing for the bump-version command."""

from __future__ import annotations

import re
from dataclasses import dataclass
from functools import total_ordering

_SEMVER_RE = re.compile(
    r"^(?P<major>0|[1-9]\d*)\.(?P<minor>0|[1-9]\d*)\.(?P<patch>0|[1-9]\d*)"
    r"(?:-(?P<pre>[0-9A-Za-z-]+(?:\.[0-9A-Za-z-]+)*))?"
    r"(?:\+(?P<build>[0-9A-Za-z-]+(?:\.[0-9A-Za-z-]+)*))?$"
)


class SemVerError(ValueError):
    """Raised for strings that are not ``MAJOR.MINOR.PATCH[-PRE][+BUILD]``."""


@total_ordering
@dataclass(frozen=True, slots=True)
class SemVer:
    major: int
    minor: int
    patch: int
    pre: str = ""
    build: str = ""

    @classmethod
    def parse(cls, text: str) -> SemVer:
        if not isinstance(text, str):
            raise SemVerError("version must be a string")
        match = _SEMVER_RE.fullmatch(text.strip())
        if match is None:
            raise SemVerError(f"invalid semantic version: {text!r}")
        return cls(
            major=int(match.group("major")),
            minor=int(match.group("minor")),
            patch=int(match.group("patch")),
            pre=match.group("pre") or "",
            build=match.group("build") or "",
        )

    def __str__(self) -> str:
        rendered = f"{self.major}.{self.minor}.{self.patch}"
        if self.pre:
            rendered += f"-{self.pre}"
        if self.build:
            rendered += f"+{self.build}"
        return rendered

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, SemVer):
            return NotImplemented
        return self._precedence_key() < other._precedence_key()

    def _precedence_key(self) -> tuple[int, int, int, int, tuple[tuple[int, int | str], ...]]:
        # A release sorts after any of its pre-releases; build metadata is ignored.
        if not self.pre:
            return (self.major, self.minor, self.patch, 1, ())
        identifiers: list[tuple[int, int | str]] = []
        for part in self.pre.split("."):
            if part.isdigit():
                identifiers.append((0, int(part)))
            else:
                identifiers.append((1, part))
        return (self.major, self.minor, self.patch, 0, tuple(identifiers))


def parse_version(text: str) -> SemVer:
    return SemVer.parse(text)


__all__ = ["SemVer", "SemVerError", "parse_version"]
