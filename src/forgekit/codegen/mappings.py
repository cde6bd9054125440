"""
forgekit — field type mappings.

File: src/forgekit/codegen/mappings.py

Purpose
- Map user-facing field type tags (``string!``, ``int^``, ...) to schema column types.

Functional requirements
- Lookups are pure and deterministic.
- The full list of valid tags is exposed so unknown-tag errors can enumerate it.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from types import MappingProxyType

import yaml

RELATION_MARKER = "references"
"""Field type that expands into a foreign-key column plus a reference record."""

FOREIGN_KEY_TYPE = "integer"


class MappingsLoadError(ValueError):
    """Raised when a mappings file is missing or malformed."""


@dataclass(frozen=True, slots=True)
class Mappings:
    """Immutable lookup table from field type tag to schema type."""

    table: Mapping[str, str]

    def schema_field(self, type_tag: str) -> str | None:
        return self.table.get(type_tag)

    def schema_fields(self) -> tuple[str, ...]:
        """All known scalar tags, sorted, for error messages."""

        return tuple(sorted(self.table))

    def is_relation(self, type_tag: str) -> bool:
        return type_tag == RELATION_MARKER

    @classmethod
    def from_mapping(cls, payload: object, *, source: str = "<memory>") -> Mappings:
        if not isinstance(payload, Mapping):
            raise MappingsLoadError(f"{source}: top level must be a mapping")
        raw = payload.get("mappings")
        if not isinstance(raw, Mapping) or not raw:
            raise MappingsLoadError(f"{source}: 'mappings' must be a non-empty mapping")

        table: dict[str, str] = {}
        for tag, schema_type in raw.items():
            if not isinstance(tag, str) or not tag.strip():
                raise MappingsLoadError(f"{source}: field type tags must be non-empty strings")
            if not isinstance(schema_type, str) or not schema_type.strip():
                raise MappingsLoadError(f"{source}: schema type for {tag!r} must be a string")
            if tag == RELATION_MARKER:
                raise MappingsLoadError(
                    f"{source}: {RELATION_MARKER!r} is reserved for relation fields"
                )
            table[tag.strip()] = schema_type.strip()
        return cls(table=MappingProxyType(table))

    @classmethod
    def from_file(cls, path: Path) -> Mappings:
        try:
            text = path.read_text(encoding="utf-8")
        except OSError as exc:
            raise MappingsLoadError(f"unable to read mappings file {path}: {exc}") from exc
        try:
            payload = yaml.safe_load(text)
        except yaml.YAMLError as exc:
            raise MappingsLoadError(f"invalid YAML in {path}: {exc}") from exc
        return cls.from_mapping(payload, source=str(path))


def _bundled_mappings_path() -> Path:
    return Path(__file__).resolve().with_name("mappings.yaml")


@lru_cache(maxsize=4)
def load_mappings(path: str | Path | None = None) -> Mappings:
    """Load field mappings from disk with deterministic caching."""

    resolved = _bundled_mappings_path() if path is None else Path(path).expanduser().resolve()
    return Mappings.from_file(resolved)


__all__ = [
    "FOREIGN_KEY_TYPE",
    "Mappings",
    "MappingsLoadError",
    "RELATION_MARKER",
    "load_mappings",
]
