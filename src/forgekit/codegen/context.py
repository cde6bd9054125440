"""Typed records flowing from field specs to template rendering."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime


class FieldSpecError(ValueError):
    """Raised for malformed ``name:type`` field specifications."""


def _require_identifier(value: object, field_name: str) -> str:
    if not isinstance(value, str):
        raise FieldSpecError(f"{field_name} must be a string")
    cleaned = value.strip()
    if not cleaned:
        raise FieldSpecError(f"{field_name} must not be empty")
    if not cleaned.isidentifier():
        raise FieldSpecError(f"{field_name} {cleaned!r} is not a valid identifier")
    return cleaned


@dataclass(frozen=True, slots=True)
class FieldSpec:
    """One user-declared field: a name plus a type tag."""

    name: str
    type_tag: str

    def __post_init__(self) -> None:
        object.__setattr__(self, "name", _require_identifier(self.name, "field name"))
        if not isinstance(self.type_tag, str) or not self.type_tag.strip():
            raise FieldSpecError(f"field {self.name!r} has an empty type")
        object.__setattr__(self, "type_tag", self.type_tag.strip())

    @classmethod
    def parse(cls, token: str) -> FieldSpec:
        """Parse a ``name:type`` command-line token."""

        name, separator, type_tag = token.partition(":")
        if not separator:
            raise FieldSpecError(f"field {token!r} must be written as name:type")
        return cls(name=name, type_tag=type_tag)


def parse_field_specs(tokens: list[str] | tuple[str, ...]) -> tuple[FieldSpec, ...]:
    return tuple(FieldSpec.parse(token) for token in tokens)


@dataclass(frozen=True, slots=True)
class Column:
    name: str
    schema_type: str


@dataclass(frozen=True, slots=True)
class Reference:
    """Foreign-key relation: ``target`` model name and the local key column."""

    target: str
    foreign_key: str


@dataclass(frozen=True, slots=True)
class RenderContext:
    """Variables shared by the model and model-test templates.

    Column and reference order is the order fields were declared in, which is
    the column order of the generated table.
    """

    name: str
    ts: datetime
    pkg_name: str
    is_link: bool
    columns: tuple[Column, ...]
    references: tuple[Reference, ...]

    def __post_init__(self) -> None:
        object.__setattr__(self, "name", _require_identifier(self.name, "artifact name"))
        if not isinstance(self.pkg_name, str) or not self.pkg_name.strip():
            raise ValueError("pkg_name must be a non-empty string")
        if not isinstance(self.ts, datetime) or self.ts.tzinfo is None:
            raise ValueError("ts must be a timezone-aware datetime")
        object.__setattr__(self, "columns", tuple(self.columns))
        object.__setattr__(self, "references", tuple(self.references))
        for column in self.columns:
            if not isinstance(column, Column):
                raise TypeError("columns must contain Column records")
        for reference in self.references:
            if not isinstance(reference, Reference):
                raise TypeError("references must contain Reference records")

    def to_variables(self) -> dict[str, object]:
        return {
            "name": self.name,
            "ts": self.ts,
            "pkg_name": self.pkg_name,
            "is_link": self.is_link,
            "columns": [[column.name, column.schema_type] for column in self.columns],
            "references": [[ref.target, ref.foreign_key] for ref in self.references],
        }


__all__ = [
    "Column",
    "FieldSpec",
    "FieldSpecError",
    "Reference",
    "RenderContext",
    "parse_field_specs",
]
