"""
forgekit — model generator.

File: src/forgekit/codegen/model.py

Purpose
- Turn a model name plus ordered ``name:type`` fields into a migration artifact and
  its companion test, then apply the migration and regenerate entity bindings.

Functional requirements
- Field types are fully resolved before anything is rendered or executed; an unknown
  type fails the whole generation with the list of valid types.
- Timestamp fields the framework always adds are skipped with a warning.
- Both templates are rendered, in order, from the same context.
- Migration runs only when ``migration_only`` is false, and only after rendering.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from dataclasses import dataclass
from datetime import UTC, datetime
from pathlib import Path
from typing import Final

import structlog

from forgekit.codegen.context import Column, FieldSpec, Reference, RenderContext
from forgekit.codegen.mappings import FOREIGN_KEY_TYPE, Mappings, load_mappings
from forgekit.codegen.migrate import MigrationTrigger
from forgekit.codegen.render import (
    MODEL_TEMPLATE,
    MODEL_TEST_TEMPLATE,
    Renderer,
    collect_messages,
)

logger = structlog.get_logger(__name__)

# Generated automatically by the framework for every model.
IGNORE_FIELDS: Final[frozenset[str]] = frozenset(
    {"created_at", "updated_at", "create_at", "update_at"}
)


class UnknownFieldTypeError(ValueError):
    """Raised when a field type tag has no schema mapping."""

    def __init__(self, type_tag: str, valid_tags: Sequence[str]) -> None:
        self.type_tag = type_tag
        self.valid_tags = tuple(valid_tags)
        super().__init__(
            f"type: {type_tag} not found. try any of: {', '.join(self.valid_tags)}"
        )


@dataclass(frozen=True, slots=True)
class AppInfo:
    """Metadata of the application the model is generated into."""

    app_name: str


@dataclass(frozen=True, slots=True)
class ResolvedFields:
    columns: tuple[Column, ...]
    references: tuple[Reference, ...]
    ignored: tuple[str, ...]


def resolve_fields(fields: Sequence[FieldSpec], mappings: Mappings) -> ResolvedFields:
    """Expand field specs into ordered columns and references.

    Raises ``UnknownFieldTypeError`` at the first unmapped type.
    """

    columns: list[Column] = []
    references: list[Reference] = []
    ignored: list[str] = []
    for field in fields:
        if field.name in IGNORE_FIELDS:
            logger.warning(
                "codegen_field_ignored",
                field=field.name,
                reason="redundant field, it is already generated automatically",
            )
            ignored.append(field.name)
            continue
        if mappings.is_relation(field.type_tag):
            foreign_key = f"{field.name}_id"
            columns.append(Column(foreign_key, FOREIGN_KEY_TYPE))
            references.append(Reference(field.name, foreign_key))
            continue
        schema_type = mappings.schema_field(field.type_tag)
        if schema_type is None:
            raise UnknownFieldTypeError(field.type_tag, mappings.schema_fields())
        columns.append(Column(field.name, schema_type))
    return ResolvedFields(tuple(columns), tuple(references), tuple(ignored))


class ModelGenerator:
    """Compose field resolution, artifact rendering and the migration trigger."""

    def __init__(
        self,
        *,
        renderer: Renderer,
        migration: MigrationTrigger,
        mappings: Mappings | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._renderer = renderer
        self._migration = migration
        self._mappings = mappings if mappings is not None else load_mappings()
        self._clock = clock if clock is not None else _utc_now

    def generate(
        self,
        name: str,
        fields: Sequence[FieldSpec],
        appinfo: AppInfo,
        *,
        project_dir: Path,
        is_link: bool = False,
        migration_only: bool = False,
    ) -> str:
        """Generate the model artifacts.

        Returns the renderers' side messages followed by the combined migration output.
        """

        resolved = resolve_fields(fields, self._mappings)
        context = RenderContext(
            name=name,
            ts=self._clock(),
            pkg_name=appinfo.app_name,
            is_link=is_link,
            columns=resolved.columns,
            references=resolved.references,
        )
        logger.info(
            "codegen_model_started",
            model=name,
            columns=len(context.columns),
            references=len(context.references),
            is_link=is_link,
        )

        results = [
            self._renderer.render(MODEL_TEMPLATE, context),
            self._renderer.render(MODEL_TEST_TEMPLATE, context),
        ]

        messages = collect_messages(results)
        if migration_only:
            return messages
        output = self._migration.run(project_dir)
        if output and not output.endswith("\n"):
            output += "\n"
        return messages + output


def _utc_now() -> datetime:
    return datetime.now(UTC)


__all__ = [
    "AppInfo",
    "IGNORE_FIELDS",
    "ModelGenerator",
    "ResolvedFields",
    "UnknownFieldTypeError",
    "resolve_fields",
]
