"""
forgekit — unit tests for model generation

File: tests/unit/codegen/test_model_generator.py

Purpose
- Validate field resolution and the render-then-migrate ordering of ``ModelGenerator``.

What this test file should cover
- Scalar fields keep declaration order and map 1:1 through the type table.
- Relation fields expand to a ``<name>_id`` integer column plus a reference.
- Framework timestamp fields are skipped with a warning.
- An unknown type fails before any render or migration happens.
- ``migration_only`` suppresses the migration step.
"""

from __future__ import annotations

from datetime import UTC, datetime
from pathlib import Path

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st
from structlog.testing import capture_logs

from forgekit.codegen.context import Column, FieldSpec, Reference, RenderContext
from forgekit.codegen.mappings import load_mappings
from forgekit.codegen.model import (
    IGNORE_FIELDS,
    AppInfo,
    ModelGenerator,
    UnknownFieldTypeError,
    resolve_fields,
)
from forgekit.codegen.render import RenderResult

FIXED_TS = datetime(2024, 3, 1, 12, 30, 45, tzinfo=UTC)


class SpyRenderer:
    def __init__(self, events: list[str]) -> None:
        self.calls: list[tuple[str, RenderContext]] = []
        self._events = events

    def render(self, template: str, context: RenderContext) -> RenderResult:
        self.calls.append((template, context))
        self._events.append(f"render:{template}")
        return RenderResult(
            template=template,
            path=Path("/project") / template,
            written=True,
            messages=(f"added: {template}",),
        )


class SpyMigration:
    def __init__(self, events: list[str], output: str = "") -> None:
        self.calls: list[Path] = []
        self._events = events
        self._output = output

    def run(self, project_dir: Path) -> str:
        self.calls.append(project_dir)
        self._events.append("migrate")
        return self._output


def _generator(
    events: list[str], *, migration_output: str = ""
) -> tuple[ModelGenerator, SpyRenderer, SpyMigration]:
    renderer = SpyRenderer(events)
    migration = SpyMigration(events, migration_output)
    generator = ModelGenerator(
        renderer=renderer,
        migration=migration,  # type: ignore[arg-type]
        mappings=load_mappings(),
        clock=lambda: FIXED_TS,
    )
    return generator, renderer, migration


_SCALAR_TAGS = load_mappings().schema_fields()
_FIELD_NAMES = st.from_regex(r"[a-z][a-z0-9_]{0,12}", fullmatch=True).filter(
    lambda name: name not in IGNORE_FIELDS
)


@given(fields=st.lists(st.tuples(_FIELD_NAMES, st.sampled_from(_SCALAR_TAGS)), max_size=12))
@settings(max_examples=50, derandomize=True, deadline=None)
def test_scalar_fields_map_one_to_one_in_declaration_order(
    fields: list[tuple[str, str]],
) -> None:
    mappings = load_mappings()
    specs = [FieldSpec(name, tag) for name, tag in fields]

    resolved = resolve_fields(specs, mappings)

    assert len(resolved.columns) == len(specs)
    assert resolved.references == ()
    for spec, column in zip(specs, resolved.columns, strict=True):
        assert column.name == spec.name
        assert column.schema_type == mappings.schema_field(spec.type_tag)


def test_relation_field_expands_to_foreign_key_column_and_reference() -> None:
    specs = [FieldSpec("title", "string!"), FieldSpec("author", "references")]

    resolved = resolve_fields(specs, load_mappings())

    assert resolved.columns == (Column("title", "string"), Column("author_id", "integer"))
    assert resolved.references == (Reference("author", "author_id"),)


def test_ignored_timestamp_fields_are_skipped_with_warning() -> None:
    specs = [
        FieldSpec("created_at", "tstz"),
        FieldSpec("title", "string"),
        FieldSpec("update_at", "tstz"),
    ]

    with capture_logs() as logs:
        resolved = resolve_fields(specs, load_mappings())

    assert [column.name for column in resolved.columns] == ["title"]
    assert resolved.ignored == ("created_at", "update_at")
    warnings = [entry for entry in logs if entry["event"] == "codegen_field_ignored"]
    assert [entry["field"] for entry in warnings] == ["created_at", "update_at"]
    assert all(entry["log_level"] == "warning" for entry in warnings)


def test_unknown_type_fails_before_render_or_migration() -> None:
    events: list[str] = []
    generator, renderer, migration = _generator(events)

    with pytest.raises(UnknownFieldTypeError) as excinfo:
        generator.generate(
            "post",
            [FieldSpec("title", "string"), FieldSpec("rating", "stars"), FieldSpec("x", "int")],
            AppInfo(app_name="blog"),
            project_dir=Path("/project"),
        )

    message = str(excinfo.value)
    assert "type: stars not found" in message
    assert "string!" in message
    assert renderer.calls == []
    assert migration.calls == []
    assert events == []


def test_generate_renders_both_templates_then_migrates() -> None:
    events: list[str] = []
    generator, renderer, migration = _generator(events)

    messages = generator.generate(
        "post",
        [FieldSpec("title", "string!"), FieldSpec("user", "references")],
        AppInfo(app_name="blog"),
        project_dir=Path("/project"),
    )

    assert events == ["render:model.t", "render:model_test.t", "migrate"]
    assert migration.calls == [Path("/project")]
    assert messages == "added: model.t\nadded: model_test.t\n"

    (first_template, first_ctx), (second_template, second_ctx) = renderer.calls
    assert first_ctx == second_ctx
    assert first_ctx.ts == FIXED_TS
    assert first_ctx.pkg_name == "blog"
    assert first_ctx.is_link is False
    assert first_ctx.columns == (Column("title", "string"), Column("user_id", "integer"))


def test_generate_returns_migration_output_after_render_messages() -> None:
    events: list[str] = []
    generator, _renderer, _migration = _generator(
        events, migration_output="applied m20240301_123045_posts\ngenerated entities/posts.rs"
    )

    messages = generator.generate(
        "post",
        [FieldSpec("title", "string")],
        AppInfo(app_name="blog"),
        project_dir=Path("/project"),
    )

    assert messages == (
        "added: model.t\n"
        "added: model_test.t\n"
        "applied m20240301_123045_posts\n"
        "generated entities/posts.rs\n"
    )


def test_migration_only_skips_migration() -> None:
    events: list[str] = []
    generator, renderer, migration = _generator(events)

    generator.generate(
        "tag",
        [FieldSpec("label", "string^")],
        AppInfo(app_name="blog"),
        project_dir=Path("/project"),
        migration_only=True,
    )

    assert len(renderer.calls) == 2
    assert migration.calls == []


def test_link_flag_is_passed_to_context() -> None:
    events: list[str] = []
    generator, renderer, _migration = _generator(events)

    generator.generate(
        "posts_tags",
        [FieldSpec("post", "references"), FieldSpec("tag", "references")],
        AppInfo(app_name="blog"),
        project_dir=Path("/project"),
        is_link=True,
        migration_only=True,
    )

    context = renderer.calls[0][1]
    assert context.is_link is True
    assert [ref.foreign_key for ref in context.references] == ["post_id", "tag_id"]
