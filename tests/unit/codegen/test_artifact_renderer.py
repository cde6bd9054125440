"""
forgekit — unit tests for artifact rendering

File: tests/unit/codegen/test_artifact_renderer.py

Purpose
- Validate the Jinja2 renderer: front matter handling, destination safety,
  skip-existing behavior and the bundled model templates.
"""

from __future__ import annotations

from datetime import UTC, datetime
from pathlib import Path

import pytest

from forgekit.codegen.context import (
    Column,
    FieldSpec,
    FieldSpecError,
    Reference,
    RenderContext,
    parse_field_specs,
)
from forgekit.codegen.mappings import Mappings, MappingsLoadError, load_mappings
from forgekit.codegen.render import (
    MODEL_TEMPLATE,
    MODEL_TEST_TEMPLATE,
    ArtifactRenderer,
    TemplateRenderError,
    collect_messages,
    pascal_case,
    pluralize,
    snake_case,
)

TS = datetime(2024, 3, 1, 12, 30, 45, tzinfo=UTC)


def _context(**overrides: object) -> RenderContext:
    values: dict[str, object] = {
        "name": "post",
        "ts": TS,
        "pkg_name": "blog",
        "is_link": False,
        "columns": (Column("title", "string"), Column("user_id", "integer")),
        "references": (Reference("user", "user_id"),),
    }
    values.update(overrides)
    return RenderContext(**values)  # type: ignore[arg-type]


def _write_template(directory: Path, name: str, text: str) -> None:
    directory.mkdir(parents=True, exist_ok=True)
    (directory / name).write_text(text, encoding="utf-8")


def test_bundled_mappings_cover_nullability_variants() -> None:
    mappings = load_mappings()

    assert mappings.schema_field("string") == "string_null"
    assert mappings.schema_field("string!") == "string"
    assert mappings.schema_field("string^") == "string_uniq"
    assert mappings.schema_field("nope") is None
    assert mappings.is_relation("references")
    assert list(mappings.schema_fields()) == sorted(mappings.schema_fields())


def test_mappings_reject_reserved_relation_marker() -> None:
    with pytest.raises(MappingsLoadError, match="reserved"):
        Mappings.from_mapping({"mappings": {"references": "integer"}})


def test_field_spec_parsing_rejects_malformed_tokens() -> None:
    assert parse_field_specs(["title:string!", "user:references"]) == (
        FieldSpec("title", "string!"),
        FieldSpec("user", "references"),
    )
    for token in ("title", ":string", "title:", "9lives:int", "has space:int"):
        with pytest.raises(FieldSpecError):
            FieldSpec.parse(token)


def test_render_context_requires_aware_timestamp() -> None:
    with pytest.raises(ValueError, match="timezone-aware"):
        _context(ts=datetime(2024, 3, 1, 12, 0, 0))


def test_render_context_variables_are_ordered_pairs() -> None:
    variables = _context().to_variables()

    assert variables["columns"] == [["title", "string"], ["user_id", "integer"]]
    assert variables["references"] == [["user", "user_id"]]


def test_case_filters() -> None:
    assert snake_case("BlogPost") == "blog_post"
    assert pascal_case("blog_post") == "BlogPost"
    assert pluralize("category") == "categories"
    assert pluralize("box") == "boxes"
    assert pluralize("news") == "news"
    assert pluralize("post") == "posts"


def test_bundled_model_template_writes_migration(tmp_path: Path) -> None:
    renderer = ArtifactRenderer(tmp_path)

    result = renderer.render(MODEL_TEMPLATE, _context())

    expected = tmp_path / "migration" / "src" / "m20240301_123045_posts.rs"
    assert result.path == expected
    assert result.written is True
    body = expected.read_text(encoding="utf-8")
    assert not body.startswith("---")
    assert ".col(string(Posts::Title))" in body
    assert ".col(integer(Posts::UserId))" in body
    assert body.index("Posts::Title") < body.index("Posts::UserId")
    assert ".to(Users::Table, Users::Id)" in body
    assert result.messages[0] == "added: migration/src/m20240301_123045_posts.rs"


def test_bundled_model_test_template_uses_package_name(tmp_path: Path) -> None:
    renderer = ArtifactRenderer(tmp_path)

    result = renderer.render(MODEL_TEST_TEMPLATE, _context())

    body = (tmp_path / "tests" / "models" / "posts.rs").read_text(encoding="utf-8")
    assert "use blog::app::App;" in body
    assert result.messages[0] == "added: tests/models/posts.rs"


def test_skip_exists_leaves_file_untouched(tmp_path: Path) -> None:
    renderer = ArtifactRenderer(tmp_path)
    target = tmp_path / "tests" / "models" / "posts.rs"
    target.parent.mkdir(parents=True)
    target.write_text("// hand edited\n", encoding="utf-8")

    result = renderer.render(MODEL_TEST_TEMPLATE, _context())

    assert result.written is False
    assert result.messages == ("skipped existing file: tests/models/posts.rs",)
    assert target.read_text(encoding="utf-8") == "// hand edited\n"


def test_destination_outside_project_is_refused(tmp_path: Path) -> None:
    templates = tmp_path / "templates"
    project = tmp_path / "project"
    project.mkdir()
    _write_template(templates, "escape.t", '---\nto: "../outside.rs"\n---\nbody\n')

    renderer = ArtifactRenderer(project, templates_dir=templates)
    with pytest.raises(TemplateRenderError, match="escapes the project directory"):
        renderer.render("escape.t", _context())
    assert not (tmp_path / "outside.rs").exists()


def test_undefined_variable_is_an_error(tmp_path: Path) -> None:
    templates = tmp_path / "templates"
    project = tmp_path / "project"
    project.mkdir()
    _write_template(templates, "broken.t", '---\nto: "x.rs"\n---\n{{ missing_value }}\n')

    renderer = ArtifactRenderer(project, templates_dir=templates)
    with pytest.raises(TemplateRenderError, match="missing_value"):
        renderer.render("broken.t", _context())


def test_missing_front_matter_is_an_error(tmp_path: Path) -> None:
    templates = tmp_path / "templates"
    project = tmp_path / "project"
    project.mkdir()
    _write_template(templates, "plain.t", "no header here\n")

    renderer = ArtifactRenderer(project, templates_dir=templates)
    with pytest.raises(TemplateRenderError, match="front matter"):
        renderer.render("plain.t", _context())


def test_collect_messages_preserves_render_order(tmp_path: Path) -> None:
    renderer = ArtifactRenderer(tmp_path)
    results = [
        renderer.render(MODEL_TEMPLATE, _context()),
        renderer.render(MODEL_TEST_TEMPLATE, _context()),
    ]

    lines = collect_messages(results).splitlines()

    assert lines[0].startswith("added: migration/src/")
    assert lines[1].startswith("Migration for `post` added")
    assert lines[2] == "added: tests/models/posts.rs"
