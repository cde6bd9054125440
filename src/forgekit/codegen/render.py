"""
forgekit — artifact template rendering.

File: src/forgekit/codegen/render.py

Purpose
- Render artifact templates (Jinja2 body + YAML front matter) against a
  ``RenderContext`` and write the result into a project directory.

Template format
- A template renders to ``---`` / YAML header / ``---`` / body. The header keys are
  ``to`` (destination path relative to the project), ``skip_exists`` (leave an
  existing destination untouched) and ``message`` (operator-facing note).

Functional requirements
- Undefined template variables are hard errors.
- Destinations may not escape the project directory.
- Rendering is deterministic for identical contexts.
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

import structlog
import yaml
from jinja2 import Environment, StrictUndefined, TemplateError

from forgekit.codegen.context import RenderContext
from forgekit.utils.fs import atomic_write, is_within

logger = structlog.get_logger(__name__)

MODEL_TEMPLATE = "model.t"
MODEL_TEST_TEMPLATE = "model_test.t"

_TEMPLATE_NAME_RE = re.compile(r"^[A-Za-z0-9_.-]+\.t$")
_FRONT_MATTER_RE = re.compile(r"\A\s*---[ \t]*\n(?P<header>.*?)\n---[ \t]*\n(?P<body>.*)\Z", re.S)
_WORD_BOUNDARY_RE = re.compile(r"[^A-Za-z0-9]+|(?<=[a-z0-9])(?=[A-Z])")


class TemplateRenderError(RuntimeError):
    """Raised when a template cannot be loaded, rendered or written."""


@dataclass(frozen=True, slots=True)
class RenderResult:
    """Outcome of rendering one template."""

    template: str
    path: Path
    written: bool
    messages: tuple[str, ...]


class Renderer(Protocol):
    """Rendering seam used by the model generator; tests substitute spies."""

    def render(self, template: str, context: RenderContext) -> RenderResult: ...


class ArtifactRenderer:
    """Jinja2-backed renderer writing artifacts under ``project_dir``."""

    def __init__(self, project_dir: Path | str, *, templates_dir: Path | str | None = None) -> None:
        root = Path(project_dir).resolve()
        if not root.is_dir():
            raise NotADirectoryError(f"project directory is not a directory: {root}")
        templates = Path(templates_dir) if templates_dir is not None else _bundled_templates_dir()
        resolved_templates = templates.resolve()
        if not resolved_templates.is_dir():
            raise TemplateRenderError(f"template directory does not exist: {resolved_templates}")

        self._project_dir = root
        self._templates_dir = resolved_templates
        self._environment = Environment(
            undefined=StrictUndefined,
            autoescape=False,
            trim_blocks=True,
            lstrip_blocks=True,
            newline_sequence="\n",
            keep_trailing_newline=True,
        )
        self._environment.filters.update(
            snake_case=snake_case,
            pascal_case=pascal_case,
            plural=pluralize,
        )

    @property
    def project_dir(self) -> Path:
        return self._project_dir

    def render_text(self, template: str, variables: Mapping[str, object]) -> str:
        """Render ``template`` to text without touching the project directory."""

        source = self._load_template(template)
        try:
            return self._environment.from_string(source).render(**variables)
        except TemplateError as exc:
            raise TemplateRenderError(f"failed to render template {template}: {exc}") from exc

    def render(self, template: str, context: RenderContext) -> RenderResult:
        rendered = self.render_text(template, context.to_variables())
        header, body = _split_front_matter(template, rendered)

        destination_raw = header.get("to")
        if not isinstance(destination_raw, str) or not destination_raw.strip():
            raise TemplateRenderError(f"template {template} is missing a 'to' destination")
        destination = self._resolve_destination(template, destination_raw.strip())
        relative = destination.relative_to(self._project_dir).as_posix()

        if bool(header.get("skip_exists", False)) and destination.exists():
            logger.info("codegen_artifact_skipped", template=template, path=relative)
            return RenderResult(
                template=template,
                path=destination,
                written=False,
                messages=(f"skipped existing file: {relative}",),
            )

        try:
            destination.parent.mkdir(parents=True, exist_ok=True)
            atomic_write(destination, body)
        except OSError as exc:
            raise TemplateRenderError(f"unable to write {relative}: {exc}") from exc
        logger.info("codegen_artifact_written", template=template, path=relative)

        message = header.get("message")
        messages = [f"added: {relative}"]
        if isinstance(message, str) and message.strip():
            messages.append(message.strip())
        return RenderResult(
            template=template, path=destination, written=True, messages=tuple(messages)
        )

    def _load_template(self, template: str) -> str:
        if not _TEMPLATE_NAME_RE.fullmatch(template):
            raise TemplateRenderError(f"invalid template name: {template!r}")
        path = self._templates_dir / template
        try:
            return path.read_text(encoding="utf-8").replace("\r\n", "\n")
        except FileNotFoundError as exc:
            raise TemplateRenderError(f"template not found: {path}") from exc

    def _resolve_destination(self, template: str, raw: str) -> Path:
        candidate = Path(raw)
        if candidate.is_absolute():
            raise TemplateRenderError(f"template {template} destination must be relative: {raw}")
        destination = (self._project_dir / candidate).resolve()
        if not is_within(destination, self._project_dir):
            raise TemplateRenderError(
                f"template {template} destination escapes the project directory: {raw}"
            )
        return destination


def collect_messages(results: Iterable[RenderResult]) -> str:
    """Join side messages of several renders, preserving render order."""

    lines = [message for result in results for message in result.messages]
    return "".join(f"{line}\n" for line in lines)


def snake_case(value: str) -> str:
    parts = [part for part in _WORD_BOUNDARY_RE.split(value) if part]
    return "_".join(part.lower() for part in parts)


def pascal_case(value: str) -> str:
    parts = [part for part in _WORD_BOUNDARY_RE.split(value) if part]
    return "".join(part[:1].upper() + part[1:].lower() for part in parts)


def pluralize(value: str) -> str:
    """Naive English plural of the last word, good enough for table names."""

    lowered = value.lower()
    if lowered.endswith("s"):
        return value
    if lowered.endswith(("x", "z", "ch", "sh")):
        return f"{value}es"
    if lowered.endswith("y") and lowered[-2:-1] not in {"a", "e", "i", "o", "u"}:
        return f"{value[:-1]}ies"
    return f"{value}s"


def _split_front_matter(template: str, rendered: str) -> tuple[dict[str, object], str]:
    match = _FRONT_MATTER_RE.match(rendered)
    if match is None:
        raise TemplateRenderError(f"template {template} has no '---' front matter header")
    try:
        header = yaml.safe_load(match.group("header"))
    except yaml.YAMLError as exc:
        raise TemplateRenderError(f"template {template} has invalid front matter: {exc}") from exc
    if not isinstance(header, dict):
        raise TemplateRenderError(f"template {template} front matter must be a mapping")
    return header, match.group("body")


def _bundled_templates_dir() -> Path:
    return Path(__file__).resolve().with_name("templates")


__all__ = [
    "ArtifactRenderer",
    "MODEL_TEMPLATE",
    "MODEL_TEST_TEMPLATE",
    "RenderResult",
    "Renderer",
    "TemplateRenderError",
    "collect_messages",
    "pascal_case",
    "pluralize",
    "snake_case",
]
