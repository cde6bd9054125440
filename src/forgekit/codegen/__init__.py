"""Code generation: field type mapping, template rendering and migration triggering."""

from forgekit.codegen.context import (
    Column,
    FieldSpec,
    FieldSpecError,
    Reference,
    RenderContext,
    parse_field_specs,
)
from forgekit.codegen.mappings import RELATION_MARKER, Mappings, load_mappings
from forgekit.codegen.migrate import MigrationError, MigrationTrigger
from forgekit.codegen.model import (
    IGNORE_FIELDS,
    AppInfo,
    ModelGenerator,
    UnknownFieldTypeError,
    resolve_fields,
)
from forgekit.codegen.render import ArtifactRenderer, RenderResult, TemplateRenderError

__all__ = [
    "AppInfo",
    "ArtifactRenderer",
    "Column",
    "FieldSpec",
    "FieldSpecError",
    "IGNORE_FIELDS",
    "Mappings",
    "MigrationError",
    "MigrationTrigger",
    "ModelGenerator",
    "RELATION_MARKER",
    "Reference",
    "RenderContext",
    "RenderResult",
    "TemplateRenderError",
    "UnknownFieldTypeError",
    "load_mappings",
    "parse_field_specs",
    "resolve_fields",
]
