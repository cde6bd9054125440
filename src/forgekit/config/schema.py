"""
forgekit — configuration schema and validation.

File: src/forgekit/config/schema.py

Purpose
- Define authoritative configuration defaults and strict validation rules.

What should be included in this file
- Validation rules for required fields, types, enums, and numeric constraints.
- Deterministic deep-merge helpers.

Functional requirements
- Validate config payloads and return structured errors (field path + message).

Non-functional requirements
- Keep rules deterministic and easy to audit.
"""

from __future__ import annotations

import copy
import math
import re
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass
from typing import Any, Final, NotRequired, TypedDict

_STEP_NAME_PATTERN = re.compile(r"^[a-z][a-z0-9_-]*$")

# Config paths that should be normalized relative to config file location.
PATH_FIELDS: Final[tuple[tuple[str, ...], ...]] = (
    ("codegen", "templates_dir"),
    ("fuzzy", "scratch_dir"),
)

# Config paths holding argv lists; env overrides for these are split with shlex.
ARGV_FIELDS: Final[tuple[tuple[str, ...], ...]] = (
    ("codegen", "migrate_command"),
    ("codegen", "entities_command"),
    ("workspace", "starter_dirs"),
    ("ci", "resource_dirs"),
    ("fuzzy", "new_command"),
    ("fuzzy", "generate_command"),
    ("fuzzy", "verify_command"),
)


class CodegenConfig(TypedDict):
    templates_dir: NotRequired[str]
    migrate_command: list[str]
    entities_command: list[str]
    command_timeout_seconds: NotRequired[float]


class WorkspaceConfig(TypedDict):
    manifest_name: str
    starter_dirs: list[str]


class CiStepConfig(TypedDict):
    name: str
    command: list[str]


class CiConfig(TypedDict):
    steps: list[CiStepConfig]
    resource_dirs: list[str]
    max_workers: int
    step_timeout_seconds: NotRequired[float]


class FuzzyConfig(TypedDict):
    scratch_dir: NotRequired[str]
    new_command: list[str]
    generate_command: list[str]
    verify_command: list[str]
    max_resources: int
    step_timeout_seconds: NotRequired[float]


class ObservabilityConfig(TypedDict):
    log_level: str
    log_format: str


class ForgekitConfig(TypedDict):
    codegen: CodegenConfig
    workspace: WorkspaceConfig
    ci: CiConfig
    fuzzy: FuzzyConfig
    observability: ObservabilityConfig


DEFAULT_CONFIG: Final[ForgekitConfig] = {
    "codegen": {
        "migrate_command": ["cargo", "loco-tool", "db", "migrate"],
        "entities_command": ["cargo", "loco-tool", "db", "entities"],
    },
    "workspace": {
        "manifest_name": "Cargo.toml",
        "starter_dirs": ["starters"],
    },
    "ci": {
        "steps": [
            {"name": "fmt", "command": ["cargo", "fmt", "--all", "--", "--check"]},
            {
                "name": "clippy",
                "command": [
                    "cargo",
                    "clippy",
                    "--all-features",
                    "--",
                    "-D",
                    "warnings",
                    "-W",
                    "clippy::pedantic",
                    "-W",
                    "clippy::nursery",
                ],
            },
            {"name": "test", "command": ["cargo", "test", "--all-features", "--all"]},
        ],
        "resource_dirs": ["starters", "examples"],
        "max_workers": 1,
    },
    "fuzzy": {
        "new_command": ["loco", "new"],
        "generate_command": ["cargo", "loco", "generate"],
        "verify_command": ["cargo", "test"],
        "max_resources": 3,
    },
    "observability": {
        "log_level": "INFO",
        "log_format": "console",
    },
}


@dataclass(frozen=True, slots=True)
class ConfigValidationIssue:
    """Single structured validation failure."""

    path: str
    message: str


@dataclass(frozen=True, slots=True)
class ConfigValidationResult:
    """Validation result with normalized config when no issues were found."""

    config: dict[str, Any] | None
    issues: tuple[ConfigValidationIssue, ...]

    @property
    def is_valid(self) -> bool:
        return self.config is not None and not self.issues


class ConfigValidationError(ValueError):
    """Raised when strict config validation fails."""

    def __init__(self, issues: Sequence[ConfigValidationIssue]) -> None:
        self.issues = tuple(issues)
        if not self.issues:
            rendered = "unknown validation failure"
        else:
            rendered = "\n".join(f"- {item.path}: {item.message}" for item in self.issues)
        super().__init__(f"invalid config:\n{rendered}")


class _IssueCollector:
    __slots__ = ("_items",)

    def __init__(self) -> None:
        self._items: list[ConfigValidationIssue] = []

    def add(self, path: str, message: str) -> None:
        self._items.append(ConfigValidationIssue(path=path, message=message))

    def items(self) -> tuple[ConfigValidationIssue, ...]:
        return tuple(self._items)

    @property
    def has_issues(self) -> bool:
        return bool(self._items)


def default_config() -> ForgekitConfig:
    """Return a deep copy of deterministic built-in defaults."""

    return copy.deepcopy(DEFAULT_CONFIG)


def merge_config(base: Mapping[str, object], overlay: Mapping[str, object]) -> dict[str, Any]:
    """Deterministically deep-merge ``overlay`` onto ``base``."""

    merged = _deep_copy_mapping(base)
    _merge_into(merged, overlay)
    return merged


def validate_config(config: Mapping[str, object] | object) -> ConfigValidationResult:
    """Validate config and return structured issues with deterministic paths."""

    issues = _IssueCollector()
    root = _as_object(config, "<root>", issues)
    if root is None:
        return ConfigValidationResult(config=None, issues=issues.items())

    normalized = _validate_root(root, issues)
    if issues.has_issues:
        return ConfigValidationResult(config=None, issues=issues.items())
    return ConfigValidationResult(config=normalized, issues=())


def assert_valid_config(config: Mapping[str, object] | object) -> dict[str, Any]:
    """Validate config and raise ``ConfigValidationError`` on failure."""

    result = validate_config(config)
    if result.config is None:
        raise ConfigValidationError(result.issues)
    return result.config


def _validate_root(payload: Mapping[str, object], issues: _IssueCollector) -> dict[str, Any]:
    allowed = {"codegen", "workspace", "ci", "fuzzy", "observability"}
    _reject_unknown_keys(payload, allowed, "", issues)

    out: dict[str, Any] = {}
    validators: dict[str, Callable[[dict[str, object], str, _IssueCollector], dict[str, Any]]] = {
        "codegen": _validate_codegen,
        "workspace": _validate_workspace,
        "ci": _validate_ci,
        "fuzzy": _validate_fuzzy,
        "observability": _validate_observability,
    }
    for key in sorted(validators):
        raw = payload.get(key)
        if raw is None:
            issues.add(key, "missing required section")
            continue
        section = _as_object(raw, key, issues)
        if section is None:
            continue
        out[key] = validators[key](section, key, issues)
    return out


def _validate_codegen(
    payload: Mapping[str, object], path: str, issues: _IssueCollector
) -> dict[str, Any]:
    required = {"migrate_command", "entities_command"}
    optional = {"templates_dir", "command_timeout_seconds"}
    _reject_unknown_keys(payload, required | optional, path, issues)
    _require_keys(payload, required, path, issues)

    out: dict[str, Any] = {}
    for key in sorted(required):
        if key in payload:
            parsed = _as_argv(payload[key], _join(path, key), issues)
            if parsed is not None:
                out[key] = parsed
    if "templates_dir" in payload:
        parsed_dir = _as_path_text(payload["templates_dir"], _join(path, "templates_dir"), issues)
        if parsed_dir is not None:
            out["templates_dir"] = parsed_dir
    _optional_timeout(payload, "command_timeout_seconds", path, issues, out)
    return out


def _validate_workspace(
    payload: Mapping[str, object], path: str, issues: _IssueCollector
) -> dict[str, Any]:
    allowed = {"manifest_name", "starter_dirs"}
    _reject_unknown_keys(payload, allowed, path, issues)
    _require_keys(payload, allowed, path, issues)

    out: dict[str, Any] = {}
    if "manifest_name" in payload:
        name = _as_str(payload["manifest_name"], _join(path, "manifest_name"), issues)
        if name is not None:
            if "/" in name or "\\" in name:
                issues.add(_join(path, "manifest_name"), "must be a bare file name")
            else:
                out["manifest_name"] = name
    if "starter_dirs" in payload:
        dirs = _as_str_list(payload["starter_dirs"], _join(path, "starter_dirs"), issues)
        if dirs is not None:
            out["starter_dirs"] = dirs
    return out


def _validate_ci(payload: Mapping[str, object], path: str, issues: _IssueCollector) -> dict[str, Any]:
    required = {"steps", "resource_dirs", "max_workers"}
    _reject_unknown_keys(payload, required | {"step_timeout_seconds"}, path, issues)
    _require_keys(payload, required, path, issues)

    out: dict[str, Any] = {}
    if "steps" in payload:
        steps = _validate_ci_steps(payload["steps"], _join(path, "steps"), issues)
        if steps is not None:
            out["steps"] = steps
    if "resource_dirs" in payload:
        dirs = _as_str_list(payload["resource_dirs"], _join(path, "resource_dirs"), issues)
        if dirs is not None:
            out["resource_dirs"] = dirs
    if "max_workers" in payload:
        workers = _as_int(payload["max_workers"], _join(path, "max_workers"), issues, minimum=1)
        if workers is not None:
            out["max_workers"] = workers
    _optional_timeout(payload, "step_timeout_seconds", path, issues, out)
    return out


def _validate_ci_steps(
    value: object, path: str, issues: _IssueCollector
) -> list[dict[str, Any]] | None:
    if not isinstance(value, list) or not value:
        issues.add(path, "expected a non-empty list of steps")
        return None

    steps: list[dict[str, Any]] = []
    seen: set[str] = set()
    for index, raw_step in enumerate(value):
        step_path = f"{path}[{index}]"
        step = _as_object(raw_step, step_path, issues)
        if step is None:
            continue
        _reject_unknown_keys(step, {"name", "command"}, step_path, issues)
        _require_keys(step, {"name", "command"}, step_path, issues)
        name = _as_str(step.get("name"), _join(step_path, "name"), issues) if "name" in step else None
        command = (
            _as_argv(step["command"], _join(step_path, "command"), issues)
            if "command" in step
            else None
        )
        if name is not None and not _STEP_NAME_PATTERN.fullmatch(name):
            issues.add(_join(step_path, "name"), "must match [a-z][a-z0-9_-]*")
            continue
        if name is not None and name in seen:
            issues.add(_join(step_path, "name"), f"duplicate step name {name!r}")
            continue
        if name is not None and command is not None:
            seen.add(name)
            steps.append({"name": name, "command": command})
    return steps


def _validate_fuzzy(
    payload: Mapping[str, object], path: str, issues: _IssueCollector
) -> dict[str, Any]:
    required = {"new_command", "generate_command", "verify_command", "max_resources"}
    optional = {"scratch_dir", "step_timeout_seconds"}
    _reject_unknown_keys(payload, required | optional, path, issues)
    _require_keys(payload, required, path, issues)

    out: dict[str, Any] = {}
    for key in ("generate_command", "new_command"):
        if key in payload:
            parsed = _as_argv(payload[key], _join(path, key), issues)
            if parsed is not None:
                out[key] = parsed
    if "verify_command" in payload:
        # An empty verify command disables the verification step.
        verify = _as_str_list(payload["verify_command"], _join(path, "verify_command"), issues)
        if verify is not None:
            out["verify_command"] = verify
    if "max_resources" in payload:
        parsed_max = _as_int(payload["max_resources"], _join(path, "max_resources"), issues, minimum=1)
        if parsed_max is not None:
            out["max_resources"] = parsed_max
    if "scratch_dir" in payload:
        parsed_dir = _as_path_text(payload["scratch_dir"], _join(path, "scratch_dir"), issues)
        if parsed_dir is not None:
            out["scratch_dir"] = parsed_dir
    _optional_timeout(payload, "step_timeout_seconds", path, issues, out)
    return out


def _validate_observability(
    payload: Mapping[str, object], path: str, issues: _IssueCollector
) -> dict[str, Any]:
    allowed = {"log_level", "log_format"}
    _reject_unknown_keys(payload, allowed, path, issues)
    _require_keys(payload, allowed, path, issues)

    out: dict[str, Any] = {}
    if "log_level" in payload:
        level = _as_enum(
            payload["log_level"],
            _join(path, "log_level"),
            issues,
            allowed_values=("DEBUG", "INFO", "WARNING", "ERROR"),
        )
        if level is not None:
            out["log_level"] = level
    if "log_format" in payload:
        fmt = _as_enum(
            payload["log_format"],
            _join(path, "log_format"),
            issues,
            allowed_values=("console", "json"),
        )
        if fmt is not None:
            out["log_format"] = fmt
    return out


def _optional_timeout(
    payload: Mapping[str, object],
    key: str,
    path: str,
    issues: _IssueCollector,
    out: dict[str, Any],
) -> None:
    if key not in payload:
        return
    parsed = _as_float(payload[key], _join(path, key), issues, minimum=0.0)
    if parsed is None:
        return
    if parsed == 0.0:
        issues.add(_join(path, key), "must be > 0 (omit the key to disable the timeout)")
        return
    out[key] = parsed


def _as_object(value: object, path: str, issues: _IssueCollector) -> dict[str, object] | None:
    if not isinstance(value, Mapping):
        issues.add(path, f"expected object, got {type(value).__name__}")
        return None
    out: dict[str, object] = {}
    for key, item in value.items():
        if not isinstance(key, str):
            issues.add(path, f"object key must be string, got {type(key).__name__}")
            continue
        out[key] = item
    return out


def _as_str(value: object, path: str, issues: _IssueCollector) -> str | None:
    if not isinstance(value, str):
        issues.add(path, f"expected string, got {type(value).__name__}")
        return None
    parsed = value.strip()
    if not parsed:
        issues.add(path, "must not be empty")
        return None
    return parsed


def _as_path_text(value: object, path: str, issues: _IssueCollector) -> str | None:
    parsed = _as_str(value, path, issues)
    if parsed is None:
        return None
    if "\x00" in parsed:
        issues.add(path, "must not contain NUL bytes")
        return None
    return parsed


def _as_str_list(value: object, path: str, issues: _IssueCollector) -> list[str] | None:
    if isinstance(value, (str, bytes)) or not isinstance(value, Sequence):
        issues.add(path, f"expected list of strings, got {type(value).__name__}")
        return None
    out: list[str] = []
    for index, item in enumerate(value):
        parsed = _as_str(item, f"{path}[{index}]", issues)
        if parsed is None:
            return None
        out.append(parsed)
    return out


def _as_argv(value: object, path: str, issues: _IssueCollector) -> list[str] | None:
    parsed = _as_str_list(value, path, issues)
    if parsed is None:
        return None
    if not parsed:
        issues.add(path, "command must name a program")
        return None
    return parsed


def _as_int(
    value: object,
    path: str,
    issues: _IssueCollector,
    *,
    minimum: int | None = None,
) -> int | None:
    if isinstance(value, bool) or not isinstance(value, int):
        issues.add(path, f"expected integer, got {type(value).__name__}")
        return None
    if minimum is not None and value < minimum:
        issues.add(path, f"must be >= {minimum}")
        return None
    return value


def _as_float(
    value: object,
    path: str,
    issues: _IssueCollector,
    *,
    minimum: float | None = None,
) -> float | None:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        issues.add(path, f"expected number, got {type(value).__name__}")
        return None
    parsed = float(value)
    if not math.isfinite(parsed):
        issues.add(path, "must be finite")
        return None
    if minimum is not None and parsed < minimum:
        issues.add(path, f"must be >= {minimum}")
        return None
    return parsed


def _as_enum(
    value: object,
    path: str,
    issues: _IssueCollector,
    *,
    allowed_values: tuple[str, ...],
) -> str | None:
    parsed = _as_str(value, path, issues)
    if parsed is None:
        return None
    if parsed not in allowed_values:
        expected = ", ".join(sorted(allowed_values))
        issues.add(path, f"invalid value {parsed!r}; expected one of: {expected}")
        return None
    return parsed


def _reject_unknown_keys(
    payload: Mapping[str, object],
    allowed: set[str],
    path: str,
    issues: _IssueCollector,
) -> None:
    for key in sorted(payload):
        if key in allowed:
            continue
        issues.add(_join(path, key), "unknown field")


def _require_keys(
    payload: Mapping[str, object],
    required: set[str],
    path: str,
    issues: _IssueCollector,
) -> None:
    for key in sorted(required):
        if key not in payload:
            issues.add(_join(path, key), "missing required field")


def _join(path: str, key: str) -> str:
    if not path:
        return key
    return f"{path}.{key}"


def _merge_into(target: dict[str, Any], overlay: Mapping[str, object]) -> None:
    for key in sorted(overlay):
        value = overlay[key]
        if isinstance(value, Mapping):
            existing = target.get(key)
            if isinstance(existing, dict):
                _merge_into(existing, value)
            else:
                nested: dict[str, Any] = {}
                _merge_into(nested, value)
                target[key] = nested
        else:
            target[key] = _deep_copy_value(value)


def _deep_copy_mapping(value: Mapping[str, object]) -> dict[str, Any]:
    out: dict[str, Any] = {}
    for key in sorted(value):
        out[key] = _deep_copy_value(value[key])
    return out


def _deep_copy_value(value: object) -> Any:
    if isinstance(value, Mapping):
        return {key: _deep_copy_value(item) for key, item in value.items() if isinstance(key, str)}
    if isinstance(value, list):
        return [_deep_copy_value(item) for item in value]
    if isinstance(value, tuple):
        return tuple(_deep_copy_value(item) for item in value)
    return copy.deepcopy(value)


__all__ = [
    "ARGV_FIELDS",
    "ConfigValidationError",
    "ConfigValidationIssue",
    "ConfigValidationResult",
    "DEFAULT_CONFIG",
    "ForgekitConfig",
    "PATH_FIELDS",
    "assert_valid_config",
    "default_config",
    "merge_config",
    "validate_config",
]
