"""
forgekit — unit tests for config loading and validation

File: tests/unit/config/test_config_loader.py

Purpose
- Validate deterministic config loading from defaults, TOML, env overrides, and CLI overrides.

What this test file should cover
- Precedence: CLI > env > file > defaults.
- Env var path mapping and type coercion, including argv lists.
- Path normalization relative to the config file.
- Structured validation issues and redacted dumps.
"""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from forgekit.config.loader import ConfigLoadError, dump_effective_config, load_config
from forgekit.config.schema import (
    ConfigValidationError,
    assert_valid_config,
    default_config,
    merge_config,
    validate_config,
)


def _write_config(path: Path, text: str) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")
    return path


def test_defaults_are_valid_without_a_config_file(tmp_path: Path) -> None:
    config = load_config(base_dir=tmp_path, environ={})

    assert config["workspace"]["manifest_name"] == "Cargo.toml"
    assert config["codegen"]["migrate_command"] == ["cargo", "loco-tool", "db", "migrate"]
    assert [step["name"] for step in config["ci"]["steps"]] == ["fmt", "clippy", "test"]
    assert config["observability"] == {"log_level": "INFO", "log_format": "console"}


def test_precedence_cli_over_env_over_file(tmp_path: Path) -> None:
    _write_config(
        tmp_path / "forgekit.toml",
        """
[ci]
max_workers = 2

[observability]
log_level = "WARNING"
""".strip(),
    )

    from_file = load_config(base_dir=tmp_path, environ={})
    from_env = load_config(base_dir=tmp_path, environ={"FORGEKIT_CI_MAX_WORKERS": "4"})
    from_cli = load_config(
        base_dir=tmp_path,
        environ={"FORGEKIT_CI_MAX_WORKERS": "4"},
        cli_overrides={"ci.max_workers": 8},
    )

    assert from_file["ci"]["max_workers"] == 2
    assert from_file["observability"]["log_level"] == "WARNING"
    assert from_env["ci"]["max_workers"] == 4
    assert from_cli["ci"]["max_workers"] == 8


def test_env_argv_values_are_split_like_a_shell(tmp_path: Path) -> None:
    config = load_config(
        base_dir=tmp_path,
        environ={
            "FORGEKIT_CODEGEN_MIGRATE_COMMAND": "cargo run --bin 'db tool' -- migrate",
            "FORGEKIT_FUZZY_VERIFY_COMMAND": "",
        },
    )

    assert config["codegen"]["migrate_command"] == ["cargo", "run", "--bin", "db tool", "--", "migrate"]
    assert config["fuzzy"]["verify_command"] == []


def test_bad_env_integer_is_a_load_error(tmp_path: Path) -> None:
    with pytest.raises(ConfigLoadError, match="FORGEKIT_CI_MAX_WORKERS"):
        load_config(base_dir=tmp_path, environ={"FORGEKIT_CI_MAX_WORKERS": "many"})


def test_explicit_missing_config_file_is_an_error(tmp_path: Path) -> None:
    with pytest.raises(ConfigLoadError, match="config file not found"):
        load_config(tmp_path / "missing.toml", environ={})


def test_invalid_toml_is_an_error(tmp_path: Path) -> None:
    path = _write_config(tmp_path / "forgekit.toml", "[ci\nmax_workers = 1")

    with pytest.raises(ConfigLoadError, match="invalid TOML"):
        load_config(path, environ={})


def test_paths_are_normalized_relative_to_config_file(tmp_path: Path) -> None:
    path = _write_config(
        tmp_path / "conf" / "forgekit.toml",
        """
[codegen]
templates_dir = "../templates"

[fuzzy]
scratch_dir = "scratch"
""".strip(),
    )

    config = load_config(path, environ={})

    assert config["codegen"]["templates_dir"] == (tmp_path / "templates").as_posix()
    assert config["fuzzy"]["scratch_dir"] == (tmp_path / "conf" / "scratch").as_posix()


def test_validation_reports_every_issue_with_paths() -> None:
    candidate = merge_config(
        default_config(),
        {
            "ci": {"max_workers": 0, "unknown": True},
            "observability": {"log_format": "xml"},
            "workspace": {"manifest_name": "nested/Cargo.toml"},
        },
    )

    result = validate_config(candidate)

    assert result.is_valid is False
    paths = {issue.path for issue in result.issues}
    assert {"ci.max_workers", "observability.log_format", "workspace.manifest_name"} <= paths
    with pytest.raises(ConfigValidationError, match="ci.max_workers"):
        assert_valid_config(candidate)


def test_duplicate_ci_step_names_are_rejected() -> None:
    candidate = merge_config(default_config(), {})
    candidate["ci"]["steps"] = [
        {"name": "test", "command": ["cargo", "test"]},
        {"name": "test", "command": ["cargo", "nextest", "run"]},
    ]

    result = validate_config(candidate)

    assert any("duplicate step name" in issue.message for issue in result.issues)


def test_dump_effective_config_is_deterministic_json(tmp_path: Path) -> None:
    config = load_config(base_dir=tmp_path, environ={})

    first = dump_effective_config(config)
    second = dump_effective_config(load_config(base_dir=tmp_path, environ={}))

    assert first == second
    assert json.loads(first)["workspace"]["starter_dirs"] == ["starters"]
