"""Command-line interface router for forgekit."""

from __future__ import annotations

import argparse
import sys
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Final

import structlog

from forgekit.ci import CiOrchestrator, CiStep, format_results
from forgekit.codegen import (
    AppInfo,
    ArtifactRenderer,
    MigrationError,
    MigrationTrigger,
    ModelGenerator,
    TemplateRenderError,
    parse_field_specs,
)
from forgekit.config import (
    ConfigLoadError,
    ConfigValidationError,
    dump_effective_config,
    load_config,
)
from forgekit.fuzzy import FuzzyRunner, Randomizer, Scenario
from forgekit.observability import configure_logging
from forgekit.ui.prompt import confirmation
from forgekit.ui.render import create_renderer
from forgekit.workspace import SemVer, WorkspaceMetadataError, bump_version
from forgekit.workspace.metadata import read_manifest

logger = structlog.get_logger(__name__)

LOG_FORMATS: Final[tuple[str, ...]] = ("console", "json")


@dataclass(frozen=True, slots=True)
class CLIError(RuntimeError):
    """Typed CLI failure with an explicit process exit code."""

    message: str
    exit_code: int = 1

    def __str__(self) -> str:
        return self.message


# ---------------------------------------------------------------------------
# Parser
# ---------------------------------------------------------------------------


def build_parser() -> argparse.ArgumentParser:
    """Build the argparse command router for all supported CLI workflows."""

    parser = argparse.ArgumentParser(
        prog="forgekit",
        description=(
            "forgekit — build-lifecycle tooling for generated applications.\n\n"
            "Common workflows:\n"
            "  forgekit generate model post title:string! author:references\n"
            "  forgekit test --quick          Run CI steps in the workspace root only\n"
            "  forgekit bump-version 0.4.0    Move every package to a new version\n"
            "  forgekit fuzzy --seed 7 scaffold\n"
        ),
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument(
        "--repo-root",
        default=".",
        help="Workspace root directory (default: current working directory).",
    )
    common.add_argument(
        "--config",
        dest="config_path",
        default=None,
        help="Path to forgekit TOML config (default: <repo-root>/forgekit.toml if present).",
    )
    common.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        default=False,
        help="Enable debug logging.",
    )
    common.add_argument(
        "--log-format",
        choices=LOG_FORMATS,
        default=None,
        help="Log output format on stderr (default: from config).",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    # generate --------------------------------------------------------------
    generate_parser = subparsers.add_parser(
        "generate",
        help="Generate application artifacts.",
    )
    generate_kinds = generate_parser.add_subparsers(dest="kind", required=True)
    model_parser = generate_kinds.add_parser(
        "model",
        parents=[common],
        help="Generate a model migration and its test, then migrate the database.",
    )
    model_parser.add_argument("name", help="Model name, e.g. post.")
    model_parser.add_argument(
        "fields",
        nargs="*",
        metavar="FIELD:TYPE",
        help="Ordered fields; use name:references for a relation.",
    )
    model_parser.add_argument(
        "--link",
        action="store_true",
        default=False,
        help="Generate a link (join) table keyed by its references.",
    )
    model_parser.add_argument(
        "--migration-only",
        action="store_true",
        default=False,
        help="Write the artifacts without running migrations.",
    )
    model_parser.add_argument(
        "--app-name",
        default=None,
        help="Application package name (default: [package] name of the project manifest).",
    )
    model_parser.add_argument(
        "--project-dir",
        default=None,
        help="Project directory receiving the artifacts (default: --repo-root).",
    )
    model_parser.set_defaults(handler=_cmd_generate_model)

    # test ------------------------------------------------------------------
    test_parser = subparsers.add_parser(
        "test",
        parents=[common],
        help="Run CI steps across the workspace and its starters/examples.",
    )
    test_parser.add_argument(
        "--quick",
        "-q",
        action="store_true",
        default=False,
        help="Only run the workspace root.",
    )
    test_parser.set_defaults(handler=_cmd_test)

    # bump-version ------------------------------------------------------------
    bump_parser = subparsers.add_parser(
        "bump-version",
        parents=[common],
        help="Bump the root package version in every dependency constraint.",
    )
    bump_parser.add_argument("version", metavar="VERSION", help="Target semantic version.")
    bump_parser.add_argument(
        "--exclude-starters",
        "-e",
        action="store_true",
        default=False,
        help="Leave starter package manifests untouched.",
    )
    bump_parser.add_argument(
        "--dry-run",
        action="store_true",
        default=False,
        help="Print the planned manifest changes without writing.",
    )
    bump_parser.add_argument(
        "--yes",
        "-y",
        action="store_true",
        default=False,
        help="Skip the confirmation prompt.",
    )
    bump_parser.set_defaults(handler=_cmd_bump_version)

    # fuzzy -----------------------------------------------------------------
    fuzzy_parser = subparsers.add_parser(
        "fuzzy",
        parents=[common],
        help="Run a randomized end-to-end generation scenario.",
    )
    fuzzy_parser.add_argument(
        "--seed",
        "-s",
        type=int,
        default=None,
        help="Seed for replaying a previous run (default: random, printed).",
    )
    fuzzy_parser.add_argument(
        "scenario",
        choices=[item.value for item in Scenario],
        help="Scenario to run.",
    )
    fuzzy_parser.set_defaults(handler=_cmd_fuzzy)

    return parser


# ---------------------------------------------------------------------------
# Entrypoints
# ---------------------------------------------------------------------------


def run_cli(argv: Sequence[str] | None = None) -> int:
    """Parse argv, route to a command handler, and return process exit code."""

    parser = build_parser()
    namespace = parser.parse_args(list(argv) if argv is not None else None)
    handler = getattr(namespace, "handler", None)
    if not callable(handler):
        parser.print_help(sys.stderr)
        return 2

    try:
        result = handler(namespace)
    except CLIError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return exc.exit_code
    return int(result)


# ---------------------------------------------------------------------------
# Command handlers
# ---------------------------------------------------------------------------


def _cmd_generate_model(args: argparse.Namespace) -> int:
    repo_root, config = _prepare(args)
    renderer = create_renderer()
    codegen = _section(config, "codegen")

    project_dir = _resolve_dir(args.project_dir, repo_root) if args.project_dir else repo_root
    app_name = args.app_name or _app_name_from_manifest(
        project_dir, _section(config, "workspace")["manifest_name"]
    )

    try:
        fields = parse_field_specs(list(args.fields))
        generator = ModelGenerator(
            renderer=ArtifactRenderer(project_dir, templates_dir=codegen.get("templates_dir")),
            migration=MigrationTrigger(
                migrate_command=codegen["migrate_command"],
                entities_command=codegen["entities_command"],
                timeout_seconds=codegen.get("command_timeout_seconds"),
            ),
        )
        messages = generator.generate(
            args.name,
            fields,
            AppInfo(app_name=app_name),
            project_dir=project_dir,
            is_link=bool(args.link),
            migration_only=bool(args.migration_only),
        )
    except ValueError as exc:
        raise CLIError(str(exc), exit_code=2) from exc
    except MigrationError as exc:
        raise CLIError(str(exc), exit_code=3) from exc
    except TemplateRenderError as exc:
        raise CLIError(str(exc), exit_code=1) from exc

    renderer.block(messages)
    return 0


def _cmd_test(args: argparse.Namespace) -> int:
    repo_root, config = _prepare(args)
    renderer = create_renderer()
    ci = _section(config, "ci")
    manifest_name = _section(config, "workspace")["manifest_name"]

    orchestrator = CiOrchestrator(
        steps=[CiStep.from_mapping(step) for step in ci["steps"]],
        resource_dirs=ci["resource_dirs"],
        manifest_name=manifest_name,
        max_workers=ci["max_workers"],
        timeout_seconds=ci.get("step_timeout_seconds"),
    )
    renderer.kv("running in", repo_root)
    if args.quick:
        results = [orchestrator.run(repo_root)]
    else:
        results = orchestrator.all_resources(repo_root)
    renderer.block(format_results(results, root=repo_root))
    return 0 if all(result.passed for result in results) else 1


def _cmd_bump_version(args: argparse.Namespace) -> int:
    repo_root, config = _prepare(args)
    renderer = create_renderer()
    workspace = _section(config, "workspace")

    try:
        target = SemVer.parse(args.version)
        outcome = bump_version(
            repo_root,
            target,
            confirm=(lambda _message: True) if args.yes else confirmation,
            exclude_starters=bool(args.exclude_starters),
            dry_run=bool(args.dry_run),
            manifest_name=workspace["manifest_name"],
            starter_dirs=workspace["starter_dirs"],
        )
    except (ValueError, WorkspaceMetadataError) as exc:
        raise CLIError(str(exc), exit_code=2) from exc

    if args.dry_run:
        renderer.text(outcome.prompt)
        for change in outcome.changes:
            renderer.block(change.diff(repo_root))
        if not outcome.changes:
            renderer.text("no manifest changes needed")
        return 0
    if not outcome.confirmed:
        renderer.text("version bump cancelled")
        return 0
    if not outcome.changes:
        renderer.text(f"all manifests already at {outcome.target}")
        return 0
    renderer.section("Updated manifests:")
    renderer.items([_relative(change.path, repo_root) for change in outcome.changes])
    return 0


def _cmd_fuzzy(args: argparse.Namespace) -> int:
    _repo_root, config = _prepare(args)
    renderer = create_renderer()
    fuzzy = _section(config, "fuzzy")

    try:
        randomizer = Randomizer(args.seed)
    except ValueError as exc:
        raise CLIError(str(exc), exit_code=2) from exc
    renderer.kv("seed", randomizer.seed)

    scratch_raw = fuzzy.get("scratch_dir")
    runner = FuzzyRunner(
        new_command=fuzzy["new_command"],
        generate_command=fuzzy["generate_command"],
        verify_command=fuzzy["verify_command"],
        max_resources=fuzzy["max_resources"],
        timeout_seconds=fuzzy.get("step_timeout_seconds"),
    )
    result = runner.run_scenario(
        Scenario(args.scenario),
        randomizer,
        Path(scratch_raw) if scratch_raw else None,
    )
    for step in result.steps:
        renderer.text(f"  {step.name}: exit {step.returncode}")
    if result.error is not None:
        raise CLIError(
            f"step failed (replay with --seed {result.seed}): {result.error}", exit_code=3
        )
    renderer.text(f"scenario {result.scenario.value} passed")
    return 0


# ---------------------------------------------------------------------------
# Helpers: config, logging, paths
# ---------------------------------------------------------------------------


def _prepare(args: argparse.Namespace) -> tuple[Path, dict[str, Any]]:
    """Resolve the repo root, load effective config and configure logging."""

    repo_root = _repo_root(args)
    overrides: dict[str, object] = {}
    if args.log_format is not None:
        overrides["observability.log_format"] = args.log_format
    if args.verbose:
        overrides["observability.log_level"] = "DEBUG"

    try:
        config = load_config(args.config_path, base_dir=repo_root, cli_overrides=overrides)
    except (ConfigLoadError, ConfigValidationError) as exc:
        raise CLIError(str(exc), exit_code=2) from exc

    observability = _section(config, "observability")
    configure_logging(level=observability["log_level"], fmt=observability["log_format"])
    logger.debug(
        "cli_command_started",
        command=args.command,
        repo_root=str(repo_root),
        effective_config=dump_effective_config(config),
    )
    return repo_root, config


def _repo_root(args: argparse.Namespace) -> Path:
    candidate = Path(args.repo_root).expanduser().resolve()
    if not candidate.is_dir():
        raise CLIError(f"repo root is not a directory: {candidate}", exit_code=2)
    return candidate


def _resolve_dir(raw: str, repo_root: Path) -> Path:
    candidate = Path(raw).expanduser()
    resolved = candidate.resolve() if candidate.is_absolute() else (repo_root / candidate).resolve()
    if not resolved.is_dir():
        raise CLIError(f"project directory is not a directory: {resolved}", exit_code=2)
    return resolved


def _app_name_from_manifest(project_dir: Path, manifest_name: str) -> str:
    try:
        manifest = read_manifest(project_dir / manifest_name)
    except WorkspaceMetadataError as exc:
        raise CLIError(f"{exc}; pass --app-name explicitly", exit_code=2) from exc
    package = manifest.get("package")
    name = package.get("name") if isinstance(package, Mapping) else None
    if not isinstance(name, str) or not name:
        raise CLIError(
            f"{project_dir / manifest_name} has no [package] name; pass --app-name explicitly",
            exit_code=2,
        )
    return name.replace("-", "_")


def _section(config: Mapping[str, Any], name: str) -> dict[str, Any]:
    section = config.get(name)
    if not isinstance(section, dict):
        raise CLIError(f"missing config section: {name}", exit_code=2)
    return section


def _relative(path: Path, root: Path) -> str:
    try:
        return path.relative_to(root).as_posix()
    except ValueError:
        return str(path)


__all__ = ["CLIError", "build_parser", "run_cli"]
