"""
forgekit — workspace manifest metadata.

File: src/forgekit/workspace/metadata.py

Purpose
- Read the root manifest of a multi-package workspace and enumerate the manifests
  whose dependency constraints follow the root package's version.

Functional requirements
- The root manifest must declare ``[package] name`` and a version, either literal or
  inherited from ``[workspace.package]``.
- ``[workspace] members`` glob patterns are expanded; ``exclude`` entries are honored.
- Starter packages live in configured directories outside the workspace and are
  flagged so callers can leave them alone.
- Enumeration order is deterministic (sorted by manifest path).
"""

from __future__ import annotations

import tomllib
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass
from pathlib import Path

import structlog

from forgekit.utils.fs import is_within

logger = structlog.get_logger(__name__)

DEFAULT_MANIFEST_NAME = "Cargo.toml"
DEFAULT_STARTER_DIRS: tuple[str, ...] = ("starters",)


class WorkspaceMetadataError(ValueError):
    """Raised when a workspace manifest is missing or malformed."""


@dataclass(frozen=True, slots=True)
class PackageInfo:
    """One package manifest found in the workspace.

    ``version`` is ``None`` for manifests without a literal version
    (virtual manifests or versions inherited from the workspace).
    """

    name: str
    version: str | None
    manifest_path: Path
    is_starter: bool = False


@dataclass(frozen=True, slots=True)
class WorkspaceMetadata:
    root: Path
    root_package: PackageInfo
    members: tuple[PackageInfo, ...]

    @property
    def starters(self) -> tuple[PackageInfo, ...]:
        return tuple(member for member in self.members if member.is_starter)

    def manifests(self, *, include_starters: bool = True) -> tuple[PackageInfo, ...]:
        """Root package first, then members in path order."""

        selected = [
            member
            for member in self.members
            if include_starters or not member.is_starter
        ]
        return (self.root_package, *selected)


def read_manifest(path: Path) -> dict[str, object]:
    try:
        with path.open("rb") as handle:
            payload = tomllib.load(handle)
    except FileNotFoundError as exc:
        raise WorkspaceMetadataError(f"manifest not found: {path}") from exc
    except tomllib.TOMLDecodeError as exc:
        raise WorkspaceMetadataError(f"invalid TOML in {path}: {exc}") from exc
    return payload


def load_workspace_metadata(
    root: Path | str,
    *,
    manifest_name: str = DEFAULT_MANIFEST_NAME,
    starter_dirs: Sequence[str] = DEFAULT_STARTER_DIRS,
) -> WorkspaceMetadata:
    workspace_root = Path(root).resolve()
    root_manifest = workspace_root / manifest_name
    payload = read_manifest(root_manifest)

    package = payload.get("package")
    if not isinstance(package, Mapping):
        raise WorkspaceMetadataError(f"{root_manifest} has no [package] table")
    name = package.get("name")
    if not isinstance(name, str) or not name:
        raise WorkspaceMetadataError(f"{root_manifest} [package] has no name")
    version = _package_version(package, payload)
    if version is None:
        raise WorkspaceMetadataError(f"{root_manifest} [package] has no version")
    root_package = PackageInfo(name=name, version=version, manifest_path=root_manifest)

    starter_roots = [(workspace_root / item).resolve() for item in starter_dirs]
    candidates: list[Path] = []
    workspace = payload.get("workspace")
    if isinstance(workspace, Mapping):
        candidates.extend(_expand_members(workspace_root, workspace, manifest_name))
    candidates.extend(_starter_manifests(workspace_root, starter_dirs, manifest_name))

    seen: set[Path] = {root_manifest}
    members: list[PackageInfo] = []
    for manifest in candidates:
        if manifest in seen:
            continue
        seen.add(manifest)
        # Starter status follows location, even for manifests matched by members globs.
        is_starter = any(is_within(manifest, base) for base in starter_roots)
        members.append(_package_info(manifest, is_starter=is_starter))

    members.sort(key=lambda item: item.manifest_path.as_posix())
    logger.debug(
        "workspace_metadata_loaded",
        root=str(workspace_root),
        package=name,
        version=version,
        members=len(members),
    )
    return WorkspaceMetadata(
        root=workspace_root, root_package=root_package, members=tuple(members)
    )


def _package_version(
    package: Mapping[str, object], payload: Mapping[str, object]
) -> str | None:
    version = package.get("version")
    if isinstance(version, str):
        return version
    if isinstance(version, Mapping) and version.get("workspace") is True:
        workspace = payload.get("workspace")
        if isinstance(workspace, Mapping):
            shared = workspace.get("package")
            if isinstance(shared, Mapping) and isinstance(shared.get("version"), str):
                return str(shared["version"])
    return None


def _package_info(manifest: Path, *, is_starter: bool) -> PackageInfo:
    payload = read_manifest(manifest)
    package = payload.get("package")
    if isinstance(package, Mapping) and isinstance(package.get("name"), str):
        version = package.get("version")
        return PackageInfo(
            name=str(package["name"]),
            version=version if isinstance(version, str) else None,
            manifest_path=manifest,
            is_starter=is_starter,
        )
    # Virtual manifests still carry dependency sections.
    return PackageInfo(
        name=manifest.parent.name, version=None, manifest_path=manifest, is_starter=is_starter
    )


def _expand_members(
    root: Path, workspace: Mapping[str, object], manifest_name: str
) -> list[Path]:
    patterns = _string_list(workspace.get("members"))
    excluded = {(root / item).resolve() for item in _string_list(workspace.get("exclude"))}

    manifests: list[Path] = []
    for pattern in patterns:
        for directory in sorted(root.glob(pattern)):
            resolved = directory.resolve()
            if resolved in excluded or not resolved.is_dir():
                continue
            manifest = resolved / manifest_name
            if manifest.is_file():
                manifests.append(manifest)
    return manifests


def _starter_manifests(
    root: Path, starter_dirs: Iterable[str], manifest_name: str
) -> list[Path]:
    manifests: list[Path] = []
    for starter_dir in starter_dirs:
        base = root / starter_dir
        if not base.is_dir():
            continue
        for directory in sorted(base.iterdir()):
            manifest = directory / manifest_name
            if directory.is_dir() and manifest.is_file():
                manifests.append(manifest.resolve())
    return manifests


def _string_list(value: object) -> list[str]:
    if not isinstance(value, list):
        return []
    return [item for item in value if isinstance(item, str)]


__all__ = [
    "DEFAULT_MANIFEST_NAME",
    "DEFAULT_STARTER_DIRS",
    "PackageInfo",
    "WorkspaceMetadata",
    "WorkspaceMetadataError",
    "load_workspace_metadata",
    "read_manifest",
]
