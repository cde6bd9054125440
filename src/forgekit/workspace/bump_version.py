"""
forgekit — workspace version propagation.

File: src/forgekit/workspace/bump_version.py

Purpose
- Move the root package to a new version and rewrite every dependency constraint
  on it across the workspace so all packages agree.

Rewrite rules
- Dependency constraints naming the root package are rewritten in every dependency
  section (``dependencies``, ``dev-dependencies``, ``build-dependencies``,
  ``workspace.dependencies``, target-specific tables) and in every spelling:
  ``name = "1.2.3"``, ``name = { version = "1.2.3", ... }``, the dotted
  ``name.version = "1.2.3"`` and a ``[dependencies.name]`` table with a ``version``
  key. Renamed dependencies (``package = "name"`` inline, in the alias table or as a
  dotted ``alias.package`` key) count as naming the root package.
- A constraint keeps its comparison operator (``^``, ``~``, ``=``, ...); only the
  version after it changes. Multi-comparator ranges such as ``">=0.3, <0.4"`` are
  left as written and reported with a ``workspace_constraint_skipped`` warning.
- The root manifest's own ``[package]`` (and ``[workspace.package]``) version moves too.
- Bytes outside the rewritten version strings are preserved exactly, line endings
  included. Files whose content would not change are never written.

Non-functional requirements
- Not transactional across files; re-running with the same version is a no-op.
"""

from __future__ import annotations

import difflib
import re
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from pathlib import Path

import structlog

from forgekit.utils.fs import atomic_write
from forgekit.workspace.metadata import (
    DEFAULT_MANIFEST_NAME,
    DEFAULT_STARTER_DIRS,
    WorkspaceMetadata,
    load_workspace_metadata,
)
from forgekit.workspace.semver import SemVer

logger = structlog.get_logger(__name__)

_TABLE_HEADER_RE = re.compile(r"^\s*\[(?P<header>[^\[\]]+)\]\s*(?:#.*)?$")
_ARRAY_TABLE_HEADER_RE = re.compile(r"^\s*\[\[")
_KEY_PART = r"(?:[A-Za-z0-9_-]+|\"[^\"]+\"|'[^']+')"
_KEY_PART_RE = re.compile(_KEY_PART)
_KEY_VALUE_RE = re.compile(
    r"^\s*(?P<key>" + _KEY_PART + r"(?:\s*\.\s*" + _KEY_PART + r")*)\s*=\s*(?P<value>.*)$"
)
_QUOTED_RE = re.compile(r"^(?P<quote>[\"'])(?P<text>[^\"']*)(?P=quote)")
_STRING_VALUE_RE = re.compile(r"(?P<prefix>=\s*)(?P<quote>[\"'])(?P<constraint>[^\"']*)(?P=quote)")
_INLINE_VERSION_RE = re.compile(
    r"(?P<prefix>\bversion\s*=\s*)(?P<quote>[\"'])(?P<constraint>[^\"']*)(?P=quote)"
)
_VERSION_KEY_RE = re.compile(
    r"^(?P<prefix>\s*version\s*=\s*)(?P<quote>[\"'])(?P<constraint>[^\"']*)(?P=quote)"
)
_OPERATOR_RE = re.compile(r"^(?P<op>[\^~=<>]*\s*)")

_DEPENDENCY_SECTION_RE = re.compile(r"(?:^|\.)(?:dev-|build-)?dependencies$")
_PACKAGE_SECTIONS = frozenset({"package", "workspace.package"})


@dataclass(frozen=True, slots=True)
class ManifestChange:
    """Planned rewrite of one manifest file."""

    path: Path
    before: str
    after: str

    def diff(self, root: Path | None = None) -> str:
        label = self.path.relative_to(root).as_posix() if root is not None else str(self.path)
        return "".join(
            difflib.unified_diff(
                self.before.splitlines(keepends=True),
                self.after.splitlines(keepends=True),
                fromfile=f"a/{label}",
                tofile=f"b/{label}",
            )
        )


@dataclass(frozen=True, slots=True)
class BumpOutcome:
    package: str
    current: str
    target: SemVer
    confirmed: bool
    changes: tuple[ManifestChange, ...]
    applied: bool

    @property
    def prompt(self) -> str:
        return confirmation_message(self.package, self.current, self.target)


def confirmation_message(package: str, current: str, target: SemVer) -> str:
    return f"upgrading {package} version from {current} to {target}"


def rewrite_manifest(
    text: str,
    package_name: str,
    version: SemVer,
    *,
    bump_own_version: bool = False,
) -> str:
    """Return ``text`` with every constraint on ``package_name`` moved to ``version``."""

    lines = text.splitlines(keepends=True)
    aliases = _renamed_aliases(lines, package_name)

    section = ""
    out: list[str] = []
    for line in lines:
        body = line.rstrip("\r\n")
        ending = line[len(body):]

        if _ARRAY_TABLE_HEADER_RE.match(body):
            section = ""
            out.append(line)
            continue
        header = _TABLE_HEADER_RE.match(body)
        if header is not None:
            section = _normalize_header(header.group("header"))
            out.append(line)
            continue

        out.append(
            _rewrite_line(body, section, package_name, aliases, version, bump_own_version)
            + ending
        )
    return "".join(out)


def plan_version_bump(
    metadata: WorkspaceMetadata,
    version: SemVer,
    *,
    exclude_starters: bool = False,
) -> tuple[ManifestChange, ...]:
    """Compute the manifest rewrites without touching the filesystem."""

    package_name = metadata.root_package.name
    changes: list[ManifestChange] = []
    for info in metadata.manifests(include_starters=not exclude_starters):
        before = _read_text(info.manifest_path)
        after = rewrite_manifest(
            before,
            package_name,
            version,
            bump_own_version=info.manifest_path == metadata.root_package.manifest_path,
        )
        if after != before:
            changes.append(ManifestChange(path=info.manifest_path, before=before, after=after))
    return tuple(changes)


def apply_changes(changes: Sequence[ManifestChange]) -> None:
    for change in changes:
        atomic_write(change.path, change.after)
        logger.info("workspace_manifest_updated", path=str(change.path))


def bump_version(
    root: Path | str,
    version: SemVer,
    *,
    confirm: Callable[[str], bool],
    exclude_starters: bool = False,
    dry_run: bool = False,
    manifest_name: str = DEFAULT_MANIFEST_NAME,
    starter_dirs: Sequence[str] = DEFAULT_STARTER_DIRS,
) -> BumpOutcome:
    """Propagate ``version`` through the workspace at ``root``.

    ``confirm`` receives the "upgrading ..." prompt and must return ``True`` for
    anything to be written; a declined prompt returns an outcome with
    ``confirmed=False`` and no changes. ``dry_run`` plans without prompting or writing.
    """

    metadata = load_workspace_metadata(
        root, manifest_name=manifest_name, starter_dirs=starter_dirs
    )
    package = metadata.root_package.name
    current = metadata.root_package.version or ""

    if not dry_run:
        if not confirm(confirmation_message(package, current, version)):
            logger.info("workspace_bump_declined", package=package, target=str(version))
            return BumpOutcome(
                package=package,
                current=current,
                target=version,
                confirmed=False,
                changes=(),
                applied=False,
            )

    changes = plan_version_bump(metadata, version, exclude_starters=exclude_starters)
    if not dry_run:
        apply_changes(changes)
    logger.info(
        "workspace_bump_finished",
        package=package,
        current=current,
        target=str(version),
        changed_files=len(changes),
        dry_run=dry_run,
        exclude_starters=exclude_starters,
    )
    return BumpOutcome(
        package=package,
        current=current,
        target=version,
        confirmed=not dry_run,
        changes=changes,
        applied=not dry_run,
    )


def _rewrite_line(
    body: str,
    section: str,
    package_name: str,
    aliases: frozenset[tuple[str, str]],
    version: SemVer,
    bump_own_version: bool,
) -> str:
    def replace(match: re.Match[str]) -> str:
        return _replace(match, package_name, version)

    if section in _PACKAGE_SECTIONS:
        if bump_own_version:
            return _VERSION_KEY_RE.sub(replace, body, count=1)
        return body

    table = _dependency_table(section)
    if table is not None:
        if _names_root(table, package_name, aliases):
            return _VERSION_KEY_RE.sub(replace, body, count=1)
        return body

    if not _DEPENDENCY_SECTION_RE.search(section):
        return body

    entry = _KEY_VALUE_RE.match(body)
    if entry is None:
        return body
    key = _split_key(entry.group("key"))
    value = entry.group("value").lstrip()
    quoted = value.startswith(("\"", "'"))

    if len(key) == 2 and key[1] == "version":
        if quoted and _names_root((section, key[0]), package_name, aliases):
            return _STRING_VALUE_RE.sub(replace, body, count=1)
        return body
    if len(key) != 1:
        return body
    if quoted and key[0] == package_name:
        return _STRING_VALUE_RE.sub(replace, body, count=1)
    if value.startswith("{") and (key[0] == package_name or _renames(value, package_name)):
        return _INLINE_VERSION_RE.sub(replace, body, count=1)
    return body


def _renamed_aliases(lines: Sequence[str], package_name: str) -> frozenset[tuple[str, str]]:
    """Collect ``(section, alias)`` pairs whose ``package`` key points at ``package_name``.

    Covers ``[dependencies.alias]`` tables and dotted ``alias.package = ...`` keys,
    which may appear after the alias's ``version`` line.
    """

    found: set[tuple[str, str]] = set()
    section = ""
    for line in lines:
        body = line.rstrip("\r\n")
        if _ARRAY_TABLE_HEADER_RE.match(body):
            section = ""
            continue
        header = _TABLE_HEADER_RE.match(body)
        if header is not None:
            section = _normalize_header(header.group("header"))
            continue
        entry = _KEY_VALUE_RE.match(body)
        if entry is None or _string_value(entry.group("value")) != package_name:
            continue
        key = _split_key(entry.group("key"))
        table = _dependency_table(section)
        if table is not None and key == ("package",):
            found.add(table)
        elif _DEPENDENCY_SECTION_RE.search(section) and len(key) == 2 and key[1] == "package":
            found.add((section, key[0]))
    return frozenset(found)


def _dependency_table(section: str) -> tuple[str, str] | None:
    """Split ``dependencies.name`` style headers into ``(dependency section, name)``."""

    parent, _, name = section.rpartition(".")
    if not parent or not _DEPENDENCY_SECTION_RE.search(parent):
        return None
    return parent, name


def _names_root(
    table: tuple[str, str], package_name: str, aliases: frozenset[tuple[str, str]]
) -> bool:
    return table[1] == package_name or table in aliases


def _renames(inline_table: str, package_name: str) -> bool:
    return re.search(rf"\bpackage\s*=\s*[\"']{re.escape(package_name)}[\"']", inline_table) is not None


def _split_key(raw: str) -> tuple[str, ...]:
    return tuple(part.strip("\"'") for part in _KEY_PART_RE.findall(raw))


def _string_value(raw: str) -> str | None:
    match = _QUOTED_RE.match(raw.strip())
    return match.group("text") if match is not None else None


def _replace(match: re.Match[str], package_name: str, version: SemVer) -> str:
    constraint = match.group("constraint")
    if "," in constraint:
        # Multi-comparator ranges have no single version to move.
        logger.warning(
            "workspace_constraint_skipped",
            package=package_name,
            constraint=constraint,
            reason="multiple comparators",
        )
        return match.group(0)
    operator = _OPERATOR_RE.match(constraint)
    prefix = operator.group("op") if operator is not None else ""
    quote = match.group("quote")
    return f"{match.group('prefix')}{quote}{prefix}{version}{quote}"


def _normalize_header(header: str) -> str:
    parts = [part.strip().strip("\"'") for part in header.split(".")]
    return ".".join(parts)


def _read_text(path: Path) -> str:
    with path.open(encoding="utf-8", newline="") as handle:
        return handle.read()


__all__ = [
    "BumpOutcome",
    "ManifestChange",
    "apply_changes",
    "bump_version",
    "confirmation_message",
    "plan_version_bump",
    "rewrite_manifest",
]
