"""Multi-package workspace metadata and version propagation."""

from forgekit.workspace.bump_version import (
    BumpOutcome,
    ManifestChange,
    bump_version,
    plan_version_bump,
    rewrite_manifest,
)
from forgekit.workspace.metadata import (
    PackageInfo,
    WorkspaceMetadata,
    WorkspaceMetadataError,
    load_workspace_metadata,
)
from forgekit.workspace.semver import SemVer, SemVerError

__all__ = [
    "BumpOutcome",
    "ManifestChange",
    "PackageInfo",
    "SemVer",
    "SemVerError",
    "WorkspaceMetadata",
    "WorkspaceMetadataError",
    "bump_version",
    "load_workspace_metadata",
    "plan_version_bump",
    "rewrite_manifest",
]
