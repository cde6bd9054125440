"""
forgekit — filesystem utilities

File: src/forgekit/utils/fs.py

Purpose
- Provide safe, minimal filesystem helpers for atomic writes, path containment and
  scoped scratch directories.

Functional requirements
- Atomic writes use temp files in the destination directory and replace in a single step.
- Each scratch run gets a fresh subdirectory of the configured base; only that
  subdirectory is removed, on every exit path. Removal failures are logged, never
  raised over the body's own outcome.
"""

from __future__ import annotations

import contextlib
import os
import shutil
import tempfile
from contextlib import contextmanager
from pathlib import Path
from typing import TYPE_CHECKING

import structlog

if TYPE_CHECKING:
    from collections.abc import Iterator

PathLike = str | os.PathLike[str]

logger = structlog.get_logger(__name__)

__all__ = [
    "atomic_write",
    "is_within",
    "scratch_directory",
]


def atomic_write(path: PathLike, data: bytes | str, *, encoding: str = "utf-8") -> None:
    """
    Atomically write ``data`` to ``path``.

    The write strategy is:
    1. create temp file in the same directory,
    2. write + flush + fsync file data,
    3. replace target via ``os.replace``.
    """

    target = Path(path)
    target_parent = target.parent.resolve(strict=True)
    if not target_parent.is_dir():
        raise NotADirectoryError(f"{target_parent!s} is not a directory")

    fd, temp_name = tempfile.mkstemp(
        prefix=f".{target.name}.",
        suffix=".tmp",
        dir=str(target_parent),
    )
    temp_path = Path(temp_name)

    try:
        if isinstance(data, bytes):
            with os.fdopen(fd, "wb") as file_handle:
                file_handle.write(data)
                file_handle.flush()
                os.fsync(file_handle.fileno())
        else:
            # newline="" keeps the caller's line endings byte-for-byte.
            with os.fdopen(fd, "w", encoding=encoding, newline="") as file_handle:
                file_handle.write(data)
                file_handle.flush()
                os.fsync(file_handle.fileno())

        if target.exists():
            with contextlib.suppress(OSError):
                os.chmod(temp_path, target.stat().st_mode & 0o7777)
        os.replace(temp_path, target)
    except Exception:
        with contextlib.suppress(OSError):
            temp_path.unlink(missing_ok=True)
        raise


def is_within(child: PathLike, parent: PathLike) -> bool:
    """Return ``True`` if ``child`` resolves inside resolved ``parent``.

    ``child`` does not need to exist yet.
    """

    resolved_parent = Path(parent).resolve()
    resolved_child = Path(child).resolve()
    try:
        resolved_child.relative_to(resolved_parent)
    except ValueError:
        return False
    return True


@contextmanager
def scratch_directory(base: PathLike, *, prefix: str = "run-") -> Iterator[Path]:
    """Yield a fresh run directory under ``base`` and remove it on exit.

    Existing content of ``base`` is never touched. ``base`` itself is removed
    afterwards only when this call created it and nothing else was left inside.
    """

    root = Path(base)
    created = not root.exists()
    root.mkdir(parents=True, exist_ok=True)
    scratch = Path(tempfile.mkdtemp(prefix=prefix, dir=root))
    try:
        yield scratch
    finally:
        try:
            shutil.rmtree(scratch)
        except OSError as exc:
            logger.warning("scratch_cleanup_failed", path=str(scratch), error=str(exc))
        else:
            if created:
                with contextlib.suppress(OSError):
                    root.rmdir()
