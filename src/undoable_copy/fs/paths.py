"""Path utilities for the copy step and trash can.

This module provides existence checks and path shaping used when driving
rsync and when moving paths into the trash.
"""

import os
import uuid
from pathlib import Path


def path_exists(path: str | os.PathLike[str]) -> bool:
    """Check whether anything exists at *path*.

    Unlike ``os.path.exists`` this is true for dangling symlinks, since a
    link occupies the name whether or not its target exists.

    Args:
        path: Path to check

    Returns:
        True if a file, directory, symlink or special file is present
    """
    return os.path.lexists(path)


def as_sync_root(path: str) -> str:
    """Append a trailing separator so rsync copies directory contents.

    ``rsync -a src/ dst/`` merges the contents of ``src`` into ``dst``;
    without the slash rsync would create ``dst/src``.

    Args:
        path: Source or target path

    Returns:
        Path ending in exactly one separator
    """
    if path.endswith(os.sep):
        return path
    return path + os.sep


def unique_trash_name(original_path: Path) -> str:
    """Generate a collision-free name for a trashed path.

    Args:
        original_path: Path being trashed

    Returns:
        Basename with a short unique suffix, e.g. ``photos.1a2b3c4d``
    """
    name = original_path.name or "root"
    return f"{name}.{uuid.uuid4().hex[:8]}"


def ensure_parent_dir(path: Path) -> None:
    """Ensure parent directory exists for a path.

    Args:
        path: Path whose parent directory should exist

    Raises:
        OSError: If parent directory cannot be created
    """
    parent = path.parent
    if not parent.exists():
        parent.mkdir(parents=True, exist_ok=True)


def absolute_path(path: str | None) -> str | None:
    """Anchor *path* at the current directory.

    A trailing separator survives, so ``as_sync_root`` sees the same shape.
    Empty and missing values pass through for request validation to reject.

    Args:
        path: Path as given by the caller

    Returns:
        Absolute, normalised path, or *path* unchanged if it is falsy
    """
    if not path:
        return path
    resolved = os.path.abspath(path)
    if path.endswith(os.sep):
        return as_sync_root(resolved)
    return resolved
