"""Helpers for resolving tool locations and state directories."""

from __future__ import annotations

import os
import shutil
from pathlib import Path

from undoable_copy.core.constants import (
    CHOWN_PROGRAM,
    ENV_CHOWN,
    ENV_RSYNC,
    ENV_TRASH_DIR,
    RSYNC_PROGRAM,
    STATE_DIR_NAME,
)
from undoable_copy.core.errors import ToolNotFoundError

__all__ = [
    "resolve_chown_program",
    "resolve_program",
    "resolve_rsync_program",
    "resolve_transactions_dir",
    "resolve_trash_dir",
]


def resolve_program(name: str, env_var: str | None = None) -> str:
    """Resolve an executable, honouring an environment override.

    Args:
        name: Program name to look up on PATH.
        env_var: Optional environment variable holding an explicit path.

    Returns:
        Absolute path to the executable.

    Raises:
        ToolNotFoundError: If the program cannot be found.
    """

    chosen = os.getenv(env_var) if env_var else None
    candidate = chosen or name
    resolved = shutil.which(candidate)
    if resolved is None:
        raise ToolNotFoundError(candidate)
    return resolved


def resolve_rsync_program() -> str:
    return resolve_program(RSYNC_PROGRAM, ENV_RSYNC)


def resolve_chown_program() -> str:
    return resolve_program(CHOWN_PROGRAM, ENV_CHOWN)


def resolve_trash_dir(trash_dir: str | Path | None = None) -> Path:
    """Resolve the on-disk trash location.

    Args:
        trash_dir: Optional explicit directory.

    Returns:
        Absolute trash directory; created if missing.
    """

    chosen: str | Path | None = trash_dir
    env_path = os.getenv(ENV_TRASH_DIR)
    if chosen is None and env_path:
        chosen = env_path
    if chosen is None:
        data_home = os.getenv("XDG_DATA_HOME") or Path.home() / ".local" / "share"
        chosen = Path(data_home) / "undoable-copy" / "trash"

    resolved = Path(chosen).expanduser().resolve()
    resolved.mkdir(parents=True, exist_ok=True)
    return resolved


def resolve_transactions_dir(root: str | Path) -> Path:
    """Return the manifest directory for transactions rooted at *root*."""

    return Path(root).expanduser().resolve() / STATE_DIR_NAME / "transactions"
