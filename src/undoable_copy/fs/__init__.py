"""Filesystem collaborators for the copy step.

This package provides the rsync/chown tool runner, the trash can used by
undo actions, the undo registry, and the JSONL transaction manifest.
"""

from undoable_copy.fs.manifest import TxManifestWriter, read_manifest
from undoable_copy.fs.paths import absolute_path, as_sync_root, path_exists
from undoable_copy.fs.tools import (
    CopyTools,
    SubprocessTools,
    ToolResult,
    explain_child_error,
)
from undoable_copy.fs.trash import TrashCan, TrashEntry
from undoable_copy.fs.undo import UndoRegistry, default_registry

__all__ = [
    "CopyTools",
    "SubprocessTools",
    "ToolResult",
    "TrashCan",
    "TrashEntry",
    "TxManifestWriter",
    "UndoRegistry",
    "absolute_path",
    "as_sync_root",
    "default_registry",
    "explain_child_error",
    "path_exists",
    "read_manifest",
]
