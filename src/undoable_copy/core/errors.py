"""Custom exceptions for undoable-copy.

Step outcomes (bad input, missing source, tool failures) are returned as
``StepResult`` values, never raised. The exceptions here cover faults outside
a step's own contract: a missing executable, an unreadable manifest, or a
trash operation that cannot complete.
"""

from typing import Any


class UndoableCopyError(Exception):
    """Base exception for all undoable-copy errors."""

    pass


class ToolNotFoundError(UndoableCopyError):
    """Raised when an external executable (rsync, chown) cannot be resolved.

    Attributes:
        tool: Name or path of the missing executable
    """

    def __init__(self, tool: str) -> None:
        self.tool = tool
        super().__init__(f"Required program '{tool}' not found in PATH")

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to dictionary for JSON output."""
        return {"error": "tool_not_found", "tool": self.tool}

    def __repr__(self) -> str:
        return f"ToolNotFoundError(tool={self.tool!r})"


class UnknownUndoActionError(UndoableCopyError):
    """Raised when an undo action id has no registered handler."""

    def __init__(self, action: str) -> None:
        self.action = action
        super().__init__(f"No handler registered for undo action '{action}'")

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to dictionary for JSON output."""
        return {"error": "unknown_undo_action", "action": self.action}

    def __repr__(self) -> str:
        return f"UnknownUndoActionError(action={self.action!r})"


class ManifestError(UndoableCopyError):
    """Raised when a transaction manifest is missing or malformed.

    Attributes:
        path: Manifest file path
        reason: Human-readable reason
    """

    def __init__(self, path: str, reason: str) -> None:
        self.path = path
        self.reason = reason
        super().__init__(f"Invalid manifest {path}: {reason}")

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to dictionary for JSON output."""
        return {"error": "manifest_error", "path": self.path, "reason": self.reason}

    def __repr__(self) -> str:
        return f"ManifestError(path={self.path!r}, reason={self.reason!r})"


class TrashError(UndoableCopyError):
    """Raised when moving a path into or out of the trash fails."""

    def __init__(self, path: str, reason: str) -> None:
        self.path = path
        self.reason = reason
        super().__init__(f"Trash operation on {path} failed: {reason}")

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to dictionary for JSON output."""
        return {"error": "trash_error", "path": self.path, "reason": self.reason}

    def __repr__(self) -> str:
        return f"TrashError(path={self.path!r}, reason={self.reason!r})"
