"""undoable-copy: copy file trees with rsync as an undoable transaction step."""

from undoable_copy.core.context import StepContext
from undoable_copy.core.copy_step import CopyStep, cp
from undoable_copy.schemas import CopyRequest, Phase, StepResult, UndoAction

__all__ = [
    "CopyRequest",
    "CopyStep",
    "Phase",
    "StepContext",
    "StepResult",
    "UndoAction",
    "cp",
]

__version__ = "0.1.0"
