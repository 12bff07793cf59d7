"""Pydantic schemas for the check/fix copy protocol.

These schemas define the data exchanged between an orchestrator and a
transactional step:
- CopyRequest: one invocation of the copy step
- UndoAction: a declared reversal the orchestrator runs on rollback
- StepResult: the status/message/undo envelope returned by every phase

All schemas use Pydantic v2 for validation and serialization.
"""

from enum import Enum
from typing import Any

from pydantic import BaseModel, Field, field_validator

from undoable_copy.core.constants import (
    DEFAULT_SYNC_OPTIONS,
    STATUS_NOT_MODIFIED,
    SUCCESS_STATUSES,
    TRASH_ACTION,
)


class Phase(str, Enum):
    """Transactional phase selected by the orchestrator.

    Attributes:
        CHECK: Inspect state and declare undo actions; no mutation
        FIX: Perform the copy and optional ownership change
    """

    CHECK = "check"
    FIX = "fix"


class UndoAction(BaseModel):
    """A declared reversal instruction.

    Attributes:
        action: Registered action id (e.g. "trash")
        args: Keyword arguments for the action handler
    """

    action: str
    args: dict[str, str] = Field(default_factory=dict)

    model_config = {"frozen": True}

    @classmethod
    def trash(cls, path: str) -> "UndoAction":
        """Build the undo action that moves *path* into the trash."""
        return cls(action=TRASH_ACTION, args={"path": path})


class CopyRequest(BaseModel):
    """One invocation of the copy step.

    ``source`` and ``target`` are optional at the schema level so that a
    missing value surfaces as a 400 result rather than a validation error.

    Attributes:
        source: Path to copy from; its contents are merged into target
        target: Full destination path (not its parent directory)
        target_owner: Owner to set recursively on target after the copy
        target_group: Group to set recursively on target after the copy
        sync_options: Options passed to rsync, in order
        phase: "check" or "fix"
        is_recovery: Orchestrator is replaying after an interruption
        is_rollback: Orchestrator is replaying during rollback
        dry_run: Only log what check would do
    """

    source: str | None = None
    target: str | None = None
    target_owner: str | None = None
    target_group: str | None = None
    sync_options: list[str] = Field(
        default_factory=lambda: list(DEFAULT_SYNC_OPTIONS)
    )
    phase: str = Phase.CHECK.value
    is_recovery: bool = False
    is_rollback: bool = False
    dry_run: bool = False

    @field_validator("sync_options", mode="before")
    @classmethod
    def coerce_sync_options(cls, value: Any) -> Any:
        """Accept a single option string as a one-element list."""
        if value is None:
            return list(DEFAULT_SYNC_OPTIONS)
        if isinstance(value, str):
            return [value]
        return value

    @field_validator("phase", mode="before")
    @classmethod
    def coerce_phase(cls, value: Any) -> Any:
        if isinstance(value, Phase):
            return value.value
        return value

    @property
    def wants_chown(self) -> bool:
        """True when either ownership field is supplied."""
        return self.target_owner is not None or self.target_group is not None

    def for_phase(self, phase: Phase, **overrides: Any) -> "CopyRequest":
        """Return a copy of this request targeting *phase*."""
        return self.model_copy(update={"phase": phase.value, **overrides})


class StepResult(BaseModel):
    """Outcome of a single check or fix call.

    Attributes:
        status: HTTP-like status (200, 304, 400, 412, 500)
        message: Human-readable description
        undo_actions: Declared reversal actions; only set by a successful check
    """

    status: int
    message: str
    undo_actions: list[UndoAction] = Field(default_factory=list)

    @property
    def ok(self) -> bool:
        """True for 200 and 304."""
        return self.status in SUCCESS_STATUSES

    @property
    def is_noop(self) -> bool:
        return self.status == STATUS_NOT_MODIFIED
