"""Copy a file tree with rsync as an undoable transactional step.

The step follows the two-phase check/fix protocol:

- ``check`` inspects existence only. Source missing is unfixable (412),
  target present is already done (304), otherwise the step is applicable
  (200) and declares a single undo action: trash the target.
- ``fix`` runs ``rsync <opts> source/ target/`` and, when requested and
  running as root, ``chown -Rh owner:group target``.

Only existence is considered; content and sizes are never compared. During
recovery or rollback an existing target is tolerated because a previous fix
may have been interrupted mid-transfer, and rsync resumes it cheaply.
"""

from __future__ import annotations

from typing import Any

from undoable_copy.core.constants import (
    STATUS_BAD_REQUEST,
    STATUS_EXECUTION_FAILED,
    STATUS_NOT_MODIFIED,
    STATUS_OK,
    STATUS_PRECONDITION_FAILED,
)
from undoable_copy.core.context import StepContext
from undoable_copy.schemas import CopyRequest, Phase, StepResult, UndoAction


class CopyStep:
    """Two-phase copy step. Holds no state between calls."""

    def __init__(self, ctx: StepContext | None = None) -> None:
        self._ctx = ctx or StepContext()

    @property
    def ctx(self) -> StepContext:
        return self._ctx

    def run(self, request: CopyRequest) -> StepResult:
        """Dispatch *request* to the phase it names."""
        if not request.source:
            return StepResult(status=STATUS_BAD_REQUEST, message="Please specify source")
        if not request.target:
            return StepResult(status=STATUS_BAD_REQUEST, message="Please specify target")

        if request.phase == Phase.CHECK.value:
            return self.check(request)
        if request.phase == Phase.FIX.value:
            return self.fix(request)
        return StepResult(
            status=STATUS_BAD_REQUEST, message=f"Invalid phase: {request.phase!r}"
        )

    def check(self, request: CopyRequest) -> StepResult:
        """Decide whether the copy is needed and declare how to undo it."""
        source = request.source or ""
        target = request.target or ""
        log = self._ctx.logger.bind(source=source, target=target)

        if not self._ctx.exists(source):
            log.debug("copy.check", status=STATUS_PRECONDITION_FAILED)
            return StepResult(
                status=STATUS_PRECONDITION_FAILED,
                message=f"Source {source} does not exist",
            )

        target_exists = self._ctx.exists(target)
        replaying = request.is_recovery or request.is_rollback
        if target_exists and not replaying:
            if request.dry_run:
                log.info(f"(DRY) Target {target} already exists, nothing to do")
            log.debug("copy.check", status=STATUS_NOT_MODIFIED)
            return StepResult(
                status=STATUS_NOT_MODIFIED,
                message=f"Target {target} already exists",
            )

        # In recovery/rollback an existing target is an interrupted transfer
        # that rsync will resume.
        verb = "synced" if target_exists else "copied"
        if request.dry_run:
            action = "Syncing" if target_exists else "Copying"
            log.info(f"(DRY) {action} {source} -> {target} ...")

        log.debug("copy.check", status=STATUS_OK, target_exists=target_exists)
        return StepResult(
            status=STATUS_OK,
            message=f"{source} needs to be {verb} to {target}",
            undo_actions=[UndoAction.trash(target)],
        )

    def fix(self, request: CopyRequest) -> StepResult:
        """Run rsync, then chown if ownership was requested and permitted."""
        source = request.source or ""
        target = request.target or ""
        log = self._ctx.logger.bind(source=source, target=target)

        log.info(f"Rsync-ing {source} -> {target} ...")
        synced = self._ctx.tools.sync(source, target, request.sync_options)
        if not synced.ok:
            log.warning("copy.fix.rsync_failed", returncode=synced.returncode)
            return StepResult(
                status=STATUS_EXECUTION_FAILED,
                message=f"Can't rsync: {synced.explain()}",
            )

        if request.wants_chown:
            if self._ctx.is_superuser():
                log.info(f"Chown-ing {target} ...")
                chowned = self._ctx.tools.chown(
                    target, request.target_owner, request.target_group
                )
                if not chowned.ok:
                    log.warning("copy.fix.chown_failed", returncode=chowned.returncode)
                    return StepResult(
                        status=STATUS_EXECUTION_FAILED,
                        message=f"Can't chown: {chowned.explain()}",
                    )
            else:
                log.debug("Not running as root, not doing chown")

        return StepResult(status=STATUS_OK, message="OK")


def cp(ctx: StepContext | None = None, **kwargs: Any) -> StepResult:
    """Build a ``CopyRequest`` from keyword arguments and run it.

    Example:
        >>> cp(source="/srv/skel", target="/home/ana", phase="check")
    """
    return CopyStep(ctx).run(CopyRequest(**kwargs))
