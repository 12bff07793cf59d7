"""Transaction chain for running the copy step with undo support.

This module provides the TxChain class, a single-step transaction manager:
it drives a ``CopyStep`` through check and fix, records every outcome and the
declared undo actions in a JSONL manifest, and can later recover an
interrupted copy or roll it back from that manifest. Output goes through
structlog and a Rich console.
"""

import uuid
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Literal

import structlog
from rich.console import Console

from undoable_copy.core.constants import STATUS_OK
from undoable_copy.core.context import StepContext
from undoable_copy.core.copy_step import CopyStep
from undoable_copy.fs.manifest import TxManifestWriter, read_manifest
from undoable_copy.fs.paths import absolute_path
from undoable_copy.fs.trash import TrashCan
from undoable_copy.fs.undo import UndoRegistry, default_registry
from undoable_copy.schemas import CopyRequest, Phase, StepResult, UndoAction

Mode = Literal["transactional", "keep_partial", "dry_run"]
TxStatus = Literal["applied", "noop", "failed", "rolled_back", "dry_run"]


@dataclass
class TxOptions:
    """Options for a copy transaction.

    Attributes:
        root: Directory whose ``.undoable_copy`` state dir holds the manifest
        tx_id: Transaction identifier; generated when omitted
        mode: ``transactional`` undoes a failed fix, ``keep_partial`` leaves
            the partial target for ``recover``, ``dry_run`` stops after check
    """

    root: str
    tx_id: str | None = None
    mode: Mode = "transactional"


@dataclass
class TxReport:
    """Summary of a transaction run."""

    tx_id: str
    status: TxStatus
    message: str
    check: StepResult | None = None
    fix: StepResult | None = None
    undo_actions: list[UndoAction] = field(default_factory=list)
    manifest_path: Path | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "tx_id": self.tx_id,
            "status": self.status,
            "message": self.message,
            "check": self.check.model_dump() if self.check else None,
            "fix": self.fix.model_dump() if self.fix else None,
            "undo_actions": [u.model_dump() for u in self.undo_actions],
            "manifest_path": str(self.manifest_path) if self.manifest_path else None,
        }


class TxChain:
    """Orchestrates a copy step with manifests, undo, and Rich output."""

    def __init__(
        self,
        step: CopyStep | None = None,
        undo: UndoRegistry | None = None,
        logger: Any = None,
        ui: Console | None = None,
        trash_dir: Path | None = None,
    ) -> None:
        """Initialize the chain.

        Args:
            step: Copy step to drive; defaults to one with a real context
            undo: Undo registry; defaults to trashing into the default trash
            logger: Optional structlog logger instance
            ui: Optional Rich console for output
            trash_dir: Trash location for the default registry, created on
                first undo
        """
        self._logger = logger or structlog.get_logger("undoable_copy")
        self._step = step or CopyStep(StepContext(logger=self._logger))
        self._undo = undo
        self._trash_dir = trash_dir
        self._ui = ui or Console()

    @property
    def undo(self) -> UndoRegistry:
        if self._undo is None:
            self._undo = default_registry(TrashCan(self._trash_dir))
        return self._undo

    def apply(self, request: CopyRequest, opts: TxOptions) -> TxReport:
        """Run check then fix for *request*, recording a manifest.

        Source and target are made absolute first so the manifest and the
        declared undo action name the same paths from any working directory.
        """
        request = request.model_copy(
            update={
                "source": absolute_path(request.source),
                "target": absolute_path(request.target),
            }
        )
        tx_id = opts.tx_id or str(uuid.uuid4())
        bound_logger = self._logger.bind(tx_id=tx_id, mode=opts.mode)

        with TxManifestWriter(
            tx_id=tx_id,
            root=Path(opts.root),
            mode=opts.mode,
            request=request.model_dump(exclude={"phase"}),
        ) as manifest:
            manifest.write_header()
            report = self._execute(request, tx_id, opts.mode, manifest)

        bound_logger.info(
            "tx.summary",
            status=report.status,
            check_status=report.check.status if report.check else None,
            fix_status=report.fix.status if report.fix else None,
            manifest_path=str(report.manifest_path),
        )
        self._show_report(report)
        return report

    def recover(self, manifest_path: Path) -> TxReport:
        """Resume the copy recorded in *manifest_path* in recovery mode.

        The target is allowed to exist; rsync picks up where the previous
        fix stopped. The recorded mode decides what happens if fix fails.

        Only a transaction whose first check returned 200 and which has
        neither completed a fix nor been undone is replayed. Anything else
        gets a ``noop`` report, since recovery tolerates an existing target
        and would otherwise claim one this transaction never created.
        """
        header, entries = read_manifest(manifest_path)
        tx_id = header["tx_id"]

        reason = _unrecoverable_reason(entries)
        if reason is not None:
            report = TxReport(
                tx_id=tx_id,
                status="noop",
                message=f"Nothing to recover: {reason}",
                manifest_path=manifest_path,
            )
            self._logger.bind(tx_id=tx_id).info(
                "tx.recover", status=report.status, reason=reason
            )
            self._show_report(report)
            return report

        mode: Mode = header.get("mode", "transactional")
        if mode == "dry_run":
            mode = "transactional"
        request = CopyRequest.model_validate(header["request"]).model_copy(
            update={"is_recovery": True, "dry_run": False}
        )

        with TxManifestWriter(
            tx_id=tx_id,
            root=Path(header["root"]),
            mode=mode,
            request=header["request"],
            resume=True,
        ) as manifest:
            report = self._execute(request, tx_id, mode, manifest)

        self._logger.bind(tx_id=tx_id).info("tx.recover", status=report.status)
        self._show_report(report)
        return report

    def rollback(self, manifest_path: Path) -> TxReport:
        """Invoke the undo actions declared in *manifest_path*, newest first."""
        header, entries = read_manifest(manifest_path)
        tx_id = header["tx_id"]

        undo_actions: list[UndoAction] = []
        for entry in entries:
            if entry.get("op") != Phase.CHECK.value or entry.get("status") != STATUS_OK:
                continue
            for raw in entry.get("undo_actions", []):
                undo = UndoAction.model_validate(raw)
                # a recovery re-declares the same action
                if undo not in undo_actions:
                    undo_actions.append(undo)

        with TxManifestWriter(
            tx_id=tx_id,
            root=Path(header["root"]),
            mode=header.get("mode", "transactional"),
            request=header["request"],
            resume=True,
        ) as manifest:
            self._run_undo(undo_actions, manifest)

        report = TxReport(
            tx_id=tx_id,
            status="rolled_back",
            message=f"Ran {len(undo_actions)} undo action(s)",
            undo_actions=undo_actions,
            manifest_path=manifest_path,
        )
        self._logger.bind(tx_id=tx_id).info(
            "tx.rollback", undo_count=len(undo_actions)
        )
        self._show_report(report)
        return report

    def _execute(
        self,
        request: CopyRequest,
        tx_id: str,
        mode: Mode,
        manifest: TxManifestWriter,
    ) -> TxReport:
        check_request = request.for_phase(
            Phase.CHECK, dry_run=request.dry_run or mode == "dry_run"
        )
        check = self._step.run(check_request)
        manifest.append(_entry(Phase.CHECK.value, check))

        def report(status: TxStatus, message: str, **kw: Any) -> TxReport:
            return TxReport(
                tx_id=tx_id,
                status=status,
                message=message,
                check=check,
                undo_actions=list(check.undo_actions),
                manifest_path=manifest.path,
                **kw,
            )

        if check.is_noop:
            return report("noop", check.message)
        if not check.ok:
            return report("failed", check.message)
        if check_request.dry_run:
            return report("dry_run", check.message)

        fix = self._step.run(request.for_phase(Phase.FIX))
        manifest.append(_entry(Phase.FIX.value, fix))
        if fix.ok:
            return report("applied", check.message, fix=fix)

        if mode == "transactional":
            self._run_undo(check.undo_actions, manifest)
            return report("rolled_back", fix.message, fix=fix)
        return report("failed", fix.message, fix=fix)

    def _run_undo(
        self, undo_actions: list[UndoAction], manifest: TxManifestWriter
    ) -> None:
        for undo in reversed(undo_actions):
            self.undo.invoke(undo)
            manifest.append(
                {"op": "undo", "status": "applied", "undo_action": undo.model_dump()}
            )

    def _show_report(self, report: TxReport) -> None:
        """Show Rich output for a transaction report."""
        if report.status == "applied":
            self._ui.print(f"✅ [green]COPIED[/green] {report.message}")
        elif report.status == "noop":
            self._ui.print(f"➖ [blue]NOOP[/blue] {report.message}")
        elif report.status == "dry_run":
            self._ui.print(f"🔍 [blue]DRY RUN[/blue] {report.message}")
        elif report.status == "rolled_back":
            self._ui.print(f"↩️ [yellow]ROLLED BACK[/yellow] {report.message}")
        else:
            self._ui.print(f"❌ [red]FAILED[/red] {report.message}")


def _entry(op: str, result: StepResult) -> dict[str, Any]:
    return {
        "op": op,
        "status": result.status,
        "message": result.message,
        "undo_actions": [u.model_dump() for u in result.undo_actions],
    }


def _unrecoverable_reason(entries: list[dict[str, Any]]) -> str | None:
    """Why the recorded transaction must not be replayed, or None if it may."""
    checks = [e for e in entries if e.get("op") == Phase.CHECK.value]
    if not checks:
        return "no check was recorded"
    first = checks[0]
    if first.get("status") != STATUS_OK:
        return f"original check returned {first.get('status')}"
    if any(e.get("op") == "undo" for e in entries):
        return "transaction was rolled back"
    if any(
        e.get("op") == Phase.FIX.value and e.get("status") == STATUS_OK
        for e in entries
    ):
        return "copy already completed"
    return None
