"""CLI commands for running, recovering, and rolling back copies."""

from __future__ import annotations

import importlib
import json
import logging
from collections.abc import Sequence
from pathlib import Path
from typing import TYPE_CHECKING, Annotated, Any

if TYPE_CHECKING:  # pragma: no cover - typing only
    import typer
    from typer import Typer as TyperType
else:  # pragma: no cover - runtime fallback for typing
    typer = importlib.import_module("typer")
    TyperType = Any

from rich.console import Console

from undoable_copy.chains.tx_chain import TxChain, TxOptions, TxReport
from undoable_copy.core.constants import DEFAULT_SYNC_OPTIONS
from undoable_copy.core.errors import UndoableCopyError
from undoable_copy.fs.trash import TrashCan
from undoable_copy.schemas import CopyRequest
from undoable_copy.utils.logging_setup import configure_logging

app: TyperType = typer.Typer(help="Copy file trees with rsync, with undo support.")
trash_app: TyperType = typer.Typer(help="Inspect and manage the trash.")
app.add_typer(trash_app, name="trash")


def main(
    verbose: Annotated[
        bool, typer.Option("--verbose", "-v", help="Log progress to stderr.")
    ] = False,
    log_json: Annotated[
        bool, typer.Option("--log-json", help="Emit log events as JSON lines.")
    ] = False,
) -> None:
    """Copy file trees with rsync, with undo support."""

    configure_logging(logging.INFO if verbose else logging.WARNING, json_logs=log_json)


app.callback()(main)


OwnerOption = Annotated[
    str | None,
    typer.Option("--owner", help="Set owner of target after copying (root only)."),
]
GroupOption = Annotated[
    str | None,
    typer.Option("--group", help="Set group of target after copying (root only)."),
]
RsyncOptOption = Annotated[
    list[str] | None,
    typer.Option(
        "--rsync-opt",
        help="Rsync option; repeat for several. Defaults to -a.",
    ),
]
RootOption = Annotated[
    Path,
    typer.Option("--root", help="Directory holding the transaction manifest."),
]
DryRunFlag = Annotated[
    bool,
    typer.Option("--dry-run", help="Only report what would be copied."),
]
KeepPartialFlag = Annotated[
    bool,
    typer.Option(
        "--keep-partial",
        help="On failure keep the partial target for 'recover' instead of undoing.",
    ),
]
JsonFlag = Annotated[
    bool,
    typer.Option("--json", help="Emit the transaction report as JSON."),
]
TrashDirOption = Annotated[
    Path | None,
    typer.Option("--trash-dir", help="Override the trash location."),
]


def _make_chain(json_output: bool, trash_dir: Path | None = None) -> TxChain:
    return TxChain(ui=Console(quiet=json_output), trash_dir=trash_dir)


def _finish(report: TxReport, json_output: bool) -> None:
    if json_output:
        typer.echo(json.dumps(report.to_dict(), indent=2, sort_keys=True))
    if report.status == "failed":
        raise typer.Exit(code=1)


def copy(
    source: Annotated[str, typer.Argument(help="Source file tree.")],
    target: Annotated[str, typer.Argument(help="Full target path.")],
    owner: OwnerOption = None,
    group: GroupOption = None,
    rsync_opt: RsyncOptOption = None,
    root: RootOption = Path("."),
    dry_run: DryRunFlag = False,
    keep_partial: KeepPartialFlag = False,
    json_output: JsonFlag = False,
    trash_dir: TrashDirOption = None,
) -> None:
    """Copy SOURCE into TARGET; TARGET is trashed on rollback."""

    request = CopyRequest(
        source=source,
        target=target,
        target_owner=owner,
        target_group=group,
        sync_options=rsync_opt or list(DEFAULT_SYNC_OPTIONS),
    )
    if dry_run:
        mode = "dry_run"
    elif keep_partial:
        mode = "keep_partial"
    else:
        mode = "transactional"

    chain = _make_chain(json_output, trash_dir)
    try:
        report = chain.apply(request, TxOptions(root=str(root), mode=mode))
    except UndoableCopyError as exc:
        typer.secho(str(exc), err=True, fg=typer.colors.RED)
        raise typer.Exit(code=1) from exc
    _finish(report, json_output)


def recover(
    manifest: Annotated[Path, typer.Argument(help="Transaction manifest (.jsonl).")],
    json_output: JsonFlag = False,
    trash_dir: TrashDirOption = None,
) -> None:
    """Resume an interrupted copy from its manifest."""

    chain = _make_chain(json_output, trash_dir)
    try:
        report = chain.recover(manifest)
    except UndoableCopyError as exc:
        typer.secho(str(exc), err=True, fg=typer.colors.RED)
        raise typer.Exit(code=1) from exc
    _finish(report, json_output)


def rollback(
    manifest: Annotated[Path, typer.Argument(help="Transaction manifest (.jsonl).")],
    json_output: JsonFlag = False,
    trash_dir: TrashDirOption = None,
) -> None:
    """Undo a copy by trashing its target."""

    chain = _make_chain(json_output, trash_dir)
    try:
        report = chain.rollback(manifest)
    except UndoableCopyError as exc:
        typer.secho(str(exc), err=True, fg=typer.colors.RED)
        raise typer.Exit(code=1) from exc
    _finish(report, json_output)


def list_trash(trash_dir: TrashDirOption = None) -> None:
    """List trashed paths, oldest first."""

    for entry in TrashCan(trash_dir).list_trash():
        typer.echo(f"{entry.trashed_at.isoformat()}\t{entry.original_path}")


def restore(
    path: Annotated[Path, typer.Argument(help="Original path of the trashed item.")],
    trash_dir: TrashDirOption = None,
) -> None:
    """Move the latest trashed copy of PATH back into place."""

    try:
        entry = TrashCan(trash_dir).restore(path)
    except UndoableCopyError as exc:
        typer.secho(str(exc), err=True, fg=typer.colors.RED)
        raise typer.Exit(code=1) from exc
    typer.secho(f"Restored {entry.original_path}", fg=typer.colors.GREEN)


def empty(trash_dir: TrashDirOption = None) -> None:
    """Permanently delete everything in the trash."""

    count = TrashCan(trash_dir).empty()
    typer.secho(f"Removed {count} item(s) from trash", fg=typer.colors.GREEN)


def run_cli(args: Sequence[str] | None = None) -> None:
    app(args=args)


app.command("cp")(copy)
app.command("recover")(recover)
app.command("rollback")(rollback)
trash_app.command("list")(list_trash)
trash_app.command("restore")(restore)
trash_app.command("empty")(empty)
