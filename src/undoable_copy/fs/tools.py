"""External tool invocation for the copy step.

Wraps ``rsync`` and ``chown`` behind a narrow interface so the two-phase
step logic can run against fakes in tests. Commands are blocking child
processes with no timeout; output is captured for diagnostics.
"""

from __future__ import annotations

import signal
import subprocess
from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Protocol, runtime_checkable

from undoable_copy.core.config import resolve_chown_program, resolve_rsync_program
from undoable_copy.core.constants import CHOWN_OPTIONS
from undoable_copy.core.errors import ToolNotFoundError
from undoable_copy.fs.paths import as_sync_root
from undoable_copy.utils.debug import debug


@dataclass
class ToolResult:
    """Result of an external tool invocation."""

    returncode: int
    command: list[str] = field(default_factory=list)
    stdout: str = ""
    stderr: str = ""

    @property
    def ok(self) -> bool:
        return self.returncode == 0

    def explain(self) -> str:
        """Describe the failure, including the tool's own diagnostics."""
        return explain_child_error(self.returncode, self.stderr)


@runtime_checkable
class CopyTools(Protocol):
    """Mirroring and ownership operations used by the copy step."""

    def sync(self, source: str, target: str, options: Sequence[str]) -> ToolResult:
        ...

    def chown(
        self, path: str, owner: str | None, group: str | None
    ) -> ToolResult:
        ...


def explain_child_error(returncode: int, stderr: str = "") -> str:
    """Render a child process exit status as a human-readable string.

    Args:
        returncode: Exit status as reported by ``subprocess``; negative
            values mean the child was killed by that signal
        stderr: Captured standard error of the child

    Returns:
        e.g. ``"exited with code 23: rsync: change_dir ... failed"``
    """
    if returncode < 0:
        signum = -returncode
        try:
            name = signal.Signals(signum).name
        except ValueError:
            name = str(signum)
        explanation = f"died with signal {name}"
    else:
        explanation = f"exited with code {returncode}"

    detail = stderr.strip()
    if detail:
        explanation += f": {detail}"
    return explanation


def chown_spec(owner: str | None, group: str | None) -> str:
    """Build the ``owner:group`` argument; an empty side leaves it unchanged."""
    return f"{owner or ''}:{group or ''}"


class SubprocessTools:
    """Run rsync and chown as child processes.

    Executables are resolved lazily on first use so a missing ``chown`` only
    matters to requests that actually change ownership.
    """

    def __init__(
        self, rsync_program: str | None = None, chown_program: str | None = None
    ) -> None:
        self._rsync_program = rsync_program
        self._chown_program = chown_program

    @property
    def rsync_program(self) -> str:
        if self._rsync_program is None:
            self._rsync_program = resolve_rsync_program()
        return self._rsync_program

    @property
    def chown_program(self) -> str:
        if self._chown_program is None:
            self._chown_program = resolve_chown_program()
        return self._chown_program

    def sync(self, source: str, target: str, options: Sequence[str]) -> ToolResult:
        cmd = [
            self.rsync_program,
            *options,
            as_sync_root(source),
            as_sync_root(target),
        ]
        return self._run(cmd)

    def chown(
        self, path: str, owner: str | None, group: str | None
    ) -> ToolResult:
        cmd = [self.chown_program, *CHOWN_OPTIONS, chown_spec(owner, group), path]
        return self._run(cmd)

    def _run(self, cmd: list[str]) -> ToolResult:
        debug(f"Running: {' '.join(cmd)}")
        try:
            completed = subprocess.run(
                cmd,
                capture_output=True,
                text=True,
                check=False,
            )
        except FileNotFoundError as e:
            raise ToolNotFoundError(cmd[0]) from e

        debug(f"Exit status {completed.returncode} for {cmd[0]}")
        return ToolResult(
            returncode=completed.returncode,
            command=cmd,
            stdout=completed.stdout or "",
            stderr=completed.stderr or "",
        )
