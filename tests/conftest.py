"""Pytest configuration and fixtures for undoable-copy tests."""

import shutil
from collections.abc import Callable, Iterator, Sequence
from pathlib import Path

import pytest
import structlog

from undoable_copy.core.context import StepContext
from undoable_copy.fs.tools import ToolResult


class FakeTools:
    """In-process stand-in for rsync/chown.

    ``sync`` merges the source tree into the target with ``copytree`` so the
    resume-over-partial-target behaviour matches rsync's. Setting
    ``sync_returncode`` non-zero still copies when ``copy_on_failure`` is
    set, which simulates a transfer that died half way.
    """

    def __init__(self) -> None:
        self.sync_returncode = 0
        self.sync_stderr = ""
        self.copy_on_failure = False
        self.chown_returncode = 0
        self.chown_stderr = ""
        self.sync_calls: list[tuple[str, str, list[str]]] = []
        self.chown_calls: list[tuple[str, str | None, str | None]] = []

    def sync(self, source: str, target: str, options: Sequence[str]) -> ToolResult:
        self.sync_calls.append((source, target, list(options)))
        if self.sync_returncode == 0 or self.copy_on_failure:
            shutil.copytree(source, target, dirs_exist_ok=True, symlinks=True)
        return ToolResult(
            returncode=self.sync_returncode,
            command=["rsync", *options, source, target],
            stderr=self.sync_stderr,
        )

    def chown(self, path: str, owner: str | None, group: str | None) -> ToolResult:
        self.chown_calls.append((path, owner, group))
        return ToolResult(
            returncode=self.chown_returncode,
            command=["chown", "-Rh", f"{owner or ''}:{group or ''}", path],
            stderr=self.chown_stderr,
        )


@pytest.fixture(autouse=True)
def _reset_structlog() -> Iterator[None]:
    """Undo any structlog configuration a CLI test installed."""
    yield
    structlog.reset_defaults()


@pytest.fixture(autouse=True)
def _isolated_trash(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Point the default trash location inside the test's tmp dir."""
    trash_dir = tmp_path / "trash"
    monkeypatch.setenv("UNDOABLE_COPY_TRASH_DIR", str(trash_dir))
    return trash_dir


@pytest.fixture
def fake_tools() -> FakeTools:
    return FakeTools()


@pytest.fixture
def make_ctx(fake_tools: FakeTools) -> Callable[..., StepContext]:
    """Build a StepContext around ``fake_tools``."""

    def _make(superuser: bool = False) -> StepContext:
        return StepContext(tools=fake_tools, is_superuser=lambda: superuser)

    return _make


@pytest.fixture
def source_tree(tmp_path: Path) -> Path:
    """A small source tree: s/f1 = "foo", s/sub/f2 = "bar"."""
    src = tmp_path / "s"
    (src / "sub").mkdir(parents=True)
    (src / "f1").write_text("foo")
    (src / "sub" / "f2").write_text("bar")
    return src


def tree_contents(root: Path) -> dict[str, bytes]:
    """Map each file's path relative to *root* to its bytes."""
    return {
        str(p.relative_to(root)): p.read_bytes()
        for p in sorted(root.rglob("*"))
        if p.is_file()
    }


@pytest.fixture
def contents() -> Callable[[Path], dict[str, bytes]]:
    return tree_contents
