"""TrashCan: move paths into a recoverable holding area, restore, and empty.

Layout under the trash directory::

    files/<name>.<id>        the trashed file or directory
    info/<name>.<id>.json    {"original_path": ..., "trashed_at": ...}

Trashing an absent path is a no-op, so an undo action can be replayed
safely after an interrupted rollback.
"""

from __future__ import annotations

import json
import shutil
from dataclasses import dataclass
from datetime import UTC, datetime
from pathlib import Path

from undoable_copy.core.config import resolve_trash_dir
from undoable_copy.core.errors import TrashError
from undoable_copy.fs.paths import ensure_parent_dir, path_exists, unique_trash_name
from undoable_copy.utils.debug import debug


@dataclass
class TrashEntry:
    """A single item held in the trash."""

    name: str
    original_path: Path
    trashed_at: datetime
    location: Path


class TrashCan:
    """Trash management: trash, list, restore, and empty."""

    def __init__(self, trash_dir: str | Path | None = None) -> None:
        self.root = resolve_trash_dir(trash_dir)
        self.files_dir = self.root / "files"
        self.info_dir = self.root / "info"
        self.files_dir.mkdir(parents=True, exist_ok=True)
        self.info_dir.mkdir(parents=True, exist_ok=True)

    def trash(self, path: str | Path) -> TrashEntry | None:
        """Move *path* into the trash.

        Args:
            path: File, directory or symlink to trash

        Returns:
            The new entry, or None if nothing existed at *path*

        Raises:
            TrashError: If the move fails
        """
        original = Path(path).absolute()
        if not path_exists(original):
            debug(f"Nothing to trash at {original}")
            return None

        name = unique_trash_name(original)
        location = self.files_dir / name
        trashed_at = datetime.now(UTC)

        # Info first, so a crash mid-move still leaves a restorable record.
        info_path = self.info_dir / f"{name}.json"
        info_path.write_text(
            json.dumps(
                {
                    "original_path": str(original),
                    "trashed_at": trashed_at.isoformat(),
                }
            ),
            encoding="utf-8",
        )
        try:
            shutil.move(str(original), str(location))
        except OSError as e:
            info_path.unlink(missing_ok=True)
            raise TrashError(str(original), str(e)) from e

        debug(f"Trashed {original} -> {location}")
        return TrashEntry(
            name=name,
            original_path=original,
            trashed_at=trashed_at,
            location=location,
        )

    def list_trash(self) -> list[TrashEntry]:
        """List trashed items, oldest first."""
        entries: list[TrashEntry] = []
        for info_path in self.info_dir.glob("*.json"):
            name = info_path.name.removesuffix(".json")
            location = self.files_dir / name
            if not path_exists(location):
                continue
            data = json.loads(info_path.read_text(encoding="utf-8"))
            entries.append(
                TrashEntry(
                    name=name,
                    original_path=Path(data["original_path"]),
                    trashed_at=datetime.fromisoformat(data["trashed_at"]),
                    location=location,
                )
            )
        entries.sort(key=lambda e: e.trashed_at)
        return entries

    def restore(self, original_path: str | Path) -> TrashEntry:
        """Move the most recently trashed copy of *original_path* back.

        Raises:
            TrashError: If nothing is trashed under that path, or the
                original location is occupied
        """
        original = Path(original_path).absolute()
        matches = [e for e in self.list_trash() if e.original_path == original]
        if not matches:
            raise TrashError(str(original), "not in trash")

        entry = matches[-1]
        if path_exists(original):
            raise TrashError(str(original), "restore location is occupied")

        try:
            ensure_parent_dir(original)
            shutil.move(str(entry.location), str(original))
        except OSError as e:
            raise TrashError(str(original), str(e)) from e

        (self.info_dir / f"{entry.name}.json").unlink(missing_ok=True)
        debug(f"Restored {entry.location} -> {original}")
        return entry

    def empty(self) -> int:
        """Permanently delete everything in the trash.

        Returns:
            Number of entries removed
        """
        count = 0
        for entry in self.list_trash():
            if entry.location.is_dir() and not entry.location.is_symlink():
                shutil.rmtree(entry.location)
            else:
                entry.location.unlink()
            (self.info_dir / f"{entry.name}.json").unlink(missing_ok=True)
            count += 1
        return count
