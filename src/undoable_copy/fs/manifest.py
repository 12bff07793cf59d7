"""Transaction manifest writer for undoable copies.

This module writes transaction manifests in JSONL format. A manifest records
the request, each phase outcome and the declared undo actions, so that an
interrupted copy can later be recovered or rolled back.
"""

import json
import os
import platform
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from undoable_copy.core.config import resolve_transactions_dir
from undoable_copy.core.constants import MANIFEST_SCHEMA_VERSION
from undoable_copy.core.errors import ManifestError
from undoable_copy.utils.debug import debug


class TxManifestWriter:
    """Writes transaction manifests in JSONL format.

    Each manifest file contains:
    - Header line with metadata (type: "header"), including the request
    - One JSON object per phase outcome (check, fix, undo)
    """

    def __init__(
        self,
        tx_id: str,
        root: Path,
        mode: str,
        request: dict[str, Any],
        resume: bool = False,
    ) -> None:
        """Initialize manifest writer.

        Args:
            tx_id: Unique identifier for this transaction
            root: Root directory whose state dir holds the manifest
            mode: Transaction mode (transactional, keep_partial, dry_run)
            request: Serialized copy request, replayed on recovery
            resume: Append to an existing manifest without a new header
        """
        self.tx_id = tx_id
        self.root = root.resolve()
        self.mode = mode
        self.request = request
        self._manifest_path: Path | None = None
        self._manifest_file: Any = None
        self._header_written = resume

        self._ensure_transactions_directory()

    @property
    def path(self) -> Path:
        if self._manifest_path is None:
            raise RuntimeError("Manifest path not set")
        return self._manifest_path

    def _ensure_transactions_directory(self) -> None:
        """Ensure the transactions directory exists and is writable."""
        tx_dir = resolve_transactions_dir(self.root)

        try:
            tx_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise OSError(
                f"Cannot create transactions directory {tx_dir}: {e}. "
                "Ensure the directory is writable or choose a different root."
            ) from e

        self._manifest_path = tx_dir / f"{self.tx_id}.jsonl"
        debug(f"Transaction manifest will be written to: {self._manifest_path}")

    def write_header(self) -> None:
        """Write manifest header with transaction metadata."""
        if self._header_written:
            return

        header = {
            "type": "header",
            "schema_version": MANIFEST_SCHEMA_VERSION,
            "tx_id": self.tx_id,
            "generated_at": datetime.now(UTC).isoformat(),
            "root": str(self.root),
            "mode": self.mode,
            "request": self.request,
            "system": {"os": platform.system()},
        }

        self._write_line(header)
        self._header_written = True

    def append(self, entry: dict[str, Any]) -> None:
        """Append a phase outcome to the manifest.

        Args:
            entry: Outcome data; ``ts`` is filled in if absent
        """
        if not self._header_written:
            self.write_header()

        entry.setdefault("ts", datetime.now(UTC).isoformat())
        self._write_line(entry)
        debug(
            f"Appended manifest entry: {entry.get('op', 'unknown')} - "
            f"{entry.get('status', 'unknown')}"
        )

    def _write_line(self, data: dict[str, Any]) -> None:
        """Write a JSON line to the manifest file."""
        if self._manifest_file is None:
            self._manifest_file = open(self.path, "a", encoding="utf-8")

        json_line = json.dumps(data, ensure_ascii=False, separators=(",", ":"))
        self._manifest_file.write(json_line + "\n")
        self._manifest_file.flush()
        os.fsync(self._manifest_file.fileno())

    def close(self) -> None:
        """Close the manifest file."""
        if self._manifest_file is not None:
            self._manifest_file.close()
            self._manifest_file = None

    def __enter__(self) -> "TxManifestWriter":
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.close()


def read_manifest(path: Path) -> tuple[dict[str, Any], list[dict[str, Any]]]:
    """Read a manifest back into its header and entries.

    Args:
        path: Manifest file path

    Returns:
        Tuple of (header, entries in file order)

    Raises:
        ManifestError: If the file is missing, empty, or not valid JSONL
    """
    if not path.exists():
        raise ManifestError(str(path), "file does not exist")

    try:
        with open(path, encoding="utf-8") as f:
            records = [json.loads(line) for line in f if line.strip()]
    except (OSError, json.JSONDecodeError) as e:
        raise ManifestError(str(path), str(e)) from e

    if not records or records[0].get("type") != "header":
        raise ManifestError(str(path), "missing header line")

    return records[0], records[1:]
