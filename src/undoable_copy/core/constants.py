"""Core constants for undoable-copy.

This module defines constants used throughout the package:
- Status codes returned by transactional steps
- Default rsync options and tool names
- Undo action identifiers
- Environment variable names and on-disk locations
"""

# ============================================================================
# Step Status Codes
# ============================================================================

#: Step applied, or check found work to do
STATUS_OK: int = 200

#: Desired end state already reached; nothing to do
STATUS_NOT_MODIFIED: int = 304

#: Caller error: missing field or unknown phase
STATUS_BAD_REQUEST: int = 400

#: Unfixable state, e.g. source does not exist
STATUS_PRECONDITION_FAILED: int = 412

#: External tool exited non-zero
STATUS_EXECUTION_FAILED: int = 500

#: Statuses the orchestrator treats as success
SUCCESS_STATUSES: frozenset[int] = frozenset({STATUS_OK, STATUS_NOT_MODIFIED})

# ============================================================================
# External Tools
# ============================================================================

#: Default mirroring tool executable
RSYNC_PROGRAM: str = "rsync"

#: Default ownership tool executable
CHOWN_PROGRAM: str = "chown"

#: Archive mode: recursive, preserves links, perms, times, group, owner
DEFAULT_SYNC_OPTIONS: tuple[str, ...] = ("-a",)

#: chown flags: recursive, act on symlinks rather than what they point to
CHOWN_OPTIONS: tuple[str, ...] = ("-Rh",)

# ============================================================================
# Undo Actions
# ============================================================================

#: Undo action that moves a path into the trash can
TRASH_ACTION: str = "trash"

# ============================================================================
# Configuration
# ============================================================================

ENV_RSYNC: str = "UNDOABLE_COPY_RSYNC"
ENV_CHOWN: str = "UNDOABLE_COPY_CHOWN"
ENV_TRASH_DIR: str = "UNDOABLE_COPY_TRASH_DIR"

#: Per-root state directory, holds transaction manifests
STATE_DIR_NAME: str = ".undoable_copy"

#: Manifest schema version written in header lines
MANIFEST_SCHEMA_VERSION: str = "1.0"
