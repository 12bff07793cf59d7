"""Debug utility for undoable-copy.

Provides a single debug() function that can be toggled via the
UNDOABLE_COPY_DEBUG environment variable. Structured events go through
structlog; this is for low-level tracing of tool command lines and trash
bookkeeping.

Usage:
    from undoable_copy.utils.debug import debug

    debug(f"Running: {' '.join(cmd)}")

Environment:
    UNDOABLE_COPY_DEBUG: Set to '1', 'true', 'yes' (case-insensitive) to
                         enable debug output. Any other value or unset
                         disables it.
"""

import os
import sys
from typing import Any

_DEBUG_ENABLED = os.environ.get("UNDOABLE_COPY_DEBUG", "").lower() in (
    "1",
    "true",
    "yes",
)


def debug(msg: Any) -> None:
    """Print debug message to stderr if UNDOABLE_COPY_DEBUG is enabled.

    Args:
        msg: Message to print. Will be converted to string.

    Note:
        The environment variable is read at module import time. Changing it
        afterwards has no effect unless the module is reloaded.
    """
    if _DEBUG_ENABLED:
        print(f"[DEBUG] {msg}", file=sys.stderr)
