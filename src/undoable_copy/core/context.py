"""Execution context passed to transactional steps.

Collects everything a step would otherwise reach for through process-wide
state: the structured logger, the privilege query, the existence checker,
and the external tool runner.
"""

from __future__ import annotations

import os
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

import structlog

from undoable_copy.fs.paths import path_exists
from undoable_copy.fs.tools import CopyTools, SubprocessTools


def running_as_superuser() -> bool:
    """True when the effective user id is 0."""
    geteuid = getattr(os, "geteuid", None)
    if geteuid is None:
        return False
    return geteuid() == 0


@dataclass
class StepContext:
    """Injected collaborators for a step invocation.

    Attributes:
        logger: structlog logger; bound per call with source/target
        tools: rsync/chown runner
        exists: Existence checker, true for any file type
        is_superuser: Privilege query used to decide on chown
    """

    logger: Any = field(default_factory=lambda: structlog.get_logger("undoable_copy"))
    tools: CopyTools = field(default_factory=SubprocessTools)
    exists: Callable[[str], bool] = path_exists
    is_superuser: Callable[[], bool] = running_as_superuser
