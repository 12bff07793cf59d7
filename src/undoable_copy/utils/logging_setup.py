"""structlog configuration for command-line use.

Library code only ever calls ``structlog.get_logger``; configuring output is
left to the entry point. The CLI routes events to stderr so ``--json``
output on stdout stays machine-readable.
"""

from __future__ import annotations

import logging
import sys

import structlog


def configure_logging(level: int = logging.WARNING, json_logs: bool = False) -> None:
    """Configure structlog to render events on stderr.

    Args:
        level: Minimum level to emit (``logging.INFO`` for --verbose)
        json_logs: Render one JSON object per event instead of console lines
    """
    renderer: structlog.typing.Processor
    if json_logs:
        renderer = structlog.processors.JSONRenderer(sort_keys=True)
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=False)

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=False,
    )
