"""CLI entrypoints for undoable-copy."""

from undoable_copy.cli.copy import app, run_cli

__all__ = ["app", "run_cli"]
