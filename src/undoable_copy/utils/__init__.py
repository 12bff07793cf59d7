"""Utility helpers for undoable-copy."""
