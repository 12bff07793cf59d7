"""Registry mapping declared undo action ids to handlers."""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

from undoable_copy.core.constants import TRASH_ACTION
from undoable_copy.core.errors import UnknownUndoActionError
from undoable_copy.fs.trash import TrashCan
from undoable_copy.schemas import UndoAction

UndoHandler = Callable[..., Any]


class UndoRegistry:
    """Resolve and invoke ``UndoAction`` records."""

    def __init__(self) -> None:
        self._handlers: dict[str, UndoHandler] = {}

    def register(self, action: str, handler: UndoHandler) -> None:
        self._handlers[action] = handler

    def __contains__(self, action: str) -> bool:
        return action in self._handlers

    def invoke(self, undo: UndoAction) -> Any:
        """Call the handler for *undo* with its declared arguments.

        Raises:
            UnknownUndoActionError: If no handler is registered
        """
        handler = self._handlers.get(undo.action)
        if handler is None:
            raise UnknownUndoActionError(undo.action)
        return handler(**undo.args)


def default_registry(trash: TrashCan | None = None) -> UndoRegistry:
    """Registry with the ``trash`` action bound to *trash*."""
    can = trash or TrashCan()
    registry = UndoRegistry()
    registry.register(TRASH_ACTION, can.trash)
    return registry
