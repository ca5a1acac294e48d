"""
Change notification for the presentation layer.

Listeners are plain callables ``listener(field, source)``. A listener that
raises is logged and does not prevent the others from running.
"""

import logging
from typing import Any, Callable, List

logger = logging.getLogger(__name__)

Listener = Callable[[str, Any], None]


class Observable:
    """Mixin that keeps a list of listeners and notifies them of field changes."""

    def __init__(self):
        self._listeners: List[Listener] = []

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """
        Register a listener.

        Returns:
            A callable that unsubscribes the listener (safe to call twice)
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self, field: str) -> None:
        for listener in list(self._listeners):
            try:
                listener(field, self)
            except Exception:
                logger.exception(f"State listener failed for '{field}'")
