from __future__ import annotations

import logging
from typing import Callable, Dict, List, Optional

logger = logging.getLogger(__name__)

Listener = Callable[..., None]


class EventEmitter:
    """
    Brief: Minimal synchronous observer registry.

    Inputs:
      - None

    Outputs:
      - EventEmitter instance; listeners are invoked in registration order on
        the calling thread.

    Example use:
        >>> em = EventEmitter()
        >>> seen = []
        >>> _ = em.on("up", seen.append)
        >>> em.emit("up", 1)
        1
        >>> seen
        [1]
    """

    def __init__(self) -> None:
        self._listeners: Dict[str, List[Listener]] = {}

    def on(self, event: str, listener: Listener) -> Listener:
        """Register ``listener`` for ``event`` and return it (for later ``off``)."""

        self._listeners.setdefault(event, []).append(listener)
        return listener

    add_listener = on

    def off(self, event: str, listener: Listener) -> None:
        """Brief: Remove one registration of ``listener``; unknown listeners are ignored."""

        handlers = self._listeners.get(event)
        if not handlers:
            return
        try:
            handlers.remove(listener)
        except ValueError:
            return
        if not handlers:
            self._listeners.pop(event, None)

    remove_listener = off

    def remove_all_listeners(self, event: Optional[str] = None) -> None:
        if event is None:
            self._listeners.clear()
        else:
            self._listeners.pop(event, None)

    def listeners(self, event: str) -> List[Listener]:
        return list(self._listeners.get(event, ()))

    def listener_count(self, event: str) -> int:
        return len(self._listeners.get(event, ()))

    def emit(self, event: str, *args) -> int:
        """Brief: Invoke every listener for ``event`` with ``args``.

        Inputs:
          - event: Event name.
          - *args: Positional arguments passed to each listener.

        Outputs:
          - int: Number of listeners invoked.

        Notes:
          - Iterates over a snapshot, so listeners may add/remove listeners
            (including themselves) while being called.
          - A raising listener is logged and does not prevent the remaining
            listeners from running.
        """

        handlers = list(self._listeners.get(event, ()))
        for handler in handlers:
            try:
                handler(*args)
            except Exception:
                logger.exception("Listener %r for event %r raised", handler, event)
        return len(handlers)
