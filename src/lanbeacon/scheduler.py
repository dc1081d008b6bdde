from __future__ import annotations

import logging
import threading
from typing import Callable, Optional

logger = logging.getLogger(__name__)


class TimerHandle:
    """
    Brief: Cancellable handle for a callback scheduled on a daemon thread.

    Inputs:
      - delay: Seconds until the callback runs.
      - callback: Zero-argument callable.
      - lock: Lock held while the callback runs; shared with transport
        dispatch so that callbacks never interleave.

    Outputs:
      - TimerHandle instance (already started).

    Notes:
      - ``cancel()`` is safe to call any number of times, including from
        inside the callback and after it has fired.
      - A timer whose thread woke up but is still waiting on ``lock`` when
        ``cancel()`` runs will observe the cancelled flag and do nothing.
    """

    def __init__(
        self,
        delay: float,
        callback: Callable[[], None],
        lock: threading.RLock,
    ) -> None:
        self._callback = callback
        self._lock = lock
        self._cancelled = False
        self._timer = threading.Timer(max(0.0, float(delay)), self._fire)
        self._timer.daemon = True
        self._timer.start()

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def cancel(self) -> None:
        self._cancelled = True
        self._timer.cancel()

    def _fire(self) -> None:
        with self._lock:
            if self._cancelled:
                return
            self._cancelled = True
            try:
                self._callback()
            except Exception:  # pragma: no cover
                logger.warning("Scheduled callback %r failed", self._callback, exc_info=True)


class ThreadingScheduler:
    """
    Brief: Scheduler backed by ``threading.Timer``.

    Inputs:
      - lock: Optional re-entrant lock serializing callbacks (a private one
        is created when omitted).

    Outputs:
      - ThreadingScheduler instance exposing ``call_later``.
    """

    def __init__(self, lock: Optional[threading.RLock] = None) -> None:
        self.lock = lock if lock is not None else threading.RLock()

    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle:
        return TimerHandle(delay, callback, self.lock)
