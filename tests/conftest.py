"""
Brief: Global pytest configuration: per-test 10s timeout and shared fixtures.

Inputs:
  - None

Outputs:
  - None
"""

import heapq
import itertools
import signal
import os
import sys
import pytest

# Ensure 'src' is on sys.path so 'lanbeacon' package is importable in tests
ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), os.pardir))
SRC_DIR = os.path.join(ROOT, "src")
if SRC_DIR not in sys.path:
    sys.path.insert(0, SRC_DIR)


def _alarm_handler(signum, frame):
    """
    Brief: Signal handler that raises TimeoutError when alarm triggers.

    Inputs:
      - signum: signal number (int)
      - frame: current frame (ignored)

    Outputs:
      - None: Raises TimeoutError to fail the test
    """
    raise TimeoutError("Test exceeded 10 seconds")


# Install handler if supported on this platform
if hasattr(signal, "SIGALRM"):
    signal.signal(signal.SIGALRM, _alarm_handler)


class ManualHandle:
    """Cancellable handle returned by ManualScheduler.call_later."""

    def __init__(self, due, callback):
        self.due = due
        self.callback = callback
        self.cancelled = False

    def cancel(self):
        self.cancelled = True


class ManualScheduler:
    """
    Brief: Virtual clock; callbacks only run when a test calls ``advance``.

    Inputs:
      - None

    Outputs:
      - ManualScheduler exposing ``call_later``, ``advance`` and ``pending``.
    """

    def __init__(self):
        self.now = 0.0
        self._queue = []
        self._seq = itertools.count()

    def call_later(self, delay, callback):
        handle = ManualHandle(self.now + max(0.0, float(delay)), callback)
        heapq.heappush(self._queue, (handle.due, next(self._seq), handle))
        return handle

    def advance(self, seconds):
        """Run every callback due within ``seconds``, in due order."""
        target = self.now + float(seconds)
        while self._queue and self._queue[0][0] <= target:
            due, _, handle = heapq.heappop(self._queue)
            self.now = due
            if handle.cancelled:
                continue
            handle.cancelled = True
            handle.callback()
        self.now = target

    def pending(self):
        return [h for _, _, h in self._queue if not h.cancelled]


@pytest.fixture
def scheduler():
    """
    Brief: Provide a fresh ManualScheduler.

    Inputs:
      - None

    Outputs:
      - ManualScheduler
    """
    return ManualScheduler()


@pytest.fixture
def fixed_addresses(monkeypatch):
    """
    Brief: Pin the addresses services advertise so tests never read real NICs.

    Inputs:
      - monkeypatch: pytest fixture

    Outputs:
      - list: The addresses returned by hostinfo.lan_addresses
    """
    from lanbeacon import hostinfo

    addrs = ["192.168.1.10", "fd00::10"]

    def _fake(include_ipv6=False):
        return [a for a in addrs if include_ipv6 or ":" not in a]

    monkeypatch.setattr(hostinfo, "lan_addresses", _fake)
    monkeypatch.setattr(hostinfo, "local_hostname", lambda: "testhost.local")
    return addrs


@pytest.fixture(autouse=True)
def enforce_test_timeout():
    """
    Brief: Enforce a hard 10-second timeout for each test.

    Inputs:
      - None

    Outputs:
      - None: Cancels alarm after test
    """
    if hasattr(signal, "SIGALRM"):
        signal.alarm(10)
        try:
            yield
        finally:
            signal.alarm(0)
    else:
        # Fallback: no-op on platforms without SIGALRM
        yield
