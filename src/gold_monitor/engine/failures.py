from __future__ import annotations

from collections import deque

AUTO_STOP_WINDOW = 5


class FailureTracker:
    """Consecutive-failure circuit breaker over the last few poll outcomes.

    Not thread-safe on its own; MonitorState owns the lock.
    """

    def __init__(self, window: int = AUTO_STOP_WINDOW) -> None:
        self._window = window
        self._flags: deque[int] = deque(maxlen=window)

    def record_failure(self) -> None:
        self._flags.append(1)

    def record_success(self) -> None:
        self._flags.append(0)

    def should_auto_stop(self) -> bool:
        return len(self._flags) == self._window and sum(self._flags) == self._window

    def clear(self) -> None:
        self._flags.clear()

    def flags(self) -> list[int]:
        return list(self._flags)
