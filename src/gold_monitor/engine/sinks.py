from __future__ import annotations

import logging
import threading
from collections import deque
from datetime import datetime
from typing import Any

from gold_monitor.types import StatsResult

console_logger = logging.getLogger("gold_monitor.console")


class LogBuffer:
    """Operator-facing log: timestamped lines, newest last, bounded length."""

    def __init__(self, *, max_lines: int = 1000) -> None:
        self._lock = threading.Lock()
        self._lines: deque[str] = deque(maxlen=max_lines)

    def append(self, message: str) -> str:
        line = f"{datetime.now().strftime('%Y-%m-%d %H:%M:%S')}: {message}"
        with self._lock:
            self._lines.append(line)
        console_logger.info(message)
        return line

    def lines(self, limit: int | None = None) -> list[str]:
        with self._lock:
            items = list(self._lines)
        if limit is not None:
            return items[-limit:] if limit > 0 else []
        return items


class Dashboard:
    """Latest price, derived profit and window stats for display."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._price: float | None = None
        self._profit: float | None = None
        self._stats: StatsResult | None = None
        self._updated_at: datetime | None = None

    def update(self, *, price: float, profit: float, stats: StatsResult | None) -> None:
        with self._lock:
            self._price = price
            self._profit = profit
            self._stats = stats
            self._updated_at = datetime.now().astimezone()

    def snapshot(self) -> dict[str, Any]:
        with self._lock:
            stats = self._stats
            return {
                "price": self._price,
                "profit": None if self._profit is None else round(self._profit, 2),
                "stats": None
                if stats is None
                else {
                    "max": stats.maximum,
                    "min": stats.minimum,
                    "mean": round(stats.mean, 4),
                    "median": stats.median,
                    "count": stats.count,
                },
                "updated_at": self._updated_at.isoformat() if self._updated_at else None,
            }
