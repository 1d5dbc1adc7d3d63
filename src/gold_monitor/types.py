from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Literal

Side = Literal["BUY", "SELL"]
MonitorStatus = Literal["IDLE", "RUNNING", "PAUSED"]


@dataclass(frozen=True)
class Sample:
    timestamp: datetime
    price: float


@dataclass(frozen=True)
class StatsResult:
    # All-zero fields mean "no data in window", not a zero price.
    maximum: float = 0.0
    minimum: float = 0.0
    mean: float = 0.0
    median: float = 0.0
    count: int = 0
