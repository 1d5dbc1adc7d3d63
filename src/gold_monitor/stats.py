from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime, timedelta

from gold_monitor.types import Sample, StatsResult

PROFIT_NOTIONAL = 10000.0


def _median(sorted_prices: list[float]) -> float:
    n = len(sorted_prices)
    mid = n // 2
    if n % 2 == 1:
        return sorted_prices[mid]
    return (sorted_prices[mid - 1] + sorted_prices[mid]) / 2


def compute_stats(history: Iterable[Sample], window_minutes: int, now: datetime) -> StatsResult:
    """Max/min/mean/median of prices sampled within the trailing window ending at `now`.

    Returns an all-zero StatsResult when no sample falls inside the window.
    """
    since = now - timedelta(minutes=window_minutes)
    prices = [s.price for s in history if s.timestamp >= since]
    if not prices:
        return StatsResult()

    high = prices[0]
    low = prices[0]
    total = 0.0
    for p in prices:
        if p > high:
            high = p
        if p < low:
            low = p
        total += p

    return StatsResult(
        maximum=high,
        minimum=low,
        mean=total / len(prices),
        median=_median(sorted(prices)),
        count=len(prices),
    )


def derived_profit(price: float, reference_price: float, fixed_fee: float) -> float:
    if price <= 0:
        return 0.0
    return PROFIT_NOTIONAL / price * (price - reference_price) - fixed_fee
