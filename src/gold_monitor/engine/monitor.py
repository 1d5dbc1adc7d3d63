from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from datetime import UTC, datetime
from typing import Optional

from gold_monitor.config.monitor import ConfigError
from gold_monitor.engine.alerts import AlertDispatcher
from gold_monitor.engine.sinks import Dashboard, LogBuffer
from gold_monitor.engine.state import ConfigSource, MonitorState
from gold_monitor.engine.tasks import BackgroundTasks
from gold_monitor.stats import compute_stats, derived_profit
from gold_monitor.storage.history import HistoryStore, SampleHistory
from gold_monitor.types import MonitorStatus, Sample

logger = logging.getLogger("gold_monitor.monitor")

_IDLE_POLL_SECONDS = 0.1
_CYCLE_ERROR_BACKOFF_SECONDS = 5


def _utcnow() -> datetime:
    return datetime.now(UTC)


class MonitorLoop:
    def __init__(
        self,
        *,
        state: MonitorState,
        config_source: ConfigSource,
        fetch_price: Callable[[], Awaitable[float]],
        store: HistoryStore,
        history: SampleHistory,
        dispatcher: AlertDispatcher,
        log: LogBuffer,
        display: Dashboard,
        tasks: BackgroundTasks,
        fixed_fee: float = 50.0,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._state = state
        self._config_source = config_source
        self._fetch_price = fetch_price
        self._store = store
        self._history = history
        self._dispatcher = dispatcher
        self._log = log
        self._display = display
        self._tasks = tasks
        self._fixed_fee = fixed_fee
        self._clock = clock
        self._cycles = 0

    @property
    def status(self) -> MonitorStatus:
        return self._state.status

    def start(self) -> tuple[bool, str]:
        try:
            self._config_source.current_config()
        except ConfigError as e:
            self._log.append(str(e))
            return False, str(e)
        if not self._state.set_running():
            return True, "已在运行"
        self._log.append("已启动")
        logger.info("monitor_started", extra={"status": "RUNNING"})
        return True, "已启动"

    def pause(self) -> bool:
        if not self._state.set_paused():
            return False
        self._log.append("已暂停")
        logger.info("monitor_paused", extra={"status": "PAUSED"})
        return True

    def toggle(self) -> tuple[bool, str]:
        if self._state.running:
            self.pause()
            return True, "已暂停"
        return self.start()

    async def run_forever(self) -> None:
        while True:
            if not self._state.running:
                await asyncio.sleep(_IDLE_POLL_SECONDS)
                continue
            try:
                sleep_s = await self.run_cycle()
            except asyncio.CancelledError:
                raise
            except Exception as e:
                logger.exception("cycle_failed", extra={"cycle": self._cycles})
                self._log.append(f"错误: {type(e).__name__}: {e}")
                sleep_s = _CYCLE_ERROR_BACKOFF_SECONDS
            if sleep_s:
                await self.sleep_interruptible(sleep_s)

    async def sleep_interruptible(self, seconds: int) -> None:
        # One-second steps so a pause lands within a second.
        for _ in range(int(seconds)):
            if not self._state.running:
                return
            await asyncio.sleep(1)

    async def run_cycle(self) -> Optional[int]:
        """One poll; returns the seconds to sleep before the next, or None after a pause."""
        self._cycles += 1
        try:
            cfg = self._config_source.current_config()
        except ConfigError as e:
            self._log.append(str(e))
            self.pause()
            return None

        try:
            price = await self._fetch_price()
        except Exception as e:
            self._log.append(f"错误: {e}")
            logger.warning("fetch_failed", extra={"cycle": self._cycles}, exc_info=True)
            if self._state.record_failure():
                self._log.append("多次错误，停止运行")
                logger.warning("auto_stopped", extra={"status": "PAUSED", "cycle": self._cycles})
                return None
            return cfg.interval_seconds

        self._state.record_success()
        self._log.append(f"当前价格: {price:.2f}")

        now = self._clock()
        sample = Sample(timestamp=now, price=price)
        self._history.append(sample)
        self._tasks.spawn(self._store.append(sample), name="history_append")

        stats = None
        if cfg.stats_window_minutes > 0:
            stats = compute_stats(self._history, cfg.stats_window_minutes, now)
        profit = derived_profit(price, cfg.buy_avg_price, self._fixed_fee)
        self._display.update(price=price, profit=profit, stats=stats)

        side = self._dispatcher.evaluate(price, cfg)
        if side is None:
            return cfg.interval_seconds

        # Latch: stays paused until the operator starts again.
        self.pause()
        await self._dispatcher.dispatch(side=side, price=price, cfg=cfg)
        return None
