from __future__ import annotations

import asyncio
import logging
from contextlib import suppress
from dataclasses import dataclass, field
from datetime import timedelta
from typing import Any

from gold_monitor.config.monitor import ConfigForm
from gold_monitor.engine.alerts import AlertDispatcher, LocalAlert, build_local_alert
from gold_monitor.engine.monitor import MonitorLoop
from gold_monitor.engine.sinks import Dashboard, LogBuffer
from gold_monitor.engine.state import ConfigSource, MonitorState
from gold_monitor.engine.tasks import BackgroundTasks
from gold_monitor.notifications import Notifier, build_notifier
from gold_monitor.settings import Settings
from gold_monitor.sources.jijinhao import JijinhaoQuoteClient
from gold_monitor.storage.history import HistoryStore, SampleHistory

logger = logging.getLogger("gold_monitor.runtime")

_TASK_LABELS = {
    "history_append": "历史记录写入失败",
    "notify": "通知失败",
}


def form_from_settings(settings: Settings) -> ConfigForm:
    return ConfigForm(
        buy_avg_price=settings.buy_avg_price,
        target_buy_price=settings.target_buy_price,
        target_sell_price=settings.target_sell_price,
        interval_seconds=settings.interval_seconds,
        stats_window_minutes=settings.stats_window_minutes,
        notify_enabled=settings.notify_enabled,
        notify_key=settings.notify_key,
    )


@dataclass
class MonitorRuntime:
    loop: MonitorLoop
    state: MonitorState
    config_source: ConfigSource
    log: LogBuffer
    display: Dashboard
    tasks: BackgroundTasks
    store: HistoryStore
    closers: list[Any] = field(default_factory=list)
    _task: asyncio.Task[None] | None = field(default=None, init=False, repr=False)

    def launch(self) -> asyncio.Task[None]:
        self._task = asyncio.create_task(self.loop.run_forever(), name="monitor_loop")
        return self._task

    async def aclose(self) -> None:
        if self._task is not None:
            self._task.cancel()
            with suppress(asyncio.CancelledError):
                await self._task
            self._task = None
        await self.tasks.drain()
        for closer in self.closers:
            await closer.aclose()
        await self.store.aclose()


async def build_runtime(
    settings: Settings,
    *,
    form: ConfigForm | None = None,
    quote_client: Any | None = None,
    notifier: Notifier | None = None,
    local_alert: LocalAlert | None = None,
) -> MonitorRuntime:
    """Open storage, seed the in-memory history and wire the monitor.

    Raises HistoryStoreError when the store cannot be opened.
    """
    store = HistoryStore(database_url=settings.database_url)
    await store.open()
    samples = await store.load(retention=timedelta(days=settings.history_retention_days))
    history = SampleHistory(
        retention=timedelta(days=settings.memory_retention_days),
        samples=samples,
    )
    logger.info("history_loaded", extra={"rows": len(samples)})

    log = LogBuffer(max_lines=settings.max_log_lines)

    def _report(name: str, exc: BaseException) -> None:
        log.append(f"{_TASK_LABELS.get(name, name)}：【{exc}】")

    tasks = BackgroundTasks(on_error=_report)
    closers: list[Any] = []
    if quote_client is None:
        quote_client = JijinhaoQuoteClient(
            url=settings.quote_url,
            product=settings.quote_product,
            timeout_seconds=settings.quote_timeout_seconds,
        )
        closers.append(quote_client)
    if notifier is None:
        notifier = build_notifier(settings)
        closers.append(notifier)

    state = MonitorState()
    config_source = ConfigSource(form if form is not None else form_from_settings(settings))
    display = Dashboard()
    dispatcher = AlertDispatcher(
        notifier=notifier,
        local_alert=local_alert or build_local_alert(settings.alert_mode),
        log=log,
        tasks=tasks,
    )
    loop = MonitorLoop(
        state=state,
        config_source=config_source,
        fetch_price=quote_client.fetch_price,
        store=store,
        history=history,
        dispatcher=dispatcher,
        log=log,
        display=display,
        tasks=tasks,
        fixed_fee=settings.profit_fixed_fee,
    )
    return MonitorRuntime(
        loop=loop,
        state=state,
        config_source=config_source,
        log=log,
        display=display,
        tasks=tasks,
        store=store,
        closers=closers,
    )
