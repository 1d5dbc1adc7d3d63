from __future__ import annotations

import asyncio
import logging
import sys
from collections.abc import Callable
from typing import Optional

import typer

from gold_monitor.config.monitor import MonitorConfig
from gold_monitor.engine.sinks import LogBuffer
from gold_monitor.engine.tasks import BackgroundTasks
from gold_monitor.notifications import Notifier
from gold_monitor.types import Side

logger = logging.getLogger("gold_monitor.alerts")

LocalAlert = Callable[[str], None]

_TITLES: dict[Side, str] = {"BUY": "买入提醒", "SELL": "卖出提醒"}
_ACTIONS: dict[Side, str] = {"BUY": "可以买入！", "SELL": "可以卖出！"}


def evaluate(price: float, cfg: MonitorConfig) -> Optional[Side]:
    # Buy is checked first; it wins when both targets are hit.
    if price <= cfg.target_buy_price:
        return "BUY"
    if price >= cfg.target_sell_price:
        return "SELL"
    return None


def format_alert(side: Side, price: float, cfg: MonitorConfig) -> tuple[str, str]:
    target = cfg.target_buy_price if side == "BUY" else cfg.target_sell_price
    label = "目标买入价格" if side == "BUY" else "目标卖出价格"
    body = "\n".join(
        [
            "",
            f"买入价格: {cfg.buy_avg_price:.2f}",
            f"当前价格: {price:.2f}",
            f"{label}: {target:.2f}",
            _ACTIONS[side],
        ]
    )
    return _TITLES[side], body


class ConsoleAlert:
    def __call__(self, message: str) -> None:
        sys.stderr.write("\a")
        typer.secho(f"[提醒] {message.strip()}", fg=typer.colors.RED, bold=True, err=True)


class DialogAlert:
    """Modal message box; returns once the operator dismisses it.

    Tk is created in the `asyncio.to_thread` worker, which macOS does not
    allow, so `build_local_alert` only offers this on Linux and Windows.
    """

    def __call__(self, message: str) -> None:
        import tkinter
        from tkinter import messagebox

        root = tkinter.Tk()
        root.withdraw()
        root.attributes("-topmost", True)
        try:
            messagebox.showinfo("提醒", message, parent=root)
        finally:
            root.destroy()


class NullAlert:
    def __call__(self, message: str) -> None:
        return


def build_local_alert(mode: str) -> LocalAlert:
    if mode == "dialog":
        if sys.platform == "darwin":
            logger.warning("dialog_alert_unsupported", extra={"channel": "console"})
            return ConsoleAlert()
        return DialogAlert()
    if mode == "none":
        return NullAlert()
    return ConsoleAlert()


class AlertDispatcher:
    def __init__(
        self,
        *,
        notifier: Notifier,
        local_alert: LocalAlert,
        log: LogBuffer,
        tasks: BackgroundTasks,
    ) -> None:
        self._notifier = notifier
        self._local_alert = local_alert
        self._log = log
        self._tasks = tasks

    def evaluate(self, price: float, cfg: MonitorConfig) -> Optional[Side]:
        return evaluate(price, cfg)

    async def dispatch(self, *, side: Side, price: float, cfg: MonitorConfig) -> str:
        title, body = format_alert(side, price, cfg)
        self._log.append(body)
        logger.warning(
            "alert_triggered",
            extra={"side": side, "price": price, "channel": self._notifier.channel},
        )

        if cfg.notify_enabled and cfg.notify_key:
            self._tasks.spawn(
                self._notifier.send(key=cfg.notify_key, title=title, body=body),
                name="notify",
            )

        await asyncio.to_thread(self._local_alert, body)
        return body
