import asyncio
from typing import Any

import pytest

from gold_monitor.config.monitor import MonitorConfig
from gold_monitor.engine import alerts
from gold_monitor.engine.alerts import (
    AlertDispatcher,
    ConsoleAlert,
    DialogAlert,
    NullAlert,
    build_local_alert,
    evaluate,
    format_alert,
)
from gold_monitor.engine.sinks import LogBuffer
from gold_monitor.engine.tasks import BackgroundTasks


def _cfg(**overrides: Any) -> MonitorConfig:
    base: dict[str, Any] = {
        "buy_avg_price": 935.5,
        "target_buy_price": 900.0,
        "target_sell_price": 950.0,
        "interval_seconds": 10,
    }
    base.update(overrides)
    return MonitorConfig(**base)


class _Notifier:
    channel = "fake"

    def __init__(self, *, fail: bool = False) -> None:
        self.sent: list[tuple[str, str, str]] = []
        self._fail = fail

    async def send(self, *, key: str, title: str, body: str) -> dict[str, Any]:
        self.sent.append((key, title, body))
        if self._fail:
            raise RuntimeError("push endpoint unavailable")
        return {"code": 0}

    async def aclose(self) -> None:
        return


@pytest.mark.parametrize(
    ("price", "target_buy", "target_sell", "expected"),
    [
        (900.0, 900.0, 950.0, "BUY"),
        (970.0, 900.0, 950.0, "SELL"),
        (950.0, 900.0, 950.0, "SELL"),
        (925.0, 900.0, 950.0, None),
        # Buy wins when both targets are hit.
        (955.0, 960.0, 950.0, "BUY"),
    ],
)
def test_evaluate(price: float, target_buy: float, target_sell: float, expected: Any) -> None:
    cfg = _cfg(target_buy_price=target_buy, target_sell_price=target_sell)
    assert evaluate(price, cfg) == expected


def test_format_alert_mentions_reference_current_and_target() -> None:
    title, body = format_alert("SELL", 970.0, _cfg())

    assert title == "卖出提醒"
    assert "买入价格: 935.50" in body
    assert "当前价格: 970.00" in body
    assert "目标卖出价格: 950.00" in body
    assert "可以卖出" in body


def _dispatch(notifier: _Notifier, cfg: MonitorConfig) -> tuple[list[str], list[str]]:
    alerts: list[str] = []

    async def _run() -> list[str]:
        log = LogBuffer()
        tasks = BackgroundTasks(on_error=lambda name, exc: log.append(f"通知失败：【{exc}】"))
        dispatcher = AlertDispatcher(notifier=notifier, local_alert=alerts.append, log=log, tasks=tasks)
        await dispatcher.dispatch(side="BUY", price=899.0, cfg=cfg)
        await tasks.drain()
        return log.lines()

    lines = asyncio.run(_run())
    return alerts, lines


def test_dispatch_pushes_when_enabled() -> None:
    notifier = _Notifier()
    alerts, _ = _dispatch(notifier, _cfg(notify_enabled=True, notify_key="SCT1"))

    assert len(alerts) == 1
    assert "可以买入" in alerts[0]
    assert notifier.sent == [("SCT1", "买入提醒", alerts[0])]


@pytest.mark.parametrize(
    "cfg",
    [_cfg(notify_enabled=False, notify_key="SCT1"), _cfg(notify_enabled=True, notify_key=" ")],
)
def test_dispatch_skips_push_without_enabled_key(cfg: MonitorConfig) -> None:
    notifier = _Notifier()
    alerts, _ = _dispatch(notifier, cfg)

    assert len(alerts) == 1
    assert notifier.sent == []


def test_dispatch_notification_failure_is_logged_and_alert_still_shown() -> None:
    notifier = _Notifier(fail=True)
    alerts, lines = _dispatch(notifier, _cfg(notify_enabled=True, notify_key="SCT1"))

    assert len(alerts) == 1
    assert len(notifier.sent) == 1
    assert any("通知失败" in line and "push endpoint unavailable" in line for line in lines)


@pytest.mark.parametrize(
    ("platform", "mode", "expected"),
    [
        ("linux", "dialog", DialogAlert),
        ("win32", "dialog", DialogAlert),
        ("darwin", "dialog", ConsoleAlert),
        ("darwin", "none", NullAlert),
        ("linux", "console", ConsoleAlert),
    ],
)
def test_build_local_alert_by_platform(
    monkeypatch: pytest.MonkeyPatch, platform: str, mode: str, expected: type
) -> None:
    monkeypatch.setattr(alerts.sys, "platform", platform)

    assert isinstance(build_local_alert(mode), expected)
