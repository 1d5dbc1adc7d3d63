from __future__ import annotations

from typing import Any, Protocol

from gold_monitor.notifications.serverchan import (
    NotificationError,
    ServerChanNotifier,
    serverchan_url,
)
from gold_monitor.notifications.telegram import TelegramNotifier
from gold_monitor.settings import Settings

__all__ = [
    "NotificationError",
    "Notifier",
    "ServerChanNotifier",
    "TelegramNotifier",
    "build_notifier",
    "serverchan_url",
]


class Notifier(Protocol):
    channel: str

    async def send(self, *, key: str, title: str, body: str) -> dict[str, Any]: ...

    async def aclose(self) -> None: ...


def build_notifier(settings: Settings) -> ServerChanNotifier | TelegramNotifier:
    if settings.notify_channel == "telegram":
        return TelegramNotifier(bot_token=settings.telegram_bot_token)
    return ServerChanNotifier()
