from __future__ import annotations

from typing import Any

import httpx


class TelegramNotifier:
    channel = "telegram"

    def __init__(
        self,
        *,
        bot_token: str,
        timeout_seconds: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._bot_token = bot_token.strip()
        self._client = httpx.AsyncClient(timeout=httpx.Timeout(timeout_seconds), transport=transport)

    async def aclose(self) -> None:
        await self._client.aclose()

    async def send(self, *, key: str, title: str, body: str) -> dict[str, Any]:
        # `key` is the destination chat id.
        url = f"https://api.telegram.org/bot{self._bot_token}/sendMessage"
        payload = {
            "chat_id": key.strip(),
            "text": f"{title}\n{body.strip()}",
            "disable_web_page_preview": True,
        }
        resp = await self._client.post(url, json=payload)
        resp.raise_for_status()
        return dict(resp.json())
