from __future__ import annotations

import re
from typing import Any

import httpx

_SCTP_KEY_RE = re.compile(r"^sctp(\d+)t")


class NotificationError(RuntimeError):
    pass


def serverchan_url(sendkey: str) -> str:
    key = sendkey.strip()
    if key.startswith("sctp"):
        match = _SCTP_KEY_RE.match(key)
        if match is None:
            raise NotificationError(f"通知无效的 sendkey 格式: {key}")
        return f"https://{match.group(1)}.push.ft07.com/send/{key}.send"
    return f"https://sctapi.ftqq.com/{key}.send"


class ServerChanNotifier:
    channel = "serverchan"

    def __init__(
        self,
        *,
        timeout_seconds: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._client = httpx.AsyncClient(timeout=httpx.Timeout(timeout_seconds), transport=transport)

    async def aclose(self) -> None:
        await self._client.aclose()

    async def send(self, *, key: str, title: str, body: str) -> dict[str, Any]:
        url = serverchan_url(key)
        resp = await self._client.post(
            url,
            json={"title": title, "desp": body},
            headers={"Content-Type": "application/json;charset=utf-8"},
        )
        if resp.status_code >= 400:
            raise NotificationError(f"通知发送请求失败: status={resp.status_code} body={resp.text!r}")
        try:
            result = resp.json()
        except ValueError as e:
            raise NotificationError(f"解析响应失败: {e}") from e
        if not isinstance(result, dict):
            raise NotificationError(f"解析响应失败: {result!r}")
        code = result.get("code", 0)
        if code not in (0, None):
            raise NotificationError(f"通知被拒绝: code={code} message={result.get('message', '')}")
        return result
