from __future__ import annotations

import json
import re
import time
from typing import Any

import httpx

_DEFAULT_URL = "https://api.jijinhao.com/realtime/quotejs.htm"
_DEFAULT_PRODUCT = "工行积存金"
_QUOT_STR_RE = re.compile(r"quot_str = \[(.+)\]")

_HEADERS = {
    "Authority": "api.jijinhao.com",
    "Pragma": "no-cache",
    "Cache-Control": "no-cache",
    "User-Agent": (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/83.0.4103.97 Safari/537.36"
    ),
    "Accept": "*/*",
    "Sec-Fetch-Site": "cross-site",
    "Sec-Fetch-Mode": "no-cors",
    "Sec-Fetch-Dest": "script",
    "Referer": "https://www.cngold.org/paper/gonghang.html",
    "Accept-Language": "en-GB,en-US;q=0.9,en;q=0.8,zh-CN;q=0.7,zh;q=0.6",
}


class QuoteSourceError(RuntimeError):
    pass


def extract_price(body: str, *, product: str) -> float:
    match = _QUOT_STR_RE.search(body)
    if match is None:
        raise QuoteSourceError("无法解析 quot_str")

    try:
        payload: Any = json.loads(match.group(1))
    except json.JSONDecodeError as e:
        raise QuoteSourceError(f"quote payload is not JSON: {e}") from e

    items = payload.get("data", []) if isinstance(payload, dict) else []
    if not isinstance(items, list):
        items = []
    for item in items:
        if not isinstance(item, dict):
            continue
        quote = item.get("quote")
        if not isinstance(quote, dict) or quote.get("q67") != product:
            continue
        raw = quote.get("q63", "")
        try:
            price = float(str(raw))
        except ValueError as e:
            raise QuoteSourceError(f"invalid price for {product}: {raw!r}") from e
        if not price > 0:
            raise QuoteSourceError(f"invalid price for {product}: {raw!r}")
        return price

    raise QuoteSourceError(f"未找到{product}")


class JijinhaoQuoteClient:
    """Reads one product price from the cngold realtime quote script.

    No retries: the monitor counts every failure toward its auto-stop window.
    """

    def __init__(
        self,
        *,
        url: str = _DEFAULT_URL,
        product: str = _DEFAULT_PRODUCT,
        category_id: int = 225,
        timeout_seconds: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._url = url
        self._product = product
        self._category_id = category_id
        self._client = httpx.AsyncClient(
            timeout=httpx.Timeout(timeout_seconds),
            headers=_HEADERS,
            transport=transport,
        )

    @property
    def product(self) -> str:
        return self._product

    async def aclose(self) -> None:
        await self._client.aclose()

    async def fetch_price(self) -> float:
        params = {
            "categoryId": self._category_id,
            "currentPage": 1,
            "pageSize": 8,
            "_": int(time.time() * 1000),
        }
        try:
            response = await self._client.get(self._url, params=params)
            response.raise_for_status()
        except httpx.HTTPError as e:
            raise QuoteSourceError(f"quote request failed: {e}") from e
        return extract_price(response.text, product=self._product)
