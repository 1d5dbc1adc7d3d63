import asyncio
import json

import httpx
import pytest

from gold_monitor.sources.jijinhao import JijinhaoQuoteClient, QuoteSourceError, extract_price


def _body(items: list[dict[str, object]]) -> str:
    payload = json.dumps({"data": items}, ensure_ascii=False)
    return f"var quot_str = [{payload}];"


_ITEMS = [
    {"quote": {"q63": "612.30", "q67": "建行积存金"}},
    {"quote": {"q63": "951.20", "q67": "工行积存金"}},
]


def test_extract_price_finds_product() -> None:
    assert extract_price(_body(_ITEMS), product="工行积存金") == 951.20


def test_extract_price_missing_product() -> None:
    with pytest.raises(QuoteSourceError, match="未找到"):
        extract_price(_body(_ITEMS[:1]), product="工行积存金")


@pytest.mark.parametrize(
    "body",
    [
        "<html>maintenance</html>",
        "var quot_str = [not json];",
        _body([{"quote": {"q63": "--", "q67": "工行积存金"}}]),
        _body([{"quote": {"q63": "0", "q67": "工行积存金"}}]),
    ],
)
def test_extract_price_rejects_bad_payloads(body: str) -> None:
    with pytest.raises(QuoteSourceError):
        extract_price(body, product="工行积存金")


def test_fetch_price_sends_quote_params() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, text=_body(_ITEMS))

    client = JijinhaoQuoteClient(transport=httpx.MockTransport(handler))
    try:
        price = asyncio.run(client.fetch_price())
    finally:
        asyncio.run(client.aclose())

    assert price == 951.20
    params = seen[0].url.params
    assert params["categoryId"] == "225"
    assert params["pageSize"] == "8"
    assert seen[0].headers["Referer"].startswith("https://www.cngold.org/")


def test_fetch_price_wraps_http_errors() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(502, text="bad gateway")

    client = JijinhaoQuoteClient(transport=httpx.MockTransport(handler))
    try:
        with pytest.raises(QuoteSourceError):
            asyncio.run(client.fetch_price())
    finally:
        asyncio.run(client.aclose())


def test_fetch_price_wraps_transport_errors() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("refused", request=request)

    client = JijinhaoQuoteClient(transport=httpx.MockTransport(handler))
    try:
        with pytest.raises(QuoteSourceError):
            asyncio.run(client.fetch_price())
    finally:
        asyncio.run(client.aclose())
