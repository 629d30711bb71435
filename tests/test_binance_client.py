"""REST client parsing and error mapping using an in-process transport."""

import asyncio
from datetime import datetime, timezone
from decimal import Decimal

import httpx
import pytest

from ema_scanner.clients.binance import BinanceClient, MarketDataError

EXCHANGE_INFO = {
    "symbols": [
        {"symbol": "ETHUSDT", "quoteAsset": "USDT", "status": "TRADING"},
        {"symbol": "BTCUSDT", "quoteAsset": "USDT", "status": "TRADING"},
        {"symbol": "BTCUSDT", "quoteAsset": "USDT", "status": "TRADING"},
        {"symbol": "LUNAUSDT", "quoteAsset": "USDT", "status": "BREAK"},
        {"symbol": "ETHBTC", "quoteAsset": "BTC", "status": "TRADING"},
    ]
}

KLINES = [
    [1714608000000, "62000.10", "62500.00", "61800.00", "62400.55", "10.5", 1714694399999, "0", 1, "0", "0", "0"],
    [1714521600000, "61000.00", "62100.00", "60900.00", "62000.10", "12.0", 1714607999999, "0", 1, "0", "0", "0"],
]


def _handler(request: httpx.Request) -> httpx.Response:
    if request.url.path == "/api/v3/exchangeInfo":
        return httpx.Response(200, json=EXCHANGE_INFO)
    if request.url.path == "/api/v3/klines":
        if request.url.params["symbol"] == "BADUSDT":
            return httpx.Response(400, json={"code": -1121, "msg": "Invalid symbol."})
        assert request.url.params["interval"] == "1d"
        assert request.url.params["limit"] == "400"
        assert request.headers["X-MBX-APIKEY"] == "key"
        return httpx.Response(200, json=KLINES)
    return httpx.Response(404)


def _client() -> BinanceClient:
    return BinanceClient(
        base_url="https://api.example.test",
        api_key="key",
        api_secret="secret",
        transport=httpx.MockTransport(_handler),
    )


def test_list_instruments_filters_dedupes_and_sorts() -> None:
    """Only trading symbols in the quote asset are returned, once each, in order."""

    async def scenario() -> tuple[str, ...]:
        async with _client() as client:
            return await client.list_instruments("USDT")

    assert asyncio.run(scenario()) == ("BTCUSDT", "ETHUSDT")


def test_get_klines_parses_decimals_and_orders_by_open_time() -> None:
    """Rows become ascending Candle values with Decimal prices and UTC times."""

    async def scenario():
        async with _client() as client:
            return await client.get_klines("BTCUSDT", "1d", 400)

    candles = asyncio.run(scenario())

    assert [candle.close for candle in candles] == [Decimal("62000.10"), Decimal("62400.55")]
    assert candles[0].open_time == datetime(2024, 5, 1, tzinfo=timezone.utc)
    assert candles[1].close_time == datetime(2024, 5, 2, 23, 59, 59, 999000, tzinfo=timezone.utc)


def test_http_errors_raise_market_data_error() -> None:
    """Non-200 responses carry the exchange error payload."""

    async def scenario():
        async with _client() as client:
            return await client.get_klines("BADUSDT", "1d", 400)

    with pytest.raises(MarketDataError, match="Invalid symbol"):
        asyncio.run(scenario())


def test_api_secret_is_neither_kept_nor_sent() -> None:
    """Public calls carry only the API key header; the secret stays out of the client."""

    seen_headers: list[httpx.Headers] = []

    def recording_handler(request: httpx.Request) -> httpx.Response:
        seen_headers.append(request.headers)
        return _handler(request)

    async def scenario() -> BinanceClient:
        client = BinanceClient(
            base_url="https://api.example.test",
            api_key="key",
            api_secret="secret",
            transport=httpx.MockTransport(recording_handler),
        )
        async with client:
            await client.list_instruments("USDT")
        return client

    client = asyncio.run(scenario())

    assert "secret" not in vars(client).values()
    assert all("secret" not in headers.values() for headers in seen_headers)
    assert seen_headers[0]["X-MBX-APIKEY"] == "key"
