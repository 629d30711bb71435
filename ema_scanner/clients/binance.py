"""Async Binance spot REST client covering the two calls the scanner needs."""

import logging
from decimal import Decimal, InvalidOperation
from types import TracebackType
from typing import Any

import httpx

from ema_scanner.core.time_utils import from_epoch_ms
from ema_scanner.core.types import Candle

_EXCHANGE_INFO_PATH = "/api/v3/exchangeInfo"
_KLINES_PATH = "/api/v3/klines"
_TRADING_STATUS = "TRADING"
_MAX_KLINE_LIMIT = 1000

logger = logging.getLogger(__name__)


class MarketDataError(Exception):
    """Raised when the exchange call fails or returns an unusable payload."""


def _parse_kline(row: Any) -> Candle:
    if not isinstance(row, list) or len(row) < 7:
        raise MarketDataError(f"unexpected kline row: {row!r}")
    try:
        return Candle(
            open_time=from_epoch_ms(int(row[0])),
            open=Decimal(str(row[1])),
            high=Decimal(str(row[2])),
            low=Decimal(str(row[3])),
            close=Decimal(str(row[4])),
            volume=Decimal(str(row[5])),
            close_time=from_epoch_ms(int(row[6])),
        )
    except (TypeError, ValueError, InvalidOperation) as exc:
        raise MarketDataError(f"invalid kline row: {row!r}") from exc


class BinanceClient:
    """Thin wrapper over ``httpx.AsyncClient``; use as an async context manager.

    Only public market-data endpoints are called, so ``api_secret`` is accepted for
    configuration parity but never stored or sent.
    """

    def __init__(
        self,
        base_url: str,
        api_key: str = "",
        api_secret: str = "",
        timeout_s: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        headers = {"X-MBX-APIKEY": api_key} if api_key else {}
        self._http = httpx.AsyncClient(
            base_url=base_url,
            headers=headers,
            timeout=timeout_s,
            transport=transport,
        )

    async def __aenter__(self) -> "BinanceClient":
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._http.aclose()

    async def _get_json(self, path: str, params: dict[str, Any] | None = None) -> Any:
        try:
            response = await self._http.get(path, params=params)
        except httpx.HTTPError as exc:
            raise MarketDataError(f"{path} request failed: {exc}") from exc

        if response.status_code != 200:
            raise MarketDataError(f"{path} returned {response.status_code}: {response.text}")

        try:
            return response.json()
        except ValueError as exc:
            raise MarketDataError(f"{path} returned invalid JSON") from exc

    async def list_instruments(self, quote_asset: str) -> tuple[str, ...]:
        """Return distinct, sorted symbols quoted in ``quote_asset`` that are trading."""

        payload = await self._get_json(_EXCHANGE_INFO_PATH)
        symbols = payload.get("symbols") if isinstance(payload, dict) else None
        if not isinstance(symbols, list):
            raise MarketDataError("exchangeInfo payload has no symbol list")

        names = {
            str(item["symbol"])
            for item in symbols
            if isinstance(item, dict)
            and item.get("symbol")
            and item.get("quoteAsset") == quote_asset
            and item.get("status") == _TRADING_STATUS
        }
        logger.debug(
            "binance_instruments_listed",
            extra={"quote_asset": quote_asset, "count": len(names)},
        )
        return tuple(sorted(names))

    async def get_klines(self, symbol: str, interval: str, limit: int) -> tuple[Candle, ...]:
        """Return up to ``limit`` most recent candles, ascending by open time."""

        params = {
            "symbol": symbol,
            "interval": interval,
            "limit": max(1, min(limit, _MAX_KLINE_LIMIT)),
        }
        payload = await self._get_json(_KLINES_PATH, params=params)
        if not isinstance(payload, list):
            raise MarketDataError(f"klines payload for {symbol} is not a list")

        candles = [_parse_kline(row) for row in payload]
        candles.sort(key=lambda candle: candle.open_time)
        return tuple(candles)
