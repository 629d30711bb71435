"""Batch EMA crossover scanner that alerts by email once per newly closed candle."""

import asyncio
import logging
import signal
from collections import Counter
from datetime import datetime
from typing import Callable, Protocol, Sequence

from ema_scanner.clients.binance import BinanceClient, MarketDataError
from ema_scanner.core.config import Settings, get_settings
from ema_scanner.core.indicators import compute_ema_series, detect_crossover
from ema_scanner.core.intervals import EmaInterval, interval_code
from ema_scanner.core.logging import configure_logging
from ema_scanner.core.state import ScanState, ScanStateStore
from ema_scanner.core.time_utils import utc_now
from ema_scanner.core.types import Candle, CrossoverEvent, CrossoverKind
from ema_scanner.notify.email import EmailNotifier, SmtpSender, format_crossover_message

RESULT_CROSSOVER = "crossover"
RESULT_NO_CROSSOVER = "no_crossover"
RESULT_ALREADY_PROCESSED = "already_processed"
RESULT_INSUFFICIENT_HISTORY = "insufficient_history"
RESULT_FETCH_FAILED = "fetch_failed"
RESULT_ERROR = "error"

logger = logging.getLogger(__name__)


class CandleSource(Protocol):
    async def get_klines(self, symbol: str, interval: str, limit: int) -> Sequence[Candle]: ...


class Notifier(Protocol):
    async def notify(self, subject: str, body: str) -> bool: ...


class InstrumentScanner:
    """Evaluate one symbol per call and record the candle it evaluated."""

    def __init__(
        self,
        client: CandleSource,
        notifier: Notifier,
        interval: EmaInterval,
        short_period: int,
        long_period: int,
        kline_limit: int = 400,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._client = client
        self._notifier = notifier
        self._clock = clock
        self.interval = interval
        self.interval_code = interval_code(interval)
        self.short_period = short_period
        self.long_period = long_period
        self.kline_limit = kline_limit

    async def scan(self, symbol: str, state: ScanState) -> str:
        """Run one evaluation; only ``state[symbol]`` is ever written."""

        try:
            return await self._scan(symbol, state)
        except asyncio.CancelledError:
            raise
        except Exception as exc:  # noqa: BLE001
            logger.warning("scan_error", extra={"symbol": symbol, "error": str(exc)})
            return RESULT_ERROR

    async def _scan(self, symbol: str, state: ScanState) -> str:
        try:
            candles = await self._client.get_klines(symbol, self.interval_code, self.kline_limit)
        except MarketDataError as exc:
            logger.warning("scan_fetch_failed", extra={"symbol": symbol, "error": str(exc)})
            return RESULT_FETCH_FAILED

        if len(candles) < self.long_period + 2:
            logger.warning(
                "scan_insufficient_history",
                extra={"symbol": symbol, "candles": len(candles), "required": self.long_period + 2},
            )
            return RESULT_INSUFFICIENT_HISTORY

        # The newest candle may still be forming.
        closed = candles if candles[-1].close_time <= self._clock() else candles[:-1]
        last_closed = closed[-1]

        previous = state.get(symbol)
        if previous is not None and last_closed.close_time <= previous:
            return RESULT_ALREADY_PROCESSED

        closes = [candle.close for candle in closed]
        ema_short = compute_ema_series(closes, self.short_period)
        ema_long = compute_ema_series(closes, self.long_period)
        kind = detect_crossover(ema_short, ema_long)

        result = RESULT_NO_CROSSOVER
        if kind is not CrossoverKind.NONE:
            event = CrossoverEvent(
                symbol=symbol,
                kind=kind,
                price=closes[-1],
                short_period=self.short_period,
                long_period=self.long_period,
                short_prev=ema_short[-2],
                short_now=ema_short[-1],
                long_prev=ema_long[-2],
                long_now=ema_long[-1],
                close_time=last_closed.close_time,
            )
            await self._alert(event)
            result = RESULT_CROSSOVER

        state[symbol] = last_closed.close_time
        return result

    async def _alert(self, event: CrossoverEvent) -> None:
        """Log the event and send the alert; the notifier reports its own failures."""

        extra = {
            "symbol": event.symbol,
            "kind": event.kind.value,
            "price": str(event.price),
            "close_time": event.close_time.isoformat(),
        }
        if event.kind is CrossoverKind.BULLISH:
            logger.info("crossover_detected", extra={**extra, "outcome": "ok"})
        else:
            logger.warning("crossover_detected", extra=extra)

        subject, body = format_crossover_message(event, self.interval_code)
        await self._notifier.notify(subject, body)


class BatchScheduler:
    """Scan the universe in gated batches, persist state per cycle, and repeat until shutdown."""

    def __init__(
        self,
        scanner: InstrumentScanner,
        store: ScanStateStore,
        symbols: Sequence[str],
        state: ScanState,
        shutdown_event: asyncio.Event,
        max_concurrency: int = 10,
        batch_size: int = 25,
        batch_pause_s: float = 2.0,
        cycle_sleep_s: float = 600.0,
        cycle_error_sleep_s: float = 120.0,
    ) -> None:
        self.scanner = scanner
        self.store = store
        self.symbols = tuple(symbols)
        self.state = state
        self.batch_size = max(1, batch_size)
        self.batch_pause_s = batch_pause_s
        self.cycle_sleep_s = cycle_sleep_s
        self.cycle_error_sleep_s = cycle_error_sleep_s
        self.cycles_completed = 0
        self._shutdown_event = shutdown_event
        self._gate = asyncio.Semaphore(max(1, max_concurrency))

    def batches(self) -> list[tuple[str, ...]]:
        return [
            self.symbols[start : start + self.batch_size]
            for start in range(0, len(self.symbols), self.batch_size)
        ]

    async def _gated_scan(self, symbol: str) -> str:
        async with self._gate:
            return await self.scanner.scan(symbol, self.state)

    async def _pause(self, seconds: float) -> bool:
        """Sleep up to ``seconds``; return True if shutdown was requested."""

        if self._shutdown_event.is_set():
            return True
        if seconds <= 0:
            return False
        try:
            await asyncio.wait_for(self._shutdown_event.wait(), timeout=seconds)
        except asyncio.TimeoutError:
            return False
        return True

    async def run_cycle(self) -> Counter[str]:
        """Scan every batch once and persist the state; return result counts."""

        logger.info("scan_cycle_start", extra={"symbols": len(self.symbols)})
        results: Counter[str] = Counter()

        for batch in self.batches():
            batch_results = await asyncio.gather(*(self._gated_scan(symbol) for symbol in batch))
            results.update(batch_results)
            if await self._pause(self.batch_pause_s):
                logger.info("scan_cycle_interrupted", extra={"scanned": sum(results.values())})
                break

        self.store.save(self.state)
        self.cycles_completed += 1
        logger.info(
            "scan_cycle_done",
            extra={"results": dict(results), "next_cycle_in_s": self.cycle_sleep_s},
        )
        return results

    async def run_forever(self) -> None:
        """Repeat cycles until shutdown; a failing cycle backs off and is retried."""

        while not self._shutdown_event.is_set():
            try:
                await self.run_cycle()
            except asyncio.CancelledError:
                raise
            except Exception as exc:  # noqa: BLE001
                logger.error(
                    "scan_cycle_failed",
                    extra={"error": str(exc), "retry_in_s": self.cycle_error_sleep_s},
                    exc_info=True,
                )
                await self._pause(self.cycle_error_sleep_s)
                continue

            await self._pause(self.cycle_sleep_s)

        self.store.save(self.state)


def _request_shutdown(
    shutdown_event: asyncio.Event, logger: logging.Logger, signal_name: str
) -> None:
    if shutdown_event.is_set():
        return
    logger.info("scanner_shutdown_signal", extra={"signal": signal_name})
    shutdown_event.set()


def _install_signal_handlers(shutdown_event: asyncio.Event, logger: logging.Logger) -> None:
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(
                sig,
                _request_shutdown,
                shutdown_event,
                logger,
                sig.name,
            )
        except NotImplementedError:
            signal_name = sig.name
            signal.signal(
                sig,
                lambda *_, signal_name=signal_name: _request_shutdown(
                    shutdown_event, logger, signal_name
                ),
            )


def _build_notifier(settings: Settings) -> EmailNotifier:
    sender = SmtpSender(
        host=settings.SMTP_HOST,
        port=settings.SMTP_PORT,
        username=settings.EMAIL_USER,
        password=settings.EMAIL_APP_PASSWORD,
    )
    return EmailNotifier(
        sender=sender,
        recipient=settings.EMAIL_NOTIFY_TO,
        max_attempts=settings.EMAIL_MAX_ATTEMPTS,
        retry_delay_s=settings.EMAIL_RETRY_DELAY_S,
    )


async def _run() -> int:
    settings = get_settings()
    configure_logging(settings.LOG_LEVEL, settings.LOG_FORMAT)
    run_logger = logging.getLogger(__name__)
    shutdown_event = asyncio.Event()

    interval = settings.ema_interval()
    quote_asset = settings.quote_asset()

    async with BinanceClient(
        base_url=settings.BINANCE_BASE_URL,
        api_key=settings.BINANCE_API_KEY,
        api_secret=settings.BINANCE_API_SECRET,
        timeout_s=settings.BINANCE_TIMEOUT_S,
    ) as client:
        try:
            symbols = await client.list_instruments(quote_asset)
        except MarketDataError as exc:
            run_logger.error("scanner_universe_fetch_failed", extra={"error": str(exc)})
            return 1

        if not symbols:
            run_logger.error("scanner_empty_universe", extra={"quote_asset": quote_asset})
            return 1

        _install_signal_handlers(shutdown_event, run_logger)
        run_logger.info(
            "scanner_startup",
            extra={
                "symbols": len(symbols),
                "quote_asset": quote_asset,
                "interval": interval.value,
                "ema_short": settings.EMA_SHORT_PERIOD,
                "ema_long": settings.EMA_LONG_PERIOD,
                "max_concurrency": settings.max_concurrency(),
                "email_from": settings.EMAIL_USER,
                "email_to": settings.EMAIL_NOTIFY_TO,
                "state_path": settings.STATE_PATH,
                "outcome": "ok",
            },
        )

        store = ScanStateStore(settings.STATE_PATH)
        scanner = InstrumentScanner(
            client=client,
            notifier=_build_notifier(settings),
            interval=interval,
            short_period=settings.EMA_SHORT_PERIOD,
            long_period=settings.EMA_LONG_PERIOD,
            kline_limit=settings.KLINE_LIMIT,
        )
        scheduler = BatchScheduler(
            scanner=scanner,
            store=store,
            symbols=symbols,
            state=store.load(),
            shutdown_event=shutdown_event,
            max_concurrency=settings.max_concurrency(),
            batch_size=settings.batch_size(),
            batch_pause_s=settings.BATCH_PAUSE_S,
            cycle_sleep_s=settings.CYCLE_SLEEP_S,
            cycle_error_sleep_s=settings.CYCLE_ERROR_SLEEP_S,
        )
        await scheduler.run_forever()

    run_logger.info("scanner_shutdown", extra={"cycles_completed": scheduler.cycles_completed})
    return 0


def main() -> int:
    """Run the scanner process until interrupted."""

    try:
        return asyncio.run(_run())
    except KeyboardInterrupt:
        return 0


if __name__ == "__main__":
    raise SystemExit(main())
