"""Decimal EMA series and two-point crossover classification."""

from decimal import Decimal
from typing import Sequence

from ema_scanner.core.types import CrossoverKind


def compute_ema_series(prices: Sequence[Decimal], period: int) -> list[Decimal]:
    """Return an EMA value for every input price.

    The first ``period`` entries all hold the seed (the simple mean of the first
    ``period`` prices); they are warm-up values and carry no signal.
    """

    if period <= 0:
        raise ValueError("period must be a positive integer")
    if len(prices) < period:
        raise ValueError(f"need at least {period} prices, got {len(prices)}")

    seed = sum(prices[:period], Decimal(0)) / Decimal(period)
    ema = [seed] * period

    k = Decimal(2) / Decimal(period + 1)
    one_minus_k = Decimal(1) - k
    for price in prices[period:]:
        ema.append(price * k + ema[-1] * one_minus_k)
    return ema


def detect_crossover(ema_short: Sequence[Decimal], ema_long: Sequence[Decimal]) -> CrossoverKind:
    """Classify the last two points of two aligned EMA series."""

    if len(ema_short) != len(ema_long):
        raise ValueError("EMA series must have equal length")
    if len(ema_short) < 2:
        raise ValueError("need at least two EMA points")

    short_prev, short_now = ema_short[-2], ema_short[-1]
    long_prev, long_now = ema_long[-2], ema_long[-1]

    if short_prev <= long_prev and short_now > long_now:
        return CrossoverKind.BULLISH
    if short_prev >= long_prev and short_now < long_now:
        return CrossoverKind.BEARISH
    return CrossoverKind.NONE
