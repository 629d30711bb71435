"""Shared lightweight types to keep module interfaces explicit and typed."""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from enum import Enum


@dataclass(frozen=True, slots=True)
class Candle:
    """One OHLC bar as returned by the market-data client."""

    open_time: datetime
    close_time: datetime
    open: Decimal
    high: Decimal
    low: Decimal
    close: Decimal
    volume: Decimal


class CrossoverKind(str, Enum):
    """Classification of the last two EMA points."""

    NONE = "none"
    BULLISH = "bullish"
    BEARISH = "bearish"

    @property
    def label(self) -> str:
        if self is CrossoverKind.BULLISH:
            return "Golden Cross"
        if self is CrossoverKind.BEARISH:
            return "Death Cross"
        return "No Cross"


@dataclass(frozen=True, slots=True)
class CrossoverEvent:
    """A detected crossover with the values that drove it."""

    symbol: str
    kind: CrossoverKind
    price: Decimal
    short_period: int
    long_period: int
    short_prev: Decimal
    short_now: Decimal
    long_prev: Decimal
    long_now: Decimal
    close_time: datetime
