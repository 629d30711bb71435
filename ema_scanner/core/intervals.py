"""Candle interval options and their exchange interval codes."""

from enum import Enum


class EmaInterval(str, Enum):
    """Interval options accepted in configuration."""

    ONE_MINUTE = "OneMinute"
    THREE_MINUTES = "ThreeMinutes"
    FIVE_MINUTES = "FiveMinutes"
    FIFTEEN_MINUTES = "FifteenMinutes"
    THIRTY_MINUTES = "ThirtyMinutes"
    ONE_HOUR = "OneHour"
    TWO_HOUR = "TwoHour"
    FOUR_HOUR = "FourHour"
    SIX_HOUR = "SixHour"
    EIGHT_HOUR = "EightHour"
    TWELVE_HOUR = "TwelveHour"
    ONE_DAY = "OneDay"
    THREE_DAY = "ThreeDay"
    ONE_WEEK = "OneWeek"
    ONE_MONTH = "OneMonth"


DEFAULT_INTERVAL = EmaInterval.ONE_DAY

INTERVAL_CODES: dict[EmaInterval, str] = {
    EmaInterval.ONE_MINUTE: "1m",
    EmaInterval.THREE_MINUTES: "3m",
    EmaInterval.FIVE_MINUTES: "5m",
    EmaInterval.FIFTEEN_MINUTES: "15m",
    EmaInterval.THIRTY_MINUTES: "30m",
    EmaInterval.ONE_HOUR: "1h",
    EmaInterval.TWO_HOUR: "2h",
    EmaInterval.FOUR_HOUR: "4h",
    EmaInterval.SIX_HOUR: "6h",
    EmaInterval.EIGHT_HOUR: "8h",
    EmaInterval.TWELVE_HOUR: "12h",
    EmaInterval.ONE_DAY: "1d",
    EmaInterval.THREE_DAY: "3d",
    EmaInterval.ONE_WEEK: "1w",
    EmaInterval.ONE_MONTH: "1M",
}

_BY_LOWER_NAME = {option.value.lower(): option for option in EmaInterval}


def parse_interval(value: str | None) -> EmaInterval:
    """Resolve a configured option name case-insensitively; unknown names mean one day."""

    if not value:
        return DEFAULT_INTERVAL
    return _BY_LOWER_NAME.get(value.strip().lower(), DEFAULT_INTERVAL)


def interval_code(option: EmaInterval) -> str:
    """Return the exchange interval code for an option."""

    return INTERVAL_CODES.get(option, INTERVAL_CODES[DEFAULT_INTERVAL])
