"""EMA seeding, recurrence, and crossover classification."""

from decimal import Decimal

import pytest

from ema_scanner.core.indicators import compute_ema_series, detect_crossover
from ema_scanner.core.types import CrossoverKind

UPTREND = [Decimal(value) for value in (10, 10, 10, 10, 10, 12, 14, 16, 18, 20)]
DOWNTREND = [Decimal(value) for value in (10, 10, 10, 10, 10, 8, 6, 4, 2, 1)]
TOLERANCE = Decimal("1e-20")


def test_seed_fills_warmup_indices_with_simple_mean() -> None:
    """Every index before the period holds the mean of the first period prices."""

    prices = [Decimal(value) for value in ("1.5", "2.5", "4", "7", "11")]
    ema = compute_ema_series(prices, period=3)

    assert len(ema) == len(prices)
    assert ema[:3] == [Decimal("8") / Decimal("3")] * 3


def test_recurrence_after_seed() -> None:
    """Values after the seed follow price * k + previous * (1 - k)."""

    period = 4
    prices = [Decimal(value) for value in ("100.1", "99.8", "101.3", "102.0", "103.7", "101.9", "104.4")]
    ema = compute_ema_series(prices, period=period)
    k = Decimal(2) / Decimal(period + 1)

    for idx in range(period, len(prices)):
        expected = prices[idx] * k + ema[idx - 1] * (Decimal(1) - k)
        assert abs(ema[idx] - expected) <= TOLERANCE


def test_uptrend_fixture_values() -> None:
    """The ten-price uptrend yields exact EMA3 values and EMA5 values within rounding."""

    ema3 = compute_ema_series(UPTREND, period=3)
    ema5 = compute_ema_series(UPTREND, period=5)

    assert ema3[-2:] == [Decimal("16.125"), Decimal("18.0625")]
    assert abs(ema5[-2] - Decimal(1198) / Decimal(81)) <= TOLERANCE
    assert abs(ema5[-1] - Decimal(4016) / Decimal(243)) <= TOLERANCE


def test_golden_cross_fires_when_uptrend_begins() -> None:
    """EMA3 leaves the tie with EMA5 on the first rising price."""

    first_rise = UPTREND[:6]
    kind = detect_crossover(compute_ema_series(first_rise, 3), compute_ema_series(first_rise, 5))
    assert kind is CrossoverKind.BULLISH

    # By the end of the fixture the short average has been above for several bars.
    full = detect_crossover(compute_ema_series(UPTREND, 3), compute_ema_series(UPTREND, 5))
    assert full is CrossoverKind.NONE


def test_death_cross_fires_when_downtrend_begins() -> None:
    """The mirrored fixture raises a bearish event and never a bullish one."""

    kinds = [
        detect_crossover(compute_ema_series(DOWNTREND[:end], 3), compute_ema_series(DOWNTREND[:end], 5))
        for end in range(6, len(DOWNTREND) + 1)
    ]

    assert kinds[0] is CrossoverKind.BEARISH
    assert CrossoverKind.BULLISH not in kinds
    assert kinds.count(CrossoverKind.BEARISH) == 1


@pytest.mark.parametrize(
    ("short", "long", "expected"),
    [
        (["1", "2"], ["1", "1"], CrossoverKind.BULLISH),
        (["1", "0"], ["1", "1"], CrossoverKind.BEARISH),
        (["0", "2"], ["1", "1"], CrossoverKind.BULLISH),
        (["1", "1"], ["1", "1"], CrossoverKind.NONE),
        (["2", "3"], ["1", "1"], CrossoverKind.NONE),
        (["0", "0"], ["1", "1"], CrossoverKind.NONE),
        (["2", "1"], ["1", "1"], CrossoverKind.NONE),
    ],
)
def test_crossover_tie_break(short: list[str], long: list[str], expected: CrossoverKind) -> None:
    """Equality at the prior point counts as not yet crossed; equality now is no event."""

    kind = detect_crossover([Decimal(v) for v in short], [Decimal(v) for v in long])
    assert kind is expected


def test_invalid_inputs_raise() -> None:
    """Too-short inputs and non-positive periods are rejected."""

    with pytest.raises(ValueError):
        compute_ema_series([Decimal(1), Decimal(2)], period=3)
    with pytest.raises(ValueError):
        compute_ema_series([Decimal(1)], period=0)
    with pytest.raises(ValueError):
        detect_crossover([Decimal(1)], [Decimal(1)])
    with pytest.raises(ValueError):
        detect_crossover([Decimal(1), Decimal(2)], [Decimal(1)])
