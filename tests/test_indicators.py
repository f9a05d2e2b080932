"""Tests for breakout_screener.strategy.indicators — series and detectors."""

import math

import pytest

from breakout_screener.strategy.indicators import (
    calculate_atr,
    calculate_bollinger,
    calculate_ema,
    calculate_macd,
    calculate_obv,
    calculate_rsi,
    calculate_sma,
    detect_bollinger_breakout,
    detect_positive_rsi_divergence,
    is_price_consolidating,
    is_volume_increasing,
)
from breakout_screener.strategy.models import BollingerPoint


def _zigzag(n, base=10.0, step=0.5):
    """Alternating up/down moves with a slow upward drift."""
    out = []
    price = base
    for i in range(n):
        price += step if i % 2 == 0 else -step * 0.6
        out.append(price)
    return out


# ── Moving averages ──────────────────────────────────────────────────────


class TestSMA:
    def test_values_and_warmup(self):
        result = calculate_sma([1, 2, 3, 4, 5], 3)
        assert result[:2] == [None, None]
        assert result[2:] == pytest.approx([2.0, 3.0, 4.0])

    def test_short_input_all_none(self):
        assert calculate_sma([1, 2], 3) == [None, None]

    def test_empty_input(self):
        assert calculate_sma([], 5) == []


class TestEMA:
    def test_seeded_with_sma(self):
        result = calculate_ema([2, 4, 6, 8], 3)
        assert result[:2] == [None, None]
        assert result[2] == pytest.approx(4.0)
        # k = 0.5: (8 - 4) * 0.5 + 4
        assert result[3] == pytest.approx(6.0)

    def test_constant_series(self):
        result = calculate_ema([3.0] * 30, 10)
        assert all(v == pytest.approx(3.0) for v in result[9:])

    def test_short_input_all_none(self):
        assert calculate_ema([1.0] * 4, 5) == [None] * 4


# ── RSI ──────────────────────────────────────────────────────────────────


class TestRSI:
    def test_leading_nones(self):
        result = calculate_rsi(_zigzag(30), 14)
        assert len(result) == 30
        assert result[:14] == [None] * 14
        assert all(v is not None for v in result[14:])

    def test_values_within_bounds(self):
        result = calculate_rsi(_zigzag(60), 14)
        assert all(0 <= v <= 100 for v in result[14:])

    def test_scale_invariant(self):
        prices = _zigzag(50)
        base = calculate_rsi(prices, 14)
        scaled = calculate_rsi([p * 7 for p in prices], 14)
        for a, b in zip(base[14:], scaled[14:]):
            assert a == pytest.approx(b)

    def test_offset_leaves_deltas_unchanged(self):
        # Built on close-to-close differences, not price levels
        prices = _zigzag(50)
        base = calculate_rsi(prices, 14)
        shifted = calculate_rsi([p + 100 for p in prices], 14)
        for a, b in zip(base[14:], shifted[14:]):
            assert a == pytest.approx(b)

    def test_scaling_changes_floored_rsi(self):
        # With no losses the 0.001 floor is absolute, so scaling moves RS
        prices = [float(i) for i in range(1, 17)]
        base = calculate_rsi(prices, 14)[14]
        scaled = calculate_rsi([p * 10 for p in prices], 14)[14]
        assert base == pytest.approx(100 - 100 / 1001)
        assert scaled == pytest.approx(100 - 100 / 10001)

    def test_only_gains_uses_loss_floor(self):
        result = calculate_rsi([float(i) for i in range(1, 17)], 14)
        # avg gain 1, loss floored at 0.001 → RS 1000
        assert result[14] == pytest.approx(100 - 100 / 1001)

    def test_flat_series_is_zero(self):
        result = calculate_rsi([5.0] * 20, 14)
        assert result[14] == 0.0

    def test_short_input_all_none(self):
        assert calculate_rsi([1.0] * 14, 14) == [None] * 14


# ── Bollinger ────────────────────────────────────────────────────────────


class TestBollinger:
    def test_none_exactly_during_warmup(self):
        data = _zigzag(40)
        bands = calculate_bollinger(data, 20)
        sma = calculate_sma(data, 20)
        assert len(bands) == len(data)
        for band, mid in zip(bands, sma):
            assert (band.upper is None) == (mid is None)
            assert (band.width is None) == (mid is None)

    def test_population_std_dev(self):
        data = [1.0, 2.0, 3.0, 4.0]
        band = calculate_bollinger(data, 4)[-1]
        sigma = math.sqrt(1.25)
        assert band.middle == pytest.approx(2.5)
        assert band.upper == pytest.approx(2.5 + 2 * sigma)
        assert band.lower == pytest.approx(2.5 - 2 * sigma)
        assert band.width == pytest.approx(4 * sigma / 2.5)
        assert band.percent == pytest.approx((4.0 - band.lower) / (4 * sigma))

    def test_flat_window_percent_is_half(self):
        band = calculate_bollinger([2.0] * 20, 20)[-1]
        assert band.width == 0.0
        assert band.percent == 0.5

    def test_short_input(self):
        assert calculate_bollinger([1.0] * 5, 20) == [BollingerPoint()] * 5


# ── ATR ──────────────────────────────────────────────────────────────────


class TestATR:
    def test_uniform_ranges(self):
        n = 20
        high = [1.01] * n
        low = [0.99] * n
        close = [1.0] * n
        result = calculate_atr(high, low, close, 14)
        assert result[:13] == [None] * 13
        assert all(v == pytest.approx(0.02) for v in result[13:])

    def test_true_range_uses_previous_close(self):
        high = [1.0, 1.5]
        low = [0.9, 1.4]
        close = [0.95, 1.45]
        # TR[0] = 0.1, TR[1] = |1.5 - 0.95| = 0.55
        result = calculate_atr(high, low, close, 2)
        assert result == [None, pytest.approx(0.325)]

    def test_single_bar_all_none(self):
        assert calculate_atr([1.0], [0.9], [0.95], 1) == [None]

    def test_mismatched_lengths_all_none(self):
        assert calculate_atr([1.0] * 20, [0.9] * 19, [0.95] * 20) == [None] * 20

    def test_fewer_than_period(self):
        assert calculate_atr([1.0] * 10, [0.9] * 10, [0.95] * 10, 14) == [None] * 10


# ── OBV ──────────────────────────────────────────────────────────────────


class TestOBV:
    def test_accumulates_by_direction(self):
        close = [1.0, 1.1, 1.05, 1.05, 1.2]
        volume = [100, 200, 50, 70, 300]
        assert calculate_obv(close, volume) == [100, 300, 250, 250, 550]

    def test_empty(self):
        assert calculate_obv([], []) == []


# ── MACD ─────────────────────────────────────────────────────────────────


class TestMACD:
    def test_warmup_alignment(self):
        data = _zigzag(60)
        points = calculate_macd(data)
        assert len(points) == 60
        # MACD line from slow-1 = 25, signal from 25 + 9 - 1 = 33
        assert points[32].histogram is None
        assert points[33].histogram is not None
        assert points[33].histogram == pytest.approx(
            points[33].macd - points[33].signal
        )

    def test_short_input_all_empty(self):
        points = calculate_macd(_zigzag(34))
        assert all(p.macd is None and p.histogram is None for p in points)

    def test_flat_series_zero_histogram(self):
        points = calculate_macd([1.0] * 50)
        assert points[-1].histogram == pytest.approx(0.0)


# ── Detectors ────────────────────────────────────────────────────────────


class TestConsolidation:
    def test_tight_range(self):
        assert is_price_consolidating([1.0, 1.02, 0.99, 1.01, 1.0, 1.03], 6, 0.15)

    def test_wide_range(self):
        assert not is_price_consolidating([1.0, 1.5, 0.9, 1.0, 1.0, 1.0], 6, 0.15)

    def test_not_enough_data(self):
        assert not is_price_consolidating([1.0] * 5, 6, 0.15)

    def test_non_positive_max(self):
        assert not is_price_consolidating([0.0] * 6, 6, 0.15)


class TestVolumeIncreasing:
    def test_increase_above_threshold(self):
        assert is_volume_increasing([100, 120], 0.10)

    def test_increase_at_threshold_is_false(self):
        assert not is_volume_increasing([100, 110], 0.10)

    def test_zero_previous_volume(self):
        assert not is_volume_increasing([0, 500], 0.10)

    def test_single_bar(self):
        assert not is_volume_increasing([100], 0.10)


class TestBollingerBreakout:
    def _bands(self, uppers):
        return [BollingerPoint(upper=u) for u in uppers]

    def test_cross_above_upper(self):
        data = [1.0] * 9 + [1.0, 1.2]
        bands = self._bands([None] * 9 + [1.05, 1.1])
        assert detect_bollinger_breakout(data, bands)

    def test_already_above(self):
        data = [1.0] * 9 + [1.1, 1.2]
        bands = self._bands([None] * 9 + [1.05, 1.1])
        assert not detect_bollinger_breakout(data, bands)

    def test_missing_upper(self):
        data = [1.0] * 9 + [1.0, 1.2]
        bands = self._bands([None] * 10 + [1.1])
        assert not detect_bollinger_breakout(data, bands)

    def test_short_input(self):
        assert not detect_bollinger_breakout([1.0, 1.2], self._bands([1.05, 1.1]))


class TestRSIDivergence:
    @staticmethod
    def _prices():
        prices = [10.0] * 20
        prices[6] = 8.0
        prices[12] = 7.0
        return prices

    def test_lower_low_with_higher_rsi(self):
        rsi = [50.0] * 20
        rsi[6], rsi[12] = 30.0, 40.0
        assert detect_positive_rsi_divergence(self._prices(), rsi, 20)

    def test_lower_rsi_low_is_not_divergence(self):
        rsi = [50.0] * 20
        rsi[6], rsi[12] = 30.0, 25.0
        assert not detect_positive_rsi_divergence(self._prices(), rsi, 20)

    def test_null_rsi_at_low(self):
        rsi = [50.0] * 20
        rsi[6], rsi[12] = None, 40.0
        assert not detect_positive_rsi_divergence(self._prices(), rsi, 20)

    def test_short_input(self):
        assert not detect_positive_rsi_divergence([1.0] * 10, [50.0] * 10, 20)
