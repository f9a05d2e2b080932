"""Technical indicators — SMA, EMA, RSI, Bollinger, ATR, OBV, MACD, plus
breakout pattern detectors.  Pure functions, no I/O.

Every series function returns a list aligned index-for-index with its
input.  Positions without enough history hold ``None``; insufficient or
mismatched input never raises, it yields an all-``None`` series (or
``False`` for the detectors).
"""

import math
from typing import Optional, Sequence

from breakout_screener.strategy.models import BollingerPoint, MACDPoint

Series = list[Optional[float]]

# Average loss floor used when a window has no losing deltas.
RSI_LOSS_FLOOR = 0.001


# ── Moving averages ──────────────────────────────────────────────────────


def calculate_sma(data: Sequence[float], period: int) -> Series:
    """Simple Moving Average of the trailing *period* values.

    First value at index ``period - 1``.
    """
    n = len(data)
    if period < 1 or n < period:
        return [None] * n

    result: Series = [None] * (period - 1)
    window_sum = sum(data[:period])
    result.append(window_sum / period)
    for i in range(period, n):
        window_sum += data[i] - data[i - period]
        result.append(window_sum / period)
    return result


def calculate_ema(data: Sequence[float], period: int) -> Series:
    """Exponential Moving Average.

    Seeded with the SMA of the first *period* values (placed at index
    ``period - 1``), then::

        ema[i] = (data[i] - ema[i-1]) * k + ema[i-1],   k = 2 / (period + 1)
    """
    n = len(data)
    if period < 1 or n < period:
        return [None] * n

    k = 2.0 / (period + 1)
    ema = sum(data[:period]) / period
    result: Series = [None] * (period - 1) + [ema]
    for i in range(period, n):
        ema = (data[i] - ema) * k + ema
        result.append(ema)
    return result


# ── RSI ──────────────────────────────────────────────────────────────────


def _rsi_from_avgs(avg_gain: float, avg_loss: float) -> float:
    rs = avg_gain / (avg_loss if avg_loss != 0 else RSI_LOSS_FLOOR)
    return 100.0 - 100.0 / (1.0 + rs)


def calculate_rsi(data: Sequence[float], period: int = 14) -> Series:
    """Wilder's Relative Strength Index.

    Algorithm:
        1. delta = close[i] - close[i-1]
        2. Seed average gain/loss = simple mean over the first *period* deltas.
        3. Subsequent: avg = (prev_avg × (period-1) + current) / period
        4. RS = avg_gain / avg_loss (loss floored at 0.001 when zero)
        5. RSI = 100 - 100 / (1 + RS)

    Needs ``period + 1`` values; the first RSI sits at index *period*.
    """
    n = len(data)
    if period < 1 or n < period + 1:
        return [None] * n

    deltas = [data[i] - data[i - 1] for i in range(1, n)]
    gains = [d if d > 0 else 0.0 for d in deltas]
    losses = [-d if d < 0 else 0.0 for d in deltas]

    avg_gain = sum(gains[:period]) / period
    avg_loss = sum(losses[:period]) / period

    result: Series = [None] * period
    result.append(_rsi_from_avgs(avg_gain, avg_loss))

    for i in range(period, len(deltas)):
        avg_gain = (avg_gain * (period - 1) + gains[i]) / period
        avg_loss = (avg_loss * (period - 1) + losses[i]) / period
        result.append(_rsi_from_avgs(avg_gain, avg_loss))

    return result


# ── Bollinger Bands ──────────────────────────────────────────────────────


def calculate_bollinger(
    data: Sequence[float],
    period: int = 20,
    std_dev: float = 2.0,
) -> list[BollingerPoint]:
    """Bollinger Bands with bandwidth and %B.

    Middle = SMA(*period*); σ is the population standard deviation of
    the same window.  ``width = (upper - lower) / middle`` and
    ``percent = (close - lower) / (upper - lower)``.

    A zero-width band (flat window) reports ``percent = 0.5``; a zero
    middle reports ``width = 0.0``.
    """
    n = len(data)
    empty = BollingerPoint()
    if period < 1 or n < period:
        return [empty] * n

    sma = calculate_sma(data, period)
    points: list[BollingerPoint] = [empty] * (period - 1)

    for i in range(period - 1, n):
        middle = sma[i]
        window = data[i - period + 1 : i + 1]
        variance = sum((x - middle) ** 2 for x in window) / period
        sigma = math.sqrt(variance)

        upper = middle + std_dev * sigma
        lower = middle - std_dev * sigma
        band = upper - lower
        width = band / middle if middle != 0 else 0.0
        percent = (data[i] - lower) / band if band != 0 else 0.5

        points.append(
            BollingerPoint(
                upper=upper, middle=middle, lower=lower, width=width, percent=percent,
            )
        )

    return points


# ── ATR ──────────────────────────────────────────────────────────────────


def calculate_atr(
    high: Sequence[float],
    low: Sequence[float],
    close: Sequence[float],
    period: int = 14,
) -> Series:
    """Average True Range (Wilder).

    ``TR[0] = high[0] - low[0]``; afterwards
    ``TR = max(high - low, |high - prev_close|, |low - prev_close|)``.
    The first ATR is the mean of the first *period* true ranges, placed
    at index ``period - 1``; then ``atr = (atr × (period-1) + TR) / period``.

    Mismatched input lengths or fewer than two bars give an all-``None``
    series.
    """
    n = len(high)
    if n < 2 or len(low) != n or len(close) != n:
        return [None] * n
    if period < 1 or n < period:
        return [None] * n

    true_ranges = [high[0] - low[0]]
    for i in range(1, n):
        prev_close = close[i - 1]
        true_ranges.append(
            max(
                high[i] - low[i],
                abs(high[i] - prev_close),
                abs(low[i] - prev_close),
            )
        )

    atr = sum(true_ranges[:period]) / period
    result: Series = [None] * (period - 1) + [atr]
    for i in range(period, n):
        atr = (atr * (period - 1) + true_ranges[i]) / period
        result.append(atr)
    return result


# ── OBV ──────────────────────────────────────────────────────────────────


def calculate_obv(close: Sequence[float], volume: Sequence[float]) -> Series:
    """On-Balance Volume, seeded with ``volume[0]``."""
    n = len(close)
    if n == 0 or len(volume) != n:
        return [None] * n

    obv = volume[0]
    result: Series = [obv]
    for i in range(1, n):
        if close[i] > close[i - 1]:
            obv += volume[i]
        elif close[i] < close[i - 1]:
            obv -= volume[i]
        result.append(obv)
    return result


# ── MACD ─────────────────────────────────────────────────────────────────


def calculate_macd(
    data: Sequence[float],
    fast_period: int = 12,
    slow_period: int = 26,
    signal_period: int = 9,
) -> list[MACDPoint]:
    """MACD line, signal line and histogram.

    The signal EMA runs over the contiguous non-null tail of the MACD
    line and is left-padded back into alignment.  Requires at least
    ``max(fast, slow) + signal`` values.
    """
    n = len(data)
    empty = MACDPoint()
    if n < max(fast_period, slow_period) + signal_period:
        return [empty] * n

    fast = calculate_ema(data, fast_period)
    slow = calculate_ema(data, slow_period)
    macd_line: Series = [
        f - s if f is not None and s is not None else None
        for f, s in zip(fast, slow)
    ]

    valid = [v for v in macd_line if v is not None]
    if len(valid) >= signal_period:
        signal_line = [None] * (n - len(valid)) + calculate_ema(valid, signal_period)
    else:
        signal_line = [None] * n

    points: list[MACDPoint] = []
    for m, s in zip(macd_line, signal_line):
        if m is None or s is None:
            points.append(empty)
        else:
            points.append(MACDPoint(macd=m, signal=s, histogram=m - s))
    return points


# ── Pattern detectors ────────────────────────────────────────────────────


def is_price_consolidating(
    data: Sequence[float], period: int = 6, threshold: float = 0.15,
) -> bool:
    """``True`` when the last *period* closes span at most *threshold*
    of their maximum."""
    if period < 1 or len(data) < period:
        return False
    recent = data[-period:]
    highest = max(recent)
    if highest <= 0:
        return False
    return (highest - min(recent)) / highest <= threshold


def is_volume_increasing(volume: Sequence[float], threshold: float = 0.10) -> bool:
    """``True`` when the last bar's volume grew by more than *threshold*."""
    if len(volume) < 2:
        return False
    previous = volume[-2]
    if previous <= 0:
        return False
    return (volume[-1] - previous) / previous > threshold


def detect_bollinger_breakout(
    data: Sequence[float],
    bands: Sequence[BollingerPoint],
    lookback: int = 10,
) -> bool:
    """Close crossed above the upper band on the last bar."""
    if len(data) < max(lookback, 2) or len(bands) < max(lookback, 2):
        return False
    prev_upper = bands[-2].upper
    curr_upper = bands[-1].upper
    if prev_upper is None or curr_upper is None:
        return False
    return data[-2] <= prev_upper and data[-1] > curr_upper


def detect_positive_rsi_divergence(
    data: Sequence[float],
    rsi: Sequence[Optional[float]],
    lookback: int = 20,
) -> bool:
    """Bullish divergence: a lower price low paired with a higher RSI low.

    Scans the last *lookback* bars for the first two local minima (a close
    at or below each of the five closes either side) and compares them.
    """
    if len(data) < lookback or len(rsi) < lookback:
        return False

    prices = data[-lookback:]
    rsi_window = rsi[-lookback:]

    lows: list[int] = []
    for i in range(5, len(prices) - 5):
        neighbours = list(prices[i - 5 : i]) + list(prices[i + 1 : i + 6])
        if prices[i] <= min(neighbours):
            lows.append(i)
            if len(lows) == 2:
                break

    if len(lows) < 2:
        return False

    first, second = lows
    if rsi_window[first] is None or rsi_window[second] is None:
        return False
    return prices[second] < prices[first] and rsi_window[second] > rsi_window[first]
