"""Deterministic synthetic candle series for the test suite."""

from breakout_screener.strategy.models import CandleData


def _make_candle(i, o, h, l, c, vol=1000.0):
    return CandleData(time=f"t{i:04d}", open=o, high=h, low=l, close=c, volume=vol)


def flat_series(n, price=1.0, spread=0.005, volume=1000.0):
    """*n* bars closing at *price* with a fixed high-low spread."""
    return [
        _make_candle(i, price, price + spread, price - spread, price, volume)
        for i in range(n)
    ]


def spike_series(n_flat=230, base=0.5, spread=0.01, wick_high=None, wick_low=None):
    """Flat history ending in one engineered breakout bar.

    The last bar closes 5 % higher on doubled volume, out of a flat
    20-bar range, above the EMA200.  With *wick_high* / *wick_low* the
    bar 11 from the end gets an intrabar wick (closes unaffected).
    """
    candles = flat_series(n_flat, base, spread)
    if wick_high is not None or wick_low is not None:
        idx = n_flat - 10
        candles[idx] = _make_candle(
            idx,
            base,
            wick_high if wick_high is not None else base + spread,
            wick_low if wick_low is not None else base - spread,
            base,
        )
    candles.append(
        _make_candle(n_flat, base, base * 1.06, base * 0.98, base * 1.05, 2000.0)
    )
    return candles


SPIKE_BARS = (205, 221, 237, 253, 269)


def five_breakouts_series(n=300):
    """Daily series with five breakout-then-target events.

    Flat at 1.0 except, for each spike bar ``s``::

        s    spike   close 1.05, volume doubled
        s+1  entry   close 1.05
        s+2  target  high 1.15 (above any target), low 1.04 (above any stop)
        s+3  return  close 1.00

    Bar 0 carries a huge volume so OBV growth never reaches 5 %.
    """
    candles = flat_series(n, 1.0, 0.005)
    candles[0] = _make_candle(0, 1.0, 1.005, 0.995, 1.0, 1e9)
    for s in SPIKE_BARS:
        candles[s] = _make_candle(s, 1.0, 1.055, 0.998, 1.05, 2000.0)
        candles[s + 1] = _make_candle(s + 1, 1.05, 1.055, 1.045, 1.05)
        candles[s + 2] = _make_candle(s + 2, 1.05, 1.15, 1.04, 1.04)
        candles[s + 3] = _make_candle(s + 3, 1.04, 1.045, 0.995, 1.0)
    return candles

