"""Shared fixtures built from the synthetic series in ``builders``."""

import pytest

from breakout_screener.strategy.models import CoinData

from builders import five_breakouts_series, flat_series, spike_series


@pytest.fixture
def breakout_candles():
    return spike_series()


@pytest.fixture
def flat_candles():
    return flat_series(230, 0.5, 0.01)


@pytest.fixture
def five_breakouts():
    return five_breakouts_series()


@pytest.fixture
def signal_coin():
    """Three timeframes that pass every signal gate."""
    return CoinData(
        symbol="TEST",
        hourly=spike_series(),
        four_hour=spike_series(),
        daily=spike_series(wick_high=0.56),
    )
