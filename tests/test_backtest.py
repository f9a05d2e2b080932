"""Tests for the walk-forward backtest engine and trade statistics."""

import numpy as np
import pytest

import breakout_screener.backtest.engine as engine_module
from breakout_screener.backtest.engine import BacktestEngine, backtest_breakout_strategy
from breakout_screener.backtest.models import BacktestError, BacktestResult, Trade
from breakout_screener.backtest.stats import calculate_stats
from breakout_screener.strategy.models import CandleData

from builders import SPIKE_BARS, flat_series


# ── Helpers ──────────────────────────────────────────────────────────────


def _make_candle(i, o, h, l, c, vol=1000.0):
    return CandleData(time=i, open=o, high=h, low=l, close=c, volume=vol)


def _make_trade(pnl):
    return Trade(
        entry_bar=0,
        entry_price=1.0,
        stop_loss=0.95,
        take_profit=1.15,
        exit_price=1.0 + pnl / 100,
        exit_type="Time Exit",
        bars_held=1,
        pnl_percent=pnl,
        date="2025-01-01",
    )


def _random_walk(n=320, seed=7):
    rng = np.random.default_rng(seed)
    closes = 0.5 * np.exp(np.cumsum(rng.normal(0.0, 0.03, n)))
    candles = []
    prev = closes[0]
    for i, close in enumerate(closes):
        wick = abs(rng.normal(0.0, 0.01))
        high = max(prev, close) * (1 + wick)
        low = min(prev, close) * (1 - wick)
        candles.append(
            _make_candle(i, float(prev), float(high), float(low), float(close),
                         float(rng.uniform(500, 3000)))
        )
        prev = close
    return candles


# ── Engine ───────────────────────────────────────────────────────────────


class TestBacktestPreconditions:
    def test_insufficient_history(self):
        result = backtest_breakout_strategy(flat_series(249))
        assert isinstance(result, BacktestError)
        assert result.to_dict() == {"error": "Not enough historical data for backtest"}

    def test_flat_history_has_no_trades(self):
        result = backtest_breakout_strategy(flat_series(260))
        assert isinstance(result, BacktestResult)
        assert result.total_trades == 0
        assert result.win_rate == 0.0
        assert result.trades == []
        assert result.completed is True


class TestBacktestEngineeredScenario:
    def test_five_winning_trades(self, five_breakouts):
        result = backtest_breakout_strategy(five_breakouts)
        assert result.total_trades == 5
        assert result.winning_trades == 5
        assert result.losing_trades == 0
        assert result.win_rate == 100.0
        assert all(t.exit_type == "Take Profit" for t in result.trades)

    def test_entries_follow_each_spike(self, five_breakouts):
        result = backtest_breakout_strategy(five_breakouts)
        assert [t.entry_bar for t in result.trades] == [s + 1 for s in SPIKE_BARS]
        assert all(t.bars_held == 1 for t in result.trades)
        assert all(t.entry_price == 1.05 for t in result.trades)

    def test_levels_bracket_the_target_bar(self, five_breakouts):
        for trade in backtest_breakout_strategy(five_breakouts).trades:
            assert trade.stop_loss < 1.04
            assert 1.05 < trade.take_profit <= 1.15
            assert trade.exit_price == trade.take_profit
            assert trade.pnl_percent > 0

    def test_stats_without_losers(self, five_breakouts):
        result = backtest_breakout_strategy(five_breakouts)
        assert result.average_loss == 0.0
        assert result.profit_factor == 0.0
        assert result.expectancy == pytest.approx(result.average_profit)

    def test_to_dict(self, five_breakouts):
        data = backtest_breakout_strategy(five_breakouts).to_dict()
        assert data["total_trades"] == 5
        assert data["trades"][0]["exit_type"] == "Take Profit"
        assert data["completed"] is True


class TestBacktestInvariants:
    def test_trades_never_overlap(self):
        result = backtest_breakout_strategy(_random_walk())
        for prev, nxt in zip(result.trades, result.trades[1:]):
            assert nxt.entry_bar > prev.entry_bar + prev.bars_held

    def test_trade_bounds(self):
        candles = _random_walk()
        result = backtest_breakout_strategy(candles)
        assert result.total_trades == len(result.trades)
        for trade in result.trades:
            assert 200 <= trade.entry_bar < len(candles) - 20
            assert 1 <= trade.bars_held <= 19
            assert trade.stop_loss < trade.take_profit
            assert trade.exit_type in ("Stop Loss", "Take Profit", "Time Exit")


class TestStop:
    def test_stop_during_run(self, five_breakouts, monkeypatch):
        engine = BacktestEngine()
        calls = []
        real_analyze = engine_module.analyze_breakout

        def _analyze_then_stop(candles, config):
            calls.append(len(candles))
            engine.stop()
            return real_analyze(candles, config)

        monkeypatch.setattr(engine_module, "analyze_breakout", _analyze_then_stop)
        result = engine.run(five_breakouts)

        assert calls == [200]
        assert result.completed is False
        assert result.total_trades == 0
        assert not engine.running

    def test_not_running_after_completion(self, five_breakouts):
        engine = BacktestEngine()
        engine.run(five_breakouts)
        assert not engine.running


class TestSimulateTrade:
    def test_stop_checked_before_target(self):
        candles = [
            _make_candle(0, 1.0, 1.0, 1.0, 1.0),
            _make_candle(1, 1.0, 1.2, 0.9, 1.0),
        ]
        trade = BacktestEngine._simulate_trade(candles, 0, 0.95, 1.1)
        assert trade.exit_type == "Stop Loss"
        assert trade.exit_price == 0.95
        assert trade.pnl_percent == pytest.approx(-5.0)

    def test_take_profit(self):
        candles = [
            _make_candle(0, 1.0, 1.0, 1.0, 1.0),
            _make_candle(1, 1.0, 1.05, 0.99, 1.02),
            _make_candle(2, 1.02, 1.12, 1.0, 1.1),
        ]
        trade = BacktestEngine._simulate_trade(candles, 0, 0.95, 1.1)
        assert trade.exit_type == "Take Profit"
        assert trade.bars_held == 2
        assert trade.pnl_percent == pytest.approx(10.0)

    def test_time_exit_after_holding_window(self):
        candles = flat_series(30)
        trade = BacktestEngine._simulate_trade(candles, 0, 0.9, 1.1)
        assert trade.exit_type == "Time Exit"
        assert trade.bars_held == 19
        assert trade.exit_price == candles[19].close

    def test_time_exit_at_end_of_data(self):
        candles = flat_series(5)
        trade = BacktestEngine._simulate_trade(candles, 0, 0.9, 1.1)
        assert trade.exit_type == "Time Exit"
        assert trade.bars_held == 4


# ── Stats ────────────────────────────────────────────────────────────────


class TestCalculateStats:
    def test_empty(self):
        stats = calculate_stats([])
        assert stats["total_trades"] == 0
        assert stats["win_rate"] == 0.0
        assert stats["expectancy"] == 0.0

    def test_mixed_trades(self):
        stats = calculate_stats([_make_trade(p) for p in (10, -5, 0, 20)])
        assert stats["winning_trades"] == 2
        # Breakeven counts as a loser
        assert stats["losing_trades"] == 2
        assert stats["win_rate"] == pytest.approx(50.0)
        assert stats["average_profit"] == pytest.approx(15.0)
        assert stats["average_loss"] == pytest.approx(2.5)
        assert stats["profit_factor"] == pytest.approx(6.0)
        assert stats["expectancy"] == pytest.approx(6.25)

    def test_all_losers(self):
        stats = calculate_stats([_make_trade(-2), _make_trade(-4)])
        assert stats["win_rate"] == 0.0
        assert stats["average_profit"] == 0.0
        assert stats["profit_factor"] == 0.0
        assert stats["expectancy"] == pytest.approx(-3.0)

    def test_winners_plus_losers_equals_total(self):
        stats = calculate_stats([_make_trade(p) for p in (1, -1, 2, 0, -3)])
        assert stats["winning_trades"] + stats["losing_trades"] == stats["total_trades"]
