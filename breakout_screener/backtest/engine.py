"""Backtest engine — walk-forward replay of the breakout analyzer.

At each bar ``i`` the analyzer only sees ``candles[:i]``.  A candidate
opens a long at ``close[i]`` with the analyzer's stop and target, and the
following bars are scanned until one of them is touched or the holding
window runs out.  The walk then resumes after the last held bar, so
trades never overlap.
"""

import logging
from typing import Optional, Sequence, Union

from breakout_screener.backtest.models import BacktestError, BacktestResult, Trade
from breakout_screener.backtest.stats import calculate_stats
from breakout_screener.config import BreakoutConfig
from breakout_screener.strategy.breakout import analyze_breakout
from breakout_screener.strategy.models import CandleData

logger = logging.getLogger("breakout_screener.backtest")

MIN_HISTORY_BARS = 250
WARMUP_BARS = 200
# Bars reserved at the end of the data for the forward scan.
FORWARD_WINDOW = 20
MAX_HOLD_BARS = FORWARD_WINDOW - 1

BacktestOutcome = Union[BacktestResult, BacktestError]


class BacktestEngine:
    """Simulates the breakout rule on historical daily candles.

    Args:
        config: Analyzer parameters used at every step.
    """

    def __init__(self, config: Optional[BreakoutConfig] = None) -> None:
        self._config = config or BreakoutConfig()
        self._running: bool = False

    # ── Public API ───────────────────────────────────────────────────────

    @property
    def running(self) -> bool:
        return self._running

    def stop(self) -> None:
        """Ask a running walk to finish at the next bar."""
        self._running = False

    def run(self, candles: Sequence[CandleData]) -> BacktestOutcome:
        """Execute a full walk-forward backtest.

        Returns:
            ``BacktestResult``, or ``BacktestError`` when fewer than 250
            candles are supplied.
        """
        n = len(candles)
        if n < MIN_HISTORY_BARS:
            logger.warning(
                "Backtest needs at least %d candles, got %d",
                MIN_HISTORY_BARS, n,
            )
            return BacktestError(error="Not enough historical data for backtest")

        self._running = True
        trades: list[Trade] = []
        completed = True

        i = WARMUP_BARS
        while i < n - FORWARD_WINDOW:
            if not self._running:
                completed = False
                logger.info("Backtest stopped at bar %d of %d", i, n)
                break

            analysis = analyze_breakout(candles[:i], self._config)
            if (
                analysis.is_breakout_candidate
                and analysis.suggested_stop_loss is not None
                and analysis.suggested_take_profit is not None
            ):
                trade = self._simulate_trade(
                    candles,
                    i,
                    analysis.suggested_stop_loss,
                    analysis.suggested_take_profit,
                )
                trades.append(trade)
                logger.debug(
                    "Trade at bar %d: %s after %d bars, %.2f%%",
                    trade.entry_bar, trade.exit_type, trade.bars_held, trade.pnl_percent,
                )
                i += trade.bars_held
            i += 1

        self._running = False

        stats = calculate_stats(trades)
        logger.info(
            "Backtest complete: %d trades, win rate %.1f%%, expectancy %.2f%%",
            stats["total_trades"], stats["win_rate"], stats["expectancy"],
        )
        return BacktestResult(**stats, trades=trades, completed=completed)

    # ── Helpers ──────────────────────────────────────────────────────────

    @staticmethod
    def _simulate_trade(
        candles: Sequence[CandleData],
        entry_bar: int,
        stop_loss: float,
        take_profit: float,
    ) -> Trade:
        """Scan forward from *entry_bar* for the first exit.

        The stop is checked before the target on each bar, so a bar
        touching both exits at the stop.  Without either, the trade
        closes at the last bar of the holding window.
        """
        entry_price = candles[entry_bar].close
        last_bar = min(entry_bar + MAX_HOLD_BARS, len(candles) - 1)

        exit_price = entry_price
        exit_type = "Time Exit"
        bars_held = 0
        for j in range(entry_bar + 1, last_bar + 1):
            bar = candles[j]
            bars_held += 1
            if bar.low <= stop_loss:
                exit_price, exit_type = stop_loss, "Stop Loss"
                break
            if bar.high >= take_profit:
                exit_price, exit_type = take_profit, "Take Profit"
                break
            if j == last_bar:
                exit_price = bar.close

        return Trade(
            entry_bar=entry_bar,
            entry_price=entry_price,
            stop_loss=stop_loss,
            take_profit=take_profit,
            exit_price=exit_price,
            exit_type=exit_type,
            bars_held=bars_held,
            pnl_percent=(exit_price - entry_price) / entry_price * 100,
            date=candles[entry_bar].time,
        )


def backtest_breakout_strategy(
    candles: Sequence[CandleData],
    config: Optional[BreakoutConfig] = None,
) -> BacktestOutcome:
    """One-shot convenience wrapper around ``BacktestEngine.run``."""
    return BacktestEngine(config).run(candles)
