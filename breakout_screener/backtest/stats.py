"""Backtest statistics — pure functions for trade-series analysis."""

from typing import Sequence

from breakout_screener.backtest.models import Trade


def calculate_stats(trades: Sequence[Trade]) -> dict:
    """Compute summary statistics from closed backtest trades.

    A trade with ``pnl_percent > 0`` is a winner; everything else,
    breakeven included, is a loser.

    Returns:
        Dict with ``total_trades``, ``winning_trades``, ``losing_trades``,
        ``win_rate`` (percent), ``average_profit``, ``average_loss``
        (both positive magnitudes, in percent), ``profit_factor``
        (average profit ÷ average loss, 0 without losers) and
        ``expectancy`` (percent per trade).
    """
    if not trades:
        return {
            "total_trades": 0,
            "winning_trades": 0,
            "losing_trades": 0,
            "win_rate": 0.0,
            "average_profit": 0.0,
            "average_loss": 0.0,
            "profit_factor": 0.0,
            "expectancy": 0.0,
        }

    pnls = [t.pnl_percent for t in trades]
    total = len(pnls)
    winners = [p for p in pnls if p > 0]
    losers = [abs(p) for p in pnls if p <= 0]

    win_rate = len(winners) / total * 100
    average_profit = sum(winners) / len(winners) if winners else 0.0
    average_loss = sum(losers) / len(losers) if losers else 0.0
    profit_factor = average_profit / average_loss if average_loss > 0 else 0.0

    return {
        "total_trades": total,
        "winning_trades": len(winners),
        "losing_trades": len(losers),
        "win_rate": win_rate,
        "average_profit": average_profit,
        "average_loss": average_loss,
        "profit_factor": profit_factor,
        "expectancy": _expectancy(win_rate, average_profit, average_loss),
    }


def _expectancy(win_rate: float, average_profit: float, average_loss: float) -> float:
    """Expected percent return per trade from a win rate given in percent."""
    p = win_rate / 100
    return p * average_profit - (1 - p) * average_loss
