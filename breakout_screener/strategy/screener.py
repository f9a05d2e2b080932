"""Screener — runs the signal generator over many symbols, one at a time.

Candles are supplied by the caller; fetching them is not this module's
concern.
"""

import logging
from dataclasses import dataclass, field
from typing import Iterable, Optional, Sequence

from breakout_screener.backtest.engine import BacktestOutcome, backtest_breakout_strategy
from breakout_screener.config import AccuracyFilter, BreakoutConfig
from breakout_screener.strategy.models import CoinData, Signal
from breakout_screener.strategy.signals import (
    SignalOutcome,
    filter_signals_for_high_accuracy,
    generate_breakout_signal,
)

logger = logging.getLogger("breakout_screener.screener")


@dataclass(frozen=True)
class ScreenResult:
    """Outcome of one screening pass."""

    processed: int
    total_eligible: int
    signals_found: int
    high_accuracy_signals: int
    signals: list[Signal] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "processed": self.processed,
            "total_eligible": self.total_eligible,
            "signals_found": self.signals_found,
            "high_accuracy_signals": self.high_accuracy_signals,
            "signals": [s.to_dict() for s in self.signals],
        }


@dataclass(frozen=True)
class SymbolReport:
    """Signal decision plus a daily backtest for one symbol."""

    symbol: str
    signal: SignalOutcome
    backtest: BacktestOutcome

    def to_dict(self) -> dict:
        return {
            "symbol": self.symbol,
            "signal": self.signal.to_dict(),
            "backtest": self.backtest.to_dict(),
        }


def screen_symbols(
    coins: Iterable[CoinData],
    config: Optional[BreakoutConfig] = None,
    min_score: int = 70,
    max_results: int = 10,
    accuracy_filter: Optional[AccuracyFilter] = None,
    apply_filter: bool = True,
) -> ScreenResult:
    """Generate signals for *coins* in order and rank the accepted ones.

    Keeps accepted signals whose MTF score is at least *min_score*,
    stops once *max_results* are collected, sorts them by confidence
    (highest first) and, when *apply_filter* is set, narrows them with
    the high-accuracy filter.  A symbol that raises is logged and
    skipped.
    """
    config = config or BreakoutConfig()
    coins = list(coins)

    found: list[Signal] = []
    processed = 0
    for coin in coins:
        try:
            outcome = generate_breakout_signal(coin, config)
        except Exception as exc:
            logger.error("Error processing %s: %s", coin.symbol, exc)
            continue

        processed += 1
        if outcome.success and outcome.mtf_analysis.score >= min_score:
            found.append(outcome)
        if len(found) >= max_results:
            break

    found.sort(key=lambda s: s.confidence, reverse=True)
    selected = (
        filter_signals_for_high_accuracy(found, accuracy_filter)
        if apply_filter else found
    )

    logger.info(
        "Screened %d of %d symbols: %d signals, %d after accuracy filter",
        processed, len(coins), len(found), len(selected),
    )
    return ScreenResult(
        processed=processed,
        total_eligible=len(coins),
        signals_found=len(found),
        high_accuracy_signals=len(selected),
        signals=selected,
    )


def analyze_symbol(
    coin: CoinData, config: Optional[BreakoutConfig] = None,
) -> SymbolReport:
    """Signal decision for *coin* plus a backtest on its daily candles."""
    config = config or BreakoutConfig()
    daily: Sequence = coin.daily or []
    return SymbolReport(
        symbol=coin.symbol,
        signal=generate_breakout_signal(coin, config),
        backtest=backtest_breakout_strategy(daily, config),
    )
