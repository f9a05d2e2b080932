"""Breakout scoring rules — the weighted condition table as data.

Each rule is ``(label, weight, check)``.  ``score_rules`` folds the table
in order into an immutable ``RuleScore``; the order only affects how the
triggered labels are listed, never the total.
"""

from dataclasses import dataclass
from typing import Callable, Optional

from breakout_screener.config import BreakoutConfig
from breakout_screener.strategy.indicators import (
    Series,
    detect_bollinger_breakout,
    detect_positive_rsi_divergence,
    is_price_consolidating,
    is_volume_increasing,
)
from breakout_screener.strategy.models import BollingerPoint, MACDPoint

# Bars back used for the OBV accumulation check.
OBV_LOOKBACK = 5
OBV_MIN_GROWTH = 0.05


@dataclass(frozen=True)
class IndicatorSnapshot:
    """All indicator series for one candle series, computed once."""

    closes: list[float]
    volumes: list[float]
    rsi: Series
    bollinger: list[BollingerPoint]
    ema200: Series
    atr: Series
    obv: Series
    macd: list[MACDPoint]

    @property
    def price(self) -> Optional[float]:
        return self.closes[-1] if self.closes else None

    @property
    def price_change(self) -> Optional[float]:
        """Fractional change of the last close versus the one before."""
        if len(self.closes) < 2 or self.closes[-2] == 0:
            return None
        return (self.closes[-1] - self.closes[-2]) / self.closes[-2]

    @property
    def volume_change(self) -> Optional[float]:
        if len(self.volumes) < 2 or self.volumes[-2] == 0:
            return None
        return (self.volumes[-1] - self.volumes[-2]) / self.volumes[-2]

    @property
    def above_ema200(self) -> Optional[bool]:
        if not self.ema200 or self.ema200[-1] is None:
            return None
        return self.closes[-1] > self.ema200[-1]


RuleCheck = Callable[[IndicatorSnapshot, BreakoutConfig], bool]


@dataclass(frozen=True)
class ScoringRule:
    """One weighted condition.  A ``None`` label scores silently."""

    label: Optional[str]
    weight: int
    check: RuleCheck


@dataclass(frozen=True)
class RuleScore:
    total: int
    signals: tuple[str, ...]


# ── Checks ───────────────────────────────────────────────────────────────


def _consolidating(s: IndicatorSnapshot, c: BreakoutConfig) -> bool:
    return is_price_consolidating(
        s.closes, c.consolidation_period, c.consolidation_threshold,
    )


def _rsi_in_range(s: IndicatorSnapshot, c: BreakoutConfig) -> bool:
    if not s.rsi or s.rsi[-1] is None:
        return False
    return c.rsi_lower_threshold <= s.rsi[-1] <= c.rsi_upper_threshold


def _bollinger_compressed(s: IndicatorSnapshot, c: BreakoutConfig) -> bool:
    if not s.bollinger or s.bollinger[-1].width is None:
        return False
    return s.bollinger[-1].width <= 1


def _bollinger_breakout(s: IndicatorSnapshot, c: BreakoutConfig) -> bool:
    return detect_bollinger_breakout(s.closes, s.bollinger)


def _above_ema200(s: IndicatorSnapshot, c: BreakoutConfig) -> bool:
    return c.ema200_required and bool(s.above_ema200)


def _ema200_waived(s: IndicatorSnapshot, c: BreakoutConfig) -> bool:
    return not c.ema200_required


def _volume_increasing(s: IndicatorSnapshot, c: BreakoutConfig) -> bool:
    return is_volume_increasing(s.volumes, c.volume_increase_threshold)


def _rsi_divergence(s: IndicatorSnapshot, c: BreakoutConfig) -> bool:
    return detect_positive_rsi_divergence(s.closes, s.rsi, c.lookback_period)


def _macd_crossover(s: IndicatorSnapshot, c: BreakoutConfig) -> bool:
    if len(s.macd) < 2:
        return False
    prev, curr = s.macd[-2].histogram, s.macd[-1].histogram
    if prev is None or curr is None:
        return False
    return prev <= 0 < curr


def _obv_accumulation(s: IndicatorSnapshot, c: BreakoutConfig) -> bool:
    if len(s.obv) < OBV_LOOKBACK:
        return False
    current, previous = s.obv[-1], s.obv[-OBV_LOOKBACK]
    if current is None or previous is None:
        return False
    return current > previous and current - previous > OBV_MIN_GROWTH * previous


def _breakout_percent(s: IndicatorSnapshot, c: BreakoutConfig) -> bool:
    change = s.price_change
    if change is None:
        return False
    return c.min_breakout_percent <= change <= c.max_breakout_percent


BREAKOUT_RULES: tuple[ScoringRule, ...] = (
    ScoringRule("Price consolidation detected", 20, _consolidating),
    ScoringRule("RSI in optimal range", 15, _rsi_in_range),
    ScoringRule("Bollinger Band compression", 15, _bollinger_compressed),
    ScoringRule("Bollinger Band breakout", 20, _bollinger_breakout),
    ScoringRule("Price above EMA200", 10, _above_ema200),
    ScoringRule(None, 10, _ema200_waived),
    ScoringRule("Volume increasing", 15, _volume_increasing),
    ScoringRule("Positive RSI divergence", 15, _rsi_divergence),
    ScoringRule("MACD bullish crossover", 15, _macd_crossover),
    ScoringRule("OBV accumulation", 10, _obv_accumulation),
    ScoringRule("Ideal breakout percentage", 15, _breakout_percent),
)


def score_rules(
    snapshot: IndicatorSnapshot,
    config: BreakoutConfig,
    rules: tuple[ScoringRule, ...] = BREAKOUT_RULES,
) -> RuleScore:
    """Sum the weights of every satisfied rule, keeping labels in table order."""
    total = 0
    labels: list[str] = []
    for rule in rules:
        if rule.check(snapshot, config):
            total += rule.weight
            if rule.label is not None:
                labels.append(rule.label)
    return RuleScore(total=total, signals=tuple(labels))
