"""Breakout analyzer — scores one candle series for a long breakout setup.

Runs the indicator library once over the whole series, folds the rule
table into a 0–100 score and derives tiers plus stop/target levels.
Pure function of its inputs; insufficient history lowers the score,
it never raises.
"""

import logging
from typing import Optional, Sequence

from breakout_screener.config import BreakoutConfig
from breakout_screener.strategy.indicators import (
    calculate_atr,
    calculate_bollinger,
    calculate_ema,
    calculate_macd,
    calculate_obv,
    calculate_rsi,
)
from breakout_screener.strategy.models import (
    HIGH,
    LOW,
    MEDIUM,
    UNKNOWN,
    VERY_HIGH,
    AnalysisResult,
    CandleData,
)
from breakout_screener.strategy.rules import IndicatorSnapshot, score_rules

logger = logging.getLogger("breakout_screener.breakout")

CANDIDATE_THRESHOLD = 70
MAX_SCORE = 100
EMA_TREND_PERIOD = 200
MIN_TIER_CANDLES = 20
# Target distance as a multiple of the stop distance.
REWARD_MULTIPLE = 3


def build_snapshot(
    candles: Sequence[CandleData], config: BreakoutConfig,
) -> IndicatorSnapshot:
    """Compute every indicator the rule table reads."""
    closes = [c.close for c in candles]
    highs = [c.high for c in candles]
    lows = [c.low for c in candles]
    volumes = [c.volume for c in candles]

    return IndicatorSnapshot(
        closes=closes,
        volumes=volumes,
        rsi=calculate_rsi(closes),
        bollinger=calculate_bollinger(closes, config.bollinger_period),
        ema200=calculate_ema(closes, EMA_TREND_PERIOD),
        atr=calculate_atr(highs, lows, closes, config.atr_period),
        obv=calculate_obv(closes, volumes),
        macd=calculate_macd(closes),
    )


def _atr_percent(snapshot: IndicatorSnapshot) -> Optional[float]:
    if len(snapshot.closes) < MIN_TIER_CANDLES or not snapshot.atr:
        return None
    atr = snapshot.atr[-1]
    price = snapshot.price
    if atr is None or not price:
        return None
    return atr / price * 100


def profit_potential_tier(atr_percent: Optional[float], score: int) -> str:
    """Tier from ATR-as-%-of-price and the breakout score."""
    if atr_percent is None:
        return UNKNOWN
    if atr_percent > 5 and score > 85:
        return VERY_HIGH
    if atr_percent > 3 and score > 75:
        return HIGH
    if atr_percent > 2 and score > 65:
        return MEDIUM
    return LOW


def risk_level_tier(atr_percent: Optional[float]) -> str:
    """Tier from ATR-as-%-of-price alone."""
    if atr_percent is None:
        return UNKNOWN
    if atr_percent > 8:
        return VERY_HIGH
    if atr_percent > 5:
        return HIGH
    if atr_percent > 3:
        return MEDIUM
    return LOW


def _metrics(snapshot: IndicatorSnapshot) -> dict:
    last_band = snapshot.bollinger[-1] if snapshot.bollinger else None
    price_change = snapshot.price_change
    volume_change = snapshot.volume_change
    return {
        "rsi": snapshot.rsi[-1] if snapshot.rsi else None,
        "bollinger_width": last_band.width if last_band else None,
        "bollinger_percent": last_band.percent if last_band else None,
        "atr": snapshot.atr[-1] if snapshot.atr else None,
        "above_ema200": snapshot.above_ema200,
        "price_change_percent": price_change * 100 if price_change is not None else None,
        "volume_change_percent": volume_change * 100 if volume_change is not None else None,
    }


def analyze_breakout(
    candles: Sequence[CandleData],
    config: Optional[BreakoutConfig] = None,
) -> AnalysisResult:
    """Score *candles* (oldest first) as a breakout candidate.

    Returns:
        ``AnalysisResult``.  A candidate (score ≥ 70) with a known ATR
        carries ``suggested_stop_loss = price - ATR`` and
        ``suggested_take_profit = price + 3 × risk``, both rounded to
        4 decimal places.
    """
    config = config or BreakoutConfig()
    snapshot = build_snapshot(candles, config)

    scored = score_rules(snapshot, config)
    score = min(MAX_SCORE, scored.total)
    is_candidate = score >= CANDIDATE_THRESHOLD

    atr_percent = _atr_percent(snapshot)

    stop_loss: Optional[float] = None
    take_profit: Optional[float] = None
    current_atr = snapshot.atr[-1] if snapshot.atr else None
    if is_candidate and current_atr is not None:
        price = snapshot.price
        stop_loss = round(price - current_atr, 4)
        take_profit = round(price + REWARD_MULTIPLE * (price - stop_loss), 4)

    logger.debug(
        "Breakout score %d over %d candles: %s",
        score, len(candles), ", ".join(scored.signals) or "no signals",
    )

    return AnalysisResult(
        is_breakout_candidate=is_candidate,
        breakout_score=score,
        signals=scored.signals,
        metrics=_metrics(snapshot),
        profit_potential=profit_potential_tier(atr_percent, score),
        risk_level=risk_level_tier(atr_percent),
        suggested_stop_loss=stop_loss,
        suggested_take_profit=take_profit,
    )
