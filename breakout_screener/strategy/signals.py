"""Signal generation — gates a multi-timeframe breakout into a tradeable signal.

Gate order (each failure is a ``SignalRejection`` with its own reason):
    1. All three timeframe datasets present.
    2. Latest hourly close ≤ ``max_price``.
    3. MTF score / alignment / daily score / profit potential criteria.
    4. Stop and target levels available.
    5. Stop distance ≤ ``max_stop_loss_percent``.
    6. Price at least 3 % below the 20-day high.
    7. 20-day range ≤ 50 % of the 20-day low.

No exceptions for rejected setups: callers branch on ``result.success``.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Optional, Sequence, Union

from breakout_screener.config import AccuracyFilter, BreakoutConfig
from breakout_screener.strategy.models import (
    HIGH,
    LOW,
    MEDIUM,
    VERY_HIGH,
    CoinData,
    MTFBreakdown,
    MTFResult,
    Signal,
    SignalRejection,
)
from breakout_screener.strategy.mtf import multi_timeframe_analysis

logger = logging.getLogger("breakout_screener.signals")

DEFAULT_EXCHANGE = "ByDFi"
SIGNAL_TTL = timedelta(hours=24)
RESISTANCE_LOOKBACK_DAYS = 20
MIN_PERCENT_FROM_HIGH = 3.0
MAX_NORMALIZED_VOLATILITY = 0.5

SignalOutcome = Union[Signal, SignalRejection]


# ── Scoring helpers ──────────────────────────────────────────────────────


def calculate_confidence(mtf: MTFResult) -> float:
    """Confidence on a 1–10 scale, one decimal place."""
    score = mtf.mtf_score / 10

    if mtf.alignment_score >= 6:
        score += 1
    elif mtf.alignment_score >= 4:
        score += 0.5

    if mtf.profit_potential == VERY_HIGH:
        score += 1
    elif mtf.profit_potential == HIGH:
        score += 0.5

    return min(10.0, round(score, 1))


def estimate_success_probability(
    mtf_score: int,
    alignment_score: int,
    profit_potential: str,
    stop_loss_percent: float,
) -> int:
    """Heuristic success probability, clamped to 60–95."""
    probability = mtf_score * 0.8

    if alignment_score >= 6:
        probability += 10
    elif alignment_score >= 4:
        probability += 5

    if profit_potential == VERY_HIGH:
        probability += 5
    elif profit_potential == HIGH:
        probability += 3
    elif profit_potential == MEDIUM:
        probability += 1

    # Stop-distance penalty
    if stop_loss_percent < 2:
        probability -= 5
    elif stop_loss_percent > 4:
        probability -= 3

    return min(95, max(60, round(probability)))


def _meets_criteria(mtf: MTFResult, config: BreakoutConfig) -> bool:
    potential_ok = (
        mtf.profit_potential in (HIGH, VERY_HIGH)
        or (mtf.profit_potential == MEDIUM and mtf.mtf_score > 85)
    )
    return (
        mtf.mtf_score >= config.min_mtf_score
        and mtf.alignment_score >= config.min_alignment_score
        and mtf.daily_score >= config.min_daily_score
        and potential_ok
    )


def _reject(message: str, **diagnostics) -> SignalRejection:
    logger.debug("Signal rejected: %s %s", message, diagnostics)
    return SignalRejection(message=message, diagnostics=diagnostics)


# ── Public API ───────────────────────────────────────────────────────────


def generate_breakout_signal(
    coin: CoinData,
    config: Optional[BreakoutConfig] = None,
    now: Optional[datetime] = None,
) -> SignalOutcome:
    """Run the gate sequence for one symbol.

    Args:
        coin: Hourly, four-hour and daily candles for the symbol.
        config: Strategy and gating parameters.
        now: Generation instant (defaults to the current UTC time).

    Returns:
        ``Signal`` on acceptance, else ``SignalRejection``.
    """
    config = config or BreakoutConfig()

    if not coin.hourly or not coin.four_hour or not coin.daily:
        return _reject("Missing required timeframe data")

    current_price = coin.hourly[-1].close
    if current_price > config.max_price:
        return _reject(
            "Price above maximum threshold",
            price=current_price,
            max_price=config.max_price,
        )

    mtf = multi_timeframe_analysis(coin.hourly, coin.four_hour, coin.daily, config)

    if not _meets_criteria(mtf, config):
        return _reject(
            "Does not meet signal criteria",
            mtf_score=mtf.mtf_score,
            alignment_score=mtf.alignment_score,
            daily_score=mtf.daily_score,
            profit_potential=mtf.profit_potential,
        )

    stop_loss = mtf.suggested_stop_loss
    take_profit = mtf.suggested_take_profit
    if stop_loss is None or take_profit is None:
        return _reject("No stop loss level available", mtf_score=mtf.mtf_score)

    stop_loss_percent = (current_price - stop_loss) / current_price * 100
    if stop_loss_percent > config.max_stop_loss_percent:
        return _reject(
            "Stop loss percentage too high",
            stop_loss_percent=stop_loss_percent,
            max_stop_loss_percent=config.max_stop_loss_percent,
        )

    recent = coin.daily[-RESISTANCE_LOOKBACK_DAYS:]
    twenty_day_high = max(c.high for c in recent)
    twenty_day_low = min(c.low for c in recent)

    percent_from_high = (twenty_day_high - current_price) / current_price * 100
    if percent_from_high < MIN_PERCENT_FROM_HIGH:
        return _reject(
            "Price too close to 20-day high",
            percent_from_high=percent_from_high,
        )

    normalized_volatility = (
        (twenty_day_high - twenty_day_low) / twenty_day_low
        if twenty_day_low > 0 else float("inf")
    )
    if normalized_volatility > MAX_NORMALIZED_VOLATILITY:
        return _reject(
            "Coin volatility too high",
            normalized_volatility=normalized_volatility,
        )

    risk = current_price - stop_loss
    generated_at = now or datetime.now(timezone.utc)

    signal = Signal(
        symbol=coin.symbol,
        exchange=coin.exchange or DEFAULT_EXCHANGE,
        entry_price=current_price,
        stop_loss=stop_loss,
        take_profit=take_profit,
        risk_reward_ratio=(take_profit - current_price) / risk if risk else 0.0,
        potential_profit_percent=(take_profit - current_price) / current_price * 100,
        potential_loss_percent=stop_loss_percent,
        confidence=calculate_confidence(mtf),
        success_probability=estimate_success_probability(
            mtf.mtf_score,
            mtf.alignment_score,
            mtf.profit_potential,
            stop_loss_percent,
        ),
        generated_at=generated_at.isoformat(),
        expires_at=(generated_at + SIGNAL_TTL).isoformat(),
        mtf_analysis=MTFBreakdown(
            score=mtf.mtf_score,
            alignment_score=mtf.alignment_score,
            hourly_score=mtf.hourly_score,
            four_hour_score=mtf.four_hour_score,
            daily_score=mtf.daily_score,
        ),
        signals=mtf.combined_signals,
        profit_potential=mtf.profit_potential,
        risk_level=mtf.risk_level,
    )
    logger.info(
        "Breakout signal for %s: entry %.6f, SL %.6f, TP %.6f, confidence %.1f",
        signal.symbol, signal.entry_price, signal.stop_loss,
        signal.take_profit, signal.confidence,
    )
    return signal


def _passes_accuracy_filter(signal: Signal, f: AccuracyFilter) -> bool:
    risk_ok = (
        signal.risk_level in (LOW, MEDIUM)
        or (signal.risk_level == HIGH and signal.confidence > 8.5)
    )
    return (
        signal.confidence >= f.min_confidence
        and signal.success_probability >= f.min_success_probability
        and signal.risk_reward_ratio >= f.min_risk_reward_ratio
        and risk_ok
        and signal.mtf_analysis.score >= f.min_mtf_score
        and signal.mtf_analysis.alignment_score >= f.min_alignment_score
    )


def filter_signals_for_high_accuracy(
    signals: Sequence[Signal],
    accuracy_filter: Optional[AccuracyFilter] = None,
) -> list[Signal]:
    """Keep only signals passing every high-accuracy threshold, order preserved."""
    accuracy_filter = accuracy_filter or AccuracyFilter()
    return [s for s in signals if _passes_accuracy_filter(s, accuracy_filter)]
