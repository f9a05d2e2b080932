"""Multi-timeframe confirmation — 1H / 4H / 1D breakout analyses combined.

Each timeframe is analyzed independently with the same config.  Higher
timeframes carry more weight both in the alignment count and in the
weighted score.
"""

from typing import Optional, Sequence

from breakout_screener.config import BreakoutConfig
from breakout_screener.strategy.breakout import analyze_breakout
from breakout_screener.strategy.models import (
    TIMEFRAME_LABELS,
    AnalysisResult,
    CandleData,
    MTFResult,
)

ALIGNMENT_WEIGHTS: dict[str, int] = {"hourly": 1, "four_hour": 2, "daily": 3}
# Score weights in tenths (0.2 / 0.3 / 0.5) so the weighted sum stays exact.
SCORE_WEIGHTS: dict[str, int] = {"hourly": 2, "four_hour": 3, "daily": 5}

CONFIRMED_MIN_ALIGNMENT = 4
CONFIRMED_MIN_SCORE = 75

# Level fallback order: first timeframe with a non-null value wins.
_LEVEL_PRIORITY = ("daily", "four_hour", "hourly")


def _first_available(results: dict[str, AnalysisResult], attr: str):
    for name in _LEVEL_PRIORITY:
        value = getattr(results[name], attr)
        if value is not None:
            return value
    return None


def multi_timeframe_analysis(
    hourly: Sequence[CandleData],
    four_hour: Sequence[CandleData],
    daily: Sequence[CandleData],
    config: Optional[BreakoutConfig] = None,
) -> MTFResult:
    """Analyze three timeframes and combine them.

    ``alignment_score`` adds 1/2/3 for each 1H/4H/1D candidate (max 6).
    ``mtf_score`` is the 0.2/0.3/0.5 weighted breakout score, rounded.
    A breakout is confirmed when alignment ≥ 4 and the unrounded
    weighted score ≥ 75.
    """
    config = config or BreakoutConfig()
    results = {
        "hourly": analyze_breakout(hourly, config),
        "four_hour": analyze_breakout(four_hour, config),
        "daily": analyze_breakout(daily, config),
    }

    alignment = sum(
        ALIGNMENT_WEIGHTS[name]
        for name, result in results.items()
        if result.is_breakout_candidate
    )
    weighted_tenths = sum(
        SCORE_WEIGHTS[name] * result.breakout_score
        for name, result in results.items()
    )

    combined: list[str] = []
    for name, result in results.items():
        label = TIMEFRAME_LABELS[name]
        combined.extend(f"{label}: {signal}" for signal in result.signals)

    return MTFResult(
        # Half-up rounding
        mtf_score=(weighted_tenths + 5) // 10,
        alignment_score=alignment,
        hourly_score=results["hourly"].breakout_score,
        four_hour_score=results["four_hour"].breakout_score,
        daily_score=results["daily"].breakout_score,
        is_confirmed_breakout=(
            alignment >= CONFIRMED_MIN_ALIGNMENT
            and weighted_tenths >= CONFIRMED_MIN_SCORE * 10
        ),
        combined_signals=tuple(combined),
        profit_potential=_first_available(results, "profit_potential"),
        risk_level=_first_available(results, "risk_level"),
        suggested_stop_loss=_first_available(results, "suggested_stop_loss"),
        suggested_take_profit=_first_available(results, "suggested_take_profit"),
        timeframes=results,
    )
