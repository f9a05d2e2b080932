"""Parameter optimizer — hill-climbing random search scored by backtests.

Each generation perturbs the current best parameters into ten
candidates (uniform delta per field, clamped to its search bounds) and
keeps the best candidate only if it strictly beats the running best.
"""

import logging
from dataclasses import dataclass
from functools import reduce
from typing import Optional, Sequence

import numpy as np

from breakout_screener.backtest.engine import BacktestOutcome, backtest_breakout_strategy
from breakout_screener.backtest.models import BacktestError
from breakout_screener.config import PARAMETER_BOUNDS, BreakoutConfig, clamp_parameter
from breakout_screener.strategy.models import CandleData

logger = logging.getLogger("breakout_screener.optimizer")

CANDIDATES_PER_GENERATION = 10
MIN_TRADES_FOR_SCORE = 10


@dataclass(frozen=True)
class OptimizationResult:
    parameters: BreakoutConfig
    score: float
    win_rate: float

    def to_dict(self) -> dict:
        return {
            "parameters": self.parameters.to_dict(),
            "score": self.score,
            "win_rate": self.win_rate,
        }


@dataclass(frozen=True)
class _SearchState:
    params: BreakoutConfig
    score: float
    backtest: BacktestOutcome


def score_backtest(result: BacktestOutcome) -> float:
    """``0.6 × win rate + min(10 × profit factor, 30) + min(trades, 100) / 10``.

    Runs with an error or fewer than 10 trades score 0.
    """
    if isinstance(result, BacktestError) or result.total_trades < MIN_TRADES_FOR_SCORE:
        return 0.0
    return (
        result.win_rate * 0.6
        + min(result.profit_factor * 10, 30)
        + min(result.total_trades, 100) / 10
    )


def perturb_parameters(
    params: BreakoutConfig, rng: np.random.Generator,
) -> BreakoutConfig:
    """Shift every searchable field by a uniform delta within its step."""
    overrides = {}
    for name, (step, _, _) in PARAMETER_BOUNDS.items():
        delta = rng.uniform(-1.0, 1.0) * step
        overrides[name] = clamp_parameter(name, getattr(params, name) + delta)
    return params.with_overrides(**overrides)


def _evaluate(candles: Sequence[CandleData], params: BreakoutConfig) -> _SearchState:
    result = backtest_breakout_strategy(candles, params)
    return _SearchState(params=params, score=score_backtest(result), backtest=result)


def optimize_parameters(
    candles: Sequence[CandleData],
    initial: Optional[BreakoutConfig] = None,
    generations: int = 10,
    seed: Optional[int] = None,
) -> OptimizationResult:
    """Search the breakout parameter space on *candles*.

    Args:
        candles: Daily history (at least 250 bars for a non-zero score).
        initial: Starting parameters (defaults when omitted).
        generations: Number of perturbation rounds.
        seed: Seed for the random generator; same seed, same result.

    Returns:
        ``OptimizationResult`` with the best parameters, their score and
        their backtest win rate.
    """
    rng = np.random.default_rng(seed)
    start = _evaluate(candles, initial or BreakoutConfig())
    logger.info("Optimizer start score %.2f", start.score)

    def _generation(best: _SearchState, generation: int) -> _SearchState:
        candidates = [
            _evaluate(candles, perturb_parameters(best.params, rng))
            for _ in range(CANDIDATES_PER_GENERATION)
        ]
        challenger = max(candidates, key=lambda s: s.score)
        if challenger.score > best.score:
            logger.info(
                "Generation %d: score %.2f -> %.2f",
                generation + 1, best.score, challenger.score,
            )
            return challenger
        return best

    best = reduce(_generation, range(generations), start)

    if isinstance(best.backtest, BacktestError) or best.backtest.total_trades == 0:
        win_rate = 0.0
    else:
        win_rate = best.backtest.win_rate

    logger.info(
        "Optimization finished after %d generations: score %.2f, win rate %.1f%%",
        generations, best.score, win_rate,
    )
    return OptimizationResult(parameters=best.params, score=best.score, win_rate=win_rate)
