"""Screener API routers — /analyze, /mtf, /signal, /backtest, /optimize, /screen.

No business logic.  Bodies carry pre-fetched candles; results are the
core objects' ``to_dict()`` output.
"""

import logging
from typing import Mapping, Optional

from fastapi import APIRouter
from fastapi.responses import JSONResponse

from breakout_screener.backtest.engine import backtest_breakout_strategy
from breakout_screener.backtest.optimizer import optimize_parameters
from breakout_screener.config import AccuracyFilter, BreakoutConfig
from breakout_screener.strategy.breakout import analyze_breakout
from breakout_screener.strategy.models import (
    CoinData,
    MTFBreakdown,
    Signal,
    candles_from_dicts,
)
from breakout_screener.strategy.mtf import multi_timeframe_analysis
from breakout_screener.strategy.screener import screen_symbols
from breakout_screener.strategy.signals import (
    filter_signals_for_high_accuracy,
    generate_breakout_signal,
)

logger = logging.getLogger("breakout_screener.api")
router = APIRouter()

# Defaults applied when a request omits "config" (set at startup).
_base_config: BreakoutConfig = BreakoutConfig()
_default_exchange: Optional[str] = None


def configure_routers(
    base_config: Optional[BreakoutConfig] = None,
    default_exchange: Optional[str] = None,
) -> None:
    """Inject startup settings.

    Args:
        base_config: Parameters that request-level ``config`` overrides
            are merged onto.
        default_exchange: Exchange label for signals whose request has none.
    """
    global _base_config, _default_exchange  # noqa: PLW0603
    _base_config = base_config or BreakoutConfig()
    _default_exchange = default_exchange


def _error(message: str) -> JSONResponse:
    return JSONResponse(status_code=422, content={"success": False, "message": message})


def _config_from(body: dict) -> BreakoutConfig:
    overrides = body.get("config") or {}
    if not isinstance(overrides, Mapping):
        raise ValueError("config must be a JSON object")
    merged = {**_base_config.to_dict(), **overrides}
    return BreakoutConfig.from_dict(merged)


def _coin_from(body: dict) -> CoinData:
    def _series(key: str, alias: str):
        rows = body.get(key, body.get(alias))
        return candles_from_dicts(rows) if rows else None

    return CoinData(
        symbol=str(body.get("symbol", "")),
        exchange=body.get("exchange") or _default_exchange,
        hourly=_series("hourly", "hourlyData"),
        four_hour=_series("four_hour", "fourHourData"),
        daily=_series("daily", "dailyData"),
    )


def _signal_from(data: dict) -> Signal:
    mtf = data["mtf_analysis"]
    fields = {k: v for k, v in data.items() if k not in ("success", "mtf_analysis")}
    fields["signals"] = tuple(fields.get("signals", ()))
    return Signal(mtf_analysis=MTFBreakdown(**mtf), **fields)


# ── Endpoints ────────────────────────────────────────────────────────────


@router.post("/analyze")
async def post_analyze(body: dict):
    try:
        candles = candles_from_dicts(body.get("candles", []))
        config = _config_from(body)
    except ValueError as exc:
        return _error(str(exc))
    return analyze_breakout(candles, config).to_dict()


@router.post("/mtf")
async def post_mtf(body: dict):
    try:
        coin = _coin_from(body)
        config = _config_from(body)
    except ValueError as exc:
        return _error(str(exc))
    result = multi_timeframe_analysis(
        coin.hourly or [], coin.four_hour or [], coin.daily or [], config,
    )
    return result.to_dict()


@router.post("/signal")
async def post_signal(body: dict):
    try:
        coin = _coin_from(body)
        config = _config_from(body)
    except ValueError as exc:
        return _error(str(exc))
    return generate_breakout_signal(coin, config).to_dict()


@router.post("/signals/filter")
async def post_filter_signals(body: dict):
    try:
        signals = [_signal_from(s) for s in body.get("signals", [])]
        accuracy_filter = AccuracyFilter.from_dict(body.get("filter"))
    except (KeyError, TypeError, ValueError) as exc:
        return _error(f"Malformed signal list: {exc}")
    kept = filter_signals_for_high_accuracy(signals, accuracy_filter)
    return {"success": True, "count": len(kept), "signals": [s.to_dict() for s in kept]}


@router.post("/backtest")
def post_backtest(body: dict):
    try:
        candles = candles_from_dicts(body.get("candles", []))
        config = _config_from(body)
    except ValueError as exc:
        return _error(str(exc))
    return backtest_breakout_strategy(candles, config).to_dict()


@router.post("/optimize")
def post_optimize(body: dict):
    try:
        candles = candles_from_dicts(body.get("candles", []))
        config = _config_from(body)
        generations = int(body.get("generations", 10))
        seed = body.get("seed")
        seed = int(seed) if seed is not None else None
    except (TypeError, ValueError) as exc:
        return _error(str(exc))
    result = optimize_parameters(candles, config, generations, seed=seed)
    logger.info("Optimization completed in %d generations", generations)
    return {"success": True, **result.to_dict()}


@router.post("/screen")
def post_screen(body: dict):
    try:
        coins = [_coin_from(c) for c in body.get("coins", [])]
        config = _config_from(body)
        min_score = int(body.get("min_score", 70))
        max_results = int(body.get("max_results", 10))
    except ValueError as exc:
        return _error(str(exc))
    result = screen_symbols(coins, config, min_score=min_score, max_results=max_results)
    return {"success": True, **result.to_dict()}
