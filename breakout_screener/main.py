"""Breakout screener — application entry point.

Boots the FastAPI server and provides the CLI for one-off backtest,
optimize and analyze runs over a JSON candle file.
"""

import json
import logging

from fastapi import FastAPI

from breakout_screener.api.routers import router

app = FastAPI(title="Breakout Screener API", version="0.1.0")
app.include_router(router)

logger = logging.getLogger("breakout_screener")


@app.get("/health")
async def health():
    return {"status": "ok"}


# ── CLI ──────────────────────────────────────────────────────────────────


def _load_candles(path: str):
    from breakout_screener.strategy.models import candles_from_dicts

    with open(path, "r", encoding="utf-8") as f:
        data = json.load(f)
    if isinstance(data, dict):
        return {
            key: candles_from_dicts(rows)
            for key, rows in data.items()
            if key in ("hourly", "four_hour", "daily") and rows
        }
    return {"daily": candles_from_dicts(data)}


def _run_cli() -> None:
    """Parse CLI arguments and dispatch to the requested mode."""
    import argparse

    from breakout_screener.config import load_breakout_config, load_config

    parser = argparse.ArgumentParser(description="Crypto breakout screener")
    parser.add_argument(
        "--mode",
        choices=["serve", "backtest", "optimize", "analyze"],
        default="serve",
        help="Run mode (default: serve)",
    )
    parser.add_argument(
        "--data",
        help="JSON file: a daily candle list, or {hourly, four_hour, daily}",
    )
    parser.add_argument("--params", help="JSON file of strategy parameter overrides")
    parser.add_argument("--symbol", default="UNKNOWN", help="Symbol label for analyze")
    parser.add_argument("--generations", type=int, default=10)
    parser.add_argument("--seed", type=int, default=None)
    args = parser.parse_args()

    app_config = load_config()
    logging.basicConfig(
        level=getattr(logging, app_config.log_level.upper(), logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )

    params = (
        load_breakout_config(args.params) if args.params
        else app_config.breakout_config()
    )

    if args.mode == "serve":
        _serve(app_config, params)
        return

    if not args.data:
        parser.error(f"--data is required in {args.mode} mode")
    series = _load_candles(args.data)

    if args.mode == "backtest":
        from breakout_screener.backtest.engine import backtest_breakout_strategy

        result = backtest_breakout_strategy(series.get("daily", []), params)
    elif args.mode == "optimize":
        from breakout_screener.backtest.optimizer import optimize_parameters

        result = optimize_parameters(
            series.get("daily", []), params, args.generations, seed=args.seed,
        )
    else:
        from breakout_screener.strategy.models import CoinData
        from breakout_screener.strategy.screener import analyze_symbol

        coin = CoinData(
            symbol=args.symbol,
            exchange=app_config.default_exchange,
            hourly=series.get("hourly"),
            four_hour=series.get("four_hour"),
            daily=series.get("daily"),
        )
        result = analyze_symbol(coin, params)

    print(json.dumps(result.to_dict(), indent=2, default=str))


def _serve(app_config, params) -> None:
    """Start the API server."""
    import uvicorn

    from breakout_screener.api.routers import configure_routers

    configure_routers(base_config=params, default_exchange=app_config.default_exchange)
    logger.info(
        "Breakout screener API on http://%s:%d", app_config.api_host, app_config.api_port,
    )
    uvicorn.run(
        app,
        host=app_config.api_host,
        port=app_config.api_port,
        log_level=app_config.log_level.lower(),
    )


if __name__ == "__main__":
    _run_cli()
