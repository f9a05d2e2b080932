"""Breakout screener — configuration.

Two layers:

* ``BreakoutConfig`` / ``AccuracyFilter`` — the flat parameter objects
  consumed by the analyzer, signal generator, backtester and optimizer.
  Every default is declared once, on the dataclass field.
* ``AppConfig`` — process settings loaded from ``.env`` / environment.
"""

import json
import math
import os
from dataclasses import asdict, dataclass, fields, replace
from typing import Any, Mapping, Optional

from dotenv import load_dotenv


# ── Strategy parameters ──────────────────────────────────────────────────

_CAMEL_ALIASES: dict[str, str] = {
    "consolidationPeriod": "consolidation_period",
    "consolidationThreshold": "consolidation_threshold",
    "rsiLowerThreshold": "rsi_lower_threshold",
    "rsiUpperThreshold": "rsi_upper_threshold",
    "volumeIncreaseThreshold": "volume_increase_threshold",
    "minBreakoutPercent": "min_breakout_percent",
    "maxBreakoutPercent": "max_breakout_percent",
    "bollingerPeriod": "bollinger_period",
    "atrPeriod": "atr_period",
    "lookbackPeriod": "lookback_period",
    "ema200Required": "ema200_required",
    "requireEma200": "ema200_required",
    "minMTFScore": "min_mtf_score",
    "minAlignmentScore": "min_alignment_score",
    "minDailyScore": "min_daily_score",
    "maxPrice": "max_price",
    "riskRewardRatio": "risk_reward_ratio",
    "maxStopLossPercent": "max_stop_loss_percent",
    "minProfitPotential": "min_profit_potential",
    # AccuracyFilter
    "minConfidence": "min_confidence",
    "minSuccessProbability": "min_success_probability",
    "minRiskRewardRatio": "min_risk_reward_ratio",
    "maxRiskLevel": "max_risk_level",
}

_INT_FIELDS = frozenset({
    "consolidation_period",
    "bollinger_period",
    "atr_period",
    "lookback_period",
    "min_alignment_score",
})


def _normalise_keys(data: Mapping[str, Any], allowed: set[str]) -> dict[str, Any]:
    """Map camelCase keys onto field names and drop anything unknown."""
    out: dict[str, Any] = {}
    for key, value in data.items():
        name = _CAMEL_ALIASES.get(key, key)
        if name in allowed and value is not None:
            out[name] = value
    return out


@dataclass(frozen=True)
class BreakoutConfig:
    """Parameters for breakout scoring and signal gating.

    ``risk_reward_ratio`` and ``min_profit_potential`` are accepted and
    carried through but do not move any level: the analyzer always
    places the target at 3 × risk.
    """

    # Breakout detection
    consolidation_period: int = 6
    consolidation_threshold: float = 0.15
    rsi_lower_threshold: float = 50
    rsi_upper_threshold: float = 75
    volume_increase_threshold: float = 0.10
    min_breakout_percent: float = 0.01
    max_breakout_percent: float = 0.20
    bollinger_period: int = 20
    atr_period: int = 14
    lookback_period: int = 20
    ema200_required: bool = True

    # Signal gating
    min_mtf_score: float = 75
    min_alignment_score: int = 4
    min_daily_score: float = 65
    max_price: float = 1.0

    # Risk management
    risk_reward_ratio: float = 3.0
    max_stop_loss_percent: float = 5
    min_profit_potential: str = "Medium"

    def __post_init__(self) -> None:
        for f in fields(self):
            value = getattr(self, f.name)
            if f.name == "ema200_required":
                if not isinstance(value, bool):
                    raise ValueError(f"ema200_required must be a bool, got {value!r}")
                continue
            if f.name == "min_profit_potential":
                continue
            if f.name in _INT_FIELDS:
                if (
                    isinstance(value, bool)
                    or not isinstance(value, (int, float))
                    or not math.isfinite(value)
                    or int(value) != value
                    or value < 1
                ):
                    raise ValueError(
                        f"{f.name} must be a positive integer, got {value!r}"
                    )
                object.__setattr__(self, f.name, int(value))
                continue
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                raise ValueError(f"{f.name} must be a number, got {value!r}")
            if not math.isfinite(value) or value < 0:
                raise ValueError(
                    f"{f.name} must be a finite non-negative number, got {value!r}"
                )
        for name in ("rsi_lower_threshold", "rsi_upper_threshold"):
            if getattr(self, name) > 100:
                raise ValueError(f"{name} must be within [0, 100]")

    @classmethod
    def from_dict(cls, data: Optional[Mapping[str, Any]] = None) -> "BreakoutConfig":
        """Build a config from a partial mapping (snake_case or camelCase).

        Unknown keys are ignored; absent keys take the field default.
        """
        if not data:
            return cls()
        allowed = {f.name for f in fields(cls)}
        return cls(**_normalise_keys(data, allowed))

    def with_overrides(self, **overrides: Any) -> "BreakoutConfig":
        """Return a copy with *overrides* applied (validated again)."""
        return replace(self, **overrides)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class AccuracyFilter:
    """Thresholds for the high-accuracy signal filter.

    ``max_risk_level`` is informational; the risk rule itself is fixed
    (Low/Medium always pass, High only with confidence above 8.5).
    """

    min_confidence: float = 7.5
    min_success_probability: float = 80
    min_risk_reward_ratio: float = 2.5
    max_risk_level: str = "Medium"
    min_mtf_score: float = 75
    min_alignment_score: int = 4

    @classmethod
    def from_dict(cls, data: Optional[Mapping[str, Any]] = None) -> "AccuracyFilter":
        if not data:
            return cls()
        allowed = {f.name for f in fields(cls)}
        return cls(**_normalise_keys(data, allowed))


# ── Optimizer search space ───────────────────────────────────────────────
# field → (max perturbation per step, lower bound, upper bound)

PARAMETER_BOUNDS: dict[str, tuple[float, float, float]] = {
    "consolidation_period": (1, 3, 20),
    "consolidation_threshold": (0.05, 0.05, 0.30),
    "rsi_lower_threshold": (5, 40, 60),
    "rsi_upper_threshold": (5, 70, 85),
    "volume_increase_threshold": (0.05, 0.05, 0.30),
    "min_breakout_percent": (0.005, 0.005, 0.05),
    "max_breakout_percent": (0.05, 0.10, 0.40),
    "min_mtf_score": (5, 60, 90),
    "min_alignment_score": (1, 3, 6),
    "risk_reward_ratio": (0.5, 2.0, 5.0),
    "max_stop_loss_percent": (1, 3, 8),
}


def clamp_parameter(name: str, value: float) -> float:
    """Clamp *value* into the search bounds of parameter *name*.

    Integer parameters are rounded after clamping.

    Raises ``KeyError`` for a parameter outside the search space.
    """
    _, lower, upper = PARAMETER_BOUNDS[name]
    clamped = max(lower, min(upper, value))
    if name in _INT_FIELDS:
        return int(round(clamped))
    return clamped


def load_breakout_config(path: str) -> BreakoutConfig:
    """Load a JSON parameter file into a ``BreakoutConfig``.

    Raises ``FileNotFoundError`` if *path* does not exist.
    """
    with open(path, "r", encoding="utf-8") as f:
        data = json.load(f)
    if not isinstance(data, dict):
        raise ValueError(f"Parameter file {path} must contain a JSON object")
    return BreakoutConfig.from_dict(data)


# ── Process settings ─────────────────────────────────────────────────────


@dataclass(frozen=True)
class AppConfig:
    """Typed process settings loaded from environment variables."""

    log_level: str
    api_host: str
    api_port: int
    params_path: Optional[str]
    default_exchange: str

    def breakout_config(self) -> BreakoutConfig:
        """Strategy parameters: the ``PARAMS_PATH`` file if set, else defaults."""
        if self.params_path:
            return load_breakout_config(self.params_path)
        return BreakoutConfig()


def _int_env(name: str, default: str) -> int:
    raw = os.environ.get(name, default)
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"Environment variable {name} must be an integer, got {raw!r}")


def load_config(env_path: str | None = None) -> AppConfig:
    """Load process settings from ``.env`` and the environment.

    Raises ``ValueError`` naming the variable when a numeric setting
    cannot be parsed.
    """
    load_dotenv(dotenv_path=env_path)

    return AppConfig(
        log_level=os.environ.get("LOG_LEVEL", "INFO"),
        api_host=os.environ.get("API_HOST", "0.0.0.0"),
        api_port=_int_env("API_PORT", "5000"),
        params_path=os.environ.get("PARAMS_PATH") or None,
        default_exchange=os.environ.get("DEFAULT_EXCHANGE", "ByDFi"),
    )
