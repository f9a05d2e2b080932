"""Strategy data models — typed representations for screener inputs and outputs."""

from dataclasses import asdict, dataclass, field
from typing import Any, Mapping, Optional, Sequence, Union


# ── Tiers ────────────────────────────────────────────────────────────────

UNKNOWN = "Unknown"
LOW = "Low"
MEDIUM = "Medium"
HIGH = "High"
VERY_HIGH = "Very High"

TIMEFRAME_LABELS: dict[str, str] = {
    "hourly": "1H",
    "four_hour": "4H",
    "daily": "1D",
}


# ── Inputs ───────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class CandleData:
    """A single OHLCV bar as supplied by the market-data provider."""

    time: Union[str, int, float]  # ISO-8601 string or epoch
    open: float
    high: float
    low: float
    close: float
    volume: float


def candles_from_dicts(rows: Sequence[Mapping[str, Any]]) -> list[CandleData]:
    """Convert provider rows (``{time, open, high, low, close, volume}``).

    Raises ``ValueError`` naming the row index when a field is missing
    or not numeric.
    """
    candles: list[CandleData] = []
    for i, row in enumerate(rows):
        try:
            candles.append(
                CandleData(
                    time=row["time"],
                    open=float(row["open"]),
                    high=float(row["high"]),
                    low=float(row["low"]),
                    close=float(row["close"]),
                    volume=float(row["volume"]),
                )
            )
        except (KeyError, TypeError, ValueError) as exc:
            raise ValueError(f"Malformed candle at index {i}: {exc}") from exc
    return candles


@dataclass(frozen=True)
class CoinData:
    """Candles for one symbol across the three screening timeframes."""

    symbol: str
    hourly: Optional[list[CandleData]]
    four_hour: Optional[list[CandleData]]
    daily: Optional[list[CandleData]]
    exchange: Optional[str] = None


# ── Indicator points ─────────────────────────────────────────────────────


@dataclass(frozen=True)
class BollingerPoint:
    """Bollinger values at one index; all ``None`` during warm-up."""

    upper: Optional[float] = None
    middle: Optional[float] = None
    lower: Optional[float] = None
    width: Optional[float] = None
    percent: Optional[float] = None


@dataclass(frozen=True)
class MACDPoint:
    """MACD values at one index; all ``None`` during warm-up."""

    macd: Optional[float] = None
    signal: Optional[float] = None
    histogram: Optional[float] = None


# ── Analysis outputs ─────────────────────────────────────────────────────


@dataclass(frozen=True)
class AnalysisResult:
    """Breakout evaluation of a single candle series."""

    is_breakout_candidate: bool
    breakout_score: int
    signals: tuple[str, ...]
    metrics: dict[str, Any]
    profit_potential: str
    risk_level: str
    suggested_stop_loss: Optional[float] = None
    suggested_take_profit: Optional[float] = None

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["signals"] = list(self.signals)
        return data


@dataclass(frozen=True)
class MTFResult:
    """Multi-timeframe combination of three ``AnalysisResult`` objects."""

    mtf_score: int
    alignment_score: int
    hourly_score: int
    four_hour_score: int
    daily_score: int
    is_confirmed_breakout: bool
    combined_signals: tuple[str, ...]
    profit_potential: str
    risk_level: str
    suggested_stop_loss: Optional[float]
    suggested_take_profit: Optional[float]
    timeframes: dict[str, AnalysisResult] = field(default_factory=dict, repr=False)

    @property
    def per_timeframe_scores(self) -> dict[str, int]:
        return {
            "hourly": self.hourly_score,
            "four_hour": self.four_hour_score,
            "daily": self.daily_score,
        }

    def to_dict(self) -> dict[str, Any]:
        return {
            "mtf_score": self.mtf_score,
            "alignment_score": self.alignment_score,
            "per_timeframe_scores": self.per_timeframe_scores,
            "is_confirmed_breakout": self.is_confirmed_breakout,
            "combined_signals": list(self.combined_signals),
            "profit_potential": self.profit_potential,
            "risk_level": self.risk_level,
            "suggested_stop_loss": self.suggested_stop_loss,
            "suggested_take_profit": self.suggested_take_profit,
        }


# ── Signals ──────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class MTFBreakdown:
    """Scoring breakdown attached to an emitted signal."""

    score: int
    alignment_score: int
    hourly_score: int
    four_hour_score: int
    daily_score: int


@dataclass(frozen=True)
class Signal:
    """An accepted long breakout setup."""

    symbol: str
    exchange: str
    entry_price: float
    stop_loss: float
    take_profit: float
    risk_reward_ratio: float
    potential_profit_percent: float
    potential_loss_percent: float
    confidence: float  # 1–10
    success_probability: int  # 60–95
    generated_at: str
    expires_at: str
    mtf_analysis: MTFBreakdown
    signals: tuple[str, ...]
    profit_potential: str
    risk_level: str
    signal_type: str = "Breakout"
    direction: str = "Long"
    timeframe: str = "Multi-Timeframe"

    success = True

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["signals"] = list(self.signals)
        return {"success": True, **data}


@dataclass(frozen=True)
class SignalRejection:
    """A gate rejection: the reason plus the metric(s) that failed."""

    message: str
    diagnostics: dict[str, Any] = field(default_factory=dict)

    success = False

    def to_dict(self) -> dict[str, Any]:
        return {"success": False, "message": self.message, **self.diagnostics}
