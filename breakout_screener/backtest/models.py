"""Backtest data models — simulated trades and run summaries."""

from dataclasses import asdict, dataclass, field
from typing import Any, Literal, Union

ExitType = Literal["Stop Loss", "Take Profit", "Time Exit"]


@dataclass(frozen=True)
class Trade:
    """One simulated long trade."""

    entry_bar: int
    entry_price: float
    stop_loss: float
    take_profit: float
    exit_price: float
    exit_type: ExitType
    bars_held: int
    pnl_percent: float
    date: Union[str, int, float]


@dataclass(frozen=True)
class BacktestResult:
    """Aggregate statistics plus the ordered trade list.

    ``completed`` is ``False`` when the run was stopped before the end
    of the data.
    """

    total_trades: int
    winning_trades: int
    losing_trades: int
    win_rate: float  # percent, 0–100
    average_profit: float
    average_loss: float
    profit_factor: float
    expectancy: float
    trades: list[Trade] = field(default_factory=list)
    completed: bool = True

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class BacktestError:
    """Precondition failure — distinct from a valid run with no trades."""

    error: str

    def to_dict(self) -> dict[str, Any]:
        return {"error": self.error}
