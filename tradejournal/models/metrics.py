"""Derived performance statistics — never persisted."""

from pydantic import BaseModel


class AggregateMetrics(BaseModel):
    total_trades: int = 0
    winning_trades: int = 0
    losing_trades: int = 0
    break_even_trades: int = 0
    win_rate: int = 0  # percent of all trades, rounded half-up
    total_profit_loss: float = 0.0
    total_pips: float = 0.0
    total_reward: float = 0.0
    max_consecutive_losses: int = 0
    max_consecutive_wins: int = 0
    violations_count: int = 0
    violated_trades_count: int = 0
    # Extended
    largest_win: float = 0.0
    largest_loss: float = 0.0
    average_win: float = 0.0
    average_loss: float = 0.0
    profit_factor: float = 0.0
    average_risk_ratio: float = 0.0


class GroupMetrics(BaseModel):
    key: str
    trades: int = 0
    wins: int = 0
    losses: int = 0
    win_rate: float = 0.0  # wins / trades in the group
    profit_loss: float = 0.0
    pips: float = 0.0
