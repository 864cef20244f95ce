"""Canonical trade record."""

import re
from datetime import date as date_type
from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field, field_validator

_TIME_RE = re.compile(r"^([01]\d|2[0-3]):[0-5]\d$")


class Trade(BaseModel):
    id: int | None = None
    user_id: str | None = None

    # When
    date: str  # YYYY-MM-DD
    day: str = ""  # weekday name, e.g. "Monday"
    entry_time: str = ""  # HH:MM, 24-hour, or empty
    exit_time: str = ""

    # What
    pair: str
    action: Literal["Buy", "Sell"]
    direction: Literal["Bullish", "Bearish", ""] = ""
    lots: float = Field(gt=0)
    pip_stop_loss: int = 0
    pip_take_profit: int = 0
    risk_ratio: float = 0.0

    # Setup annotations
    order_type: str = ""
    market_condition: str = ""
    ma: str = ""
    fib: str = ""
    pivots: str = ""
    gap: str = ""
    banking_level: str = ""
    confluences: str = ""
    mindset: str = ""

    # Outcome
    profit_loss: float = 0.0
    true_pips: str = ""  # plain number as text, or empty
    true_reward: str = ""  # plain number as text, or empty

    trade_link: str = ""
    comments: str = ""
    created_at: datetime | None = None

    @field_validator("date")
    @classmethod
    def _iso_date(cls, v: str) -> str:
        date_type.fromisoformat(v)
        if len(v) != 10:
            raise ValueError(f"date must be YYYY-MM-DD, got {v!r}")
        return v

    @field_validator("entry_time", "exit_time")
    @classmethod
    def _clock_time(cls, v: str) -> str:
        if v and not _TIME_RE.match(v):
            raise ValueError(f"time must be HH:MM (24-hour), got {v!r}")
        return v
