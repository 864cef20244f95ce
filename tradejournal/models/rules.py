"""Trading rules, compliance results and stored violations."""

from datetime import datetime
from typing import Literal

from pydantic import BaseModel

RuleType = Literal["pair", "day", "lot", "action_direction"]


class TradingRule(BaseModel):
    id: int | None = None
    user_id: str
    rule_type: RuleType
    allowed_values: list[str] = []
    created_at: datetime | None = None
    updated_at: datetime | None = None


class TradeProjection(BaseModel):
    """The subset of a trade the rule engine looks at.

    Every field is optional so a half-filled entry form can be checked
    while the user is still typing.
    """
    pair: str | None = None
    day: str | None = None
    lots: float | None = None
    action: str | None = None
    direction: str | None = None


class RuleViolation(BaseModel):
    rule_type: RuleType
    violated_value: str
    allowed_values: list[str] = []


class ComplianceReport(BaseModel):
    is_valid: bool = True
    violations: list[RuleViolation] = []


class Violation(BaseModel):
    """A persisted rule violation for one trade."""
    id: int | None = None
    trade_id: int
    user_id: str
    rule_type: RuleType
    violated_value: str
    allowed_values: list[str] = []
    acknowledged: bool = False
    created_at: datetime | None = None
