"""Shared test fixtures for the journal pipeline."""

import pytest

from tradejournal.models.rules import TradingRule, Violation
from tradejournal.models.trade import Trade


def make_trade(
    id=None,
    date="2024-03-01",
    day="Friday",
    entry_time="09:30",
    pair="GBP/USD",
    action="Buy",
    direction="Bullish",
    lots=0.1,
    pip_stop_loss=20,
    pip_take_profit=40,
    risk_ratio=2.0,
    profit_loss=10.0,
    true_pips="",
    true_reward="",
    **kwargs,
) -> Trade:
    return Trade(
        id=id,
        date=date,
        day=day,
        entry_time=entry_time,
        pair=pair,
        action=action,
        direction=direction,
        lots=lots,
        pip_stop_loss=pip_stop_loss,
        pip_take_profit=pip_take_profit,
        risk_ratio=risk_ratio,
        profit_loss=profit_loss,
        true_pips=true_pips,
        true_reward=true_reward,
        **kwargs,
    )


def make_row(**overrides) -> list[str]:
    """A pasted 24-column row; override cells by column name."""
    from tradejournal.importer.normalizer import COLUMNS

    cells = {
        "date": "01/03/24",
        "day": "Friday",
        "entry_time": "9.30am",
        "pair": "GU",
        "action": "buy",
        "direction": "Bullish",
        "lots": "0.10",
        "pip_stop_loss": "20",
        "pip_take_profit": "40",
        "risk_ratio": "2",
        "profit_loss": "-50",
    }
    cells.update(overrides)
    return [cells.get(name, "") for name in COLUMNS]


class FakeStore:
    """In-memory stand-in for the journal store."""

    def __init__(self, rules=None, fail_on=None):
        self.rules = list(rules or [])
        self.trades: dict[int, Trade] = {}
        self.violations: list[Violation] = []
        self.fail_on = set(fail_on or [])  # pairs whose save raises
        self._next_id = 1

    async def list_trading_rules(self, user_id):
        return [r for r in self.rules if r.user_id == user_id]

    async def create_trade(self, trade):
        if trade.pair in self.fail_on:
            raise ConnectionError(f"store rejected {trade.pair}")
        trade_id = self._next_id
        self._next_id += 1
        self.trades[trade_id] = trade.model_copy(update={"id": trade_id})
        return trade_id

    async def create_violation(self, violation):
        for existing in self.violations:
            if (existing.trade_id, existing.rule_type) == (violation.trade_id, violation.rule_type):
                return None
        self.violations.append(violation.model_copy(update={"id": len(self.violations) + 1}))
        return len(self.violations)


@pytest.fixture
def pair_rule():
    return TradingRule(user_id="u1", rule_type="pair", allowed_values=["EUR/USD"])


@pytest.fixture
def all_rules():
    """One rule of every type."""
    return [
        TradingRule(user_id="u1", rule_type="pair", allowed_values=["EUR/USD", "GBP/USD"]),
        TradingRule(user_id="u1", rule_type="day", allowed_values=["Tuesday", "Wednesday", "Thursday"]),
        TradingRule(user_id="u1", rule_type="lot", allowed_values=["0.1", "0.2"]),
        TradingRule(user_id="u1", rule_type="action_direction", allowed_values=["No"]),
    ]
