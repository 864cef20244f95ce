"""Rule Compliance Engine — checks a candidate trade against a user's trading rules."""

import re
from typing import Any

from loguru import logger

from tradejournal.importer.normalizer import format_number
from tradejournal.models.rules import (
    ComplianceReport,
    RuleViolation,
    TradeProjection,
    TradingRule,
    Violation,
)

AGAINST_TREND = {("Buy", "Bearish"), ("Sell", "Bullish")}

_LOT_RANGE_RE = re.compile(r"^\s*(\d*\.?\d+)\s*-\s*(\d*\.?\d+)\s*$")


def is_against_trend(action: str | None, direction: str | None) -> bool:
    return (action, direction) in AGAINST_TREND


def _lot_allowed(lots: float, allowed_values: list[str]) -> bool:
    canonical = format_number(lots)
    for value in allowed_values:
        m = _LOT_RANGE_RE.match(value)
        if m:
            if float(m.group(1)) <= lots <= float(m.group(2)):
                return True
        elif format_number(value.strip()) == canonical:
            return True
    return False


def project(trade: Any) -> TradeProjection:
    """Project a Trade, a projection or a plain dict onto the checked fields."""
    if isinstance(trade, TradeProjection):
        return trade
    if isinstance(trade, dict):
        return TradeProjection.model_validate(
            {k: trade.get(k) for k in TradeProjection.model_fields}
        )
    return TradeProjection(**{k: getattr(trade, k, None) for k in TradeProjection.model_fields})


class RuleComplianceEngine:
    """Evaluates every rule independently; a trade can break several at once."""

    def check(self, trade: Any, rules: list[TradingRule]) -> ComplianceReport:
        candidate = project(trade)
        violations: list[RuleViolation] = []

        for rule in rules:
            violated = self._evaluate(rule, candidate)
            if violated is not None:
                violations.append(RuleViolation(
                    rule_type=rule.rule_type,
                    violated_value=violated,
                    allowed_values=list(rule.allowed_values),
                ))

        if violations:
            logger.debug(
                f"Trade breaks {len(violations)} rule(s): "
                f"{', '.join(v.rule_type for v in violations)}"
            )
        return ComplianceReport(is_valid=not violations, violations=violations)

    def _evaluate(self, rule: TradingRule, trade: TradeProjection) -> str | None:
        """Offending value for one rule, or None when the trade complies."""
        if rule.rule_type == "pair":
            if trade.pair and trade.pair not in rule.allowed_values:
                return trade.pair
        elif rule.rule_type == "day":
            if trade.day and trade.day not in rule.allowed_values:
                return trade.day
        elif rule.rule_type == "lot":
            if trade.lots is not None and not _lot_allowed(trade.lots, rule.allowed_values):
                return format_number(trade.lots)
        elif rule.rule_type == "action_direction":
            # allowed_values answers "may I trade against the trend?"
            if "No" in rule.allowed_values and is_against_trend(trade.action, trade.direction):
                return f"{trade.action} when {trade.direction}"
        return None

    async def check_for_user(self, trade: Any, user_id: str, db) -> ComplianceReport:
        rules = await db.list_trading_rules(user_id)
        return self.check(trade, rules)


def violation_records(
    report: ComplianceReport,
    trade_id: int,
    user_id: str,
    acknowledged: bool = True,
) -> list[Violation]:
    """One Violation per violated rule type, ready to persist."""
    seen: set[str] = set()
    records = []
    for v in report.violations:
        if v.rule_type in seen:
            continue
        seen.add(v.rule_type)
        records.append(Violation(
            trade_id=trade_id,
            user_id=user_id,
            rule_type=v.rule_type,
            violated_value=v.violated_value,
            allowed_values=v.allowed_values,
            acknowledged=acknowledged,
        ))
    return records
