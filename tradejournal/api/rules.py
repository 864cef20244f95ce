"""Trading rules, live compliance checks and recorded violations."""

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel

from tradejournal.api.main import app_state
from tradejournal.models.rules import RuleType, TradeProjection, TradingRule

router = APIRouter(prefix="/api", tags=["rules"])


class RuleUpdate(BaseModel):
    allowed_values: list[str]


@router.get("/rules")
async def list_rules(user_id: str):
    rules = await app_state["db"].list_trading_rules(user_id)
    return [r.model_dump(mode="json") for r in rules]


@router.put("/rules/{user_id}/{rule_type}")
async def save_rule(user_id: str, rule_type: RuleType, req: RuleUpdate):
    if not req.allowed_values:
        raise HTTPException(status_code=400, detail="Please add at least one allowed value")
    rule_id = await app_state["db"].upsert_trading_rule(
        TradingRule(user_id=user_id, rule_type=rule_type, allowed_values=req.allowed_values)
    )
    return {"id": rule_id, "user_id": user_id, "rule_type": rule_type, "allowed_values": req.allowed_values}


@router.delete("/rules/{rule_id}")
async def delete_rule(rule_id: int):
    if not await app_state["db"].delete_trading_rule(rule_id):
        raise HTTPException(status_code=404, detail="Rule not found")
    return {"deleted": rule_id}


@router.post("/rules/check")
async def check_trade(user_id: str, trade: TradeProjection):
    """Evaluate a (possibly half-filled) trade against the user's rules."""
    report = await app_state["engine"].check_for_user(trade, user_id, app_state["db"])
    return report.model_dump()


@router.get("/violations")
async def list_violations(user_id: str):
    violations = await app_state["db"].list_violations(user_id=user_id)
    return [v.model_dump(mode="json") for v in violations]


@router.post("/violations/{violation_id}/acknowledge")
async def acknowledge_violation(violation_id: int):
    if not await app_state["db"].acknowledge_violation(violation_id):
        raise HTTPException(status_code=404, detail="Violation not found")
    return {"id": violation_id, "acknowledged": True}
