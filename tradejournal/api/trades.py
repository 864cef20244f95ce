"""Trade history endpoints and single-trade entry."""

from typing import Any

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel

from tradejournal.api.main import app_state
from tradejournal.models.trade import Trade

router = APIRouter(prefix="/api/trades", tags=["trades"])


class SubmitRequest(BaseModel):
    user_id: str
    trade: Trade
    acknowledged: bool = False


@router.get("")
async def list_trades(
    user_id: str,
    start_date: str | None = None,
    end_date: str | None = None,
    pair: str | None = None,
    limit: int = 200,
    offset: int = 0,
):
    trades = await app_state["db"].list_trades(
        user_id, start_date=start_date, end_date=end_date, pair=pair, limit=limit, offset=offset
    )
    return [t.model_dump(mode="json") for t in trades]


@router.post("")
async def submit_trade(req: SubmitRequest):
    """Save one trade. Rule violations block the save until acknowledged."""
    result = await app_state["recorder"].submit(req.trade, req.user_id, acknowledged=req.acknowledged)
    if result.status == "failed":
        raise HTTPException(
            status_code=502,
            detail={"message": result.error, "trade": result.trade.model_dump(mode="json")},
        )
    body = result.model_dump(mode="json")
    if result.status == "blocked":
        raise HTTPException(status_code=409, detail=body)
    return body


@router.get("/{trade_id}")
async def get_trade(trade_id: int):
    trade = await app_state["db"].get_trade(trade_id)
    if not trade:
        raise HTTPException(status_code=404, detail="Trade not found")
    return trade.model_dump(mode="json")


@router.patch("/{trade_id}")
async def update_trade(trade_id: int, changes: dict[str, Any]):
    try:
        ok = await app_state["db"].update_trade(trade_id, **changes)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    if not ok:
        raise HTTPException(status_code=404, detail="Trade not found")
    trade = await app_state["db"].get_trade(trade_id)
    return trade.model_dump(mode="json")


@router.delete("/{trade_id}")
async def delete_trade(trade_id: int):
    if not await app_state["db"].delete_trade(trade_id):
        raise HTTPException(status_code=404, detail="Trade not found")
    return {"deleted": trade_id}
