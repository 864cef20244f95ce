"""Performance metrics for a user's trades over a period."""

import calendar

from fastapi import APIRouter, HTTPException

from tradejournal.api.main import app_state
from tradejournal.metrics import breakdown, compute_metrics, summarize

router = APIRouter(prefix="/api/metrics", tags=["metrics"])


def _period(year: int | None, month: int | None) -> tuple[str | None, str | None, str]:
    if year is None:
        if month is not None:
            raise HTTPException(status_code=400, detail="month requires year")
        return None, None, "all time"
    if month is None:
        return f"{year}-01-01", f"{year}-12-31", str(year)
    if not 1 <= month <= 12:
        raise HTTPException(status_code=400, detail="month must be 1-12")
    last_day = calendar.monthrange(year, month)[1]
    return (
        f"{year}-{month:02d}-01",
        f"{year}-{month:02d}-{last_day:02d}",
        f"{calendar.month_name[month]} {year}",
    )


@router.get("")
async def get_metrics(
    user_id: str,
    year: int | None = None,
    month: int | None = None,
    pair: str | None = None,
    currency_symbol: str = "$",
):
    """Aggregate metrics plus pair/weekday breakdowns for the period."""
    start_date, end_date, label = _period(year, month)
    db = app_state["db"]
    trades = await db.list_trades(user_id, start_date=start_date, end_date=end_date, pair=pair)
    violations = await db.list_violations(
        user_id=user_id, trade_ids=[t.id for t in trades if t.id is not None]
    )
    metrics = compute_metrics(trades, violations)
    return {
        "period": label,
        "metrics": metrics.model_dump(),
        "by_pair": [g.model_dump() for g in breakdown(trades, by="pair")],
        "by_day": [g.model_dump() for g in breakdown(trades, by="day")],
        "by_period": [
            g.model_dump() for g in breakdown(trades, by="date" if month else "month")
        ],
        "summary": summarize(metrics, label, currency_symbol),
    }
