"""Trade Recorder — the interactive single-entry workflow.

A trade that breaks a rule is held back until the user acknowledges the
warning. Once it goes through, each broken rule is stored as an
acknowledged violation alongside the trade.
"""

from typing import Literal

from loguru import logger
from pydantic import BaseModel

from tradejournal.compliance import RuleComplianceEngine, violation_records
from tradejournal.models.rules import ComplianceReport
from tradejournal.models.trade import Trade


class SubmitResult(BaseModel):
    status: Literal["saved", "blocked", "failed"]
    trade: Trade
    trade_id: int | None = None
    report: ComplianceReport = ComplianceReport()
    error: str | None = None


class TradeRecorder:
    def __init__(self, db, engine: RuleComplianceEngine | None = None):
        self.db = db
        self.engine = engine or RuleComplianceEngine()

    async def submit(self, trade: Trade, user_id: str, acknowledged: bool = False) -> SubmitResult:
        trade = trade.model_copy(update={"user_id": user_id})
        try:
            report = await self.engine.check_for_user(trade, user_id, self.db)
        except Exception as e:
            logger.error(f"Could not load trading rules for {user_id}: {e}")
            return SubmitResult(status="failed", trade=trade, error=str(e))

        if not report.is_valid and not acknowledged:
            logger.info(
                f"Trade for {user_id} held back: "
                f"{', '.join(v.rule_type for v in report.violations)} rule(s) broken"
            )
            return SubmitResult(status="blocked", trade=trade, report=report)

        try:
            trade_id = await self.db.create_trade(trade)
        except Exception as e:
            logger.error(f"Failed to save trade for {user_id}: {e}")
            return SubmitResult(status="failed", trade=trade, report=report, error=str(e))

        for violation in violation_records(report, trade_id, user_id, acknowledged=True):
            try:
                await self.db.create_violation(violation)
            except Exception as e:
                logger.error(f"Could not record {violation.rule_type} violation for trade #{trade_id}: {e}")

        logger.info(f"Trade #{trade_id} saved: {trade.action} {trade.pair} {trade.lots} lots")
        return SubmitResult(
            status="saved",
            trade=trade.model_copy(update={"id": trade_id}),
            trade_id=trade_id,
            report=report,
        )
