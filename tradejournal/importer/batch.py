"""Batch Importer — pasted text or workbook sheets into previewable trades.

Parsing is synchronous and row-independent. Committing awaits one
persistence call per candidate, in order, and never rolls back: a failing
row is counted and the batch carries on.
"""

import re
from typing import Any, Literal

from loguru import logger
from pydantic import BaseModel

from tradejournal.compliance import RuleComplianceEngine, violation_records
from tradejournal.config import settings
from tradejournal.importer.normalizer import COLUMN_COUNT, RowFailure, normalize_row
from tradejournal.models.rules import TradingRule
from tradejournal.models.trade import Trade

_MULTI_SPACE_RE = re.compile(r"\s{2,}")


class NoRowsParsedError(ValueError):
    def __init__(self, skipped: int, failures: list[RowFailure] | None = None):
        self.skipped = skipped
        self.failures = failures or []
        super().__init__(f"No rows could be parsed ({skipped} skipped)")


class ImportPreview(BaseModel):
    """Parsed candidates awaiting the user's go-ahead."""
    mode: Literal["single", "multi"]
    candidates: list[Trade]
    failures: list[RowFailure] = []
    cursor: int = 0

    @property
    def skipped(self) -> int:
        return len(self.failures)

    @property
    def current(self) -> Trade:
        return self.candidates[self.cursor]

    def select(self, index: int) -> Trade:
        if not 0 <= index < len(self.candidates):
            raise IndexError(f"No candidate at position {index}")
        self.cursor = index
        return self.current

    def next(self) -> Trade:
        return self.select(min(self.cursor + 1, len(self.candidates) - 1))

    def previous(self) -> Trade:
        return self.select(max(self.cursor - 1, 0))


class RowOutcome(BaseModel):
    index: int
    trade_id: int | None = None
    error: str | None = None
    violations: int = 0


class CommitResult(BaseModel):
    saved: int = 0
    failed: int = 0
    violations_recorded: int = 0
    rows: list[RowOutcome] = []

    @property
    def ok(self) -> bool:
        return self.saved > 0

    @property
    def trade_ids(self) -> list[int]:
        return [r.trade_id for r in self.rows if r.trade_id is not None]


def split_line(line: str) -> list[str]:
    """Cells of one pasted line: tab-delimited, else runs of 2+ spaces."""
    line = line.rstrip("\r")
    if "\t" in line:
        return [cell.strip() for cell in line.split("\t")]
    return _MULTI_SPACE_RE.split(line.strip())


def _is_blank_row(cells: list[Any]) -> bool:
    for cell in cells:
        if cell is None:
            continue
        if isinstance(cell, float) and cell != cell:
            continue
        if str(cell).strip():
            return False
    return True


class BatchImporter:
    """Turns raw rows into an ImportPreview and commits accepted previews."""

    def __init__(self, db=None, engine: RuleComplianceEngine | None = None):
        self.db = db
        self.engine = engine or RuleComplianceEngine()

    # --- Parsing ---

    def parse_text(self, text: str) -> ImportPreview:
        lines = [line for line in text.splitlines() if line.strip()]
        rows = [(i + 1, line, split_line(line)) for i, line in enumerate(lines)]
        mode = "single" if len(lines) == 1 else "multi"
        return self._preview(rows, mode)

    def parse_sheet(self, rows: list[list[Any]]) -> ImportPreview:
        """Sheet rows as read from a workbook, header rows and label column included."""
        header_rows = settings.sheet_header_rows
        label_cols = settings.sheet_label_columns
        parsed = []
        for offset, row in enumerate(rows[header_rows:]):
            cells = list(row[label_cols:label_cols + COLUMN_COUNT])
            if _is_blank_row(cells):
                continue
            parsed.append((header_rows + offset + 1, "", cells))
        return self._preview(parsed, "multi")

    def _preview(self, rows: list[tuple[int, str, list[Any]]], mode: str) -> ImportPreview:
        candidates: list[Trade] = []
        failures: list[RowFailure] = []
        for line_no, line, cells in rows:
            result = normalize_row(cells, line=line, line_no=line_no)
            if result.ok:
                candidates.append(result.record)
            else:
                failures.append(result.failure)

        if not candidates:
            logger.warning(f"Import produced no trades ({len(failures)} rows skipped)")
            raise NoRowsParsedError(len(failures), failures)

        logger.info(f"Import preview: {len(candidates)} parsed, {len(failures)} skipped")
        return ImportPreview(mode=mode, candidates=candidates, failures=failures)

    # --- Commit ---

    async def commit(
        self,
        candidates: list[Trade],
        user_id: str,
        rules: list[TradingRule] | None = None,
    ) -> CommitResult:
        """Persist candidates one at a time, auto-acknowledging rule violations."""
        if self.db is None:
            raise RuntimeError("BatchImporter has no store to commit to")
        if rules is None:
            rules = await self.db.list_trading_rules(user_id)

        result = CommitResult()
        for index, candidate in enumerate(candidates):
            outcome = RowOutcome(index=index)
            trade = candidate.model_copy(update={"user_id": user_id, "id": None})
            try:
                outcome.trade_id = await self.db.create_trade(trade)
            except Exception as e:
                outcome.error = str(e)
                result.failed += 1
                result.rows.append(outcome)
                logger.error(f"Import row {index} failed to save: {e}")
                continue

            result.saved += 1
            try:
                report = self.engine.check(trade, rules)
            except Exception as e:
                outcome.error = f"rule check failed: {e!r}"
                result.rows.append(outcome)
                logger.error(f"Import row {index} saved as trade #{outcome.trade_id} but rule check failed: {e!r}")
                continue

            for violation in violation_records(report, outcome.trade_id, user_id, acknowledged=True):
                try:
                    if await self.db.create_violation(violation) is not None:
                        outcome.violations += 1
                except Exception as e:
                    logger.error(
                        f"Could not record {violation.rule_type} violation for trade "
                        f"#{outcome.trade_id}: {e}"
                    )
            result.violations_recorded += outcome.violations
            result.rows.append(outcome)

        logger.info(
            f"Import committed for {user_id}: {result.saved} saved, {result.failed} failed, "
            f"{result.violations_recorded} violations"
        )
        return result
