"""SQLite journal store with async support."""

import json
from datetime import datetime
from pathlib import Path
from typing import Any

import aiosqlite
from loguru import logger

from tradejournal.config import settings
from tradejournal.models.rules import TradingRule, Violation
from tradejournal.models.trade import Trade

_TRADE_COLUMNS = [
    name for name in Trade.model_fields if name not in ("id", "created_at")
]


class Database:
    def __init__(self, db_path: str | None = None):
        self.db_path = db_path or settings.db_path
        self._db: aiosqlite.Connection | None = None

    async def connect(self):
        """Connect to SQLite and run migrations."""
        if self.db_path != ":memory:":
            Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)
        self._db = await aiosqlite.connect(self.db_path)
        self._db.row_factory = aiosqlite.Row
        await self._db.execute("PRAGMA foreign_keys=ON")
        await self._db.execute("PRAGMA journal_mode=WAL")
        await self._db.execute(f"PRAGMA cache_size=-{settings.db_cache_mb * 1024}")
        await self._run_migrations()
        logger.info(f"Database connected: {self.db_path}")

    async def disconnect(self):
        if self._db:
            await self._db.close()
            self._db = None
            logger.info("Database disconnected")

    async def _run_migrations(self):
        migrations_dir = Path(__file__).parent / "migrations"
        for sql_file in sorted(migrations_dir.glob("*.sql")):
            await self._db.executescript(sql_file.read_text())
        await self._db.commit()

    # --- Trades ---

    async def create_trade(self, trade: Trade) -> int:
        if not trade.user_id:
            raise ValueError("Trade has no user_id")
        values = [getattr(trade, c) for c in _TRADE_COLUMNS]
        cursor = await self._db.execute(
            f"""INSERT INTO trades ({', '.join(_TRADE_COLUMNS)}, created_at)
                VALUES ({', '.join('?' for _ in _TRADE_COLUMNS)}, ?)""",
            (*values, datetime.now().isoformat()),
        )
        await self._db.commit()
        return cursor.lastrowid

    async def get_trade(self, trade_id: int) -> Trade | None:
        cursor = await self._db.execute("SELECT * FROM trades WHERE id = ?", (trade_id,))
        row = await cursor.fetchone()
        if not row:
            return None
        return self._row_to_trade(row)

    async def list_trades(
        self,
        user_id: str,
        start_date: str | None = None,
        end_date: str | None = None,
        pair: str | None = None,
        limit: int | None = None,
        offset: int = 0,
    ) -> list[Trade]:
        query = "SELECT * FROM trades WHERE user_id = ?"
        params: list[Any] = [user_id]
        if start_date:
            query += " AND date >= ?"
            params.append(start_date)
        if end_date:
            query += " AND date <= ?"
            params.append(end_date)
        if pair:
            query += " AND pair = ?"
            params.append(pair)
        query += " ORDER BY date DESC, entry_time DESC, id DESC"
        if limit is not None:
            query += " LIMIT ? OFFSET ?"
            params.extend([limit, offset])

        cursor = await self._db.execute(query, params)
        rows = await cursor.fetchall()
        return [self._row_to_trade(r) for r in rows]

    async def update_trade(self, trade_id: int, **kwargs) -> bool:
        unknown = set(kwargs) - set(_TRADE_COLUMNS)
        if unknown:
            raise ValueError(f"Unknown trade fields: {', '.join(sorted(unknown))}")
        current = await self.get_trade(trade_id)
        if current is None:
            return False
        # Re-validate the merged record so updates keep the canonical invariants
        updated = Trade.model_validate({**current.model_dump(), **kwargs})
        sets = [f"{key} = ?" for key in kwargs]
        values = [getattr(updated, key) for key in kwargs]
        values.append(trade_id)
        await self._db.execute(f"UPDATE trades SET {', '.join(sets)} WHERE id = ?", values)
        await self._db.commit()
        return True

    async def delete_trade(self, trade_id: int) -> bool:
        cursor = await self._db.execute("DELETE FROM trades WHERE id = ?", (trade_id,))
        await self._db.commit()
        return cursor.rowcount > 0

    def _row_to_trade(self, row) -> Trade:
        data = {c: row[c] for c in _TRADE_COLUMNS}
        return Trade(id=row["id"], created_at=row["created_at"], **{
            k: ("" if v is None and isinstance(Trade.model_fields[k].default, str) else v)
            for k, v in data.items()
        })

    # --- Trading rules ---

    async def list_trading_rules(self, user_id: str) -> list[TradingRule]:
        cursor = await self._db.execute(
            "SELECT * FROM trading_rules WHERE user_id = ? ORDER BY id", (user_id,)
        )
        rows = await cursor.fetchall()
        return [self._row_to_rule(r) for r in rows]

    async def upsert_trading_rule(self, rule: TradingRule) -> int:
        """Create the user's rule of this type, or replace its allowed values."""
        now = datetime.now().isoformat()
        await self._db.execute(
            """INSERT INTO trading_rules (user_id, rule_type, allowed_values_json, created_at, updated_at)
               VALUES (?, ?, ?, ?, ?)
               ON CONFLICT (user_id, rule_type)
               DO UPDATE SET allowed_values_json = excluded.allowed_values_json,
                             updated_at = excluded.updated_at""",
            (rule.user_id, rule.rule_type, json.dumps(rule.allowed_values), now, now),
        )
        await self._db.commit()
        cursor = await self._db.execute(
            "SELECT id FROM trading_rules WHERE user_id = ? AND rule_type = ?",
            (rule.user_id, rule.rule_type),
        )
        row = await cursor.fetchone()
        return row["id"]

    async def delete_trading_rule(self, rule_id: int) -> bool:
        cursor = await self._db.execute("DELETE FROM trading_rules WHERE id = ?", (rule_id,))
        await self._db.commit()
        return cursor.rowcount > 0

    def _row_to_rule(self, row) -> TradingRule:
        return TradingRule(
            id=row["id"],
            user_id=row["user_id"],
            rule_type=row["rule_type"],
            allowed_values=json.loads(row["allowed_values_json"]),
            created_at=row["created_at"],
            updated_at=row["updated_at"],
        )

    # --- Violations ---

    async def create_violation(self, violation: Violation) -> int | None:
        """Insert a violation. Returns None if the trade already has one of this rule type."""
        cursor = await self._db.execute(
            """INSERT OR IGNORE INTO trade_violations
               (trade_id, user_id, rule_type, violated_value, allowed_values_json, acknowledged, created_at)
               VALUES (?, ?, ?, ?, ?, ?, ?)""",
            (
                violation.trade_id,
                violation.user_id,
                violation.rule_type,
                violation.violated_value,
                json.dumps(violation.allowed_values),
                1 if violation.acknowledged else 0,
                datetime.now().isoformat(),
            ),
        )
        await self._db.commit()
        if cursor.rowcount == 0:
            logger.debug(
                f"Trade #{violation.trade_id} already has a {violation.rule_type} violation"
            )
            return None
        return cursor.lastrowid

    async def list_violations(
        self,
        user_id: str | None = None,
        trade_ids: list[int] | None = None,
    ) -> list[Violation]:
        query = "SELECT * FROM trade_violations WHERE 1=1"
        params: list[Any] = []
        if user_id is not None:
            query += " AND user_id = ?"
            params.append(user_id)
        if trade_ids is not None:
            if not trade_ids:
                return []
            query += f" AND trade_id IN ({', '.join('?' for _ in trade_ids)})"
            params.extend(trade_ids)
        query += " ORDER BY created_at DESC, id DESC"

        cursor = await self._db.execute(query, params)
        rows = await cursor.fetchall()
        return [self._row_to_violation(r) for r in rows]

    async def acknowledge_violation(self, violation_id: int) -> bool:
        cursor = await self._db.execute(
            "UPDATE trade_violations SET acknowledged = 1 WHERE id = ?", (violation_id,)
        )
        await self._db.commit()
        return cursor.rowcount > 0

    def _row_to_violation(self, row) -> Violation:
        return Violation(
            id=row["id"],
            trade_id=row["trade_id"],
            user_id=row["user_id"],
            rule_type=row["rule_type"],
            violated_value=row["violated_value"],
            allowed_values=json.loads(row["allowed_values_json"]),
            acknowledged=bool(row["acknowledged"]),
            created_at=row["created_at"],
        )
