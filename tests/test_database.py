"""Tests for tradejournal.db.database — the SQLite journal store."""

import asyncio

import pytest
from pydantic import ValidationError
from tradejournal.db.database import Database
from tradejournal.models.rules import TradingRule, Violation
from tests.conftest import make_trade


def with_db(tmp_path, scenario):
    """Run an async scenario against a fresh store and return its result."""
    async def go():
        db = Database(str(tmp_path / "journal.db"))
        await db.connect()
        try:
            return await scenario(db)
        finally:
            await db.disconnect()
    return asyncio.run(go())


def violation(trade_id, rule_type="pair", value="GBP/USD"):
    return Violation(
        trade_id=trade_id, user_id="u1", rule_type=rule_type,
        violated_value=value, allowed_values=["EUR/USD"],
    )


# ── Trades ─────────────────────────────────────────────────────────

class TestTrades:
    def test_create_and_get(self, tmp_path):
        async def scenario(db):
            trade_id = await db.create_trade(make_trade(user_id="u1", comments="first", true_pips="12"))
            return trade_id, await db.get_trade(trade_id)

        trade_id, trade = with_db(tmp_path, scenario)
        assert trade.id == trade_id
        assert trade.user_id == "u1"
        assert trade.pair == "GBP/USD"
        assert trade.lots == 0.1
        assert trade.true_pips == "12"
        assert trade.true_reward == ""
        assert trade.comments == "first"
        assert trade.created_at is not None

    def test_requires_user(self, tmp_path):
        async def scenario(db):
            await db.create_trade(make_trade())

        with pytest.raises(ValueError):
            with_db(tmp_path, scenario)

    def test_missing_trade(self, tmp_path):
        async def scenario(db):
            return await db.get_trade(404)

        assert with_db(tmp_path, scenario) is None

    def test_list_newest_first_with_filters(self, tmp_path):
        async def scenario(db):
            for d, t, pair in [
                ("2024-03-01", "09:00", "GBP/USD"),
                ("2024-03-04", "08:00", "EUR/USD"),
                ("2024-03-04", "14:00", "GBP/USD"),
                ("2024-04-01", "10:00", "GBP/USD"),
            ]:
                await db.create_trade(make_trade(user_id="u1", date=d, entry_time=t, pair=pair))
            await db.create_trade(make_trade(user_id="u2", date="2024-03-02"))
            return (
                await db.list_trades("u1"),
                await db.list_trades("u1", start_date="2024-03-01", end_date="2024-03-31"),
                await db.list_trades("u1", pair="EUR/USD"),
                await db.list_trades("u1", limit=2, offset=1),
            )

        everything, march, eur, page = with_db(tmp_path, scenario)
        assert [(t.date, t.entry_time) for t in everything] == [
            ("2024-04-01", "10:00"),
            ("2024-03-04", "14:00"),
            ("2024-03-04", "08:00"),
            ("2024-03-01", "09:00"),
        ]
        assert len(march) == 3
        assert [t.pair for t in eur] == ["EUR/USD"]
        assert [t.entry_time for t in page] == ["14:00", "08:00"]

    def test_update(self, tmp_path):
        async def scenario(db):
            trade_id = await db.create_trade(make_trade(user_id="u1"))
            changed = await db.update_trade(trade_id, profit_loss=-25.0, comments="stopped out")
            return changed, await db.get_trade(trade_id)

        changed, trade = with_db(tmp_path, scenario)
        assert changed
        assert trade.profit_loss == -25.0
        assert trade.comments == "stopped out"

    def test_update_rejects_unknown_field(self, tmp_path):
        async def scenario(db):
            trade_id = await db.create_trade(make_trade(user_id="u1"))
            await db.update_trade(trade_id, colour="red")

        with pytest.raises(ValueError, match="colour"):
            with_db(tmp_path, scenario)

    def test_update_keeps_invariants(self, tmp_path):
        async def scenario(db):
            trade_id = await db.create_trade(make_trade(user_id="u1"))
            await db.update_trade(trade_id, lots=0)

        with pytest.raises(ValidationError):
            with_db(tmp_path, scenario)

    def test_update_missing(self, tmp_path):
        async def scenario(db):
            return await db.update_trade(404, comments="x")

        assert with_db(tmp_path, scenario) is False

    def test_delete_cascades_violations(self, tmp_path):
        async def scenario(db):
            trade_id = await db.create_trade(make_trade(user_id="u1"))
            await db.create_violation(violation(trade_id))
            deleted = await db.delete_trade(trade_id)
            return deleted, await db.list_violations("u1"), await db.delete_trade(trade_id)

        deleted, remaining, again = with_db(tmp_path, scenario)
        assert deleted
        assert remaining == []
        assert not again


# ── Rules ──────────────────────────────────────────────────────────

class TestRules:
    def test_upsert_replaces_values(self, tmp_path):
        async def scenario(db):
            first = await db.upsert_trading_rule(
                TradingRule(user_id="u1", rule_type="pair", allowed_values=["EUR/USD"])
            )
            second = await db.upsert_trading_rule(
                TradingRule(user_id="u1", rule_type="pair", allowed_values=["GBP/USD", "USD/JPY"])
            )
            await db.upsert_trading_rule(
                TradingRule(user_id="u1", rule_type="day", allowed_values=["Monday"])
            )
            return first, second, await db.list_trading_rules("u1")

        first, second, rules = with_db(tmp_path, scenario)
        assert first == second
        assert [r.rule_type for r in rules] == ["pair", "day"]
        assert rules[0].allowed_values == ["GBP/USD", "USD/JPY"]

    def test_rules_are_per_user(self, tmp_path):
        async def scenario(db):
            await db.upsert_trading_rule(TradingRule(user_id="u1", rule_type="lot", allowed_values=["0.1"]))
            return await db.list_trading_rules("u2")

        assert with_db(tmp_path, scenario) == []

    def test_delete(self, tmp_path):
        async def scenario(db):
            rule_id = await db.upsert_trading_rule(
                TradingRule(user_id="u1", rule_type="lot", allowed_values=["0.1"])
            )
            return await db.delete_trading_rule(rule_id), await db.list_trading_rules("u1")

        deleted, rules = with_db(tmp_path, scenario)
        assert deleted
        assert rules == []


# ── Violations ─────────────────────────────────────────────────────

class TestViolations:
    def test_one_per_trade_and_rule_type(self, tmp_path):
        async def scenario(db):
            trade_id = await db.create_trade(make_trade(user_id="u1"))
            first = await db.create_violation(violation(trade_id))
            duplicate = await db.create_violation(violation(trade_id))
            other = await db.create_violation(violation(trade_id, "day", "Friday"))
            return first, duplicate, other, await db.list_violations("u1")

        first, duplicate, other, stored = with_db(tmp_path, scenario)
        assert first is not None
        assert duplicate is None
        assert other is not None
        assert len(stored) == 2
        assert {v.rule_type for v in stored} == {"pair", "day"}

    def test_filter_by_trade_ids(self, tmp_path):
        async def scenario(db):
            a = await db.create_trade(make_trade(user_id="u1"))
            b = await db.create_trade(make_trade(user_id="u1", date="2024-03-02"))
            await db.create_violation(violation(a))
            await db.create_violation(violation(b))
            return a, await db.list_violations(trade_ids=[a]), await db.list_violations(trade_ids=[])

        a, only_a, none = with_db(tmp_path, scenario)
        assert [v.trade_id for v in only_a] == [a]
        assert only_a[0].allowed_values == ["EUR/USD"]
        assert none == []

    def test_acknowledge(self, tmp_path):
        async def scenario(db):
            trade_id = await db.create_trade(make_trade(user_id="u1"))
            violation_id = await db.create_violation(violation(trade_id))
            before = (await db.list_violations("u1"))[0].acknowledged
            acked = await db.acknowledge_violation(violation_id)
            after = (await db.list_violations("u1"))[0].acknowledged
            return before, acked, after

        before, acked, after = with_db(tmp_path, scenario)
        assert not before
        assert acked
        assert after
