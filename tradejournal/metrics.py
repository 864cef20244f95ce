"""Metrics Aggregator — performance statistics over a trade collection."""

import math
from collections import defaultdict
from datetime import date

from tradejournal.importer.normalizer import leading_number
from tradejournal.models.metrics import AggregateMetrics, GroupMetrics
from tradejournal.models.rules import Violation
from tradejournal.models.trade import Trade


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def chronological(trades: list[Trade]) -> list[Trade]:
    """Trades oldest first by (date, entry time).

    Ties fall back to id and then profit/loss so the order does not depend
    on the order of the input.
    """
    return sorted(
        trades,
        key=lambda t: (t.date, t.entry_time, t.id is None, t.id or 0, t.profit_loss),
    )


def _compute_streaks(trades: list[Trade]) -> tuple[int, int]:
    """Longest run of losses and of wins, in chronological order.

    A loss is profit/loss < 0; break-even trades end both kinds of run.
    """
    max_losses = max_wins = 0
    cur_losses = cur_wins = 0
    for t in chronological(trades):
        if t.profit_loss < 0:
            cur_losses += 1
            cur_wins = 0
        elif t.profit_loss > 0:
            cur_wins += 1
            cur_losses = 0
        else:
            cur_losses = 0
            cur_wins = 0
        max_losses = max(max_losses, cur_losses)
        max_wins = max(max_wins, cur_wins)
    return max_losses, max_wins


def max_consecutive_losses(trades: list[Trade]) -> int:
    return _compute_streaks(trades)[0]


def compute_metrics(
    trades: list[Trade],
    violations: list[Violation] | None = None,
) -> AggregateMetrics:
    """Aggregate statistics for trades, counting only violations on those trades."""
    if not trades:
        return AggregateMetrics()

    wins = [t for t in trades if t.profit_loss > 0]
    losses = [t for t in trades if t.profit_loss < 0]
    total = len(trades)

    # Win rate over all trades, break-evens included in the denominator
    win_rate = _round_half_up(len(wins) / total * 100)

    total_pnl = sum(t.profit_loss for t in trades)
    total_pips = sum(leading_number(t.true_pips) for t in trades)
    total_reward = sum(leading_number(t.true_reward) for t in trades)

    max_losses, max_wins = _compute_streaks(trades)

    trade_ids = {t.id for t in trades if t.id is not None}
    in_scope = [v for v in (violations or []) if v.trade_id in trade_ids]

    gross_profit = sum(t.profit_loss for t in wins)
    gross_loss = abs(sum(t.profit_loss for t in losses))
    profit_factor = gross_profit / gross_loss if gross_loss > 0 else (999.0 if gross_profit > 0 else 0.0)

    return AggregateMetrics(
        total_trades=total,
        winning_trades=len(wins),
        losing_trades=len(losses),
        break_even_trades=total - len(wins) - len(losses),
        win_rate=win_rate,
        total_profit_loss=round(total_pnl, 2),
        total_pips=round(total_pips, 2),
        total_reward=round(total_reward, 2),
        max_consecutive_losses=max_losses,
        max_consecutive_wins=max_wins,
        violations_count=len(in_scope),
        violated_trades_count=len({v.trade_id for v in in_scope}),
        largest_win=round(max((t.profit_loss for t in wins), default=0.0), 2),
        largest_loss=round(min((t.profit_loss for t in losses), default=0.0), 2),
        average_win=round(gross_profit / len(wins), 2) if wins else 0.0,
        average_loss=round(-gross_loss / len(losses), 2) if losses else 0.0,
        profit_factor=round(profit_factor, 2),
        average_risk_ratio=round(sum(t.risk_ratio for t in trades) / total, 2),
    )


def filter_trades(
    trades: list[Trade],
    start_date: str | None = None,
    end_date: str | None = None,
    year: int | None = None,
    month: int | None = None,
    pair: str | None = None,
) -> list[Trade]:
    """Trades inside an inclusive ISO date range and/or calendar year/month."""
    out = []
    for t in trades:
        if start_date and t.date < start_date:
            continue
        if end_date and t.date > end_date:
            continue
        d = date.fromisoformat(t.date)
        if year is not None and d.year != year:
            continue
        if month is not None and d.month != month:
            continue
        if pair and t.pair != pair:
            continue
        out.append(t)
    return out


_GROUP_KEYS = {
    "pair": lambda t: t.pair or "Unknown",
    "day": lambda t: t.day or "Unknown",
    "month": lambda t: t.date[:7],
    "date": lambda t: t.date,
}


def breakdown(trades: list[Trade], by: str = "pair") -> list[GroupMetrics]:
    """Per-group totals. Pairs are ranked by profit/loss, other groupings by key."""
    if by not in _GROUP_KEYS:
        raise ValueError(f"Unknown grouping: {by}")
    key_fn = _GROUP_KEYS[by]

    groups: dict[str, list[Trade]] = defaultdict(list)
    for t in trades:
        groups[key_fn(t)].append(t)

    result = []
    for key, members in groups.items():
        wins = sum(1 for t in members if t.profit_loss > 0)
        result.append(GroupMetrics(
            key=key,
            trades=len(members),
            wins=wins,
            losses=sum(1 for t in members if t.profit_loss < 0),
            win_rate=round(wins / len(members) * 100, 1),
            profit_loss=round(sum(t.profit_loss for t in members), 2),
            pips=round(sum(leading_number(t.true_pips) for t in members), 2),
        ))

    if by == "pair":
        result.sort(key=lambda g: (-g.profit_loss, g.key))
    else:
        result.sort(key=lambda g: g.key)
    return result


def format_money(amount: float, currency_symbol: str = "$") -> str:
    sign = "-" if amount < 0 else ""
    return f"{sign}{currency_symbol}{abs(amount):,.2f}"


def summarize(metrics: AggregateMetrics, period_label: str, currency_symbol: str = "$") -> str:
    if metrics.total_trades == 0:
        return f"No trades were recorded during {period_label}."
    outcome = "profit" if metrics.total_profit_loss >= 0 else "loss"
    text = (
        f"During {period_label}, {metrics.total_trades} trades were executed with a win rate "
        f"of {metrics.win_rate}%, resulting in a total {outcome} of "
        f"{format_money(abs(metrics.total_profit_loss), currency_symbol)} and "
        f"{metrics.total_pips:.1f} pips."
    )
    if metrics.max_consecutive_losses:
        text += f" The longest losing streak was {metrics.max_consecutive_losses} trades."
    if metrics.violations_count:
        text += (
            f" {metrics.violated_trades_count} trades broke a trading rule "
            f"({metrics.violations_count} violations)."
        )
    return text
