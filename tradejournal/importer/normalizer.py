"""Record Normalizer — one raw spreadsheet row into a canonical Trade.

Cells arrive either as text (pasted rows) or as whatever a workbook reader
produced: numbers (serial dates, day fractions, amounts) or date/time
objects. Every field helper is total: it returns a canonical value or a
documented fallback and never raises for bad input.
"""

import re
from datetime import date, datetime, time, timedelta
from decimal import Decimal, InvalidOperation
from typing import Any

from loguru import logger
from pydantic import BaseModel, ValidationError

from tradejournal.config import settings
from tradejournal.models.trade import Trade

# Fixed column contract (0-indexed)
COLUMNS = (
    "date",
    "day",
    "entry_time",
    "pair",
    "action",
    "direction",
    "lots",
    "pip_stop_loss",
    "pip_take_profit",
    "risk_ratio",
    "order_type",
    "market_condition",
    "ma",
    "fib",
    "pivots",
    "gap",
    "banking_level",
    "confluences",
    "mindset",
    "profit_loss",
    "true_pips",
    "true_reward",
    "trade_link",
    "comments",
)
COLUMN_COUNT = len(COLUMNS)

# Workbook serial day of 1970-01-01
WORKBOOK_EPOCH_OFFSET = 25569
_UNIX_EPOCH = datetime(1970, 1, 1)

WEEKDAYS = ("Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday")

PAIR_SHORTHAND = {
    "GU": "GBP/USD",
    "EU": "EUR/USD",
    "UJ": "USD/JPY",
    "GJ": "GBP/JPY",
    "EJ": "EUR/JPY",
    "EG": "EUR/GBP",
    "AU": "AUD/USD",
    "NU": "NZD/USD",
    "UC": "USD/CAD",
    "UF": "USD/CHF",
    "XU": "XAU/USD",
}
CANONICAL_PAIRS = frozenset(PAIR_SHORTHAND.values())

_ISO_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")
_DMY_DATE_RE = re.compile(r"^(\d{1,2})/(\d{1,2})/(\d{2}|\d{4})$")
_CLOCK_RE = re.compile(r"^(\d{1,2}):(\d{2})(?::\d{2})?$")
_MERIDIEM_RE = re.compile(r"^(\d{1,2})(?:[:.](\d{2}))?\s*([ap])\.?m?\.?$", re.IGNORECASE)
_DOTTED_RE = re.compile(r"^(\d{1,2})\.(\d{2})$")
_AMOUNT_RE = re.compile(r"\d[\d,]*(?:\.\d+)?|\.\d+")
_THOUSANDS_RE = re.compile(r"^\d{1,3}(?:,\d{3})+(?:\.\d+)?$")
_PLAIN_NUMBER_RE = re.compile(r"^[-+]?(?:\d+(?:\.\d*)?|\.\d+)$")
_MINUS_CHARS = ("-", "−")


class RowFailure(BaseModel):
    line_no: int = 0
    line: str = ""
    reason: str


class RowResult(BaseModel):
    """Outcome of normalizing one row: a record or a failure, never both."""
    record: Trade | None = None
    failure: RowFailure | None = None

    @property
    def ok(self) -> bool:
        return self.record is not None


class RowRejected(ValueError):
    """A mandatory field could not be parsed."""


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, float):
        if value != value:  # NaN from pandas
            return ""
        return format_number(value)
    return str(value).strip()


def format_number(value: float | int | str) -> str:
    """Canonical text for a number: no exponent, no trailing zeros."""
    try:
        return format(Decimal(str(value)).normalize(), "f")
    except InvalidOperation:
        return str(value)


# ── Date & weekday ─────────────────────────────────────────────────

def serial_to_date(serial: float) -> date:
    """Workbook serial day number to a calendar date.

    The day is read off a naive wall-clock datetime, so no timezone offset
    can move it across midnight.
    """
    seconds = round((serial - WORKBOOK_EPOCH_OFFSET) * 86400)
    return (_UNIX_EPOCH + timedelta(seconds=seconds)).date()


def normalize_date(value: Any) -> str | None:
    """Return YYYY-MM-DD, or None if the value is not a recognisable date."""
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date().isoformat()
    if isinstance(value, date):
        return value.isoformat()
    if _is_number(value):
        if value != value:
            return None
        try:
            return serial_to_date(value).isoformat()
        except (OverflowError, ValueError):
            return None

    text = str(value).strip()
    if _ISO_DATE_RE.match(text):
        try:
            date.fromisoformat(text)
        except ValueError:
            return None
        return text

    m = _DMY_DATE_RE.match(text)
    if m:
        day, month, year = int(m.group(1)), int(m.group(2)), int(m.group(3))
        if year < 100:
            year += 2000
        try:
            return date(year, month, day).isoformat()
        except ValueError:
            return None
    return None


def normalize_day_of_week(value: Any, iso_date: str | None = None) -> str:
    """Full English weekday name.

    Numeric workbook dates yield the weekday of the converted date; blank
    cells fall back to the weekday of ``iso_date``.
    """
    if _is_number(value) and value == value:
        try:
            return WEEKDAYS[serial_to_date(value).weekday()]
        except (OverflowError, ValueError):
            return ""
    if isinstance(value, (date, datetime)):
        return WEEKDAYS[value.weekday()]

    text = _text(value)
    if text:
        lowered = text.lower()
        if len(lowered) >= 2:
            for name in WEEKDAYS:
                full = name.lower()
                if full.startswith(lowered) or lowered.startswith(full[:3]):
                    return name
        return text
    if iso_date:
        return WEEKDAYS[date.fromisoformat(iso_date).weekday()]
    return ""


# ── Time ───────────────────────────────────────────────────────────

def _clock(hours: int, minutes: int) -> str:
    if not (0 <= hours < 24 and 0 <= minutes < 60):
        return ""
    return f"{hours:02d}:{minutes:02d}"


def normalize_time(value: Any) -> str:
    """Return HH:MM (24-hour) or "" when the value cannot be read as a time."""
    if value is None:
        return ""
    if isinstance(value, (datetime, time)):
        return _clock(value.hour, value.minute)
    if _is_number(value):
        if value != value or value < 0:
            return ""
        total = round((value % 1) * 1440)
        return _clock((total // 60) % 24, total % 60)

    text = str(value).strip()
    if not text:
        return ""

    m = _CLOCK_RE.match(text)
    if m:
        return _clock(int(m.group(1)), int(m.group(2)))

    m = _MERIDIEM_RE.match(text)
    if m:
        hours = int(m.group(1))
        minutes = int(m.group(2) or 0)
        if not 1 <= hours <= 12:
            return ""
        if m.group(3).lower() == "p":
            if hours != 12:
                hours += 12
        elif hours == 12:
            hours = 0
        return _clock(hours, minutes)

    m = _DOTTED_RE.match(text)
    if m:
        return _clock(int(m.group(1)), int(m.group(2)))
    return ""


# ── Symbols & sides ────────────────────────────────────────────────

def normalize_pair(value: Any) -> str:
    text = _text(value)
    code = text.upper().replace(" ", "")
    if code in PAIR_SHORTHAND:
        return PAIR_SHORTHAND[code]
    if len(code) == 6 and code.isalpha():
        slashed = f"{code[:3]}/{code[3:]}"
        if slashed in CANONICAL_PAIRS:
            return slashed
    if code in CANONICAL_PAIRS:
        return code
    return text


def normalize_action(value: Any) -> str:
    text = _text(value).lower()
    if "sell" in text or "short" in text:
        return "Sell"
    return "Buy"


def normalize_direction(value: Any) -> str:
    text = _text(value).lower()
    if "bear" in text:
        return "Bearish"
    if "bull" in text:
        return "Bullish"
    return ""


# ── Numbers ────────────────────────────────────────────────────────

def parse_amount(value: Any) -> float | None:
    """Signed amount from currency-formatted text.

    The magnitude comes from the digits; the sign is negative when a minus
    appears anywhere ("-$50", "$-50", "£-12") or the amount is in
    parentheses. Returns None when there are no digits at all, or when a
    comma is not a thousands separator ("1,5").
    """
    if _is_number(value):
        return None if value != value else float(value)
    text = _text(value)
    if not text:
        return None
    m = _AMOUNT_RE.search(text)
    if not m:
        return None
    digits = m.group(0).rstrip(",")
    if "," in digits:
        if not _THOUSANDS_RE.match(digits):
            return None
        digits = digits.replace(",", "")
    amount = float(digits)
    negative = any(c in text for c in _MINUS_CHARS) or (
        text.startswith("(") and text.endswith(")")
    )
    return -amount if negative else amount


def parse_pips(value: Any) -> int:
    amount = parse_amount(value)
    return int(round(amount)) if amount is not None else 0


def plain_number(value: Any) -> str:
    """Copy a value through only if it is a plain number; else ""."""
    if _is_number(value):
        return "" if value != value else format_number(value)
    text = _text(value)
    return text if _PLAIN_NUMBER_RE.match(text) else ""


def leading_number(value: Any) -> float:
    """Numeric prefix of a text field, 0 when there is none."""
    if _is_number(value):
        return 0.0 if value != value else float(value)
    m = re.match(r"^\s*([-+]?(?:\d+(?:\.\d*)?|\.\d+))", _text(value))
    return float(m.group(1)) if m else 0.0


# ── Row ────────────────────────────────────────────────────────────

def fit_row(cells: list[Any]) -> list[Any]:
    """Truncate or pad a row to the fixed column contract."""
    row = list(cells[:COLUMN_COUNT])
    row.extend([""] * (COLUMN_COUNT - len(row)))
    return row


def populated_count(cells: list[Any]) -> int:
    return sum(1 for c in cells if _text(c) != "")


def build_record(cells: list[Any]) -> Trade:
    """Map a fitted row to a Trade. Raises RowRejected on a bad mandatory field."""
    raw = dict(zip(COLUMNS, fit_row(cells)))

    iso_date = normalize_date(raw["date"])
    if iso_date is None:
        raise RowRejected(f"unrecognised date {_text(raw['date'])!r}")

    pair = normalize_pair(raw["pair"])
    if not pair:
        raise RowRejected("missing pair")

    lots = parse_amount(raw["lots"])
    if lots is None or lots <= 0:
        raise RowRejected(f"invalid lot size {_text(raw['lots'])!r}")

    if _text(raw["profit_loss"]):
        profit_loss = parse_amount(raw["profit_loss"])
        if profit_loss is None:
            raise RowRejected(f"unparseable profit/loss {_text(raw['profit_loss'])!r}")
    else:
        profit_loss = 0.0

    stop_loss = parse_pips(raw["pip_stop_loss"])
    take_profit = parse_pips(raw["pip_take_profit"])
    risk_ratio = parse_amount(raw["risk_ratio"])
    if risk_ratio is None:
        risk_ratio = round(take_profit / stop_loss, 2) if stop_loss > 0 else 0.0

    return Trade(
        date=iso_date,
        day=normalize_day_of_week(raw["day"], iso_date),
        entry_time=normalize_time(raw["entry_time"]),
        pair=pair,
        action=normalize_action(raw["action"]),
        direction=normalize_direction(raw["direction"]),
        lots=lots,
        pip_stop_loss=stop_loss,
        pip_take_profit=take_profit,
        risk_ratio=risk_ratio,
        order_type=_text(raw["order_type"]),
        market_condition=_text(raw["market_condition"]),
        ma=_text(raw["ma"]),
        fib=_text(raw["fib"]),
        pivots=_text(raw["pivots"]),
        gap=_text(raw["gap"]),
        banking_level=_text(raw["banking_level"]),
        confluences=_text(raw["confluences"]),
        mindset=_text(raw["mindset"]),
        profit_loss=profit_loss,
        true_pips=plain_number(raw["true_pips"]),
        true_reward=plain_number(raw["true_reward"]),
        trade_link=_text(raw["trade_link"]),
        comments=_text(raw["comments"]),
    )


def normalize_row(cells: list[Any], line: str = "", line_no: int = 0) -> RowResult:
    """Normalize one row, returning a record or a failure that keeps the line."""
    try:
        line = line or "\t".join(_text(c) for c in cells)
        row = fit_row(cells)

        if populated_count(row) < settings.min_populated_columns:
            return RowResult(failure=RowFailure(
                line_no=line_no, line=line,
                reason=f"row has fewer than {settings.min_populated_columns} populated columns",
            ))

        return RowResult(record=build_record(row))
    except RowRejected as e:
        reason = str(e)
    except ValidationError as e:
        reason = "; ".join(err["msg"] for err in e.errors())
    except Exception as e:
        logger.warning(f"Row {line_no} could not be read: {e!r}")
        reason = f"unreadable row: {e!r}"
    logger.debug(f"Row {line_no} rejected: {reason}")
    return RowResult(failure=RowFailure(line_no=line_no, line=line, reason=reason))
