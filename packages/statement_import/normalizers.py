"""Date and amount normalization for raw statement cells.

Dates
-----
- Numbers are spreadsheet serial day counts anchored at 1899-12-30 (serial
  25569 is 1970-01-01). Fractions (time of day) are dropped.
- ``date``/``datetime`` objects (spreadsheet cells with date formatting) are
  used directly; timezone-aware values are converted to UTC first.
- Strings are parsed with :mod:`dateutil`: ISO-8601 first, then the generic
  parser, where ``dayfirst`` decides ambiguous ``NN/NN/YYYY`` forms.

Amounts
-------
Currency markers (``Rs.``, ``INR``, ``$``, ``₹``, ...), thousands separators
and whitespace are stripped. Sign may come from a leading ``+``/``-``,
surrounding parentheses, a trailing ``-`` or a trailing ``CR``/``DR`` marker.
The stored value is always the absolute magnitude with exactly two decimals;
the sign only feeds direction inference.
"""

from __future__ import annotations

import math
import re
from collections.abc import Sequence
from datetime import UTC, date, datetime, timedelta
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any

from dateutil import parser as date_parser

from .logging_setup import get_logger
from .models import Direction

_logger = get_logger("statement_import.normalizers")

SPREADSHEET_EPOCH = date(1899, 12, 30)
_CENTS = Decimal("0.01")

_CURRENCY = r"(?:rs\.?|inr|usd|eur|gbp|[$₹€£¥])"
_CURRENCY_PREFIX_RE = re.compile(rf"^{_CURRENCY}\s*", re.IGNORECASE)
_SUFFIX_RE = re.compile(rf"\s*(?P<tok>{_CURRENCY}|cr|dr)\.?$", re.IGNORECASE)


# ---------------------------------------------------------------------------
# Dates
# ---------------------------------------------------------------------------


def serial_to_date(serial: float | int | Decimal) -> date:
    """Convert a spreadsheet serial day number to a calendar date."""

    return SPREADSHEET_EPOCH + timedelta(days=math.floor(serial))


def parse_date(value: Any, *, dayfirst: bool = True) -> date:
    """Parse a raw date cell. Raises ``ValueError`` when it is not a date."""

    if isinstance(value, bool) or value is None:
        raise ValueError(f"invalid date: {value!r}")
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            value = value.astimezone(UTC)
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, int | float | Decimal):
        try:
            return serial_to_date(value)
        except (ValueError, OverflowError) as exc:
            raise ValueError(f"invalid spreadsheet date serial: {value!r}") from exc

    s = str(value).strip()
    if not s:
        raise ValueError("date is empty")
    try:
        # ISO strings are year-month-day whatever dayfirst says.
        parsed = date_parser.isoparse(s)
    except (ValueError, OverflowError):
        try:
            parsed = date_parser.parse(s, dayfirst=dayfirst)
        except (date_parser.ParserError, ValueError, OverflowError) as exc:
            raise ValueError(f"invalid date: {value!r}") from exc
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(UTC)
    return parsed.date()


def normalize_date(value: Any, *, dayfirst: bool = True, fallback: date | None = None) -> str:
    """Return ``YYYY-MM-DD`` for ``value``.

    When parsing fails and ``fallback`` is given, the fallback date is used
    (and a warning logged); otherwise the ``ValueError`` propagates.
    """

    try:
        return parse_date(value, dayfirst=dayfirst).isoformat()
    except ValueError:
        if fallback is None:
            raise
        _logger.warning("Unparseable date %r; substituting %s", value, fallback.isoformat())
        return fallback.isoformat()


# ---------------------------------------------------------------------------
# Amounts
# ---------------------------------------------------------------------------


def parse_amount(raw: Any) -> Decimal:
    """Parse a raw amount cell into a signed ``Decimal``.

    Raises ``ValueError`` for missing, empty, non-numeric or non-finite input.
    """

    if raw is None or isinstance(raw, bool):
        raise ValueError("amount is required")
    if isinstance(raw, Decimal | int | float):
        if isinstance(raw, float) and not math.isfinite(raw):
            raise ValueError(f"invalid amount: {raw!r}")
        # str() keeps floats at their shortest repr instead of binary expansion
        d = Decimal(str(raw)) if isinstance(raw, float) else Decimal(raw)
        if not d.is_finite():
            raise ValueError(f"invalid amount: {raw!r}")
        return d

    s = str(raw).strip()
    if not s:
        raise ValueError("amount is empty")

    negative = False
    while True:
        changed = False
        if s.startswith("+"):
            s = s[1:].lstrip()
            changed = True
        elif s.startswith("-"):
            negative = True
            s = s[1:].lstrip()
            changed = True
        m = _CURRENCY_PREFIX_RE.match(s)
        if m:
            s = s[m.end() :]
            changed = True
        if s.startswith("(") and s.endswith(")") and len(s) >= 2:
            negative = True
            s = s[1:-1].strip()
            changed = True
        if len(s) > 1 and s.endswith("-"):
            negative = True
            s = s[:-1].rstrip()
            changed = True
        m = _SUFFIX_RE.search(s)
        if m and m.start() > 0:
            if m.group("tok").lower() == "dr":
                negative = True
            s = s[: m.start()]
            changed = True
        if not changed:
            break

    s = re.sub(r"[,\s]", "", s)
    try:
        d = Decimal(s)
    except InvalidOperation as exc:
        raise ValueError(f"invalid amount: {raw!r}") from exc
    if not d.is_finite():
        raise ValueError(f"invalid amount: {raw!r}")
    return -abs(d) if negative else d


def to_magnitude(amount: Decimal) -> Decimal:
    """Absolute value fixed to two decimal places (half-up)."""

    try:
        return abs(amount).quantize(_CENTS, rounding=ROUND_HALF_UP)
    except InvalidOperation as exc:
        raise ValueError(f"amount out of range: {amount!r}") from exc


def infer_direction(
    amount: Decimal,
    type_value: Any = None,
    *,
    income_markers: Sequence[str] = ("credit", "cr", "income", "deposit"),
    expense_markers: Sequence[str] = ("debit", "dr", "expense", "withdrawal"),
    amount_column: Any = None,
) -> Direction:
    """Infer Income/Expense from the type column, then from the amount sign.

    The type column is matched case-insensitively by substring, income markers
    first. A blank or unmarked type falls back to the header of the amount
    column (``Debit``, ``Withdrawal``, ``Credit``, ``Deposit``) matched the
    same way. Without a usable marker, positive amounts are Income and zero
    or negative amounts are Expense.
    """

    for hint in (type_value, amount_column):
        if hint is None:
            continue
        t = str(hint).strip().lower()
        if not t:
            continue
        if any(m in t for m in income_markers):
            return Direction.INCOME
        if any(m in t for m in expense_markers):
            return Direction.EXPENSE
    return Direction.INCOME if amount > 0 else Direction.EXPENSE


def today_utc() -> date:
    return datetime.now(UTC).date()


__all__ = [
    "SPREADSHEET_EPOCH",
    "serial_to_date",
    "parse_date",
    "normalize_date",
    "parse_amount",
    "to_magnitude",
    "infer_direction",
    "today_utc",
]
