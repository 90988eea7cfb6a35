"""Cell level helpers shared by the pipeline stages.

Grids arrive ragged and loosely typed: a cell may be ``None``, text, or a
number. Everything here is tolerant of that and never raises on bad data;
callers decide whether an unparseable value deserves a warning.
"""
from __future__ import annotations

import math
import re
from decimal import Decimal, InvalidOperation
from typing import Iterable, Optional

from .models import Cell, Grid

_PUNCTUATION = re.compile(r"[^0-9a-z]+")
_CURRENCY_TEXT = re.compile(r"^\(?\s*-?\s*\$\s*-?\s*(?:\d{1,3}(?:,\d{3})+|\d+)?(?:\.\d+)?\s*\)?$")
_PLACEHOLDERS = {"", "-", "--", "–", "—", "$", "$-", "$ -"}


def cell_at(grid: Grid, row_index: int, col_index: Optional[int]) -> Cell:
    """Return the cell at ``(row_index, col_index)`` or ``None`` when out of range."""

    if col_index is None or row_index < 0 or row_index >= len(grid):
        return None
    row = grid[row_index]
    if col_index < 0 or col_index >= len(row):
        return None
    return row[col_index]


def cell_text(value: Cell) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return str(value)
    if isinstance(value, float):
        if math.isnan(value):
            return ""
        if value.is_integer():
            return str(int(value))
        return repr(value)
    return str(value).strip()


def is_blank(value: Cell) -> bool:
    return cell_text(value) == ""


def normalize_text(value: Cell) -> str:
    """Lowercase, turn punctuation into spaces and collapse whitespace."""

    text = cell_text(value).lower()
    return " ".join(_PUNCTUATION.sub(" ", text).split())


def contains_phrase(text: str, phrase: str) -> bool:
    """True when normalized ``phrase`` occurs in normalized ``text`` on word boundaries."""

    if not phrase:
        return False
    return f" {phrase} " in f" {text} "


def contains_any_phrase(text: str, phrases: Iterable[str]) -> Optional[str]:
    for phrase in phrases:
        if contains_phrase(text, phrase):
            return phrase
    return None


def is_number(value: Cell) -> bool:
    if isinstance(value, bool):
        return False
    if isinstance(value, float):
        return not math.isnan(value)
    return isinstance(value, (int, Decimal))


def looks_like_currency(value: Cell) -> bool:
    """True for numeric cells and text such as ``$1,200.00`` or ``($500)``."""

    if is_number(value):
        return True
    if not isinstance(value, str):
        return False
    text = value.strip()
    if not text or "$" not in text or not any(ch.isdigit() for ch in text):
        return False
    return bool(_CURRENCY_TEXT.match(text))


def parse_amount(value: Cell) -> Optional[Decimal]:
    """Parse a money cell exactly.

    Blank cells and dash placeholders parse as zero. Parenthesised amounts
    are negative. Returns ``None`` when the cell holds text that is not a
    number.
    """

    if value is None:
        return Decimal("0")
    if isinstance(value, bool):
        return None
    if isinstance(value, Decimal):
        return value if value.is_finite() else None
    if isinstance(value, int):
        return Decimal(value)
    if isinstance(value, float):
        if math.isnan(value):
            return Decimal("0")
        if math.isinf(value):
            return None
        return Decimal(repr(value))

    text = str(value).strip()
    if text in _PLACEHOLDERS:
        return Decimal("0")
    negative = text.startswith("(") and text.endswith(")")
    cleaned = re.sub(r"[$,\s()]", "", text)
    if cleaned.endswith("-") and cleaned.count("-") == 1:
        negative = True
        cleaned = cleaned[:-1]
    if cleaned in _PLACEHOLDERS:
        return Decimal("0")
    try:
        amount = Decimal(cleaned)
    except InvalidOperation:
        return None
    if not amount.is_finite():
        return None
    return -abs(amount) if negative else amount


def parse_percent(value: Cell) -> Optional[Decimal]:
    """Parse a markup cell into a fraction (``25%`` and ``25`` both give 0.25)."""

    if value is None:
        return None
    has_sign = isinstance(value, str) and "%" in value
    amount = parse_amount(value.replace("%", "") if isinstance(value, str) else value)
    if amount is None or cell_text(value).replace("%", "").strip() in _PLACEHOLDERS:
        return None
    if has_sign or abs(amount) > 1:
        return amount / Decimal(100)
    return amount


def parse_quantity(value: Cell) -> Optional[Decimal]:
    if is_blank(value):
        return None
    amount = parse_amount(value)
    if amount is None or amount <= 0:
        return None
    return amount


def row_has_content(grid: Grid, row_index: int, col_indices: Iterable[int]) -> bool:
    return any(not is_blank(cell_at(grid, row_index, col)) for col in col_indices)


__all__ = [
    "cell_at",
    "cell_text",
    "contains_any_phrase",
    "contains_phrase",
    "is_blank",
    "is_number",
    "looks_like_currency",
    "normalize_text",
    "parse_amount",
    "parse_percent",
    "parse_quantity",
    "row_has_content",
]
