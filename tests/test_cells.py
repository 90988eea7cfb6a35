from decimal import Decimal

import pytest

from budgetsheet.cells import (
    cell_at,
    cell_text,
    contains_phrase,
    looks_like_currency,
    normalize_text,
    parse_amount,
    parse_percent,
    parse_quantity,
)


def test_cell_at_tolerates_ragged_rows():
    grid = [["a", "b", "c"], ["d"], []]
    assert cell_at(grid, 0, 2) == "c"
    assert cell_at(grid, 1, 2) is None
    assert cell_at(grid, 2, 0) is None
    assert cell_at(grid, 5, 0) is None
    assert cell_at(grid, 0, None) is None


def test_cell_text_renders_integral_floats_without_decimal_point():
    assert cell_text(1500.0) == "1500"
    assert cell_text(12.5) == "12.5"
    assert cell_text(float("nan")) == ""
    assert cell_text("  Demo  ") == "Demo"


def test_normalize_text_strips_punctuation_and_case():
    assert normalize_text("  Labor-Cost ($) ") == "labor cost"
    assert normalize_text("U/M") == "u m"
    assert normalize_text(None) == ""


def test_contains_phrase_respects_word_boundaries():
    assert contains_phrase("supervision rcg", "rcg")
    assert not contains_phrase("subtotals", "total")
    assert contains_phrase("grand total", "total")


@pytest.mark.parametrize(
    "value, expected",
    [
        (None, Decimal("0")),
        ("", Decimal("0")),
        ("-", Decimal("0")),
        ("$ -", Decimal("0")),
        ("$1,234.50", Decimal("1234.50")),
        ("(500)", Decimal("-500")),
        ("250-", Decimal("-250")),
        (15000, Decimal("15000")),
        (0.1, Decimal("0.1")),
        ("n/a", None),
    ],
)
def test_parse_amount(value, expected):
    assert parse_amount(value) == expected


def test_parse_amount_keeps_float_cells_exact():
    assert parse_amount(0.1) + parse_amount(0.2) == Decimal("0.3")


def test_parse_percent_handles_signs_and_whole_numbers():
    assert parse_percent("25%") == Decimal("0.25")
    assert parse_percent(25) == Decimal("0.25")
    assert parse_percent(0.25) == Decimal("0.25")
    assert parse_percent("0%") == Decimal("0")
    assert parse_percent("-") is None
    assert parse_percent(None) is None
    assert parse_percent("lots") is None


def test_parse_quantity_requires_positive_numbers():
    assert parse_quantity("12") == Decimal("12")
    assert parse_quantity(0) is None
    assert parse_quantity("-3") is None
    assert parse_quantity(None) is None


def test_looks_like_currency():
    assert looks_like_currency(1200)
    assert looks_like_currency("$1,200.00")
    assert looks_like_currency("($500)")
    assert not looks_like_currency("Labor")
    assert not looks_like_currency("1200")
    assert not looks_like_currency(None)

