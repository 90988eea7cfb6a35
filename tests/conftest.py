from __future__ import annotations

from typing import Callable, List, Sequence

import pytest

from budgetsheet.config import ParserConfig


@pytest.fixture
def parser_config() -> ParserConfig:
    return ParserConfig()


@pytest.fixture
def simple_grid() -> List[list]:
    return [
        ["Item", "Labor", "Material", "Sub"],
        ["Demo", 15000, 6000, 0],
        ["Framing", 0, 10000, 27000],
        ["Total Cost", 58000, "-", "-"],
    ]


@pytest.fixture
def budget_grid() -> List[list]:
    """A sheet laid out like a real job budget: title rows, vendor and markup columns, trailing sections."""

    return [
        ["Smith Residence Remodel", None, None, None, None, None, None],
        ["Prepared 3/14", None, None, None, None, None, None],
        [],
        ["Description", "Subcontractor", "Labor", "Materials", "Sub", "Markup", "Total"],
        ["Demolition", "RCG", "$4,500.00", "$1,200.00", None, "25%", "$5,700.00"],
        ["Electrical rough-in", "Bright Electric", None, None, 8200, "25%", 8200],
        [None, None, None, None, None, None, None],
        ["Supervision", "RCG", 3000, None, None, "0%", 3000],
        ["Drywall", "Wall Pros", None, "", "$2,750.50", "25%", "2750.50"],
        ["Total", None, None, None, None, None, 19650.50],
        ["Expenses", None, None, None, None, None, None],
        ["Dumpster", None, None, 600, None, None, 600],
    ]


@pytest.fixture
def grid_factory() -> Callable[[Sequence[Sequence[object]]], List[list]]:
    header = ["Item", "Labor", "Material", "Sub"]

    def _create(rows: Sequence[Sequence[object]]) -> List[list]:
        return [list(header)] + [list(row) for row in rows]

    return _create
