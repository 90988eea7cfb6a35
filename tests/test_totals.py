from decimal import Decimal

from budgetsheet.columns import map_columns
from budgetsheet.config import ParserConfig
from budgetsheet.extractor import extract_line_items
from budgetsheet.region import detect_table_region
from budgetsheet.totals import validate_totals


def _check(grid, config=None, header_row_index=0):
    cfg = config or ParserConfig()
    columns = map_columns(grid, header_row_index, cfg).columns
    region = detect_table_region(grid, header_row_index, columns, cfg)
    items = extract_line_items(grid, columns, region, cfg).items
    return items, validate_totals(items, grid, columns, region, cfg)


def test_matching_totals_row_has_no_warning(simple_grid):
    items, check = _check(simple_grid)
    assert check.total_cost == Decimal("58000")
    assert check.totals_row_index == 3
    assert check.reported_total == Decimal("58000")
    assert check.warnings == ()


def test_total_column_preferred_over_component_sum(budget_grid):
    _, check = _check(budget_grid, header_row_index=3)
    assert check.totals_row_index == 9
    assert check.reported_total == Decimal("19650.5")
    assert check.total_cost == Decimal("19650.50")
    assert check.warnings == ()


def test_mismatch_produces_warning(grid_factory):
    grid = grid_factory([["Demo", 100, 50], ["Total Cost", 200]])
    items, check = _check(grid)
    assert check.total_cost == Decimal("150")
    assert check.warnings == (
        "Totals row 3 reports 200.00 but extracted line items sum to 150.00 (difference 50.00)",
    )


def test_difference_within_tolerance_is_accepted(grid_factory):
    grid = grid_factory([["Demo", 100.40], ["Total Cost", 101]])
    _, check = _check(grid)
    assert check.warnings == ()


def test_no_totals_row_still_sums(grid_factory):
    items, check = _check(grid_factory([["Demo", 100, 50], ["Paint", None, 25.5]]))
    assert check.totals_row_index is None
    assert check.total_cost == sum(item.cost for item in items) == Decimal("175.5")
    assert check.total_price == sum(item.price for item in items)
