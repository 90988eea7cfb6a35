import copy
from decimal import Decimal

import pytest

from budgetsheet import (
    Category,
    ColumnRole,
    GridTooLargeError,
    HeaderNotFoundError,
    ParserConfig,
    RequiredColumnsMissingError,
    StopReason,
    extract_budget_sheet,
)


def test_simple_sheet_scenario(simple_grid):
    result = extract_budget_sheet(simple_grid)

    assert [(item.description, item.cost, item.category) for item in result.items] == [
        ("Demo (Labor)", Decimal("15000"), Category.LABOR_INTERNAL),
        ("Demo (Materials)", Decimal("6000"), Category.MATERIALS),
        ("Framing (Materials)", Decimal("10000"), Category.MATERIALS),
        ("Framing (Subcontractor)", Decimal("27000"), Category.SUBCONTRACTOR),
    ]
    assert result.items[0].split_group_id == result.items[1].split_group_id
    assert result.items[2].split_group_id == result.items[3].split_group_id
    assert result.items[0].split_group_id != result.items[2].split_group_id
    assert result.compound_rows_split == 2
    assert result.header_row_index == 0
    assert result.region.end_row == 2
    assert result.region.stop_reason is StopReason.STOP_MARKER_MATCHED
    assert result.total_cost == Decimal("58000")
    assert result.total_price == Decimal("72500.00")
    assert not any("Totals row" in warning for warning in result.warnings)


def test_budget_sheet_end_to_end(budget_grid):
    result = extract_budget_sheet(budget_grid)

    assert result.header_row_index == 3
    assert len(result.items) == 5
    assert result.compound_rows_split == 1
    assert result.total_cost == Decimal("19650.50")
    assert result.total_price == Decimal("23813.13")
    assert "Row 10: skipped summary row 'Total'" in result.warnings
    assert all(item.description != "Dumpster" for item in result.items)


def test_typo_header_scenario():
    grid = [["Item", "Lbor", "Material"], ["Paint", 800, 200]]
    result = extract_budget_sheet(grid)
    assert [item.category for item in result.items] == [Category.LABOR_INTERNAL, Category.MATERIALS]


def test_management_override_scenario():
    grid = [
        ["Item", "Labor", "Material", "Sub"],
        ["Supervision (RCG) - 0% markup", None, None, 6500],
    ]
    (item,) = extract_budget_sheet(grid).items
    assert item.category is Category.MANAGEMENT
    assert item.price == item.cost


def test_pipeline_is_idempotent(budget_grid):
    first = extract_budget_sheet(budget_grid)
    second = extract_budget_sheet(budget_grid)
    assert first == second
    assert first.to_dict() == second.to_dict()


def test_pipeline_does_not_mutate_grid(budget_grid):
    before = copy.deepcopy(budget_grid)
    extract_budget_sheet(budget_grid)
    assert budget_grid == before


@pytest.mark.parametrize("fixture_name", ["simple_grid", "budget_grid"])
def test_totals_conserve_item_sums(fixture_name, request):
    result = extract_budget_sheet(request.getfixturevalue(fixture_name))
    assert result.total_cost == sum((item.cost for item in result.items), Decimal("0"))
    assert result.total_price == sum((item.price for item in result.items), Decimal("0"))
    assert all(item.cost >= 0 for item in result.items)


def test_missing_header_raises():
    with pytest.raises(HeaderNotFoundError):
        extract_budget_sheet([["hello", "world"], [1, 2]])


def test_missing_item_column_raises():
    grid = [["Labor", "Material", "Sub", "Total"], [1, 2, 3, 6]]
    with pytest.raises(RequiredColumnsMissingError) as excinfo:
        extract_budget_sheet(grid)
    columns = excinfo.value.mapping.columns
    assert columns.is_mapped(ColumnRole.LABOR_COST)
    assert not columns.is_mapped(ColumnRole.ITEM)


def test_grid_row_limit(simple_grid):
    with pytest.raises(GridTooLargeError):
        extract_budget_sheet(simple_grid, max_rows=3)
    assert extract_budget_sheet(simple_grid, max_rows=4).items


def test_low_confidence_warning():
    grid = [["Item", "Unit", "Qty", "Total"], ["Paint", "LS", 1, 100]]
    result = extract_budget_sheet(grid)
    assert result.items == ()
    assert any("Low column mapping confidence" in warning for warning in result.warnings)
    assert "No line items found below the header row" in result.warnings


def test_custom_config_flows_through(simple_grid):
    config = ParserConfig.from_dict({"markup_rates": {"labor_internal": 0.5}})
    result = extract_budget_sheet(simple_grid, config)
    assert result.items[0].price == Decimal("22500.00")


def test_sum_column_is_not_counted_as_a_cost():
    grid = [["Item", "Labor", "Material", "Sum"], ["Demo", 100, 50, 150]]
    result = extract_budget_sheet(grid)
    assert len(result.items) == 2
    assert result.total_cost == Decimal("150")


def test_configured_split_name_format(simple_grid):
    config = ParserConfig.from_dict({"split_name_format": "{name} — {qualifier}"})
    result = extract_budget_sheet(simple_grid, config)
    assert [item.description for item in result.items[:2]] == ["Demo — Labor", "Demo — Materials"]
    assert result.items[0].split_group_id == result.items[1].split_group_id
