from budgetsheet.config import ParserConfig
from budgetsheet.header import find_header_row, score_row


def test_header_on_first_row(simple_grid, parser_config):
    header = find_header_row(simple_grid, parser_config)
    assert header is not None
    assert header.row_index == 0
    assert header.score == 5 + 3 * 3


def test_header_below_title_rows(budget_grid, parser_config):
    header = find_header_row(budget_grid, parser_config)
    assert header is not None
    assert header.row_index == 3
    assert "item" in header.matched_roles


def test_currency_cells_penalize_data_rows(parser_config):
    scored = score_row(["Labor", "$1,200.00", 3400, "Material"], parser_config)
    assert scored.score == 3 + 3 - 2 - 2


def test_item_bonus_counted_once_per_row(parser_config):
    scored = score_row(["Item", "Description", "Labor"], parser_config)
    assert scored.score == 5 + 3


def test_ties_go_to_earliest_row(parser_config):
    grid = [
        ["Item", "Labor", "Material"],
        ["Item", "Labor", "Material"],
    ]
    assert find_header_row(grid, parser_config).row_index == 0


def test_no_header_returns_none(parser_config):
    grid = [["Notes", "Call Bob"], [1200, 3400], ["Labor", None]]
    assert find_header_row(grid, parser_config) is None


def test_scan_limited_to_configured_rows():
    grid = [["filler"]] * 5 + [["Item", "Labor", "Material"]]
    assert find_header_row(grid, ParserConfig(header_scan_rows=5)) is None
    assert find_header_row(grid, ParserConfig(header_scan_rows=6)).row_index == 5
