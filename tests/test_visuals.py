from __future__ import annotations

from pathlib import Path

from budgetsheet import extract_budget_sheet
from budgetsheet.visuals import write_category_chart


def test_category_chart_written_as_png(budget_grid, tmp_path: Path):
    result = extract_budget_sheet(budget_grid)
    path = write_category_chart(result, tmp_path / "charts" / "categories.png")
    assert path is not None
    assert path.read_bytes()[:8] == b"\x89PNG\r\n\x1a\n"


def test_no_chart_for_empty_result(tmp_path: Path):
    grid = [["Item", "Labor", "Material"], ["Total Cost", 0, 0]]
    result = extract_budget_sheet(grid)
    assert write_category_chart(result, tmp_path / "empty.png") is None
    assert not (tmp_path / "empty.png").exists()
