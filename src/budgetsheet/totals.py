from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Iterable, List, Optional, Sequence, Tuple

from .cells import cell_at, contains_any_phrase, is_blank, normalize_text, parse_amount
from .config import ParserConfig
from .extractor import COMPONENT_ORDER
from .models import BudgetColumns, ColumnRole, ExtractedLineItem, Grid, TableRegion

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class TotalsCheck:
    total_cost: Decimal
    total_price: Decimal
    warnings: Tuple[str, ...] = ()
    totals_row_index: Optional[int] = None
    reported_total: Optional[Decimal] = None


def sum_costs(items: Iterable[ExtractedLineItem]) -> Decimal:
    return sum((item.cost for item in items), Decimal("0"))


def sum_prices(items: Iterable[ExtractedLineItem]) -> Decimal:
    return sum((item.price for item in items), Decimal("0"))


def _candidate_rows(grid: Grid, region: TableRegion) -> List[int]:
    rows: List[int] = []
    for row_index in (region.stop_row_index, region.end_row, region.end_row + 1):
        if row_index is None or row_index in rows:
            continue
        if region.start_row <= row_index < len(grid):
            rows.append(row_index)
    return rows


def reported_total(grid: Grid, row_index: int, columns: BudgetColumns) -> Optional[Decimal]:
    """Total cost stated on a totals row.

    Uses the total cost column when it holds a number; otherwise the sum of
    the row's cost component cells.
    """

    total_col = columns.get(ColumnRole.TOTAL_COST)
    total_cell = cell_at(grid, row_index, total_col)
    if total_col is not None and not is_blank(total_cell):
        amount = parse_amount(total_cell)
        if amount is not None:
            return amount

    found = False
    total = Decimal("0")
    for component in COMPONENT_ORDER:
        cell = cell_at(grid, row_index, columns.get(component.role))
        if is_blank(cell):
            continue
        amount = parse_amount(cell)
        if amount is None:
            continue
        found = found or amount != 0
        total += amount
    return total if found else None


def find_totals_row(
    grid: Grid,
    columns: BudgetColumns,
    region: TableRegion,
    config: ParserConfig,
) -> Optional[Tuple[int, Decimal]]:
    for row_index in _candidate_rows(grid, region):
        text = normalize_text(cell_at(grid, row_index, columns.item))
        if not text or contains_any_phrase(text, config.total_markers) is None:
            continue
        amount = reported_total(grid, row_index, columns)
        if amount is not None:
            return row_index, amount
    return None


def validate_totals(
    items: Sequence[ExtractedLineItem],
    grid: Grid,
    columns: BudgetColumns,
    region: TableRegion,
    config: ParserConfig | None = None,
) -> TotalsCheck:
    """Sum the extracted items and cross-check against a totals row if present.

    A mismatch only produces a warning; it never blocks the result.
    """

    cfg = config or ParserConfig()
    total_cost = sum_costs(items)
    total_price = sum_prices(items)

    found = find_totals_row(grid, columns, region, cfg)
    if found is None:
        return TotalsCheck(total_cost=total_cost, total_price=total_price)

    row_index, stated = found
    warnings: List[str] = []
    difference = abs(stated - total_cost)
    if difference > cfg.totals_tolerance:
        warnings.append(
            f"Totals row {row_index + 1} reports {stated:,.2f} but extracted line items "
            f"sum to {total_cost:,.2f} (difference {difference:,.2f})"
        )
        LOGGER.debug("Totals mismatch on row %d: %s vs %s", row_index, stated, total_cost)
    return TotalsCheck(
        total_cost=total_cost,
        total_price=total_price,
        warnings=tuple(warnings),
        totals_row_index=row_index,
        reported_total=stated,
    )


__all__ = ["TotalsCheck", "find_totals_row", "reported_total", "sum_costs", "sum_prices", "validate_totals"]
