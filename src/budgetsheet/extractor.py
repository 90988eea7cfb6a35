"""Turn table rows into estimate line items.

Each source row expands into zero, one or several immutable items. A row
with more than one positive cost component (a "compound row") is split
into one item per component, all tagged with the same split group id so
they can be traced back to the row they came from.
"""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import List, Optional, Tuple

from .cells import (
    cell_at,
    cell_text,
    contains_any_phrase,
    contains_phrase,
    is_blank,
    normalize_text,
    parse_amount,
    parse_percent,
    parse_quantity,
    row_has_content,
)
from .columns import ROLE_LABELS
from .config import ParserConfig
from .models import (
    BudgetColumns,
    Category,
    ColumnRole,
    CostComponent,
    ExtractedLineItem,
    Grid,
    TableRegion,
)

LOGGER = logging.getLogger(__name__)

CENTS = Decimal("0.01")
COMPONENT_ORDER: Tuple[CostComponent, ...] = (
    CostComponent.LABOR,
    CostComponent.MATERIAL,
    CostComponent.SUBCONTRACTOR,
    CostComponent.EQUIPMENT,
)
ZERO_PERCENT_PATTERN = re.compile(r"(?<![\d.])0+(?:\.0+)?\s*%")


@dataclass(frozen=True)
class LineItemExtraction:
    items: Tuple[ExtractedLineItem, ...]
    warnings: Tuple[str, ...]
    compound_rows_split: int
    rows_scanned: int


def compute_price(cost: Decimal, markup_rate: Decimal) -> Decimal:
    if markup_rate == 0:
        return cost
    return (cost * (Decimal("1") + markup_rate)).quantize(CENTS, rounding=ROUND_HALF_UP)


def split_description(name: str, component: CostComponent, config: ParserConfig) -> str:
    qualifier = config.split_qualifiers.get(component, component.value.title())
    return config.split_name_format.format(name=name, qualifier=qualifier)


def has_internal_signal(description: str, vendor: str, config: ParserConfig) -> bool:
    internal = config.internal_vendor.strip()
    if not internal:
        return False
    if vendor.strip().upper() == internal.upper():
        return True
    return contains_phrase(normalize_text(description), normalize_text(internal))


def has_zero_markup_signal(description: str, markup_cell, config: ParserConfig) -> bool:
    if parse_percent(markup_cell) == 0:
        return True
    if ZERO_PERCENT_PATTERN.search(description):
        return True
    return contains_any_phrase(normalize_text(description), config.zero_markup_phrases) is not None


def is_management_row(description: str, vendor: str, markup_cell, config: ParserConfig) -> bool:
    """Internal overhead billed at cost: needs both the company and the 0% signal."""

    return has_internal_signal(description, vendor, config) and has_zero_markup_signal(
        description, markup_cell, config
    )


def assign_vendor(component: CostComponent, vendor: str, config: ParserConfig) -> Optional[str]:
    vendor = vendor.strip()
    if component is CostComponent.SUBCONTRACTOR:
        return vendor or None
    internal = config.internal_vendor.strip()
    if not vendor or vendor.upper() == internal.upper():
        return internal or None
    return vendor


def read_components(
    grid: Grid,
    row_index: int,
    columns: BudgetColumns,
    warnings: List[str],
) -> List[Tuple[CostComponent, Decimal]]:
    """Return the strictly positive cost components of a row, in component order."""

    components: List[Tuple[CostComponent, Decimal]] = []
    for component in COMPONENT_ORDER:
        col_index = columns.get(component.role)
        if col_index is None:
            continue
        raw = cell_at(grid, row_index, col_index)
        amount = parse_amount(raw)
        label = ROLE_LABELS[component.role]
        if amount is None:
            warnings.append(f"Row {row_index + 1}: non-numeric {label} value '{cell_text(raw)}' treated as 0")
            continue
        if amount < 0:
            warnings.append(f"Row {row_index + 1}: negative {label} value {amount} ignored")
            continue
        if amount > 0:
            components.append((component, amount))
    return components


def _read_quantity(grid: Grid, row_index: int, columns: BudgetColumns, warnings: List[str]) -> Decimal:
    raw = cell_at(grid, row_index, columns.get(ColumnRole.QUANTITY))
    quantity = parse_quantity(raw)
    if quantity is None:
        if not is_blank(raw):
            warnings.append(f"Row {row_index + 1}: quantity '{cell_text(raw)}' is not a positive number; using 1")
        return Decimal("1")
    return quantity


def extract_line_items(
    grid: Grid,
    columns: BudgetColumns,
    region: TableRegion,
    config: ParserConfig | None = None,
) -> LineItemExtraction:
    cfg = config or ParserConfig()
    mapped = columns.mapped_indices()
    items: List[ExtractedLineItem] = []
    warnings: List[str] = []
    compound_rows = 0
    rows_scanned = 0

    for row_index in range(region.start_row, region.end_row + 1):
        if not row_has_content(grid, row_index, mapped):
            continue
        rows_scanned += 1

        description = cell_text(cell_at(grid, row_index, columns.item))
        if description and contains_any_phrase(normalize_text(description), cfg.summary_markers):
            warnings.append(f"Row {row_index + 1}: skipped summary row '{description}'")
            continue

        components = read_components(grid, row_index, columns, warnings)
        if not components:
            continue
        if not description:
            warnings.append(f"Row {row_index + 1}: amounts found but no item description; row skipped")
            continue

        vendor = cell_text(cell_at(grid, row_index, columns.get(ColumnRole.VENDOR)))
        markup_cell = cell_at(grid, row_index, columns.get(ColumnRole.MARKUP))
        management = is_management_row(description, vendor, markup_cell, cfg)
        quantity = _read_quantity(grid, row_index, columns, warnings)
        unit = cell_text(cell_at(grid, row_index, columns.get(ColumnRole.UNIT))) or cfg.default_unit

        split = len(components) > 1
        group_id = f"row-{row_index}" if split else None
        if split:
            compound_rows += 1
            LOGGER.debug("Row %d split into %d items", row_index, len(components))

        for component, cost in components:
            category = Category.MANAGEMENT if management else component.category
            rate = cfg.markup_rate(category)
            items.append(
                ExtractedLineItem(
                    description=split_description(description, component, cfg) if split else description,
                    category=category,
                    cost=cost,
                    price=compute_price(cost, rate),
                    source_row_index=row_index,
                    component=component,
                    quantity=quantity,
                    unit=unit,
                    split_group_id=group_id,
                    source_description=description,
                    vendor_name=assign_vendor(component, vendor, cfg),
                    markup_pct=rate,
                )
            )

    return LineItemExtraction(
        items=tuple(items),
        warnings=tuple(warnings),
        compound_rows_split=compound_rows,
        rows_scanned=rows_scanned,
    )


__all__ = [
    "COMPONENT_ORDER",
    "LineItemExtraction",
    "assign_vendor",
    "compute_price",
    "extract_line_items",
    "has_internal_signal",
    "has_zero_markup_signal",
    "is_management_row",
    "read_components",
    "split_description",
]
