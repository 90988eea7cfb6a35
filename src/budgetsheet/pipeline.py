"""Deterministic budget sheet extraction.

``extract_budget_sheet`` runs the stages in order: header detection,
column mapping, region detection, line item extraction and totals
validation. Only a missing header row, a missing item column or an
oversized grid abort the run; every other problem is reported in
``ExtractionResult.warnings``.
"""
from __future__ import annotations

import logging
from typing import List, Optional

from .columns import map_columns
from .config import ParserConfig
from .errors import GridTooLargeError, HeaderNotFoundError, RequiredColumnsMissingError
from .extractor import extract_line_items
from .header import find_header_row
from .models import ColumnRole, ExtractionResult, Grid
from .region import detect_table_region
from .totals import validate_totals

LOGGER = logging.getLogger(__name__)


def extract_budget_sheet(
    grid: Grid,
    config: ParserConfig | None = None,
    *,
    max_rows: Optional[int] = None,
) -> ExtractionResult:
    cfg = config or ParserConfig()
    if max_rows is not None and len(grid) > max_rows:
        raise GridTooLargeError(len(grid), max_rows)

    header = find_header_row(grid, cfg)
    if header is None:
        raise HeaderNotFoundError(min(len(grid), cfg.header_scan_rows))

    mapping = map_columns(grid, header.row_index, cfg)
    if not mapping.columns.is_mapped(ColumnRole.ITEM):
        raise RequiredColumnsMissingError(mapping)

    warnings: List[str] = list(mapping.warnings)
    if mapping.confidence < cfg.min_mapping_confidence:
        warnings.append(
            f"Low column mapping confidence ({mapping.confidence:.2f}); review the column mapping before importing"
        )

    region = detect_table_region(grid, header.row_index, mapping.columns, cfg)
    extraction = extract_line_items(grid, mapping.columns, region, cfg)
    warnings.extend(extraction.warnings)

    totals = validate_totals(extraction.items, grid, mapping.columns, region, cfg)
    warnings.extend(totals.warnings)

    if not extraction.items:
        warnings.append("No line items found below the header row")

    result = ExtractionResult(
        items=extraction.items,
        warnings=tuple(warnings),
        header_row_index=header.row_index,
        region=region,
        mapping_confidence=mapping.confidence,
        compound_rows_split=extraction.compound_rows_split,
        total_cost=totals.total_cost,
        total_price=totals.total_price,
        columns=mapping.columns,
        rows_scanned=extraction.rows_scanned,
    )
    LOGGER.info(
        "Extracted %d items from rows %d-%d (%s); %d compound rows split; %d warnings",
        len(result.items),
        region.start_row,
        region.end_row,
        region.stop_reason.value,
        result.compound_rows_split,
        len(result.warnings),
    )
    return result


__all__ = ["extract_budget_sheet"]
