from __future__ import annotations

import logging

from .cells import cell_at, contains_any_phrase, normalize_text, row_has_content
from .config import ParserConfig
from .models import BudgetColumns, Grid, StopReason, TableRegion

LOGGER = logging.getLogger(__name__)


def stop_marker_for(grid: Grid, row_index: int, columns: BudgetColumns, config: ParserConfig):
    """Return the stop marker found in the row's item cell, if any."""

    text = normalize_text(cell_at(grid, row_index, columns.item))
    if not text:
        return None
    return contains_any_phrase(text, config.stop_markers)


def detect_table_region(
    grid: Grid,
    header_row_index: int,
    columns: BudgetColumns,
    config: ParserConfig | None = None,
) -> TableRegion:
    """Find the rows below the header that hold line items.

    The scan stops at the first item cell carrying a stop marker, or at a
    run of ``max_consecutive_empty_rows`` rows empty across every mapped
    column. ``end_row`` is inclusive and is below ``start_row`` when the
    table is empty.
    """

    cfg = config or ParserConfig()
    start_row = header_row_index + 1
    mapped = columns.mapped_indices()
    last_content_row = header_row_index
    empty_run_start = None

    for row_index in range(start_row, len(grid)):
        marker = stop_marker_for(grid, row_index, columns, cfg)
        if marker is not None:
            LOGGER.debug("Stop marker '%s' at row %d", marker, row_index)
            return TableRegion(
                start_row=start_row,
                end_row=row_index - 1,
                stop_reason=StopReason.STOP_MARKER_MATCHED,
                stop_row_index=row_index,
            )

        if row_has_content(grid, row_index, mapped):
            last_content_row = row_index
            empty_run_start = None
            continue

        if empty_run_start is None:
            empty_run_start = row_index
        if row_index - empty_run_start + 1 >= cfg.max_consecutive_empty_rows:
            LOGGER.debug("Empty run of %d rows starting at row %d", cfg.max_consecutive_empty_rows, empty_run_start)
            return TableRegion(
                start_row=start_row,
                end_row=empty_run_start - 1,
                stop_reason=StopReason.CONSECUTIVE_EMPTY_ROWS,
                stop_row_index=empty_run_start,
            )

    return TableRegion(
        start_row=start_row,
        end_row=last_content_row,
        stop_reason=StopReason.END_OF_GRID,
        stop_row_index=None,
    )


__all__ = ["detect_table_region", "stop_marker_for"]
