"""Hard failures raised by the budget sheet pipeline."""
from __future__ import annotations

from typing import Optional

from .models import ColumnMappingResult


class BudgetSheetError(RuntimeError):
    """Base class for errors that abort an import."""


class HeaderNotFoundError(BudgetSheetError):
    """Raised when no row scores high enough to be the column header row."""

    def __init__(self, rows_scanned: int, best_score: Optional[int] = None) -> None:
        self.rows_scanned = rows_scanned
        self.best_score = best_score
        detail = f" (best score {best_score})" if best_score is not None else ""
        super().__init__(f"Could not detect a header row in the first {rows_scanned} rows{detail}")


class RequiredColumnsMissingError(BudgetSheetError):
    """Raised when the item description column cannot be mapped."""

    def __init__(self, mapping: ColumnMappingResult) -> None:
        self.mapping = mapping
        super().__init__(
            f"Item description column not found in header row {mapping.header_row_index}"
        )


class GridTooLargeError(BudgetSheetError):
    """Raised when a grid exceeds the caller supplied row ceiling."""

    def __init__(self, row_count: int, max_rows: int) -> None:
        self.row_count = row_count
        self.max_rows = max_rows
        super().__init__(f"Grid has {row_count} rows; limit is {max_rows}")


class UnsupportedFileError(BudgetSheetError):
    """Raised by the grid loader for file types it cannot decode."""


class ConfigError(BudgetSheetError):
    """Raised for malformed parser configuration."""


__all__ = [
    "BudgetSheetError",
    "ConfigError",
    "GridTooLargeError",
    "HeaderNotFoundError",
    "RequiredColumnsMissingError",
    "UnsupportedFileError",
]
