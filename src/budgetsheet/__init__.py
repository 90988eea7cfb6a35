"""Rule-based import of construction budget spreadsheets into estimate line items."""

from .config import ClassifierConfig, ParserConfig, Settings, load_parser_config, load_settings
from .errors import (
    BudgetSheetError,
    ConfigError,
    GridTooLargeError,
    HeaderNotFoundError,
    RequiredColumnsMissingError,
    UnsupportedFileError,
)
from .grid_io import load_grid
from .models import (
    BudgetColumns,
    Category,
    ColumnMappingResult,
    ColumnRole,
    CostComponent,
    ExtractedLineItem,
    ExtractionResult,
    StopReason,
    TableRegion,
)
from .pipeline import extract_budget_sheet

__all__ = [
    "BudgetColumns",
    "BudgetSheetError",
    "Category",
    "ClassifierConfig",
    "ColumnMappingResult",
    "ColumnRole",
    "ConfigError",
    "CostComponent",
    "ExtractedLineItem",
    "ExtractionResult",
    "GridTooLargeError",
    "HeaderNotFoundError",
    "ParserConfig",
    "RequiredColumnsMissingError",
    "Settings",
    "StopReason",
    "TableRegion",
    "UnsupportedFileError",
    "extract_budget_sheet",
    "load_grid",
    "load_parser_config",
    "load_settings",
]
