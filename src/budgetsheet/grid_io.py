"""Decode CSV and Excel files into a :data:`~budgetsheet.models.Grid`."""
from __future__ import annotations

import csv
import logging
import math
from datetime import date, datetime
from decimal import Decimal
from pathlib import Path
from typing import Iterable, List, Optional, Sequence, Tuple, Union

import pandas as pd

from .errors import UnsupportedFileError
from .models import Cell

LOGGER = logging.getLogger(__name__)

SUPPORTED_SUFFIXES = (".csv", ".xlsx", ".xlsm", ".xls")


def _to_cell(value: object) -> Cell:
    if value is None or value is pd.NaT:
        return None
    if isinstance(value, str):
        return value if value.strip() else None
    if isinstance(value, bool):
        return str(value)
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, (int, Decimal)):
        return value
    if isinstance(value, float):
        return None if math.isnan(value) else value
    if hasattr(value, "item"):
        # numpy scalars
        return _to_cell(value.item())
    try:
        if pd.isna(value):
            return None
    except (TypeError, ValueError):
        pass
    return str(value)


def _trim_row(values: Iterable[object]) -> Tuple[Cell, ...]:
    cells = [_to_cell(v) for v in values]
    while cells and cells[-1] is None:
        cells.pop()
    return tuple(cells)


def _trim_grid(rows: Sequence[Tuple[Cell, ...]]) -> Tuple[Tuple[Cell, ...], ...]:
    end = len(rows)
    while end and not rows[end - 1]:
        end -= 1
    return tuple(rows[:end])


def grid_from_dataframe(frame: pd.DataFrame) -> Tuple[Tuple[Cell, ...], ...]:
    """Convert a header-less DataFrame into a grid of plain Python cells."""

    rows = [_trim_row(row) for row in frame.itertuples(index=False, name=None)]
    return _trim_grid(rows)


def read_csv_grid(path: Path, encoding: str = "utf-8-sig") -> Tuple[Tuple[Cell, ...], ...]:
    # csv.reader keeps ragged rows intact; pandas would reject them
    with path.open("r", encoding=encoding, newline="") as f:
        rows = [_trim_row(row) for row in csv.reader(f)]
    return _trim_grid(rows)


def read_excel_grid(path: Path, sheet: Optional[Union[str, int]] = None) -> Tuple[Tuple[Cell, ...], ...]:
    frame = pd.read_excel(path, sheet_name=0 if sheet is None else sheet, header=None, dtype=object)
    return grid_from_dataframe(frame)


def list_sheets(path: Path) -> List[str]:
    with pd.ExcelFile(path) as workbook:
        return [str(name) for name in workbook.sheet_names]


def load_grid(path: Path | str, sheet: Optional[Union[str, int]] = None) -> Tuple[Tuple[Cell, ...], ...]:
    """Load ``path`` into a grid; ``sheet`` selects an Excel worksheet (default first)."""

    source = Path(path)
    suffix = source.suffix.lower()
    if suffix not in SUPPORTED_SUFFIXES:
        raise UnsupportedFileError(f"Unsupported file type '{suffix or source.name}'. Use .csv, .xlsx or .xls")
    if not source.exists():
        raise FileNotFoundError(f"Input file not found: {source}")

    LOGGER.info("Reading %s", source)
    if suffix == ".csv":
        grid = read_csv_grid(source)
    else:
        grid = read_excel_grid(source, sheet)
    LOGGER.debug("Loaded %d rows from %s", len(grid), source.name)
    return grid


__all__ = ["SUPPORTED_SUFFIXES", "grid_from_dataframe", "list_sheets", "load_grid", "read_csv_grid", "read_excel_grid"]
