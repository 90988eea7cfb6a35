"""Tabular and text views of an :class:`ExtractionResult` for review before import."""
from __future__ import annotations

import json
import logging
from decimal import Decimal
from functools import lru_cache
from pathlib import Path
from typing import Dict, List

import pandas as pd
from jsonschema import Draft7Validator

from .config import ParserConfig
from .models import Category, CostComponent, ExtractionResult

LOGGER = logging.getLogger(__name__)

SCHEMA_PATH = Path(__file__).resolve().parent / "schema" / "extraction_result.schema.json"

ITEM_COLUMNS = [
    "SOURCE_ROW",
    "DESCRIPTION",
    "CATEGORY",
    "COMPONENT",
    "VENDOR",
    "QUANTITY",
    "UNIT",
    "COST",
    "MARKUP_PCT",
    "PRICE",
    "SPLIT_GROUP",
    "LABOR_HOURS",
    "LABOR_CUSHION",
]


def labor_hours(cost: Decimal, config: ParserConfig) -> Decimal:
    if config.labor_billing_rate <= 0:
        return Decimal("0")
    return (cost / config.labor_billing_rate).quantize(Decimal("0.01"))


def items_frame(result: ExtractionResult, config: ParserConfig | None = None) -> pd.DataFrame:
    """One row per line item; labor hours are derived for internal labor only."""

    cfg = config or ParserConfig()
    records: List[Dict[str, object]] = []
    for item in result.items:
        hours = cushion = 0.0
        if item.component is CostComponent.LABOR and item.category is Category.LABOR_INTERNAL:
            hours_dec = labor_hours(item.cost, cfg)
            hours = float(hours_dec)
            cushion = float(hours_dec * (cfg.labor_billing_rate - cfg.labor_actual_rate))
        records.append(
            {
                "SOURCE_ROW": item.source_row_index + 1,
                "DESCRIPTION": item.description,
                "CATEGORY": item.category.value,
                "COMPONENT": item.component.value,
                "VENDOR": item.vendor_name or "",
                "QUANTITY": float(item.quantity),
                "UNIT": item.unit,
                "COST": float(item.cost),
                "MARKUP_PCT": float(item.markup_pct),
                "PRICE": float(item.price),
                "SPLIT_GROUP": item.split_group_id or "",
                "LABOR_HOURS": hours,
                "LABOR_CUSHION": cushion,
            }
        )
    return pd.DataFrame.from_records(records, columns=ITEM_COLUMNS)


def category_summary(items_df: pd.DataFrame) -> pd.DataFrame:
    if items_df.empty:
        return pd.DataFrame(columns=["CATEGORY", "ITEMS", "COST", "PRICE"])
    grouped = items_df.groupby("CATEGORY", sort=True).agg(
        ITEMS=("DESCRIPTION", "count"),
        COST=("COST", "sum"),
        PRICE=("PRICE", "sum"),
    )
    return grouped.reset_index()


def make_summary_text(result: ExtractionResult, config: ParserConfig | None = None) -> str:
    items_df = items_frame(result, config)
    region = result.region
    lines = [
        f"Header row: {result.header_row_index + 1} (mapping confidence {result.mapping_confidence:.0%})",
        f"Table rows: {region.start_row + 1}-{region.end_row + 1} (stopped: {region.stop_reason.value})",
        f"Line items: {len(result.items)} ({result.compound_rows_split} compound rows split)",
        f"Total cost: ${result.total_cost:,.2f}",
        f"Total price: ${result.total_price:,.2f}",
    ]
    summary = category_summary(items_df)
    if not summary.empty:
        lines.append("By category:")
        lines.append(summary.to_string(index=False, float_format=lambda v: f"{v:,.2f}"))
    if result.warnings:
        lines.append(f"Warnings ({len(result.warnings)}):")
        lines.extend(f"  - {warning}" for warning in result.warnings)
    return "\n".join(lines) + "\n"


@lru_cache(maxsize=1)
def _result_validator() -> Draft7Validator:
    with SCHEMA_PATH.open("r", encoding="utf-8") as f:
        schema = json.load(f)
    return Draft7Validator(schema)


def result_payload(result: ExtractionResult) -> Dict[str, object]:
    """JSON payload for ``result``, validated against the bundled schema."""

    payload = result.to_dict()
    _result_validator().validate(payload)
    return payload


def write_result_json(result: ExtractionResult, path: Path) -> Path:
    payload = result_payload(result)
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", encoding="utf-8") as f:
        json.dump(payload, f, indent=2)
    LOGGER.info("Wrote extraction result to %s", path)
    return path


def write_items_table(result: ExtractionResult, path: Path, config: ParserConfig | None = None) -> Path:
    """Write the item table as ``.csv`` or ``.xlsx`` depending on the suffix."""

    frame = items_frame(result, config)
    path.parent.mkdir(parents=True, exist_ok=True)
    if path.suffix.lower() == ".xlsx":
        frame.to_excel(path, index=False, sheet_name="Line Items")
    else:
        frame.to_csv(path, index=False)
    LOGGER.info("Wrote %d line items to %s", len(frame), path)
    return path


__all__ = [
    "ITEM_COLUMNS",
    "category_summary",
    "items_frame",
    "labor_hours",
    "make_summary_text",
    "result_payload",
    "write_items_table",
    "write_result_json",
]
