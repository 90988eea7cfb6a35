"""Optional chart of extracted cost and price per category."""

from __future__ import annotations

import logging
from pathlib import Path

import matplotlib

matplotlib.use("Agg")  # headless
import matplotlib.pyplot as plt
from matplotlib.ticker import StrMethodFormatter

from .config import ParserConfig
from .models import ExtractionResult
from .reporting import category_summary, items_frame

LOGGER = logging.getLogger(__name__)


def _currency_formatter() -> StrMethodFormatter:
    return StrMethodFormatter("$ {x:,.0f}")


def write_category_chart(
    result: ExtractionResult,
    path: Path,
    config: ParserConfig | None = None,
    title: str = "Budget by category",
) -> Path | None:
    """Write a grouped bar chart (cost vs. price per category) as PNG.

    Returns ``None`` without writing anything when the result has no items.
    """

    summary = category_summary(items_frame(result, config))
    if summary.empty:
        LOGGER.info("No line items; chart not written")
        return None

    positions = range(len(summary))
    width = 0.4
    fig, ax = plt.subplots(figsize=(8, 4.5))
    try:
        ax.bar([p - width / 2 for p in positions], summary["COST"], width, label="Cost", color="#4c72b0")
        ax.bar([p + width / 2 for p in positions], summary["PRICE"], width, label="Price", color="#dd8452")
        ax.set_xticks(list(positions))
        ax.set_xticklabels([label.replace("_", " ").title() for label in summary["CATEGORY"]])
        ax.yaxis.set_major_formatter(_currency_formatter())
        ax.set_title(title)
        ax.legend()
        ax.grid(axis="y", alpha=0.3)
        fig.tight_layout()
        path.parent.mkdir(parents=True, exist_ok=True)
        fig.savefig(path, format="png", dpi=150)
    finally:
        plt.close(fig)
    LOGGER.info("Wrote category chart to %s", path)
    return path


__all__ = ["write_category_chart"]
