import argparse
import logging
import os
import sys
from pathlib import Path
from typing import Optional, Sequence

from dotenv import load_dotenv

from .classify import build_classifier, enrich_result
from .config import Settings, load_settings
from .errors import BudgetSheetError
from .grid_io import load_grid
from .pipeline import extract_budget_sheet
from .reporting import make_summary_text, write_items_table, write_result_json
from .visuals import write_category_chart

logger = logging.getLogger(__name__)


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Extract estimate line items from a budget spreadsheet")
    parser.add_argument("file", help="Budget sheet (.csv, .xlsx or .xls)")
    parser.add_argument("--sheet", help="Worksheet name for Excel workbooks (default: first sheet)")
    parser.add_argument("--config", help="Optional JSON/YAML parser configuration")
    parser.add_argument("--json-out", help="Write the extraction result as JSON to this path")
    parser.add_argument("--items-out", help="Write the line item table to this .csv or .xlsx path")
    parser.add_argument("--chart-out", help="Write a cost vs. price chart per category to this .png path")
    parser.add_argument(
        "--classify",
        choices=["none", "keywords", "openai"],
        help="Relabel items after extraction (default from config/environment)",
    )
    parser.add_argument("--max-rows", type=int, help="Refuse grids with more rows than this")
    parser.add_argument("--labor-billing-rate", type=float, help="Hourly rate used to derive labor hours")
    parser.add_argument("--log-level", help="Logging level (DEBUG, INFO, WARNING, ...)")
    return parser.parse_args(argv)


def run(path: Path, args: argparse.Namespace, settings: Settings) -> int:
    grid = load_grid(path, sheet=args.sheet)
    result = extract_budget_sheet(grid, settings.parser, max_rows=settings.max_rows)

    classifier = build_classifier(settings.classifier, settings.parser)
    result = enrich_result(result, classifier, enabled=settings.classifier.enabled)

    sys.stdout.write(make_summary_text(result, settings.parser))
    if args.json_out:
        write_result_json(result, Path(args.json_out).expanduser())
    if args.items_out:
        write_items_table(result, Path(args.items_out).expanduser(), settings.parser)
    if args.chart_out:
        write_category_chart(result, Path(args.chart_out).expanduser(), settings.parser)
    return 0


def main(argv: Optional[Sequence[str]] = None) -> int:
    load_dotenv()
    args = parse_args(argv)
    try:
        settings = load_settings(os.environ, args)
    except BudgetSheetError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 2
    logging.basicConfig(level=getattr(logging, settings.log_level, logging.WARNING), format="%(message)s")
    try:
        return run(Path(args.file).expanduser(), args, settings)
    except (BudgetSheetError, FileNotFoundError) as exc:
        logger.debug("Extraction failed", exc_info=True)
        print(f"error: {exc}", file=sys.stderr)
        return 2


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
