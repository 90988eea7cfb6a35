from __future__ import annotations

import logging
from typing import List, Optional

from .cells import looks_like_currency, normalize_text
from .columns import match_header
from .config import ParserConfig
from .models import ColumnRole, Grid, HeaderCandidate

LOGGER = logging.getLogger(__name__)

ITEM_SCORE = 5
COST_SCORE = 3
DATA_PENALTY = -2

SCORED_COST_ROLES = (
    ColumnRole.LABOR_COST,
    ColumnRole.MATERIAL_COST,
    ColumnRole.SUBCONTRACTOR_COST,
    ColumnRole.EQUIPMENT_COST,
    ColumnRole.TOTAL_COST,
    ColumnRole.TOTAL_PRICE,
)


def score_row(row, config: ParserConfig) -> HeaderCandidate:
    """Score one row as a header candidate; ``row_index`` is left at -1."""

    score = 0
    matched: List[str] = []
    has_item = False
    for cell in row:
        if looks_like_currency(cell):
            score += DATA_PENALTY
            continue
        match = match_header(normalize_text(cell), config)
        if match is None:
            continue
        if match.role is ColumnRole.ITEM:
            if not has_item:
                score += ITEM_SCORE
                has_item = True
            matched.append(match.role.value)
        elif match.role in SCORED_COST_ROLES:
            score += COST_SCORE
            matched.append(match.role.value)
    return HeaderCandidate(row_index=-1, score=score, matched_roles=tuple(matched))


def find_header_row(grid: Grid, config: ParserConfig | None = None) -> Optional[HeaderCandidate]:
    """Return the best scoring header row among the first rows of ``grid``.

    Ties go to the earliest row. ``None`` when no row reaches
    ``config.min_header_score``.
    """

    cfg = config or ParserConfig()
    best: Optional[HeaderCandidate] = None
    for row_index in range(min(len(grid), cfg.header_scan_rows)):
        scored = score_row(grid[row_index], cfg)
        if scored.score < cfg.min_header_score:
            continue
        if best is None or scored.score > best.score:
            best = HeaderCandidate(row_index=row_index, score=scored.score, matched_roles=scored.matched_roles)

    if best is None:
        LOGGER.debug("No header row found in first %d rows", min(len(grid), cfg.header_scan_rows))
    else:
        LOGGER.debug("Header row %d scored %d (%s)", best.row_index, best.score, ", ".join(best.matched_roles))
    return best


__all__ = ["find_header_row", "score_row"]
