"""Header cell to column role mapping.

Matching is an explicit synonym table with a bounded edit distance
fallback, so every mapping decision can be traced back to a table entry.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, List, Optional

from rapidfuzz.distance import Levenshtein

from .cells import cell_text, normalize_text
from .config import ParserConfig
from .models import (
    COST_ROLES,
    OPTIONAL_ROLES,
    BudgetColumns,
    ColumnMappingResult,
    ColumnRole,
    Grid,
)

LOGGER = logging.getLogger(__name__)

ROLE_LABELS: Dict[ColumnRole, str] = {
    ColumnRole.ITEM: "item/description",
    ColumnRole.LABOR_COST: "labor cost",
    ColumnRole.MATERIAL_COST: "material cost",
    ColumnRole.SUBCONTRACTOR_COST: "subcontractor cost",
    ColumnRole.EQUIPMENT_COST: "equipment cost",
    ColumnRole.UNIT: "unit",
    ColumnRole.QUANTITY: "quantity",
    ColumnRole.TOTAL_COST: "total cost",
    ColumnRole.TOTAL_PRICE: "total price",
    ColumnRole.VENDOR: "vendor",
    ColumnRole.MARKUP: "markup",
}


@dataclass(frozen=True)
class HeaderMatch:
    role: ColumnRole
    synonym: str
    distance: int

    @property
    def exact(self) -> bool:
        return self.distance == 0


def max_typo_distance(synonym: str) -> int:
    if len(synonym) < 3:
        return 0
    if len(synonym) <= 4:
        return 1
    return 2


def match_header(text: str, config: ParserConfig) -> Optional[HeaderMatch]:
    """Match normalized header ``text`` to a column role.

    Exact synonyms win over typo matches. Among typo matches the smallest
    distance wins, ties going to the earlier role and synonym.
    """

    if not text:
        return None
    for role in ColumnRole:
        if text in config.synonyms(role):
            return HeaderMatch(role=role, synonym=text, distance=0)

    best: Optional[HeaderMatch] = None
    for role in ColumnRole:
        for synonym in config.synonyms(role):
            bound = max_typo_distance(synonym)
            if bound == 0 or abs(len(synonym) - len(text)) > bound:
                continue
            distance = Levenshtein.distance(text, synonym, score_cutoff=bound)
            if distance <= bound and (best is None or distance < best.distance):
                best = HeaderMatch(role=role, synonym=synonym, distance=distance)
    return best


def mapping_confidence(columns: BudgetColumns, config: ParserConfig) -> float:
    required_mapped = int(columns.is_mapped(ColumnRole.ITEM))
    required_mapped += int(any(columns.is_mapped(role) for role in COST_ROLES))
    unmapped_optional = sum(1 for role in OPTIONAL_ROLES if not columns.is_mapped(role))
    penalty = min(config.optional_penalty_cap, config.optional_role_penalty * unmapped_optional)
    confidence = required_mapped / 2.0 - penalty
    return round(min(1.0, max(0.0, confidence)), 4)


def map_columns(grid: Grid, header_row_index: int, config: ParserConfig | None = None) -> ColumnMappingResult:
    """Map the cells of the header row to :class:`ColumnRole` values."""

    cfg = config or ParserConfig()
    header_row = grid[header_row_index] if 0 <= header_row_index < len(grid) else ()
    indices: Dict[ColumnRole, int] = {}
    warnings: List[str] = []
    unmapped: List[str] = []

    for col_index, cell in enumerate(header_row):
        normalized = normalize_text(cell)
        if not normalized:
            continue
        match = match_header(normalized, cfg)
        if match is None:
            unmapped.append(cell_text(cell))
            continue
        if match.role in indices:
            warnings.append(
                f"Column {col_index + 1} ('{cell_text(cell)}') also looks like the "
                f"{ROLE_LABELS[match.role]} column; keeping column {indices[match.role] + 1}"
            )
            unmapped.append(cell_text(cell))
            continue
        indices[match.role] = col_index
        if not match.exact:
            LOGGER.debug(
                "Header '%s' matched %s via '%s' (distance %d)",
                cell_text(cell),
                match.role.value,
                match.synonym,
                match.distance,
            )

    columns = BudgetColumns(indices=indices)
    if not columns.is_mapped(ColumnRole.ITEM):
        warnings.append("No item/description column found")
    if not any(columns.is_mapped(role) for role in COST_ROLES):
        warnings.append("No cost columns (labor, material, sub) found; costs will be treated as zero")
    for role in cfg.reported_optional_roles:
        if not columns.is_mapped(role):
            warnings.append(f"No {ROLE_LABELS[role]} column found")

    confidence = mapping_confidence(columns, cfg)
    LOGGER.debug("Mapped columns %s with confidence %.2f", columns.to_dict(), confidence)
    return ColumnMappingResult(
        columns=columns,
        header_row_index=header_row_index,
        confidence=confidence,
        warnings=tuple(warnings),
        unmapped_headers=tuple(unmapped),
    )


__all__ = ["HeaderMatch", "ROLE_LABELS", "map_columns", "mapping_confidence", "match_header", "max_typo_distance"]
