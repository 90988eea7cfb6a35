from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import Dict, List, Mapping, Optional, Sequence, Tuple, Union

Cell = Union[None, str, int, float, Decimal]
Row = Sequence[Cell]
Grid = Sequence[Row]


class ColumnRole(str, Enum):
    ITEM = "item"
    LABOR_COST = "labor_cost"
    MATERIAL_COST = "material_cost"
    SUBCONTRACTOR_COST = "subcontractor_cost"
    EQUIPMENT_COST = "equipment_cost"
    UNIT = "unit"
    QUANTITY = "quantity"
    TOTAL_COST = "total_cost"
    TOTAL_PRICE = "total_price"
    VENDOR = "vendor"
    MARKUP = "markup"


COST_ROLES: Tuple[ColumnRole, ...] = (
    ColumnRole.LABOR_COST,
    ColumnRole.MATERIAL_COST,
    ColumnRole.SUBCONTRACTOR_COST,
)
OPTIONAL_ROLES: Tuple[ColumnRole, ...] = (
    ColumnRole.EQUIPMENT_COST,
    ColumnRole.UNIT,
    ColumnRole.QUANTITY,
    ColumnRole.TOTAL_COST,
    ColumnRole.TOTAL_PRICE,
    ColumnRole.VENDOR,
    ColumnRole.MARKUP,
)


class Category(str, Enum):
    SUBCONTRACTOR = "subcontractor"
    MATERIALS = "materials"
    LABOR_INTERNAL = "labor_internal"
    EQUIPMENT = "equipment"
    MANAGEMENT = "management"
    OTHER = "other"


class CostComponent(str, Enum):
    LABOR = "labor"
    MATERIAL = "material"
    SUBCONTRACTOR = "subcontractor"
    EQUIPMENT = "equipment"

    @property
    def role(self) -> ColumnRole:
        return _COMPONENT_ROLES[self]

    @property
    def category(self) -> Category:
        return _COMPONENT_CATEGORIES[self]


_COMPONENT_ROLES = {
    CostComponent.LABOR: ColumnRole.LABOR_COST,
    CostComponent.MATERIAL: ColumnRole.MATERIAL_COST,
    CostComponent.SUBCONTRACTOR: ColumnRole.SUBCONTRACTOR_COST,
    CostComponent.EQUIPMENT: ColumnRole.EQUIPMENT_COST,
}
_COMPONENT_CATEGORIES = {
    CostComponent.LABOR: Category.LABOR_INTERNAL,
    CostComponent.MATERIAL: Category.MATERIALS,
    CostComponent.SUBCONTRACTOR: Category.SUBCONTRACTOR,
    CostComponent.EQUIPMENT: Category.EQUIPMENT,
}


class StopReason(str, Enum):
    STOP_MARKER_MATCHED = "stop_marker_matched"
    CONSECUTIVE_EMPTY_ROWS = "consecutive_empty_rows"
    END_OF_GRID = "end_of_grid"


@dataclass(frozen=True)
class BudgetColumns:
    """Column index per role; roles missing from ``indices`` are unmapped."""

    indices: Mapping[ColumnRole, int] = field(default_factory=dict)

    def get(self, role: ColumnRole) -> Optional[int]:
        return self.indices.get(role)

    def is_mapped(self, role: ColumnRole) -> bool:
        return role in self.indices

    @property
    def item(self) -> Optional[int]:
        return self.get(ColumnRole.ITEM)

    def mapped_indices(self) -> List[int]:
        return sorted(set(self.indices.values()))

    def to_dict(self) -> Dict[str, Optional[int]]:
        return {role.value: self.indices.get(role) for role in ColumnRole}


@dataclass(frozen=True)
class HeaderCandidate:
    row_index: int
    score: int
    matched_roles: Tuple[str, ...] = ()


@dataclass(frozen=True)
class ColumnMappingResult:
    columns: BudgetColumns
    header_row_index: int
    confidence: float
    warnings: Tuple[str, ...] = ()
    unmapped_headers: Tuple[str, ...] = ()


@dataclass(frozen=True)
class TableRegion:
    start_row: int
    end_row: int
    stop_reason: StopReason
    stop_row_index: Optional[int] = None

    @property
    def row_count(self) -> int:
        return max(0, self.end_row - self.start_row + 1)


@dataclass(frozen=True)
class ExtractedLineItem:
    """A single estimate line item read from the sheet.

    ``cost`` is the amount read from the sheet; ``price`` is always derived
    from it with the markup rate in ``markup_pct``.
    """

    description: str
    category: Category
    cost: Decimal
    price: Decimal
    source_row_index: int
    component: CostComponent
    quantity: Decimal = Decimal("1")
    unit: str = "LS"
    split_group_id: Optional[str] = None
    source_description: str = ""
    vendor_name: Optional[str] = None
    markup_pct: Decimal = Decimal("0")

    def to_dict(self) -> Dict[str, object]:
        return {
            "description": self.description,
            "category": self.category.value,
            "component": self.component.value,
            "cost": str(self.cost),
            "price": str(self.price),
            "markup_pct": str(self.markup_pct),
            "quantity": str(self.quantity),
            "unit": self.unit,
            "source_row_index": self.source_row_index,
            "split_group_id": self.split_group_id,
            "source_description": self.source_description,
            "vendor_name": self.vendor_name,
        }


@dataclass(frozen=True)
class ExtractionResult:
    items: Tuple[ExtractedLineItem, ...]
    warnings: Tuple[str, ...]
    header_row_index: int
    region: TableRegion
    mapping_confidence: float
    compound_rows_split: int
    total_cost: Decimal
    total_price: Decimal
    columns: BudgetColumns = field(default_factory=BudgetColumns)
    rows_scanned: int = 0

    def to_dict(self) -> Dict[str, object]:
        """JSON-safe payload; decimals are rendered as strings."""

        return {
            "items": [item.to_dict() for item in self.items],
            "warnings": list(self.warnings),
            "metadata": {
                "header_row_index": self.header_row_index,
                "region": {
                    "start_row": self.region.start_row,
                    "end_row": self.region.end_row,
                    "stop_reason": self.region.stop_reason.value,
                    "stop_row_index": self.region.stop_row_index,
                },
                "columns": self.columns.to_dict(),
                "mapping_confidence": self.mapping_confidence,
                "compound_rows_split": self.compound_rows_split,
                "rows_scanned": self.rows_scanned,
                "total_cost": str(self.total_cost),
                "total_price": str(self.total_price),
            },
        }


__all__ = [
    "BudgetColumns",
    "COST_ROLES",
    "Category",
    "Cell",
    "ColumnMappingResult",
    "ColumnRole",
    "CostComponent",
    "ExtractedLineItem",
    "ExtractionResult",
    "Grid",
    "HeaderCandidate",
    "OPTIONAL_ROLES",
    "Row",
    "StopReason",
    "TableRegion",
]
