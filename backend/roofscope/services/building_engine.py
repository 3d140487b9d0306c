"""
Multi-building aggregation.

Combines per-building selections into one job-level SelectionState that is
then priced by a single ``calculate()`` call:

  1. per-building items (vendor lines excluded), quantities summed across buildings
  2. the first labor price item, at total squares across all buildings
  3. equipment rules (per job, or one load per 60 squares)
  4. vendor quote items once, at their quoted quantity
"""
import logging
import math
from dataclasses import dataclass, field
from typing import Dict, List, Mapping, Optional, Sequence

from roofscope.config import EQUIPMENT_RULES, SQUARES_PER_LANDFILL_LOAD
from roofscope.models.estimate_schema import (
    CatalogItem,
    Measurements,
    PriceListItem,
    SelectionState,
    VendorQuoteItem,
)

logger = logging.getLogger("roofscope-buildings")


@dataclass
class BuildingSelection:
    id: str
    name: str
    measurements: Measurements
    selected_item_ids: List[str] = field(default_factory=list)
    item_quantities: Dict[str, float] = field(default_factory=dict)
    roof_system: str = ""


@dataclass
class BuildingSubtotal:
    building_name: str
    roof_system: str
    materials_total: float
    item_count: int


@dataclass
class EquipmentLine:
    name: str
    quantity: float
    unit_price: float
    total: float


@dataclass
class MultiBuildingResult:
    selection: SelectionState
    building_subtotals: Dict[str, BuildingSubtotal]
    labor_total: float
    equipment_total: float
    equipment_items: List[EquipmentLine]


def _equipment_quantity(rule: Mapping[str, object], total_squares: float) -> float:
    if rule["rule_type"] == "per-60-squares":
        return float(math.ceil(total_squares / SQUARES_PER_LANDFILL_LOAD))
    return float(rule["default_qty"])


def assemble_multi_building(
    buildings: Sequence[BuildingSelection],
    catalog: Sequence[CatalogItem],
    price_items: Sequence[PriceListItem],
    vendor_quote_items: Sequence[VendorQuoteItem] = (),
    vendor_prices: Optional[Mapping[str, float]] = None,
    equipment_rules: Optional[Sequence[Mapping[str, object]]] = None,
) -> MultiBuildingResult:
    vendor_prices = vendor_prices or {}
    equipment_rules = EQUIPMENT_RULES if equipment_rules is None else equipment_rules
    catalog_prices = {item.id: item.price for item in catalog}
    vendor_ids = {item.id for item in vendor_quote_items}

    selected: List[str] = []
    quantities: Dict[str, float] = {}

    def add(item_id: str, qty: float) -> None:
        if item_id not in quantities:
            selected.append(item_id)
        quantities[item_id] = quantities.get(item_id, 0.0) + qty

    total_squares = sum(b.measurements.total_squares for b in buildings)

    # Per-building items
    subtotals: Dict[str, BuildingSubtotal] = {}
    for building in buildings:
        materials_total = 0.0
        item_count = 0
        for item_id in building.selected_item_ids:
            if item_id in vendor_ids:
                continue
            qty = building.item_quantities.get(item_id, 0.0)
            if qty <= 0:
                continue
            add(item_id, qty)
            price = vendor_prices.get(item_id, catalog_prices.get(item_id, 0.0))
            materials_total += price * qty
            item_count += 1
        subtotals[building.id] = BuildingSubtotal(
            building_name=building.name,
            roof_system=building.roof_system or "—",
            materials_total=materials_total,
            item_count=item_count,
        )

    # Labor
    labor_item = next((p for p in price_items if p.category == "labor"), None)
    if labor_item is not None and total_squares > 0:
        add(labor_item.id, total_squares)
    labor_total = total_squares * labor_item.price if labor_item is not None else 0.0

    # Equipment
    by_name = {}
    for item in price_items:
        by_name.setdefault(item.name, item)
    equipment_items: List[EquipmentLine] = []
    for rule in equipment_rules:
        price_item = by_name.get(rule["item_name"])
        if price_item is None:
            continue
        qty = _equipment_quantity(rule, total_squares)
        add(price_item.id, qty)
        equipment_items.append(EquipmentLine(
            name=price_item.name,
            quantity=qty,
            unit_price=price_item.price,
            total=qty * price_item.price,
        ))

    # Vendor items: job-level, quoted quantity replaces anything summed above
    for vendor_item in vendor_quote_items:
        if vendor_item.id not in quantities:
            selected.append(vendor_item.id)
        quantities[vendor_item.id] = vendor_item.quantity

    logger.info(
        f"Combined {len(buildings)} buildings ({total_squares:g} sq) into {len(selected)} items",
        extra={"item_count": len(selected)},
    )
    return MultiBuildingResult(
        selection=SelectionState(selected_item_ids=selected, item_quantities=quantities),
        building_subtotals=subtotals,
        labor_total=labor_total,
        equipment_total=sum(line.total for line in equipment_items),
        equipment_items=equipment_items,
    )
