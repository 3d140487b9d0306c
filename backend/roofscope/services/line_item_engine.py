"""
Waste & Category Aggregator.

Resolves selected catalog items against their base quantities, adds waste to
material-class lines, and groups the result into per-category line lists
and subtotals.
"""
import logging
from typing import Dict, List, Mapping, Optional, Sequence, Tuple

from roofscope.config import CATEGORIES, OPTIONAL_ITEM_KEYWORD, WASTE_CATEGORIES
from roofscope.models.estimate_schema import CatalogItem, LineItem, SelectionState
from roofscope.services.quantity_engine import ceil_quantity

logger = logging.getLogger("roofscope-line-items")

# Kinds that take waste; vendor quantities are already what was quoted and
# imported lines carry final quantities.
_WASTE_KINDS = frozenset({"price_list", "custom"})


def is_optional_item(name: str) -> bool:
    return OPTIONAL_ITEM_KEYWORD in name.lower()


def waste_applies(kind: str, category: str, name: str) -> bool:
    return (
        kind in _WASTE_KINDS
        and category in WASTE_CATEGORIES
        and not is_optional_item(name)
    )


def apply_waste(base_quantity: float, waste_percent: float) -> float:
    return ceil_quantity(base_quantity * (1 + waste_percent / 100))


def resolve_line_item(
    item: CatalogItem,
    base_quantity: float,
    waste_percent: float,
    price: Optional[float] = None,
) -> LineItem:
    """One catalog item at ``base_quantity``; ``price`` overrides the catalog price."""
    unit_price = item.price if price is None else price
    if waste_applies(item.kind, item.category, item.name):
        quantity = apply_waste(base_quantity, waste_percent)
        waste_added = quantity - base_quantity
    else:
        quantity = base_quantity
        waste_added = 0.0

    return LineItem(
        id=item.id,
        name=item.name,
        category=item.category,
        unit=item.unit,
        price=unit_price,
        coverage=item.coverage,
        coverage_unit=item.coverage_unit,
        proposal_description=item.proposal_description,
        kind=item.kind,
        base_quantity=base_quantity,
        quantity=quantity,
        waste_added=waste_added,
        total=quantity * unit_price,
        is_custom_item=item.is_custom_item,
        is_optional=is_optional_item(item.name),
    )


def rebase_line_item(line: LineItem, waste_percent: float) -> LineItem:
    """Recompute quantity/waste/total of an existing line from its base quantity."""
    if waste_applies(line.kind, line.category, line.name):
        quantity = apply_waste(line.base_quantity, waste_percent)
        waste_added = quantity - line.base_quantity
    else:
        # imported lines already carry their final quantity
        quantity = line.quantity if line.kind == "imported" else line.base_quantity
        waste_added = 0.0
    return line.model_copy(update={
        "quantity": quantity,
        "waste_added": waste_added,
        "total": quantity * line.price,
        "is_optional": line.is_optional or is_optional_item(line.name),
    })


def build_line_items(
    catalog: Sequence[CatalogItem],
    selection: SelectionState,
    waste_percent: float,
    vendor_prices: Optional[Mapping[str, float]] = None,
) -> List[LineItem]:
    """
    Line items for every selected id, in selection order.

    Ids not present in the catalog are dropped. Vendor items are priced from
    ``vendor_prices`` (the overhead-adjusted map) when listed there.
    """
    vendor_prices = vendor_prices or {}
    by_id = {item.id: item for item in catalog}

    lines: List[LineItem] = []
    for item_id in selection.selected_item_ids:
        item = by_id.get(item_id)
        if item is None:
            logger.debug("Selected id %s not in catalog; dropped", item_id)
            continue
        price = vendor_prices.get(item.id) if item.is_vendor_item else None
        base = float(selection.item_quantities.get(item_id, 0) or 0)
        lines.append(resolve_line_item(item, base, waste_percent, price))
    return lines


def group_by_category(
    lines: Sequence[LineItem],
) -> Tuple[List[LineItem], List[LineItem], Dict[str, List[LineItem]], Dict[str, float]]:
    """
    Split into (line_items, optional_items, by_category, totals).

    Optional lines never reach by_category or totals. All five categories are
    always present.
    """
    line_items: List[LineItem] = []
    optional_items: List[LineItem] = []
    by_category: Dict[str, List[LineItem]] = {category: [] for category in CATEGORIES}
    totals: Dict[str, float] = {category: 0.0 for category in CATEGORIES}

    for line in lines:
        if line.is_optional:
            optional_items.append(line)
            continue
        line_items.append(line)
        by_category[line.category].append(line)
        totals[line.category] += line.total

    return line_items, optional_items, by_category, totals
