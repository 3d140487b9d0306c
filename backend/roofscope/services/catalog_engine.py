from typing import Dict, List, Optional, Sequence
import logging

import pandas as pd

from roofscope.models.estimate_schema import (
    CatalogItem,
    CustomItem,
    PriceListItem,
    VendorItem,
    VendorQuoteItem,
)

logger = logging.getLogger("roofscope-catalog")

# price sheet column → PriceListItem field
_PRICE_SHEET_COLUMNS = {
    "id": "id",
    "name": "name",
    "category": "category",
    "unit": "unit",
    "price": "price",
    "coverage": "coverage",
    "coverage_unit": "coverage_unit",
    "coverageunit": "coverage_unit",
    "proposal_description": "proposal_description",
    "proposaldescription": "proposal_description",
}


def vendor_items_to_catalog(items: Sequence[VendorQuoteItem]) -> List[VendorItem]:
    """Vendor quote lines as selectable catalog items (never coverage-driven)."""
    return [
        VendorItem(
            id=item.id,
            name=item.name,
            unit=item.unit or "each",
            price=item.price or 0.0,
            category=item.category,
            vendor_quote_id=item.vendor_quote_id,
            vendor_category=item.vendor_category,
        )
        for item in items
    ]


def price_items_from_frame(frame: pd.DataFrame) -> List[PriceListItem]:
    """
    Convert an owner price sheet (one row per item) into PriceListItems.

    Column names are matched case-insensitively; blank cells become None so
    the model defaults and coverage pairing rules apply.
    """
    renamed = frame.rename(
        columns=lambda c: _PRICE_SHEET_COLUMNS.get(str(c).strip().lower().replace(" ", "_"), c)
    )
    keep = [c for c in renamed.columns if c in set(_PRICE_SHEET_COLUMNS.values())]
    records = renamed[keep].astype(object).where(renamed[keep].notna(), None).to_dict("records")

    items: List[PriceListItem] = []
    for row in records:
        cleaned = {k: (None if isinstance(v, str) and not v.strip() else v) for k, v in row.items()}
        cleaned["id"] = str(cleaned["id"])
        items.append(PriceListItem(**cleaned))
    logger.info("Loaded %d price list items from sheet", len(items))
    return items


class CatalogEngine:
    """
    Merges the owner price list, vendor-quote lines and custom items into the
    single SelectableItem set the estimate is built from.
    """

    def resolve(
        self,
        price_items: Sequence[PriceListItem],
        vendor_items: Sequence[VendorItem],
        custom_items: Sequence[CustomItem],
        price_overrides: Optional[Dict[str, float]] = None,
        name_overrides: Optional[Dict[str, str]] = None,
    ) -> List[CatalogItem]:
        """
        Deduplicate by id (first source wins, in price list → vendor → custom
        order) and apply user overrides. An override replaces the source
        value outright; override keys with no matching item are ignored.
        """
        price_overrides = price_overrides or {}
        name_overrides = name_overrides or {}

        resolved: List[CatalogItem] = []
        seen: set = set()
        for item in [*price_items, *vendor_items, *custom_items]:
            if item.id in seen:
                logger.debug("Duplicate catalog id %s (%s) ignored", item.id, item.kind)
                continue
            seen.add(item.id)

            updates = {}
            if item.id in price_overrides:
                updates["price"] = float(price_overrides[item.id])
            if item.id in name_overrides:
                updates["name"] = name_overrides[item.id]
            resolved.append(item.model_copy(update=updates) if updates else item)

        return resolved


def resolve_catalog(
    price_items: Sequence[PriceListItem],
    vendor_quote_items: Sequence[VendorQuoteItem],
    custom_items: Sequence[CustomItem],
    price_overrides: Optional[Dict[str, float]] = None,
    name_overrides: Optional[Dict[str, str]] = None,
) -> List[CatalogItem]:
    """Module-level convenience wrapper taking raw vendor quote lines."""
    return CatalogEngine().resolve(
        price_items,
        vendor_items_to_catalog(vendor_quote_items),
        custom_items,
        price_overrides=price_overrides,
        name_overrides=name_overrides,
    )
