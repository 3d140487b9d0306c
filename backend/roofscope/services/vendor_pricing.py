"""
Vendor Price Adjustment — distributes vendor tax / freight / fees across the
vendor's own line items.

Covers:
  - Per-quote computed subtotal (Σ extended price, falling back to qty × price)
  - Overhead factor = total / subtotal (1 when either is missing)
  - Adjusted unit price map for every vendor quote item
  - Vendor tax + fees total (for display reconciliation)
  - Normalisation of extracted vendor quotes into VendorQuote / VendorQuoteItem
"""
import logging
import uuid
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

from roofscope.models.estimate_schema import VendorQuote, VendorQuoteItem, to_number

logger = logging.getLogger("roofscope-vendor")

VENDOR_DISPLAY_NAMES: Dict[str, str] = {
    "schafer": "Schafer",
    "tra": "TRA",
    "rocky-mountain": "Rocky Mountain",
}

_ITEM_CATEGORIES = ("materials", "equipment", "accessories")
_VENDOR_CATEGORIES = ("panels", "flashing", "fasteners", "snow-retention", "delivery")

__all__ = [
    "to_number",
    "quote_item_subtotals",
    "resolve_quote_amounts",
    "overhead_factor",
    "adjusted_price_map",
    "vendor_tax_fees_total",
    "normalize_vendor",
    "format_vendor_name",
    "build_vendor_quote",
]


# ---------------------------------------------------------------------------
# Overhead distribution
# ---------------------------------------------------------------------------

def _extended(item: VendorQuoteItem) -> float:
    return item.extended_price or item.quantity * item.price


def quote_item_subtotals(items: Sequence[VendorQuoteItem]) -> Dict[str, float]:
    """vendor_quote_id → Σ line extended prices."""
    subtotals: Dict[str, float] = {}
    for item in items:
        subtotals[item.vendor_quote_id] = subtotals.get(item.vendor_quote_id, 0.0) + _extended(item)
    return subtotals


def resolve_quote_amounts(
    quote: VendorQuote, computed_subtotal: float = 0.0
) -> Tuple[float, float, float]:
    """
    (subtotal, total, factor) for one quote.

    The vendor-printed subtotal wins; the computed one is used only when the
    extraction did not find a subtotal. A missing total means no adjustment.
    """
    subtotal = quote.subtotal if quote.subtotal > 0 else computed_subtotal
    total = quote.total if quote.total > 0 else subtotal
    factor = total / subtotal if subtotal > 0 and total > 0 else 1.0
    return subtotal, total, factor


def overhead_factor(quote: VendorQuote, computed_subtotal: float = 0.0) -> float:
    """total / subtotal for one quote; 1.0 when either is missing."""
    return resolve_quote_amounts(quote, computed_subtotal)[2]


def _factors(
    quotes: Sequence[VendorQuote],
    items: Sequence[VendorQuoteItem],
) -> Dict[str, Tuple[float, float, float]]:
    """quote id → (subtotal, total, factor)."""
    computed = quote_item_subtotals(items)
    out: Dict[str, Tuple[float, float, float]] = {}
    for quote in quotes:
        subtotal, total, factor = resolve_quote_amounts(quote, computed.get(quote.id, 0.0))
        out[quote.id] = (subtotal, total, factor)
        logger.debug(
            "Quote %s: subtotal=%.2f total=%.2f factor=%.6f",
            quote.id, subtotal, total, factor,
            extra={"quote_id": quote.id},
        )
    return out


def adjusted_price_map(
    quotes: Sequence[VendorQuote],
    items: Sequence[VendorQuoteItem],
) -> Dict[str, float]:
    """
    vendor item id → effective unit price (raw price × overhead factor).

    Items whose quote is unknown keep their raw price.
    """
    factors = _factors(quotes, items)
    prices: Dict[str, float] = {}
    for item in items:
        factor = factors.get(item.vendor_quote_id, (0.0, 0.0, 1.0))[2]
        prices[item.id] = item.price * factor
    return prices


def vendor_tax_fees_total(
    quotes: Sequence[VendorQuote],
    items: Sequence[VendorQuoteItem],
) -> float:
    """Σ (total − subtotal) over all quotes; what the factor spreads across items."""
    return sum(total - subtotal for subtotal, total, _ in _factors(quotes, items).values())


# ---------------------------------------------------------------------------
# Extraction normalisation
# ---------------------------------------------------------------------------

def normalize_vendor(value: Any) -> str:
    """Map free-text vendor names onto the supported vendor keys (default schafer)."""
    text = str(value or "").lower()
    if "schafer" in text:
        return "schafer"
    if "tra" in text:
        return "tra"
    if "rocky" in text:
        return "rocky-mountain"
    return "schafer"


def format_vendor_name(vendor: str) -> str:
    return VENDOR_DISPLAY_NAMES.get(vendor, "Vendor")


def _pick(value: Any, allowed: Sequence[str], default: str) -> str:
    text = str(value or "").strip().lower()
    return text if text in allowed else default


def build_vendor_quote(
    parsed: Mapping[str, Any],
    file_name: str = "",
    estimate_id: str = "",
    quote_id: Optional[str] = None,
) -> Tuple[VendorQuote, List[VendorQuoteItem]]:
    """
    Turn an extracted-quote dict (``vendor``, ``quote_number``, ``subtotal``,
    ``tax``, ``total``, ``items`` ...) into typed records.

    Line extended price falls back to quantity × price. A missing subtotal is
    the sum of extended prices; a missing total is subtotal + tax.
    """
    quote_id = quote_id or str(uuid.uuid4())

    items: List[VendorQuoteItem] = []
    for raw in parsed.get("items") or []:
        quantity = to_number(raw.get("quantity"))
        price = to_number(raw.get("price"))
        extended = to_number(raw.get("extended_price")) or quantity * price
        items.append(VendorQuoteItem(
            id=str(raw.get("id") or uuid.uuid4()),
            vendor_quote_id=quote_id,
            name=str(raw.get("name") or "").strip() or "Vendor Item",
            unit=str(raw.get("unit") or "").strip() or "each",
            price=price,
            quantity=quantity,
            extended_price=extended,
            category=_pick(raw.get("category"), _ITEM_CATEGORIES, "materials"),
            vendor_category=_pick(raw.get("vendor_category"), _VENDOR_CATEGORIES, "panels"),
        ))

    subtotal = to_number(parsed.get("subtotal")) or sum(i.extended_price for i in items)
    tax = to_number(parsed.get("tax"))
    total = to_number(parsed.get("total")) or subtotal + tax

    quote = VendorQuote(
        id=quote_id,
        estimate_id=estimate_id,
        vendor=normalize_vendor(parsed.get("vendor")),
        quote_number=str(parsed.get("quote_number") or ""),
        quote_date=str(parsed.get("quote_date") or ""),
        project_address=str(parsed.get("project_address") or ""),
        file_name=file_name,
        subtotal=subtotal,
        tax=tax,
        total=total,
    )
    logger.info(
        "Normalised %s quote %s with %d items (subtotal=%.2f total=%.2f)",
        quote.vendor, quote.quote_number or quote.id, len(items), subtotal, total,
        extra={"quote_id": quote.id, "item_count": len(items)},
    )
    return quote, items
