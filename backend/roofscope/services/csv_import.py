"""
CSV estimate import.

Reads a contractor-maintained CSV (one row per line item) into an Estimate
so it can be audited, re-priced with ``recalculate_financials`` or rendered.
Imported lines carry final quantities: no waste is added on import.
"""
import io
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, List, Optional

import pandas as pd

from roofscope.config import CATEGORIES
from roofscope.errors import CsvImportError
from roofscope.models.estimate_schema import (
    CustomerInfo,
    Estimate,
    FinancialKnobs,
    LineItem,
    Measurements,
)
from roofscope.services.finance_engine import apply_financial_cascade, knob_fields
from roofscope.services.line_item_engine import group_by_category

logger = logging.getLogger("roofscope-csv")

HEADER_ALIASES: Dict[str, str] = {
    "building": "building",
    "name": "name",
    "address": "address",
    "item": "item",
    "description": "description",
    "desc": "description",
    "quantity": "quantity",
    "qty": "quantity",
    "unit": "unit",
    "unit price": "unitprice",
    "unitprice": "unitprice",
    "price": "unitprice",
    "total": "total",
    "category": "category",
    "cat": "category",
    "notes": "notes",
    "optional": "notes",
}

CATEGORY_ALIASES: Dict[str, str] = {
    "material": "materials",
    "mats": "materials",
    "vendor": "schafer",
}

OPTIONAL_NOTE_MARKERS = ("optional", "not included", "excluded", "separate")
SKIPPED_ITEM_NAMES = ("rolloff", "roll-off", "roll off")
RENAMED_ITEMS = {"landfill charge": "Debris Haulaway & Landfill"}

CSV_TEMPLATE = """Name,Address,Description,Quantity,Unit,Unit Price,Total,Category,Notes
Customer Name,123 Main St,Brava Field Tile,28,bundle,43.25,1211,materials,
,,Hugo (standard),25,sq,550,13750,labor,
,,Porto Potty,1,flat,600,600,equipment,
,,Fuel Charge,1,each,194,194,equipment,
,,Debris Haulaway & Landfill,1,each,750,750,equipment,
,,Overnight Charge,1,flat,387,387,equipment,Only when crew is Hugo
"""

_MINIMAL_MEASUREMENTS = Measurements(predominant_pitch="0/12", complexity="standard")


@dataclass
class CsvParseResult:
    success: bool
    estimate: Optional[Estimate] = None
    errors: List[str] = field(default_factory=list)


def normalize_header(header: str) -> str:
    key = str(header).strip().lower()
    return HEADER_ALIASES.get(key, key)


def normalize_category(value: str) -> str:
    key = value.strip().lower()
    key = CATEGORY_ALIASES.get(key, key)
    return key if key in CATEGORIES else "materials"


def is_optional_note(notes: str) -> bool:
    text = notes.lower()
    return any(marker in text for marker in OPTIONAL_NOTE_MARKERS)


def _money(value: str) -> float:
    try:
        return float(value.replace("$", "").replace(",", "").strip() or 0)
    except ValueError:
        return 0.0


def _read_frame(text: str) -> pd.DataFrame:
    try:
        frame = pd.read_csv(
            io.StringIO(text),
            dtype=str,
            keep_default_na=False,
            skip_blank_lines=True,
        )
    except pd.errors.EmptyDataError:
        return pd.DataFrame()
    except pd.errors.ParserError as e:
        raise CsvImportError(f"Unreadable CSV: {e}") from e
    frame.columns = [normalize_header(c) for c in frame.columns]
    if frame.empty:
        return frame
    return frame.fillna("").apply(lambda col: col.str.strip())


def parse_estimate_csv(
    text: str,
    knobs: Optional[FinancialKnobs] = None,
    generated_at: Optional[str] = None,
) -> CsvParseResult:
    """
    Parse CSV text into an Estimate.

    Returns ``success=False`` with messages when the header lacks a
    Description/Item or Category column, or when there are no data rows.
    Raises CsvImportError when pandas cannot tokenise the input at all.
    """
    frame = _read_frame(text)
    if frame.empty:
        return CsvParseResult(
            success=False,
            errors=["CSV must have a header row and at least one data row"],
        )

    errors: List[str] = []
    if "description" not in frame.columns and "item" not in frame.columns:
        errors.append("CSV must have Description or Item column")
    if "category" not in frame.columns:
        errors.append("CSV must have Category column")
    if errors:
        return CsvParseResult(success=False, errors=errors)

    def cell(row: pd.Series, name: str) -> str:
        return row[name] if name in row.index else ""

    customer = CustomerInfo()
    intro_parts: List[str] = []
    lines: List[LineItem] = []

    for position, (_, row) in enumerate(frame.iterrows(), start=1):
        if not any(row.values):
            continue

        if position == 1:
            customer = CustomerInfo(name=cell(row, "name"), address=cell(row, "address"))

        category_raw = cell(row, "category")
        if category_raw.lower() == "intro":
            intro = cell(row, "description") or cell(row, "item")
            if intro:
                intro_parts.append(intro)
            continue

        item_col, desc_col = cell(row, "item"), cell(row, "description")
        name = item_col or desc_col or "Unnamed Item"
        name = RENAMED_ITEMS.get(name.lower(), name)
        if name.lower() in SKIPPED_ITEM_NAMES:
            logger.debug("Skipping retired item %r on row %d", name, position)
            continue

        quantity = _money(cell(row, "quantity"))
        price = _money(cell(row, "unitprice"))
        total = _money(cell(row, "total"))
        if not price and quantity and total:
            price = total / quantity

        lines.append(LineItem(
            id=f"csv_{position}",
            name=name,
            category=normalize_category(category_raw),
            unit=cell(row, "unit") or "each",
            price=price,
            proposal_description=desc_col if item_col and desc_col else None,
            kind="imported",
            base_quantity=quantity,
            quantity=quantity,
            total=total or quantity * price,
            is_optional=is_optional_note(cell(row, "notes")),
        ))

    knobs = knobs or FinancialKnobs()
    line_items, optional_items, by_category, totals = group_by_category(lines)
    cascade = apply_financial_cascade(totals, knobs)

    estimate = Estimate(
        line_items=line_items,
        optional_items=optional_items,
        by_category=by_category,
        totals=totals,
        measurements=_MINIMAL_MEASUREMENTS,
        customer_info=customer,
        intro_letter_text="\n\n".join(intro_parts) if intro_parts else None,
        generated_at=generated_at or datetime.now(timezone.utc).isoformat(),
        **cascade.to_dict(),
        **knob_fields(knobs),
    )
    logger.info(
        f"Imported CSV estimate: {len(line_items)} lines, {len(optional_items)} optional",
        extra={"item_count": len(line_items)},
    )
    return CsvParseResult(success=True, estimate=estimate)
