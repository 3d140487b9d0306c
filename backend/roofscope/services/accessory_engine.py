"""
Accessory calculators: heat tape, snow guards, snow fence.

Rows of snow retention scale with pitch:
  1-4/12 → 1 row,  5-7/12 → 2,  8-10/12 → 3,  11/12 and up → 4.
Heat tape runs a zig-zag along the eave (3' up + 3' down per triangle,
one triangle per 3 LF of eave) plus a straight run up every valley.
"""
import math
import re
from dataclasses import dataclass
from typing import Dict, Optional, Sequence

from roofscope.models.estimate_schema import PriceListItem

_PITCH_RE = re.compile(r"(\d+)/(\d+)")
_DEFAULT_PITCH_RISE = 7

# Used when the price list has no matching item
ACCESSORY_FALLBACK_PRICES: Dict[str, float] = {
    "heat_tape_material": 5.0,
    "heat_tape_labor": 7.5,
    "snow_fence_material": 12.0,
    "snow_fence_labor": 5.0,
    "snow_guard_material": 7.0,
    "snow_guard_labor": 5.0,
    "skylight": 2400.0,
}


@dataclass
class HeatTapeCalc:
    eave_length: float
    valley_length: float
    triangles: int
    eave_cable: float
    valley_cable: float
    total_lf: float
    material_cost: float
    labor_cost: float


@dataclass
class SnowRetentionCalc:
    eave_length: float
    pitch: str
    num_rows: int
    total_quantity: float
    unit: str              # "each" for guards, "lf" for fence
    material_cost: float
    labor_cost: float
    type: str              # "snowguard" | "snowfence"


def parse_pitch(pitch: str) -> int:
    """Rise of an "X/12" pitch string; 7 when unparseable."""
    match = _PITCH_RE.search(pitch or "")
    if not match:
        return _DEFAULT_PITCH_RISE
    return int(match.group(1))


def rows_for_pitch(pitch: str) -> int:
    rise = parse_pitch(pitch)
    if rise <= 4:
        return 1
    if rise <= 7:
        return 2
    if rise <= 10:
        return 3
    return 4


def calculate_heat_tape(
    eave: float,
    valley: float,
    material_price: float = ACCESSORY_FALLBACK_PRICES["heat_tape_material"],
    labor_price: float = ACCESSORY_FALLBACK_PRICES["heat_tape_labor"],
) -> HeatTapeCalc:
    triangles = math.ceil(eave / 3)
    eave_cable = triangles * 6
    total_lf = eave_cable + valley
    return HeatTapeCalc(
        eave_length=eave,
        valley_length=valley,
        triangles=triangles,
        eave_cable=eave_cable,
        valley_cable=valley,
        total_lf=total_lf,
        material_cost=total_lf * material_price,
        labor_cost=total_lf * labor_price,
    )


def _snow_retention(
    eave: float, pitch: str, material_price: float, labor_price: float, unit: str, kind: str
) -> SnowRetentionCalc:
    num_rows = rows_for_pitch(pitch)
    total = eave * num_rows
    return SnowRetentionCalc(
        eave_length=eave,
        pitch=pitch,
        num_rows=num_rows,
        total_quantity=total,
        unit=unit,
        material_cost=total * material_price,
        labor_cost=total * labor_price,
        type=kind,
    )


def calculate_snow_guards(
    eave: float,
    pitch: str,
    material_price: float = ACCESSORY_FALLBACK_PRICES["snow_guard_material"],
    labor_price: float = ACCESSORY_FALLBACK_PRICES["snow_guard_labor"],
) -> SnowRetentionCalc:
    """One guard per foot of eave, per row."""
    return _snow_retention(eave, pitch, material_price, labor_price, "each", "snowguard")


def calculate_snow_fence(
    eave: float,
    pitch: str,
    material_price: float = ACCESSORY_FALLBACK_PRICES["snow_fence_material"],
    labor_price: float = ACCESSORY_FALLBACK_PRICES["snow_fence_labor"],
) -> SnowRetentionCalc:
    return _snow_retention(eave, pitch, material_price, labor_price, "lf", "snowfence")


def find_catalog_item_by_name(
    items: Sequence[PriceListItem],
    search: str,
    category: Optional[str] = None,
) -> Optional[PriceListItem]:
    """First item whose name contains ``search`` (case-insensitive), optionally within a category."""
    needle = search.lower()
    for item in items:
        if category and item.category != category:
            continue
        if needle in item.name.lower():
            return item
    return None


def _first_price(items: Sequence[PriceListItem], lookups, fallback: float) -> float:
    for search, category in lookups:
        found = find_catalog_item_by_name(items, search, category)
        if found is not None:
            return found.price
    return fallback


def get_accessory_prices(items: Sequence[PriceListItem]) -> Dict[str, float]:
    """Unit prices for the accessory calculators, from the price list where available."""
    fb = ACCESSORY_FALLBACK_PRICES
    return {
        "heat_tape_material": _first_price(
            items, [("Heat Tape", "materials"), ("Heat Tape", "accessories")],
            fb["heat_tape_material"],
        ),
        "heat_tape_labor": _first_price(
            items, [("Heat Tape Install", "labor"), ("Heat Tape", "labor")],
            fb["heat_tape_labor"],
        ),
        "snow_fence_material": _first_price(
            items,
            [("Snow Fence", "materials"), ("ColorGard", "materials"), ("Snow Fence", "accessories")],
            fb["snow_fence_material"],
        ),
        "snow_fence_labor": _first_price(
            items, [("Snow Fence Install", "labor"), ("Snow Fence", "labor")],
            fb["snow_fence_labor"],
        ),
        "snow_guard_material": _first_price(
            items,
            [("RMSG Yeti Snowguard", "materials"), ("Snowguard", "materials"), ("Snow Guard", "materials")],
            fb["snow_guard_material"],
        ),
        "snow_guard_labor": _first_price(
            items, [("Snowguard Install", "labor"), ("Snow Guard Install", "labor")],
            fb["snow_guard_labor"],
        ),
        "skylight": _first_price(
            items, [("Skylight", "accessories"), ("Skylight", "materials")],
            fb["skylight"],
        ),
    }
