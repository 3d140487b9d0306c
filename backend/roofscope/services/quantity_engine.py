"""
Quantity Derivation — base purchase quantities from roof measurements.

Every catalog item is resolved by the first matching rule in QUANTITY_RULES:

  1. coverage          item declares coverage + coverage unit (lf / sqft / sq)
  2. manual_entry      unit "each" without coverage: 0 unless a flat-fee name
  3. osb / starter / flat_fee / labor_per_square   named special cases
  4. unit_type         static unit → calc-type table (area/linear/count/flat)

The order is load-bearing: existing estimates are reproduced only if the
precedence and keyword sets stay exactly as they are.
"""
import logging
import math
from dataclasses import dataclass
from typing import Callable, Dict, Optional, Sequence, Tuple

from roofscope.config import (
    CHIMNEY_KEYWORDS,
    FLAT_FEE_EACH_KEYWORDS,
    FLAT_FEE_KEYWORDS,
    OSB_KEYWORDS,
    OSB_SHEETS_PER_SQUARE,
    PENETRATION_KEYWORDS,
    ROLLOFF_SQUARES_PER_CONTAINER,
    SKYLIGHT_KEYWORDS,
    UNIT_CALC_TYPES,
)
from roofscope.models.estimate_schema import CatalogItem, Measurements, SelectionState

logger = logging.getLogger("roofscope-quantity")


def ceil_quantity(value: float) -> float:
    """
    Round a quantity up to the next whole unit.

    Products such as 10 × 1.10 land a hair above the integer in binary
    floating point; they are snapped to 9 decimals first so they do not
    bump to the next unit.
    """
    return float(math.ceil(round(value, 9)))


def _contains_any(name: str, keywords: Sequence[str]) -> bool:
    return any(keyword in name for keyword in keywords)


# ---------------------------------------------------------------------------
# Keyword → measurement tables
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class KeywordRule:
    """Picks a measurement when the item name contains any of ``keywords``."""
    keywords: Tuple[str, ...]
    measure: Callable[[Measurements], float]

    def matches(self, name: str) -> bool:
        return _contains_any(name, self.keywords)


def _first_match(
    rules: Sequence[KeywordRule],
    name: str,
    measurements: Measurements,
    default: Callable[[Measurements], float],
) -> float:
    for rule in rules:
        if rule.matches(name):
            return rule.measure(measurements)
    return default(measurements)


# Linear numerator for lf-coverage items. "h&r" (hip & ridge cap) covers both runs.
LINEAR_COVERAGE_RULES: Tuple[KeywordRule, ...] = (
    KeywordRule(("starter",), lambda m: m.perimeter_length),
    KeywordRule(("valley",), lambda m: m.valley_length),
    KeywordRule(("eave", "drip"), lambda m: m.eave_length),
    KeywordRule(("rake",), lambda m: m.rake_length),
    KeywordRule(("ridge", "h&r"), lambda m: m.ridge_and_hip_length),
    KeywordRule(("hip",), lambda m: m.hip_length),
)

# Direct linear lookup for lf-unit items without coverage
LINEAR_MEASUREMENT_RULES: Tuple[KeywordRule, ...] = (
    KeywordRule(("valley",), lambda m: m.valley_length),
    KeywordRule(("eave", "drip"), lambda m: m.eave_length),
    KeywordRule(("rake",), lambda m: m.rake_length),
    KeywordRule(("ridge",), lambda m: m.ridge_length),
    KeywordRule(("hip",), lambda m: m.hip_length),
    KeywordRule(("h&r",), lambda m: m.ridge_and_hip_length),
)

COUNT_RULES: Tuple[KeywordRule, ...] = (
    KeywordRule(PENETRATION_KEYWORDS, lambda m: m.penetrations),
    KeywordRule(SKYLIGHT_KEYWORDS, lambda m: m.skylights),
    KeywordRule(CHIMNEY_KEYWORDS, lambda m: m.chimneys),
)


def _zero(_: Measurements) -> float:
    return 0.0


# ---------------------------------------------------------------------------
# Ordered rule table
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class QuantityContext:
    measurements: Measurements
    is_tear_off: bool = False


@dataclass(frozen=True)
class QuantityRule:
    name: str
    applies: Callable[[CatalogItem, str], bool]
    resolve: Callable[[CatalogItem, str, QuantityContext], float]


def _has_coverage(item: CatalogItem, name: str) -> bool:
    return bool(item.coverage and item.coverage > 0 and item.coverage_unit)


def _coverage_quantity(item: CatalogItem, name: str, ctx: QuantityContext) -> float:
    m = ctx.measurements
    coverage = float(item.coverage)
    if item.coverage_unit == "lf":
        numerator = _first_match(
            LINEAR_COVERAGE_RULES, name, m, default=lambda mm: mm.eave_length
        )
        return ceil_quantity(numerator / coverage)
    if item.coverage_unit == "sqft":
        return ceil_quantity(m.total_squares * 100 / coverage)
    if item.coverage_unit == "sq":
        return ceil_quantity(m.total_squares / coverage)
    logger.debug("Unknown coverage unit %r on %s", item.coverage_unit, item.id)
    return 0.0


def _is_manual_entry(item: CatalogItem, name: str) -> bool:
    return item.unit == "each" and not item.coverage


def _manual_entry_quantity(item: CatalogItem, name: str, ctx: QuantityContext) -> float:
    # e.g. "Snowguard Install" waits for a human instead of guessing
    return 1.0 if _contains_any(name, FLAT_FEE_EACH_KEYWORDS) else 0.0


def _is_flat_fee(item: CatalogItem, name: str) -> bool:
    return _contains_any(name, FLAT_FEE_KEYWORDS) or item.unit == "flat"


def _flat_fee_quantity(item: CatalogItem, name: str, ctx: QuantityContext) -> float:
    if "rolloff" in name and ctx.is_tear_off:
        return ceil_quantity(ctx.measurements.total_squares / ROLLOFF_SQUARES_PER_CONTAINER)
    return 1.0


def _unit_type_quantity(item: CatalogItem, name: str, ctx: QuantityContext) -> float:
    m = ctx.measurements
    calc_type = UNIT_CALC_TYPES.get(item.unit)
    if calc_type == "area":
        return m.total_squares * 100 if item.unit == "sf" else m.total_squares
    if calc_type == "linear":
        return _first_match(LINEAR_MEASUREMENT_RULES, name, m, default=_zero)
    if calc_type == "count":
        return _first_match(COUNT_RULES, name, m, default=_zero)
    if calc_type == "flat":
        return 1.0
    logger.debug("Unknown unit %r on %s; quantity 0", item.unit, item.id)
    return 0.0


QUANTITY_RULES: Tuple[QuantityRule, ...] = (
    QuantityRule("coverage", _has_coverage, _coverage_quantity),
    QuantityRule("manual_entry", _is_manual_entry, _manual_entry_quantity),
    QuantityRule(
        "osb",
        lambda item, name: _contains_any(name, OSB_KEYWORDS),
        lambda item, name, ctx: ctx.measurements.total_squares * OSB_SHEETS_PER_SQUARE,
    ),
    QuantityRule(
        "starter",
        lambda item, name: "starter" in name,
        lambda item, name, ctx: ctx.measurements.perimeter_length,
    ),
    QuantityRule("flat_fee", _is_flat_fee, _flat_fee_quantity),
    QuantityRule(
        "labor_per_square",
        lambda item, name: item.category == "labor" and item.unit != "each",
        lambda item, name, ctx: ctx.measurements.total_squares,
    ),
    QuantityRule("unit_type", lambda item, name: True, _unit_type_quantity),
)


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def resolve_item_quantity(
    item: CatalogItem,
    measurements: Measurements,
    is_tear_off: bool = False,
) -> Tuple[float, str]:
    """Return (base quantity, name of the rule that produced it)."""
    ctx = QuantityContext(measurements=measurements, is_tear_off=is_tear_off)
    name = item.name.lower()
    for rule in QUANTITY_RULES:
        if rule.applies(item, name):
            return float(rule.resolve(item, name, ctx)), rule.name
    return 0.0, "none"


def derive_quantities(
    measurements: Measurements,
    catalog: Sequence[CatalogItem],
    is_tear_off: bool = False,
) -> Dict[str, float]:
    """Base (pre-waste) quantity for every catalog item, keyed by id."""
    quantities: Dict[str, float] = {}
    for item in catalog:
        qty, rule = resolve_item_quantity(item, measurements, is_tear_off)
        quantities[item.id] = qty
        logger.debug("%s %r → %s via %s", item.id, item.name, qty, rule)
    return quantities


def refresh_quantities(
    measurements: Measurements,
    catalog: Sequence[CatalogItem],
    selection: SelectionState,
    is_tear_off: bool = False,
    kinds: Optional[Sequence[str]] = ("price_list",),
) -> SelectionState:
    """
    Re-seed item quantities after (re)measurement.

    Only price-list items are re-derived by default; vendor lines keep their
    quoted quantity and custom items their typed one. Ids listed in
    ``selection.manual_overrides`` are never touched.
    """
    manual = set(selection.manual_overrides)
    eligible = [
        item for item in catalog
        if item.id not in manual and (kinds is None or item.kind in kinds)
    ]
    quantities = dict(selection.item_quantities)
    quantities.update(derive_quantities(measurements, eligible, is_tear_off))
    return selection.model_copy(update={"item_quantities": quantities})


def seed_quantities(
    measurements: Measurements,
    catalog: Sequence[CatalogItem],
    selection: SelectionState,
    is_tear_off: bool = False,
) -> SelectionState:
    """Derive quantities only for selected price-list ids that have none yet."""
    selected = set(selection.selected_item_ids)
    pending = [
        item for item in catalog
        if item.id in selected and item.id not in selection.item_quantities
    ]
    if not pending:
        return selection
    return refresh_quantities(measurements, pending, selection, is_tear_off)
