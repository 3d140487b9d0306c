"""
Estimator configuration — single source of truth for financial defaults,
keyword tables, unit classification and validation thresholds.

Import from here in all engines rather than hardcoding values.
"""
from __future__ import annotations

import os

from dotenv import load_dotenv


# ── Categories ────────────────────────────────────────────────────────────────
# Display order used for by_category / totals maps.
CATEGORIES: tuple[str, ...] = (
    "materials",
    "labor",
    "equipment",
    "accessories",
    "schafer",
)

# Waste is only ever added to these categories
WASTE_CATEGORIES: frozenset[str] = frozenset({"materials", "schafer"})

# Sundries (materials allowance) base
SUNDRIES_BASE_CATEGORIES: tuple[str, ...] = ("materials", "schafer")


# ── Unit classification ───────────────────────────────────────────────────────
# unit → calc type. Units missing from this table resolve to quantity 0.
UNIT_CALC_TYPES: dict[str, str] = {
    "sq":     "area",
    "sf":     "area",
    "bundle": "area",
    "roll":   "area",
    "lf":     "linear",
    "each":   "count",
    "pail":   "count",
    "box":    "count",
    "tube":   "count",
    "sheet":  "count",
    "flat":   "flat",
}


# ── Quantity keyword tables ───────────────────────────────────────────────────
# Names are matched lower-cased, by substring.

# "each" items that default to 1 instead of waiting for a manual quantity
FLAT_FEE_EACH_KEYWORDS: tuple[str, ...] = (
    "delivery", "fuel", "porto", "rolloff", "reprographic",
)

# Named flat-fee items (no coverage)
FLAT_FEE_KEYWORDS: tuple[str, ...] = ("delivery", "fuel", "porto", "rolloff")

OSB_KEYWORDS: tuple[str, ...] = ("osb", "oriented strand")
OSB_SHEETS_PER_SQUARE: float = 3.0

# One rolloff container per 15 squares of tear-off
ROLLOFF_SQUARES_PER_CONTAINER: float = 15.0

PENETRATION_KEYWORDS: tuple[str, ...] = ("boot", "pipe", "jack", "flash", "vent")
SKYLIGHT_KEYWORDS: tuple[str, ...] = ("skylight", "velux")
CHIMNEY_KEYWORDS: tuple[str, ...] = ("chimney",)

# Items whose name contains this are shown as optional and excluded from totals
OPTIONAL_ITEM_KEYWORD: str = "skylight"


# ── Validation thresholds ─────────────────────────────────────────────────────
UNDERLAYMENT_KEYWORDS: tuple[str, ...] = (
    "underlayment", "ice & water", "sharkskin", "felt", "synthetic",
)
DRIP_EDGE_KEYWORD: str = "drip edge"
MARGIN_LOW_WARNING_PCT: float = 25.0
MARGIN_HIGH_WARNING_PCT: float = 60.0
MIN_MATERIALS_COST_PER_SQUARE: float = 50.0

# Stored vs recomputed money may differ by this much before the auditor flags it
AUDIT_TOLERANCE: float = 0.01


# ── Multi-building equipment rules ────────────────────────────────────────────
# item_name must match the price list name exactly
EQUIPMENT_RULES: list[dict[str, object]] = [
    {"item_name": "Porto Potty",        "rule_type": "per-job",        "default_qty": 1},
    {"item_name": "Fuel Charge",        "rule_type": "per-job",        "default_qty": 1},
    {"item_name": "Overnight Charge",   "rule_type": "per-job",        "default_qty": 1},
    {"item_name": "Brava Delivery",     "rule_type": "per-job",        "default_qty": 1},
    {"item_name": "Landfill Charge",    "rule_type": "per-60-squares", "default_qty": 1},
    {"item_name": "Aspen Reprographic", "rule_type": "per-job",        "default_qty": 1},
]
SQUARES_PER_LANDFILL_LOAD: float = 60.0


# ── Financial defaults ─────────────────────────────────────────────────────────
# All values are percentages (0–100), not fractions.
FINANCIAL_DEFAULTS: dict[str, float] = {
    # Gross profit as a percentage of the sell price (not a cost-plus markup)
    "margin_percent": 40.0,

    # Office overhead allocated on base cost
    "office_cost_percent": 10.0,

    # Cutting / installation overage on material quantities
    "waste_percent": 10.0,

    # Materials allowance: nails, caulk, sealant and other small consumables
    "sundries_percent": 10.0,

    "sales_tax_percent": 10.0,
}

# Environment variable → knob name
_KNOB_ENV_VARS: dict[str, str] = {
    "ROOFSCOPE_MARGIN_PCT":    "margin_percent",
    "ROOFSCOPE_OFFICE_PCT":    "office_cost_percent",
    "ROOFSCOPE_WASTE_PCT":     "waste_percent",
    "ROOFSCOPE_SUNDRIES_PCT":  "sundries_percent",
    "ROOFSCOPE_SALES_TAX_PCT": "sales_tax_percent",
}


def financial_defaults_from_env() -> dict[str, float]:
    """
    FINANCIAL_DEFAULTS overlaid with any ROOFSCOPE_*_PCT environment variables.

    A .env file in the working directory is loaded first (existing variables
    win). Unparseable values keep the default.
    """
    load_dotenv()
    values = dict(FINANCIAL_DEFAULTS)
    for env_var, knob in _KNOB_ENV_VARS.items():
        raw = os.getenv(env_var)
        if raw is None or raw.strip() == "":
            continue
        try:
            values[knob] = float(raw)
        except ValueError:
            continue
    return values


def load_financial_knobs():
    """Build a FinancialKnobs value object from defaults + environment."""
    from roofscope.models.estimate_schema import FinancialKnobs
    return FinancialKnobs(**financial_defaults_from_env())


# ── Logging ───────────────────────────────────────────────────────────────────
LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")
LOG_JSON: bool = os.getenv("LOG_FORMAT", "json").lower() != "text"
