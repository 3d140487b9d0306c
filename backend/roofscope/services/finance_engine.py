"""
Financial Cascade — category subtotals → customer price.

Covers:
  - Sundries (materials allowance) on materials + vendor-quote totals
  - Office allocation on base cost
  - Margin as profit-as-percent-of-sell-price (inverted step)
  - Sales tax on sell price
  - Recalculation of an existing estimate against new knobs

No intermediate rounding: currency is rounded only when displayed.
"""
from dataclasses import asdict, dataclass
from typing import Dict, Mapping
import logging

from roofscope.config import SUNDRIES_BASE_CATEGORIES
from roofscope.models.estimate_schema import Estimate, FinancialKnobs
from roofscope.services.line_item_engine import group_by_category, rebase_line_item

logger = logging.getLogger("roofscope-finance")


@dataclass(frozen=True)
class CascadeResult:
    sundries_amount: float
    base_cost: float
    office_allocation: float
    total_cost: float
    sell_price: float
    gross_profit: float
    profit_margin: float
    sales_tax_amount: float
    final_price: float

    def to_dict(self) -> Dict[str, float]:
        return asdict(self)


def apply_financial_cascade(totals: Mapping[str, float], knobs: FinancialKnobs) -> CascadeResult:
    """
    Run the six-step cascade over category totals.

    Raises ConfigurationError (before any arithmetic) when margin >= 100.
    """
    knobs.ensure_valid()

    sundries_base = sum(totals.get(category, 0.0) for category in SUNDRIES_BASE_CATEGORIES)
    sundries_amount = sundries_base * knobs.sundries_percent / 100

    base_cost = sum(totals.values()) + sundries_amount

    office_allocation = base_cost * knobs.office_cost_percent / 100
    total_cost = base_cost + office_allocation

    sell_price = total_cost / (1 - knobs.margin_percent / 100)

    gross_profit = sell_price - total_cost
    profit_margin = gross_profit / sell_price * 100 if sell_price != 0 else 0.0

    sales_tax_amount = sell_price * knobs.sales_tax_percent / 100
    final_price = sell_price + sales_tax_amount

    logger.debug(
        "Cascade: base=%.2f office=%.2f cost=%.2f sell=%.2f final=%.2f",
        base_cost, office_allocation, total_cost, sell_price, final_price,
    )
    return CascadeResult(
        sundries_amount=sundries_amount,
        base_cost=base_cost,
        office_allocation=office_allocation,
        total_cost=total_cost,
        sell_price=sell_price,
        gross_profit=gross_profit,
        profit_margin=profit_margin,
        sales_tax_amount=sales_tax_amount,
        final_price=final_price,
    )


def knob_fields(knobs: FinancialKnobs) -> Dict[str, float]:
    """Knob values as Estimate field updates."""
    return {
        "waste_percent": knobs.waste_percent,
        "sundries_percent": knobs.sundries_percent,
        "office_cost_percent": knobs.office_cost_percent,
        "margin_percent": knobs.margin_percent,
        "sales_tax_percent": knobs.sales_tax_percent,
    }


def recalculate_financials(estimate: Estimate, knobs: FinancialKnobs) -> Estimate:
    """
    Re-price an existing (typically reloaded) estimate with new knobs.

    Waste is recomputed from each line's base quantity, categories are
    regrouped and the same cascade as a live calculation is applied. The
    input estimate is not modified.
    """
    knobs.ensure_valid()

    lines = [
        rebase_line_item(line, knobs.waste_percent)
        for line in [*estimate.line_items, *estimate.optional_items]
    ]
    line_items, optional_items, by_category, totals = group_by_category(lines)
    cascade = apply_financial_cascade(totals, knobs)

    logger.info(
        "Recalculated estimate: %d lines, final price %.2f",
        len(line_items), cascade.final_price,
        extra={"item_count": len(line_items)},
    )
    return estimate.model_copy(update={
        "line_items": line_items,
        "optional_items": optional_items,
        "by_category": by_category,
        "totals": totals,
        **cascade.to_dict(),
        **knob_fields(knobs),
    })
