"""
EstimateEngine — single entry point for the estimate calculation pipeline.

    catalog resolve → quantity seeding → vendor price adjustment
        → line items + waste → category grouping → financial cascade

Pure and synchronous: reads only its inputs and allocates a fresh Estimate
on every call. Validation warnings are computed separately (see
``calculate_with_warnings``) so callers that only need numbers skip them.
"""
import logging
import time
from datetime import datetime, timezone
from typing import List, Tuple

from roofscope.models.estimate_schema import Estimate, EstimateInputs, ValidationWarning
from roofscope.services.catalog_engine import CatalogEngine, vendor_items_to_catalog
from roofscope.services.finance_engine import apply_financial_cascade, knob_fields
from roofscope.services.line_item_engine import build_line_items, group_by_category
from roofscope.services.quantity_engine import seed_quantities
from roofscope.services.validation_engine import run_validation_checks
from roofscope.services.vendor_pricing import adjusted_price_map

logger = logging.getLogger("roofscope-estimate")


class EstimateEngine:

    def __init__(self):
        self.catalog_engine = CatalogEngine()

    def calculate(self, inputs: EstimateInputs) -> Estimate:
        started = time.perf_counter()
        knobs = inputs.knobs.ensure_valid()

        catalog = self.catalog_engine.resolve(
            inputs.price_items,
            vendor_items_to_catalog(inputs.vendor_quote_items),
            inputs.custom_items,
            price_overrides=inputs.price_overrides,
            name_overrides=inputs.name_overrides,
        )
        selection = seed_quantities(
            inputs.measurements, catalog, inputs.selection, inputs.is_tear_off
        )

        # A user price override on a vendor line is already the final price
        vendor_prices = {
            item_id: price
            for item_id, price in adjusted_price_map(
                inputs.vendor_quotes, inputs.vendor_quote_items
            ).items()
            if item_id not in inputs.price_overrides
        }

        lines = build_line_items(catalog, selection, knobs.waste_percent, vendor_prices)
        line_items, optional_items, by_category, totals = group_by_category(lines)
        cascade = apply_financial_cascade(totals, knobs)

        estimate = Estimate(
            line_items=line_items,
            optional_items=optional_items,
            by_category=by_category,
            totals=totals,
            measurements=inputs.measurements,
            customer_info=inputs.customer_info,
            section_headers=inputs.section_headers,
            generated_at=inputs.generated_at or datetime.now(timezone.utc).isoformat(),
            **cascade.to_dict(),
            **knob_fields(knobs),
        )

        duration_ms = round((time.perf_counter() - started) * 1000, 2)
        logger.info(
            f"Estimate calculated: {len(line_items)} lines "
            f"({len(optional_items)} optional), final price {cascade.final_price:.2f}",
            extra={"item_count": len(line_items), "duration_ms": duration_ms},
        )
        return estimate

    def calculate_with_warnings(
        self, inputs: EstimateInputs
    ) -> Tuple[Estimate, List[ValidationWarning]]:
        estimate = self.calculate(inputs)
        return estimate, run_validation_checks(estimate)


def calculate(inputs: EstimateInputs) -> Estimate:
    return EstimateEngine().calculate(inputs)
