"""
Validation Rule Engine — advisory sanity checks over a finished Estimate.

Every finding is a ValidationWarning with severity "warning"; nothing here
raises or blocks saving/export.
"""
import logging
from typing import Callable, List, Optional

from roofscope.config import (
    DRIP_EDGE_KEYWORD,
    MARGIN_HIGH_WARNING_PCT,
    MARGIN_LOW_WARNING_PCT,
    MIN_MATERIALS_COST_PER_SQUARE,
    UNDERLAYMENT_KEYWORDS,
)
from roofscope.models.estimate_schema import Estimate, ValidationWarning

logger = logging.getLogger("roofscope-validation")

Check = Callable[[Estimate], Optional[ValidationWarning]]


def _check_waste_zero(estimate: Estimate) -> Optional[ValidationWarning]:
    if estimate.waste_percent == 0:
        return ValidationWarning(
            id="waste-zero",
            message="Waste % is 0 (typically should be 10-15%)",
            field="wastePercent",
        )
    return None


def _check_no_labor(estimate: Estimate) -> Optional[ValidationWarning]:
    if not estimate.by_category.get("labor"):
        return ValidationWarning(id="no-labor", message="No labor items selected")
    return None


def _check_no_underlayment(estimate: Estimate) -> Optional[ValidationWarning]:
    has_underlayment = any(
        keyword in line.name.lower()
        for line in estimate.by_category.get("materials", [])
        for keyword in UNDERLAYMENT_KEYWORDS
    )
    if not has_underlayment:
        return ValidationWarning(
            id="no-underlayment",
            message="No underlayment selected; most roofs require underlayment",
        )
    return None


def _check_no_drip_edge(estimate: Estimate) -> Optional[ValidationWarning]:
    lines = [*estimate.by_category.get("materials", []), *estimate.by_category.get("accessories", [])]
    if not any(DRIP_EDGE_KEYWORD in line.name.lower() for line in lines):
        return ValidationWarning(id="no-drip-edge", message="No drip edge selected")
    return None


def _check_margin_low(estimate: Estimate) -> Optional[ValidationWarning]:
    if estimate.margin_percent < MARGIN_LOW_WARNING_PCT:
        return ValidationWarning(
            id="margin-low",
            message=f"Margin is below {MARGIN_LOW_WARNING_PCT:g}%. Is this intentional?",
            field="marginPercent",
        )
    return None


def _check_margin_high(estimate: Estimate) -> Optional[ValidationWarning]:
    if estimate.margin_percent > MARGIN_HIGH_WARNING_PCT:
        return ValidationWarning(
            id="margin-high",
            message=f"Margin is above {MARGIN_HIGH_WARNING_PCT:g}%. Is this intentional?",
            field="marginPercent",
        )
    return None


def _check_materials_low(estimate: Estimate) -> Optional[ValidationWarning]:
    floor = estimate.measurements.total_squares * MIN_MATERIALS_COST_PER_SQUARE
    if estimate.totals.get("materials", 0.0) < floor:
        return ValidationWarning(
            id="materials-low",
            message="Materials cost seems low for roof size; verify items are selected",
        )
    return None


# Evaluated in order; output order follows this list
VALIDATION_CHECKS: List[Check] = [
    _check_waste_zero,
    _check_no_labor,
    _check_no_underlayment,
    _check_no_drip_edge,
    _check_margin_low,
    _check_margin_high,
    _check_materials_low,
]


def run_validation_checks(estimate: Estimate) -> List[ValidationWarning]:
    warnings = [w for w in (check(estimate) for check in VALIDATION_CHECKS) if w is not None]
    if warnings:
        logger.debug("Validation: %s", ", ".join(w.id for w in warnings))
    return warnings
