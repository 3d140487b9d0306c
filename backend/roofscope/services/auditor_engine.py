"""
Estimate auditor: arithmetic consistency of a stored or imported Estimate.

Unlike the validation rules, which judge a fresh calculation, the auditor
checks that the numbers written into an estimate still agree with each other
(line totals vs quantity × price, category totals vs their lines).
"""
from dataclasses import dataclass, field
from typing import Dict, List

from roofscope.config import (
    AUDIT_TOLERANCE,
    CATEGORIES,
    MARGIN_HIGH_WARNING_PCT,
    MARGIN_LOW_WARNING_PCT,
)
from roofscope.models.estimate_schema import Estimate


@dataclass
class AuditResult:
    is_valid: bool
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)


def _approx_equal(a: float, b: float) -> bool:
    return abs(a - b) <= AUDIT_TOLERANCE


def audit_estimate(estimate: Estimate) -> AuditResult:
    errors: List[str] = []
    warnings: List[str] = []

    all_lines = [*estimate.line_items, *estimate.optional_items]
    if not all_lines:
        return AuditResult(is_valid=False, errors=["No line items in estimate"])

    for line in all_lines:
        expected = line.quantity * line.price
        if not _approx_equal(line.total, expected):
            errors.append(
                f'Line "{line.name}": total ${line.total:.2f} does not match '
                f"quantity × price ({line.quantity:g} × ${line.price:g} = ${expected:.2f})"
            )
        if line.total < 0:
            errors.append(f'Line "{line.name}": negative total is not allowed')

    computed: Dict[str, float] = {
        category: sum(line.total for line in estimate.by_category.get(category, []))
        for category in CATEGORIES
    }
    for category in CATEGORIES:
        stored = estimate.totals.get(category, 0.0)
        if not _approx_equal(stored, computed[category]):
            errors.append(
                f'Category "{category}" total mismatch: stored ${stored:.2f} '
                f"vs sum of items ${computed[category]:.2f}"
            )

    if estimate.margin_percent < MARGIN_LOW_WARNING_PCT:
        warnings.append(f"Margin is low ({estimate.margin_percent:g}%). Consider increasing.")
    if estimate.margin_percent > MARGIN_HIGH_WARNING_PCT:
        warnings.append(f"Margin is high ({estimate.margin_percent:g}%). Verify this is intentional.")

    return AuditResult(is_valid=not errors, errors=errors, warnings=warnings)
