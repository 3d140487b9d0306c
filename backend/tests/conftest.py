"""
conftest.py — Shared pytest fixtures for the RoofScope estimator test suite.

No database, network or file fixtures are defined here. All tests in this
suite are pure unit tests that exercise the calculation engines in isolation.

Import-path bootstrapping:
    The ``backend/`` directory is inserted into sys.path so that all
    ``roofscope.*`` imports resolve correctly regardless of where pytest is
    invoked (installed or not).
"""

import sys
import os
import pytest

# ---------------------------------------------------------------------------
# Ensure ``backend/`` is on the import path before any roofscope imports occur.
# ---------------------------------------------------------------------------
_BACKEND_DIR = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if _BACKEND_DIR not in sys.path:
    sys.path.insert(0, _BACKEND_DIR)


FIXED_TIMESTAMP = "2026-01-15T09:30:00+00:00"


# ---------------------------------------------------------------------------
# Measurements
# ---------------------------------------------------------------------------

@pytest.fixture(scope="session")
def measurements():
    """
    A 30-square gable-and-hip roof.

      ridge 40, hip 20, valley 24, eave 120, rake 60 (LF)
      3 penetrations, 2 skylights, 1 chimney, pitch 6/12
    """
    from roofscope.models.estimate_schema import Measurements
    return Measurements(
        total_squares=30,
        predominant_pitch="6/12",
        ridge_length=40,
        hip_length=20,
        valley_length=24,
        eave_length=120,
        rake_length=60,
        penetrations=3,
        skylights=2,
        chimneys=1,
        complexity="moderate",
    )


@pytest.fixture(scope="session")
def knobs():
    """Default knobs: waste 10, sundries 10, office 10, margin 40, tax 10."""
    from roofscope.models.estimate_schema import FinancialKnobs
    return FinancialKnobs()


# ---------------------------------------------------------------------------
# Catalog
# ---------------------------------------------------------------------------

@pytest.fixture(scope="session")
def price_items():
    """
    Owner price list covering every quantity rule tier.

    Coverage items:   shingles (3 per sq), underlayment (1000 sqft/roll),
                      drip edge (10 lf), ridge cap h&r (20 lf), starter (100 lf)
    Manual-entry:     Snowguard Install (each), Delivery (each)
    Named cases:      OSB sheathing, Rolloff, labor per square
    Unit fallback:    pipe boot (box), valley metal (lf), ridge vent (lf)
    """
    from roofscope.models.estimate_schema import PriceListItem
    return [
        PriceListItem(id="shingles", name="Architectural Shingles", category="materials",
                      unit="bundle", price=42.0, coverage=3, coverage_unit="sq"),
        PriceListItem(id="underlayment", name="Synthetic Underlayment", category="materials",
                      unit="roll", price=95.0, coverage=1000, coverage_unit="sqft"),
        PriceListItem(id="drip", name="Drip Edge", category="materials",
                      unit="each", price=12.0, coverage=10, coverage_unit="lf"),
        PriceListItem(id="hr-cap", name="H&R Cap", category="materials",
                      unit="bundle", price=65.0, coverage=20, coverage_unit="lf"),
        PriceListItem(id="starter", name="Starter Strip", category="materials",
                      unit="bundle", price=38.0, coverage=100, coverage_unit="lf"),
        PriceListItem(id="snowguard-install", name="Snowguard Install", category="labor",
                      unit="each", price=5.0),
        PriceListItem(id="delivery", name="Delivery", category="equipment",
                      unit="each", price=150.0),
        PriceListItem(id="osb", name="OSB Sheathing 7/16", category="materials",
                      unit="sheet", price=18.0),
        PriceListItem(id="rolloff", name="Rolloff Container", category="equipment",
                      unit="load", price=600.0),
        PriceListItem(id="labor", name="Shingle Install Labor", category="labor",
                      unit="sq", price=120.0),
        PriceListItem(id="boot", name="Pipe Boot", category="accessories",
                      unit="box", price=25.0),
        PriceListItem(id="valley-metal", name="Valley Metal", category="materials",
                      unit="lf", price=4.0),
        PriceListItem(id="ridge-vent", name="Ridge Vent", category="accessories",
                      unit="lf", price=6.0),
        PriceListItem(id="skylight", name="Velux Skylight", category="accessories",
                      unit="each", price=2400.0),
    ]


@pytest.fixture(scope="session")
def vendor_quote():
    """Schafer quote: subtotal 1000, total 1080 (8% tax) → factor 1.08."""
    from roofscope.models.estimate_schema import VendorQuote
    return VendorQuote(id="q1", vendor="schafer", quote_number="S-100",
                       subtotal=1000.0, tax=80.0, total=1080.0)


@pytest.fixture(scope="session")
def vendor_quote_items():
    """Two panel lines on quote q1: 10 × 50 and 5 × 100 (Σ 1000)."""
    from roofscope.models.estimate_schema import VendorQuoteItem
    return [
        VendorQuoteItem(id="v-panel", vendor_quote_id="q1", name="Standing Seam Panel",
                        unit="each", price=50.0, quantity=10, extended_price=500.0),
        VendorQuoteItem(id="v-flash", vendor_quote_id="q1", name="Eave Flashing",
                        unit="each", price=100.0, quantity=5, extended_price=500.0,
                        vendor_category="flashing"),
    ]


@pytest.fixture
def estimate_inputs(measurements, price_items, vendor_quote, vendor_quote_items, knobs):
    """
    Full calculate() input selecting shingles, underlayment, drip edge, labor,
    a pipe boot, the skylight (optional) and both vendor lines.
    """
    from roofscope.models.estimate_schema import EstimateInputs, SelectionState
    from roofscope.services.quantity_engine import derive_quantities

    quantities = derive_quantities(measurements, price_items)
    quantities.update({"skylight": 2, "v-panel": 10, "v-flash": 5})
    selected = ["shingles", "underlayment", "drip", "labor", "boot", "skylight",
                "v-panel", "v-flash"]
    return EstimateInputs(
        measurements=measurements,
        price_items=price_items,
        vendor_quotes=[vendor_quote],
        vendor_quote_items=vendor_quote_items,
        selection=SelectionState(selected_item_ids=selected, item_quantities=quantities),
        knobs=knobs,
        generated_at=FIXED_TIMESTAMP,
    )
