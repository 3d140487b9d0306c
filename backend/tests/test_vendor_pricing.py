"""
test_vendor_pricing.py — Vendor Price Adjustment and quote normalisation.

Tests cover:
  - Overhead factor = total / subtotal, falling back to 1
  - Computed subtotal from extended prices (qty × price when missing)
  - Adjusted unit price map per quote
  - Vendor tax + fees total
  - build_vendor_quote normalisation of extracted data
"""

import pytest

from roofscope.models.estimate_schema import VendorQuote, VendorQuoteItem
from roofscope.services.vendor_pricing import (
    adjusted_price_map,
    build_vendor_quote,
    format_vendor_name,
    normalize_vendor,
    overhead_factor,
    quote_item_subtotals,
    resolve_quote_amounts,
    to_number,
    vendor_tax_fees_total,
)


class TestOverheadFactor:

    def test_scenario_eight_percent_tax(self, vendor_quote, vendor_quote_items):
        """subtotal 1000, total 1080, raw price 50 → 54.00."""
        prices = adjusted_price_map([vendor_quote], vendor_quote_items)
        assert prices["v-panel"] == pytest.approx(54.0)
        assert prices["v-flash"] == pytest.approx(108.0)

    def test_factor_uses_vendor_subtotal(self, vendor_quote):
        assert overhead_factor(vendor_quote, computed_subtotal=500.0) == pytest.approx(1.08)

    def test_missing_total_means_no_adjustment(self):
        quote = VendorQuote(id="q", subtotal=1000.0, total=0.0)
        assert overhead_factor(quote) == 1.0

    def test_missing_subtotal_uses_computed(self):
        """computed 1000, total 1100 → 1.1."""
        quote = VendorQuote(id="q", subtotal=0.0, total=1100.0)
        assert overhead_factor(quote, computed_subtotal=1000.0) == pytest.approx(1.1)

    def test_nothing_known_is_one(self):
        assert overhead_factor(VendorQuote(id="q")) == 1.0

    def test_computed_subtotal_falls_back_to_qty_times_price(self):
        items = [
            VendorQuoteItem(id="1", vendor_quote_id="q", price=10, quantity=3, extended_price=0),
            VendorQuoteItem(id="2", vendor_quote_id="q", price=5, quantity=2, extended_price=12),
            VendorQuoteItem(id="3", vendor_quote_id="other", price=1, quantity=1),
        ]
        assert quote_item_subtotals(items) == {"q": 42.0, "other": 1.0}

    def test_item_of_unknown_quote_keeps_raw_price(self, vendor_quote):
        orphan = VendorQuoteItem(id="o", vendor_quote_id="missing", price=33.0)
        assert adjusted_price_map([vendor_quote], [orphan]) == {"o": 33.0}

    def test_adjusted_lines_reconcile_to_vendor_total(self, vendor_quote, vendor_quote_items):
        """Σ qty × adjusted price == quote total."""
        prices = adjusted_price_map([vendor_quote], vendor_quote_items)
        total = sum(item.quantity * prices[item.id] for item in vendor_quote_items)
        assert total == pytest.approx(vendor_quote.total)

    def test_tax_fees_total(self, vendor_quote, vendor_quote_items):
        second = VendorQuote(id="q2", subtotal=200.0, total=230.0)
        assert vendor_tax_fees_total([vendor_quote, second], vendor_quote_items) == pytest.approx(110.0)

    def test_resolved_amounts_match_tax_fees_and_factor(self):
        """Missing subtotal and total: computed 300 used for both, factor 1, no fees."""
        quote = VendorQuote(id="q")
        items = [VendorQuoteItem(id="a", vendor_quote_id="q", price=100.0, quantity=3)]
        assert resolve_quote_amounts(quote, computed_subtotal=300.0) == (300.0, 300.0, 1.0)
        assert vendor_tax_fees_total([quote], items) == 0.0
        assert overhead_factor(quote, 300.0) == resolve_quote_amounts(quote, 300.0)[2]

    def test_resolved_amounts_missing_subtotal(self):
        """computed 1000, total 1100 → fees 100, factor 1.1."""
        quote = VendorQuote(id="q", total=1100.0)
        items = [VendorQuoteItem(id="a", vendor_quote_id="q", price=250.0, quantity=4)]
        subtotal, total, factor = resolve_quote_amounts(quote, 1000.0)
        assert (subtotal, total) == (1000.0, 1100.0)
        assert factor == pytest.approx(1.1)
        assert vendor_tax_fees_total([quote], items) == pytest.approx(100.0)


class TestNormalisation:

    @pytest.mark.parametrize("raw,expected", [
        ("Schafer Metals", "schafer"),
        ("TRA Snow & Sun", "tra"),
        ("Rocky Mountain Supply", "rocky-mountain"),
        ("", "schafer"),
        (None, "schafer"),
    ])
    def test_normalize_vendor(self, raw, expected):
        assert normalize_vendor(raw) == expected

    def test_format_vendor_name(self):
        assert format_vendor_name("tra") == "TRA"
        assert format_vendor_name("rocky-mountain") == "Rocky Mountain"

    @pytest.mark.parametrize("raw,expected", [
        (12, 12.0), ("$1,080.50", 1080.5), ("12 LF", 12.0), ("n/a", 0.0), (None, 0.0),
        (float("nan"), 0.0),
    ])
    def test_to_number(self, raw, expected):
        assert to_number(raw) == expected

    def test_build_vendor_quote_fills_missing_totals(self):
        parsed = {
            "vendor": "Schafer",
            "quote_number": "Q-9",
            "tax": "40",
            "items": [
                {"name": "Panel", "quantity": "10", "price": "$50.00"},
                {"name": "", "quantity": 2, "price": 100, "extended_price": 200,
                 "category": "Equipment", "vendor_category": "gutters"},
            ],
        }
        quote, items = build_vendor_quote(parsed, file_name="quote.pdf", quote_id="qid")
        assert quote.id == "qid"
        assert quote.subtotal == 700.0        # 500 + 200
        assert quote.total == 740.0           # subtotal + tax
        assert quote.file_name == "quote.pdf"
        assert items[0].extended_price == 500.0
        assert items[0].vendor_quote_id == "qid"
        assert items[1].name == "Vendor Item"
        assert items[1].category == "equipment"
        assert items[1].vendor_category == "panels"
        assert len({items[0].id, items[1].id}) == 2
