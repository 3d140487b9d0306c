"""
test_csv_import.py — contractor CSV → Estimate.
"""

import pytest

from roofscope.errors import CsvImportError
from roofscope.services.auditor_engine import audit_estimate
from roofscope.services.csv_import import CSV_TEMPLATE, parse_estimate_csv


class TestParseEstimateCsv:

    def test_parses_template(self):
        result = parse_estimate_csv(CSV_TEMPLATE)
        assert result.success
        est = result.estimate
        assert est.customer_info.name == "Customer Name"
        assert est.customer_info.address == "123 Main St"
        assert [l.name for l in est.by_category["materials"]] == ["Brava Field Tile"]
        assert len(est.by_category["labor"]) == 1
        assert len(est.by_category["equipment"]) == 4

    def test_categories_and_totals(self):
        csv = (
            "Name,Address,Description,Quantity,Unit,Unit Price,Total,Category,Notes\n"
            "John Smith,123 Main St,Brava Field Tile,28,bundle,43.25,1211,materials,\n"
            ",,Hugo (standard),25,sq,550,13750,labor,\n"
            ",,Porto Potty,1,flat,600,600,equipment,\n"
        )
        est = parse_estimate_csv(csv).estimate
        assert est.totals["materials"] == pytest.approx(1211.0)
        assert est.totals["labor"] == pytest.approx(13750.0)
        # sundries 10% of materials
        assert est.sundries_amount == pytest.approx(121.1)
        assert est.margin_percent == 40
        assert est.waste_percent == 10
        assert est.base_cost == pytest.approx(1211 + 13750 + 600 + 121.1)

    def test_imported_lines_carry_final_quantities(self):
        csv = "Description,Quantity,Unit,Unit Price,Total,Category\nTile,28,bundle,43.25,1211,materials"
        [line] = parse_estimate_csv(csv).estimate.line_items
        assert line.kind == "imported"
        assert line.quantity == 28
        assert line.base_quantity == 28
        assert line.waste_added == 0
        assert line.id == "csv_1"

    def test_defaults_when_customer_missing(self):
        csv = "Description,Quantity,Unit,Unit Price,Total,Category\nTile,28,bundle,43.25,1211,materials"
        est = parse_estimate_csv(csv).estimate
        assert est.customer_info.name == ""
        assert est.customer_info.address == ""

    def test_optional_from_notes(self):
        csv = (
            "Description,Quantity,Unit,Unit Price,Total,Category,Notes\n"
            "Brava Field Tile,28,bundle,43.25,1211,materials,\n"
            "Skylight,1,each,2400,2400,accessories,Optional - not included\n"
        )
        est = parse_estimate_csv(csv).estimate
        assert len(est.line_items) == 1
        [opt] = est.optional_items
        assert opt.name == "Skylight"
        assert opt.is_optional
        assert est.totals["accessories"] == 0

    def test_header_aliases_and_item_column(self):
        csv = "Item,Desc,Qty,Price,Total,Cat\nSome Material,Long text,10,50,500,mats"
        [line] = parse_estimate_csv(csv).estimate.line_items
        assert line.name == "Some Material"
        assert line.proposal_description == "Long text"
        assert line.category == "materials"

    @pytest.mark.parametrize("raw,expected", [
        ("material", "materials"), ("Vendor", "schafer"), ("LABOR", "labor"), ("gutters", "materials"),
    ])
    def test_category_aliases(self, raw, expected):
        csv = f"Description,Quantity,Unit Price,Category\nThing,1,10,{raw}"
        assert parse_estimate_csv(csv).estimate.line_items[0].category == expected

    def test_landfill_renamed_and_rolloff_skipped(self):
        csv = (
            "Description,Quantity,Unit,Unit Price,Total,Category\n"
            "Landfill Charge,1,each,750,750,equipment\n"
            "Rolloff,2,each,600,1200,equipment\n"
        )
        est = parse_estimate_csv(csv).estimate
        assert [l.name for l in est.line_items] == ["Debris Haulaway & Landfill"]

    def test_intro_rows_become_letter_text(self):
        csv = (
            "Description,Quantity,Unit Price,Category\n"
            "Thank you for the opportunity.,,,Intro\n"
            "We look forward to working with you.,,,intro\n"
            "Tile,10,40,materials\n"
        )
        est = parse_estimate_csv(csv).estimate
        assert est.intro_letter_text == (
            "Thank you for the opportunity.\n\nWe look forward to working with you."
        )
        assert len(est.line_items) == 1

    def test_price_derived_from_total(self):
        csv = 'Description,Quantity,Total,Category\nTile,4,"$1,000.00",materials'
        [line] = parse_estimate_csv(csv).estimate.line_items
        assert line.price == pytest.approx(250.0)
        assert line.total == pytest.approx(1000.0)

    def test_total_derived_from_price(self):
        csv = "Description,Quantity,Unit Price,Category\nTile,4,25,materials"
        assert parse_estimate_csv(csv).estimate.line_items[0].total == pytest.approx(100.0)

    def test_imported_estimate_passes_audit(self):
        est = parse_estimate_csv(CSV_TEMPLATE).estimate
        assert audit_estimate(est).is_valid


class TestCsvErrors:

    def test_missing_columns(self):
        result = parse_estimate_csv("Col1,Col2\na,b")
        assert not result.success
        assert result.errors == [
            "CSV must have Description or Item column",
            "CSV must have Category column",
        ]

    def test_header_only(self):
        result = parse_estimate_csv("Description,Quantity,Category")
        assert not result.success
        assert result.errors == ["CSV must have a header row and at least one data row"]

    def test_empty_text(self):
        assert not parse_estimate_csv("").success

    def test_unreadable_csv_raises(self):
        with pytest.raises(CsvImportError):
            parse_estimate_csv('Description,Category\n"unterminated,materials\n')
