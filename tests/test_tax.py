"""
Tests for GST computation.
"""
import json
from pathlib import Path
import pytest
from gst_billing.form import FormRow
from gst_billing.models import InvoiceRow, Product
from gst_billing.tax import compute, compute_row

FIX = Path(__file__).parent / "fixtures"


@pytest.fixture
def catalog():
    data = json.loads((FIX / "products.json").read_text(encoding="utf-8"))
    return [Product.model_validate(p) for p in data]


class TestComputeRow:
    """Tests for single-row computation."""

    def test_eighteen_percent_split(self):
        product = Product(id="p1", name="Tea", category_id="c1", price=100, hsn="090210", gst_rate=18)
        row = compute_row(FormRow(category_id="c1", product_id="p1", quantity="2", rate="100"), product)
        assert row.taxable_value == pytest.approx(200.00)
        assert row.cgst == pytest.approx(18.00)
        assert row.sgst == pytest.approx(18.00)
        assert row.total == pytest.approx(236.00)
        assert row.hsn == "090210"
        assert row.gst_rate == 18

    def test_exempt_product_has_no_tax(self):
        product = Product(id="p3", name="Rice", category_id="c2", price=55.5)
        row = compute_row({"product_id": "p3", "quantity": "3", "rate": "10"}, product)
        assert row.cgst == 0
        assert row.sgst == 0
        assert row.total == row.taxable_value == pytest.approx(30.0)

    def test_unknown_product_defaults(self):
        row = compute_row(FormRow(product_id="missing", quantity="1", rate="50"), None)
        assert row.gst_rate == 0
        assert row.hsn == ""
        assert row.total == pytest.approx(50.0)

    def test_non_numeric_inputs_count_as_zero(self):
        row = compute_row(FormRow(product_id="p1", quantity="two", rate=""), None)
        assert row.quantity == 0
        assert row.rate == 0
        assert row.total == 0

    def test_components_computed_independently(self):
        # Each half is taxable * rate / 200, not (taxable * rate / 100) / 2
        product = Product(id="p", name="X", category_id="c", hsn="123456", gst_rate=5)
        row = compute_row(FormRow(product_id="p", quantity="3", rate="33.33"), product)
        taxable = 3 * 33.33
        assert row.cgst == taxable * (5 / 200)
        assert row.sgst == taxable * (5 / 200)


class TestCompute:
    """Tests for invoice-level totals."""

    def test_totals_across_rows(self, catalog):
        rows = [
            FormRow(category_id="c1", product_id="p1", quantity="2", rate="100"),
            FormRow(category_id="c2", product_id="p2", quantity="5", rate="20"),
            FormRow(category_id="c2", product_id="p3", quantity="1", rate="55.5"),
        ]
        totals = compute(rows, catalog)

        assert [r.product_id for r in totals.rows] == ["p1", "p2", "p3"]
        assert totals.subtotal == pytest.approx(355.5)
        assert totals.cgst_amount == pytest.approx(18 + 6)
        assert totals.sgst_amount == pytest.approx(18 + 6)
        assert totals.total_amount == pytest.approx(403.5)
        assert totals.total_amount == pytest.approx(sum(r.total for r in totals.rows))

    def test_stored_invoice_rows(self, catalog):
        rows = [InvoiceRow.model_validate({"categoryId": "c1", "productId": {"_id": "p1"}, "quantity": 2, "rate": 100})]
        totals = compute(rows, catalog)
        assert totals.rows[0].product_id == "p1"
        assert totals.total_amount == pytest.approx(236.0)

    def test_empty_rows(self, catalog):
        totals = compute([], catalog)
        assert totals.rows == []
        assert totals.total_amount == 0

    def test_partial_input_still_previews(self, catalog):
        rows = [
            FormRow(category_id="c1", product_id="p1", quantity="", rate="100"),
            FormRow(),
        ]
        totals = compute(rows, catalog)
        assert totals.total_amount == 0
        assert len(totals.rows) == 2
