"""
Tests for sales reports.
"""
import json
from pathlib import Path
import pytest
from gst_billing.models import Category, Invoice, Product
from gst_billing.reports import build_report, category_sales

FIX = Path(__file__).parent / "fixtures"


def read(p):
    return json.loads((FIX / p).read_text(encoding="utf-8"))


@pytest.fixture
def invoices():
    return [Invoice.model_validate(i) for i in read("invoices.json")]


def test_report_rows_from_stored_values(invoices):
    rows = build_report(invoices)
    assert len(rows) == 3

    first = rows[0]
    assert first.key == "i1-0"
    assert first.fy == "2024-2025"
    assert first.product == "Green Tea 100g"
    assert first.category == "Beverages"
    assert first.amount == pytest.approx(200.0)
    assert first.cgst == pytest.approx(18.0)
    assert first.total == pytest.approx(236.0)

    # Stored without names or rate; no catalog to fall back on
    second = rows[1]
    assert second.product == "N/A"
    assert second.hsn == "N/A"
    assert second.gst_rate == 0
    assert second.total == pytest.approx(100.0)

    assert rows[2].fy == "2023-2024"


def test_report_falls_back_to_catalog(invoices):
    products = [Product.model_validate(p) for p in read("products.json")]
    categories = [Category.model_validate(c) for c in read("categories.json")]
    second = build_report(invoices, products, categories)[1]
    assert second.product == "Masala Chips"
    assert second.category == "Snacks"
    assert second.hsn == "20052000"
    assert second.total == pytest.approx(112.0)


def test_category_sales_for_year(invoices):
    rows = build_report(invoices)
    sales = category_sales(rows, "2024-2025")
    assert sales == {"Beverages": pytest.approx(236.0), "N/A": pytest.approx(100.0)}
    assert category_sales(rows, "2023-2024") == {"Beverages": pytest.approx(118.0)}
    assert category_sales(rows, "2019-2020") == {}
