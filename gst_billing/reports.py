"""
Sales reports over a vendor's invoices.

One report row per invoice row, tagged with the invoice's financial year,
plus per-category sales totals for a chosen year.
"""
from __future__ import annotations
from dataclasses import dataclass
from datetime import date
from typing import Iterable, Optional

from .models import Category, Invoice, Product
from .serials import financial_year


@dataclass(frozen=True)
class ReportRow:
    key: str
    date: Optional[date]
    fy: Optional[str]
    invoice_number: str
    category: str
    product: str
    hsn: str
    gst_rate: float
    quantity: float
    rate: float
    amount: float
    cgst: float
    sgst: float
    total: float
    invoice_total: float


def build_report(
    invoices: Iterable[Invoice],
    products: Iterable[Product] = (),
    categories: Iterable[Category] = (),
) -> list[ReportRow]:
    """
    Flatten invoices into report rows.

    Names, HSN and GST rate come from the values stored on each invoice row;
    when a row lacks them the current catalog fills the gap.
    """
    products_by_id = {p.id: p for p in products}
    category_names = {c.id: c.name for c in categories}
    report = []
    for invoice in invoices:
        fy = financial_year(invoice.date) if invoice.date else None
        for idx, row in enumerate(invoice.rows):
            product = products_by_id.get(row.product_id)
            gst_rate = row.gst_rate if row.gst_rate is not None else (
                product.gst_rate if product is not None else None
            )
            gst_rate = gst_rate or 0.0
            hsn = row.hsn or (product.hsn if product is not None else None)
            product_name = row.product_name or (product.name if product is not None else None)
            category_name = row.category_name or category_names.get(row.category_id)
            amount = row.quantity * row.rate
            cgst = amount * (gst_rate / 200)
            sgst = amount * (gst_rate / 200)
            report.append(
                ReportRow(
                    key=f"{invoice.id or invoice.invoice_number}-{idx}",
                    date=invoice.date,
                    fy=fy,
                    invoice_number=invoice.invoice_number,
                    category=category_name or "N/A",
                    product=product_name or "N/A",
                    hsn=hsn or "N/A",
                    gst_rate=gst_rate,
                    quantity=row.quantity,
                    rate=row.rate,
                    amount=amount,
                    cgst=cgst,
                    sgst=sgst,
                    total=amount + cgst + sgst,
                    invoice_total=invoice.total_amount,
                )
            )
    return report


def category_sales(report: Iterable[ReportRow], fy: str) -> dict[str, float]:
    """Sum row totals per category for one financial year, skipping empty categories."""
    sales: dict[str, float] = {}
    for row in report:
        if row.fy == fy:
            sales[row.category] = sales.get(row.category, 0.0) + row.total
    return {name: value for name, value in sales.items() if value > 0}
