"""
GST computation for invoice line items.

Each row's taxable value is ``quantity * rate``. CGST and SGST are each half
the product's GST rate, computed independently on the taxable value
(``taxable * rate / 200``) rather than halving a combined GST amount, so
that totals agree to the last bit with the figures printed on past invoices.
"""
from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Iterable, Mapping, Optional

from .models import Product
from .parsing import parse_float, ref_id


@dataclass(frozen=True)
class TaxedRow:
    """One invoice row with its derived tax figures."""

    category_id: Optional[str]
    product_id: Optional[str]
    quantity: float
    rate: float
    hsn: str
    gst_rate: float
    taxable_value: float
    cgst: float
    sgst: float
    total: float
    product_name: str = ""

    @property
    def gst_amount(self) -> float:
        return self.cgst + self.sgst


@dataclass(frozen=True)
class InvoiceTotals:
    rows: list[TaxedRow] = field(default_factory=list)
    subtotal: float = 0.0
    cgst_amount: float = 0.0
    sgst_amount: float = 0.0
    total_amount: float = 0.0


def _field(row: Any, name: str) -> Any:
    # Form rows, stored InvoiceRow models and plain dicts all carry the same names
    if isinstance(row, Mapping):
        return row.get(name)
    return getattr(row, name, None)


def compute_row(row: Any, product: Optional[Product]) -> TaxedRow:
    """Compute taxable value, CGST, SGST and total for a single row."""
    gst_rate = (product.gst_rate or 0.0) if product is not None else 0.0
    quantity = parse_float(_field(row, "quantity"))
    rate = parse_float(_field(row, "rate"))

    taxable_value = quantity * rate
    cgst = taxable_value * (gst_rate / 200)
    sgst = taxable_value * (gst_rate / 200)

    return TaxedRow(
        category_id=ref_id(_field(row, "category_id")),
        product_id=ref_id(_field(row, "product_id")),
        quantity=quantity,
        rate=rate,
        hsn=(product.hsn or "") if product is not None else "",
        gst_rate=gst_rate,
        taxable_value=taxable_value,
        cgst=cgst,
        sgst=sgst,
        total=taxable_value + cgst + sgst,
        product_name=product.name if product is not None else "",
    )


def compute(rows: Iterable[Any], catalog: Iterable[Product]) -> InvoiceTotals:
    """
    Compute per-row and invoice-level GST figures.

    Args:
        rows: Invoice rows (form rows, InvoiceRow models or dicts) exposing
            category_id, product_id, quantity and rate
        catalog: The vendor's products; rows referencing an unknown product
            are treated as GST-exempt with no HSN

    Returns:
        InvoiceTotals with rows in input order and the running sums
    """
    products = {p.id: p for p in catalog}

    subtotal = 0.0
    total_cgst = 0.0
    total_sgst = 0.0
    taxed = []

    for row in rows:
        taxed_row = compute_row(row, products.get(ref_id(_field(row, "product_id"))))
        subtotal += taxed_row.taxable_value
        total_cgst += taxed_row.cgst
        total_sgst += taxed_row.sgst
        taxed.append(taxed_row)

    return InvoiceTotals(
        rows=taxed,
        subtotal=subtotal,
        cgst_amount=total_cgst,
        sgst_amount=total_sgst,
        total_amount=subtotal + total_cgst + total_sgst,
    )
