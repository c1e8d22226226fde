"""
Invoice form state.

The form is a plain serializable value. Every transition returns a new
form, leaving the old one untouched, so callers can keep history, diff, or
persist it between sessions.
"""
from __future__ import annotations
from dataclasses import asdict, dataclass, field, replace
from typing import Any, Iterable, Optional

from .models import Product

ROW_FIELDS = ("category_id", "product_id", "quantity", "rate")


@dataclass(frozen=True)
class FormRow:
    """A row as typed: every value is kept as the raw string."""

    category_id: str = ""
    product_id: str = ""
    quantity: str = ""
    rate: str = ""
    hsn: str = ""
    gst_rate: Optional[float] = None


@dataclass(frozen=True)
class InvoiceForm:
    customer_name: str = ""
    customer_mobile: str = ""
    rows: tuple[FormRow, ...] = field(default_factory=lambda: (FormRow(),))
    # Only read while the vendor has no invoices at all
    starting_serial: str = ""

    def to_dict(self) -> dict:
        data = asdict(self)
        data["rows"] = [asdict(r) for r in self.rows]
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "InvoiceForm":
        rows = tuple(
            FormRow(
                category_id=_text(r.get("category_id")),
                product_id=_text(r.get("product_id")),
                quantity=_text(r.get("quantity")),
                rate=_text(r.get("rate")),
                hsn=_text(r.get("hsn")),
                gst_rate=r.get("gst_rate"),
            )
            for r in data.get("rows") or []
        )
        return cls(
            customer_name=_text(data.get("customer_name")),
            customer_mobile=_text(data.get("customer_mobile")),
            rows=rows or (FormRow(),),
            starting_serial=_text(data.get("starting_serial")),
        )


def _text(value: Any) -> str:
    return "" if value is None else str(value)


def _price_text(price: float) -> str:
    return str(int(price)) if float(price).is_integer() else str(price)


def add_row(form: InvoiceForm) -> InvoiceForm:
    return replace(form, rows=form.rows + (FormRow(),))


def remove_row(form: InvoiceForm, idx: int) -> InvoiceForm:
    """Drop a row; the last remaining row is never removed."""
    if not 0 <= idx < len(form.rows):
        raise IndexError(f"Row {idx} out of range")
    if len(form.rows) == 1:
        return form
    return replace(form, rows=form.rows[:idx] + form.rows[idx + 1:])


def change_row(
    form: InvoiceForm,
    idx: int,
    key: str,
    value: Any,
    catalog: Iterable[Product] = (),
) -> InvoiceForm:
    """
    Set one field of a row.

    Picking a category clears the product and everything derived from it.
    Picking a product fills in its price, HSN and GST rate.
    """
    if key not in ROW_FIELDS:
        raise KeyError(f"Unknown row field: {key}")
    if not 0 <= idx < len(form.rows):
        raise IndexError(f"Row {idx} out of range")

    row = replace(form.rows[idx], **{key: _text(value)})

    if key == "category_id":
        row = replace(row, product_id="", rate="", hsn="", gst_rate=None)
    elif key == "product_id":
        product = next((p for p in catalog if p.id == row.product_id), None)
        if product is not None:
            row = replace(
                row,
                rate=_price_text(product.price),
                hsn=product.hsn or "",
                gst_rate=product.gst_rate or None,
            )

    rows = form.rows[:idx] + (row,) + form.rows[idx + 1:]
    return replace(form, rows=rows)


def set_customer(form: InvoiceForm, name: str = "", mobile: str = "") -> InvoiceForm:
    return replace(form, customer_name=name, customer_mobile=mobile)


def reset(form: InvoiceForm) -> InvoiceForm:
    """Clear customer and rows after a submission."""
    return InvoiceForm()
