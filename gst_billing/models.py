"""
Backend entity shapes.

Field aliases follow the storefront API's JSON (``_id``, ``product_name``,
``category_ID`` ...); python code uses the snake_case names. Every entity
reference is canonicalized to a string id on the way in.
"""
from __future__ import annotations
import datetime as dt
from typing import Any, Optional
from pydantic import BaseModel, ConfigDict, Field, field_validator

from .parsing import parse_date, parse_float, ref_id


class _StorefrontModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


def _id_field(value: Any) -> Optional[str]:
    return ref_id(value)


class Category(_StorefrontModel):
    id: str = Field(alias="_id")
    name: str = Field(alias="category_name")
    vendor_id: str | None = Field(default=None, alias="vendor_ID")

    _canon_ids = field_validator("id", "vendor_id", mode="before")(_id_field)


class Product(_StorefrontModel):
    id: str = Field(alias="_id")
    name: str = Field(alias="product_name")
    category_id: str = Field(alias="category_ID")
    price: float = 0.0
    hsn: str | None = None
    gst_rate: float | None = Field(default=None, alias="gstRate")
    image: str | None = None

    _canon_ids = field_validator("id", "category_id", mode="before")(_id_field)

    @field_validator("hsn", mode="before")
    @classmethod
    def _blank_hsn(cls, v):
        if v is None:
            return None
        v = str(v).strip()
        return v or None

    @field_validator("gst_rate", mode="before")
    @classmethod
    def _blank_rate(cls, v):
        if v is None or (isinstance(v, str) and not v.strip()):
            return None
        return parse_float(v)

    @field_validator("price", mode="before")
    @classmethod
    def _lenient_price(cls, v):
        return parse_float(v)

    @property
    def is_gst_exempt(self) -> bool:
        return not self.gst_rate


class InvoiceRow(_StorefrontModel):
    category_id: str | None = Field(default=None, alias="categoryId")
    product_id: str | None = Field(default=None, alias="productId")
    quantity: float = 0.0
    rate: float = 0.0
    # Denormalized copies some backend versions store alongside the ids
    product_name: str | None = Field(default=None, alias="productName")
    category_name: str | None = Field(default=None, alias="categoryName")
    hsn: str | None = None
    gst_rate: float | None = Field(default=None, alias="gstRate")

    _canon_ids = field_validator("category_id", "product_id", mode="before")(_id_field)

    @field_validator("quantity", "rate", mode="before")
    @classmethod
    def _lenient_numbers(cls, v):
        return parse_float(v)

    @field_validator("gst_rate", mode="before")
    @classmethod
    def _lenient_rate(cls, v):
        if v is None or (isinstance(v, str) and not v.strip()):
            return None
        return parse_float(v)


class Invoice(_StorefrontModel):
    id: str | None = Field(default=None, alias="_id")
    vendor_id: str | None = Field(default=None, alias="vendor_ID")
    invoice_number: str = Field(default="", alias="invoiceNumber")
    date: Optional[dt.date] = None
    customer_name: str | None = None
    customer_mobile: str | None = None
    rows: list[InvoiceRow] = Field(default_factory=list)
    total_amount: float = Field(default=0.0, alias="totalAmount")

    _canon_ids = field_validator("id", "vendor_id", mode="before")(_id_field)

    @field_validator("invoice_number", mode="before")
    @classmethod
    def _number_text(cls, v):
        return "" if v is None else str(v)

    @field_validator("date", mode="before")
    @classmethod
    def _lenient_date(cls, v):
        return parse_date(v)

    @field_validator("rows", mode="before")
    @classmethod
    def _rows_list(cls, v):
        return v if isinstance(v, list) else []

    @field_validator("total_amount", mode="before")
    @classmethod
    def _lenient_total(cls, v):
        return parse_float(v)


class VendorProfile(_StorefrontModel):
    id: str | None = Field(default=None, alias="_id")
    store_name: str = "Your Business"
    prefix: str = ""
    gstin: str | None = None
    desc: str | None = None
    logo: str | None = None
    store_address: str | None = None
    contact: str | None = None
    email: str | None = None

    _canon_ids = field_validator("id", mode="before")(_id_field)

    @field_validator("store_name", mode="before")
    @classmethod
    def _default_store_name(cls, v):
        return v or "Your Business"

    @field_validator("prefix", mode="before")
    @classmethod
    def _prefix_text(cls, v):
        return (str(v).strip() if v else "")
