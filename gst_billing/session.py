"""
Billing session for one vendor.

Coordinates the storefront API with the local computations:
- Snapshot refresh: profile, categories, products, invoices
- Invoice preview and submission (validation, serial, tax, payload, document)
- Catalog edits guarded by usage locks before any request is sent
- Profile edits (invoice prefix)
"""
from __future__ import annotations
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any, Optional
from loguru import logger

from .client import StorefrontClient, StorefrontConnectionError, StorefrontResponseError
from .config import BillingConfig
from .documents import InvoiceDocumentRenderer
from .events import BillingEvent, EventBus
from .form import InvoiceForm
from .models import Category, Invoice, Product, VendorProfile
from .parsing import parse_float
from .serials import SerialAllocator, financial_year, format_invoice_number
from .tax import InvoiceTotals, compute
from .usage import (
    PRODUCT_IDENTITY_FIELDS,
    ensure_category_deletable,
    ensure_category_editable,
    ensure_product_deletable,
    ensure_product_editable,
)
from .validators import (
    ValidationError,
    validate_prefix,
    validate_product_fields,
    validate_rows,
)

READ_ONLY_PROFILE_FIELDS = ("store_name", "gstin", "createdAt")
EDITABLE_PRODUCT_FIELDS = PRODUCT_IDENTITY_FIELDS + ("image",)

# Backend field names ("product_name", "gstRate" ...) mapped to model names
PRODUCT_FIELD_ALIASES = {
    info.alias: name for name, info in Product.model_fields.items() if info.alias
}


@dataclass
class Snapshot:
    """Vendor data as last fetched from the storefront."""

    profile: VendorProfile = field(default_factory=VendorProfile)
    categories: list[Category] = field(default_factory=list)
    products: list[Product] = field(default_factory=list)
    invoices: list[Invoice] = field(default_factory=list)


@dataclass(frozen=True)
class SubmittedInvoice:
    invoice: Invoice
    totals: InvoiceTotals
    document: Path


class BillingSession:
    """
    Main entry point for billing operations.

    Usage:
        with BillingSession(vendor_id) as session:
            session.refresh()
            totals = session.preview(form)
            result = session.submit_invoice(form)
    """

    def __init__(
        self,
        vendor_id: Optional[str] = None,
        config: Optional[BillingConfig] = None,
        client: Optional[StorefrontClient] = None,
        renderer: Optional[InvoiceDocumentRenderer] = None,
        bus: Optional[EventBus] = None,
    ):
        self.config = config or BillingConfig.from_env()
        self.vendor_id = vendor_id or self.config.vendor_id
        if not self.vendor_id:
            raise ValueError("vendor_id is required")
        self.client = client or StorefrontClient(self.config)
        self.renderer = renderer or InvoiceDocumentRenderer(self.config.output_dir)
        self.bus = bus or EventBus()
        self.snapshot = Snapshot()
        self.allocator: Optional[SerialAllocator] = None

    def refresh(self) -> Snapshot:
        """Fetch the vendor's profile, catalog and invoices."""
        logger.debug(f"Refreshing snapshot for vendor {self.vendor_id}")
        self.snapshot = Snapshot(
            profile=self.client.get_vendor(self.vendor_id),
            categories=self.client.list_categories(self.vendor_id),
            products=self.client.list_products(self.vendor_id),
            invoices=self.client.list_invoices(self.vendor_id),
        )
        if self.allocator is None:
            self.allocator = SerialAllocator.for_vendor(self.snapshot.invoices)
        else:
            self.allocator.observe(self.snapshot.invoices)
        logger.info(
            f"Loaded {len(self.snapshot.categories)} categories, "
            f"{len(self.snapshot.products)} products, "
            f"{len(self.snapshot.invoices)} invoices"
        )
        return self.snapshot

    def _ensure_loaded(self) -> None:
        if self.allocator is None:
            self.refresh()

    @property
    def prefix(self) -> str:
        return self.snapshot.profile.prefix or self.config.default_prefix

    @property
    def needs_starting_serial(self) -> bool:
        self._ensure_loaded()
        return self.allocator.needs_starting_serial

    # Invoices

    def preview(self, form: InvoiceForm) -> InvoiceTotals:
        """Totals for the form as it stands; incomplete rows count as zero."""
        self._ensure_loaded()
        return compute(form.rows, self.snapshot.products)

    def next_invoice_number(
        self, on: Optional[datetime] = None, starting_serial: Any = None
    ) -> str:
        self._ensure_loaded()
        fy = financial_year(on or datetime.now())
        serial = self.allocator.allocate(self.snapshot.invoices, fy, starting_serial)
        return format_invoice_number(self.prefix, fy, serial)

    def build_payload(
        self, form: InvoiceForm, invoice_number: str, totals: InvoiceTotals, on: datetime
    ) -> dict:
        return {
            "vendor_ID": self.vendor_id,
            "customer_name": form.customer_name,
            "customer_mobile": form.customer_mobile,
            "rows": [
                {
                    "categoryId": row.category_id,
                    "productId": row.product_id,
                    "quantity": row.quantity,
                    "rate": row.rate,
                }
                for row in totals.rows
            ],
            "totalAmount": totals.total_amount,
            "invoiceNumber": invoice_number,
            "date": on.isoformat(),
        }

    def submit_invoice(self, form: InvoiceForm, on: Optional[datetime] = None) -> SubmittedInvoice:
        """
        Validate, number, save and render an invoice.

        Raises:
            ValidationError: If a row is incomplete or a first-time vendor
                gave no valid starting serial; nothing is sent
            StorefrontConnectionError, StorefrontResponseError: If saving fails
        """
        self._ensure_loaded()
        validate_rows(form.rows)

        on = on or datetime.now()
        invoice_number = self.next_invoice_number(on, form.starting_serial)
        totals = compute(form.rows, self.snapshot.products)
        payload = self.build_payload(form, invoice_number, totals, on)

        logger.info(f"Submitting invoice {invoice_number} ({totals.total_amount:.2f})")
        saved = self.client.create_invoice(payload)
        self.allocator.mark_submitted()

        invoice = Invoice.model_validate(saved if isinstance(saved, dict) and saved else payload)
        if not invoice.invoice_number:
            invoice = invoice.model_copy(update={"invoice_number": invoice_number})

        # The invoice is saved from here on; a stale snapshot must not fail the submission
        try:
            self.refresh()
        except (StorefrontConnectionError, StorefrontResponseError) as e:
            logger.warning(f"Invoice {invoice.invoice_number} saved but refresh failed: {e}")
            self.snapshot.invoices.append(invoice)

        document = self.renderer.render_invoice_document(self.snapshot.profile, invoice, totals)
        self.bus.publish(BillingEvent.INVOICE_CREATED, invoice)
        return SubmittedInvoice(invoice=invoice, totals=totals, document=document)

    # Categories

    def _category(self, category_id: str) -> Category:
        for category in self.snapshot.categories:
            if category.id == category_id:
                return category
        raise KeyError(f"Unknown category: {category_id}")

    def add_category(self, name: str) -> Category:
        if not name or not name.strip():
            raise ValidationError("Category name is required")
        category = self.client.create_category(self.vendor_id, name.strip())
        self.bus.publish(BillingEvent.CATEGORY_ADDED, category)
        self.refresh()
        return category

    def rename_category(self, category_id: str, name: str) -> None:
        if not name or not name.strip():
            raise ValidationError("Category name is required")
        self._ensure_loaded()
        category = self._category(category_id)
        ensure_category_editable(category, {"name": name.strip()}, self.snapshot.products)
        self.client.update_category(category_id, name.strip())
        self.bus.publish(BillingEvent.CATEGORY_UPDATED, category_id)
        self.refresh()

    def delete_category(self, category_id: str) -> None:
        self._ensure_loaded()
        ensure_category_deletable(category_id, self.snapshot.products)
        self.client.delete_category(category_id)
        self.bus.publish(BillingEvent.CATEGORY_DELETED, category_id)
        self.refresh()

    # Products

    def _product(self, product_id: str) -> Product:
        for product in self.snapshot.products:
            if product.id == product_id:
                return product
        raise KeyError(f"Unknown product: {product_id}")

    def add_product(
        self,
        name: str,
        category_id: str,
        price: Any,
        hsn: Optional[str] = None,
        gst_rate: Any = None,
    ) -> Product:
        validate_product_fields(name, category_id, price, hsn, gst_rate)
        fields = {
            "name": name.strip(),
            "category_id": category_id,
            "price": parse_float(price),
            "hsn": hsn or None,
            "gst_rate": gst_rate,
        }
        product = self.client.create_product(fields)
        self.bus.publish(BillingEvent.PRODUCT_ADDED, product)
        self.refresh()
        return product

    def update_product(self, product_id: str, changes: dict) -> None:
        """
        Update a product.

        A product already on an invoice only accepts a new image; any other
        change raises LockConflictError before a request is made.
        Keys may use either model names ("name") or backend names
        ("product_name"); any other key raises ValidationError.
        """
        changes = _product_changes(changes)
        self._ensure_loaded()
        product = self._product(product_id)
        ensure_product_editable(product, changes, self.snapshot.invoices)

        if any(name in changes for name in PRODUCT_IDENTITY_FIELDS):
            merged = product.model_dump()
            merged.update(changes)
            validate_product_fields(
                merged["name"],
                merged["category_id"],
                merged["price"],
                merged.get("hsn"),
                merged.get("gst_rate"),
            )
        self.client.update_product(product_id, changes)
        self.bus.publish(BillingEvent.PRODUCT_UPDATED, product_id)
        self.refresh()

    def delete_product(self, product_id: str) -> None:
        self._ensure_loaded()
        ensure_product_deletable(product_id, self.snapshot.invoices)
        self.client.delete_product(product_id)
        self.bus.publish(BillingEvent.PRODUCT_DELETED, product_id)
        self.refresh()

    # Profile

    def update_profile(self, fields: dict) -> None:
        """Update editable profile fields. Past invoice numbers keep their prefix."""
        locked = [name for name in fields if name in READ_ONLY_PROFILE_FIELDS]
        if locked:
            raise ValidationError(f"Cannot change {', '.join(locked)}")
        fields = dict(fields)
        if "prefix" in fields:
            fields["prefix"] = validate_prefix(fields["prefix"])
        self.client.update_vendor(self.vendor_id, fields)
        self.bus.publish(BillingEvent.PROFILE_UPDATED, fields)
        self.refresh()

    def close(self):
        """Close the API session."""
        self.client.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False


def _product_changes(changes: dict) -> dict:
    """Rename backend keys to model names and reject unknown fields."""
    normalized = {}
    unknown = []
    for key, value in changes.items():
        name = PRODUCT_FIELD_ALIASES.get(key, key)
        if name in EDITABLE_PRODUCT_FIELDS:
            normalized[name] = value
        else:
            unknown.append(key)
    if unknown:
        raise ValidationError(f"Unknown product field(s): {', '.join(unknown)}")
    return normalized
