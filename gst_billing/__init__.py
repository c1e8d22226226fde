"""
GST Billing - invoicing client for a storefront REST API.

Vendors keep a catalog of categories and products on the storefront
backend and issue GST invoices from it. This package computes everything
the backend leaves to the client.

Key Features:
- Line-item GST computation with an equal CGST/SGST split
- Invoice numbering per financial year, with a starting serial for new vendors
- Usage locks on products and categories already referenced
- Pre-submission validation of rows, products and prefixes
- HTML and thermal-printer receipts rendered from Jinja2 templates
- Sales reports by financial year and category

Usage:
    # Next invoice number
    python -m gst_billing --next-number

    # Submit an invoice from a saved form
    python -m gst_billing --submit form.json --print
"""

__version__ = "1.0.0"

from .config import BillingConfig
from .session import BillingSession, SubmittedInvoice
from .tax import InvoiceTotals, TaxedRow, compute
from .serials import SerialAllocator, financial_year, format_invoice_number, next_serial
from .usage import LockConflictError, is_category_used, is_product_used
from .validators import ValidationError

__all__ = [
    "BillingConfig",
    "BillingSession",
    "SubmittedInvoice",
    "InvoiceTotals",
    "TaxedRow",
    "compute",
    "SerialAllocator",
    "financial_year",
    "format_invoice_number",
    "next_serial",
    "LockConflictError",
    "is_category_used",
    "is_product_used",
    "ValidationError",
    "__version__",
]
