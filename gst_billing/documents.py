"""
Invoice documents and where they go.

Provides:
- InvoiceDocumentRenderer: renders the HTML receipt for an invoice to disk
- render_receipt_text: the same receipt laid out for a 30-column printer
- InvoiceSink: protocol for sharing documents and printing receipts
- FolderSink: shares by copying into a drop folder, prints to a text stream
"""
from __future__ import annotations
import re
import shutil
import sys
from datetime import date
from pathlib import Path
from typing import Optional, Protocol, TextIO
from jinja2 import Environment, FileSystemLoader, StrictUndefined, select_autoescape
from loguru import logger

from .models import Invoice, VendorProfile
from .tax import InvoiceTotals
from .templates import TEMPLATE_DIR, TEMPLATES

RECEIPT_WIDTH = 30


def money(value: float) -> str:
    return f"₹{value:.2f}"


def qty(value: float) -> str:
    """Render 2.0 as "2" and 2.5 as "2.5"."""
    return str(int(value)) if float(value).is_integer() else str(value)


def _format_date(value: Optional[date]) -> str:
    return value.strftime("%d/%m/%Y") if value else ""


def _document_name(invoice_number: str) -> str:
    # "AB/2024-2025/007" -> "AB_2024-2025_007"
    name = re.sub(r"[^A-Za-z0-9._-]+", "_", invoice_number).strip("_")
    return name or "invoice"


def _environment() -> Environment:
    env = Environment(
        loader=FileSystemLoader(str(TEMPLATE_DIR)),
        autoescape=select_autoescape(enabled_extensions=("html.j2",), default=False),
        undefined=StrictUndefined,
        keep_trailing_newline=True,
    )
    env.filters["money"] = money
    env.filters["qty"] = qty
    return env


class InvoiceDocumentRenderer:
    """
    Renders invoice documents from Jinja2 templates.

    Usage:
        renderer = InvoiceDocumentRenderer(Path("invoices"))
        path = renderer.render_invoice_document(profile, invoice, totals)
    """

    def __init__(self, output_dir: Path):
        self.output_dir = Path(output_dir)
        self.env = _environment()

    def render_html(self, profile: VendorProfile, invoice: Invoice, totals: InvoiceTotals) -> str:
        template = self.env.get_template(TEMPLATES["invoice_html"])
        return template.render(
            profile=profile,
            invoice=invoice,
            invoice_date=_format_date(invoice.date),
            totals=totals,
        )

    def render_invoice_document(
        self, profile: VendorProfile, invoice: Invoice, totals: InvoiceTotals
    ) -> Path:
        """Write the HTML receipt and return its path."""
        self.output_dir.mkdir(parents=True, exist_ok=True)
        path = self.output_dir / f"{_document_name(invoice.invoice_number)}.html"
        path.write_text(self.render_html(profile, invoice, totals), encoding="utf-8")
        logger.info(f"Rendered invoice {invoice.invoice_number} to {path}")
        return path


def render_receipt_text(
    profile: VendorProfile,
    invoice: Invoice,
    totals: InvoiceTotals,
    width: int = RECEIPT_WIDTH,
) -> str:
    """Lay out a receipt for a thermal printer."""

    def columns(left: str, right: str) -> str:
        return left.ljust(max(width - len(right), len(left) + 1)) + right

    template = _environment().get_template(TEMPLATES["receipt_text"])
    return template.render(
        profile=profile,
        invoice=invoice,
        invoice_date=_format_date(invoice.date),
        totals=totals,
        width=width,
        rule="-" * width,
        columns=columns,
    )


class InvoiceSink(Protocol):
    def share(self, document: Path) -> None: ...
    def print_to_device(self, invoice: Invoice, totals: InvoiceTotals) -> None: ...


class FolderSink:
    """
    Local sink: sharing copies the document into ``share_dir``; printing
    writes the text receipt to ``stream`` (stdout by default).
    """

    def __init__(self, share_dir: Path, profile: VendorProfile, stream: Optional[TextIO] = None):
        self.share_dir = Path(share_dir)
        self.profile = profile
        self.stream = stream or sys.stdout

    def share(self, document: Path) -> None:
        document = Path(document)
        if not document.exists():
            raise FileNotFoundError(f"Nothing to share: {document} does not exist")
        self.share_dir.mkdir(parents=True, exist_ok=True)
        target = self.share_dir / document.name
        shutil.copy2(document, target)
        logger.info(f"Shared {document.name} to {self.share_dir}")

    def print_to_device(self, invoice: Invoice, totals: InvoiceTotals) -> None:
        self.stream.write(render_receipt_text(self.profile, invoice, totals))
        self.stream.write("\n\n\n")
        self.stream.flush()
