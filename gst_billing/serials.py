"""
Invoice numbering.

Invoice numbers read ``{prefix}/{financial_year}/{serial}`` with the serial
zero-padded to at least three digits. Serials restart at 1 every financial
year (April 1 to March 31) and are derived from the vendor's invoice
history, which is only ever read here.

A vendor with no invoices at all starts in the NEW state: instead of
computing a serial, the allocator takes a starting serial from the vendor
(e.g. to continue a paper invoice book). The first successful submission
moves the allocator to NORMAL for good.

Allocation works on a client-side snapshot and takes no lock, so two
sessions of the same vendor can compute the same serial; the backend is
expected to reject the duplicate.
"""
from __future__ import annotations
from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum
from typing import Any, Iterable, Mapping, Optional
from loguru import logger

from .parsing import parse_int
from .validators import validate_starting_serial

SERIAL_WIDTH = 3
FY_START_MONTH = 4


def financial_year(on: date | datetime | None = None) -> str:
    """Return the financial year key ("2024-2025") containing the given date."""
    on = on or date.today()
    year = on.year
    if on.month >= FY_START_MONTH:
        return f"{year}-{year + 1}"
    return f"{year - 1}-{year}"


def format_invoice_number(prefix: str, fy: str, serial: int) -> str:
    # Width is a minimum: 1200 renders as "1200", not "200"
    return f"{prefix}/{fy}/{serial:0{SERIAL_WIDTH}d}"


@dataclass(frozen=True)
class InvoiceNumber:
    prefix: str
    financial_year: str
    serial: int


def parse_invoice_number(number: Optional[str]) -> Optional[InvoiceNumber]:
    """
    Split an invoice number into its parts.

    Returns None when the number has no financial-year segment. A missing or
    non-numeric serial parses as 0.
    """
    if not number:
        return None
    parts = str(number).split("/")
    if len(parts) < 2:
        return None
    serial = parse_int(parts[2]) if len(parts) > 2 else 0
    return InvoiceNumber(prefix=parts[0], financial_year=parts[1], serial=max(serial, 0))


def _invoice_number_of(invoice: Any) -> Optional[str]:
    if isinstance(invoice, Mapping):
        return invoice.get("invoiceNumber", invoice.get("invoice_number"))
    return getattr(invoice, "invoice_number", None)


def next_serial(vendor_invoices: Iterable[Any], fy: str) -> int:
    """
    Next serial for a financial year: the highest serial already used in
    that year plus one, or 1 if the year has no invoices yet.
    """
    serials = []
    for invoice in vendor_invoices:
        parsed = parse_invoice_number(_invoice_number_of(invoice))
        if parsed is not None and parsed.financial_year == fy:
            serials.append(parsed.serial)
    return max(serials) + 1 if serials else 1


class SerialState(str, Enum):
    NEW = "new"
    NORMAL = "normal"


class SerialAllocator:
    """
    Per-vendor serial allocation with the one-time starting-serial override.

    Usage:
        allocator = SerialAllocator.for_vendor(invoices)
        serial = allocator.allocate(invoices, "2024-2025", starting_serial="050")
        ... submit invoice ...
        allocator.mark_submitted()
    """

    def __init__(self, state: SerialState = SerialState.NORMAL):
        self.state = SerialState(state)

    @classmethod
    def for_vendor(cls, vendor_invoices: Iterable[Any]) -> "SerialAllocator":
        has_history = any(True for _ in vendor_invoices)
        return cls(SerialState.NORMAL if has_history else SerialState.NEW)

    @property
    def needs_starting_serial(self) -> bool:
        return self.state is SerialState.NEW

    def observe(self, vendor_invoices: Iterable[Any]) -> None:
        """Update state from a fresh snapshot; history ends the NEW state."""
        if self.state is SerialState.NEW and any(True for _ in vendor_invoices):
            logger.debug("Vendor has invoice history; serials are computed from now on")
            self.state = SerialState.NORMAL

    def allocate(
        self,
        vendor_invoices: Iterable[Any],
        fy: str,
        starting_serial: Any = None,
    ) -> int:
        """
        Return the serial for the next invoice in ``fy``.

        Raises:
            ValidationError: In the NEW state when the starting serial is
                missing or not a positive number of at most 3 digits
        """
        if self.state is SerialState.NEW:
            return validate_starting_serial(starting_serial)
        if starting_serial not in (None, ""):
            logger.warning(
                f"Ignoring starting serial {starting_serial!r}: vendor already has invoices"
            )
        return next_serial(vendor_invoices, fy)

    def mark_submitted(self) -> None:
        """Record a successful submission. NEW becomes NORMAL; never reverts."""
        if self.state is SerialState.NEW:
            logger.info("First invoice submitted; starting serial override cleared")
        self.state = SerialState.NORMAL
