"""
Tests for invoice numbering and serial allocation.
"""
from datetime import date, datetime
import pytest
from gst_billing.models import Invoice
from gst_billing.serials import (
    SerialAllocator,
    SerialState,
    financial_year,
    format_invoice_number,
    next_serial,
    parse_invoice_number,
)
from gst_billing.validators import ValidationError


def _invoices(*numbers):
    return [Invoice(invoice_number=n) for n in numbers]


def test_financial_year_boundary():
    assert financial_year(date(2024, 3, 31)) == "2023-2024"
    assert financial_year(date(2024, 4, 1)) == "2024-2025"
    assert financial_year(datetime(2025, 1, 15, 9, 30)) == "2024-2025"
    assert financial_year(date(2024, 12, 31)) == "2024-2025"


def test_format_invoice_number_pads_to_three_digits():
    assert format_invoice_number("AB", "2024-2025", 7) == "AB/2024-2025/007"
    assert format_invoice_number("AB", "2024-2025", 50) == "AB/2024-2025/050"


def test_format_invoice_number_never_truncates():
    assert format_invoice_number("AB", "2024-2025", 1200) == "AB/2024-2025/1200"


def test_parse_invoice_number():
    parsed = parse_invoice_number("AB/2024-2025/007")
    assert parsed.prefix == "AB"
    assert parsed.financial_year == "2024-2025"
    assert parsed.serial == 7

    assert parse_invoice_number("AB/2024-2025/xyz").serial == 0
    assert parse_invoice_number("AB/2024-2025").serial == 0
    assert parse_invoice_number("garbage") is None
    assert parse_invoice_number(None) is None


class TestNextSerial:
    def test_max_plus_one(self):
        invoices = _invoices("P/2024-2025/001", "P/2024-2025/003")
        assert next_serial(invoices, "2024-2025") == 4

    def test_other_year_only_restarts_at_one(self):
        invoices = _invoices("P/2023-2024/001", "P/2023-2024/099")
        assert next_serial(invoices, "2024-2025") == 1

    def test_no_invoices(self):
        assert next_serial([], "2024-2025") == 1

    def test_unparseable_serial_counts_as_zero(self):
        invoices = _invoices("P/2024-2025/abc")
        assert next_serial(invoices, "2024-2025") == 1

    def test_serial_with_suffix_uses_leading_digits(self):
        invoices = [{"invoiceNumber": "P/2024-2025/005-R"}]
        assert next_serial(invoices, "2024-2025") == 6

    def test_exponent_is_not_a_serial(self):
        assert parse_invoice_number("P/2024-2025/1e3").serial == 1

    def test_prefix_change_keeps_sequence(self):
        invoices = _invoices("OLD/2024-2025/004", "NEW/2024-2025/005")
        assert next_serial(invoices, "2024-2025") == 6

    def test_raw_backend_dicts(self):
        invoices = [{"invoiceNumber": "P/2024-2025/010"}, {"invoiceNumber": None}]
        assert next_serial(invoices, "2024-2025") == 11

    def test_beyond_three_digits(self):
        invoices = _invoices("P/2024-2025/999")
        assert next_serial(invoices, "2024-2025") == 1000
        assert format_invoice_number("P", "2024-2025", 1000) == "P/2024-2025/1000"


class TestSerialAllocator:
    def test_vendor_with_history_is_normal(self):
        allocator = SerialAllocator.for_vendor(_invoices("P/2023-2024/004"))
        assert allocator.state is SerialState.NORMAL
        assert not allocator.needs_starting_serial

    def test_new_vendor_requires_starting_serial(self):
        allocator = SerialAllocator.for_vendor([])
        assert allocator.needs_starting_serial
        with pytest.raises(ValidationError):
            allocator.allocate([], "2024-2025")

    @pytest.mark.parametrize("raw", ["", "abc", "0", "1000", "-5", "1.5"])
    def test_new_vendor_rejects_invalid_starting_serial(self, raw):
        allocator = SerialAllocator.for_vendor([])
        with pytest.raises(ValidationError):
            allocator.allocate([], "2024-2025", raw)

    def test_first_time_vendor_flow(self):
        allocator = SerialAllocator.for_vendor([])
        serial = allocator.allocate([], "2024-2025", "050")
        assert serial == 50
        assert format_invoice_number("AB", "2024-2025", serial).endswith("/050")

        allocator.mark_submitted()
        assert allocator.state is SerialState.NORMAL

        ledger = _invoices("AB/2024-2025/050")
        assert allocator.allocate(ledger, "2024-2025") == 51
        # The override is gone for good
        assert allocator.allocate(ledger, "2024-2025", "007") == 51

    def test_state_never_reverts(self):
        allocator = SerialAllocator.for_vendor([])
        allocator.mark_submitted()
        allocator.observe([])
        assert allocator.state is SerialState.NORMAL

    def test_observe_history_ends_new_state(self):
        allocator = SerialAllocator.for_vendor([])
        allocator.observe(_invoices("P/2024-2025/001"))
        assert allocator.state is SerialState.NORMAL

    def test_allocate_does_not_touch_ledger(self):
        ledger = _invoices("P/2024-2025/001")
        SerialAllocator.for_vendor(ledger).allocate(ledger, "2024-2025")
        assert [i.invoice_number for i in ledger] == ["P/2024-2025/001"]
