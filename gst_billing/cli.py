"""
Command line interface for the billing client.

Usage:
    # Test the storefront connection
    python -m gst_billing --test-connection

    # Show the next invoice number (first-time vendors pass a starting serial)
    python -m gst_billing --next-number
    python -m gst_billing --next-number --starting-serial 050

    # Preview totals for a saved invoice form
    python -m gst_billing --preview form.json

    # Submit an invoice and print the receipt
    python -m gst_billing --submit form.json --print

    # Sales report for a financial year
    python -m gst_billing --report --fy 2024-2025
"""
from __future__ import annotations
import argparse
import json
import sys
from pathlib import Path
from typing import Optional
from loguru import logger

from .client import StorefrontConnectionError, StorefrontResponseError
from .config import BillingConfig
from .documents import FolderSink, money
from .form import InvoiceForm
from .reports import build_report, category_sales
from .serials import financial_year
from .session import BillingSession
from .tax import InvoiceTotals
from .usage import LockConflictError
from .validators import ValidationError


def configure_logging(config: BillingConfig, verbose: bool = False) -> None:
    logger.remove()
    logger.add(sys.stderr, level="DEBUG" if verbose else config.log_level)
    if config.log_file:
        logger.add(config.log_file, level="DEBUG", rotation="10 MB")


def _load_form(path: Path) -> InvoiceForm:
    return InvoiceForm.from_dict(json.loads(Path(path).read_text(encoding="utf-8")))


def _print_totals(totals: InvoiceTotals) -> None:
    print(f"{'#':>2}  {'Item':<20} {'HSN':<8} {'GST%':>5} {'Taxable':>11} {'CGST':>10} {'SGST':>10} {'Total':>11}")
    for idx, row in enumerate(totals.rows, start=1):
        print(
            f"{idx:>2}  {row.product_name[:20]:<20} {row.hsn:<8} {row.gst_rate:>5g} "
            f"{money(row.taxable_value):>11} {money(row.cgst):>10} "
            f"{money(row.sgst):>10} {money(row.total):>11}"
        )
    print(f"\nTaxable Amount: {money(totals.subtotal)}")
    print(f"Total CGST:     {money(totals.cgst_amount)}")
    print(f"Total SGST:     {money(totals.sgst_amount)}")
    print(f"Grand Total:    {money(totals.total_amount)}")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="gst_billing",
        description="GST invoicing client for the storefront API",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    mode = parser.add_mutually_exclusive_group(required=True)
    mode.add_argument("--test-connection", action="store_true", help="Test the API connection and exit")
    mode.add_argument("--next-number", action="store_true", help="Show the next invoice number")
    mode.add_argument("--preview", type=Path, metavar="FORM", help="Preview totals for a form JSON file")
    mode.add_argument("--submit", type=Path, metavar="FORM", help="Submit the invoice in a form JSON file")
    mode.add_argument("--report", action="store_true", help="Print the sales report")

    parser.add_argument("--vendor", help="Vendor id (default: STOREFRONT_VENDOR_ID)")
    parser.add_argument("--starting-serial", help="Starting serial for a vendor's first invoice")
    parser.add_argument("--fy", help="Financial year for --report (default: current)")
    parser.add_argument("--print", dest="print_receipt", action="store_true", help="Print the receipt after --submit")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable verbose logging")
    return parser


def main(argv: Optional[list[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    config = BillingConfig.from_env()
    if args.vendor:
        config.vendor_id = args.vendor
    configure_logging(config, args.verbose)

    errors = config.validate()
    if errors:
        for error in errors:
            logger.error(f"Config error: {error}")
        return 1

    try:
        with BillingSession(args.vendor, config=config) as session:
            if args.test_connection:
                result = session.client.test_connection(session.vendor_id)
                print(f"Connection test: {result}")
                return 0 if result["status"] == "connected" else 1

            session.refresh()

            if args.next_number:
                print(session.next_invoice_number(starting_serial=args.starting_serial))
            elif args.preview:
                _print_totals(session.preview(_load_form(args.preview)))
            elif args.submit:
                form = _load_form(args.submit)
                if args.starting_serial:
                    form = InvoiceForm.from_dict({**form.to_dict(), "starting_serial": args.starting_serial})
                result = session.submit_invoice(form)
                _print_totals(result.totals)
                print(f"\nInvoice {result.invoice.invoice_number} saved to {result.document}")
                if args.print_receipt or config.share_dir:
                    sink = FolderSink(config.share_dir or config.output_dir, session.snapshot.profile)
                    if config.share_dir:
                        sink.share(result.document)
                    if args.print_receipt:
                        sink.print_to_device(result.invoice, result.totals)
            elif args.report:
                fy = args.fy or financial_year()
                snapshot = session.snapshot
                rows = build_report(snapshot.invoices, snapshot.products, snapshot.categories)
                for row in rows:
                    print(
                        f"{row.invoice_number:<20} {row.fy or '':<10} {row.category:<15} "
                        f"{row.product:<20} {row.hsn:<8} {money(row.total):>12}"
                    )
                print(f"\n=== Category sales {fy} ===")
                for name, value in sorted(category_sales(rows, fy).items()):
                    print(f"  {name}: {money(value)}")
        return 0

    except ValidationError as e:
        for message in e.errors:
            logger.error(message)
        return 1
    except LockConflictError as e:
        logger.error(str(e))
        return 1
    except StorefrontConnectionError as e:
        logger.error(f"Connection error: {e}")
        return 1
    except StorefrontResponseError as e:
        logger.error(f"Storefront error: {e}")
        return 1
    except ValueError as e:
        logger.error(str(e))
        return 1
