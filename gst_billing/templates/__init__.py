"""
Document templates for rendered invoices.

Templates are Jinja2 files: an HTML receipt sized for 100mm paper (saved,
shared, or converted to PDF downstream) and a plain-text receipt for
thermal printers.
"""
from pathlib import Path

# Template directory
TEMPLATE_DIR = Path(__file__).parent

# Available templates
TEMPLATES = {
    "invoice_html": "invoice.html.j2",
    "receipt_text": "receipt.txt.j2",
}
