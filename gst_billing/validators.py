"""
Pre-submission validation.

These checks run on the raw values a vendor typed, not on the lenient
parses used for previews: a blank quantity previews as 0 but never
reaches the backend.
"""
from __future__ import annotations
import math
import re
from typing import Any, Iterable, Optional

from .parsing import NUMBER_NOISE

HSN_PATTERN = re.compile(r"^\d{6,8}$")
STARTING_SERIAL_PATTERN = re.compile(r"^\d{1,3}$")
MAX_PREFIX_LENGTH = 4


class ValidationError(ValueError):
    """Raised when input must not be submitted; carries every problem found."""

    def __init__(self, errors: list[str] | str):
        self.errors = [errors] if isinstance(errors, str) else list(errors)
        super().__init__("; ".join(self.errors))


def _blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def _strict_number(value: Any) -> Optional[float]:
    """
    Return value as a finite float, or None if it isn't one.

    Separators and the rupee sign are dropped the same way previews drop
    them, so "1,000" validates as 1000.
    """
    if isinstance(value, bool):
        return None
    try:
        number = float(NUMBER_NOISE.sub("", str(value)))
    except (TypeError, ValueError):
        return None
    return number if math.isfinite(number) else None


def _row_value(row: Any, name: str) -> Any:
    if isinstance(row, dict):
        return row.get(name)
    return getattr(row, name, None)


def row_errors(rows: Iterable[Any]) -> list[str]:
    """Collect problems with invoice rows without raising."""
    errors = []
    rows = list(rows)
    if not rows:
        return ["Invoice needs at least one item"]

    for idx, row in enumerate(rows, start=1):
        if _blank(_row_value(row, "category_id")):
            errors.append(f"Row {idx}: category is required")
        if _blank(_row_value(row, "product_id")):
            errors.append(f"Row {idx}: product is required")
        for name in ("quantity", "rate"):
            raw = _row_value(row, name)
            if _blank(raw):
                errors.append(f"Row {idx}: {name} is required")
                continue
            number = _strict_number(raw)
            if number is None:
                errors.append(f"Row {idx}: {name} must be a number")
            elif number <= 0:
                errors.append(f"Row {idx}: {name} must be greater than zero")
    return errors


def validate_rows(rows: Iterable[Any]) -> None:
    """Raise ValidationError unless every row is complete and numeric."""
    errors = row_errors(rows)
    if errors:
        raise ValidationError(errors)


def validate_product_fields(
    name: Any,
    category_id: Any,
    price: Any,
    hsn: Any = None,
    gst_rate: Any = None,
) -> None:
    """
    Validate product fields before create or update.

    HSN must be 6-8 digits and GST rate 0-100; the two are co-required.
    """
    errors = []
    if _blank(name):
        errors.append("Product name is required")
    if _blank(category_id):
        errors.append("Category is required")
    if _blank(price):
        errors.append("Price is required")
    else:
        number = _strict_number(price)
        if number is None or number < 0:
            errors.append("Price must be a non-negative number")

    has_hsn = not _blank(hsn)
    has_rate = not _blank(gst_rate)
    if has_hsn and not HSN_PATTERN.match(str(hsn).strip()):
        errors.append("HSN must be 6-8 digits")
    if has_rate:
        rate = _strict_number(gst_rate)
        if rate is None or not 0 <= rate <= 100:
            errors.append("GST rate must be between 0 and 100")
    if has_hsn and not has_rate:
        errors.append("GST rate is required when HSN is provided")
    if has_rate and not has_hsn:
        errors.append("HSN is required when GST rate is provided")

    if errors:
        raise ValidationError(errors)


def validate_starting_serial(raw: Any) -> int:
    """Validate a first-time vendor's starting serial ("1" to "999")."""
    if _blank(raw):
        raise ValidationError("Please enter a starting serial number")
    text = str(raw).strip()
    if not STARTING_SERIAL_PATTERN.match(text) or int(text) <= 0:
        raise ValidationError("Starting serial must be a positive number of at most 3 digits")
    return int(text)


def validate_prefix(prefix: Any) -> str:
    """Validate an invoice-number prefix and return it stripped."""
    text = "" if prefix is None else str(prefix).strip()
    if not text:
        raise ValidationError("Prefix is required")
    if len(text) > MAX_PREFIX_LENGTH:
        raise ValidationError(f"Prefix must be at most {MAX_PREFIX_LENGTH} characters")
    if "/" in text:
        raise ValidationError("Prefix must not contain '/'")
    return text
