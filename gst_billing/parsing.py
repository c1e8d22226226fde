"""
Lenient value parsing for form input and backend payloads.

The storefront backend and the invoice form both hand over loosely typed
values (strings typed by a vendor, numbers echoed back as strings, ISO
timestamps with or without a time part). These helpers never raise: they
log and fall back to a default so that previews keep rendering while input
is incomplete. Submission-time checks live in ``validators``.
"""
from __future__ import annotations
import math
import re
from datetime import date, datetime
from typing import Any, Optional
from loguru import logger

# Thousands separators, rupee sign and spaces people type into amounts
NUMBER_NOISE = re.compile(r"[,₹\s]")
LEADING_INT = re.compile(r"\s*[+-]?\d+")


def parse_float(s: Any, default: float = 0.0) -> float:
    """
    Parse a numeric value to float.

    Handles:
    - Numbers passed through unchanged
    - Comma separators (1,234.56)
    - Rupee symbol and whitespace
    - Empty strings and None
    """
    if s is None or isinstance(s, bool):
        return default
    if isinstance(s, (int, float)):
        return float(s) if math.isfinite(s) else default

    s = str(s).strip()
    if not s or s.lower() in ("null", "none", "nan"):
        return default

    s = NUMBER_NOISE.sub("", s)

    try:
        val = float(s)
    except ValueError:
        logger.warning(f"Could not parse float: {s}")
        return default
    if not math.isfinite(val):
        return default
    return val


def parse_int(s: Any, default: int = 0) -> int:
    """
    Parse the leading integer of a string.

    "007" → 7, "12.0" → 12, "005-R" → 5, "1e3" → 1. Text without leading
    digits gives the default.
    """
    if s is None or isinstance(s, bool):
        return default
    if isinstance(s, int):
        return s

    match = LEADING_INT.match(str(s))
    if not match:
        if str(s).strip():
            logger.warning(f"Could not parse int: {s}")
        return default
    return int(match.group(0))


def parse_date(s: Any) -> Optional[date]:
    """
    Parse an invoice date.

    Accepts date/datetime objects, ISO timestamps ("2024-04-01T10:15:00.000Z")
    and a few day-first formats the backend has been seen to store.
    Returns None for empty or unparseable values.
    """
    if s is None:
        return None
    if isinstance(s, datetime):
        return s.date()
    if isinstance(s, date):
        return s

    s = str(s).strip()
    if not s:
        return None

    try:
        return datetime.fromisoformat(s.replace("Z", "+00:00")).date()
    except ValueError:
        pass

    for fmt in ("%Y-%m-%d", "%d/%m/%Y", "%d-%m-%Y", "%d-%b-%Y"):
        try:
            return datetime.strptime(s, fmt).date()
        except ValueError:
            continue

    logger.warning(f"Could not parse date: {s}")
    return None


def ref_id(value: Any) -> Optional[str]:
    """
    Canonicalize an entity reference to its string id.

    The backend sometimes stores a bare id and sometimes populates the
    reference into an embedded object; both collapse to the same string.
    """
    if value is None:
        return None
    if isinstance(value, dict):
        inner = value.get("_id", value.get("id"))
        return ref_id(inner)
    inner = getattr(value, "id", None)
    if inner is not None and not isinstance(value, (str, int)):
        return ref_id(inner)
    text = str(value).strip()
    return text or None
