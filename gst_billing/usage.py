"""
Usage locks for catalog entities.

A product that appears on any invoice, or a category that any product
belongs to, is "used". Used entities keep their identity-defining fields:
a used product may still get a new image, nothing else. The predicates are
recomputed from the snapshot on every call; nothing is cached.
"""
from __future__ import annotations
from typing import Any, Iterable, Mapping

from .models import Category, Product
from .parsing import ref_id

PRODUCT_IDENTITY_FIELDS = ("name", "category_id", "price", "hsn", "gst_rate")
CATEGORY_IDENTITY_FIELDS = ("name",)


class LockConflictError(Exception):
    """Raised when a used product or category would lose its identity."""

    def __init__(self, entity: str, entity_id: str, fields: Iterable[str] = ()):
        self.entity = entity
        self.entity_id = entity_id
        self.fields = list(fields)
        if self.fields:
            msg = (
                f"{entity} {entity_id} is in use; cannot change {', '.join(self.fields)}"
            )
        else:
            msg = f"{entity} {entity_id} is in use and cannot be deleted"
        super().__init__(msg)


def _get(obj: Any, *names: str) -> Any:
    if isinstance(obj, Mapping):
        for name in names:
            if name in obj:
                return obj[name]
        return None
    for name in names:
        value = getattr(obj, name, None)
        if value is not None:
            return value
    return None


def _references(ref: Any, target: Any) -> bool:
    """True if ``ref`` points at ``target`` as a bare id, an embedded object or a string."""
    if ref is None:
        return False
    if ref == target:
        return True
    if isinstance(ref, Mapping) and ref.get("_id", ref.get("id")) == target:
        return True
    if ref == str(target):
        return True
    return ref_id(ref) == ref_id(target)


def is_product_used(product_id: Any, invoices: Iterable[Any]) -> bool:
    """True if any row of any invoice references the product."""
    for invoice in invoices:
        rows = _get(invoice, "rows")
        if not isinstance(rows, list):
            continue
        for row in rows:
            if _references(_get(row, "productId", "product_id"), product_id):
                return True
    return False


def is_category_used(category_id: Any, products: Iterable[Any]) -> bool:
    """True if any product belongs to the category."""
    return any(
        _references(_get(product, "category_ID", "category_id"), category_id)
        for product in products
    )


def _hsn_text(value: Any) -> str:
    return "" if value is None else str(value).strip()


def _changed_fields(current: Any, changes: Mapping[str, Any], fields: Iterable[str]) -> list[str]:
    changed = []
    for name in fields:
        if name not in changes:
            continue
        old, new = getattr(current, name), changes[name]
        if name in ("price", "gst_rate") and old is not None and new is not None:
            try:
                if float(old) == float(new):
                    continue
            except (TypeError, ValueError):
                pass
        elif name == "category_id" and ref_id(old) == ref_id(new):
            continue
        elif name == "hsn" and _hsn_text(old) == _hsn_text(new):
            continue
        if old != new:
            changed.append(name)
    return changed


def ensure_product_editable(
    product: Product, changes: Mapping[str, Any], invoices: Iterable[Any]
) -> None:
    """Raise LockConflictError if a used product's identity fields would change."""
    if not is_product_used(product.id, invoices):
        return
    changed = _changed_fields(product, changes, PRODUCT_IDENTITY_FIELDS)
    if changed:
        raise LockConflictError("Product", product.id, changed)


def ensure_category_editable(
    category: Category, changes: Mapping[str, Any], products: Iterable[Any]
) -> None:
    """Raise LockConflictError if a used category would be renamed."""
    if not is_category_used(category.id, products):
        return
    changed = _changed_fields(category, changes, CATEGORY_IDENTITY_FIELDS)
    if changed:
        raise LockConflictError("Category", category.id, changed)


def ensure_product_deletable(product_id: str, invoices: Iterable[Any]) -> None:
    if is_product_used(product_id, invoices):
        raise LockConflictError("Product", product_id)


def ensure_category_deletable(category_id: str, products: Iterable[Any]) -> None:
    if is_category_used(category_id, products):
        raise LockConflictError("Category", category_id)
