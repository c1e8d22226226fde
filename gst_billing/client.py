"""
HTTP client for the storefront REST API.

Wraps the products, categories, invoices and users endpoints. Responses
are validated into the models in ``gst_billing.models``.
"""
from __future__ import annotations
from typing import Any, Optional
import requests
from loguru import logger
from pydantic import ValidationError as ModelValidationError

from .config import BillingConfig
from .models import Category, Invoice, Product, VendorProfile

DEFAULT_HEADERS = {
    "Accept": "application/json",
    "User-Agent": "gst-billing/1.0",
}


class StorefrontConnectionError(Exception):
    """Raised when the storefront API cannot be reached."""
    pass


class StorefrontResponseError(Exception):
    """Raised when the storefront API returns an error response."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        self.status_code = status_code
        super().__init__(message)


class StorefrontClient:
    """
    HTTP client for the storefront API.

    Features:
    - Bearer token authentication
    - Connection pooling via requests.Session
    - Configurable timeouts
    - Backend error messages surfaced in StorefrontResponseError
    """

    def __init__(self, config: Optional[BillingConfig] = None):
        self.config = config or BillingConfig.from_env()
        self.base_url = self.config.api_base_url.rstrip("/")
        self.session = requests.Session()
        self.session.headers.update(DEFAULT_HEADERS)
        if self.config.api_token:
            self.session.headers["Authorization"] = f"Bearer {self.config.api_token}"

    def _request(self, method: str, path: str, **kwargs) -> Any:
        """
        Send a request and return the decoded JSON body.

        Raises:
            StorefrontConnectionError: If the API cannot be reached
            StorefrontResponseError: If the API answers with a non-2xx status
        """
        url = f"{self.base_url}/{path.lstrip('/')}"
        kwargs.setdefault("timeout", self.config.request_timeout)
        try:
            r = self.session.request(method, url, **kwargs)
        except requests.ConnectionError as e:
            logger.error(f"Failed to connect to storefront at {self.base_url}: {e}")
            raise StorefrontConnectionError(f"Cannot connect to storefront: {e}") from e
        except requests.Timeout as e:
            logger.error(f"{method} {path} timed out after {kwargs['timeout']}s")
            raise StorefrontConnectionError(f"Request timeout: {e}") from e
        except requests.RequestException as e:
            logger.error(f"{method} {path} failed: {e}")
            raise StorefrontConnectionError(f"Request failed: {e}") from e

        if not r.ok:
            message = self._extract_error(r) or f"{method} {path} failed with HTTP {r.status_code}"
            logger.error(f"Storefront error ({r.status_code}): {message}")
            raise StorefrontResponseError(message, status_code=r.status_code)

        if not r.content:
            return None
        try:
            return r.json()
        except ValueError as e:
            raise StorefrontResponseError(f"Invalid JSON from {path}: {e}", r.status_code) from e

    def _extract_error(self, r: requests.Response) -> Optional[str]:
        """Extract the error message from a failed response."""
        try:
            body = r.json()
        except ValueError:
            return r.text.strip() or None
        if isinstance(body, dict):
            return body.get("message") or body.get("error")
        return None

    def _parse_list(self, model, data: Any, what: str) -> list:
        if not isinstance(data, list):
            raise StorefrontResponseError(f"Expected a list of {what}, got {type(data).__name__}")
        items = []
        for raw in data:
            try:
                items.append(model.model_validate(raw))
            except ModelValidationError as e:
                # One malformed record shouldn't hide the rest of the catalog
                logger.warning(f"Skipping malformed {what} record: {e}")
        return items

    # Users

    def get_vendor(self, vendor_id: str) -> VendorProfile:
        return VendorProfile.model_validate(self._request("GET", f"users/{vendor_id}"))

    def update_vendor(self, vendor_id: str, fields: dict) -> Any:
        return self._request("PUT", f"users/{vendor_id}", json=fields)

    # Categories

    def list_categories(self, vendor_id: str) -> list[Category]:
        data = self._request("GET", "categories", params={"vendor_ID": vendor_id})
        return self._parse_list(Category, data, "categories")

    def create_category(self, vendor_id: str, name: str) -> Category:
        data = self._request(
            "POST", "categories", json={"category_name": name, "vendor_ID": vendor_id}
        )
        return Category.model_validate(data)

    def update_category(self, category_id: str, name: str) -> Any:
        return self._request("PUT", f"categories/{category_id}", json={"category_name": name})

    def delete_category(self, category_id: str) -> Any:
        return self._request("DELETE", f"categories/{category_id}")

    # Products

    def list_products(self, vendor_id: str) -> list[Product]:
        data = self._request("GET", "products", params={"vendor_ID": vendor_id})
        return self._parse_list(Product, data, "products")

    def create_product(self, fields: dict) -> Product:
        # The products endpoint takes multipart form fields
        data = self._request("POST", "products", data=_form_fields(fields))
        return Product.model_validate(data)

    def update_product(self, product_id: str, fields: dict) -> Any:
        return self._request("PUT", f"products/{product_id}", data=_form_fields(fields))

    def delete_product(self, product_id: str) -> Any:
        return self._request("DELETE", f"products/{product_id}")

    # Invoices

    def list_invoices(self, vendor_id: str) -> list[Invoice]:
        data = self._request("GET", "invoices", params={"vendor_ID": vendor_id})
        return self._parse_list(Invoice, data, "invoices")

    def create_invoice(self, payload: dict) -> Any:
        return self._request("POST", "invoices", json=payload)

    def test_connection(self, vendor_id: Optional[str] = None) -> dict:
        """
        Test connection to the storefront and return status info.

        Returns:
            Dict with connection status and vendor info
        """
        vendor_id = vendor_id or self.config.vendor_id
        try:
            if not vendor_id:
                self._request("GET", "categories", params={"vendor_ID": ""})
                return {"status": "connected", "url": self.base_url}
            profile = self.get_vendor(vendor_id)
            return {
                "status": "connected",
                "url": self.base_url,
                "vendor": profile.store_name,
                "prefix": profile.prefix,
            }
        except (StorefrontConnectionError, StorefrontResponseError) as e:
            return {
                "status": "failed",
                "url": self.base_url,
                "error": str(e),
            }

    def close(self):
        """Close the session."""
        self.session.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False


def _form_fields(fields: dict) -> dict:
    """Map model field names to the form names the products endpoint expects."""
    names = {
        "name": "product_name",
        "category_id": "category_ID",
        "gst_rate": "gstRate",
    }
    form = {}
    for key, value in fields.items():
        if value is None:
            continue
        form[names.get(key, key)] = value if isinstance(value, str) else str(value)
    return form
