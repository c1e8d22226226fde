"""
Configuration management for the GST billing client.

Loads settings from environment variables with sensible defaults.
"""
from __future__ import annotations
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional
from dotenv import load_dotenv

load_dotenv()


def _parse_timeout() -> int:
    """Parse STOREFRONT_TIMEOUT, falling back to 30 seconds."""
    env_val = os.getenv("STOREFRONT_TIMEOUT", "30")
    try:
        return int(env_val.strip())
    except (ValueError, AttributeError):
        return 30


@dataclass
class BillingConfig:
    """Configuration settings for the billing client."""

    # Storefront API connection
    api_base_url: str = field(
        default_factory=lambda: os.getenv("STOREFRONT_API_URL", "http://localhost:5000")
    )
    api_token: Optional[str] = field(
        default_factory=lambda: os.getenv("STOREFRONT_API_TOKEN")
    )
    vendor_id: Optional[str] = field(
        default_factory=lambda: os.getenv("STOREFRONT_VENDOR_ID")
    )
    request_timeout: int = field(default_factory=_parse_timeout)

    # Invoice numbering
    # Used when the vendor profile has no prefix set
    default_prefix: str = field(
        default_factory=lambda: os.getenv("INVOICE_DEFAULT_PREFIX", "INV")
    )

    # Rendered documents land here; share_dir is the drop folder for FolderSink
    output_dir: Path = field(
        default_factory=lambda: Path(os.getenv("INVOICE_OUTPUT_DIR", "invoices"))
    )
    share_dir: Optional[Path] = field(
        default_factory=lambda: Path(os.environ["INVOICE_SHARE_DIR"])
        if os.getenv("INVOICE_SHARE_DIR")
        else None
    )

    # Logging
    log_level: str = field(default_factory=lambda: os.getenv("LOG_LEVEL", "INFO"))
    log_file: Optional[str] = field(
        default_factory=lambda: os.getenv("BILLING_LOG_FILE")
    )

    @classmethod
    def from_env(cls) -> "BillingConfig":
        """Create config from environment variables."""
        return cls()

    def validate(self) -> list[str]:
        """Validate configuration and return list of errors."""
        errors = []
        if not self.api_base_url:
            errors.append("STOREFRONT_API_URL is required")
        if not self.api_token:
            errors.append("STOREFRONT_API_TOKEN is required")
        if not self.vendor_id:
            errors.append("STOREFRONT_VENDOR_ID is required")
        if self.request_timeout <= 0:
            errors.append("STOREFRONT_TIMEOUT must be positive")
        return errors
