"""Application configuration.

Loads settings from environment variables with sensible defaults.
Every variable is prefixed with ``TILLPOINT_`` (e.g. ``TILLPOINT_TAX_RATE``).
"""

from decimal import Decimal
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # API
    api_version: str = "0.1.0"
    debug: bool = False

    # Logging
    log_level: str = "INFO"
    log_json: bool = False

    # Database
    database_url: str = "sqlite+aiosqlite:///./tillpoint.db"

    # Pricing
    currency: str = "USD"
    currency_symbol: str = "$"
    tax_rate: Decimal = Field(default=Decimal("0.10"), ge=0)

    # Catalog queries
    default_page_size: int = Field(default=50, gt=0)
    max_page_size: int = Field(default=200, gt=0)
    query_cache_ttl_seconds: float = 300.0
    query_cache_max_entries: int = 100

    # Local state
    catalog_snapshot_path: str | None = None
    cart_state_path: str = "./cart_state.json"

    # Devices
    device_provider: Literal["mock", "live"] = "mock"
    device_registry_url: str = "http://localhost:8100"
    device_request_timeout_seconds: float = 5.0

    model_config = {
        "env_file": ".env",
        "env_prefix": "TILLPOINT_",
        "extra": "ignore",
    }


settings = Settings()
