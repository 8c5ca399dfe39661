"""Runtime settings, read from ``FULFILLMENT_*`` environment variables or ``.env``."""

from __future__ import annotations

from decimal import Decimal
from functools import lru_cache
from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_DATA_DIR = Path("data")


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="FULFILLMENT_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Storage
    database_url: str = f"sqlite:///{DEFAULT_DATA_DIR / 'fulfillment.db'}"
    warehouses_file: Path = DEFAULT_DATA_DIR / "warehouses.json"

    # Collaborator services
    cart_service_url: str = "http://localhost:8701"
    catalog_service_url: str = "http://localhost:8702"
    pricing_service_url: str = "http://localhost:8703"
    inter_service_api_key: str = ""
    http_timeout_seconds: float = 10.0
    retry_backoff_seconds: float = 0.2

    # PayPal
    paypal_client_id: str = ""
    paypal_client_secret: str = ""
    paypal_sandbox: bool = True
    paypal_currency: str = "USD"
    paypal_return_url: str = "http://localhost:5173/paypal-return"
    paypal_cancel_url: str = "http://localhost:5173/checkout"
    # Rupees per unit of paypal_currency; unused when the gateway charges INR.
    gateway_conversion_rate: Decimal = Decimal("83")

    # Secrets
    encryption_secret: str = "change-me"
    encryption_salt: str = "fulfillment-payments"

    # Behaviour
    default_unit_weight_kg: Decimal = Decimal("0.5")
    quote_workers: int = 4
    checkout_ttl_minutes: int = 15
    log_level: str = "INFO"
    log_json: bool = False

    @property
    def paypal_base_url(self) -> str:
        if self.paypal_sandbox:
            return "https://api-m.sandbox.paypal.com"
        return "https://api-m.paypal.com"


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
