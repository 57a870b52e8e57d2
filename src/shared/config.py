"""Runtime settings for the commerce core.

Values come from ``STOREFRONT_*`` environment variables or a ``.env`` file.

Environment variables:
    - STOREFRONT_FREE_SHIPPING_THRESHOLD: subtotal above which shipping is free
    - STOREFRONT_FLAT_SHIPPING_FEE: shipping fee charged at or below the threshold
    - STOREFRONT_TAX_RATE: tax rate applied to the subtotal
    - STOREFRONT_CURRENCY: ISO 4217 currency code
    - STOREFRONT_LOW_STOCK_THRESHOLD: available units at or below which stock is "low"
    - STOREFRONT_MAX_CONFLICT_RETRIES: retries after a concurrent modification
    - STOREFRONT_LOCK_TIMEOUT: seconds to wait for a per-product stock lock
    - STOREFRONT_LOG_LEVEL: DEBUG/INFO/WARNING/ERROR
    - STOREFRONT_LOG_FORMAT: console/json
"""

from decimal import Decimal
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class CommerceSettings(BaseSettings):
    free_shipping_threshold: Decimal = Field(default=Decimal("500.00"), ge=0)
    flat_shipping_fee: Decimal = Field(default=Decimal("99.99"), ge=0)
    tax_rate: Decimal = Field(default=Decimal("0.15"), ge=0, le=1)
    currency: str = Field(default="ZAR", min_length=3, max_length=3)

    low_stock_threshold: int = Field(default=5, ge=0)
    max_conflict_retries: int = Field(default=3, ge=0)
    lock_timeout: float = Field(default=5.0, gt=0)

    log_level: str = "INFO"
    log_format: Literal["console", "json"] = "console"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="STOREFRONT_",
        extra="ignore",
    )
