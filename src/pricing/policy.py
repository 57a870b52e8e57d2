"""Tax and shipping policy of a jurisdiction."""

from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field

from shared.config import CommerceSettings
from shared.money import Money


class JurisdictionPolicy(BaseModel):
    """Free-shipping threshold, flat shipping fee and tax rate.

    Tax applies to the subtotal only; shipping is never taxed.
    """

    model_config = ConfigDict(frozen=True)

    free_shipping_threshold: Money = Field(ge=0)
    flat_shipping_fee: Money = Field(ge=0)
    tax_rate: Decimal = Field(ge=0, le=1)
    currency: str = Field(default="ZAR", min_length=3, max_length=3)

    @classmethod
    def from_settings(cls, settings: CommerceSettings) -> "JurisdictionPolicy":
        return cls(
            free_shipping_threshold=settings.free_shipping_threshold,
            flat_shipping_fee=settings.flat_shipping_fee,
            tax_rate=settings.tax_rate,
            currency=settings.currency,
        )
