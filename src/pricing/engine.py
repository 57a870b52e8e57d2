"""Price computation for carts and orders.

    subtotal     = sum(unit_price * quantity)
    shipping_fee = 0 if subtotal > free_shipping_threshold else flat_shipping_fee
    tax          = subtotal * tax_rate
    total        = subtotal + shipping_fee + tax

Each field is rounded half-up to two places once, when it is finalized, so
``total`` is always the exact sum of the other three.
"""

from collections.abc import Iterable
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, model_validator

from pricing.policy import JurisdictionPolicy
from shared.money import ZERO, Money, to_decimal, to_money


class PriceBreakdown(BaseModel):
    model_config = ConfigDict(frozen=True)

    subtotal: Money
    shipping_fee: Money
    tax: Money
    total: Money
    currency: str = "ZAR"

    @model_validator(mode="after")
    def total_must_equal_sum_of_parts(self):
        if self.total != self.subtotal + self.shipping_fee + self.tax:
            raise ValueError(
                f"Total {self.total} does not equal subtotal + shipping + tax "
                f"({self.subtotal} + {self.shipping_fee} + {self.tax})"
            )
        return self


def price_lines(lines: Iterable[tuple], policy: JurisdictionPolicy) -> PriceBreakdown:
    """Price ``(unit_price, quantity)`` pairs under ``policy``."""
    subtotal = to_money(sum((to_decimal(price) * quantity for price, quantity in lines), Decimal(0)))
    shipping_fee = ZERO if subtotal > policy.free_shipping_threshold else policy.flat_shipping_fee
    tax = to_money(subtotal * policy.tax_rate)

    return PriceBreakdown(
        subtotal=subtotal,
        shipping_fee=shipping_fee,
        tax=tax,
        total=subtotal + shipping_fee + tax,
        currency=policy.currency,
    )


def amount_to_free_shipping(subtotal, policy: JurisdictionPolicy) -> Decimal:
    """How much more must be spent before shipping becomes free.

    Shipping is free only strictly above the threshold, so a subtotal equal
    to the threshold still needs one more cent.
    """
    subtotal = to_money(subtotal)
    if subtotal > policy.free_shipping_threshold:
        return ZERO
    return policy.free_shipping_threshold - subtotal + Decimal("0.01")
