"""Pricing engine: pure computation of cart and order totals."""

from pricing.engine import PriceBreakdown, amount_to_free_shipping, price_lines
from pricing.policy import JurisdictionPolicy

__all__ = ["JurisdictionPolicy", "PriceBreakdown", "amount_to_free_shipping", "price_lines"]
