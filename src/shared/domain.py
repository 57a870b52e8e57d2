"""Storefront domain: the registry for every aggregate, entity, value object and event.

Carts, orders and stock share one domain because placing an order reserves
stock, stores the order and empties the cart in a single call.
"""

import structlog
from protean.domain import Domain

storefront = Domain(name="storefront")

logger = structlog.get_logger(__name__)
