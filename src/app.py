"""Storefront composition root.

Wires settings, logging, the stock ledger, the cart manager, the order
lifecycle and the order queries into one object around the ``storefront``
domain. The domain (and therefore its storage) is initialized once, at
module level; every call to ``create_app`` builds a fresh set of services
on top of it. Callers run inside ``storefront.domain_context()``.

Usage:
    with storefront.domain_context():
        store = create_app(products=products)
        store.carts.add_item("customer-1", "tee-01", 2, size="M")
        order = store.orders.place_order("customer-1", address, "pm_card_visa")
"""

from collections.abc import Iterable
from dataclasses import dataclass

import structlog
from protean.domain import Domain

# Element modules register themselves with the domain on import
import inventory.stock.repository  # noqa: F401
import ordering.cart.repository  # noqa: F401
import ordering.order.repository  # noqa: F401
from catalog.fake_adapter import InMemoryCatalog
from catalog.port import CatalogService
from catalog.product import Product
from inventory.stock.ledger import StockLedger
from ordering.cart.manager import CartManager
from ordering.order.lifecycle import OrderLifecycle
from ordering.order.queries import OrderQueries
from payments.gateway.fake_adapter import FakeGateway
from payments.gateway.port import PaymentGateway
from pricing.policy import JurisdictionPolicy
from shared.config import CommerceSettings
from shared.domain import storefront
from shared.logging import configure_logging

storefront.init(traverse=False)

logger = structlog.get_logger(__name__)


@dataclass
class Storefront:
    settings: CommerceSettings
    domain: Domain
    policy: JurisdictionPolicy
    catalog: CatalogService
    gateway: PaymentGateway
    ledger: StockLedger
    carts: CartManager
    orders: OrderLifecycle
    queries: OrderQueries


def create_app(
    settings: CommerceSettings | None = None,
    catalog: CatalogService | None = None,
    gateway: PaymentGateway | None = None,
    clock=None,
    products: Iterable[Product] | None = None,
) -> Storefront:
    """Compose a storefront.

    Args:
        catalog: Catalog adapter; defaults to an in-memory catalog holding ``products``
        products: Products whose stock the ledger starts tracking
    """
    settings = settings or CommerceSettings()
    configure_logging(settings)

    products = list(products or ())
    policy = JurisdictionPolicy.from_settings(settings)
    catalog = catalog if catalog is not None else InMemoryCatalog(products)
    gateway = gateway if gateway is not None else FakeGateway()

    ledger = StockLedger(
        catalog,
        lock_timeout=settings.lock_timeout,
        low_stock_threshold=settings.low_stock_threshold,
    )
    cart_manager = CartManager(catalog, policy)
    lifecycle_options = {"clock": clock} if clock is not None else {}
    lifecycle = OrderLifecycle(
        cart_manager,
        ledger,
        catalog,
        gateway,
        policy,
        max_conflict_retries=settings.max_conflict_retries,
        **lifecycle_options,
    )

    with storefront.domain_context():
        for product in products:
            ledger.register_product(product.id, product.stock_quantity)

    logger.info("Storefront created", currency=settings.currency, products=len(products))
    return Storefront(
        settings=settings,
        domain=storefront,
        policy=policy,
        catalog=catalog,
        gateway=gateway,
        ledger=ledger,
        carts=cart_manager,
        orders=lifecycle,
        queries=OrderQueries(),
    )
