"""Order lifecycle: converting carts into orders and moving orders through their states.

``place_order`` is all-or-nothing. Stock is reserved before payment is
authorized and the order is stored; if anything fails after the first
reservation (including running out of time) every reservation taken is
released and the cart is left as it was.

``transition`` is the single state-changing entry point. Saves are
version-checked; callers that pass the version they read get
``ConcurrentModification`` on conflict, everyone else is retried against
fresh state.
"""

import time
from collections import defaultdict
from collections.abc import Callable
from dataclasses import dataclass

import structlog
from protean.utils.globals import current_domain

from catalog.port import CatalogService
from inventory.stock.ledger import StockLedger
from ordering.cart.cart import Cart
from ordering.cart.manager import CartManager, CartView
from ordering.order.order import Order, OrderItem, OrderStatus, ShippingAddress
from payments.gateway.port import PaymentGateway
from pricing.engine import price_lines
from pricing.policy import JurisdictionPolicy
from shared.errors import (
    CommerceError,
    ConcurrentModification,
    EmptyCart,
    InsufficientStock,
    OperationTimedOut,
    OrderNotFound,
    PaymentDeclined,
)
from shared.repository import load, save
from shared.retry import retry_on_conflict

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class ReorderFailure:
    item: OrderItem
    reason: str


@dataclass(frozen=True)
class ReorderResult:
    view: CartView
    added: tuple[OrderItem, ...]
    failed: tuple[ReorderFailure, ...]


class OrderLifecycle:
    def __init__(
        self,
        cart_manager: CartManager,
        ledger: StockLedger,
        catalog: CatalogService,
        gateway: PaymentGateway,
        policy: JurisdictionPolicy,
        max_conflict_retries: int = 3,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.cart_manager = cart_manager
        self.ledger = ledger
        self.catalog = catalog
        self.gateway = gateway
        self.policy = policy
        self.max_conflict_retries = max_conflict_retries
        self._clock = clock

    # -------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------
    def _check_deadline(self, deadline, timeout):
        if deadline is not None and self._clock() > deadline:
            raise OperationTimedOut("Placing order", timeout)

    def _release_all(self, reservations, reason):
        for reservation in reservations:
            self.ledger.release_reservation(reservation, reason=reason)

    def _save_releasing_stock(self, order: Order) -> None:
        """Hand the order's held stock back and save the order, or do neither.

        The products stay locked until the order is saved. If a release or
        the save fails, the holds already released are reinstated before the
        error propagates.
        """
        holds = order.held_stock()
        reason = f"Order {order.status.lower()}"
        with self.ledger.locked(hold.product_id for hold in holds):
            released = []
            try:
                for hold in holds:
                    self.ledger.release_reservation(hold, reason=reason)
                    released.append(hold)
                order.mark_stock_released()
                save(order)
            except Exception as exc:
                logger.warning(
                    "Restock abandoned, reinstating reservations",
                    order_id=str(order.id),
                    error=type(exc).__name__,
                    reinstated=len(released),
                )
                for hold in reversed(released):
                    self.ledger.reinstate_reservation(hold)
                raise

    def _save_with_retry(self, order_id, expected_version, change: Callable[[Order], bool]) -> Order:
        """Load, change and save an order, releasing its stock if the change asks for it."""

        def attempt():
            order = load(Order, order_id, OrderNotFound)
            if expected_version is not None and order.version != expected_version:
                raise ConcurrentModification("Order", str(order.id), expected_version, order.version)
            if change(order):
                self._save_releasing_stock(order)
            else:
                save(order)
            return load(Order, order_id, OrderNotFound)

        if expected_version is not None:
            return attempt()
        return retry_on_conflict(attempt, self.max_conflict_retries)

    # -------------------------------------------------------------------
    # Placement
    # -------------------------------------------------------------------
    def place_order(self, owner_id, shipping_address, payment_method, timeout=None) -> Order:
        """Convert the owner's cart into a Pending order.

        Args:
            owner_id: Customer or guest session whose cart is ordered
            shipping_address: ``ShippingAddress`` or a mapping of its fields
            payment_method: Opaque payment method reference for the gateway
            timeout: Seconds the whole placement may take; None waits as long as needed
        """
        deadline = None if timeout is None else self._clock() + timeout
        if not isinstance(shipping_address, ShippingAddress):
            shipping_address = ShippingAddress(**shipping_address)

        cart = current_domain.repository_for(Cart).get_or_create(owner_id)
        if cart.is_empty:
            raise EmptyCart(str(owner_id))

        order_id = Order.next_identity()
        log = logger.bind(order_id=order_id, owner_id=str(owner_id))

        # Re-validate against current catalog data and ledger availability
        products = {}
        demand = defaultdict(int)
        for line in cart.lines:
            product = products.get(str(line.product_id)) or self.catalog.get_product(line.product_id)
            product.check_variant(size=line.size, color=line.color)
            products[product.id] = product
            demand[product.id] += line.quantity
        for product_id, quantity in demand.items():
            available = self.ledger.availability(product_id)
            if quantity > available:
                raise InsufficientStock(product_id, quantity, available)
        self._check_deadline(deadline, timeout)

        reservations = []
        try:
            for product_id, quantity in demand.items():
                reservations.append(self.ledger.reserve(product_id, quantity, order_id=order_id))
                self._check_deadline(deadline, timeout)

            items = tuple(
                OrderItem(
                    product_id=str(line.product_id),
                    name=products[str(line.product_id)].name,
                    size=line.size,
                    color=line.color,
                    quantity=line.quantity,
                    unit_price=float(products[str(line.product_id)].price),
                )
                for line in cart.lines
            )
            pricing = price_lines(((item.price, item.quantity) for item in items), self.policy)

            result = self.gateway.authorize(payment_method, pricing, idempotency_key=order_id)
            if not result.authorized:
                raise PaymentDeclined(result.decline_reason)
            self._check_deadline(deadline, timeout)

            order = Order.place(
                order_id,
                owner_id,
                items,
                pricing,
                shipping_address,
                payment_method,
                payment_reference=result.authorization_id,
                holds=reservations,
            )
            save(order)
        except Exception as exc:
            log.warning(
                "Order placement failed, releasing reservations",
                error=type(exc).__name__,
                reservations=len(reservations),
            )
            self._release_all(reservations, reason="Order placement failed")
            raise

        cart.clear()
        save(cart)

        log.info(
            "Order placed",
            item_count=order.item_count,
            total=str(pricing.total),
            currency=pricing.currency,
        )
        return load(Order, order_id, OrderNotFound)

    # -------------------------------------------------------------------
    # State changes
    # -------------------------------------------------------------------
    def transition(
        self,
        order_id,
        new_status,
        expected_version=None,
        tracking_number=None,
        carrier=None,
        note=None,
    ) -> Order:
        """Move an order to ``new_status``; Cancelled and Refunded release its stock."""
        order = self._save_with_retry(
            order_id,
            expected_version,
            lambda order: order.transition_to(
                new_status,
                tracking_number=tracking_number,
                carrier=carrier,
                note=note,
            ),
        )
        logger.info(
            "Order status changed",
            order_id=str(order.id),
            status=order.status,
            version=order.version,
        )
        return order

    def cancel(self, order_id, reason=None, expected_version=None) -> Order:
        return self.transition(order_id, OrderStatus.CANCELLED, expected_version=expected_version, note=reason)

    def ship(self, order_id, tracking_number=None, carrier=None, expected_version=None) -> Order:
        return self.transition(
            order_id,
            OrderStatus.SHIPPED,
            expected_version=expected_version,
            tracking_number=tracking_number,
            carrier=carrier,
        )

    def update_shipping_address(self, order_id, address, expected_version=None) -> Order:
        """Change where a Pending or Processing order goes."""
        if not isinstance(address, ShippingAddress):
            address = ShippingAddress(**address)

        def _update(order):
            order.update_shipping_address(address)
            return False

        order = self._save_with_retry(order_id, expected_version, _update)
        logger.info("Shipping address updated", order_id=str(order.id))
        return order

    # -------------------------------------------------------------------
    # Reorder
    # -------------------------------------------------------------------
    def reorder(self, order_id) -> ReorderResult:
        """Put every item of a past order back into its owner's cart.

        Items that can no longer be added (gone, out of stock, variant
        dropped) are reported in the result instead of stopping the rest.
        """
        order = load(Order, order_id, OrderNotFound)
        added, failed = [], []
        for item in order.items:
            try:
                self.cart_manager.add_item(
                    order.owner_id,
                    str(item.product_id),
                    item.quantity,
                    size=item.size,
                    color=item.color,
                )
            except CommerceError as exc:
                failed.append(ReorderFailure(item=item, reason=exc.message))
            else:
                added.append(item)

        logger.info(
            "Order reordered",
            order_id=str(order.id),
            owner_id=order.owner_id,
            added=len(added),
            failed=len(failed),
        )
        return ReorderResult(
            view=self.cart_manager.view(order.owner_id),
            added=tuple(added),
            failed=tuple(failed),
        )
