"""Order aggregate: a placed purchase and its lifecycle.

An order is created once, atomically, from a cart. Its items and price
breakdown are frozen at that moment and never change afterwards; only the
status, tracking details, shipping address (before shipment) and history
move.

State Machine:
    PENDING → PROCESSING → SHIPPED → DELIVERED
    PENDING/PROCESSING → CANCELLED
    SHIPPED/DELIVERED → REFUNDED
    CANCELLED, REFUNDED: terminal

Entering CANCELLED or REFUNDED hands the order's stock back to the ledger.
The order keeps a hold record per reservation so that a release is done
exactly once.
"""

from decimal import Decimal
from enum import Enum
from uuid import uuid4

from protean.fields import (
    Boolean,
    DateTime,
    Float,
    HasMany,
    Identifier,
    Integer,
    String,
    ValueObject,
)

from ordering.order.events import OrderPlaced, OrderStatusChanged, ShippingAddressUpdated
from pricing.engine import PriceBreakdown
from shared.domain import storefront
from shared.errors import AddressLocked, InvalidTransition
from shared.money import to_money
from shared.repository import utcnow


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------
class OrderStatus(Enum):
    PENDING = "Pending"
    PROCESSING = "Processing"
    SHIPPED = "Shipped"
    DELIVERED = "Delivered"
    CANCELLED = "Cancelled"
    REFUNDED = "Refunded"


# State machine transition map
_VALID_TRANSITIONS = {
    OrderStatus.PENDING: {OrderStatus.PROCESSING, OrderStatus.CANCELLED},
    OrderStatus.PROCESSING: {OrderStatus.SHIPPED, OrderStatus.CANCELLED},
    OrderStatus.SHIPPED: {OrderStatus.DELIVERED, OrderStatus.REFUNDED},
    OrderStatus.DELIVERED: {OrderStatus.REFUNDED},
    OrderStatus.CANCELLED: set(),  # Terminal
    OrderStatus.REFUNDED: set(),  # Terminal
}

# States whose entry releases the order's reservations
_RESTOCKING_STATES = {OrderStatus.CANCELLED, OrderStatus.REFUNDED}

# States in which the shipping address may still change
_ADDRESS_EDITABLE_STATES = {OrderStatus.PENDING, OrderStatus.PROCESSING}


def generate_tracking_number() -> str:
    return f"TRK{uuid4().hex[:10].upper()}"


# ---------------------------------------------------------------------------
# Value Objects
# ---------------------------------------------------------------------------
@storefront.value_object(part_of="Order")
class ShippingAddress:
    """A delivery address captured at checkout time."""

    street = String(required=True, max_length=255)
    city = String(required=True, max_length=100)
    state = String(max_length=100)
    postal_code = String(required=True, max_length=20)
    country = String(required=True, max_length=100)


@storefront.value_object(part_of="Order")
class OrderPricing:
    """The price breakdown locked in when the order was placed."""

    subtotal = Float(required=True, min_value=0.0)
    shipping_fee = Float(required=True, min_value=0.0)
    tax = Float(required=True, min_value=0.0)
    total = Float(required=True, min_value=0.0)
    currency = String(max_length=3, default="ZAR")

    @classmethod
    def of(cls, breakdown: PriceBreakdown):
        return cls(
            subtotal=float(breakdown.subtotal),
            shipping_fee=float(breakdown.shipping_fee),
            tax=float(breakdown.tax),
            total=float(breakdown.total),
            currency=breakdown.currency,
        )

    def breakdown(self) -> PriceBreakdown:
        return PriceBreakdown(
            subtotal=self.subtotal,
            shipping_fee=self.shipping_fee,
            tax=self.tax,
            total=self.total,
            currency=self.currency,
        )


# ---------------------------------------------------------------------------
# Entities
# ---------------------------------------------------------------------------
@storefront.entity(part_of="Order")
class OrderItem:
    """A purchased product variant at the price paid."""

    product_id = Identifier(required=True)
    name = String(required=True, max_length=255)
    size = String(max_length=50)
    color = String(max_length=50)
    quantity = Integer(required=True, min_value=1)
    unit_price = Float(required=True, min_value=0.0)

    @property
    def price(self) -> Decimal:
        return to_money(self.unit_price)

    @property
    def line_total(self) -> Decimal:
        return to_money(self.price * self.quantity)


@storefront.entity(part_of="Order")
class StockHold:
    """One stock reservation taken for the order."""

    reservation_id = Identifier(required=True)
    product_id = Identifier(required=True)
    quantity = Integer(required=True, min_value=1)
    released = Boolean(default=False)


@storefront.entity(part_of="Order")
class StatusChange:
    status = String(choices=OrderStatus, required=True)
    changed_at = DateTime(required=True)
    note = String(max_length=500)
    sequence = Integer(required=True, min_value=0)


# ---------------------------------------------------------------------------
# Aggregate Root
# ---------------------------------------------------------------------------
@storefront.aggregate
class Order:
    owner_id = Identifier(required=True)
    status = String(choices=OrderStatus, default=OrderStatus.PENDING.value)
    items = HasMany(OrderItem)
    pricing = ValueObject(OrderPricing)
    shipping_address = ValueObject(ShippingAddress)
    payment_method = String(required=True, max_length=255)
    payment_reference = String(max_length=255)
    tracking_number = String(max_length=255)
    carrier = String(max_length=100)
    holds = HasMany(StockHold)
    history = HasMany(StatusChange)
    created_at = DateTime()
    updated_at = DateTime()

    # -------------------------------------------------------------------
    # Factory
    # -------------------------------------------------------------------
    @staticmethod
    def next_identity() -> str:
        return f"ORD-{utcnow():%Y%m%d}-{uuid4().hex[:8].upper()}"

    @classmethod
    def place(
        cls,
        order_id,
        owner_id,
        items,
        breakdown: PriceBreakdown,
        shipping_address: ShippingAddress,
        payment_method,
        payment_reference=None,
        holds=(),
    ):
        """Create a Pending order from already validated, priced items.

        Args:
            items: ``OrderItem`` entities
            holds: Reservations taken for the order; anything with
                ``reservation_id``, ``product_id`` and ``quantity``
        """
        now = utcnow()
        order = cls(
            id=order_id,
            owner_id=str(owner_id),
            pricing=OrderPricing.of(breakdown),
            shipping_address=shipping_address,
            payment_method=payment_method,
            payment_reference=payment_reference,
            created_at=now,
            updated_at=now,
        )
        order.add_items(list(items))
        for hold in holds:
            order.add_holds(
                StockHold(
                    reservation_id=str(hold.reservation_id),
                    product_id=str(hold.product_id),
                    quantity=hold.quantity,
                )
            )
        order.add_history(
            StatusChange(
                status=OrderStatus.PENDING.value,
                changed_at=now,
                note="Order placed",
                sequence=0,
            )
        )

        order.raise_(
            OrderPlaced(
                order_id=str(order.id),
                owner_id=order.owner_id,
                item_count=order.item_count,
                subtotal=float(breakdown.subtotal),
                shipping_fee=float(breakdown.shipping_fee),
                tax=float(breakdown.tax),
                total=float(breakdown.total),
                currency=breakdown.currency,
                payment_reference=payment_reference,
            )
        )
        return order

    # -------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------
    @property
    def version(self) -> int:
        return self._version

    @property
    def item_count(self) -> int:
        return sum(item.quantity for item in self.items)

    @property
    def is_terminal(self) -> bool:
        return not _VALID_TRANSITIONS[OrderStatus(self.status)]

    @property
    def timeline(self) -> list:
        """Status changes, oldest first."""
        return sorted(self.history, key=lambda change: change.sequence)

    def can_transition_to(self, target) -> bool:
        try:
            target = OrderStatus(target)
        except ValueError:
            return False
        return target in _VALID_TRANSITIONS[OrderStatus(self.status)]

    def held_stock(self) -> list:
        """Holds still to be handed back, in product order."""
        return sorted((hold for hold in self.holds if not hold.released), key=lambda hold: str(hold.product_id))

    # -------------------------------------------------------------------
    # State machine
    # -------------------------------------------------------------------
    def _assert_can_transition(self, target) -> OrderStatus:
        """Validate that the current state allows transition to target."""
        current = OrderStatus(self.status)
        try:
            target_status = OrderStatus(target)
        except ValueError:
            raise InvalidTransition(current, target) from None
        if target_status not in _VALID_TRANSITIONS[current]:
            raise InvalidTransition(current, target_status)
        return target_status

    def transition_to(self, target, tracking_number=None, carrier=None, note=None) -> bool:
        """Move to ``target``. Returns True when the order's stock must be released.

        Entering SHIPPED without a tracking number generates one.
        """
        target_status = self._assert_can_transition(target)
        previous = self.status

        if tracking_number:
            self.tracking_number = tracking_number
        if carrier:
            self.carrier = carrier
        if target_status == OrderStatus.SHIPPED and not self.tracking_number:
            self.tracking_number = generate_tracking_number()

        now = utcnow()
        self.status = target_status.value
        self.add_history(
            StatusChange(
                status=target_status.value,
                changed_at=now,
                note=note,
                sequence=len(self.history),
            )
        )
        self.updated_at = now

        self.raise_(
            OrderStatusChanged(
                order_id=str(self.id),
                from_status=previous,
                to_status=target_status.value,
                tracking_number=self.tracking_number,
                carrier=self.carrier,
                note=note,
            )
        )
        return target_status in _RESTOCKING_STATES

    def mark_stock_released(self) -> None:
        for hold in self.holds:
            hold.released = True

    def update_shipping_address(self, address: ShippingAddress) -> None:
        current = OrderStatus(self.status)
        if current not in _ADDRESS_EDITABLE_STATES:
            raise AddressLocked(str(self.id), current)

        self.shipping_address = address
        self.updated_at = utcnow()
        self.raise_(
            ShippingAddressUpdated(
                order_id=str(self.id),
                city=address.city,
                postal_code=address.postal_code,
                country=address.country,
            )
        )
