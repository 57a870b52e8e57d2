"""StockItem aggregate: owned, reserved and available units of one product.

Stock Level Model:
    total:     Units the store owns (sold-but-not-returned units included)
    reserved:  Sum of active reservations
    available: total - reserved (what can be sold right now)

``available + reserved == total`` holds by construction; every operation
re-checks it and reports a breach as ``LedgerInvariantViolation``.

Reservations taken for an order carry its id and can only be released by
that order. Anonymous reservations (no order id) are released by quantity.
"""

import json
from enum import Enum

from protean.fields import DateTime, HasMany, Identifier, Integer, String

from inventory.stock.events import (
    LowStockDetected,
    ReservationReinstated,
    StockAdjusted,
    StockRegistered,
    StockReleased,
    StockReserved,
)
from shared.domain import storefront
from shared.errors import InsufficientStock, InvalidQuantity, LedgerInvariantViolation
from shared.repository import utcnow


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------
class ReservationStatus(Enum):
    ACTIVE = "Active"
    RELEASED = "Released"


class AdjustmentType(Enum):
    RECEIVED = "Received"
    CORRECTION = "Correction"
    LEVEL_SET = "Level_Set"


# ---------------------------------------------------------------------------
# Entities
# ---------------------------------------------------------------------------
@storefront.entity(part_of="StockItem")
class Reservation:
    """A hold on units of one product, usually for an order.

    Reservations transition ACTIVE → RELEASED. A release that belongs to an
    abandoned change may be reinstated while the product is still locked.
    """

    order_id = Identifier()
    quantity = Integer(required=True, min_value=1)
    status = String(choices=ReservationStatus, default=ReservationStatus.ACTIVE.value)
    reserved_at = DateTime(required=True)
    released_at = DateTime()

    @property
    def is_active(self) -> bool:
        return self.status == ReservationStatus.ACTIVE.value


# ---------------------------------------------------------------------------
# Aggregate Root
# ---------------------------------------------------------------------------
@storefront.aggregate
class StockItem:
    """Stock for one product. The aggregate id is the product id."""

    total = Integer(required=True, min_value=0)
    reservations = HasMany(Reservation)
    low_stock_threshold = Integer(default=5, min_value=0)
    created_at = DateTime()
    updated_at = DateTime()

    # -------------------------------------------------------------------
    # Factory method
    # -------------------------------------------------------------------
    @classmethod
    def create(cls, product_id, total, low_stock_threshold=5):
        if total < 0:
            raise InvalidQuantity(total, reason="Stock cannot be negative")

        now = utcnow()
        item = cls(
            id=str(product_id),
            total=total,
            low_stock_threshold=low_stock_threshold,
            created_at=now,
            updated_at=now,
        )
        item.raise_(StockRegistered(product_id=item.id, total=total))
        return item

    # -------------------------------------------------------------------
    # Levels
    # -------------------------------------------------------------------
    @property
    def product_id(self) -> str:
        return str(self.id)

    @property
    def reserved(self) -> int:
        return sum(r.quantity for r in self.reservations if r.is_active)

    @property
    def available(self) -> int:
        return self.total - self.reserved

    def active_reservations(self, order_id=None) -> list:
        """Active holds of one order, or the anonymous holds when ``order_id`` is None."""
        wanted = str(order_id) if order_id is not None else None
        return [
            r
            for r in self.reservations
            if r.is_active and (str(r.order_id) if r.order_id is not None else None) == wanted
        ]

    def _reservation(self, reservation_id):
        reservation = next((r for r in self.reservations if str(r.id) == str(reservation_id)), None)
        if reservation is None:
            raise LedgerInvariantViolation(self.product_id, f"unknown reservation {reservation_id}")
        return reservation

    # -------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------
    def _check_invariants(self):
        reserved = self.reserved
        if reserved < 0 or reserved > self.total:
            raise LedgerInvariantViolation(
                self.product_id,
                f"{reserved} units reserved against {self.total} owned",
            )

    def _check_low_stock(self):
        """Raise LowStockDetected if available is at or below the threshold."""
        if self.available <= self.low_stock_threshold:
            self.raise_(
                LowStockDetected(
                    product_id=self.product_id,
                    current_available=self.available,
                    threshold=self.low_stock_threshold,
                )
            )

    # -------------------------------------------------------------------
    # Reservations
    # -------------------------------------------------------------------
    def reserve(self, quantity, order_id=None):
        """Hold ``quantity`` units, failing if fewer are available."""
        if quantity < 1:
            raise InvalidQuantity(quantity)

        available = self.available
        if available < quantity:
            raise InsufficientStock(self.product_id, quantity, available)

        now = utcnow()
        reservation = Reservation(
            order_id=str(order_id) if order_id is not None else None,
            quantity=quantity,
            reserved_at=now,
        )
        self.add_reservations(reservation)
        self.updated_at = now
        self._check_invariants()

        self.raise_(
            StockReserved(
                product_id=self.product_id,
                reservation_id=str(reservation.id),
                order_id=reservation.order_id,
                quantity=quantity,
                previous_available=available,
                new_available=self.available,
            )
        )
        self._check_low_stock()
        return reservation

    def release(self, quantity, order_id=None, reason="released"):
        """Return ``quantity`` held units to available stock, oldest holds first.

        Only the holds of ``order_id`` are touched; without an order id only
        anonymous holds are. Releasing more than those hold would lift
        available above the owned total, which only a programming error or
        corrupted data can cause.
        """
        if quantity < 1:
            raise InvalidQuantity(quantity)

        active = self.active_reservations(order_id)
        held = sum(r.quantity for r in active)
        if held < quantity:
            holder = f"order {order_id}" if order_id else "anonymous reservations"
            raise LedgerInvariantViolation(
                self.product_id,
                f"cannot release {quantity} units, {holder} hold only {held} "
                f"(available {self.available} of total {self.total})",
            )

        previous_available = self.available
        now = utcnow()
        remaining = quantity
        touched = []
        for reservation in sorted(active, key=lambda r: r.reserved_at):
            if remaining == 0:
                break
            take = min(remaining, reservation.quantity)
            if take == reservation.quantity:
                reservation.status = ReservationStatus.RELEASED.value
                reservation.released_at = now
            else:
                reservation.quantity -= take
            remaining -= take
            touched.append(str(reservation.id))

        self.updated_at = now
        self._check_invariants()

        self.raise_(
            StockReleased(
                product_id=self.product_id,
                reservation_ids=json.dumps(touched),
                order_id=str(order_id) if order_id is not None else None,
                quantity=quantity,
                reason=reason,
                previous_available=previous_available,
                new_available=self.available,
            )
        )

    def release_reservation(self, reservation_id, reason="released"):
        """Release everything still held by one reservation."""
        reservation = self._reservation(reservation_id)
        if not reservation.is_active:
            raise LedgerInvariantViolation(self.product_id, f"reservation {reservation_id} was already released")

        previous_available = self.available
        now = utcnow()
        reservation.status = ReservationStatus.RELEASED.value
        reservation.released_at = now
        self.updated_at = now
        self._check_invariants()

        self.raise_(
            StockReleased(
                product_id=self.product_id,
                reservation_ids=json.dumps([str(reservation.id)]),
                order_id=reservation.order_id,
                quantity=reservation.quantity,
                reason=reason,
                previous_available=previous_available,
                new_available=self.available,
            )
        )

    def reinstate_reservation(self, reservation_id):
        """Make a released reservation active again, if its units are still free."""
        reservation = self._reservation(reservation_id)
        if reservation.is_active:
            raise LedgerInvariantViolation(self.product_id, f"reservation {reservation_id} is still active")

        available = self.available
        if available < reservation.quantity:
            raise InsufficientStock(self.product_id, reservation.quantity, available)

        reservation.status = ReservationStatus.ACTIVE.value
        reservation.released_at = None
        self.updated_at = utcnow()
        self._check_invariants()

        self.raise_(
            ReservationReinstated(
                product_id=self.product_id,
                reservation_id=str(reservation.id),
                order_id=reservation.order_id,
                quantity=reservation.quantity,
                new_available=self.available,
            )
        )

    # -------------------------------------------------------------------
    # Stock adjustment
    # -------------------------------------------------------------------
    def receive(self, quantity, reference=None):
        """Receive new units into owned stock."""
        if quantity < 1:
            raise InvalidQuantity(quantity)
        reason = f"Received {reference}" if reference else "Received stock"
        self._apply_adjustment(quantity, AdjustmentType.RECEIVED, reason)

    def adjust(self, quantity_change, reason):
        """Correct owned stock up or down. Reserved units cannot be adjusted away."""
        if quantity_change == 0:
            raise InvalidQuantity(quantity_change, reason="Adjustment must change stock")
        self._apply_adjustment(quantity_change, AdjustmentType.CORRECTION, reason)

    def set_stock_level(self, total, reason="Stock level set"):
        """Set the owned total outright. It may not drop below the units reserved."""
        if total < 0:
            raise InvalidQuantity(total, reason="Stock level cannot be negative")
        change = total - self.total
        if change:
            self._apply_adjustment(change, AdjustmentType.LEVEL_SET, reason)

    def _apply_adjustment(self, quantity_change, adjustment_type, reason):
        previous_total = self.total
        new_total = previous_total + quantity_change
        if new_total < self.reserved:
            raise InvalidQuantity(
                quantity_change,
                reason=f"Adjustment would leave {new_total} units owned for {self.reserved} reserved",
            )

        self.total = new_total
        self.updated_at = utcnow()
        self._check_invariants()

        self.raise_(
            StockAdjusted(
                product_id=self.product_id,
                adjustment_type=adjustment_type.value,
                quantity_change=quantity_change,
                reason=reason,
                previous_total=previous_total,
                new_total=new_total,
                new_available=self.available,
            )
        )
        self._check_low_stock()
