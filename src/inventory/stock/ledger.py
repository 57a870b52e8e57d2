"""Stock ledger: reserve, release and adjust stock, serialized per product.

The ledger is the single source of truth for "can this many units be sold
right now". Every mutation of a product's stock runs under that product's
lock, so two callers racing for the last unit cannot both win. Locks are
acquired with a timeout; nothing here blocks indefinitely.

Locks are re-entrant and shared by every ledger in the process, since every
ledger stores stock in the same domain. A caller that has to change several
products together (and undo its changes if a later step fails) takes all of
their locks first with ``locked``.

After each mutation the catalog is told the new available quantity.
"""

import threading
from collections import defaultdict
from collections.abc import Callable, Iterable
from contextlib import ExitStack, contextmanager
from dataclasses import dataclass
from typing import TypeVar

import structlog
from protean.utils.globals import current_domain

from catalog.port import CatalogService
from inventory.stock.stock import StockItem
from shared.errors import LedgerInvariantViolation, OperationTimedOut, ProductNotFound
from shared.repository import load, save

logger = structlog.get_logger(__name__)

T = TypeVar("T")

_product_locks: defaultdict[str, threading.RLock] = defaultdict(threading.RLock)
_product_locks_guard = threading.Lock()


@dataclass(frozen=True)
class ReservationHandle:
    """What a caller keeps to release a reservation later."""

    reservation_id: str
    product_id: str
    quantity: int
    order_id: str | None = None


@dataclass(frozen=True)
class StockLevel:
    product_id: str
    total: int
    reserved: int
    available: int

    @classmethod
    def of(cls, item: StockItem) -> "StockLevel":
        return cls(product_id=item.product_id, total=item.total, reserved=item.reserved, available=item.available)


@dataclass(frozen=True)
class StockAlerts:
    """Products running low (``0 < available <= threshold``) or sold out."""

    low_stock: tuple[StockLevel, ...]
    out_of_stock: tuple[StockLevel, ...]

    @property
    def messages(self) -> list[str]:
        alerts = []
        if self.low_stock:
            alerts.append(f"{len(self.low_stock)} products are running low on stock")
        if self.out_of_stock:
            alerts.append(f"{len(self.out_of_stock)} products are out of stock")
        return alerts


class StockLedger:
    def __init__(
        self,
        catalog: CatalogService,
        lock_timeout: float = 5.0,
        low_stock_threshold: int = 5,
    ) -> None:
        self.catalog = catalog
        self.lock_timeout = lock_timeout
        self.low_stock_threshold = low_stock_threshold

    # -------------------------------------------------------------------
    # Locking
    # -------------------------------------------------------------------
    @contextmanager
    def locked(self, product_ids: Iterable[str]):
        """Hold the locks of several products, taken in a fixed order."""
        with ExitStack() as stack:
            for product_id in sorted({str(pid) for pid in product_ids}):
                with _product_locks_guard:
                    lock = _product_locks[product_id]
                if not lock.acquire(timeout=self.lock_timeout):
                    raise OperationTimedOut(f"Locking stock of {product_id}", self.lock_timeout)
                stack.callback(lock.release)
            yield

    def _mutate(self, product_id, action: Callable[[StockItem], T]) -> T:
        with self.locked([product_id]):
            item = load(StockItem, product_id, ProductNotFound)
            try:
                result = action(item)
            except LedgerInvariantViolation as exc:
                logger.critical(
                    "Stock ledger invariant violated",
                    product_id=exc.product_id,
                    detail=exc.detail,
                )
                raise
            save(item)
            self.catalog.record_stock_level(item.product_id, item.available)
            return result

    # -------------------------------------------------------------------
    # Registration & reads
    # -------------------------------------------------------------------
    def register_product(self, product_id, total) -> StockLevel:
        """Start tracking a product with ``total`` owned units.

        Registering an already tracked product leaves its stock untouched and
        re-sends its availability to the catalog.
        """
        with self.locked([product_id]):
            if current_domain.repository_for(StockItem).is_tracked(product_id):
                item = load(StockItem, product_id, ProductNotFound)
                self.catalog.record_stock_level(item.product_id, item.available)
                logger.info("Product already registered with ledger", product_id=item.product_id)
                return StockLevel.of(item)

            item = StockItem.create(product_id, total, low_stock_threshold=self.low_stock_threshold)
            save(item)
            self.catalog.record_stock_level(item.product_id, item.available)

        logger.info("Product registered with ledger", product_id=item.product_id, total=total)
        return StockLevel.of(item)

    def availability(self, product_id) -> int:
        return load(StockItem, product_id, ProductNotFound).available

    def level(self, product_id) -> StockLevel:
        return StockLevel.of(load(StockItem, product_id, ProductNotFound))

    def stock_alerts(self) -> StockAlerts:
        levels = [StockLevel.of(item) for item in current_domain.repository_for(StockItem).tracked()]
        levels.sort(key=lambda lv: lv.product_id)
        return StockAlerts(
            low_stock=tuple(lv for lv in levels if 0 < lv.available <= self.low_stock_threshold),
            out_of_stock=tuple(lv for lv in levels if lv.available == 0),
        )

    # -------------------------------------------------------------------
    # Reservations
    # -------------------------------------------------------------------
    def reserve(self, product_id, quantity, order_id=None) -> ReservationHandle:
        """Hold units for a sale. Raises ``InsufficientStock`` if unavailable."""

        def _reserve(item):
            reservation = item.reserve(quantity, order_id=order_id)
            return ReservationHandle(
                reservation_id=str(reservation.id),
                product_id=item.product_id,
                quantity=reservation.quantity,
                order_id=reservation.order_id,
            )

        handle = self._mutate(product_id, _reserve)
        logger.info(
            "Stock reserved",
            product_id=handle.product_id,
            reservation_id=handle.reservation_id,
            order_id=order_id,
            quantity=quantity,
        )
        return handle

    def release(self, product_id, quantity, order_id=None, reason="released") -> StockLevel:
        """Return held units to available stock.

        Without ``order_id`` only anonymous reservations are released; the
        holds of an order are released through that order.
        """

        def _release(item):
            item.release(quantity, order_id=order_id, reason=reason)
            return StockLevel.of(item)

        level = self._mutate(product_id, _release)
        logger.info(
            "Stock released",
            product_id=str(product_id),
            order_id=order_id,
            quantity=quantity,
            reason=reason,
        )
        return level

    def release_reservation(self, handle, reason="released") -> StockLevel:
        """Release one reservation. ``handle`` needs ``reservation_id`` and ``product_id``."""

        def _release(item):
            item.release_reservation(handle.reservation_id, reason=reason)
            return StockLevel.of(item)

        level = self._mutate(handle.product_id, _release)
        logger.info(
            "Reservation released",
            product_id=str(handle.product_id),
            reservation_id=str(handle.reservation_id),
            reason=reason,
        )
        return level

    def reinstate_reservation(self, handle) -> StockLevel:
        """Undo ``release_reservation`` for a change that did not go through."""

        def _reinstate(item):
            item.reinstate_reservation(handle.reservation_id)
            return StockLevel.of(item)

        level = self._mutate(handle.product_id, _reinstate)
        logger.warning(
            "Reservation reinstated",
            product_id=str(handle.product_id),
            reservation_id=str(handle.reservation_id),
        )
        return level

    # -------------------------------------------------------------------
    # Stock adjustment
    # -------------------------------------------------------------------
    def receive_stock(self, product_id, quantity, reference=None) -> StockLevel:
        def _receive(item):
            item.receive(quantity, reference=reference)
            return StockLevel.of(item)

        level = self._mutate(product_id, _receive)
        logger.info("Stock received", product_id=str(product_id), quantity=quantity, reference=reference)
        return level

    def adjust_stock(self, product_id, quantity_change, reason) -> StockLevel:
        def _adjust(item):
            item.adjust(quantity_change, reason)
            return StockLevel.of(item)

        level = self._mutate(product_id, _adjust)
        logger.info(
            "Stock adjusted",
            product_id=str(product_id),
            quantity_change=quantity_change,
            reason=reason,
        )
        return level

    def set_stock_level(self, product_id, total, reason="Stock level set") -> StockLevel:
        """Admin override of the owned total, keeping current holds."""

        def _set(item):
            item.set_stock_level(total, reason=reason)
            return StockLevel.of(item)

        level = self._mutate(product_id, _set)
        logger.info("Stock level set", product_id=str(product_id), total=total)
        return level
