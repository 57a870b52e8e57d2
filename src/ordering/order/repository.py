"""Repository for Order aggregates.

The base repository provides ``get`` and ``add``. Saves go through
``shared.repository.save``: a writer holding a stale copy loses with
``ConcurrentModification`` and must re-read before trying again.
"""

from ordering.order.order import Order
from shared.domain import storefront


@storefront.repository(part_of=Order)
class OrderRepository:
    def every(self) -> list[Order]:
        return list(self._dao.query.all().items)

    def for_owner(self, owner_id) -> list[Order]:
        return list(self._dao.query.filter(owner_id=str(owner_id)).all().items)

    def with_status(self, status) -> list[Order]:
        return list(self._dao.query.filter(status=status).all().items)

    def with_tracking_number(self, tracking_number) -> Order | None:
        orders = self._dao.query.filter(tracking_number=tracking_number).all().items
        return orders[0] if orders else None
