"""Domain events for the StockItem aggregate.

Events are immutable facts about stock movements, raised on the stock item
and dispatched when the item is saved.
"""

from protean.fields import Identifier, Integer, String, Text

from shared.domain import storefront


@storefront.event(part_of="StockItem")
class StockRegistered:
    """A product was registered with the ledger."""

    __version__ = "v1"

    product_id = Identifier(required=True)
    total = Integer(required=True)


@storefront.event(part_of="StockItem")
class StockReserved:
    """Units were held, usually for an order."""

    __version__ = "v1"

    product_id = Identifier(required=True)
    reservation_id = Identifier(required=True)
    order_id = Identifier()
    quantity = Integer(required=True, min_value=1)
    previous_available = Integer(required=True)
    new_available = Integer(required=True)


@storefront.event(part_of="StockItem")
class StockReleased:
    """Held units were returned to available stock."""

    __version__ = "v1"

    product_id = Identifier(required=True)
    reservation_ids = Text(required=True)  # JSON array of reservation ids
    order_id = Identifier()
    quantity = Integer(required=True, min_value=1)
    reason = String(max_length=255)
    previous_available = Integer(required=True)
    new_available = Integer(required=True)


@storefront.event(part_of="StockItem")
class ReservationReinstated:
    """A released reservation was put back because the change releasing it was abandoned."""

    __version__ = "v1"

    product_id = Identifier(required=True)
    reservation_id = Identifier(required=True)
    order_id = Identifier()
    quantity = Integer(required=True, min_value=1)
    new_available = Integer(required=True)


@storefront.event(part_of="StockItem")
class StockAdjusted:
    """Total owned stock changed (receiving, correction or admin override)."""

    __version__ = "v1"

    product_id = Identifier(required=True)
    adjustment_type = String(required=True, max_length=50)
    quantity_change = Integer(required=True)
    reason = String(max_length=255)
    previous_total = Integer(required=True)
    new_total = Integer(required=True)
    new_available = Integer(required=True)


@storefront.event(part_of="StockItem")
class LowStockDetected:
    """Available units dropped to or below the low-stock threshold."""

    __version__ = "v1"

    product_id = Identifier(required=True)
    current_available = Integer(required=True)
    threshold = Integer(required=True)
