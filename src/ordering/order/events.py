"""Domain events for the Order aggregate.

Events are immutable facts recorded on the order while a request is handled
and written to the event store when the order is saved.
"""

from protean.fields import Float, Identifier, Integer, String

from shared.domain import storefront


@storefront.event(part_of="Order")
class OrderPlaced:
    """A cart was converted into an order and payment was authorized."""

    __version__ = "v1"

    order_id = Identifier(required=True)
    owner_id = Identifier(required=True)
    item_count = Integer(required=True, min_value=1)
    subtotal = Float(required=True)
    shipping_fee = Float(required=True)
    tax = Float(required=True)
    total = Float(required=True)
    currency = String(max_length=3, default="USD")
    payment_reference = String(max_length=255)


@storefront.event(part_of="Order")
class OrderStatusChanged:
    __version__ = "v1"

    order_id = Identifier(required=True)
    from_status = String(required=True, max_length=50)
    to_status = String(required=True, max_length=50)
    tracking_number = String(max_length=255)
    carrier = String(max_length=100)
    note = String(max_length=500)


@storefront.event(part_of="Order")
class ShippingAddressUpdated:
    """The delivery address was changed before shipment."""

    __version__ = "v1"

    order_id = Identifier(required=True)
    city = String(required=True, max_length=100)
    postal_code = String(required=True, max_length=20)
    country = String(required=True, max_length=100)
