"""Errors raised by the commerce core.

Every error carries a ``messages`` dict (field name -> list of messages) so
the presentation layer can render it next to the offending input.
"""


def _label(status) -> str:
    return getattr(status, "value", str(status))


class CommerceError(Exception):
    """Base exception for all commerce core errors."""

    field = "non_field_errors"

    def __init__(self, message: str, field: str | None = None):
        self.message = message
        self.messages = {field or self.field: [message]}
        super().__init__(message)


class NotFoundError(CommerceError):
    """Base for lookups that found nothing."""


class ProductNotFound(NotFoundError):
    field = "product_id"

    def __init__(self, product_id: str):
        self.product_id = product_id
        super().__init__(f"Product not found: {product_id}")


class CartNotFound(NotFoundError):
    field = "owner_id"

    def __init__(self, owner_id: str):
        self.owner_id = owner_id
        super().__init__(f"No cart for owner: {owner_id}")


class OrderNotFound(NotFoundError):
    field = "order_id"

    def __init__(self, identifier: str):
        self.identifier = identifier
        super().__init__(f"Order not found: {identifier}")


class LineNotFound(NotFoundError):
    field = "line_key"

    def __init__(self, line_key):
        self.line_key = line_key
        super().__init__(f"Item not found in cart: {line_key}")


class InvalidQuantity(CommerceError):
    field = "quantity"

    def __init__(self, quantity: int, reason: str = "Quantity must be at least 1"):
        self.quantity = quantity
        super().__init__(f"{reason} (got {quantity})")


class InvalidVariant(CommerceError):
    def __init__(self, product_id: str, attribute: str, value, allowed):
        self.product_id = product_id
        self.attribute = attribute
        self.value = value
        self.allowed = tuple(allowed)
        if self.allowed:
            message = (
                f"{attribute.capitalize()} '{value}' is not available for product {product_id}. "
                f"Choose one of: {', '.join(self.allowed)}"
            )
        else:
            message = f"Product {product_id} has no {attribute} options"
        super().__init__(message, field=attribute)


class InsufficientStock(CommerceError):
    field = "quantity"

    def __init__(self, product_id: str, requested: int, available: int):
        self.product_id = product_id
        self.requested = requested
        self.available = available
        super().__init__(
            f"Insufficient stock for {product_id}: {available} available, {requested} requested"
        )


class EmptyCart(CommerceError):
    field = "cart"

    def __init__(self, owner_id: str):
        self.owner_id = owner_id
        super().__init__("Cannot place an order from an empty cart")


class InvalidTransition(CommerceError):
    field = "status"

    def __init__(self, from_status, to_status):
        self.from_status = from_status
        self.to_status = to_status
        super().__init__(f"Cannot transition from {_label(from_status)} to {_label(to_status)}")


class ConcurrentModification(CommerceError):
    field = "version"

    def __init__(self, aggregate: str, identifier: str, expected_version: int, actual_version: int):
        self.aggregate = aggregate
        self.identifier = identifier
        self.expected_version = expected_version
        self.actual_version = actual_version
        super().__init__(
            f"{aggregate} {identifier} was modified concurrently: "
            f"expected version {expected_version}, found {actual_version}"
        )


class LedgerInvariantViolation(CommerceError):
    """Stock ledger corruption or a programming error. Fatal, never retried."""

    field = "stock"

    def __init__(self, product_id: str, detail: str):
        self.product_id = product_id
        self.detail = detail
        super().__init__(f"Stock ledger invariant violated for {product_id}: {detail}")


class PaymentDeclined(CommerceError):
    field = "payment_method"

    def __init__(self, reason: str | None = None):
        self.reason = reason or "Payment declined"
        super().__init__(self.reason)


class OperationTimedOut(CommerceError):
    def __init__(self, operation: str, timeout: float | None):
        self.operation = operation
        self.timeout = timeout
        super().__init__(f"{operation} did not complete within {timeout} seconds")


class AddressLocked(CommerceError):
    field = "shipping_address"

    def __init__(self, order_id: str, status):
        self.order_id = order_id
        self.status = status
        super().__init__(f"Shipping address of order {order_id} cannot change once it is {_label(status)}")
