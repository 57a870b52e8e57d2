"""Domain events for the Cart aggregate."""

from protean.fields import Identifier, Integer, String

from shared.domain import storefront


@storefront.event(part_of="Cart")
class CartItemAdded:
    """A product was added to the cart, or its quantity increased by an add."""

    __version__ = "v1"

    cart_id = Identifier(required=True)
    owner_id = Identifier(required=True)
    product_id = Identifier(required=True)
    size = String(max_length=50)
    color = String(max_length=50)
    quantity = Integer(required=True, min_value=1)
    new_quantity = Integer(required=True, min_value=1)


@storefront.event(part_of="Cart")
class CartQuantityUpdated:
    """The quantity of a cart line was changed."""

    __version__ = "v1"

    cart_id = Identifier(required=True)
    line_key = String(required=True, max_length=255)
    previous_quantity = Integer(required=True)
    new_quantity = Integer(required=True)


@storefront.event(part_of="Cart")
class CartItemRemoved:
    """A line was removed from the cart."""

    __version__ = "v1"

    cart_id = Identifier(required=True)
    line_key = String(required=True, max_length=255)


@storefront.event(part_of="Cart")
class CartCleared:
    """All lines were removed, e.g. after the cart became an order."""

    __version__ = "v1"

    cart_id = Identifier(required=True)
    owner_id = Identifier(required=True)
    lines_removed = Integer(required=True)


@storefront.event(part_of="Cart")
class CartsMerged:
    """A guest cart was merged into this cart after sign-in."""

    __version__ = "v1"

    cart_id = Identifier(required=True)
    source_owner_id = Identifier(required=True)
    lines_merged = Integer(required=True)
