"""Cart aggregate: the lines a customer or guest session has selected.

A cart belongs to exactly one owner (customer id or guest session id) and
holds at most one line per (product, size, color). It is emptied, never
deleted, when it becomes an order.

The cart itself does not know about stock; the CartManager validates each
mutation against the catalog before calling into it.
"""

from dataclasses import dataclass
from decimal import Decimal

from protean.fields import DateTime, Float, HasMany, Identifier, Integer, String

from ordering.cart.events import (
    CartCleared,
    CartItemAdded,
    CartItemRemoved,
    CartQuantityUpdated,
    CartsMerged,
)
from shared.domain import storefront
from shared.errors import InvalidQuantity, LineNotFound
from shared.money import to_money
from shared.repository import utcnow


@dataclass(frozen=True)
class LineKey:
    """Identity of a cart line within its cart."""

    product_id: str
    size: str | None = None
    color: str | None = None

    def __str__(self) -> str:
        return ":".join([self.product_id, self.size or "-", self.color or "-"])


@storefront.entity(part_of="Cart")
class CartLine:
    product_id = Identifier(required=True)
    size = String(max_length=50)
    color = String(max_length=50)
    quantity = Integer(required=True, min_value=1)
    unit_price = Float(required=True, min_value=0.0)  # As observed at the last validation; display only
    added_at = DateTime()

    @property
    def key(self) -> LineKey:
        return LineKey(str(self.product_id), self.size, self.color)

    @property
    def price(self) -> Decimal:
        return to_money(self.unit_price)


@storefront.aggregate
class Cart:
    owner_id = Identifier(required=True)
    lines = HasMany(CartLine)
    created_at = DateTime()
    updated_at = DateTime()

    # -------------------------------------------------------------------
    # Factory
    # -------------------------------------------------------------------
    @classmethod
    def create(cls, owner_id):
        now = utcnow()
        return cls(owner_id=str(owner_id), created_at=now, updated_at=now)

    # -------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------
    def line_for(self, key: LineKey):
        return next((line for line in self.lines if line.key == key), None)

    def quantity_for(self, product_id) -> int:
        """Units of a product across all of its size/color lines."""
        return sum(line.quantity for line in self.lines if str(line.product_id) == str(product_id))

    @property
    def item_count(self) -> int:
        return sum(line.quantity for line in self.lines)

    @property
    def is_empty(self) -> bool:
        return not self.lines

    def priced_lines(self) -> list[tuple]:
        return [(line.price, line.quantity) for line in self.lines]

    # -------------------------------------------------------------------
    # Item management
    # -------------------------------------------------------------------
    def add_line(self, key: LineKey, quantity, unit_price):
        """Add units of a product variant, merging into an existing line."""
        if quantity < 1:
            raise InvalidQuantity(quantity)

        now = utcnow()
        line = self.line_for(key)
        if line:
            line.quantity += quantity
            line.unit_price = float(unit_price)
        else:
            line = CartLine(
                product_id=key.product_id,
                size=key.size,
                color=key.color,
                quantity=quantity,
                unit_price=float(unit_price),
                added_at=now,
            )
            self.add_lines(line)

        self.updated_at = now

        self.raise_(
            CartItemAdded(
                cart_id=str(self.id),
                owner_id=self.owner_id,
                product_id=key.product_id,
                size=key.size,
                color=key.color,
                quantity=quantity,
                new_quantity=line.quantity,
            )
        )
        return line

    def set_quantity(self, key: LineKey, quantity, unit_price=None):
        if quantity < 1:
            raise InvalidQuantity(quantity)

        line = self.line_for(key)
        if line is None:
            raise LineNotFound(key)

        previous_quantity = line.quantity
        line.quantity = quantity
        if unit_price is not None:
            line.unit_price = float(unit_price)
        self.updated_at = utcnow()

        self.raise_(
            CartQuantityUpdated(
                cart_id=str(self.id),
                line_key=str(key),
                previous_quantity=previous_quantity,
                new_quantity=quantity,
            )
        )
        return line

    def remove_line(self, key: LineKey) -> bool:
        """Remove a line. Removing a line that is not there is a no-op."""
        line = self.line_for(key)
        if line is None:
            return False

        self.remove_lines(line)
        self.updated_at = utcnow()
        self.raise_(CartItemRemoved(cart_id=str(self.id), line_key=str(key)))
        return True

    def merge_lines(self, source: "Cart") -> None:
        """Merge another cart's lines into this one, summing duplicates."""
        now = utcnow()
        for line in source.lines:
            existing = self.line_for(line.key)
            if existing:
                existing.quantity += line.quantity
                existing.unit_price = line.unit_price
            else:
                self.add_lines(
                    CartLine(
                        product_id=line.product_id,
                        size=line.size,
                        color=line.color,
                        quantity=line.quantity,
                        unit_price=line.unit_price,
                        added_at=now,
                    )
                )

        self.updated_at = now
        self.raise_(
            CartsMerged(
                cart_id=str(self.id),
                source_owner_id=source.owner_id,
                lines_merged=len(source.lines),
            )
        )

    def clear(self) -> None:
        removed = len(self.lines)
        if removed:
            self.remove_lines(list(self.lines))
        self.updated_at = utcnow()
        self.raise_(CartCleared(cart_id=str(self.id), owner_id=self.owner_id, lines_removed=removed))
