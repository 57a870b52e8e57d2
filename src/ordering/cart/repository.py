"""Repository for Cart aggregates: one cart per owner."""

from ordering.cart.cart import Cart
from shared.domain import storefront


@storefront.repository(part_of=Cart)
class CartRepository:
    def for_owner(self, owner_id) -> Cart | None:
        carts = self._dao.query.filter(owner_id=str(owner_id)).all().items
        return carts[0] if carts else None

    def get_or_create(self, owner_id) -> Cart:
        """The owner's cart, or a new unsaved one on first interaction."""
        return self.for_owner(owner_id) or Cart.create(owner_id)
