"""Cart manager: validated cart mutations with freshly computed totals.

Every mutation re-reads the catalog at call time. Stock may have moved since
the cart was last touched, and a stale read must fail with
``InsufficientStock`` rather than clamp the quantity silently. These checks
are advisory; the stock ledger's reservation at order placement is final.
"""

from dataclasses import dataclass
from decimal import Decimal

import structlog
from protean.utils.globals import current_domain

from catalog.port import CatalogService
from catalog.product import Product
from ordering.cart.cart import Cart, LineKey
from pricing.engine import PriceBreakdown, amount_to_free_shipping, price_lines
from pricing.policy import JurisdictionPolicy
from shared.errors import (
    InsufficientStock,
    InvalidQuantity,
    InvalidVariant,
    LineNotFound,
    ProductNotFound,
)
from shared.repository import save

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class CartView:
    cart: Cart
    breakdown: PriceBreakdown
    amount_to_free_shipping: Decimal

    @property
    def item_count(self) -> int:
        return self.cart.item_count


@dataclass(frozen=True)
class CartIssue:
    line_key: LineKey
    reason: str
    available: int | None = None


@dataclass(frozen=True)
class CartValidation:
    valid: bool
    issues: tuple[CartIssue, ...] = ()


class CartManager:
    def __init__(self, catalog: CatalogService, policy: JurisdictionPolicy) -> None:
        self.catalog = catalog
        self.policy = policy

    # -------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------
    @staticmethod
    def _carts():
        return current_domain.repository_for(Cart)

    @staticmethod
    def _check_stock(product: Product, requested: int) -> None:
        if requested > product.stock_quantity:
            raise InsufficientStock(product.id, requested, product.stock_quantity)

    def _reprice(self, cart: Cart) -> None:
        """Refresh line prices from the catalog; vanished products keep their last price."""
        for line in cart.lines:
            try:
                price = self.catalog.get_product(line.product_id).price
            except ProductNotFound:
                continue
            if line.price != price:
                line.unit_price = float(price)

    def _view(self, cart: Cart) -> CartView:
        self._reprice(cart)
        breakdown = price_lines(cart.priced_lines(), self.policy)
        return CartView(
            cart=cart,
            breakdown=breakdown,
            amount_to_free_shipping=amount_to_free_shipping(breakdown.subtotal, self.policy),
        )

    def _save(self, cart: Cart) -> CartView:
        self._reprice(cart)
        save(cart)
        return self._view(self._carts().for_owner(cart.owner_id))

    # -------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------
    def cart_for(self, owner_id) -> Cart:
        return self._carts().get_or_create(owner_id)

    def view(self, owner_id) -> CartView:
        return self._view(self.cart_for(owner_id))

    def item_count(self, owner_id) -> int:
        return self.cart_for(owner_id).item_count

    def validate(self, owner_id) -> CartValidation:
        """Report lines that could no longer be ordered as they stand. Changes nothing."""
        cart = self.cart_for(owner_id)
        issues = []

        product_ids = list(dict.fromkeys(str(line.product_id) for line in cart.lines))
        for product_id in product_ids:
            lines = [line for line in cart.lines if str(line.product_id) == product_id]
            try:
                product = self.catalog.get_product(product_id)
            except ProductNotFound:
                issues.extend(CartIssue(line.key, "Product is no longer available", available=0) for line in lines)
                continue

            requested = cart.quantity_for(product_id)
            for line in lines:
                try:
                    product.check_variant(size=line.size, color=line.color)
                except InvalidVariant as exc:
                    issues.append(CartIssue(line.key, exc.message))
                if requested > product.stock_quantity:
                    issues.append(
                        CartIssue(
                            line.key,
                            f"Only {product.stock_quantity} left in stock, {requested} in cart",
                            available=product.stock_quantity,
                        )
                    )
                if line.price != product.price:
                    issues.append(CartIssue(line.key, f"Price changed from {line.price} to {product.price}"))

        return CartValidation(valid=not issues, issues=tuple(issues))

    # -------------------------------------------------------------------
    # Mutations
    # -------------------------------------------------------------------
    def add_item(self, owner_id, product_id, quantity, size=None, color=None) -> CartView:
        """Add units of a product, merging with an existing line for the same variant."""
        if quantity < 1:
            raise InvalidQuantity(quantity)

        product = self.catalog.get_product(product_id)
        product.check_variant(size=size, color=color)

        cart = self.cart_for(owner_id)
        self._check_stock(product, cart.quantity_for(product.id) + quantity)

        cart.add_line(LineKey(product.id, size, color), quantity, product.price)
        logger.info(
            "Item added to cart",
            owner_id=str(owner_id),
            product_id=product.id,
            size=size,
            color=color,
            quantity=quantity,
        )
        return self._save(cart)

    def update_quantity(self, owner_id, line_key: LineKey, quantity) -> CartView:
        """Set a line's quantity. Zero or less removes the line."""
        if quantity <= 0:
            return self.remove_item(owner_id, line_key)

        cart = self.cart_for(owner_id)
        line = cart.line_for(line_key)
        if line is None:
            raise LineNotFound(line_key)

        product = self.catalog.get_product(line_key.product_id)
        product.check_variant(size=line.size, color=line.color)
        self._check_stock(product, cart.quantity_for(product.id) - line.quantity + quantity)

        cart.set_quantity(line_key, quantity, unit_price=product.price)
        logger.info("Cart quantity updated", owner_id=str(owner_id), line_key=str(line_key), quantity=quantity)
        return self._save(cart)

    def remove_item(self, owner_id, line_key: LineKey) -> CartView:
        cart = self.cart_for(owner_id)
        if cart.remove_line(line_key):
            logger.info("Item removed from cart", owner_id=str(owner_id), line_key=str(line_key))
        return self._save(cart)

    def clear(self, owner_id) -> CartView:
        cart = self.cart_for(owner_id)
        cart.clear()
        logger.info("Cart cleared", owner_id=str(owner_id))
        return self._save(cart)

    def merge(self, guest_owner_id, owner_id) -> CartView:
        """Move a guest session's lines into the owner's cart after sign-in.

        The merged quantities are validated as a whole; if any product would
        exceed stock nothing is merged. Merging a cart into itself changes
        nothing.
        """
        if str(guest_owner_id) == str(owner_id):
            return self.view(owner_id)

        guest = self._carts().for_owner(guest_owner_id)
        if guest is None or guest.is_empty:
            return self.view(owner_id)

        cart = self.cart_for(owner_id)
        for product_id in dict.fromkeys(str(line.product_id) for line in guest.lines):
            product = self.catalog.get_product(product_id)
            for line in guest.lines:
                if str(line.product_id) == product_id:
                    product.check_variant(size=line.size, color=line.color)
            self._check_stock(product, cart.quantity_for(product_id) + guest.quantity_for(product_id))

        cart.merge_lines(guest)
        guest.clear()

        view = self._save(cart)
        save(guest)
        logger.info(
            "Guest cart merged",
            owner_id=str(owner_id),
            guest_owner_id=str(guest_owner_id),
            item_count=view.item_count,
        )
        return view
