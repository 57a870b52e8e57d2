"""Tests for the Cart aggregate."""

from decimal import Decimal

import pytest
from ordering.cart.cart import Cart, LineKey
from ordering.cart.events import (
    CartCleared,
    CartItemAdded,
    CartItemRemoved,
    CartQuantityUpdated,
    CartsMerged,
)
from shared.errors import InvalidQuantity, LineNotFound


def _make_cart(owner_id="cust-001"):
    return Cart.create(owner_id)


class TestCartCreation:
    def test_new_cart_is_empty(self):
        cart = _make_cart()

        assert cart.is_empty
        assert cart.item_count == 0
        assert cart.owner_id == "cust-001"
        assert cart._events == []


class TestAddLine:
    def test_add_line(self):
        cart = _make_cart()
        cart.add_line(LineKey("tee-01", "M", "black"), 2, Decimal("100.00"))

        assert len(cart.lines) == 1
        assert cart.item_count == 2
        assert cart.lines[0].key == LineKey("tee-01", "M", "black")

    def test_same_variant_merges(self):
        cart = _make_cart()
        key = LineKey("tee-01", "M")
        cart.add_line(key, 2, Decimal("100.00"))
        cart.add_line(key, 3, Decimal("100.00"))

        assert len(cart.lines) == 1
        assert cart.line_for(key).quantity == 5

    def test_different_variants_get_their_own_lines(self):
        cart = _make_cart()
        cart.add_line(LineKey("tee-01", "M"), 1, Decimal("100.00"))
        cart.add_line(LineKey("tee-01", "L"), 2, Decimal("100.00"))

        assert len(cart.lines) == 2
        assert cart.quantity_for("tee-01") == 3

    def test_zero_quantity_rejected(self):
        with pytest.raises(InvalidQuantity):
            _make_cart().add_line(LineKey("tee-01"), 0, Decimal("100.00"))

    def test_event_reports_new_quantity(self):
        cart = _make_cart()
        key = LineKey("tee-01")
        cart.add_line(key, 2, Decimal("100.00"))
        cart.add_line(key, 1, Decimal("100.00"))

        event = cart._events[-1]
        assert isinstance(event, CartItemAdded)
        assert event.quantity == 1
        assert event.new_quantity == 3


class TestChangeLines:
    def test_set_quantity(self):
        cart = _make_cart()
        key = LineKey("tee-01")
        cart.add_line(key, 2, Decimal("100.00"))
        cart.set_quantity(key, 5)

        assert cart.line_for(key).quantity == 5
        event = cart._events[-1]
        assert isinstance(event, CartQuantityUpdated)
        assert event.previous_quantity == 2

    def test_set_quantity_of_unknown_line(self):
        with pytest.raises(LineNotFound):
            _make_cart().set_quantity(LineKey("tee-01"), 1)

    def test_remove_line(self):
        cart = _make_cart()
        key = LineKey("tee-01")
        cart.add_line(key, 2, Decimal("100.00"))

        assert cart.remove_line(key) is True
        assert cart.is_empty
        assert isinstance(cart._events[-1], CartItemRemoved)

    def test_remove_missing_line_is_a_noop(self):
        cart = _make_cart()
        assert cart.remove_line(LineKey("tee-01")) is False
        assert cart._events == []

    def test_clear(self):
        cart = _make_cart()
        cart.add_line(LineKey("tee-01"), 2, Decimal("100.00"))
        cart.add_line(LineKey("cap-01"), 1, Decimal("150.00"))
        cart.clear()

        assert cart.is_empty
        event = cart._events[-1]
        assert isinstance(event, CartCleared)
        assert event.lines_removed == 2


class TestMergeLines:
    def test_merge_sums_matching_lines(self):
        guest = _make_cart("guest-1")
        guest.add_line(LineKey("tee-01", "M"), 1, Decimal("100.00"))
        guest.add_line(LineKey("cap-01"), 1, Decimal("150.00"))

        cart = _make_cart()
        cart.add_line(LineKey("tee-01", "M"), 2, Decimal("100.00"))
        cart.merge_lines(guest)

        assert cart.line_for(LineKey("tee-01", "M")).quantity == 3
        assert cart.line_for(LineKey("cap-01")).quantity == 1
        assert isinstance(cart._events[-1], CartsMerged)

    def test_merged_lines_are_copies(self):
        guest = _make_cart("guest-1")
        guest.add_line(LineKey("cap-01"), 1, Decimal("150.00"))

        cart = _make_cart()
        cart.merge_lines(guest)

        assert cart.line_for(LineKey("cap-01")).id != guest.line_for(LineKey("cap-01")).id
        assert guest.item_count == 1


class TestLinePrice:
    def test_price_is_decimal_money(self):
        cart = _make_cart()
        line = cart.add_line(LineKey("onesie-01", "0-3m"), 1, Decimal("89.99"))

        assert line.unit_price == 89.99
        assert line.price == Decimal("89.99")
        assert cart.priced_lines() == [(Decimal("89.99"), 1)]


class TestLineKey:
    def test_str(self):
        assert str(LineKey("tee-01", "M")) == "tee-01:M:-"

    def test_keys_compare_by_value(self):
        assert LineKey("tee-01", "M", None) == LineKey("tee-01", "M")
