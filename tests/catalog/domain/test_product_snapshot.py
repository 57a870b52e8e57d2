"""Tests for the Product snapshot and the in-memory catalog."""

from decimal import Decimal

import pytest
from catalog.fake_adapter import InMemoryCatalog
from catalog.product import Category, Product
from pydantic import ValidationError
from shared.errors import InvalidVariant, ProductNotFound


def _make_product(**overrides):
    defaults = {
        "id": "tee-01",
        "name": "Classic Tee",
        "price": "100.00",
        "category": Category.MENS,
        "stock_quantity": 10,
        "sizes": ("S", "M", "L"),
        "colors": ("black",),
    }
    defaults.update(overrides)
    return Product(**defaults)


class TestProduct:
    def test_price_is_fixed_point(self):
        product = _make_product(price=199.9)
        assert product.price == Decimal("199.90")

    def test_in_stock(self):
        assert _make_product(stock_quantity=1).in_stock is True
        assert _make_product(stock_quantity=0).in_stock is False

    def test_negative_price_rejected(self):
        with pytest.raises(ValidationError):
            _make_product(price="-1.00")

    def test_category_is_closed(self):
        with pytest.raises(ValidationError):
            _make_product(category="shoes")

    def test_category_from_value(self):
        assert _make_product(category="baby").category == Category.BABY


class TestVariantCheck:
    def test_listed_variant_is_accepted(self):
        _make_product().check_variant(size="M", color="black")

    def test_no_variant_chosen_is_accepted(self):
        _make_product().check_variant()

    def test_unlisted_size_is_rejected(self):
        with pytest.raises(InvalidVariant) as exc:
            _make_product().check_variant(size="XXL")

        assert exc.value.attribute == "size"
        assert exc.value.allowed == ("S", "M", "L")
        assert "size" in exc.value.messages

    def test_color_on_product_without_colors_is_rejected(self):
        product = _make_product(colors=())
        with pytest.raises(InvalidVariant) as exc:
            product.check_variant(color="red")

        assert exc.value.messages == {"color": ["Product tee-01 has no color options"]}


class TestInMemoryCatalog:
    def test_get_product(self):
        catalog = InMemoryCatalog([_make_product()])
        assert catalog.get_product("tee-01").name == "Classic Tee"

    def test_unknown_product(self):
        with pytest.raises(ProductNotFound):
            InMemoryCatalog().get_product("nope")

    def test_record_stock_level_updates_snapshot(self):
        catalog = InMemoryCatalog([_make_product(stock_quantity=10)])
        catalog.record_stock_level("tee-01", 0)

        assert catalog.get_product("tee-01").stock_quantity == 0
        assert catalog.get_product("tee-01").in_stock is False
        assert catalog.stock_notifications == [("tee-01", 0)]

    def test_record_stock_level_for_unknown_product_is_kept(self):
        catalog = InMemoryCatalog()
        catalog.record_stock_level("ghost", 3)
        assert catalog.stock_notifications == [("ghost", 3)]

    def test_reprice(self):
        catalog = InMemoryCatalog([_make_product()])
        catalog.reprice("tee-01", "120.00")
        assert catalog.get_product("tee-01").price == Decimal("120.00")

    def test_remove(self):
        catalog = InMemoryCatalog([_make_product()])
        catalog.remove("tee-01")
        with pytest.raises(ProductNotFound):
            catalog.get_product("tee-01")
