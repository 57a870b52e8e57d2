"""Shared BDD fixtures and step definitions for the Ordering domain."""

import pytest
from pytest_bdd import given, parsers, then


@pytest.fixture()
def error():
    """Container for the error a When step ran into."""
    return {"exc": None}


# ---------------------------------------------------------------------------
# Given steps
# ---------------------------------------------------------------------------
@given(
    parsers.cfparse('the customer "{customer}" has {quantity:d} of "{product_id}" in size "{size}" in their cart'),
    target_fixture="owner_id",
)
def _(store, customer, quantity, product_id, size):
    store.carts.add_item(customer, product_id, quantity, size=size)
    return customer


@given(parsers.cfparse('the customer also has {quantity:d} of "{product_id}" in their cart'))
def _(store, owner_id, quantity, product_id):
    store.carts.add_item(owner_id, product_id, quantity)


@given("the customer has placed an order", target_fixture="order")
def _(store, owner_id, address):
    return store.orders.place_order(owner_id, address, "pm_card_visa")


@given(parsers.cfparse('the order is "{status}"'), target_fixture="order")
def _(store, order, status):
    return store.orders.transition(order.id, status)


# ---------------------------------------------------------------------------
# Then steps
# ---------------------------------------------------------------------------
@then(parsers.cfparse('{quantity:d} units of "{product_id}" are available'))
def _(store, quantity, product_id):
    assert store.ledger.availability(product_id) == quantity
    assert store.catalog.get_product(product_id).stock_quantity == quantity
