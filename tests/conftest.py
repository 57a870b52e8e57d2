import threading
from contextlib import contextmanager
from pathlib import Path

import pytest
from catalog.product import Category, Product
from shared.config import CommerceSettings


def pytest_sessionstart(session):
    """Initialize the domain and push its context before collecting tests.

    The activated domain can then be referred to elsewhere as `current_domain`.
    """
    from app import storefront

    storefront.domain_context().push()


def pytest_collection_modifyitems(config, items):
    """Automatically mark tests based on their directory location."""
    for item in items:
        test_path = Path(item.fspath)

        if "/domain/" in str(test_path):
            item.add_marker(pytest.mark.domain)
        elif "/application/" in str(test_path):
            item.add_marker(pytest.mark.application)
        elif "/bdd/" in str(test_path):
            item.add_marker(pytest.mark.bdd)


@pytest.fixture(autouse=True)
def run_around_tests():
    """Fixture to automatically cleanup infrastructure after every test"""
    yield

    from protean.utils.globals import current_domain

    # Clear all databases
    for _, provider in current_domain.providers.items():
        provider._data_reset()

    # Drain event stores
    current_domain.event_store.store._data_reset()


@pytest.fixture
def settings():
    """Default settings, ignoring any local .env file."""
    return CommerceSettings(_env_file=None, log_level="WARNING")


@pytest.fixture
def products():
    return [
        Product(
            id="tee-01",
            name="Classic Tee",
            price="100.00",
            category=Category.MENS,
            stock_quantity=10,
            sizes=("S", "M", "L"),
            colors=("black", "white"),
            sku="TEE-01",
        ),
        Product(
            id="dress-01",
            name="Summer Dress",
            price="450.00",
            category=Category.WOMENS,
            stock_quantity=3,
            sizes=("S", "M"),
        ),
        Product(
            id="onesie-01",
            name="Cotton Onesie",
            price="89.99",
            category=Category.BABY,
            stock_quantity=1,
            sizes=("0-3m", "3-6m"),
        ),
        Product(
            id="cap-01",
            name="Canvas Cap",
            price="150.00",
            category=Category.ACCESSORIES,
            stock_quantity=5,
        ),
    ]


@pytest.fixture
def store(settings, products):
    """A freshly composed storefront with the sample products in stock."""
    from app import create_app

    return create_app(settings=settings, products=products)


@pytest.fixture
def hold_stock_locks():
    """Hold products' stock locks from another thread until the block exits."""

    @contextmanager
    def hold(ledger, *product_ids):
        acquired, done = threading.Event(), threading.Event()

        def holder():
            with ledger.locked(product_ids):
                acquired.set()
                done.wait(timeout=10)

        thread = threading.Thread(target=holder)
        thread.start()
        assert acquired.wait(timeout=5)
        try:
            yield
        finally:
            done.set()
            thread.join(timeout=5)

    return hold


@pytest.fixture
def address():
    return {
        "street": "12 Long Street",
        "city": "Cape Town",
        "state": "Western Cape",
        "postal_code": "8001",
        "country": "South Africa",
    }
