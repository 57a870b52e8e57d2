"""Application tests for the stock ledger: locking, catalog sync and admin operations."""

import threading

import pytest
from catalog.fake_adapter import InMemoryCatalog
from inventory.stock.ledger import StockLedger
from shared.domain import storefront
from shared.errors import (
    InsufficientStock,
    LedgerInvariantViolation,
    OperationTimedOut,
    ProductNotFound,
)
from structlog.testing import capture_logs


def _race(count, action):
    """Run ``action`` on ``count`` threads released at the same moment."""
    barrier = threading.Barrier(count)
    results, errors = [], []
    guard = threading.Lock()

    def worker():
        with storefront.domain_context():
            barrier.wait()
            try:
                outcome = action()
            except Exception as exc:
                with guard:
                    errors.append(exc)
            else:
                with guard:
                    results.append(outcome)

    threads = [threading.Thread(target=worker) for _ in range(count)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join(timeout=10)
    return results, errors


class TestConcurrentReservations:
    def test_two_buyers_for_the_last_unit(self, store):
        assert store.ledger.availability("onesie-01") == 1

        results, errors = _race(2, lambda: store.ledger.reserve("onesie-01", 1))

        assert len(results) == 1
        assert len(errors) == 1
        assert isinstance(errors[0], InsufficientStock)
        assert store.ledger.availability("onesie-01") == 0

    def test_many_buyers_never_oversell(self, store):
        results, errors = _race(12, lambda: store.ledger.reserve("cap-01", 1))

        assert len(results) == 5
        assert all(isinstance(exc, InsufficientStock) for exc in errors)
        level = store.ledger.level("cap-01")
        assert level.available == 0
        assert level.reserved == 5

    def test_lock_timeout(self, products, hold_stock_locks):
        ledger = StockLedger(InMemoryCatalog(products), lock_timeout=0.05)
        ledger.register_product("tee-01", 10)

        with hold_stock_locks(ledger, "tee-01"), pytest.raises(OperationTimedOut):
            ledger.reserve("tee-01", 1)

        assert ledger.availability("tee-01") == 10

    def test_locks_are_reentrant_for_the_holder(self, store):
        with store.ledger.locked(["tee-01", "cap-01"]):
            store.ledger.reserve("tee-01", 1)
            store.ledger.reserve("cap-01", 1)

        assert store.ledger.availability("tee-01") == 9
        assert store.ledger.availability("cap-01") == 4


class TestLedgerOperations:
    def test_reserve_notifies_catalog(self, store):
        store.ledger.reserve("tee-01", 4, order_id="ORD-1")

        assert store.catalog.get_product("tee-01").stock_quantity == 6
        assert store.catalog.stock_notifications[-1] == ("tee-01", 6)

    def test_reserve_then_release(self, store):
        store.ledger.reserve("tee-01", 4, order_id="ORD-1")
        level = store.ledger.release("tee-01", 4, order_id="ORD-1")

        assert level.available == 10
        assert store.catalog.get_product("tee-01").stock_quantity == 10

    def test_release_reservation_handle(self, store):
        reservation = store.ledger.reserve("dress-01", 2, order_id="ORD-1")
        store.ledger.release_reservation(reservation, reason="Order cancelled")

        assert store.ledger.availability("dress-01") == 3

    def test_releasing_a_handle_twice_is_logged_as_critical(self, store):
        reservation = store.ledger.reserve("dress-01", 2)
        store.ledger.release_reservation(reservation)

        with capture_logs() as logs, pytest.raises(LedgerInvariantViolation):
            store.ledger.release_reservation(reservation)

        assert any(log["log_level"] == "critical" for log in logs)
        assert store.ledger.availability("dress-01") == 3

    def test_over_release_leaves_stock_untouched(self, store):
        store.ledger.reserve("tee-01", 2)
        with pytest.raises(LedgerInvariantViolation):
            store.ledger.release("tee-01", 5)
        assert store.ledger.level("tee-01").reserved == 2

    def test_unknown_product(self, store):
        with pytest.raises(ProductNotFound):
            store.ledger.reserve("ghost", 1)

    def test_reinstate_reservation_handle(self, store):
        reservation = store.ledger.reserve("dress-01", 2, order_id="ORD-1")
        store.ledger.release_reservation(reservation)

        with capture_logs() as logs:
            level = store.ledger.reinstate_reservation(reservation)

        assert level.reserved == 2
        assert store.catalog.get_product("dress-01").stock_quantity == 1
        assert any(log["log_level"] == "warning" for log in logs)


class TestAnonymousRelease:
    def test_anonymous_release_cannot_take_an_orders_stock(self, store):
        store.ledger.reserve("cap-01", 2, order_id="ORD-1")

        with pytest.raises(LedgerInvariantViolation):
            store.ledger.release("cap-01", 1)

        level = store.ledger.level("cap-01")
        assert level.reserved == 2
        assert level.available == 3

    def test_anonymous_holds_release_alongside_order_holds(self, store):
        order_hold = store.ledger.reserve("cap-01", 2, order_id="ORD-1")
        anonymous = store.ledger.reserve("cap-01", 1)

        store.ledger.release("cap-01", 1)
        assert store.ledger.level("cap-01").reserved == 2
        assert anonymous.order_id is None

        store.ledger.release_reservation(order_hold)
        assert store.ledger.availability("cap-01") == 5


class TestStockAdministration:
    def test_register_product_is_idempotent(self, store):
        store.ledger.reserve("tee-01", 3)
        level = store.ledger.register_product("tee-01", 50)

        assert level.total == 10
        assert level.available == 7

    def test_receive_stock(self, store):
        level = store.ledger.receive_stock("onesie-01", 4, reference="PO-1")

        assert level.total == 5
        assert store.catalog.get_product("onesie-01").stock_quantity == 5

    def test_adjust_stock(self, store):
        level = store.ledger.adjust_stock("tee-01", -4, "Damaged in storage")
        assert level.available == 6

    def test_set_stock_level(self, store):
        store.ledger.reserve("tee-01", 2)
        level = store.ledger.set_stock_level("tee-01", 5)

        assert level.total == 5
        assert level.available == 3
        assert store.catalog.get_product("tee-01").stock_quantity == 3

    def test_stock_alerts(self, store):
        store.ledger.reserve("onesie-01", 1)

        alerts = store.ledger.stock_alerts()

        assert [lv.product_id for lv in alerts.out_of_stock] == ["onesie-01"]
        assert {lv.product_id for lv in alerts.low_stock} == {"dress-01", "cap-01"}
        assert alerts.messages == [
            "2 products are running low on stock",
            "1 products are out of stock",
        ]

    def test_no_alerts_when_well_stocked(self, store):
        store.ledger.receive_stock("dress-01", 10)
        store.ledger.receive_stock("onesie-01", 10)
        store.ledger.receive_stock("cap-01", 10)

        alerts = store.ledger.stock_alerts()

        assert alerts.low_stock == ()
        assert alerts.out_of_stock == ()
        assert alerts.messages == []
