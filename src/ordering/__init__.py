"""Ordering: shopping carts, order placement and the order lifecycle."""
