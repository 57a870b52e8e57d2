"""Catalog service port (abstract interface).

The commerce core reads product snapshots through this contract and pushes
stock-level changes back to it, so the storefront shows what the stock
ledger says can be sold.
"""

from abc import ABC, abstractmethod

from catalog.product import Product


class CatalogService(ABC):
    """Abstract catalog collaborator."""

    @abstractmethod
    def get_product(self, product_id: str) -> Product:
        """Return the current snapshot of a product or raise ``ProductNotFound``."""
        ...

    @abstractmethod
    def record_stock_level(self, product_id: str, available: int) -> None:
        """Receive the ledger's new available quantity for a product."""
        ...
