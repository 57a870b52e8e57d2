"""In-memory catalog for development and testing."""

import threading

import structlog

from catalog.port import CatalogService
from catalog.product import Product
from shared.errors import ProductNotFound

logger = structlog.get_logger(__name__)


class InMemoryCatalog(CatalogService):
    """Catalog held in a dict, with a record of every stock notification."""

    def __init__(self, products=None) -> None:
        self._products: dict[str, Product] = {}
        self._lock = threading.Lock()
        self.stock_notifications: list[tuple[str, int]] = []
        for product in products or []:
            self.add(product)

    def add(self, product: Product) -> None:
        with self._lock:
            self._products[product.id] = product

    def remove(self, product_id: str) -> None:
        with self._lock:
            self._products.pop(product_id, None)

    def reprice(self, product_id: str, price) -> Product:
        with self._lock:
            product = self._get(product_id)
            updated = Product.model_validate({**product.model_dump(exclude={"in_stock"}), "price": price})
            self._products[product_id] = updated
            return updated

    def products(self) -> list[Product]:
        with self._lock:
            return list(self._products.values())

    def get_product(self, product_id: str) -> Product:
        with self._lock:
            return self._get(product_id)

    def record_stock_level(self, product_id: str, available: int) -> None:
        with self._lock:
            self.stock_notifications.append((product_id, available))
            product = self._products.get(product_id)
            if product is None:
                logger.warning("Stock level for unknown product", product_id=product_id, available=available)
                return
            self._products[product_id] = product.model_copy(update={"stock_quantity": available})

    def _get(self, product_id: str) -> Product:
        try:
            return self._products[product_id]
        except KeyError:
            raise ProductNotFound(product_id) from None
