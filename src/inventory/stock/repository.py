"""Repository for StockItem aggregates."""

from inventory.stock.stock import StockItem
from shared.domain import storefront


@storefront.repository(part_of=StockItem)
class StockItemRepository:
    """Stock items keyed by product id.

    The base repository provides ``get`` and ``add``; saves go through
    ``shared.repository.save`` so that they are version-checked.
    """

    def tracked(self) -> list[StockItem]:
        """Every product the ledger tracks."""
        return list(self._dao.query.all().items)

    def is_tracked(self, product_id) -> bool:
        return bool(self._dao.query.filter(id=str(product_id)).all().items)
