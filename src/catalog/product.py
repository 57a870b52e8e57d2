"""Product snapshot as seen by the commerce core.

The catalog service owns products. The core only reads them, except for
``stock_quantity`` which mirrors the stock ledger's availability.
"""

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, computed_field

from shared.errors import InvalidVariant
from shared.money import Money


class Category(Enum):
    MENS = "mens"
    WOMENS = "womens"
    BABY = "baby"
    ACCESSORIES = "accessories"


class Product(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str = Field(min_length=1)
    name: str = Field(min_length=1, max_length=255)
    price: Money = Field(ge=0)
    category: Category
    stock_quantity: int = Field(default=0, ge=0)
    sizes: tuple[str, ...] = ()
    colors: tuple[str, ...] = ()
    sku: str | None = None

    @computed_field
    @property
    def in_stock(self) -> bool:
        return self.stock_quantity > 0

    def check_variant(self, size: str | None = None, color: str | None = None) -> None:
        """Reject a size or color the product does not offer.

        Choosing a variant is optional, but a chosen one must be listed.
        """
        if size is not None and size not in self.sizes:
            raise InvalidVariant(self.id, "size", size, self.sizes)
        if color is not None and color not in self.colors:
            raise InvalidVariant(self.id, "color", color, self.colors)
