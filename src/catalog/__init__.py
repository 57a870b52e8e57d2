"""Catalog snapshot: read-mostly product data supplied by the catalog service."""

from catalog.fake_adapter import InMemoryCatalog
from catalog.port import CatalogService
from catalog.product import Category, Product

__all__ = ["CatalogService", "Category", "InMemoryCatalog", "Product"]
