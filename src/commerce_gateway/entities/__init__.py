from commerce_gateway.entities.cart import Cart
from commerce_gateway.entities.catalog import CategoryTree, Product, Products
from commerce_gateway.entities.lazy import DataField, LazyEntity, LoadState

__all__ = ["Cart", "CategoryTree", "DataField", "LazyEntity", "LoadState", "Product", "Products"]
