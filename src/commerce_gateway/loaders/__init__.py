from commerce_gateway.loaders.base import BatchedKeyLoader, stable_cache_key
from commerce_gateway.loaders.cart import CartLoader
from commerce_gateway.loaders.category import CategoryTreeLoader
from commerce_gateway.loaders.product import ProductLoader
from commerce_gateway.loaders.products import ProductsLoader

__all__ = [
    "BatchedKeyLoader",
    "CartLoader",
    "CategoryTreeLoader",
    "ProductLoader",
    "ProductsLoader",
    "stable_cache_key",
]
