from typing import Any

from commerce_gateway.loaders.base import BatchedKeyLoader, stable_cache_key
from commerce_gateway.loaders.product import dummy_product
from commerce_gateway.loaders.search import filter_values, page_of
from commerce_gateway.loaders.spreadsheet import search_spreadsheet


async def search_products(params: dict[str, Any], action_parameters: dict[str, Any]) -> dict[str, Any] | None:
    """
    Search products in the commerce backend.

    ``params`` holds the arguments of the ``products`` field (``search``, ``filter``,
    ``pageSize``, ``currentPage``), or ``categoryId`` for the products of a category.
    A search the backend cannot answer gives ``None``.
    """
    url = action_parameters.get("url")

    if params.get("search") or params.get("categoryId"):
        return page_of(params, [dummy_product("product-1", url, 12.34), dummy_product("product-2", url, 56.78)])

    product_filter = params.get("filter") or {}
    skus = filter_values(product_filter.get("sku")) or filter_values(product_filter.get("url_key"))
    if skus:
        return page_of(params, [dummy_product(sku, url) for sku in skus])

    return None


class ProductsLoader(BatchedKeyLoader[dict[str, Any]]):
    kind = "products"

    def cache_key(self, key: dict[str, Any]) -> str:
        return stable_cache_key(key)

    def describe(self, key: dict[str, Any]) -> str:
        return stable_cache_key(key)

    async def fetch(self, key: dict[str, Any]) -> dict[str, Any] | None:
        spreadsheet = self.action_parameters.get("spreadsheet")
        if spreadsheet:
            return await search_spreadsheet(spreadsheet, key)
        return await search_products(key, self.action_parameters)
