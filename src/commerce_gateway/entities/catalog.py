"""
Catalog entities.

CategoryTree, Products and Product build each other while traversing the graph, so
they live in one module. Every entity created during a traversal gets the loaders of
its parent, so that the whole request shares one fetch per category and per search.
"""

from typing import Any

from commerce_gateway import log
from commerce_gateway.entities.lazy import DataField, LazyEntity
from commerce_gateway.errors import BackendDataNull
from commerce_gateway.loaders import CategoryTreeLoader, ProductsLoader
from commerce_gateway.loaders.base import stable_cache_key


class CatalogEntity(LazyEntity):
    def __init__(
        self,
        graphql_context: dict[str, Any] | None = None,
        action_parameters: dict[str, Any] | None = None,
        category_tree_loader: CategoryTreeLoader | None = None,
        products_loader: ProductsLoader | None = None,
    ) -> None:
        super().__init__(graphql_context, action_parameters)
        self.category_tree_loader = category_tree_loader or CategoryTreeLoader(self.action_parameters)
        self.products_loader = products_loader or ProductsLoader(self.action_parameters)

    def shared(self) -> dict[str, Any]:
        """Keyword arguments handing the context and the loaders down to child entities."""
        return {
            "graphql_context": self.graphql_context,
            "action_parameters": self.action_parameters,
            "category_tree_loader": self.category_tree_loader,
            "products_loader": self.products_loader,
        }


class CategoryTree(CatalogEntity):
    typename = "CategoryTree"

    id = DataField()
    uid = DataField()
    url_key = DataField()
    url_path = DataField()
    name = DataField()
    description = DataField()
    image = DataField()
    product_count = DataField()

    def __init__(self, category_id: Any, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self.category_id = category_id

    async def load(self) -> Any:
        log.debug(f"Loading category for {self.category_id}")
        return await self.category_tree_loader.load(self.category_id)

    def convert_data(self, data: dict[str, Any]) -> dict[str, Any]:
        return {
            "id": data["id"],
            "uid": str(data["id"]),
            "url_key": str(data["id"]),
            "url_path": data["slug"],
            "name": data["title"],
            "description": data["description"],
            "product_count": 2,
        }

    async def children(self, info: Any = None, **_: Any) -> Any:
        data = await self.resolve_data()
        if isinstance(data, Exception):
            return data
        return [CategoryTree(category_id, **self.shared()) for category_id in data.get("subcategories") or []]

    async def children_count(self, info: Any = None, **_: Any) -> Any:
        # String in the commerce schema
        data = await self.resolve_data()
        if isinstance(data, Exception):
            return data
        return str(len(data.get("subcategories") or []))

    def products(self, info: Any = None, pageSize: int = 20, currentPage: int = 1, **_: Any) -> "Products":
        # Listing the products of a category does not need the category itself
        return Products(
            search={"categoryId": self.category_id, "pageSize": pageSize, "currentPage": currentPage},
            **self.shared(),
        )

    def __repr__(self) -> str:
        return f"<CategoryTree {self.category_id} {self.state.value}>"


class Products(CatalogEntity):
    """Result page of a product search."""

    typename = "Products"

    total_count = DataField()
    page_info = DataField()
    suggestions = DataField()

    def __init__(self, search: dict[str, Any], **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self.search = search

    async def load(self) -> Any:
        log.debug(f"Loading products for {stable_cache_key(self.search)}")
        return await self.products_loader.load(self.search)

    def convert_data(self, data: dict[str, Any]) -> dict[str, Any]:
        limit = data["limit"]
        return {
            "total_count": data["total"],
            "page_info": {
                "current_page": data["offset"] // limit if limit else 0,
                "page_size": limit,
            },
        }

    async def items(self, info: Any = None, **_: Any) -> Any:
        data = await self.resolve_data()
        if isinstance(data, Exception):
            return data
        return [Product(product_data=product_data, **self.shared()) for product_data in data.get("products") or []]


def _money(price: dict[str, Any]) -> dict[str, Any]:
    return {"currency": price["currency"], "value": price["amount"]}


def _product_price(price: dict[str, Any]) -> dict[str, Any]:
    # The backend has no discounts: final and regular prices are the same
    return {
        "final_price": _money(price),
        "regular_price": _money(price),
        "discount": {"amount_off": 0, "percent_off": 0},
    }


def _text(html: str | None) -> dict[str, Any] | None:
    return None if html is None else {"html": html}


def _image(data: dict[str, Any]) -> dict[str, Any]:
    return {"url": data.get("image_url"), "label": data["title"]}


class Product(CatalogEntity):
    """A product whose payload is already known, typically from a search or a cart entry."""

    typename = "SimpleProduct"

    id = DataField()
    uid = DataField()
    sku = DataField()
    url_key = DataField()
    name = DataField()
    description = DataField()
    short_description = DataField()
    price = DataField()
    price_range = DataField()
    small_image = DataField()
    image = DataField()
    thumbnail = DataField()
    media_gallery = DataField()
    updated_at = DataField()
    weight = DataField()
    # Added to ProductInterface by the gateway
    rating = DataField()
    accessories = DataField()
    country_of_origin = DataField()

    def __init__(self, product_data: dict[str, Any] | None, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self.product_data = product_data

    async def load(self) -> Any:
        return self.product_data

    def convert_data(self, data: dict[str, Any]) -> dict[str, Any]:
        price = data["price"]
        return {
            "uid": data["sku"],
            "sku": data["sku"],
            "url_key": data["sku"],
            "name": data["title"],
            "description": _text(data.get("description")),
            "short_description": _text(data.get("short_description")),
            "price": {
                "regularPrice": {"amount": _money(price)},
                "minimalPrice": {"amount": _money(price)},
                "maximalPrice": {"amount": _money(price)},
            },
            "price_range": {
                "minimum_price": _product_price(price),
                "maximum_price": _product_price(price),
            },
            "small_image": _image(data),
            "image": _image(data),
            "thumbnail": _image(data),
            "media_gallery": [
                {
                    "__typename": "ProductImage",
                    "url": data.get("image_url"),
                    "label": data["title"],
                    "disabled": False,
                    "position": 0,
                }
            ],
        }

    def categories(self, info: Any = None, **_: Any) -> Any:
        if self.product_data is None:
            return BackendDataNull()
        category_ids = self.product_data.get("categoryIds") or []
        return [CategoryTree(category_id, **self.shared()) for category_id in category_ids]

    def __repr__(self) -> str:
        sku = self.product_data.get("sku") if self.product_data else None
        return f"<Product {sku} {self.state.value}>"
