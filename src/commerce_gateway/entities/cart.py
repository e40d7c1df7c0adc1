from typing import Any

from commerce_gateway import log
from commerce_gateway.entities.catalog import Product
from commerce_gateway.entities.lazy import DataField, LazyEntity
from commerce_gateway.loaders import CartLoader, CategoryTreeLoader, ProductLoader, ProductsLoader


def _money(currency: str, amount: float) -> dict[str, Any]:
    return {"currency": currency, "value": amount}


class Cart(LazyEntity):
    typename = "Cart"

    id = DataField()
    email = DataField()
    prices = DataField()
    total_quantity = DataField()

    def __init__(
        self,
        cart_id: str,
        graphql_context: dict[str, Any] | None = None,
        action_parameters: dict[str, Any] | None = None,
        cart_loader: CartLoader | None = None,
    ) -> None:
        super().__init__(graphql_context, action_parameters)
        self.cart_id = cart_id
        self.cart_loader = cart_loader or CartLoader(self.action_parameters)

        # Shared by all the items of the cart, and by the categories of their products
        self.product_loader = ProductLoader(self.action_parameters)
        self.products_loader = ProductsLoader(self.action_parameters)
        self.category_tree_loader = CategoryTreeLoader(self.action_parameters)

    async def load(self) -> Any:
        log.debug(f"Loading cart for {self.cart_id}")
        return await self.cart_loader.load(self.cart_id)

    def convert_data(self, data: dict[str, Any]) -> dict[str, Any]:
        total = data["totalPrice"]
        return {
            "id": data.get("id", self.cart_id),
            "email": data.get("email"),
            "prices": {"grand_total": _money(total["currency"], total["amount"])},
            "total_quantity": sum(entry["quantity"] for entry in data.get("entries") or []),
        }

    async def items(self, info: Any = None, **_: Any) -> Any:
        data = await self.resolve_data()
        if isinstance(data, Exception):
            return data

        currency = data["totalPrice"]["currency"]
        return [self._cart_item(idx, entry, currency) for idx, entry in enumerate(data.get("entries") or [])]

    def _cart_item(self, idx: int, entry: dict[str, Any], currency: str) -> dict[str, Any]:
        async def product(info: Any = None, **_: Any) -> Product:
            return Product(
                product_data=await self.product_loader.load(entry["sku"]),
                graphql_context=self.graphql_context,
                action_parameters=self.action_parameters,
                category_tree_loader=self.category_tree_loader,
                products_loader=self.products_loader,
            )

        return {
            "__typename": "SimpleCartItem",
            "id": str(idx),
            "uid": str(idx),
            "quantity": entry["quantity"],
            "prices": {
                "price": _money(currency, entry.get("unitPrice")),
                "row_total": _money(currency, entry.get("entryPrice")),
            },
            "product": product,
        }

    def __repr__(self) -> str:
        return f"<Cart {self.cart_id} {self.state.value}>"
