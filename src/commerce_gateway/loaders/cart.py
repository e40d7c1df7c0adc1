from typing import Any

from commerce_gateway.loaders.base import BatchedKeyLoader


async def get_cart_by_id(cart_id: str, action_parameters: dict[str, Any]) -> dict[str, Any] | None:
    """
    Fetch a cart from the commerce backend.

    The dummy backend answers the same two entries for every cart id. Each entry only
    carries the product sku: the products themselves are loaded by the cart items.
    """
    return {
        "id": cart_id,
        "email": "dummy@example.com",
        "entries": [
            {"quantity": 1, "sku": "product-1", "unitPrice": 12.34, "entryPrice": 24.68},
            {"quantity": 2, "sku": "product-2", "unitPrice": 56.78, "entryPrice": 113.56},
        ],
        "totalPrice": {"currency": "USD", "amount": 138.24},
    }


class CartLoader(BatchedKeyLoader[str]):
    kind = "cart"

    async def fetch(self, key: str) -> dict[str, Any] | None:
        return await get_cart_by_id(key, self.action_parameters)
