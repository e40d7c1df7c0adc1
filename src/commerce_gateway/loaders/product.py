from typing import Any

from commerce_gateway.loaders.base import BatchedKeyLoader

DEFAULT_CATEGORY_IDS = [1, 2]


def dummy_product(sku: str, url: str | None, amount: float = 12.34) -> dict[str, Any]:
    return {
        "sku": sku,
        "title": f"Product #{sku}",
        "description": f"Fetched product #{sku} from {url}",
        "price": {"currency": "USD", "amount": amount},
        "image_url": None,
        "categoryIds": list(DEFAULT_CATEGORY_IDS),
    }


async def get_product_by_sku(sku: str, action_parameters: dict[str, Any]) -> dict[str, Any] | None:
    return dummy_product(sku, action_parameters.get("url"))


class ProductLoader(BatchedKeyLoader[str]):
    kind = "product"

    async def fetch(self, key: str) -> dict[str, Any] | None:
        return await get_product_by_sku(key, self.action_parameters)
