from typing import Any

from commerce_gateway.loaders.base import BatchedKeyLoader


def to_slug(category_id: Any) -> str:
    """
    Build a dummy url path for a category id.

    Example: category 221 gives "2/22/221".
    """
    digits = str(category_id)
    if not digits.isdigit() or len(digits) < 2:
        return digits

    return "/".join(digits[: i + 1] for i in range(len(digits)))


def subcategory_ids(category_id: Any) -> list[int]:
    if not isinstance(category_id, int) or len(str(category_id)) >= 3:
        return []
    return [category_id * 10 + 1, category_id * 10 + 2]


async def get_category_by_id(category_id: Any, action_parameters: dict[str, Any]) -> dict[str, Any] | None:
    """
    Fetch a category from the commerce backend.

    A category lists the ids of its subcategories but not the products it contains:
    those need a separate product search.
    """
    return {
        "id": category_id,
        "slug": to_slug(category_id),
        "title": f"Category #{category_id}",
        "description": f"Fetched category #{category_id} from {action_parameters.get('url')}",
        "subcategories": subcategory_ids(category_id),
    }


class CategoryTreeLoader(BatchedKeyLoader[Any]):
    kind = "category"

    async def fetch(self, key: Any) -> dict[str, Any] | None:
        return await get_category_by_id(key, self.action_parameters)
