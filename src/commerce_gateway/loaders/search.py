"""Helpers shared by the product search backends."""

from typing import Any

DEFAULT_PAGE_SIZE = 20
DEFAULT_CURRENT_PAGE = 1


def filter_values(condition: dict[str, Any] | None) -> list[Any]:
    """Return the values of an ``{eq: ...}`` or ``{in: [...]}`` filter condition."""
    if not condition:
        return []
    if condition.get("eq") is not None:
        return [condition["eq"]]
    return list(condition.get("in") or [])


def page_of(params: dict[str, Any], products: list[dict[str, Any]]) -> dict[str, Any]:
    page_size = params.get("pageSize") or DEFAULT_PAGE_SIZE
    current_page = params.get("currentPage") or DEFAULT_CURRENT_PAGE
    return {
        "total": len(products),
        "offset": current_page * page_size,
        "limit": page_size,
        "products": products,
    }
