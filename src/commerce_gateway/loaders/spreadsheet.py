"""Product search over a spreadsheet export (CSV) of the product catalog."""

import asyncio
import csv
from pathlib import Path
from typing import Any

from commerce_gateway import log
from commerce_gateway.loaders.search import filter_values, page_of

SKU, TITLE, PRICE, IMAGE_URL, CATEGORY, DESCRIPTION, SHORT_DESCRIPTION = 0, 1, 3, 4, 5, 8, 9
ROW_LENGTH = 10


def read_rows(path: Path) -> list[list[str]]:
    """Read the product rows, skipping the header row and padding short rows."""
    with path.open("r", encoding="utf-8", newline="") as f:
        rows = list(csv.reader(f))
    return [row + [""] * (ROW_LENGTH - len(row)) for row in rows[1:] if row]


def _category_id(value: str) -> int | str:
    return int(value) if value.isdigit() else value


def map_product_row(row: list[str]) -> dict[str, Any]:
    return {
        "sku": row[SKU],
        "title": row[TITLE],
        "description": row[DESCRIPTION],
        "short_description": row[SHORT_DESCRIPTION],
        "price": {"currency": "USD", "amount": float(row[PRICE]) if row[PRICE] else 0.0},
        "image_url": row[IMAGE_URL] or None,
        "categoryIds": [_category_id(row[CATEGORY])],
    }


def select_rows(rows: list[list[str]], params: dict[str, Any]) -> list[list[str]] | None:
    if params.get("search"):
        return [row for row in rows if params["search"] in row[TITLE]]

    if params.get("categoryId") is not None:
        return [row for row in rows if row[CATEGORY] == str(params["categoryId"])]

    product_filter = params.get("filter") or {}
    skus = filter_values(product_filter.get("sku")) or filter_values(product_filter.get("url_key"))
    if skus:
        return [row for row in rows if row[SKU] in skus]

    categories = filter_values(product_filter.get("category_uid")) or filter_values(product_filter.get("category_id"))
    if categories:
        wanted = {str(category) for category in categories}
        return [row for row in rows if row[CATEGORY] in wanted]

    return None


async def search_spreadsheet(spreadsheet: str | Path, params: dict[str, Any]) -> dict[str, Any] | None:
    path = Path(spreadsheet)
    log.debug(f"Searching products in spreadsheet {path}")
    rows = await asyncio.to_thread(read_rows, path)

    selected = select_rows(rows, params)
    if selected is None:
        return None
    return page_of(params, [map_product_row(row) for row in selected])
