from functools import lru_cache
from pathlib import Path
from typing import Any

from ariadne import load_schema_from_path
from graphql import build_schema, introspection_from_schema

from commerce_gateway import log

RESOURCES_DIR = Path(__file__).parent / "resources"
COMMERCE_SCHEMA_PATH = RESOURCES_DIR / "commerce-schema.graphql"


@lru_cache(maxsize=1)
def commerce_schema_introspection() -> dict[str, Any]:
    """
    Return the introspection document of the full commerce schema.

    The document is shared by every caller: mutate a copy (SchemaBuilder does) and never
    the returned value.
    """
    log.debug(f"Loading commerce schema from {COMMERCE_SCHEMA_PATH}")
    schema = build_schema(load_schema_from_path(COMMERCE_SCHEMA_PATH))
    return dict(introspection_from_schema(schema))
