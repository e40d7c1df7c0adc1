"""
Remote resolver action for carts.

Implements ``Query.cart`` and ``Mutation.createEmptyCart`` of the commerce schema. The
gateway introspects this action and delegates those fields to it.
"""

from functools import lru_cache
from typing import Any

from ariadne import graphql
from graphql import GraphQLSchema

from commerce_gateway import log
from commerce_gateway.entities import Cart
from commerce_gateway.schema import SchemaBuilder, commerce_schema_introspection, set_fallback_resolvers

NEW_CART_ID = "thisisthenewcartid"


@lru_cache(maxsize=1)
def cart_schema() -> GraphQLSchema:
    source = (
        SchemaBuilder(commerce_schema_introspection())
        .filter_mutation_fields({"createEmptyCart"})
        .filter_query_fields({"cart"})
        .build()
    )
    return set_fallback_resolvers(source.schema)


def build_root_resolvers(action_parameters: dict[str, Any]) -> dict[str, Any]:
    def cart(info: Any, cart_id: str, **_: Any) -> Cart:
        return Cart(cart_id, graphql_context=info.context, action_parameters=action_parameters)

    async def create_empty_cart(info: Any, **_: Any) -> str:
        # A real backend would create the cart here
        return NEW_CART_ID

    return {"cart": cart, "createEmptyCart": create_empty_cart}


async def main(params: dict[str, Any]) -> dict[str, Any]:
    """Execute a GraphQL request and return the bare GraphQL result ``{data, errors?}``."""
    log.debug(f"cart resolver action, operation {params.get('operationName')}")
    _, result = await graphql(
        cart_schema(),
        {
            "query": params.get("query"),
            "variables": params.get("variables"),
            "operationName": params.get("operationName"),
        },
        context_value=params.get("context"),
        root_value=build_root_resolvers(params),
    )
    return result
