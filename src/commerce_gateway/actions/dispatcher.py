"""
Main gateway action.

Builds the merged schema once per process (local schema plus the introspected remote
schemas), then executes every request against it with resolvers instantiating the
catalog entities.
"""

import asyncio
from typing import Any

from ariadne import graphql
from graphql import GraphQLSchema, build_schema, print_schema
from pydantic import ValidationError

from commerce_gateway import log
from commerce_gateway.actions.utils import (
    check_missing_request_inputs,
    error_response,
    get_bearer_token,
    string_parameters,
)
from commerce_gateway.config import GatewayRequest, RemoteSchemaConfig
from commerce_gateway.entities import CategoryTree, Products
from commerce_gateway.errors import MalformedRequestError
from commerce_gateway.loaders import CategoryTreeLoader, ProductsLoader
from commerce_gateway.remote import ActionInvoker, LocalActionInvoker, RemoteResolverFetcher, introspect_schema
from commerce_gateway.schema import SchemaBuilder, SourceSchema, commerce_schema_introspection, merge_schemas
from commerce_gateway.state import StateStore, init_state

SCHEMAS_KEY = "schemas"
LOCAL_SORT_ORDER = 10
LOCAL_QUERY_FIELDS = {"products", "category", "customAttributeMetadata", "categoryList"}

SHOPPINGLIST_EXTENSION = """
extend type Query {
    "Fetches a shoppinglist by id"
    shoppinglist(id: String!): Shoppinglist
}

type Shoppinglist {
    "The shoppinglist id"
    id: String
    "The products in the shoppinglist"
    products: [ProductInterface]
}
"""


def local_schema() -> SourceSchema:
    """Return the part of the commerce schema implemented by this gateway, with its own additions."""
    builder = (
        SchemaBuilder(commerce_schema_introspection())
        .remove_mutation_type()
        .filter_query_fields(LOCAL_QUERY_FIELDS)
        .remove_field_argument("Query", "products", "sort")
        .extend(SHOPPINGLIST_EXTENSION)
    )

    builder.add_field_to_type("ProductInterface", "rating", "The rating of the product", "String")
    builder.add_field_to_type(
        "ProductInterface", "accessories", "The accessories of the product", "ProductInterface", is_list=True
    )
    builder.add_field_to_type(
        "ProductInterface",
        "country_of_origin",
        "The code of the country where the product is manufactured",
        "CountryCodeEnum",
    )

    return builder.build(LOCAL_SORT_ORDER)


class SchemaFederator:
    """
    Owner of the merged schema of a process.

    The schema is built by the first request and kept until ``reset``. With a cache TTL
    in the request, the SDL of the remote schemas is read from (or written to) the state
    store, so that a fresh process can skip remote introspection.
    """

    def __init__(self, invoker: ActionInvoker | None = None) -> None:
        self.invoker = invoker or LocalActionInvoker()
        self._merged: GraphQLSchema | None = None
        self._lock: asyncio.Lock | None = None
        self._lock_loop: asyncio.AbstractEventLoop | None = None

    @property
    def merged(self) -> GraphQLSchema | None:
        return self._merged

    def reset(self) -> None:
        self._merged = None
        self._lock = None
        self._lock_loop = None

    def _build_lock(self) -> asyncio.Lock:
        # A lock belongs to the event loop that first waits on it
        loop = asyncio.get_running_loop()
        if self._lock is None or self._lock_loop is not loop:
            self._lock = asyncio.Lock()
            self._lock_loop = loop
        return self._lock

    async def get_or_build(self, request: GatewayRequest, state: StateStore | None = None) -> GraphQLSchema:
        if self._merged is None:
            async with self._build_lock():
                if self._merged is None:
                    self._merged = await self._build(request, state)
        return self._merged

    async def _build(self, request: GatewayRequest, state: StateStore | None) -> GraphQLSchema:
        if request.use_cache is not None and state is not None:
            remotes = await self.cached_remote_schemas(request.remote_schemas or {}, state, request.use_cache)
        else:
            remotes = await self.prepare_remote_schema_fetchers(request.remote_schemas or {})

        log.info(f"Building merged schema with {len(remotes)} remote schema(s)")
        return merge_schemas([local_schema(), *remotes])

    async def cached_remote_schemas(
        self, remote_schemas: dict[str, RemoteSchemaConfig], state: StateStore, ttl: int
    ) -> list[SourceSchema]:
        """Read the remote schemas from the state cache, introspecting and storing them on a miss."""
        remotes = await self.fetch_remote_schemas_from_cache(state)
        if remotes is not None:
            return remotes

        remotes = await self.prepare_remote_schema_fetchers(remote_schemas)
        if remotes:
            log.debug(f"Storing {len(remotes)} remote schema(s) in the state cache with ttl {ttl}")
            cached = [
                {"schema": print_schema(remote.schema), "action": remote.action, "order": remote.sort_order}
                for remote in remotes
            ]
            await state.put(SCHEMAS_KEY, cached, ttl=ttl)
        return remotes

    async def prepare_remote_schema_fetchers(self, remote_schemas: dict[str, RemoteSchemaConfig]) -> list[SourceSchema]:
        """Introspect all the remote resolver actions concurrently."""

        async def introspect(name: str, remote: RemoteSchemaConfig) -> SourceSchema:
            log.debug(f"Preparing remote schema fetcher '{name}' for action {remote.action}")
            fetcher = RemoteResolverFetcher(remote.action, self.invoker)
            schema = await introspect_schema(fetcher)
            return SourceSchema(schema=schema, sort_order=remote.order, fetcher=fetcher, action=remote.action)

        return list(await asyncio.gather(*(introspect(name, remote) for name, remote in remote_schemas.items())))

    async def fetch_remote_schemas_from_cache(self, state: StateStore) -> list[SourceSchema] | None:
        """Rebuild the remote schemas from their cached SDL, or return None on a cache miss."""
        log.debug("Trying to get remote schemas from the state cache ...")
        cached = await state.get(SCHEMAS_KEY)
        if not cached:
            return None

        entries = cached["value"]
        log.info(f"Got {len(entries)} schema(s) from the state cache")
        return [
            SourceSchema(
                schema=build_schema(entry["schema"]),
                sort_order=entry["order"],
                fetcher=RemoteResolverFetcher(entry["action"], self.invoker),
                action=entry["action"],
            )
            for entry in entries
        ]


default_federator = SchemaFederator()


def clean_cached_schema() -> None:
    """Forget the merged schema of the default federator."""
    default_federator.reset()


def category_list_id(filters: dict[str, Any] | None) -> Any:
    filters = filters or {}
    condition = filters.get("ids") or filters.get("url_key") or {}
    category_id = condition.get("eq", 1) if condition else 1
    if isinstance(category_id, str) and category_id.isdigit():
        return int(category_id)
    return category_id


def build_root_resolvers(
    action_parameters: dict[str, Any],
    category_tree_loader: CategoryTreeLoader,
    products_loader: ProductsLoader,
) -> dict[str, Any]:
    """Return the root value of a request: one resolver per root field implemented locally."""
    shared = {
        "action_parameters": action_parameters,
        "category_tree_loader": category_tree_loader,
        "products_loader": products_loader,
    }

    def products(info: Any, **params: Any) -> Products:
        return Products(search=params, graphql_context=info.context, **shared)

    def category(info: Any, id: int | None = None, **_: Any) -> CategoryTree:
        return CategoryTree(id, graphql_context=info.context, **shared)

    def category_list(info: Any, filters: dict[str, Any] | None = None, **_: Any) -> list[CategoryTree]:
        return [CategoryTree(category_list_id(filters), graphql_context=info.context, **shared)]

    def custom_attribute_metadata(info: Any, **_: Any) -> None:
        # Not supported by this backend
        return None

    return {
        "products": products,
        "category": category,
        "categoryList": category_list,
        "customAttributeMetadata": custom_attribute_metadata,
    }


def parse_request(params: dict[str, Any]) -> GatewayRequest:
    missing = check_missing_request_inputs(params, ["query"])
    if missing:
        raise MalformedRequestError(missing)
    try:
        return GatewayRequest.model_validate(params)
    except ValidationError as e:
        raise MalformedRequestError(f"invalid request: {e.errors(include_url=False)}") from e


async def main(
    params: dict[str, Any],
    federator: SchemaFederator | None = None,
    state: StateStore | None = None,
) -> dict[str, Any]:
    """
    Execute one GraphQL request against the merged schema.

    Returns ``{"statusCode": 200, "body": {"data": ..., "errors": ...}}``, or an error
    response: 400 for a malformed request, 500 for any other failure. A ``LOG_LEVEL``
    parameter applies to this request only.
    """
    previous_level = log.level
    if params.get("LOG_LEVEL"):
        try:
            log.setLevel(str(params["LOG_LEVEL"]).upper())
        except ValueError:
            log.warning(f"Ignoring unknown LOG_LEVEL {params['LOG_LEVEL']!r}")

    try:
        return await execute_request(params, federator or default_federator, state)
    finally:
        log.setLevel(previous_level)


async def execute_request(
    params: dict[str, Any],
    federator: SchemaFederator,
    state: StateStore | None,
) -> dict[str, Any]:
    log.info("dispatcher resolve action")
    log.debug(string_parameters(params))

    try:
        request = parse_request(params)
    except MalformedRequestError as e:
        return error_response(e.status_code, str(e))

    try:
        if state is None and request.use_cache is not None:
            state = init_state()
        schema = await federator.get_or_build(request, state)

        context = {"authorization": get_bearer_token(params)}
        root_value = build_root_resolvers(params, CategoryTreeLoader(params), ProductsLoader(params))

        _, result = await graphql(
            schema,
            {"query": request.query, "variables": request.variables, "operationName": request.operation_name},
            context_value=context,
            root_value=root_value,
        )
    except Exception as e:
        log.error(f"Request failed: {e}", exc_info=True)
        return error_response(500, "server error")

    log.info("successful request")
    return {"statusCode": 200, "body": result}
