import importlib
import logging
from collections import Counter
from collections.abc import Awaitable, Callable, Iterator
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import pytest
from graphql import GraphQLSchema, build_schema, introspection_from_schema, print_ast

from commerce_gateway import log
from commerce_gateway.actions.dispatcher import SchemaFederator, clean_cached_schema, main
from commerce_gateway.schema import SourceSchema
from commerce_gateway.state import MemoryStateStore

CART_ACTION = "commerce_gateway.actions.cart_resolver"
CART_REMOTE = {"cart": {"action": CART_ACTION, "order": 20}}

TESTS_DATA = Path(__file__).parent / "data"
PRODUCTS_CSV = TESTS_DATA / "products.csv"


@dataclass
class CallRecorder:
    """Keys passed to a spied backend function, in call order."""

    calls: list[Any] = field(default_factory=list)

    def count(self, key: Any) -> int:
        return sum(1 for call in self.calls if call == key)

    @property
    def counts(self) -> Counter[str]:
        return Counter(repr(call) for call in self.calls)


def spy_backend(
    monkeypatch: pytest.MonkeyPatch,
    target: str,
    replacement: Callable[..., Awaitable[Any]] | None = None,
) -> CallRecorder:
    """
    Replace the async backend function at ``target`` with a wrapper recording its first argument.

    The wrapper delegates to ``replacement`` when given, to the original function otherwise.
    """
    module_name, name = target.rsplit(".", 1)
    delegate = replacement or getattr(importlib.import_module(module_name), name)
    recorder = CallRecorder()

    async def wrapper(key: Any, action_parameters: dict[str, Any]) -> Any:
        recorder.calls.append(key)
        return await delegate(key, action_parameters)

    monkeypatch.setattr(target, wrapper)
    return recorder


async def failing_backend(key: Any, action_parameters: dict[str, Any]) -> Any:
    raise ConnectionError(f"backend unavailable for {key}")


def introspection_of(sdl: str) -> dict[str, Any]:
    return dict(introspection_from_schema(build_schema(sdl)))


@pytest.fixture(autouse=True)
def reset_gateway_state() -> Iterator[None]:
    yield
    clean_cached_schema()
    log.setLevel(logging.INFO)


@pytest.fixture
def category_calls(monkeypatch: pytest.MonkeyPatch) -> CallRecorder:
    return spy_backend(monkeypatch, "commerce_gateway.loaders.category.get_category_by_id")


@pytest.fixture
def product_calls(monkeypatch: pytest.MonkeyPatch) -> CallRecorder:
    return spy_backend(monkeypatch, "commerce_gateway.loaders.product.get_product_by_sku")


@pytest.fixture
def search_calls(monkeypatch: pytest.MonkeyPatch) -> CallRecorder:
    return spy_backend(monkeypatch, "commerce_gateway.loaders.products.search_products")


@pytest.fixture
def cart_calls(monkeypatch: pytest.MonkeyPatch) -> CallRecorder:
    return spy_backend(monkeypatch, "commerce_gateway.loaders.cart.get_cart_by_id")


@pytest.fixture
def federator() -> SchemaFederator:
    return SchemaFederator()


@pytest.fixture
def state_store() -> MemoryStateStore:
    return MemoryStateStore()


@pytest.fixture
def execute(federator: SchemaFederator) -> Callable[..., Awaitable[dict[str, Any]]]:
    """Run a query through the dispatcher and return the GraphQL body of a successful response."""

    async def run(query: str, variables: dict[str, Any] | None = None, **params: Any) -> dict[str, Any]:
        response = await main(
            {"query": query, "variables": variables, "url": "http://backend.test", **params},
            federator=federator,
        )
        assert response.get("statusCode") == 200, response
        return response["body"]

    return run


@pytest.fixture(scope="module")
def widget_schema_sdl() -> str:
    return """
    interface Node {
        id: ID!
    }

    interface Named {
        name: String
    }

    type Widget implements Node & Named {
        id: ID!
        name: String
        size: Int
    }

    type Gadget implements Node {
        id: ID!
        power: Float
    }

    enum Color {
        RED
        GREEN
    }

    input WidgetFilter {
        name: String
        size: Int
        color: Color
    }

    type Query {
        widget(id: ID!, locale: String): Widget
        widgets(filter: WidgetFilter): [Widget]
        gadget(id: ID!): Gadget
    }

    type Mutation {
        createWidget(name: String!): Widget
        deleteWidget(id: ID!): Boolean
    }
    """


@pytest.fixture
def widget_introspection(widget_schema_sdl: str) -> dict[str, Any]:
    return introspection_of(widget_schema_sdl)


def type_fields(schema: GraphQLSchema, type_name: str) -> list[str]:
    return list(schema.get_type(type_name).fields)  # type: ignore[union-attr]


class StaticFetcher:
    """Remote fetcher answering a fixed GraphQL result and recording the requests it got."""

    action_name = "static"

    def __init__(self, result: dict[str, Any]) -> None:
        self.result = result
        self.requests: list[dict[str, Any]] = []

    async def __call__(
        self,
        query: Any,
        variables: dict[str, Any] | None = None,
        operation_name: str | None = None,
        context: Any = None,
    ) -> dict[str, Any]:
        self.requests.append(
            {"query": print_ast(query), "variables": variables, "operation_name": operation_name, "context": context}
        )
        return self.result


def local_source(sdl: str, sort_order: int = 10) -> SourceSchema:
    return SourceSchema(schema=build_schema(sdl), sort_order=sort_order)


def remote_source(sdl: str, sort_order: int = 20, result: dict[str, Any] | None = None) -> SourceSchema:
    return SourceSchema(
        schema=build_schema(sdl),
        sort_order=sort_order,
        fetcher=StaticFetcher(result or {"data": {}}),  # type: ignore[arg-type]
        action="remote.action",
    )
