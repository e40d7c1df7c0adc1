import logging
from types import SimpleNamespace
from typing import Any

import pytest
from graphql import GraphQLError, graphql

from commerce_gateway.schema import merge_schemas
from commerce_gateway.schema.delegate import RemoteObject, place_error, to_remote_value, unwrap_remote_result
from tests.conftest import StaticFetcher, remote_source

WIDGET_QUERY = """
query Find($id: ID!, $locale: String) {
    first: widget(id: $id, locale: $locale) {
        ...WidgetParts
    }
    gadget(id: "g1") {
        power
    }
}

fragment WidgetParts on Widget {
    name
    ...Sizes
}

fragment Sizes on Widget {
    size
}
"""


async def run_delegated(
    sdl: str, remote_result: dict[str, Any], query: str, **kwargs: Any
) -> tuple[Any, StaticFetcher]:
    source = remote_source(sdl, result=remote_result)
    result = await graphql(merge_schemas([source]), query, **kwargs)
    return result, source.fetcher  # type: ignore[return-value]


class TestDelegatedDocument:
    async def test_document_holds_only_the_delegated_field(self, widget_schema_sdl: str) -> None:
        remote_result = {
            "data": {
                "first": {"__typename": "Widget", "name": "w", "size": 3},
                "gadget": {"__typename": "Gadget", "power": 1.5},
            }
        }

        result, fetcher = await run_delegated(
            widget_schema_sdl,
            remote_result,
            WIDGET_QUERY,
            variable_values={"id": "w1", "locale": "fr"},
            context_value={"authorization": "token"},
        )

        assert result.errors is None
        assert result.data == {"first": {"name": "w", "size": 3}, "gadget": {"power": 1.5}}

        widget_request = next(request for request in fetcher.requests if "first: widget" in request["query"])
        assert "query Find($id: ID!, $locale: String)" in widget_request["query"]
        assert "fragment WidgetParts on Widget" in widget_request["query"]
        assert "fragment Sizes on Widget" in widget_request["query"]
        assert "__typename" in widget_request["query"]
        assert "gadget" not in widget_request["query"]
        assert widget_request["variables"] == {"id": "w1", "locale": "fr"}
        assert widget_request["operation_name"] == "Find"
        assert widget_request["context"] == {"authorization": "token"}

        gadget_request = next(request for request in fetcher.requests if "gadget(" in request["query"])
        assert gadget_request["query"].startswith("query Find {")
        assert "fragment" not in gadget_request["query"]
        assert gadget_request["variables"] == {}

    async def test_mutation_is_delegated_as_mutation(self, widget_schema_sdl: str) -> None:
        remote_result = {"data": {"createWidget": {"__typename": "Widget", "id": "w9"}}}

        result, fetcher = await run_delegated(
            widget_schema_sdl, remote_result, 'mutation { createWidget(name: "x") { id } }'
        )

        assert result.data == {"createWidget": {"id": "w9"}}
        assert fetcher.requests[0]["query"].startswith("mutation {")
        assert fetcher.requests[0]["operation_name"] is None

    async def test_abstract_types_use_remote_typename(self) -> None:
        sdl = """
        interface Node { id: ID! }
        type Widget implements Node { id: ID! size: Int }
        type Query { node(id: ID!): Node }
        """
        remote_result = {"data": {"node": {"__typename": "Widget", "id": "w1", "size": 2}}}

        result, _ = await run_delegated(sdl, remote_result, '{ node(id: "w1") { id ... on Widget { size } } }')

        assert result.errors is None
        assert result.data == {"node": {"id": "w1", "size": 2}}


class TestRemoteErrors:
    async def test_nested_error_is_placed_at_its_path(self, widget_schema_sdl: str) -> None:
        remote_result = {
            "data": {
                "widgets": [
                    {"__typename": "Widget", "name": "a", "size": None},
                    {"__typename": "Widget", "name": "b", "size": 3},
                ]
            },
            "errors": [{"message": "size unavailable", "path": ["widgets", 0, "size"]}],
        }

        result, _ = await run_delegated(widget_schema_sdl, remote_result, "{ widgets { name size } }")

        assert result.data == {"widgets": [{"name": "a", "size": None}, {"name": "b", "size": 3}]}
        errors = [(error.message, error.path) for error in result.errors]
        assert errors == [("size unavailable", ["widgets", 0, "size"])]

    async def test_error_on_aliased_root_field(self, widget_schema_sdl: str) -> None:
        remote_result = {
            "data": {"w": None},
            "errors": [{"message": "Widget not found", "path": ["w"], "extensions": {"code": "NOT_FOUND"}}],
        }

        result, _ = await run_delegated(widget_schema_sdl, remote_result, '{ w: widget(id: "1") { name } }')

        assert result.data == {"w": None}
        assert len(result.errors) == 1
        assert result.errors[0].message == "Widget not found"
        assert result.errors[0].path == ["w"]
        assert result.errors[0].extensions == {"code": "NOT_FOUND"}

    async def test_remote_without_data(self, widget_schema_sdl: str) -> None:
        result, _ = await run_delegated(widget_schema_sdl, {"data": None}, '{ widget(id: "1") { name } }')

        assert result.data == {"widget": None}
        assert result.errors[0].message == "Remote schema returned no data"
        assert result.errors[0].path == ["widget"]

    async def test_root_null_without_error(self, widget_schema_sdl: str) -> None:
        result, _ = await run_delegated(widget_schema_sdl, {"data": {"widget": None}}, '{ widget(id: "1") { name } }')

        assert result.errors is None
        assert result.data == {"widget": None}


class TestPlaceError:
    def test_deepest_null(self) -> None:
        payload = to_remote_value({"items": [{"product": None}]})
        error = GraphQLError("boom")

        assert place_error(payload, ["items", 0, "product", "sku"], error)
        assert payload["items"][0]["product"] is error

    def test_path_without_null(self) -> None:
        payload = to_remote_value({"items": [{"product": {"sku": "a"}}]})
        assert not place_error(payload, ["items", 0, "product", "sku"], GraphQLError("boom"))

    def test_path_outside_payload(self) -> None:
        payload = to_remote_value({"items": []})
        assert not place_error(payload, ["items", 3, "product"], GraphQLError("boom"))

    def test_second_error_at_same_path_is_absorbed(self) -> None:
        payload = to_remote_value({"product": None})
        first = GraphQLError("first")

        assert place_error(payload, ["product"], first)
        assert place_error(payload, ["product"], GraphQLError("second"))
        assert payload["product"] is first


class TestUnwrapRemoteResult:
    def info(self, key: str) -> Any:
        return SimpleNamespace(path=SimpleNamespace(key=key))

    def test_remote_values(self) -> None:
        value = unwrap_remote_result({"data": {"cart": {"items": [{"quantity": 1}]}}}, self.info("cart"))

        assert isinstance(value, RemoteObject)
        assert isinstance(value["items"][0], RemoteObject)
        assert value == {"items": [{"quantity": 1}]}

    def test_unplaced_error_is_logged(self, caplog: pytest.LogCaptureFixture) -> None:
        result = {"data": {"cart": {"id": "a"}}, "errors": [{"message": "odd", "path": ["cart", "id"]}]}

        with caplog.at_level(logging.WARNING, logger="commerce_gateway"):
            value = unwrap_remote_result(result, self.info("cart"))

        assert value == {"id": "a"}
        assert "odd" in caplog.text

    def test_error_without_path_on_null_root(self) -> None:
        result = {"data": {"cart": None}, "errors": [{"message": "Cart backend down"}]}

        with pytest.raises(GraphQLError, match="Cart backend down"):
            unwrap_remote_result(result, self.info("cart"))
