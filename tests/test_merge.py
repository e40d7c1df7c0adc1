from types import SimpleNamespace
from typing import Any

import pytest
from graphql import graphql

from commerce_gateway.errors import SchemaCompositionError
from commerce_gateway.schema import merge_schemas
from commerce_gateway.schema.delegate import RemoteObject
from commerce_gateway.schema.merge import resolve_abstract_type, resolve_merged_field
from tests.conftest import local_source, remote_source, type_fields


class TestConflictResolution:
    def test_lower_sort_order_wins(self) -> None:
        local = local_source("type T { a: String } type Query { t: T }", sort_order=10)
        remote = remote_source("type T { b: Int } type Query { other: T }", sort_order=20)

        merged = merge_schemas([remote, local])

        assert type_fields(merged, "T") == ["a"]
        assert set(type_fields(merged, "Query")) == {"t", "other"}

    def test_equal_sort_order_keeps_first_source(self) -> None:
        first = local_source("type T { a: String } type Query { t: T }", sort_order=1000)
        second = remote_source("type T { b: Int } type Query { other: T }", sort_order=1000)

        assert type_fields(merge_schemas([first, second]), "T") == ["a"]
        assert type_fields(merge_schemas([second, first]), "T") == ["b"]

    def test_root_fields_merge_field_by_field(self) -> None:
        local = local_source("type Query { shared: String, mine: Int }", sort_order=10)
        remote = remote_source("type Query { shared: String, theirs: Int } type Mutation { act: Boolean }")

        merged = merge_schemas([local, remote])

        assert type_fields(merged, "Query") == ["shared", "mine", "theirs"]
        assert type_fields(merged, "Mutation") == ["act"]
        assert merged.query_type.fields["shared"].resolve is resolve_merged_field  # type: ignore[union-attr]
        assert merged.query_type.fields["theirs"].resolve is not resolve_merged_field  # type: ignore[union-attr]
        assert merged.mutation_type.fields["act"].resolve is not resolve_merged_field  # type: ignore[union-attr]

    def test_remote_root_field_with_lower_sort_order_is_delegated(self) -> None:
        local = local_source("type Query { shared: String }", sort_order=10)
        remote = remote_source("type Query { shared: String }", sort_order=5)

        merged = merge_schemas([local, remote])

        assert merged.query_type.fields["shared"].resolve is not resolve_merged_field  # type: ignore[union-attr]

    def test_renamed_root_types(self) -> None:
        remote = remote_source("schema { query: RootQuery } type RootQuery { hello: String }")

        merged = merge_schemas([remote])

        assert merged.query_type.name == "Query"  # type: ignore[union-attr]
        assert merged.get_type("RootQuery") is None

    def test_directives_are_merged(self) -> None:
        local = local_source(
            """
            directive @cacheable(maxAge: Int) on FIELD_DEFINITION
            type Query { a: String @cacheable(maxAge: 10) }
            """
        )

        merged = merge_schemas([local])

        assert merged.get_directive("cacheable") is not None

    def test_schema_without_query_fields(self) -> None:
        with pytest.raises(SchemaCompositionError, match="no Query field"):
            merge_schemas([])

    def test_type_clashing_with_root_type(self) -> None:
        local = local_source("schema { query: Q } type Q { m: Mutation } type Mutation { x: Int }")
        remote = remote_source("type Query { y: Int } type Mutation { act: Boolean }")

        with pytest.raises(SchemaCompositionError, match="clashes with the mutation root type"):
            merge_schemas([local, remote])


class TestFallbackResolvers:
    async def test_local_fields_resolve_from_root_value(self) -> None:
        merged = merge_schemas([local_source("type T { a: String, b(n: Int): Int } type Query { t: T }")])

        def resolve_t(info: Any) -> dict[str, Any]:
            return {"a": "x", "b": lambda info, n: n * 2}

        result = await graphql(merged, "{ t { a b(n: 21) } }", root_value={"t": resolve_t})

        assert result.errors is None
        assert result.data == {"t": {"a": "x", "b": 42}}

    async def test_abstract_types(self) -> None:
        merged = merge_schemas(
            [
                local_source(
                    """
                    interface Node { id: ID! }
                    type Widget implements Node { id: ID! size: Int }
                    type Gadget implements Node { id: ID! }
                    type Query { nodes: [Node] }
                    """
                )
            ]
        )

        class GadgetEntity:
            typename = "Gadget"
            id = "g1"

        root = {"nodes": lambda info: [{"__typename": "Widget", "id": "w1", "size": 3}, GadgetEntity()]}
        result = await graphql(merged, "{ nodes { __typename id ... on Widget { size } } }", root_value=root)

        assert result.errors is None
        assert result.data == {
            "nodes": [{"__typename": "Widget", "id": "w1", "size": 3}, {"__typename": "Gadget", "id": "g1"}]
        }

    def test_resolve_merged_field_reads_remote_objects_by_response_key(self) -> None:
        info = SimpleNamespace(path=SimpleNamespace(key="alias"), field_name="name")

        value = RemoteObject(alias="value", name="other")
        assert resolve_merged_field(value, info) == "value"  # type: ignore[arg-type]

    def test_resolve_abstract_type(self) -> None:
        class Entity:
            typename = "Widget"

        assert resolve_abstract_type({"__typename": "Gadget"}, None, None) == "Gadget"  # type: ignore[arg-type]
        assert resolve_abstract_type(Entity(), None, None) == "Widget"  # type: ignore[arg-type]
        assert resolve_abstract_type(object(), None, None) is None  # type: ignore[arg-type]
