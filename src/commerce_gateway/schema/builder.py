import copy
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from graphql import GraphQLError, GraphQLSchema, build_client_schema, extend_schema, introspection_from_schema, parse

from commerce_gateway import log
from commerce_gateway.errors import SchemaCompositionError

if TYPE_CHECKING:
    from commerce_gateway.remote.fetcher import RemoteResolverFetcher

DEFAULT_SORT_ORDER = 1000


@dataclass
class SourceSchema:
    """
    One input of a schema merge.

    ``sort_order`` decides type conflicts: the lowest wins. Remote sources carry the
    fetcher used to delegate their root fields, and the name of their action.
    """

    schema: GraphQLSchema
    sort_order: int = DEFAULT_SORT_ORDER
    fetcher: "RemoteResolverFetcher | None" = None
    action: str | None = None


def _sort_fields(type_: dict[str, Any]) -> None:
    type_["fields"].sort(key=lambda field: field["name"])


class SchemaBuilder:
    """
    Reduces and extends an introspected schema, then builds it.

    The builder works on a deep copy of the introspection document given to it: the
    document itself can be reused for any number of builds. Every method returns the
    builder so that calls can be chained.

    Referencing a type, field or argument that does not exist raises
    ``SchemaCompositionError``.
    """

    def __init__(self, introspection: dict[str, Any]) -> None:
        document = introspection.get("data", introspection)
        if "__schema" not in document:
            raise SchemaCompositionError("Not an introspection document: missing '__schema'")
        self.schema: dict[str, Any] = copy.deepcopy(dict(document))

    @property
    def _schema(self) -> dict[str, Any]:
        return self.schema["__schema"]

    @property
    def types(self) -> list[dict[str, Any]]:
        return self._schema["types"]

    def _root_type_name(self, root: str) -> str:
        ref = self._schema.get(root)
        if not ref:
            raise SchemaCompositionError(f"The schema has no {root}")
        return ref["name"]

    def get_type(self, type_name: str) -> dict[str, Any]:
        for type_ in self.types:
            if type_["name"] == type_name:
                return type_
        raise SchemaCompositionError(f"Unknown type '{type_name}'")

    def get_field(self, type_name: str, field_name: str) -> dict[str, Any]:
        for field in self.get_type(type_name).get("fields") or []:
            if field["name"] == field_name:
                return field
        raise SchemaCompositionError(f"Unknown field '{type_name}.{field_name}'")

    def has_type(self, type_name: str) -> bool:
        return any(type_["name"] == type_name for type_ in self.types)

    def remove_type(self, type_name: str) -> "SchemaBuilder":
        self.get_type(type_name)
        self._schema["types"] = [type_ for type_ in self.types if type_["name"] != type_name]
        return self

    def _remove_root_type(self, root: str) -> "SchemaBuilder":
        self.remove_type(self._root_type_name(root))
        self._schema[root] = None
        return self

    def remove_query_type(self) -> "SchemaBuilder":
        return self._remove_root_type("queryType")

    def remove_mutation_type(self) -> "SchemaBuilder":
        return self._remove_root_type("mutationType")

    def _filter_root_fields(self, root: str, keep: set[str]) -> "SchemaBuilder":
        root_type = self.get_type(self._root_type_name(root))
        unknown = keep - {field["name"] for field in root_type["fields"]}
        if unknown:
            raise SchemaCompositionError(f"Unknown field(s) {sorted(unknown)} in {root_type['name']}")
        root_type["fields"] = [field for field in root_type["fields"] if field["name"] in keep]
        return self

    def filter_query_fields(self, keep: set[str]) -> "SchemaBuilder":
        """Keep exactly the named fields of the Query root type."""
        return self._filter_root_fields("queryType", keep)

    def filter_mutation_fields(self, keep: set[str]) -> "SchemaBuilder":
        """Keep exactly the named fields of the Mutation root type."""
        return self._filter_root_fields("mutationType", keep)

    def filter_input_fields(self, type_name: str, keep: set[str]) -> "SchemaBuilder":
        input_type = self.get_type(type_name)
        if input_type["kind"] != "INPUT_OBJECT":
            raise SchemaCompositionError(f"'{type_name}' is not an input type")
        unknown = keep - {field["name"] for field in input_type["inputFields"]}
        if unknown:
            raise SchemaCompositionError(f"Unknown input field(s) {sorted(unknown)} in {type_name}")
        input_type["inputFields"] = [field for field in input_type["inputFields"] if field["name"] in keep]
        return self

    def remove_field_argument(self, type_name: str, field_name: str, argument_name: str) -> "SchemaBuilder":
        field = self.get_field(type_name, field_name)
        if not any(argument["name"] == argument_name for argument in field["args"]):
            raise SchemaCompositionError(f"Unknown argument '{argument_name}' of {type_name}.{field_name}")
        field["args"] = [argument for argument in field["args"] if argument["name"] != argument_name]
        return self

    def _type_ref(self, type_name: str, is_list: bool) -> dict[str, Any]:
        named = self.get_type(type_name)
        ref: dict[str, Any] = {"kind": named["kind"], "name": type_name, "ofType": None}
        if is_list:
            ref = {"kind": "LIST", "name": None, "ofType": ref}
        return ref

    def add_field_to_type(
        self,
        type_name: str,
        field_name: str,
        description: str | None,
        field_type_name: str,
        is_list: bool = False,
    ) -> "SchemaBuilder":
        """
        Add a field without arguments to a type.

        When the type is an interface, the field is also added to every type implementing
        that interface. Each type gets its own copy of the field. Fields stay sorted by name.
        """
        target = self.get_type(type_name)
        if target["kind"] not in ("OBJECT", "INTERFACE"):
            raise SchemaCompositionError(f"Cannot add a field to '{type_name}' of kind {target['kind']}")

        field = {
            "name": field_name,
            "description": description,
            "args": [],
            "type": self._type_ref(field_type_name, is_list),
            "isDeprecated": False,
            "deprecationReason": None,
        }

        targets = [target]
        if target["kind"] == "INTERFACE":
            targets += [
                type_
                for type_ in self.types
                if any(interface["name"] == type_name for interface in type_.get("interfaces") or [])
            ]

        for type_ in targets:
            if any(existing["name"] == field_name for existing in type_["fields"]):
                raise SchemaCompositionError(f"Field '{type_['name']}.{field_name}' already exists")
            type_["fields"].append(copy.deepcopy(field))
            _sort_fields(type_)

        return self

    def extend(self, sdl: str) -> "SchemaBuilder":
        """Apply an SDL extension document and re-derive the introspection document from the result."""
        try:
            extended = extend_schema(build_client_schema(self.schema), parse(sdl))
        except (GraphQLError, TypeError) as e:
            raise SchemaCompositionError(f"Invalid schema extension: {e}") from e

        self.schema = dict(introspection_from_schema(extended))
        return self

    def build(self, sort_order: int = DEFAULT_SORT_ORDER) -> SourceSchema:
        """
        Build the schema, tagged with ``sort_order``.

        Root types left without fields are dropped, since GraphQL forbids empty root types.
        """
        for root in ("queryType", "mutationType", "subscriptionType"):
            ref = self._schema.get(root)
            if ref and not self.get_type(ref["name"])["fields"]:
                log.debug(f"Dropping root type {ref['name']} without fields")
                self._remove_root_type(root)

        try:
            schema = build_client_schema(self.schema)
        except (GraphQLError, TypeError) as e:
            raise SchemaCompositionError(f"Cannot build schema: {e}") from e

        return SourceSchema(schema=schema, sort_order=sort_order)
