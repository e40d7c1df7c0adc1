from collections.abc import Mapping
from typing import Any, TypeVar

from ariadne import MutationType, ObjectType, QueryType, make_executable_schema
from graphql import (
    DefinitionNode,
    DirectiveDefinitionNode,
    DocumentNode,
    FieldDefinitionNode,
    GraphQLError,
    GraphQLInterfaceType,
    GraphQLObjectType,
    GraphQLResolveInfo,
    GraphQLSchema,
    GraphQLUnionType,
    NameNode,
    ObjectTypeDefinitionNode,
    TypeDefinitionNode,
    default_field_resolver,
    parse,
    print_ast,
    print_schema,
)

from commerce_gateway import log
from commerce_gateway.errors import SchemaCompositionError
from commerce_gateway.schema.builder import SourceSchema
from commerce_gateway.schema.delegate import RemoteObject, make_delegating_resolver
from commerce_gateway.schema.graphql_type import (
    ROOT_OPERATIONS,
    default_root_type_name,
    is_introspection_type,
    root_type_names,
)

NodeT = TypeVar("NodeT")


def _keep_lowest(table: dict[str, tuple[SourceSchema, NodeT]], name: str, source: SourceSchema, node: NodeT) -> None:
    """Record ``node`` for ``name`` unless a source with a lower or equal sort order already defined it."""
    existing = table.get(name)
    if existing is None:
        table[name] = (source, node)
        return

    if source.sort_order < existing[0].sort_order:
        log.debug(f"'{name}' from sort order {source.sort_order} replaces sort order {existing[0].sort_order}")
        table[name] = (source, node)


def resolve_merged_field(source: Any, info: GraphQLResolveInfo, **args: Any) -> Any:
    """Read remote values by response key, and everything else the way graphql-core does."""
    if isinstance(source, RemoteObject):
        return source.get(info.path.key)
    return default_field_resolver(source, info, **args)


def resolve_abstract_type(value: Any, info: GraphQLResolveInfo, abstract_type: Any) -> str | None:
    if isinstance(value, Mapping):
        return value.get("__typename")
    return getattr(value, "typename", None) or None


def set_fallback_resolvers(schema: GraphQLSchema) -> GraphQLSchema:
    """
    Bind the default resolvers of a gateway schema.

    Fields without a resolver read remote values by response key, entity accessors and
    mappings otherwise. Interfaces and unions without a type resolver get one that
    reads ``__typename`` from mappings and ``typename`` from entities.
    """
    for type_ in schema.type_map.values():
        if is_introspection_type(type_.name):
            continue
        if isinstance(type_, GraphQLObjectType):
            for field in type_.fields.values():
                if field.resolve is None:
                    field.resolve = resolve_merged_field
        elif isinstance(type_, GraphQLInterfaceType | GraphQLUnionType) and type_.resolve_type is None:
            type_.resolve_type = resolve_abstract_type
    return schema


def merge_schemas(sources: list[SourceSchema]) -> GraphQLSchema:
    """
    Merge source schemas into one executable schema.

    When several sources define the same type, directive or root field, the one with
    the lowest sort order wins, and the earliest source wins on equal sort orders.
    Root fields won by a remote source are resolved by delegation to that source.
    """
    directives: dict[str, tuple[SourceSchema, DirectiveDefinitionNode]] = {}
    types: dict[str, tuple[SourceSchema, TypeDefinitionNode]] = {}
    root_fields: dict[str, dict[str, tuple[SourceSchema, FieldDefinitionNode]]] = {
        operation: {} for operation in ROOT_OPERATIONS
    }

    for source in sources:
        roots = root_type_names(source.schema)
        document = parse(print_schema(source.schema))

        for definition in document.definitions:
            if isinstance(definition, DirectiveDefinitionNode):
                _keep_lowest(directives, definition.name.value, source, definition)
            elif isinstance(definition, TypeDefinitionNode):
                name = definition.name.value
                if name in roots:
                    for field in definition.fields or ():
                        _keep_lowest(root_fields[roots[name]], field.name.value, source, field)
                else:
                    _keep_lowest(types, name, source, definition)

    if not root_fields["query"]:
        raise SchemaCompositionError("The merged schema has no Query field")

    definitions: list[DefinitionNode] = [node for _, node in directives.values()]
    definitions += [node for _, node in types.values()]
    bindables: list[ObjectType] = []

    for operation, fields in root_fields.items():
        if not fields:
            continue
        type_name = default_root_type_name(operation)
        if type_name in types:
            raise SchemaCompositionError(f"Type '{type_name}' clashes with the {operation} root type")

        definitions.append(
            ObjectTypeDefinitionNode(
                name=NameNode(value=type_name),
                interfaces=(),
                directives=(),
                fields=tuple(field for _, field in fields.values()),
            )
        )

        remote_fields = {name: source.fetcher for name, (source, _) in fields.items() if source.fetcher is not None}
        if remote_fields and operation in ("query", "mutation"):
            bindable = QueryType() if operation == "query" else MutationType()
            for name, fetcher in remote_fields.items():
                bindable.set_field(name, make_delegating_resolver(fetcher))
            bindables.append(bindable)

    type_defs = print_ast(DocumentNode(definitions=tuple(definitions)))

    try:
        schema = make_executable_schema(type_defs, *bindables)
    except (GraphQLError, TypeError, ValueError) as e:
        raise SchemaCompositionError(f"Cannot build the merged schema: {e}") from e

    log.info(
        f"Merged {len(sources)} schema(s): {len(types)} types, "
        f"{len(root_fields['query'])} query and {len(root_fields['mutation'])} mutation fields"
    )
    return set_fallback_resolvers(schema)
