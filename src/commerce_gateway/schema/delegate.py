"""
Delegation of root fields to remote schemas.

A root field owned by a remote schema is resolved by sending the remote action a
document holding only that field (aliases, arguments, fragments and variables
included). The answer is wrapped in RemoteObject mappings that the merged schema
reads by response key, with remote errors placed at the path they were raised at.
"""

from collections.abc import Awaitable, Callable, Iterable
from typing import TYPE_CHECKING, Any

from graphql import (
    DocumentNode,
    FieldNode,
    FragmentDefinitionNode,
    FragmentSpreadNode,
    GraphQLError,
    GraphQLResolveInfo,
    NameNode,
    Node,
    OperationDefinitionNode,
    SelectionSetNode,
    VariableNode,
    Visitor,
    visit,
)

from commerce_gateway import log

if TYPE_CHECKING:
    from commerce_gateway.remote.fetcher import RemoteResolverFetcher

TYPENAME = "__typename"


class RemoteObject(dict[str, Any]):
    """An object value returned by a remote schema, keyed by response key."""


class TypenameAdder(Visitor):
    """Adds ``__typename`` to every selection set that does not select it yet."""

    def leave_selection_set(self, node: SelectionSetNode, *_: Any) -> SelectionSetNode | None:
        for selection in node.selections:
            if isinstance(selection, FieldNode) and selection.name.value == TYPENAME and selection.alias is None:
                return None
        typename = FieldNode(name=NameNode(value=TYPENAME), arguments=(), directives=())
        return SelectionSetNode(selections=(*node.selections, typename))


def _with_typename(node: Node) -> Any:
    return visit(node, TypenameAdder())


def _collect_names(nodes: Iterable[Node], fragments: dict[str, FragmentDefinitionNode]) -> tuple[list[str], set[str]]:
    """Return the fragment names (transitively, in discovery order) and the variable names used by ``nodes``."""
    fragment_names: list[str] = []
    variable_names: set[str] = set()

    class Collector(Visitor):
        def enter_fragment_spread(self, node: FragmentSpreadNode, *_: Any) -> None:
            name = node.name.value
            if name not in fragment_names and name in fragments:
                fragment_names.append(name)
                visit(fragments[name], self)

        def enter_variable(self, node: VariableNode, *_: Any) -> None:
            variable_names.add(node.name.value)

    collector = Collector()
    for node in nodes:
        visit(node, collector)

    return fragment_names, variable_names


def build_delegated_document(info: GraphQLResolveInfo) -> tuple[DocumentNode, dict[str, Any]]:
    """
    Build the document sent to the remote schema for the root field being resolved.

    Returns the document and the variable values it uses.
    """
    field_nodes = [_with_typename(node) for node in info.field_nodes]
    fragment_names, variable_names = _collect_names(info.field_nodes, info.fragments)
    fragments = [_with_typename(info.fragments[name]) for name in fragment_names]

    variable_definitions = tuple(
        definition
        for definition in info.operation.variable_definitions or ()
        if definition.variable.name.value in variable_names
    )
    variables = {name: value for name, value in info.variable_values.items() if name in variable_names}

    operation = OperationDefinitionNode(
        operation=info.operation.operation,
        name=info.operation.name,
        variable_definitions=variable_definitions,
        directives=(),
        selection_set=SelectionSetNode(selections=tuple(field_nodes)),
    )
    return DocumentNode(definitions=(operation, *fragments)), variables


def to_remote_value(value: Any) -> Any:
    if isinstance(value, dict):
        return RemoteObject((key, to_remote_value(item)) for key, item in value.items())
    if isinstance(value, list):
        return [to_remote_value(item) for item in value]
    return value


def _remote_error(error: dict[str, Any]) -> GraphQLError:
    return GraphQLError(error.get("message", "Remote error"), extensions=error.get("extensions"))


def place_error(payload: Any, path: list[str | int], error: GraphQLError) -> bool:
    """
    Put ``error`` in ``payload`` at the deepest null along ``path``.

    ``path`` starts below the delegated root field. Returns ``False`` when the error
    cannot be placed, that is when the root field value itself is null or the path
    does not lead to a null.
    """
    parent = payload
    for segment in path:
        try:
            value = parent[segment]
        except (KeyError, IndexError, TypeError):
            return False
        if value is None:
            parent[segment] = error
            return True
        if isinstance(value, GraphQLError):
            return True
        parent = value
    return False


def unwrap_remote_result(result: dict[str, Any], info: GraphQLResolveInfo) -> Any:
    """Return the value of the delegated root field, with the remote errors relocated in it."""
    response_key = info.path.key
    data = result.get("data")
    errors = result.get("errors") or []

    value = to_remote_value(data.get(response_key)) if isinstance(data, dict) else None

    unplaced: list[GraphQLError] = []
    for error in errors:
        graphql_error = _remote_error(error)
        path = list(error.get("path") or [])
        if value is None or not path or path[0] != response_key or not place_error(value, path[1:], graphql_error):
            unplaced.append(graphql_error)

    if value is None:
        if unplaced:
            raise unplaced[0]
        if data is None:
            raise GraphQLError("Remote schema returned no data")
        return None

    for error in unplaced:
        log.warning(f"Dropping remote error without a null value at its path: {error.message}")
    return value


def make_delegating_resolver(fetcher: "RemoteResolverFetcher") -> Callable[..., Awaitable[Any]]:
    async def resolve_remote_field(_root: Any, info: GraphQLResolveInfo, **_args: Any) -> Any:
        document, variables = build_delegated_document(info)
        operation_name = info.operation.name.value if info.operation.name else None
        log.debug(f"Delegating {info.parent_type.name}.{info.field_name} to {fetcher.action_name}")
        result = await fetcher(document, variables=variables, operation_name=operation_name, context=info.context)
        return unwrap_remote_result(result, info)

    return resolve_remote_field
