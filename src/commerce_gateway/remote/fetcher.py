from typing import Any

from graphql import DocumentNode, GraphQLSchema, build_client_schema, get_introspection_query, print_ast

from commerce_gateway import log
from commerce_gateway.errors import FetchFailure, SchemaCompositionError
from commerce_gateway.remote.invokers import ActionInvoker, LocalActionInvoker


class RemoteResolverFetcher:
    """Sends GraphQL requests to a remote resolver action and returns its JSON result."""

    def __init__(self, action_name: str, invoker: ActionInvoker | None = None) -> None:
        self.action_name = action_name
        self.invoker = invoker or LocalActionInvoker()

    async def __call__(
        self,
        query: DocumentNode | str,
        variables: dict[str, Any] | None = None,
        operation_name: str | None = None,
        context: Any = None,
    ) -> dict[str, Any]:
        params = {
            "query": query if isinstance(query, str) else print_ast(query),
            "variables": variables,
            "operationName": operation_name,
            "context": context,
        }
        result = await self.invoker.invoke(self.action_name, params)
        if not isinstance(result, dict):
            raise FetchFailure(f"Action {self.action_name} returned {type(result).__name__}, expected a GraphQL result")
        return result

    def __repr__(self) -> str:
        return f"RemoteResolverFetcher({self.action_name!r})"


async def introspect_schema(fetcher: RemoteResolverFetcher) -> GraphQLSchema:
    """Fetch the schema of a remote resolver action through an introspection query."""
    log.info(f"Introspecting remote schema of action {fetcher.action_name}")
    result = await fetcher(get_introspection_query(descriptions=True))

    if not result.get("data"):
        raise SchemaCompositionError(
            f"Introspection of action {fetcher.action_name} returned no data: {result.get('errors')}"
        )

    try:
        return build_client_schema(result["data"])
    except TypeError as e:
        raise SchemaCompositionError(f"Invalid introspection result from action {fetcher.action_name}: {e}") from e
