from graphql import GraphQLSchema

ROOT_OPERATIONS = ("query", "mutation", "subscription")


def is_introspection_type(type_name: str) -> bool:
    return type_name.startswith("__")


def root_type_names(schema: GraphQLSchema) -> dict[str, str]:
    """Map the name of each root type of ``schema`` to its operation (query, mutation, subscription)."""
    roots = {
        "query": schema.query_type,
        "mutation": schema.mutation_type,
        "subscription": schema.subscription_type,
    }
    return {root.name: operation for operation, root in roots.items() if root is not None}


def default_root_type_name(operation: str) -> str:
    return operation.capitalize()
