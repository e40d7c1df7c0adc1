from commerce_gateway.remote.fetcher import RemoteResolverFetcher, introspect_schema
from commerce_gateway.remote.invokers import ActionInvoker, HttpActionInvoker, LocalActionInvoker, build_invoker

__all__ = [
    "ActionInvoker",
    "HttpActionInvoker",
    "LocalActionInvoker",
    "RemoteResolverFetcher",
    "build_invoker",
    "introspect_schema",
]
