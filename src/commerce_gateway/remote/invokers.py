"""Invocation of named actions, in process or over an OpenWhisk-compatible REST API."""

import importlib
import inspect
from typing import Any, Protocol

import httpx

from commerce_gateway import log
from commerce_gateway.config import HttpInvokerConfig
from commerce_gateway.errors import FetchFailure


class ActionInvoker(Protocol):
    async def invoke(self, action_name: str, params: dict[str, Any]) -> Any: ...


def unwrap_action_result(action_name: str, result: Any) -> Any:
    """
    Return the payload of an action result.

    ``{statusCode, body}`` envelopes are unwrapped to their body, ``{error: ...}``
    envelopes raise ``FetchFailure``.
    """
    if not isinstance(result, dict):
        return result

    if "error" in result and "data" not in result:
        error = result["error"]
        message = error.get("body", {}).get("error", error) if isinstance(error, dict) else error
        raise FetchFailure(f"Action {action_name} failed: {message}")

    if "statusCode" in result and "body" in result:
        return result["body"]

    return result


class LocalActionInvoker:
    """
    Runs actions in the current process.

    Action names are ``package.module`` (calling its ``main``) or
    ``package.module:function``.
    """

    async def invoke(self, action_name: str, params: dict[str, Any]) -> Any:
        module_name, _, function_name = action_name.partition(":")
        try:
            module = importlib.import_module(module_name)
        except ImportError as e:
            raise FetchFailure(f"Unknown action '{action_name}': {e}") from e

        action = getattr(module, function_name or "main", None)
        if not callable(action):
            raise FetchFailure(f"Action '{action_name}' has no callable '{function_name or 'main'}'")

        log.debug(f"Invoking local action {action_name}")
        result = action(params)
        if inspect.isawaitable(result):
            result = await result
        return unwrap_action_result(action_name, result)


class HttpActionInvoker:
    """Runs actions through the REST API of an OpenWhisk-compatible runtime, waiting for their result."""

    def __init__(self, config: HttpInvokerConfig, transport: httpx.AsyncBaseTransport | None = None) -> None:
        self.config = config
        self.transport = transport

    def action_url(self, action_name: str) -> str:
        return f"{self.config.api_host.rstrip('/')}/api/v1/namespaces/{self.config.namespace}/actions/{action_name}"

    async def invoke(self, action_name: str, params: dict[str, Any]) -> Any:
        url = self.action_url(action_name)
        log.debug(f"Invoking remote action {url}")
        try:
            async with httpx.AsyncClient(
                auth=self.config.credentials,
                timeout=self.config.timeout,
                transport=self.transport,
            ) as client:
                response = await client.post(url, params={"blocking": "true", "result": "true"}, json=params)
                response.raise_for_status()
                result = response.json()
        except httpx.HTTPError as e:
            raise FetchFailure(f"Action {action_name} failed: {e}") from e
        except ValueError as e:
            raise FetchFailure(f"Action {action_name} returned invalid JSON: {e}") from e

        return unwrap_action_result(action_name, result)


def build_invoker(config: HttpInvokerConfig | None = None) -> ActionInvoker:
    if config is None:
        return LocalActionInvoker()
    return HttpActionInvoker(config)
