"""Helpers shared by the actions: parameter checks, auth headers and error responses."""

import json
from typing import Any

from commerce_gateway import log

HEADERS_KEY = "__ow_headers"


def string_parameters(params: dict[str, Any]) -> str:
    """Serialize the action parameters for logging, hiding the authorization header."""
    headers = params.get(HEADERS_KEY) or {}
    if headers.get("authorization"):
        headers = {**headers, "authorization": "<hidden>"}
    return json.dumps({**params, HEADERS_KEY: headers}, default=str)


def get_missing_keys(obj: dict[str, Any], required: list[str]) -> list[str]:
    """
    Return the required keys missing from ``obj``.

    Keys may be dotted paths into nested mappings. An empty string counts as missing.
    """
    missing = []
    for key in required:
        *parents, last = key.split(".")
        node: Any = obj
        for parent in parents:
            node = (node.get(parent) or {}) if isinstance(node, dict) else {}
        if not isinstance(node, dict) or node.get(last) is None or node.get(last) == "":
            missing.append(key)
    return missing


def check_missing_request_inputs(
    params: dict[str, Any],
    required_params: list[str] | None = None,
    required_headers: list[str] | None = None,
) -> str | None:
    """Return an error message naming the missing headers and parameters, or None when nothing is missing."""
    messages = []

    # Header names are always lower case
    headers = [header.lower() for header in required_headers or []]
    missing_headers = get_missing_keys(params.get(HEADERS_KEY) or {}, headers)
    if missing_headers:
        messages.append(f"missing header(s) '{','.join(missing_headers)}'")

    missing_params = get_missing_keys(params, required_params or [])
    if missing_params:
        messages.append(f"missing parameter(s) '{','.join(missing_params)}'")

    return " and ".join(messages) or None


def get_bearer_token(params: dict[str, Any]) -> str | None:
    authorization = (params.get(HEADERS_KEY) or {}).get("authorization") or ""
    if authorization.startswith("Bearer "):
        return authorization[len("Bearer ") :]
    return None


def error_response(status_code: int, message: str) -> dict[str, Any]:
    log.info(f"{status_code}: {message}")
    return {
        "error": {
            "statusCode": status_code,
            "body": {"error": message},
        }
    }
