"""Exceptions raised while composing schemas, loading backend data and handling requests."""


class GatewayError(Exception):
    """Base class for all gateway errors."""


class BackendDataNull(GatewayError):
    """A lazy entity got no payload from its backend (not found, or the fetch failed)."""

    def __init__(self, message: str = "Backend data is null") -> None:
        super().__init__(message)


class FetchFailure(GatewayError):
    """A backend or remote action call failed."""


class SchemaCompositionError(GatewayError):
    """A schema could not be filtered, extended, built or merged."""


class MalformedRequestError(GatewayError):
    """The top-level request is missing parameters or has invalid ones."""

    def __init__(self, message: str, status_code: int = 400) -> None:
        super().__init__(message)
        self.status_code = status_code
