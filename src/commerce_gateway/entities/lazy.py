"""Deferred, memoized resolution of entity fields over a backend payload."""

import asyncio
import functools
from abc import ABC, abstractmethod
from enum import Enum
from typing import Any

from commerce_gateway.errors import BackendDataNull


class LoadState(Enum):
    UNLOADED = "unloaded"
    LOADING = "loading"
    LOADED = "loaded"
    FAILED = "failed"


class DataField:
    """
    Declares a plain data field of an entity.

    Reading the attribute gives a resolver-compatible accessor, called by graphql-core as
    ``accessor(info, **args)``, that serves the field from the converted payload and
    triggers the backend load on first use.
    """

    def __init__(self, key: str | None = None) -> None:
        self.key = key

    def __set_name__(self, owner: type, name: str) -> None:
        self.name = name
        if self.key is None:
            self.key = name

    def __get__(self, instance: "LazyEntity | None", owner: type) -> Any:
        if instance is None:
            return self
        return functools.partial(instance.get_field, self.key)


class LazyEntity(ABC):
    """
    Base class of all backend-resolved entities.

    The backend payload is loaded at most once per instance: the first field read starts
    the load, concurrent reads wait for the same load, and later reads are served from
    ``converted_data``. A failed load is final for the instance.

    Fields declared with :class:`DataField` go through the lazy path: a key missing from
    the converted payload gives ``None`` once the load succeeded. Methods and plain
    attributes of subclasses (graph traversal, static values) are resolved directly and
    never trigger a load by themselves. Every plain field of an entity's GraphQL type
    is declared as a :class:`DataField`.

    Load and conversion errors are returned, not raised, by the accessors: graphql-core
    then reports them at the path of the field being resolved, and sibling fields still
    resolve.
    """

    typename: str = ""

    def __init__(
        self,
        graphql_context: dict[str, Any] | None = None,
        action_parameters: dict[str, Any] | None = None,
    ) -> None:
        self.graphql_context = graphql_context
        self.action_parameters = action_parameters or {}
        self.data: Any = None
        self.converted_data: dict[str, Any] | None = None
        self.state = LoadState.UNLOADED
        self._pending: asyncio.Future[None] | None = None

    @abstractmethod
    async def load(self) -> Any:
        """Return the raw backend payload of this entity, ``None`` when there is none."""

    @abstractmethod
    def convert_data(self, data: Any) -> dict[str, Any]:
        """Convert the raw backend payload into the API field values."""

    def _loaded(self) -> "asyncio.Future[None]":
        if self._pending is None:
            self.state = LoadState.LOADING
            self._pending = asyncio.ensure_future(self._load_and_convert())
        return self._pending

    async def _load_and_convert(self) -> None:
        try:
            data = await self.load()
            if data is None:
                raise BackendDataNull()
            self.data = data
            self.converted_data = self.convert_data(data)
        except Exception:
            self.state = LoadState.FAILED
            raise
        self.state = LoadState.LOADED

    async def resolve_data(self) -> Any:
        """Return the raw payload once loaded, or the exception that made the load fail."""
        try:
            await self._loaded()
        except Exception as e:
            return e
        return self.data

    async def get_field(self, name: str, info: Any = None, **_: Any) -> Any:
        try:
            await self._loaded()
        except Exception as e:
            return e
        return (self.converted_data or {}).get(name)

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.state.value}>"
