import asyncio
import json
from abc import ABC, abstractmethod
from collections.abc import Hashable
from typing import Any, Generic, TypeVar

from strawberry.dataloader import DataLoader

from commerce_gateway import log

K = TypeVar("K")


def stable_cache_key(key: Any) -> str:
    """Serialize a compound key so that equal mappings give equal cache keys, whatever their key order."""
    return json.dumps(key, sort_keys=True, separators=(",", ":"), default=str)


class BatchedKeyLoader(ABC, Generic[K]):
    """
    Request-scoped loader for one kind of backend entity.

    Concurrent loads of equal keys share a single backend fetch. The cache is never
    evicted, so an instance must not outlive the request it was created for.

    A fetch that fails is logged and cached as ``None``: every later load of that key
    answers ``None`` without calling the backend again.
    """

    kind = "entity"

    def __init__(self, action_parameters: dict[str, Any] | None = None) -> None:
        self.action_parameters = action_parameters or {}
        self.loader: DataLoader[K, Any] = DataLoader(load_fn=self._load_batch, cache_key_fn=self.cache_key)

    def cache_key(self, key: K) -> Hashable:
        return key  # type: ignore[return-value]

    async def load(self, key: K) -> Any:
        return await self.loader.load(key)

    async def load_many(self, keys: list[K]) -> list[Any]:
        return await self.loader.load_many(keys)

    async def _load_batch(self, keys: list[K]) -> list[Any]:
        # One fetch per key; a backend with a bulk API would fetch the whole batch here,
        # keeping the results in the order of the keys.
        return list(await asyncio.gather(*(self._fetch_or_none(key) for key in keys)))

    async def _fetch_or_none(self, key: K) -> Any:
        log.debug(f"--> Fetching {self.kind} with key {self.describe(key)}")
        try:
            return await self.fetch(key)
        except Exception as e:
            log.error(f"Failed loading {self.kind} {self.describe(key)}, got error {e!r}")
            return None

    def describe(self, key: K) -> str:
        return str(key)

    @abstractmethod
    async def fetch(self, key: K) -> Any:
        """Fetch the backend payload of one key; ``None`` means "not found"."""
