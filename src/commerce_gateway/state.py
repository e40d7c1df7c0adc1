"""Key-value store used to cache serialized remote schemas across cold starts."""

import asyncio
import hashlib
import json
import time
from pathlib import Path
from typing import Any, Protocol

from commerce_gateway import log
from commerce_gateway.config import StateBackend, StateConfig

# A TTL of -1 never expires
NO_EXPIRATION = -1
DEFAULT_TTL = 86400


class StateStore(Protocol):
    async def get(self, key: str) -> dict[str, Any] | None: ...

    async def put(self, key: str, value: Any, ttl: int = DEFAULT_TTL) -> None: ...

    async def delete(self, key: str) -> None: ...


def _expiration(ttl: int) -> float | None:
    if ttl == NO_EXPIRATION:
        return None
    return time.time() + ttl


def _is_expired(expiration: float | None) -> bool:
    return expiration is not None and expiration <= time.time()


class MemoryStateStore:
    """Process-local store; entries are dropped lazily once their TTL is over."""

    def __init__(self) -> None:
        self._entries: dict[str, tuple[Any, float | None]] = {}

    async def get(self, key: str) -> dict[str, Any] | None:
        entry = self._entries.get(key)
        if entry is None:
            return None
        value, expiration = entry
        if _is_expired(expiration):
            del self._entries[key]
            return None
        return {"value": value, "expiration": expiration}

    async def put(self, key: str, value: Any, ttl: int = DEFAULT_TTL) -> None:
        log.debug(f"Storing state key '{key}' with ttl {ttl}")
        self._entries[key] = (value, _expiration(ttl))

    async def delete(self, key: str) -> None:
        self._entries.pop(key, None)


class FileStateStore:
    """
    Store keeping one JSON document per key in a directory.

    Values must be JSON-serializable. File I/O runs in a worker thread so that the
    event loop is never blocked by a cache read or write.
    """

    def __init__(self, directory: Path) -> None:
        self.directory = directory

    def _path(self, key: str) -> Path:
        digest = hashlib.sha256(key.encode("utf-8")).hexdigest()
        return self.directory / f"{digest}.json"

    def _read(self, key: str) -> dict[str, Any] | None:
        path = self._path(key)
        if not path.exists():
            return None
        document = json.loads(path.read_text(encoding="utf-8"))
        if _is_expired(document["expiration"]):
            path.unlink(missing_ok=True)
            return None
        return {"value": document["value"], "expiration": document["expiration"]}

    def _write(self, key: str, value: Any, ttl: int) -> None:
        self.directory.mkdir(parents=True, exist_ok=True)
        document = {"key": key, "value": value, "expiration": _expiration(ttl)}
        self._path(key).write_text(json.dumps(document), encoding="utf-8")

    async def get(self, key: str) -> dict[str, Any] | None:
        return await asyncio.to_thread(self._read, key)

    async def put(self, key: str, value: Any, ttl: int = DEFAULT_TTL) -> None:
        log.debug(f"Storing state key '{key}' in {self.directory} with ttl {ttl}")
        await asyncio.to_thread(self._write, key, value, ttl)

    async def delete(self, key: str) -> None:
        await asyncio.to_thread(self._path(key).unlink, missing_ok=True)


_default_store: MemoryStateStore | None = None


def init_state(config: StateConfig | None = None) -> StateStore:
    """
    Return the state store described by ``config``.

    Without a config, the process-wide memory store is returned, so that every request
    handled by the same process sees the same entries.
    """
    global _default_store

    if config is not None and config.backend == StateBackend.FILE and config.directory is not None:
        return FileStateStore(config.directory)

    if _default_store is None:
        _default_store = MemoryStateStore()
    return _default_store
