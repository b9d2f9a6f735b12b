"""Record Store — key-value primitives over Redis with bounded, translated failures.

Invariants:
    - Values are bytes in and bytes out (decode_responses=False)
    - increment() is a single INCR: atomic at the server, returns the post-increment value
    - scan() walks the keyspace with a SCAN cursor; never issues KEYS
    - Every redis exception (including timeouts) surfaces as StoreFailureError;
      nothing retries internally
    - health_check() never raises

Design Decisions:
    - RecordStore ABC over passing a raw client around: the repository depends on
      six primitives, tests swap in an in-memory double (ADR: explicit handle, no singleton)
    - Socket and connect timeouts from settings: no store call blocks indefinitely
    - Glob metacharacters in scan prefixes are escaped so "user:" matches literally
"""

import logging
from abc import ABC, abstractmethod
from contextlib import asynccontextmanager
from typing import AsyncIterator

from redis.asyncio import Redis
from redis.exceptions import RedisError

from userstore.core.errors import StoreFailureError

logger = logging.getLogger(__name__)

_GLOB_SPECIAL = "\\*?[]"


def escape_glob(pattern: str) -> str:
    """Escape redis MATCH metacharacters so the pattern is taken literally."""
    return "".join(f"\\{c}" if c in _GLOB_SPECIAL else c for c in pattern)


class RecordStore(ABC):
    """Primitive operations the repository is built on."""

    @abstractmethod
    async def get(self, key: str) -> bytes | None: ...

    @abstractmethod
    async def set(self, key: str, value: bytes) -> bool: ...

    @abstractmethod
    async def exists(self, key: str) -> bool: ...

    @abstractmethod
    async def delete(self, key: str) -> bool:
        """True iff a key was removed."""

    @abstractmethod
    async def increment(self, key: str) -> int:
        """Atomically increment a counter (created at 0) and return the new value."""

    @abstractmethod
    def scan(self, prefix: str) -> AsyncIterator[str]:
        """Lazily yield keys starting with prefix."""

    @abstractmethod
    async def ping(self) -> None: ...

    @abstractmethod
    async def close(self) -> None: ...

    async def health_check(self) -> bool:
        """Check store connectivity (for the health check)."""
        try:
            await self.ping()
            return True
        except Exception as e:
            logger.error(f"Record store health check failed: {e}")
            return False


class RedisRecordStore(RecordStore):
    """RecordStore backed by a redis.asyncio client."""

    def __init__(self, client: Redis, scan_batch_size: int = 100):
        self._redis = client
        self._scan_batch_size = scan_batch_size

    @classmethod
    def from_url(
        cls,
        url: str,
        socket_timeout: float = 5.0,
        connect_timeout: float = 5.0,
        scan_batch_size: int = 100,
    ) -> "RedisRecordStore":
        client = Redis.from_url(
            url,
            decode_responses=False,
            socket_timeout=socket_timeout,
            socket_connect_timeout=connect_timeout,
        )
        return cls(client, scan_batch_size=scan_batch_size)

    @asynccontextmanager
    async def _translate_errors(self, operation: str, key: str = ""):
        try:
            yield
        except RedisError as e:
            logger.error(
                f"Redis {operation} failed for '{key}': {e}",
                extra={"operation": operation},
            )
            raise StoreFailureError(type(e).__name__, operation) from e

    async def get(self, key: str) -> bytes | None:
        async with self._translate_errors("get", key):
            return await self._redis.get(key)

    async def set(self, key: str, value: bytes) -> bool:
        async with self._translate_errors("set", key):
            return bool(await self._redis.set(key, value))

    async def exists(self, key: str) -> bool:
        async with self._translate_errors("exists", key):
            return await self._redis.exists(key) > 0

    async def delete(self, key: str) -> bool:
        async with self._translate_errors("delete", key):
            return await self._redis.delete(key) > 0

    async def increment(self, key: str) -> int:
        async with self._translate_errors("increment", key):
            return int(await self._redis.incr(key))

    async def scan(self, prefix: str) -> AsyncIterator[str]:
        match = f"{escape_glob(prefix)}*"
        async with self._translate_errors("scan", match):
            async for raw in self._redis.scan_iter(
                match=match, count=self._scan_batch_size,
            ):
                yield raw.decode() if isinstance(raw, bytes) else raw

    async def ping(self) -> None:
        async with self._translate_errors("ping"):
            await self._redis.ping()

    async def close(self) -> None:
        await self._redis.aclose()
