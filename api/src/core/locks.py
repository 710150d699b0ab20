"""Keyed mutual exclusion for read-modify-write sequences.

``KeyedLock.hold(*parts)`` serializes callers that share the same key.
With a Redis client the lock is distributed (``redis.asyncio`` Lock with a
lease), so every API worker sees it; without one it degrades to per-process
``asyncio.Lock`` objects that are dropped as soon as nobody holds or waits
for them.
"""

import asyncio
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

import redis.asyncio as redis
from redis.exceptions import LockError

from src.core.logging import get_logger


logger = get_logger(__name__)


class LockTimeoutError(Exception):
    """The lock could not be acquired within the wait bound."""

    def __init__(self, key: str):
        self.key = key
        super().__init__(f"Timed out waiting for lock {key}")


class KeyedLock:
    """Exclusive critical sections keyed by arbitrary parts."""

    def __init__(
        self,
        redis_client: redis.Redis | None = None,
        *,
        namespace: str = "lock",
        lease_seconds: float = 10.0,
        wait_seconds: float = 5.0,
    ):
        self.redis = redis_client
        self.namespace = namespace
        self.lease_seconds = lease_seconds
        self.wait_seconds = wait_seconds
        self._local_locks: dict[str, asyncio.Lock] = {}
        self._local_users: dict[str, int] = {}

    @property
    def is_distributed(self) -> bool:
        """True when locks are shared across processes through Redis."""
        return self.redis is not None

    def key_for(self, *parts: Any) -> str:
        """Build the lock name, e.g. ``progress:<user>:<course>``."""
        return ":".join([self.namespace, *(str(part) for part in parts)])

    @asynccontextmanager
    async def hold(self, *parts: Any) -> AsyncIterator[None]:
        """Hold the lock for ``parts`` for the duration of the block.

        Raises:
            LockTimeoutError: If the lock is not acquired within ``wait_seconds``
        """
        key = self.key_for(*parts)
        if self.redis is not None:
            async with self._hold_redis(key):
                yield
        else:
            async with self._hold_local(key):
                yield

    @asynccontextmanager
    async def _hold_redis(self, key: str) -> AsyncIterator[None]:
        lock = self.redis.lock(
            key,
            timeout=self.lease_seconds,
            blocking_timeout=self.wait_seconds,
        )
        if not await lock.acquire():
            raise LockTimeoutError(key)
        try:
            yield
        finally:
            try:
                await lock.release()
            except LockError:
                # Lease ran out while the block was still running
                logger.warning("lock_lease_expired", key=key, lease=self.lease_seconds)

    @asynccontextmanager
    async def _hold_local(self, key: str) -> AsyncIterator[None]:
        lock = self._local_locks.setdefault(key, asyncio.Lock())
        self._local_users[key] = self._local_users.get(key, 0) + 1
        try:
            try:
                async with asyncio.timeout(self.wait_seconds):
                    await lock.acquire()
            except TimeoutError:
                raise LockTimeoutError(key) from None
            try:
                yield
            finally:
                lock.release()
        finally:
            self._local_users[key] -= 1
            if self._local_users[key] == 0:
                del self._local_users[key]
                del self._local_locks[key]
