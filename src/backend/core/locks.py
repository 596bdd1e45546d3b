"""
Keyed locks that serialize scheduling mutations.

Capacity checks and the insert they guard must run under the lock of the
technician being booked; request-level recomputation runs under the lock
of the request. Two providers share one interface:

- LocalLockProvider: asyncio locks, valid inside a single process.
- RedisLockProvider: redis-py distributed locks, valid across instances.

Keys are always acquired in sorted order so multi-key holders cannot
deadlock each other.
"""

import asyncio
import logging
import time
import weakref
from contextlib import asynccontextmanager
from typing import AsyncIterator, List, Optional

import redis.asyncio as redis
from redis.exceptions import LockError

from core.config import settings
from core.exceptions import ServiceError
from core.metrics import track_lock_timeout, track_lock_wait

logger = logging.getLogger(__name__)


def technician_key(technician_id: int) -> str:
    return f"technician:{technician_id}"


def request_key(request_id: int) -> str:
    return f"request:{request_id}"


class LockProvider:
    """Interface for keyed scheduling locks."""

    backend = "abstract"

    def __init__(self, timeout: Optional[float] = None):
        self.timeout = timeout if timeout is not None else settings.scheduling.lock_timeout_seconds

    @asynccontextmanager
    async def hold(self, *keys: str) -> AsyncIterator[None]:
        """Hold every lock in ``keys`` for the duration of the block.

        Raises:
            ServiceError: If any lock cannot be acquired within the timeout
        """
        ordered = sorted(set(keys))
        acquired: List[object] = []
        started = time.monotonic()
        try:
            for key in ordered:
                acquired.append(await self._acquire(key))
            track_lock_wait(self.backend, time.monotonic() - started)
            yield
        finally:
            for handle in reversed(acquired):
                await self._release(handle)

    async def _acquire(self, key: str) -> object:
        raise NotImplementedError

    async def _release(self, handle: object) -> None:
        raise NotImplementedError

    def _timed_out(self, key: str) -> ServiceError:
        track_lock_timeout(self.backend)
        logger.error(f"Timed out after {self.timeout}s waiting for scheduling lock '{key}'")
        return ServiceError(f"Could not acquire scheduling lock for {key}")


class LocalLockProvider(LockProvider):
    """In-process lock registry keyed by string."""

    backend = "local"

    def __init__(self, timeout: Optional[float] = None):
        super().__init__(timeout)
        # Entries disappear once no coroutine holds or awaits the lock
        self._locks: "weakref.WeakValueDictionary[str, asyncio.Lock]" = weakref.WeakValueDictionary()

    def _lock_for(self, key: str) -> asyncio.Lock:
        lock = self._locks.get(key)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[key] = lock
        return lock

    async def _acquire(self, key: str) -> object:
        lock = self._lock_for(key)
        try:
            await asyncio.wait_for(lock.acquire(), timeout=self.timeout)
        except asyncio.TimeoutError:
            raise self._timed_out(key)
        return lock

    async def _release(self, handle: object) -> None:
        handle.release()


class RedisLockProvider(LockProvider):
    """Distributed locks on top of redis-py's ``Redis.lock``."""

    backend = "redis"

    def __init__(
        self,
        client: redis.Redis,
        timeout: Optional[float] = None,
        lease_seconds: float = 30.0,
        key_prefix: Optional[str] = None,
    ):
        super().__init__(timeout)
        self.client = client
        self.lease_seconds = lease_seconds
        self.key_prefix = key_prefix if key_prefix is not None else f"{settings.redis.key_prefix}lock:"

    async def _acquire(self, key: str) -> object:
        lock = self.client.lock(
            f"{self.key_prefix}{key}",
            timeout=self.lease_seconds,
            blocking_timeout=self.timeout,
        )
        try:
            acquired = await lock.acquire()
        except redis.RedisError as exc:
            logger.error(f"Redis lock acquisition failed for '{key}': {exc}")
            raise ServiceError(f"Could not acquire scheduling lock for {key}") from exc
        if not acquired:
            raise self._timed_out(key)
        return lock

    async def _release(self, handle: object) -> None:
        try:
            await handle.release()
        except LockError as exc:
            # Lease expired before release; the holder ran longer than lease_seconds
            logger.warning(f"Scheduling lock released after lease expiry: {exc}")


def create_lock_provider(client: Optional[redis.Redis] = None) -> LockProvider:
    """Build the provider selected by ``SCHEDULING_LOCK_BACKEND``."""
    if settings.scheduling.lock_backend == "redis":
        if client is None:
            raise ServiceError("Redis lock backend selected but Redis is not connected")
        return RedisLockProvider(client)
    return LocalLockProvider()
