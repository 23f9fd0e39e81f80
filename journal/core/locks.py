import asyncio
import weakref
from contextlib import asynccontextmanager
from typing import AsyncIterator

import redis.asyncio as aioredis
import structlog

logger = structlog.get_logger()


class OwnerLock:
    """Per-owner advisory lock serializing hierarchy writes"""

    def __init__(self, redis_url: str, timeout: int, use_redis: bool = True):
        """
        Args:
            redis_url: Redis connection url
            timeout: Seconds to wait for (and to hold) a lock
            use_redis: Try Redis first, otherwise lock in-process only
        """
        self.redis_url = redis_url
        self.timeout = timeout
        self.use_redis = use_redis
        self.redis_client = None
        # An entry lives only while a holder or waiter references its lock
        self.locks: weakref.WeakValueDictionary[str, asyncio.Lock] = weakref.WeakValueDictionary()

    async def connect(self):
        if not self.use_redis:
            logger.info("owner_lock_using_memory")
            return

        try:
            self.redis_client = aioredis.from_url(self.redis_url)
            await self.redis_client.ping()
            logger.info("owner_lock_using_redis")
        except Exception as e:
            logger.warning("owner_lock_redis_failed_using_memory", error=str(e))
            self.redis_client = None
            self.use_redis = False

    async def close(self):
        if self.redis_client is not None:
            await self.redis_client.aclose()
            self.redis_client = None

    @asynccontextmanager
    async def hold(self, owner_id: str) -> AsyncIterator[None]:
        """Hold the lock for ``owner_id`` for the duration of the block"""
        if self.use_redis and self.redis_client is not None:
            async with self._hold_redis(owner_id):
                yield
        else:
            async with self._hold_memory(owner_id):
                yield

    @asynccontextmanager
    async def _hold_redis(self, owner_id: str) -> AsyncIterator[None]:
        lock = self.redis_client.lock(
            f"journal:owner_lock:{owner_id}",
            timeout=self.timeout,
            blocking_timeout=self.timeout
        )
        if not await lock.acquire():
            logger.error("owner_lock_timeout", owner_id=owner_id, backend="redis")
            raise TimeoutError(f"Could not lock owner {owner_id}")
        try:
            yield
        finally:
            try:
                await lock.release()
            except Exception as e:
                # Lock expired while held; the transaction itself already finished
                logger.warning("owner_lock_release_failed", owner_id=owner_id, error=str(e))

    @asynccontextmanager
    async def _hold_memory(self, owner_id: str) -> AsyncIterator[None]:
        lock = self.locks.setdefault(owner_id, asyncio.Lock())
        try:
            await asyncio.wait_for(lock.acquire(), timeout=self.timeout)
        except asyncio.TimeoutError:
            logger.error("owner_lock_timeout", owner_id=owner_id, backend="memory")
            raise TimeoutError(f"Could not lock owner {owner_id}")
        try:
            yield
        finally:
            lock.release()
