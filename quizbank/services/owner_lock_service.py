"""Per-owner mutation lock.

Folder tree and quiz title invariants (depth, acyclicity, sibling name and
title uniqueness) are checked before they are written, so two concurrent
mutations for the same owner could both pass validation against stale state.
Routers hold this lock across the service call and the commit to serialize
them.

With Redis connected the lock is distributed across workers:
- Acquire with SET NX EX, polling until ``owner_lock_wait_seconds`` elapses
- Release with a Lua compare-and-delete so only the holder can release

Without Redis a process-local ``asyncio.Lock`` per owner is used, which is
only correct for a single worker (``redis_required=False``).
"""

import asyncio
import logging
import secrets
import time
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional
from uuid import UUID

from ..config import settings
from ..errors import LockTimeoutError
from .redis_service import RedisService, redis_service

logger = logging.getLogger(__name__)

LOCK_KEY_PREFIX = "owner_lock:"
POLL_INTERVAL_SECONDS = 0.05


def _lock_key(owner_id: UUID) -> str:
    """Build Redis key for an owner lock."""
    return f"{LOCK_KEY_PREFIX}{owner_id}"


# Lua script: Release lock only if the token matches
# KEYS[1] = lock key, ARGV[1] = holder token
# Returns 1 if released, 0 if not holder or expired
_RELEASE_LOCK_SCRIPT = """
if redis.call('GET', KEYS[1]) == ARGV[1] then
    return redis.call('DEL', KEYS[1])
end
return 0
"""


class OwnerLockService:
    """
    Serializes mutations per owner.

    Args:
        redis: Redis service to use when connected
        ttl_seconds: Expiry of a distributed lock (crash safety)
        wait_seconds: How long to wait before giving up with LockTimeoutError
    """

    def __init__(
        self,
        redis: RedisService,
        ttl_seconds: Optional[int] = None,
        wait_seconds: Optional[float] = None,
    ):
        self.redis = redis
        self.ttl_seconds = ttl_seconds or settings.owner_lock_ttl_seconds
        self.wait_seconds = wait_seconds if wait_seconds is not None else settings.owner_lock_wait_seconds
        self._local_locks: dict[UUID, asyncio.Lock] = {}
        self._local_users: dict[UUID, int] = {}

    @asynccontextmanager
    async def hold(self, owner_id: UUID) -> AsyncIterator[None]:
        """
        Hold the owner's mutation lock for the duration of the block.

        Raises:
            LockTimeoutError: If the lock could not be acquired in time
        """
        if self.redis.is_connected:
            async with self._hold_distributed(owner_id):
                yield
        else:
            async with self._hold_local(owner_id):
                yield

    @asynccontextmanager
    async def _hold_local(self, owner_id: UUID) -> AsyncIterator[None]:
        # Entries live only while some task holds or waits on them
        lock = self._local_locks.setdefault(owner_id, asyncio.Lock())
        self._local_users[owner_id] = self._local_users.get(owner_id, 0) + 1
        acquired = False
        try:
            try:
                await asyncio.wait_for(lock.acquire(), timeout=self.wait_seconds)
            except asyncio.TimeoutError:
                logger.warning(f"Owner lock wait timed out (local): owner={owner_id}")
                raise LockTimeoutError()
            acquired = True
            yield
        finally:
            if acquired:
                lock.release()
            remaining = self._local_users[owner_id] - 1
            if remaining:
                self._local_users[owner_id] = remaining
            else:
                del self._local_users[owner_id]
                del self._local_locks[owner_id]

    @asynccontextmanager
    async def _hold_distributed(self, owner_id: UUID) -> AsyncIterator[None]:
        key = _lock_key(owner_id)
        token = secrets.token_hex(16)
        client = self.redis.client
        deadline = time.monotonic() + self.wait_seconds

        while not await client.set(key, token, nx=True, ex=self.ttl_seconds):
            if time.monotonic() >= deadline:
                logger.warning(f"Owner lock wait timed out: owner={owner_id}")
                raise LockTimeoutError()
            await asyncio.sleep(POLL_INTERVAL_SECONDS)

        logger.debug(f"Owner lock acquired: owner={owner_id}")
        try:
            yield
        finally:
            released = await client.eval(_RELEASE_LOCK_SCRIPT, 1, key, token)
            if released != 1:
                logger.warning(f"Owner lock expired before release: owner={owner_id}")


# Global instance
owner_lock_service = OwnerLockService(redis_service)


def get_owner_lock_service() -> OwnerLockService:
    """
    Factory function for FastAPI Depends().

    Returns:
        The shared OwnerLockService instance.
    """
    return owner_lock_service
