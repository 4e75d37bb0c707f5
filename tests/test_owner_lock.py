"""Unit tests for the per-owner mutation lock."""

import asyncio
from unittest.mock import AsyncMock, MagicMock
from uuid import uuid4

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from quizbank.errors import LockTimeoutError
from quizbank.services.owner_lock_service import LOCK_KEY_PREFIX, OwnerLockService
from quizbank.services.redis_service import RedisService


def _local_service(wait_seconds: float = 1.0) -> OwnerLockService:
    redis = MagicMock()
    redis.is_connected = False
    return OwnerLockService(redis, ttl_seconds=30, wait_seconds=wait_seconds)


def _distributed_service(set_result=True, wait_seconds: float = 1.0):
    client = MagicMock()
    client.set = AsyncMock(return_value=set_result)
    client.eval = AsyncMock(return_value=1)
    redis = MagicMock()
    redis.is_connected = True
    redis.client = client
    return OwnerLockService(redis, ttl_seconds=30, wait_seconds=wait_seconds), client


@pytest.mark.asyncio
class TestLocalOwnerLock:
    """Tests for the single-worker fallback."""

    async def test_serializes_same_owner(self):
        service = _local_service()
        owner_id = uuid4()
        events = []

        async def worker(name):
            async with service.hold(owner_id):
                events.append(f"{name}:start")
                await asyncio.sleep(0.01)
                events.append(f"{name}:end")

        await asyncio.gather(worker("a"), worker("b"))

        # Each holder finishes before the next one starts
        assert events[0].split(":")[0] == events[1].split(":")[0]
        assert events[2].split(":")[0] == events[3].split(":")[0]

    async def test_different_owners_do_not_block(self):
        service = _local_service(wait_seconds=0.05)

        async with service.hold(uuid4()):
            async with service.hold(uuid4()):
                pass

    async def test_times_out_while_held(self):
        service = _local_service(wait_seconds=0.05)
        owner_id = uuid4()

        async with service.hold(owner_id):
            with pytest.raises(LockTimeoutError):
                async with service.hold(owner_id):
                    pass

    async def test_released_when_block_raises(self):
        service = _local_service(wait_seconds=0.05)
        owner_id = uuid4()

        with pytest.raises(ValueError):
            async with service.hold(owner_id):
                raise ValueError("boom")

        async with service.hold(owner_id):
            pass

    async def test_forgets_owner_after_release(self):
        service = _local_service()
        owner_id = uuid4()

        async with service.hold(owner_id):
            assert owner_id in service._local_locks

        assert service._local_locks == {}
        assert service._local_users == {}

    async def test_forgets_owner_after_timeout(self):
        service = _local_service(wait_seconds=0.01)
        owner_id = uuid4()

        async with service.hold(owner_id):
            with pytest.raises(LockTimeoutError):
                async with service.hold(owner_id):
                    pass
            assert service._local_users[owner_id] == 1

        assert service._local_locks == {}
        assert service._local_users == {}

    async def test_keeps_lock_while_another_task_waits(self):
        service = _local_service()
        owner_id = uuid4()
        release = asyncio.Event()
        entered = []

        async def first():
            async with service.hold(owner_id):
                await release.wait()

        async def second():
            async with service.hold(owner_id):
                entered.append(service._local_locks.get(owner_id))

        holder = asyncio.create_task(first())
        await asyncio.sleep(0)
        original = service._local_locks[owner_id]
        waiter = asyncio.create_task(second())
        await asyncio.sleep(0)
        assert service._local_users[owner_id] == 2

        release.set()
        await asyncio.gather(holder, waiter)

        # The waiter acquired the same lock the first holder released
        assert entered == [original]
        assert service._local_locks == {}

    async def test_many_owners_leave_no_entries(self):
        service = _local_service()

        for _ in range(50):
            async with service.hold(uuid4()):
                pass

        assert service._local_locks == {}


@pytest.mark.asyncio
class TestDistributedOwnerLock:
    """Tests for the Redis-backed lock."""

    async def test_acquires_and_releases_with_token(self):
        service, client = _distributed_service()
        owner_id = uuid4()

        async with service.hold(owner_id):
            client.eval.assert_not_awaited()

        key = f"{LOCK_KEY_PREFIX}{owner_id}"
        set_args = client.set.await_args
        assert set_args.args[0] == key
        assert set_args.kwargs == {"nx": True, "ex": 30}
        token = set_args.args[1]
        eval_args = client.eval.await_args.args
        assert eval_args[1:] == (1, key, token)

    async def test_times_out_when_key_is_held(self):
        service, client = _distributed_service(set_result=None, wait_seconds=0.1)

        with pytest.raises(LockTimeoutError):
            async with service.hold(uuid4()):
                pass

        assert client.set.await_count >= 2
        client.eval.assert_not_awaited()

    async def test_released_when_block_raises(self):
        service, client = _distributed_service()

        with pytest.raises(RuntimeError):
            async with service.hold(uuid4()):
                raise RuntimeError("boom")

        client.eval.assert_awaited_once()


@pytest.mark.asyncio
class TestRedisServicePing:
    """Tests for the Redis health check behind the lock."""

    async def test_not_connected(self):
        assert await RedisService().ping() is False

    async def test_answers(self):
        service = RedisService()
        service._redis = MagicMock()
        service._redis.ping = AsyncMock(return_value=True)

        assert service.is_connected is True
        assert await service.ping() is True

    async def test_error_reported_as_false(self):
        service = RedisService()
        service._redis = MagicMock()
        service._redis.ping = AsyncMock(side_effect=RedisConnectionError("connection reset"))

        assert await service.ping() is False
