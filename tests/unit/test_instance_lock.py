"""
Unit Tests: Bot Instance Lock (Redis замокан)
"""

import pytest
from unittest.mock import AsyncMock

from telegram_interface.lifecycle import BotInstanceLock


@pytest.fixture
def lock():
    lock = BotInstanceLock("localhost", 6379, 0, lock_key="intentions:test:lock", lock_ttl=30)
    lock.redis_client = AsyncMock()
    return lock


@pytest.mark.asyncio
async def test_acquire_uses_set_nx(lock):
    lock.redis_client.set.return_value = True

    assert await lock.acquire() is True
    lock.redis_client.set.assert_awaited_once_with("intentions:test:lock", lock.owner, nx=True, ex=30)


@pytest.mark.asyncio
async def test_acquire_fails_when_held(lock):
    lock.redis_client.set.return_value = None
    lock.redis_client.get.return_value = "other-host:1:2030"

    assert await lock.acquire() is False


@pytest.mark.asyncio
async def test_release_deletes_only_own_key(lock):
    client = lock.redis_client
    client.get.return_value = lock.owner

    await lock.release()

    client.delete.assert_awaited_once_with("intentions:test:lock")
    client.aclose.assert_awaited_once()
    assert lock.redis_client is None


@pytest.mark.asyncio
async def test_release_keeps_foreign_key(lock):
    client = lock.redis_client
    client.get.return_value = "other-host:1:2030"

    await lock.release()

    client.delete.assert_not_called()
