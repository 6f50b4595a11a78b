"""
Bot Instance Lock - один процесс бота на токен

Redis SET NX с TTL: второй экземпляр получит конфликт getUpdates,
поэтому он не стартует, пока ключ держит другой процесс.
Ключ продлевается каждые lock_ttl/2 секунд и удаляется только владельцем.
"""

import asyncio
import logging
import os
import socket
from datetime import datetime
from typing import Optional

import redis.asyncio as redis

logger = logging.getLogger(__name__)


class BotInstanceLock:
    """Distributed lock экземпляра бота в Redis"""

    def __init__(
        self,
        redis_host: str,
        redis_port: int,
        redis_db: int,
        lock_key: str,
        lock_ttl: int = 30
    ):
        self.redis_host = redis_host
        self.redis_port = redis_port
        self.redis_db = redis_db
        self.lock_key = lock_key
        self.lock_ttl = lock_ttl

        self.owner = f"{socket.gethostname()}:{os.getpid()}:{datetime.now().isoformat()}"
        self.redis_client: Optional[redis.Redis] = None
        self.refresh_task: Optional[asyncio.Task] = None

    def _client(self) -> redis.Redis:
        if not self.redis_client:
            self.redis_client = redis.Redis(
                host=self.redis_host,
                port=self.redis_port,
                db=self.redis_db,
                decode_responses=True
            )
        return self.redis_client

    async def acquire(self) -> bool:
        """
        Returns:
            True если блокировка получена, False если ключ держит другой экземпляр
        """
        try:
            client = self._client()
            acquired = await client.set(self.lock_key, self.owner, nx=True, ex=self.lock_ttl)

            if acquired:
                logger.info(f"🔒 Bot instance lock acquired ({self.owner})")
                return True

            holder = await client.get(self.lock_key)
            logger.error(f"❌ Another bot instance is already running (holder: {holder})")
            return False

        except redis.RedisError as e:
            logger.error(f"❌ Failed to acquire instance lock: {e}")
            return False

    async def start_refresh(self):
        self.refresh_task = asyncio.create_task(self._refresh_loop())
        logger.info(f"🔄 Instance lock refresh every {self.lock_ttl // 2}s")

    async def _refresh_loop(self):
        try:
            while True:
                await asyncio.sleep(self.lock_ttl // 2)
                holder = await self.redis_client.get(self.lock_key)
                if holder not in (None, self.owner):
                    logger.error(f"❌ Instance lock taken over by {holder}")
                    return
                await self.redis_client.set(self.lock_key, self.owner, ex=self.lock_ttl)
                logger.debug(f"🔄 Instance lock refreshed (TTL: {self.lock_ttl}s)")

        except asyncio.CancelledError:
            logger.info("🛑 Instance lock refresh cancelled")
        except redis.RedisError as e:
            logger.error(f"❌ Error refreshing instance lock: {e}")

    async def release(self):
        """Остановить продление и удалить ключ, если он наш"""
        if self.refresh_task and not self.refresh_task.done():
            self.refresh_task.cancel()
            try:
                await self.refresh_task
            except asyncio.CancelledError:
                pass

        if not self.redis_client:
            return

        try:
            holder = await self.redis_client.get(self.lock_key)
            if holder == self.owner:
                await self.redis_client.delete(self.lock_key)
                logger.info("🔓 Bot instance lock released")
        except redis.RedisError as e:
            logger.error(f"❌ Error releasing instance lock: {e}")
        finally:
            await self.redis_client.aclose()
            self.redis_client = None
