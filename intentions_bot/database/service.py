"""
Database Service - пул asyncpg для схемы журнала

Отвечает ТОЛЬКО за:
- пул соединений с search_path на схему intentions
- создание схемы при первом подключении
- четыре вида запросов и транзакцию для DAO

Ошибки PostgreSQL пробрасываются как есть, DAO сами решают,
что из них доменная ошибка.
"""

import logging
from contextlib import asynccontextmanager
from typing import Optional

import asyncpg

from intentions_bot.core.exceptions import StoreError

logger = logging.getLogger(__name__)


def _verb(query: str) -> str:
    """Первое слово запроса для логов, без параметров и текста"""
    words = query.split(None, 1)
    return words[0].upper() if words else "?"


class DatabaseService:
    """Пул соединений журнала"""

    def __init__(self, host: str, port: int, user: str, password: str, database: str, schema: str = 'intentions'):
        self.host = host
        self.port = port
        self.user = user
        self.password = password
        self.database = database
        self.schema = schema
        self.pool: Optional[asyncpg.Pool] = None

    @classmethod
    def from_config(cls, database_config) -> "DatabaseService":
        return cls(
            host=database_config.host,
            port=database_config.port,
            user=database_config.user,
            password=database_config.password,
            database=database_config.database,
            schema=database_config.schema,
        )

    async def initialize(self, min_size: int = 2, max_size: int = 10) -> bool:
        """Открыть пул и убедиться, что схема есть; False если БД недоступна"""
        try:
            self.pool = await asyncpg.create_pool(
                host=self.host,
                port=self.port,
                user=self.user,
                password=self.password,
                database=self.database,
                server_settings={'search_path': self.schema},
                min_size=min_size,
                max_size=max_size,
                max_inactive_connection_lifetime=300,
                command_timeout=30
            )
            async with self.pool.acquire() as conn:
                await self._ensure_schema(conn)
        except (OSError, asyncpg.PostgresError) as e:
            logger.error(f"❌ Failed to initialize database pool: {e}")
            return False

        return True

    async def _ensure_schema(self, conn):
        await conn.execute(f'CREATE SCHEMA IF NOT EXISTS "{self.schema}"')
        current = await conn.fetchval("SELECT current_schema()")
        if current != self.schema:
            logger.warning(f"⚠️ search_path points to '{current}', journal tables expect '{self.schema}'")
        else:
            logger.info(f"✅ Connected to database, schema: {current}")

    @asynccontextmanager
    async def get_connection(self):
        if not self.pool:
            raise StoreError("get_connection", "database pool not initialized")

        async with self.pool.acquire() as connection:
            yield connection

    @asynccontextmanager
    async def transaction(self):
        """Соединение внутри транзакции: исключение внутри блока -> rollback"""
        async with self.get_connection() as connection:
            async with connection.transaction():
                yield connection

    async def _run(self, method: str, query: str, *args):
        async with self.get_connection() as conn:
            try:
                return await getattr(conn, method)(query, *args)
            except asyncpg.PostgresError as e:
                # текст запроса и параметры не логируем: там шифртекст
                logger.error(f"❌ {_verb(query)} failed: {type(e).__name__}")
                raise

    async def fetch_value(self, query: str, *args):
        """Одно значение (COUNT, id)"""
        return await self._run('fetchval', query, *args)

    async def fetch_one(self, query: str, *args):
        return await self._run('fetchrow', query, *args)

    async def fetch_all(self, query: str, *args):
        return await self._run('fetch', query, *args)

    async def execute(self, query: str, *args):
        """Команда INSERT/UPDATE/DELETE, возвращает статус вида 'UPDATE 1'"""
        return await self._run('execute', query, *args)

    async def close(self):
        if self.pool:
            await self.pool.close()
            self.pool = None
            logger.info("Database pool closed")
