"""
Schema - таблицы бота

Свободный текст (намерения, рефлексии) хранится только как
ciphertext / iv / auth tag в base64.
"""

import logging

from .service import DatabaseService

logger = logging.getLogger(__name__)

TABLES_SQL = [
    """
    CREATE TABLE IF NOT EXISTS users (
        id SERIAL PRIMARY KEY,
        telegram_id BIGINT UNIQUE NOT NULL,
        language VARCHAR(5) NOT NULL DEFAULT 'en',
        first_name TEXT,
        last_name TEXT,
        username TEXT,
        reminder_time VARCHAR(5) NOT NULL DEFAULT '09:00',
        evening_time VARCHAR(5) NOT NULL DEFAULT '20:30',
        monthly_time VARCHAR(5) NOT NULL DEFAULT '20:00',
        weekly_time VARCHAR(5) NOT NULL DEFAULT '19:00',
        is_admin BOOLEAN NOT NULL DEFAULT false,
        created_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS categories (
        id SERIAL PRIMARY KEY,
        user_id INTEGER NOT NULL REFERENCES users(id) ON DELETE CASCADE,
        name TEXT NOT NULL,
        created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
        UNIQUE (user_id, name)
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS intentions (
        id SERIAL PRIMARY KEY,
        user_id INTEGER NOT NULL REFERENCES users(id) ON DELETE CASCADE,
        ciphertext_b64 TEXT NOT NULL,
        iv_b64 TEXT NOT NULL,
        auth_tag_b64 TEXT NOT NULL,
        category_id INTEGER REFERENCES categories(id) ON DELETE SET NULL,
        created_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS intention_dates (
        id SERIAL PRIMARY KEY,
        intention_id INTEGER UNIQUE NOT NULL REFERENCES intentions(id) ON DELETE CASCADE,
        date DATE NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS reflections (
        id SERIAL PRIMARY KEY,
        user_id INTEGER NOT NULL REFERENCES users(id) ON DELETE CASCADE,
        intention_id INTEGER REFERENCES intentions(id) ON DELETE SET NULL,
        ciphertext_b64 TEXT NOT NULL,
        iv_b64 TEXT NOT NULL,
        auth_tag_b64 TEXT NOT NULL,
        photo_file_ids TEXT[] NOT NULL DEFAULT '{}',
        date DATE NOT NULL,
        created_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS notifications (
        id SERIAL PRIMARY KEY,
        user_id INTEGER NOT NULL REFERENCES users(id) ON DELETE CASCADE,
        type VARCHAR(20) NOT NULL,
        key_date DATE NOT NULL,
        intention_id INTEGER,
        sent_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
    )
    """,
]

INDEXES_SQL = [
    "CREATE INDEX IF NOT EXISTS idx_intentions_user ON intentions(user_id)",
    "CREATE INDEX IF NOT EXISTS idx_intentions_category ON intentions(category_id)",
    "CREATE INDEX IF NOT EXISTS idx_intention_dates_date ON intention_dates(date)",
    "CREATE INDEX IF NOT EXISTS idx_reflections_user_date ON reflections(user_id, date)",
    # Одно уведомление на (пользователь, тип, дата, намерение)
    """
    CREATE UNIQUE INDEX IF NOT EXISTS idx_notifications_dedupe
    ON notifications(user_id, type, key_date, COALESCE(intention_id, 0))
    """,
]


async def create_tables(db: DatabaseService):
    """Создать таблицы и индексы (идемпотентно)"""

    try:
        async with db.transaction() as conn:
            for table_sql in TABLES_SQL:
                await conn.execute(table_sql)

            for index_sql in INDEXES_SQL:
                await conn.execute(index_sql)

        logger.info("✅ Intentions tables ready")

    except Exception as e:
        logger.error(f"❌ Error creating tables: {e}")
        raise
