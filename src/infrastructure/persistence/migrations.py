"""
infrastructure.persistence.migrations - Database schema creation.

Called once at startup by the factory or the CLI.
"""

from __future__ import annotations

import logging

from infrastructure.persistence.connection import AsyncSQLiteConnection

logger = logging.getLogger(__name__)

_TABLES = [
    """CREATE TABLE IF NOT EXISTS user_settings (
        user_id INTEGER PRIMARY KEY,
        settings TEXT NOT NULL,
        created_at TEXT,
        updated_at TEXT
    )""",
    """CREATE TABLE IF NOT EXISTS messages (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        chat_id TEXT NOT NULL,
        user_id INTEGER,
        is_user INTEGER NOT NULL DEFAULT 0,
        content TEXT,
        raw_content TEXT,
        ai_response_type TEXT,
        dish_id INTEGER,
        plan_id INTEGER,
        is_liked INTEGER NOT NULL DEFAULT 0,
        created_at TEXT,
        updated_at TEXT,
        FOREIGN KEY (dish_id) REFERENCES dishes(id),
        FOREIGN KEY (plan_id) REFERENCES meal_plans(id)
    )""",
    "CREATE INDEX IF NOT EXISTS idx_messages_chat ON messages (chat_id, id)",
    "CREATE INDEX IF NOT EXISTS idx_messages_user_day ON messages (user_id, is_user, created_at)",
    """CREATE TABLE IF NOT EXISTS dishes (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        user_id INTEGER NOT NULL,
        name TEXT NOT NULL,
        ingredients TEXT,
        instruction TEXT,
        proteins REAL,
        fats REAL,
        carbs REAL,
        calories INTEGER,
        portion_size INTEGER,
        cooking_time INTEGER,
        is_favorite INTEGER NOT NULL DEFAULT 0,
        created_at TEXT,
        updated_at TEXT,
        UNIQUE (name, user_id)
    )""",
    """CREATE TABLE IF NOT EXISTS meal_plans (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        user_id INTEGER NOT NULL,
        date TEXT NOT NULL,
        visible INTEGER NOT NULL DEFAULT 1,
        message_id INTEGER,
        created_at TEXT
    )""",
    """CREATE TABLE IF NOT EXISTS meal_plan_items (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        plan_id INTEGER NOT NULL,
        position INTEGER NOT NULL,
        meal_type TEXT NOT NULL,
        dish_id INTEGER,
        recipe_name TEXT,
        calories INTEGER,
        portion_size INTEGER,
        FOREIGN KEY (plan_id) REFERENCES meal_plans(id) ON DELETE CASCADE,
        FOREIGN KEY (dish_id) REFERENCES dishes(id)
    )""",
]


async def run_migrations(connection: AsyncSQLiteConnection) -> None:
    """Create all tables if they don't exist.

    Safe to call multiple times (uses IF NOT EXISTS).
    """
    async with connection.acquire() as conn:
        for ddl in _TABLES:
            await conn.execute(ddl)
    logger.info("All tables created (or already exist).")
