"""
infrastructure.persistence.profile_repo - SQLite user settings repository.

Implements UserProfileStore. Settings are kept as the JSON document the
profile service writes and turned into a UserProfile on read.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime
from typing import Any, Optional

from domain.models import UserProfile
from infrastructure.persistence.connection import AsyncSQLiteConnection

logger = logging.getLogger(__name__)


class SQLiteProfileRepository:
    """Async SQLite implementation of UserProfileStore."""

    def __init__(self, connection: AsyncSQLiteConnection):
        self._conn = connection

    async def save_settings(self, user_id: int, settings: dict[str, Any]) -> None:
        now = datetime.now().isoformat()
        document = json.dumps(settings, ensure_ascii=False, default=str)
        async with self._conn.acquire() as conn:
            await conn.execute(
                """INSERT INTO user_settings (user_id, settings, created_at, updated_at)
                   VALUES (?, ?, ?, ?)
                   ON CONFLICT (user_id) DO UPDATE SET
                       settings = excluded.settings,
                       updated_at = excluded.updated_at""",
                (user_id, document, now, now),
            )
        logger.info("Settings stored for user %s", user_id)

    async def get_settings(self, user_id: int) -> Optional[UserProfile]:
        async with self._conn.acquire() as conn:
            rows = await conn.execute_fetchall(
                "SELECT settings FROM user_settings WHERE user_id = ?", (user_id,),
            )
        if not rows:
            return None
        try:
            data = json.loads(rows[0]["settings"])
        except json.JSONDecodeError:
            logger.warning("Stored settings for user %s are not valid JSON", user_id)
            return None
        return UserProfile.from_settings(data if isinstance(data, dict) else {})
