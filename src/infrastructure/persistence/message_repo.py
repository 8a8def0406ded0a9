"""
infrastructure.persistence.message_repo - SQLite chat message repository.

Implements ConversationStore. Messages are updated in place when liked or
regenerated; ids never change.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Optional

from domain.entities import ConversationMessage
from domain.models import RequestType
from infrastructure.persistence.connection import AsyncSQLiteConnection

logger = logging.getLogger(__name__)


class SQLiteMessageRepository:
    """Async SQLite implementation of ConversationStore."""

    def __init__(self, connection: AsyncSQLiteConnection):
        self._conn = connection

    async def append(self, message: ConversationMessage) -> ConversationMessage:
        now = datetime.now().isoformat()
        async with self._conn.acquire() as conn:
            cursor = await conn.execute(
                """INSERT INTO messages
                   (chat_id, user_id, is_user, content, raw_content,
                    ai_response_type, dish_id, plan_id, is_liked,
                    created_at, updated_at)
                   VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)""",
                (message.chat_id, message.user_id, int(message.is_user),
                 message.content, message.raw_content,
                 message.ai_response_type.value if message.ai_response_type else None,
                 message.dish_id, message.plan_id, int(message.is_liked), now, now),
            )
            message.id = cursor.lastrowid
        message.created_at = now
        return message

    async def update(self, message: ConversationMessage) -> None:
        async with self._conn.acquire() as conn:
            await conn.execute(
                """UPDATE messages
                   SET content = ?, raw_content = ?, ai_response_type = ?,
                       dish_id = ?, plan_id = ?, is_liked = ?, updated_at = ?
                   WHERE id = ?""",
                (message.content, message.raw_content,
                 message.ai_response_type.value if message.ai_response_type else None,
                 message.dish_id, message.plan_id, int(message.is_liked),
                 datetime.now().isoformat(), message.id),
            )

    async def get_history(self, chat_id: str) -> list[ConversationMessage]:
        async with self._conn.acquire() as conn:
            rows = await conn.execute_fetchall(
                "SELECT * FROM messages WHERE chat_id = ? ORDER BY id ASC",
                (chat_id,),
            )
            return [self._row_to_entity(r) for r in rows]

    async def get_message(self, chat_id: str, message_id: int) -> Optional[ConversationMessage]:
        async with self._conn.acquire() as conn:
            rows = await conn.execute_fetchall(
                "SELECT * FROM messages WHERE chat_id = ? AND id = ?",
                (chat_id, message_id),
            )
            return self._row_to_entity(rows[0]) if rows else None

    async def count_user_messages_since(self, user_id: int, since_iso: str) -> int:
        async with self._conn.acquire() as conn:
            rows = await conn.execute_fetchall(
                """SELECT COUNT(*) FROM messages
                   WHERE user_id = ? AND is_user = 1 AND created_at >= ?""",
                (user_id, since_iso),
            )
            return rows[0][0] if rows else 0

    @staticmethod
    def _row_to_entity(row) -> ConversationMessage:
        return ConversationMessage(
            id=row["id"],
            chat_id=row["chat_id"],
            user_id=row["user_id"],
            is_user=bool(row["is_user"]),
            content=row["content"] or "",
            raw_content=row["raw_content"] or "",
            ai_response_type=RequestType(row["ai_response_type"]) if row["ai_response_type"] else None,
            dish_id=row["dish_id"],
            plan_id=row["plan_id"],
            is_liked=bool(row["is_liked"]),
            created_at=row["created_at"] or "",
        )
