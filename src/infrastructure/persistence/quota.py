"""
infrastructure.persistence.quota - Daily request limit.

Implements QuotaGuard by counting the user messages written since local
midnight. A limit of 0 disables the check.
"""

from __future__ import annotations

import logging
from datetime import datetime, time
from typing import Callable

from domain.exceptions import LimitExceededError
from infrastructure.persistence.message_repo import SQLiteMessageRepository

logger = logging.getLogger(__name__)


class DailyQuotaGuard:
    """Reject requests once a user has sent *daily_limit* messages today."""

    def __init__(
        self,
        messages: SQLiteMessageRepository,
        daily_limit: int,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self._messages = messages
        self._daily_limit = daily_limit
        self._clock = clock

    async def check_limit(self, user_id: int) -> None:
        if self._daily_limit <= 0:
            return
        midnight = datetime.combine(self._clock().date(), time.min)
        used = await self._messages.count_user_messages_since(user_id, midnight.isoformat())
        if used >= self._daily_limit:
            logger.info("User %s hit the daily limit (%d/%d)", user_id, used, self._daily_limit)
            raise LimitExceededError(
                f"Daily request limit of {self._daily_limit} reached",
                limit_type="daily_requests",
            )
