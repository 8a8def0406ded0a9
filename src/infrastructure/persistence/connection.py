"""
infrastructure.persistence.connection - Async SQLite unit of work.

Every repository call opens its own aiosqlite connection, runs inside one
transaction and closes it again. Driver failures leave the database
untouched and surface as RepositoryError.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncIterator

import aiosqlite

from domain.exceptions import RepositoryError

logger = logging.getLogger(__name__)

BUSY_TIMEOUT_MS = 5000


class AsyncSQLiteConnection:
    """Hands out short-lived SQLite connections for one database file."""

    def __init__(self, db_path: str):
        self._db_path = db_path
        if db_path != ":memory:":
            Path(db_path).expanduser().parent.mkdir(parents=True, exist_ok=True)

    @property
    def db_path(self) -> str:
        return self._db_path

    @asynccontextmanager
    async def acquire(self) -> AsyncIterator[aiosqlite.Connection]:
        """One transaction: committed when the block exits, rolled back if it raises.

        Rows come back as ``aiosqlite.Row`` so repositories can read columns
        by name. Foreign keys are enforced.
        """
        async with aiosqlite.connect(self._db_path) as conn:
            conn.row_factory = aiosqlite.Row
            await conn.execute(f"PRAGMA busy_timeout = {BUSY_TIMEOUT_MS}")
            await conn.execute("PRAGMA foreign_keys = ON")
            try:
                yield conn
                await conn.commit()
            except aiosqlite.Error as e:
                await conn.rollback()
                logger.exception("SQLite error on %s, rolled back", self._db_path)
                raise RepositoryError(f"Database operation failed: {e}") from e
            except Exception:
                await conn.rollback()
                logger.warning("Transaction on %s rolled back", self._db_path)
                raise
