from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, AsyncIterator

import asyncpg

from fieldservice.errors import DependencyFailure

logger = logging.getLogger(__name__)

# command_timeout surfaces as asyncio.TimeoutError, which is not an OSError before 3.11
DATABASE_ERRORS = (asyncpg.PostgresError, asyncpg.InterfaceError, OSError, asyncio.TimeoutError)


@dataclass(slots=True)
class PostgresDatabase:
    """Owner of the process-wide asyncpg pool.

    The pool is created once at startup, handed to repositories by reference
    and drained on shutdown.
    """

    dsn: str
    min_size: int = 1
    max_size: int = 10
    command_timeout: float | None = None
    _pool: asyncpg.Pool | None = None

    async def get_pool(self) -> asyncpg.Pool:
        if self._pool is None:
            logger.info("Creating PostgreSQL pool (min=%d, max=%d)", self.min_size, self.max_size)
            self._pool = await asyncpg.create_pool(
                dsn=self.dsn,
                min_size=self.min_size,
                max_size=self.max_size,
                command_timeout=self.command_timeout,
            )
        return self._pool

    async def test_connection(self) -> bool:
        pool = await self.get_pool()
        async with pool.acquire() as connection:
            await connection.execute("SELECT 1")
        return True

    async def close(self) -> None:
        if self._pool is not None:
            logger.info("Draining PostgreSQL pool")
            await self._pool.close()
            self._pool = None


@asynccontextmanager
async def acquire(pool: asyncpg.Pool) -> AsyncIterator[Any]:
    """Check a connection out of ``pool``, translating driver errors."""

    try:
        async with pool.acquire() as connection:
            yield connection
    except DATABASE_ERRORS as exc:
        raise DependencyFailure("Database operation failed") from exc


def ensure_datetime(value: Any) -> datetime:
    if isinstance(value, datetime):
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value
    return datetime.fromisoformat(str(value))
