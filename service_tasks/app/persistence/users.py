"""
Identity store for the Tasks service.

Only identification reads or writes users; credential verification never
touches this store.
"""

import uuid
from datetime import datetime, timezone
from typing import Dict, Optional, Protocol

import asyncpg

from shared.errors import ServiceError
from shared.logging import get_logger
from ..models import User


class UserRepository(Protocol):
    """Storage operations used by identification."""

    async def start(self) -> None:
        ...

    async def stop(self) -> None:
        ...

    async def find_by_email(self, email: str) -> Optional[User]:
        ...

    async def create(self, username: str, email: str) -> User:
        ...

    async def health_check(self) -> bool:
        ...


class InMemoryUserRepository:
    """Dictionary-backed identity store keyed by email."""

    def __init__(self):
        self._users: Dict[str, User] = {}

    async def start(self) -> None:
        return None

    async def stop(self) -> None:
        return None

    async def find_by_email(self, email: str) -> Optional[User]:
        return self._users.get(email.lower())

    async def create(self, username: str, email: str) -> User:
        key = email.lower()
        existing = self._users.get(key)
        if existing is not None:
            return existing
        user = User(
            id=str(uuid.uuid4()),
            username=username,
            email=key,
            created_at=datetime.now(timezone.utc),
        )
        self._users[key] = user
        return user

    async def health_check(self) -> bool:
        return True


class PostgresUserRepository:
    """PostgreSQL identity store."""

    def __init__(self, dsn: str):
        self.dsn = dsn
        self.logger = get_logger("tasks.persistence.users")
        self.pool: Optional[asyncpg.Pool] = None

    async def start(self):
        """Start the persistence layer."""
        try:
            self.pool = await asyncpg.create_pool(self.dsn, min_size=1, max_size=5, command_timeout=30)
            async with self.pool.acquire() as conn:
                await conn.execute("""
                    CREATE TABLE IF NOT EXISTS users (
                        id UUID PRIMARY KEY,
                        username VARCHAR(30) NOT NULL,
                        email VARCHAR(255) NOT NULL UNIQUE,
                        created_at TIMESTAMP WITH TIME ZONE NOT NULL DEFAULT NOW()
                    );
                """)
            self.logger.info("PostgreSQL user repository started")
        except Exception as e:
            self.logger.error("Failed to start PostgreSQL user repository", error=str(e))
            raise ServiceError("Failed to start user storage", details={"error": str(e)}) from e

    async def stop(self):
        if self.pool:
            await self.pool.close()
            self.logger.info("PostgreSQL user repository stopped")

    async def find_by_email(self, email: str) -> Optional[User]:
        async with self.pool.acquire() as conn:
            row = await conn.fetchrow("SELECT * FROM users WHERE email = $1", email.lower())
        return self._row_to_user(row) if row else None

    async def create(self, username: str, email: str) -> User:
        """Insert a user; a concurrent insert of the same email wins."""
        async with self.pool.acquire() as conn:
            row = await conn.fetchrow(
                """
                INSERT INTO users (id, username, email)
                VALUES ($1, $2, $3)
                ON CONFLICT (email) DO NOTHING
                RETURNING *
                """,
                uuid.uuid4(),
                username,
                email.lower(),
            )
            if row is None:
                row = await conn.fetchrow("SELECT * FROM users WHERE email = $1", email.lower())
        return self._row_to_user(row)

    async def health_check(self) -> bool:
        try:
            async with self.pool.acquire() as conn:
                await conn.fetchval("SELECT 1")
            return True
        except Exception as e:
            self.logger.error("User repository health check failed", error=str(e))
            return False

    @staticmethod
    def _row_to_user(row: asyncpg.Record) -> User:
        return User(
            id=str(row["id"]),
            username=row["username"],
            email=row["email"],
            created_at=row["created_at"],
        )
