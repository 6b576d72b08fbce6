"""
Task persistence for the Tasks service.
"""

import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Protocol

import asyncpg

from shared.errors import ServiceError
from shared.logging import get_logger
from ..models import Task


class TaskRepository(Protocol):
    """Storage operations the task service relies on."""

    async def start(self) -> None:
        ...

    async def stop(self) -> None:
        ...

    async def list_all(self) -> List[Task]:
        ...

    async def get(self, task_id: str) -> Optional[Task]:
        ...

    async def create(self, description: str, completed: bool = False, user_id: Optional[str] = None) -> Task:
        ...

    async def update(self, task_id: str, fields: Dict[str, Any]) -> Optional[Task]:
        ...

    async def delete(self, task_id: str) -> bool:
        ...

    async def health_check(self) -> bool:
        ...


def _now() -> datetime:
    return datetime.now(timezone.utc)


class InMemoryTaskRepository:
    """Dictionary-backed repository for local runs and tests."""

    def __init__(self):
        self._tasks: Dict[str, Task] = {}

    async def start(self) -> None:
        return None

    async def stop(self) -> None:
        return None

    async def list_all(self) -> List[Task]:
        # Insertion order is creation order; newest first
        return list(reversed(list(self._tasks.values())))

    async def get(self, task_id: str) -> Optional[Task]:
        return self._tasks.get(task_id)

    async def create(self, description: str, completed: bool = False, user_id: Optional[str] = None) -> Task:
        now = _now()
        task = Task(
            id=str(uuid.uuid4()),
            description=description,
            completed=completed,
            user_id=user_id,
            created_at=now,
            updated_at=now,
        )
        self._tasks[task.id] = task
        return task

    async def update(self, task_id: str, fields: Dict[str, Any]) -> Optional[Task]:
        task = self._tasks.get(task_id)
        if task is None:
            return None
        updated = task.model_copy(update={**fields, "updated_at": _now()})
        self._tasks[task_id] = updated
        return updated

    async def delete(self, task_id: str) -> bool:
        return self._tasks.pop(task_id, None) is not None

    async def health_check(self) -> bool:
        return True


class PostgresTaskRepository:
    """PostgreSQL task repository."""

    UPDATABLE_COLUMNS = ("description", "completed")

    def __init__(self, dsn: str):
        self.dsn = dsn
        self.logger = get_logger("tasks.persistence.postgres")
        self.pool: Optional[asyncpg.Pool] = None

    async def start(self):
        """Start the persistence layer."""
        try:
            self.pool = await asyncpg.create_pool(
                self.dsn,
                min_size=2,
                max_size=10,
                command_timeout=30
            )

            await self._create_tables()

            self.logger.info("PostgreSQL task repository started")

        except Exception as e:
            self.logger.error("Failed to start PostgreSQL task repository", error=str(e))
            raise ServiceError("Failed to start task storage", details={"error": str(e)}) from e

    async def stop(self):
        """Stop the persistence layer."""
        if self.pool:
            await self.pool.close()
            self.logger.info("PostgreSQL task repository stopped")

    async def _create_tables(self):
        """Create database tables."""
        async with self.pool.acquire() as conn:
            await conn.execute("""
                CREATE TABLE IF NOT EXISTS tasks (
                    id UUID PRIMARY KEY,
                    description VARCHAR(255) NOT NULL,
                    completed BOOLEAN NOT NULL DEFAULT FALSE,
                    user_id TEXT,
                    created_at TIMESTAMP WITH TIME ZONE NOT NULL DEFAULT NOW(),
                    updated_at TIMESTAMP WITH TIME ZONE NOT NULL DEFAULT NOW()
                );
            """)
            await conn.execute("""
                CREATE INDEX IF NOT EXISTS idx_tasks_created_at ON tasks(created_at DESC);
            """)

    async def list_all(self) -> List[Task]:
        async with self.pool.acquire() as conn:
            rows = await conn.fetch("SELECT * FROM tasks ORDER BY created_at DESC")
        return [self._row_to_task(row) for row in rows]

    async def get(self, task_id: str) -> Optional[Task]:
        task_uuid = self._parse_id(task_id)
        if task_uuid is None:
            return None
        async with self.pool.acquire() as conn:
            row = await conn.fetchrow("SELECT * FROM tasks WHERE id = $1", task_uuid)
        return self._row_to_task(row) if row else None

    async def create(self, description: str, completed: bool = False, user_id: Optional[str] = None) -> Task:
        async with self.pool.acquire() as conn:
            row = await conn.fetchrow(
                """
                INSERT INTO tasks (id, description, completed, user_id)
                VALUES ($1, $2, $3, $4)
                RETURNING *
                """,
                uuid.uuid4(),
                description,
                completed,
                user_id,
            )
        return self._row_to_task(row)

    async def update(self, task_id: str, fields: Dict[str, Any]) -> Optional[Task]:
        task_uuid = self._parse_id(task_id)
        if task_uuid is None:
            return None

        columns = [column for column in self.UPDATABLE_COLUMNS if column in fields]
        if not columns:
            return await self.get(task_id)

        assignments = ", ".join(f"{column} = ${index}" for index, column in enumerate(columns, start=2))
        values = [fields[column] for column in columns]
        async with self.pool.acquire() as conn:
            row = await conn.fetchrow(
                f"UPDATE tasks SET {assignments}, updated_at = NOW() WHERE id = $1 RETURNING *",
                task_uuid,
                *values,
            )
        return self._row_to_task(row) if row else None

    async def delete(self, task_id: str) -> bool:
        task_uuid = self._parse_id(task_id)
        if task_uuid is None:
            return False
        async with self.pool.acquire() as conn:
            result = await conn.execute("DELETE FROM tasks WHERE id = $1", task_uuid)
        # asyncpg returns the command tag, e.g. "DELETE 1"
        return result.split()[-1] != "0"

    async def health_check(self) -> bool:
        """Check database health."""
        try:
            async with self.pool.acquire() as conn:
                await conn.fetchval("SELECT 1")
            return True
        except Exception as e:
            self.logger.error("Task repository health check failed", error=str(e))
            return False

    @staticmethod
    def _parse_id(value: str) -> Optional[uuid.UUID]:
        try:
            return uuid.UUID(str(value))
        except ValueError:
            return None

    @staticmethod
    def _row_to_task(row: asyncpg.Record) -> Task:
        return Task(
            id=str(row["id"]),
            description=row["description"],
            completed=row["completed"],
            user_id=row["user_id"],
            created_at=row["created_at"],
            updated_at=row["updated_at"],
        )
