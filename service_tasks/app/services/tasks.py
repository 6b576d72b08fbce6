"""
Task service: CRUD over the task repository.
"""

from typing import List, Optional

from shared.errors import NotFoundError
from shared.logging import get_logger
from ..models import Task, TaskCreate, TaskUpdate
from ..persistence.tasks import TaskRepository


class TaskService:
    """Task CRUD with not-found handling."""

    def __init__(self, repository: TaskRepository):
        self.repository = repository
        self.logger = get_logger("tasks.service")

    async def list(self) -> List[Task]:
        return await self.repository.list_all()

    async def get(self, task_id: str) -> Task:
        task = await self.repository.get(task_id)
        if task is None:
            raise NotFoundError("Task not found", details={"task_id": task_id})
        return task

    async def create(self, payload: TaskCreate, user_id: Optional[str] = None) -> Task:
        task = await self.repository.create(
            description=payload.description,
            completed=payload.completed,
            user_id=user_id,
        )
        self.logger.info("Task created", task_id=task.id)
        return task

    async def update(self, task_id: str, payload: TaskUpdate) -> Task:
        fields = payload.model_dump(exclude_unset=True, exclude_none=True)
        task = await self.repository.update(task_id, fields)
        if task is None:
            raise NotFoundError("Task not found", details={"task_id": task_id})
        self.logger.info("Task updated", task_id=task_id, fields=sorted(fields))
        return task

    async def delete(self, task_id: str) -> None:
        if not await self.repository.delete(task_id):
            raise NotFoundError("Task not found", details={"task_id": task_id})
        self.logger.info("Task deleted", task_id=task_id)
