"""
Persistence backends for tasks and users.
"""

from .tasks import InMemoryTaskRepository, PostgresTaskRepository, TaskRepository
from .users import InMemoryUserRepository, PostgresUserRepository, UserRepository

__all__ = [
    "InMemoryTaskRepository",
    "InMemoryUserRepository",
    "PostgresTaskRepository",
    "PostgresUserRepository",
    "TaskRepository",
    "UserRepository",
]
