"""
Tasks service for the Task List access layer.
Serves the task list with a response cache on reads and a bearer-credential
gate on writes.
"""

from datetime import datetime
from typing import Any, Callable, Dict, List, Optional

from fastapi import Depends, Request, Response, status

from shared.base_service import BaseService
from shared.config import BaseConfig, get_config
from shared.errors import ConfigurationError
from .auth.middleware import AuthGate
from .auth.tokens import CredentialIssuer, CredentialVerifier, IdentityClaims, utc_now
from .caching.response_cache import ResponseCache
from .caching.store import CacheStore, InMemoryCacheStore, RedisCacheStore
from .models import IdentifyRequest, IdentifyResponse, Task, TaskCreate, TaskUpdate
from .persistence.tasks import InMemoryTaskRepository, PostgresTaskRepository, TaskRepository
from .persistence.users import InMemoryUserRepository, PostgresUserRepository, UserRepository
from .services.identity import IdentityService
from .services.tasks import TaskService

SERVICE_NAME = "tasks"

# Cache scopes; every task mutation invalidates both
TASK_LIST_SCOPE = "tasks"
TASK_ITEM_SCOPE = "task"
TASK_SCOPES = (TASK_LIST_SCOPE, TASK_ITEM_SCOPE)


class TasksService(BaseService):
    """Tasks service implementation."""

    def __init__(
        self,
        config: Optional[BaseConfig] = None,
        *,
        task_repository: Optional[TaskRepository] = None,
        user_repository: Optional[UserRepository] = None,
        cache_store: Optional[CacheStore] = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        self._task_repository = task_repository
        self._user_repository = user_repository
        self._cache_store = cache_store
        self._clock = clock
        super().__init__(SERVICE_NAME, config or get_config(service_name=SERVICE_NAME))

    def _setup_dependencies(self) -> None:
        """Build credentials, storage and cache from configuration."""
        self.issuer = CredentialIssuer(
            self.config.jwt_secret,
            self.config.jwt_lifetime_seconds,
            self.config.jwt_algorithm,
            clock=self._clock,
        )
        self.verifier = CredentialVerifier(
            self.config.jwt_secret,
            self.config.jwt_algorithm,
            clock=self._clock,
            metrics=self.metrics,
        )
        self.auth_gate = AuthGate(self.verifier)

        self.task_repository = self._task_repository or self._build_task_repository()
        self.user_repository = self._user_repository or self._build_user_repository()
        self.cache_store = self._cache_store or self._build_cache_store()

        self.task_service = TaskService(self.task_repository)
        self.identity_service = IdentityService(self.user_repository, self.issuer)
        self.response_cache = ResponseCache(self.cache_store, metrics=self.metrics)

    def _build_task_repository(self) -> TaskRepository:
        backend = self.config.storage_backend.lower()
        if backend == "memory":
            return InMemoryTaskRepository()
        if backend == "postgres":
            return PostgresTaskRepository(self.config.postgres_dsn)
        raise ConfigurationError("Unknown storage backend", details={"storage_backend": backend})

    def _build_user_repository(self) -> UserRepository:
        backend = self.config.storage_backend.lower()
        if backend == "memory":
            return InMemoryUserRepository()
        if backend == "postgres":
            return PostgresUserRepository(self.config.postgres_dsn)
        raise ConfigurationError("Unknown storage backend", details={"storage_backend": backend})

    def _build_cache_store(self) -> CacheStore:
        backend = self.config.cache_backend.lower()
        if backend == "memory":
            return InMemoryCacheStore()
        if backend == "redis":
            return RedisCacheStore(self.config.redis_url)
        raise ConfigurationError("Unknown cache backend", details={"cache_backend": backend})

    async def _startup(self) -> None:
        await self.task_repository.start()
        await self.user_repository.start()
        start_cache = getattr(self.cache_store, "start", None)
        if start_cache is not None:
            await start_cache()

    async def _shutdown(self) -> None:
        await self.cache_store.close()
        await self.user_repository.stop()
        await self.task_repository.stop()

    async def _check_dependencies(self) -> Dict[str, str]:
        return {
            "storage": "ok" if await self.task_repository.health_check() else "error",
            # Reads fall through to storage when the cache is down
            "cache": "ok" if await self.cache_store.ping() else "unavailable",
        }

    def _setup_routes(self):
        """Set up API routes."""
        super()._setup_routes()

        cache = self.response_cache

        @self.app.get("/")
        async def root():
            return {"message": "Task List API"}

        @self.app.get("/tasks", response_model=List[Task])
        @cache.cached(TASK_LIST_SCOPE, self.config.cache_list_ttl_seconds)
        async def list_tasks(request: Request):
            """List tasks, newest first."""
            return await self.task_service.list()

        @self.app.get("/tasks/{task_id}", response_model=Task)
        @cache.cached(TASK_ITEM_SCOPE, self.config.cache_item_ttl_seconds)
        async def get_task(task_id: str, request: Request):
            """Get task by ID."""
            return await self.task_service.get(task_id)

        @self.app.post("/tasks", response_model=Task, status_code=status.HTTP_201_CREATED)
        @cache.invalidates(*TASK_SCOPES)
        async def create_task(
            payload: TaskCreate,
            identity: IdentityClaims = Depends(self.auth_gate),
        ):
            """Create a task owned by the caller."""
            return await self.task_service.create(payload, user_id=identity.subject)

        @self.app.put("/tasks/{task_id}", response_model=Task)
        @cache.invalidates(*TASK_SCOPES)
        async def update_task(
            task_id: str,
            payload: TaskUpdate,
            identity: IdentityClaims = Depends(self.auth_gate),
        ):
            """Update a task's description and/or completion flag."""
            return await self.task_service.update(task_id, payload)

        @self.app.delete("/tasks/{task_id}", status_code=status.HTTP_204_NO_CONTENT)
        @cache.invalidates(*TASK_SCOPES)
        async def delete_task(
            task_id: str,
            identity: IdentityClaims = Depends(self.auth_gate),
        ):
            """Delete a task."""
            await self.task_service.delete(task_id)
            return Response(status_code=status.HTTP_204_NO_CONTENT)

        @self.app.post("/auth/identify", response_model=IdentifyResponse)
        async def identify(payload: IdentifyRequest):
            """Identify by name and email; creates the user on first sight."""
            return await self.identity_service.identify(payload)

        @self.app.get("/auth/me", response_model=Dict[str, Any])
        async def me(identity: IdentityClaims = Depends(self.auth_gate)):
            """Profile carried by the caller's credential."""
            return {"user": identity.to_dict()}


def create_app():
    """Create FastAPI application."""
    service = TasksService()
    return service.app


if __name__ == "__main__":
    service = TasksService()
    service.run()
