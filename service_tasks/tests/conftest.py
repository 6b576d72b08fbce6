"""
Shared fixtures for Tasks service tests.
"""

from collections import Counter

import pytest
from fastapi.testclient import TestClient

from service_tasks.app.caching.store import InMemoryCacheStore
from service_tasks.app.main import TasksService
from service_tasks.app.persistence.tasks import InMemoryTaskRepository
from shared.test_helpers import MockTokenGenerator, SampleDataFactory, TestEnvironment


class CountingTaskRepository(InMemoryTaskRepository):
    """In-memory repository that counts read calls."""

    def __init__(self):
        super().__init__()
        self.calls = Counter()

    async def list_all(self):
        self.calls["list_all"] += 1
        return await super().list_all()

    async def get(self, task_id):
        self.calls["get"] += 1
        return await super().get(task_id)


@pytest.fixture
def task_repository():
    """Instrumented task repository."""
    return CountingTaskRepository()


@pytest.fixture
def cache_store():
    """In-memory cache store."""
    return InMemoryCacheStore()


@pytest.fixture
def tasks_service(task_repository, cache_store):
    """Create TasksService instance for testing."""
    return TasksService(
        TestEnvironment.get_mock_config(),
        task_repository=task_repository,
        cache_store=cache_store,
    )


@pytest.fixture
def client(tasks_service):
    """Test client with TasksService."""
    with TestClient(tasks_service.app) as test_client:
        yield test_client


@pytest.fixture
def token_generator():
    """Credential generator sharing the service's test secret."""
    return MockTokenGenerator()


@pytest.fixture
def user():
    """A sample identified user."""
    return SampleDataFactory.create_sample_users()[0]


@pytest.fixture
def auth_headers(token_generator, user):
    """Authorization header carrying a valid credential."""
    return token_generator.auth_headers(user)
