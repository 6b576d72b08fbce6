"""
End-to-end flow: cached read, identification, gated write, invalidated read.
"""

from unittest.mock import patch

import pytest
from fastapi.testclient import TestClient

from service_tasks.app.main import TasksService
from shared.test_helpers import TestEnvironment


@pytest.fixture
def service():
    """Tasks service on in-memory backends."""
    return TasksService(TestEnvironment.get_mock_config())


@pytest.fixture
def client(service):
    with TestClient(service.app) as test_client:
        yield test_client


class TestTaskCacheFlow:
    """The read-write-read cycle through the access layer."""

    def test_write_invalidates_cached_list(self, service, client):
        task_service = service.task_service

        with patch.object(task_service, "list", wraps=task_service.list) as list_spy:
            first = client.get("/tasks")
            assert first.status_code == 200
            assert first.json() == []
            assert first.headers["X-Cache"] == "MISS"
            assert list_spy.call_count == 1

            cached = client.get("/tasks")
            assert cached.headers["X-Cache"] == "HIT"
            assert list_spy.call_count == 1

            identified = client.post(
                "/auth/identify",
                json={"username": "alice", "email": "alice@example.com"},
            )
            assert identified.status_code == 200
            headers = {"Authorization": f"Bearer {identified.json()['token']}"}

            created = client.post("/tasks", json={"description": "buy milk"}, headers=headers)
            assert created.status_code == 201

            after = client.get("/tasks")
            assert after.headers["X-Cache"] == "MISS"
            assert list_spy.call_count == 2
            assert [
                {"description": task["description"], "completed": task["completed"]}
                for task in after.json()
            ] == [{"description": "buy milk", "completed": False}]

    def test_rejected_write_leaves_cache_and_store_untouched(self, service, client):
        assert client.get("/tasks").json() == []

        rejected = client.post("/tasks", json={"description": "buy milk"})
        assert rejected.status_code == 401

        cached = client.get("/tasks")
        assert cached.headers["X-Cache"] == "HIT"
        assert cached.json() == []
        assert service.cache_store.keys() == ["tasks:/tasks"]
