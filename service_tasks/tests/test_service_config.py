"""
Tests for Tasks service configuration and wiring.
"""

import pytest

from service_tasks.app.caching.store import InMemoryCacheStore, RedisCacheStore
from service_tasks.app.main import TasksService
from service_tasks.app.persistence.tasks import InMemoryTaskRepository, PostgresTaskRepository
from shared.config import BaseConfig
from shared.errors import ConfigurationError
from shared.test_helpers import TestEnvironment


class TestConfig:
    """Configuration loading."""

    def test_defaults(self, monkeypatch):
        monkeypatch.delenv("TASKS_JWT_SECRET", raising=False)

        config = BaseConfig(_env_file=None)

        assert config.port == 3000
        assert config.cache_list_ttl_seconds == 30
        assert config.cache_item_ttl_seconds == 60
        assert config.jwt_algorithm == "HS256"
        assert config.jwt_lifetime_seconds == 30 * 24 * 3600
        assert config.jwt_secret is None

    def test_environment_overrides(self, monkeypatch):
        monkeypatch.setenv("TASKS_JWT_SECRET", "from-env")
        monkeypatch.setenv("TASKS_CACHE_LIST_TTL_SECONDS", "5")

        config = BaseConfig(_env_file=None)

        assert config.jwt_secret == "from-env"
        assert config.cache_list_ttl_seconds == 5


class TestServiceWiring:
    """Startup-time configuration checks."""

    @pytest.mark.parametrize("secret", [None, ""])
    def test_missing_secret_fails_construction(self, secret):
        with pytest.raises(ConfigurationError):
            TasksService(TestEnvironment.get_mock_config(jwt_secret=secret))

    @pytest.mark.parametrize("algorithm", ["RS256", "ES256", "none", "HS257", "hs256"])
    def test_non_hmac_algorithm_fails_construction(self, algorithm):
        with pytest.raises(ConfigurationError):
            TasksService(TestEnvironment.get_mock_config(jwt_algorithm=algorithm))

    def test_unusable_secret_fails_construction(self):
        pem_secret = "-----BEGIN PUBLIC KEY-----\nMFkwEwYHKoZIzj0CAQYIKoZIzj0DAQcDQgAE\n-----END PUBLIC KEY-----"

        with pytest.raises(ConfigurationError):
            TasksService(TestEnvironment.get_mock_config(jwt_secret=pem_secret))

    @pytest.mark.parametrize("algorithm", ["HS256", "HS384", "HS512"])
    def test_hmac_algorithms_accepted(self, algorithm):
        service = TasksService(TestEnvironment.get_mock_config(jwt_algorithm=algorithm))

        token = service.issuer.issue("u1", "john.doe", "john.doe@example.com")

        assert service.verifier.verify(token).subject == "u1"

    def test_unknown_storage_backend(self):
        with pytest.raises(ConfigurationError):
            TasksService(TestEnvironment.get_mock_config(storage_backend="sqlite"))

    def test_unknown_cache_backend(self):
        with pytest.raises(ConfigurationError):
            TasksService(TestEnvironment.get_mock_config(cache_backend="memcached"))

    def test_memory_backends(self):
        service = TasksService(TestEnvironment.get_mock_config())

        assert isinstance(service.task_repository, InMemoryTaskRepository)
        assert isinstance(service.cache_store, InMemoryCacheStore)

    def test_production_backends_built_lazily(self):
        service = TasksService(
            TestEnvironment.get_mock_config(storage_backend="postgres", cache_backend="redis")
        )

        assert isinstance(service.task_repository, PostgresTaskRepository)
        assert isinstance(service.cache_store, RedisCacheStore)

    def test_separate_instances_have_separate_metrics(self):
        first = TasksService(TestEnvironment.get_mock_config())
        second = TasksService(TestEnvironment.get_mock_config())

        assert first.metrics.registry is not second.metrics.registry
