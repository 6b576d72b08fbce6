"""
Test helper functions and factory methods for the Task List access layer.
"""

from typing import Any, Dict, List, Optional
from datetime import datetime, timedelta, timezone
from dataclasses import dataclass
import jwt

from .config import BaseConfig

TEST_JWT_SECRET = "test-secret-0123456789abcdef0123456789abcdef"
OTHER_JWT_SECRET = "other-secret-fedcba9876543210fedcba9876543210"


@dataclass
class SampleUser:
    """Sample user data."""
    user_id: str
    username: str
    email: str


class FrozenClock:
    """Settable clock returning aware UTC datetimes."""

    def __init__(self, now: Optional[datetime] = None):
        self.now = now or datetime(2025, 1, 1, 12, 0, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now = self.now + timedelta(seconds=seconds)


class SampleDataFactory:
    """Factory for creating test data."""

    @staticmethod
    def create_sample_users() -> List[SampleUser]:
        """Create sample users."""
        return [
            SampleUser(
                user_id="u1",
                username="john.doe",
                email="john.doe@example.com",
            ),
            SampleUser(
                user_id="u2",
                username="jane.smith",
                email="jane.smith@example.com",
            ),
        ]

    @staticmethod
    def create_sample_task_payloads() -> List[Dict[str, Any]]:
        """Create task creation payloads."""
        return [
            {"description": "buy milk"},
            {"description": "walk the dog", "completed": True},
            {"description": "file taxes"},
        ]


class MockTokenGenerator:
    """Generate credentials for testing without going through identification."""

    def __init__(self, secret: str = TEST_JWT_SECRET, algorithm: str = "HS256"):
        self.secret = secret
        self.algorithm = algorithm

    def generate_token(
        self,
        user: SampleUser,
        expires_in: int = 3600,
        now: Optional[datetime] = None,
    ) -> str:
        """Generate a credential for user."""
        issued_at = (now or datetime.now(timezone.utc)).replace(microsecond=0)
        payload = {
            "sub": user.user_id,
            "name": user.username,
            "email": user.email,
            "iat": int(issued_at.timestamp()),
            "exp": int((issued_at + timedelta(seconds=expires_in)).timestamp()),
        }

        return jwt.encode(payload, self.secret, algorithm=self.algorithm)

    def auth_headers(self, user: SampleUser, **kwargs) -> Dict[str, str]:
        """Authorization header for user."""
        return {"Authorization": f"Bearer {self.generate_token(user, **kwargs)}"}


class TestEnvironment:
    """Test environment configuration."""

    __test__ = False

    @staticmethod
    def get_mock_config(**overrides) -> BaseConfig:
        """Service configuration with in-memory backends."""
        values: Dict[str, Any] = {
            "env": "test",
            "log_level": "debug",
            "storage_backend": "memory",
            "cache_backend": "memory",
            "jwt_secret": TEST_JWT_SECRET,
            "cache_list_ttl_seconds": 30,
            "cache_item_ttl_seconds": 60,
        }
        values.update(overrides)
        return BaseConfig(**values)
