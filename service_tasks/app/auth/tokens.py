"""
Stateless bearer credentials for the Tasks service.

Credentials are HMAC-signed JWTs carrying the caller's identity claims and an
expiry. Verification needs only the shared secret, the token and a clock; no
session state is kept on the server.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import TYPE_CHECKING, Any, Callable, Dict, Optional

import jwt
from jwt.algorithms import get_default_algorithms

from shared.errors import AuthenticationError, ConfigurationError
from shared.logging import get_logger

if TYPE_CHECKING:  # pragma: no cover - imported for typing only
    from shared.metrics import MetricsCollector


Clock = Callable[[], datetime]

INVALID_CREDENTIALS_MESSAGE = "Invalid or missing credentials"
REQUIRED_CLAIMS = ["sub", "iat", "exp"]
HMAC_ALGORITHMS = frozenset({"HS256", "HS384", "HS512"})


def utc_now() -> datetime:
    """Return the current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class IdentityClaims:
    """Identity embedded in a credential."""

    subject: str
    display_name: str
    email: str
    issued_at: datetime
    expires_at: datetime

    def to_payload(self) -> Dict[str, Any]:
        """Serialize to JWT registered/private claims."""
        return {
            "sub": self.subject,
            "name": self.display_name,
            "email": self.email,
            "iat": self.issued_at,
            "exp": self.expires_at,
        }

    @classmethod
    def from_payload(cls, payload: Dict[str, Any]) -> "IdentityClaims":
        """Build claims from a decoded JWT payload."""
        return cls(
            subject=str(payload["sub"]),
            display_name=str(payload.get("name", "")),
            email=str(payload.get("email", "")),
            issued_at=datetime.fromtimestamp(int(payload["iat"]), tz=timezone.utc),
            expires_at=datetime.fromtimestamp(int(payload["exp"]), tz=timezone.utc),
        )

    def to_dict(self) -> Dict[str, Any]:
        """Public representation used in API responses."""
        return {
            "id": self.subject,
            "username": self.display_name,
            "email": self.email,
            "issued_at": self.issued_at.isoformat(),
            "expires_at": self.expires_at.isoformat(),
        }


def _require_secret(secret: Optional[str]) -> str:
    if not secret:
        raise ConfigurationError(
            "Credential signing secret is not configured",
            details={"setting": "TASKS_JWT_SECRET"},
        )
    return secret


def _require_hmac_algorithm(algorithm: str, secret: str) -> str:
    """Check that ``algorithm`` is an HMAC algorithm usable with ``secret``."""
    if algorithm not in HMAC_ALGORITHMS:
        raise ConfigurationError(
            "Credential algorithm must be a shared-secret HMAC algorithm",
            details={"setting": "TASKS_JWT_ALGORITHM", "algorithm": algorithm},
        )
    try:
        get_default_algorithms()[algorithm].prepare_key(secret)
    except (jwt.PyJWTError, KeyError, TypeError, ValueError) as exc:
        raise ConfigurationError(
            "Credential signing secret is not usable",
            details={"setting": "TASKS_JWT_SECRET", "error": type(exc).__name__},
        ) from exc
    return algorithm


class CredentialIssuer:
    """Issue signed credentials for identified users."""

    def __init__(
        self,
        secret: Optional[str],
        lifetime_seconds: int,
        algorithm: str = "HS256",
        *,
        clock: Clock = utc_now,
    ) -> None:
        self._secret = _require_secret(secret)
        if lifetime_seconds <= 0:
            raise ConfigurationError(
                "Credential lifetime must be positive",
                details={"lifetime_seconds": lifetime_seconds},
            )
        self.lifetime = timedelta(seconds=lifetime_seconds)
        self.algorithm = _require_hmac_algorithm(algorithm, self._secret)
        self._clock = clock
        self.logger = get_logger("tasks.auth.issuer")

    def claims_for(self, subject: str, display_name: str, email: str) -> IdentityClaims:
        """Build claims valid from now for the configured lifetime."""
        # JWT timestamps have second resolution
        issued_at = self._clock().replace(microsecond=0)
        return IdentityClaims(
            subject=subject,
            display_name=display_name,
            email=email,
            issued_at=issued_at,
            expires_at=issued_at + self.lifetime,
        )

    def issue(self, subject: str, display_name: str, email: str) -> str:
        """Return an opaque bearer credential for the given identity."""
        claims = self.claims_for(subject, display_name, email)
        token = jwt.encode(claims.to_payload(), self._secret, algorithm=self.algorithm)
        self.logger.info(
            "Credential issued",
            subject=subject,
            expires_at=claims.expires_at.isoformat(),
        )
        return token


class CredentialVerifier:
    """Verify credentials and recover their identity claims."""

    def __init__(
        self,
        secret: Optional[str],
        algorithm: str = "HS256",
        *,
        clock: Clock = utc_now,
        metrics: Optional["MetricsCollector"] = None,
    ) -> None:
        self._secret = _require_secret(secret)
        self.algorithm = _require_hmac_algorithm(algorithm, self._secret)
        self._clock = clock
        self.metrics = metrics
        self.logger = get_logger("tasks.auth.verifier")

    def verify(self, token: str) -> IdentityClaims:
        """Return the embedded claims, or raise AuthenticationError.

        Malformed, forged and expired credentials all raise the same error;
        the reason is logged but never surfaced to the caller.
        """
        try:
            payload = jwt.decode(
                token,
                self._secret,
                algorithms=[self.algorithm],
                # Time checks run against the injected clock below
                options={
                    "verify_exp": False,
                    "verify_iat": False,
                    "verify_nbf": False,
                    "require": REQUIRED_CLAIMS,
                },
            )
            claims = IdentityClaims.from_payload(payload)
        except (jwt.PyJWTError, KeyError, TypeError, ValueError) as exc:
            self._reject(type(exc).__name__)
            raise AuthenticationError(INVALID_CREDENTIALS_MESSAGE) from exc

        if not claims.subject:
            self._reject("MissingSubject")
            raise AuthenticationError(INVALID_CREDENTIALS_MESSAGE)

        if not self._clock() < claims.expires_at:
            self._reject("ExpiredSignature")
            raise AuthenticationError(INVALID_CREDENTIALS_MESSAGE)

        self._record("valid")
        return claims

    def _reject(self, reason: str) -> None:
        self.logger.warning("Credential rejected", reason=reason)
        self._record("invalid")

    def _record(self, status: str) -> None:
        if self.metrics:
            self.metrics.increment_counter("token_validations_total", status=status)
