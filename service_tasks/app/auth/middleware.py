"""
Authentication gate for mutating Tasks routes.
"""

from typing import Optional

from fastapi import Request

from shared.errors import AuthenticationError
from shared.logging import get_logger, set_user_context
from .tokens import CredentialVerifier, IdentityClaims, INVALID_CREDENTIALS_MESSAGE

BEARER_PREFIX = "Bearer "


def extract_bearer_token(authorization: Optional[str]) -> Optional[str]:
    """Return the token of a ``Bearer <token>`` header, or None."""
    if not authorization or not authorization.startswith(BEARER_PREFIX):
        return None

    token = authorization[len(BEARER_PREFIX):].strip()
    return token or None


class AuthGate:
    """FastAPI dependency that admits only requests carrying a valid credential."""

    def __init__(self, verifier: CredentialVerifier):
        self.verifier = verifier
        self.logger = get_logger("tasks.auth.gate")

    async def __call__(self, request: Request) -> IdentityClaims:
        """Authenticate the request and attach its identity."""
        token = extract_bearer_token(request.headers.get("Authorization"))
        if token is None:
            self.logger.info(
                "Request rejected without credential",
                method=request.method,
                path=request.url.path,
            )
            raise AuthenticationError(INVALID_CREDENTIALS_MESSAGE)

        # Raises the same AuthenticationError for every failure kind
        claims = self.verifier.verify(token)

        request.state.identity = claims
        set_user_context(user_id=claims.subject)
        self.logger.debug("Request authenticated", user_id=claims.subject)
        return claims


def current_identity(request: Request) -> Optional[IdentityClaims]:
    """Identity attached by the gate, if any."""
    return getattr(request.state, "identity", None)
