"""
Password-less identification: find or create a user by email, then issue a
credential for it.
"""

from shared.logging import get_logger
from ..auth.tokens import CredentialIssuer
from ..models import IdentifyRequest, IdentifyResponse
from ..persistence.users import UserRepository


class IdentityService:
    """Upsert users on identification and hand out credentials."""

    def __init__(self, users: UserRepository, issuer: CredentialIssuer):
        self.users = users
        self.issuer = issuer
        self.logger = get_logger("tasks.identity")

    async def identify(self, request: IdentifyRequest) -> IdentifyResponse:
        user = await self.users.find_by_email(request.email)
        if user is None:
            user = await self.users.create(username=request.username, email=request.email)
            self.logger.info("User created on identification", user_id=user.id)

        token = self.issuer.issue(subject=user.id, display_name=user.username, email=user.email)
        return IdentifyResponse(
            message="Identified successfully",
            user=user,
            token=token,
            expires_in=int(self.issuer.lifetime.total_seconds()),
        )
