"""
Stateless authentication for the Tasks service.

Credentials are issued on identification and verified on every mutating
request; no session is stored server side.
"""

from .tokens import CredentialIssuer, CredentialVerifier, IdentityClaims
from .middleware import AuthGate, current_identity, extract_bearer_token

__all__ = [
    "AuthGate",
    "CredentialIssuer",
    "CredentialVerifier",
    "IdentityClaims",
    "current_identity",
    "extract_bearer_token",
]
