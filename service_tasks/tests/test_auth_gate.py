"""
Unit tests for the AuthGate dependency and bearer extraction.
"""

import pytest
from types import SimpleNamespace
from unittest.mock import MagicMock
from fastapi import Request

from service_tasks.app.auth.middleware import AuthGate, current_identity, extract_bearer_token
from service_tasks.app.auth.tokens import CredentialIssuer, CredentialVerifier
from shared.errors import AuthenticationError
from shared.test_helpers import OTHER_JWT_SECRET, TEST_JWT_SECRET


class TestExtractBearerToken:
    """Test cases for bearer header parsing."""

    def test_extracts_token(self):
        assert extract_bearer_token("Bearer abc.def.ghi") == "abc.def.ghi"

    @pytest.mark.parametrize(
        "header",
        [None, "", "Bearer", "Bearer ", "Bearer    ", "bearer abc", "Basic dXNlcjpwYXNz", "Token abc", "abc"],
    )
    def test_missing_or_malformed_header(self, header):
        assert extract_bearer_token(header) is None


class TestAuthGate:
    """Test cases for AuthGate."""

    @pytest.fixture
    def verifier(self):
        """Mocked verifier."""
        return MagicMock(spec=CredentialVerifier)

    @pytest.fixture
    def gate(self, verifier):
        """Create AuthGate instance."""
        return AuthGate(verifier)

    @pytest.fixture
    def mock_request(self):
        """Create mock request."""
        request = MagicMock(spec=Request)
        request.headers = {}
        request.method = "POST"
        request.url = SimpleNamespace(path="/tasks")
        request.state = SimpleNamespace()
        return request

    @pytest.mark.asyncio
    async def test_no_header_rejected_without_verifying(self, gate, verifier, mock_request):
        with pytest.raises(AuthenticationError):
            await gate(mock_request)

        verifier.verify.assert_not_called()
        assert current_identity(mock_request) is None

    @pytest.mark.asyncio
    async def test_wrong_scheme_rejected_without_verifying(self, gate, verifier, mock_request):
        mock_request.headers = {"Authorization": "Basic dXNlcjpwYXNz"}

        with pytest.raises(AuthenticationError):
            await gate(mock_request)

        verifier.verify.assert_not_called()

    @pytest.mark.asyncio
    async def test_valid_token_attaches_identity(self, gate, verifier, mock_request):
        claims = MagicMock(subject="u1")
        verifier.verify.return_value = claims
        mock_request.headers = {"Authorization": "Bearer valid_token"}

        result = await gate(mock_request)

        assert result is claims
        assert current_identity(mock_request) is claims
        verifier.verify.assert_called_once_with("valid_token")

    @pytest.mark.asyncio
    async def test_invalid_token_propagates_rejection(self, gate, verifier, mock_request):
        verifier.verify.side_effect = AuthenticationError("Invalid or missing credentials")
        mock_request.headers = {"Authorization": "Bearer invalid_token"}

        with pytest.raises(AuthenticationError):
            await gate(mock_request)

        assert current_identity(mock_request) is None

    @pytest.mark.asyncio
    async def test_missing_and_forged_rejections_match(self, mock_request):
        verifier = CredentialVerifier(TEST_JWT_SECRET)
        gate = AuthGate(verifier)
        forged = CredentialIssuer(OTHER_JWT_SECRET, 3600).issue("u1", "john.doe", "john.doe@example.com")

        with pytest.raises(AuthenticationError) as missing:
            await gate(mock_request)

        mock_request.headers = {"Authorization": f"Bearer {forged}"}
        with pytest.raises(AuthenticationError) as rejected:
            await gate(mock_request)

        assert missing.value.to_response().model_dump() == rejected.value.to_response().model_dump()
