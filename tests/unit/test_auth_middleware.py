"""
Unit tests for bearer token authentication.
"""

import time

from conftest import make_request
from todoapi.http.response import ok
from todoapi.middleware.auth import AUTH_ATTRIBUTE, AuthMiddleware
from todoapi.security.tokens import TokenManager


SECRET = "unit-test-secret"


class FakeTokenStore:
    def __init__(self, tokens=None):
        self.tokens = dict(tokens or {})

    def get_token(self, user_id):
        return self.tokens.get(user_id)


def echo_claims(request):
    return ok(request.attributes[AUTH_ATTRIBUTE])


class TestAuthMiddleware:
    """Tests for AuthMiddleware."""

    def setup_method(self):
        self.tokens = TokenManager(SECRET, ttl_seconds=3600)

    def test_missing_header(self):
        """Test no Authorization header is a 401."""
        response = AuthMiddleware(self.tokens).handle(make_request("GET", "/todos"), echo_claims)

        assert response.status == 401
        assert response.payload == {"error": "Unauthorized"}

    def test_non_bearer_header(self):
        """Test other auth schemes are treated as missing."""
        request = make_request("GET", "/todos", headers={"Authorization": "Basic dXNlcjpwYXNz"})

        assert AuthMiddleware(self.tokens).handle(request, echo_claims).status == 401

    def test_valid_token_exposes_claims(self):
        """Test claims reach the handler."""
        token = self.tokens.issue_for_user("alice", is_admin=False)

        response = AuthMiddleware(self.tokens).handle(make_request("GET", "/todos", token=token), echo_claims)

        assert response.status == 200
        assert response.payload["user_id"] == "alice"
        assert response.payload["role"] == "user"

    def test_expired_token(self):
        """Test an expired token is a 401."""
        issued_long_ago = TokenManager(SECRET, ttl_seconds=60, clock=lambda: time.time() - 7200)
        token = issued_long_ago.issue_for_user("alice", is_admin=False)

        response = AuthMiddleware(self.tokens).handle(make_request("GET", "/todos", token=token), echo_claims)

        assert response.status == 401
        assert response.payload == {"error": "Invalid or expired token"}

    def test_wrong_signature(self):
        """Test a token signed with another secret is a 401."""
        token = TokenManager("some-other-secret").issue_for_user("alice", is_admin=False)

        response = AuthMiddleware(self.tokens).handle(make_request("GET", "/todos", token=token), echo_claims)

        assert response.status == 401

    def test_garbage_token(self):
        response = AuthMiddleware(self.tokens).handle(make_request("GET", "/todos", token="not-a-jwt"), echo_claims)

        assert response.status == 401

    def test_revoked_token(self):
        """Test a valid token that is no longer the stored one is rejected."""
        token = self.tokens.issue_for_user("alice", is_admin=False)
        store = FakeTokenStore({"alice": None})

        response = AuthMiddleware(self.tokens, users=store).handle(
            make_request("GET", "/todos", token=token), echo_claims
        )

        assert response.status == 401
        assert response.payload == {"error": "Token has been revoked"}

    def test_current_stored_token_accepted(self):
        """Test the revocation check passes for the stored token."""
        token = self.tokens.issue_for_user("alice", is_admin=True)
        store = FakeTokenStore({"alice": token})

        response = AuthMiddleware(self.tokens, users=store).handle(
            make_request("GET", "/todos", token=token), echo_claims
        )

        assert response.status == 200
        assert response.payload["role"] == "admin"

    def test_handler_not_called_on_failure(self):
        calls = []

        AuthMiddleware(self.tokens).handle(make_request("GET", "/todos"), lambda r: calls.append(r))

        assert calls == []

    def test_name(self):
        assert AuthMiddleware(self.tokens).name == "Auth"
