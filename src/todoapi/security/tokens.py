"""
=============================================================================
BEARER TOKENS (JWT)
=============================================================================

Issues and verifies the signed tokens clients send as
`Authorization: Bearer <token>`. Signing and verification are done by
python-jose; this module only decides WHAT goes in the token and which
algorithms are acceptable.

    issue({"user_id": "alice", "role": "user"})
        │
        ▼
    header  {"alg": "HS256", "typ": "JWT"}
    payload {"user_id": "alice", "role": "user", "iat": 1760882400, "exp": 1760886000,
             "jti": "9f2c4e1a7b3d5c60"}
    signature HMAC-SHA256(secret, header.payload)

Only the HMAC family is accepted (HS256 / HS384 / HS512). The verifier
passes exactly ONE algorithm to jwt.decode(), so a token signed with a
different algorithm (including "none") is rejected.

=============================================================================
"""

from typing import Any, Callable, Dict, Optional
import logging
import secrets
import time

from jose import jwt, JWTError, ExpiredSignatureError


logger = logging.getLogger(__name__)


ALLOWED_ALGORITHMS = ("HS256", "HS384", "HS512")


class InvalidTokenError(Exception):
    """Token failed signature, expiry or format checks."""


class TokenManager:
    """
    Signs and verifies JWTs with a shared secret.

    Args:
        secret: Signing key. Must be non-empty.
        ttl_seconds: Lifetime stamped into `exp` at issuance.
        algorithm: One of HS256, HS384, HS512.
        clock: Wall-clock source for `iat`/`exp`, injectable for tests.

    Raises:
        ValueError: On an empty secret, non-positive TTL or disallowed algorithm.
    """

    def __init__(
        self,
        secret: str,
        ttl_seconds: int = 3600,
        algorithm: str = "HS256",
        clock: Optional[Callable[[], float]] = None,
    ):
        if not secret:
            raise ValueError("JWT secret cannot be empty")
        if ttl_seconds <= 0:
            raise ValueError("JWT TTL must be greater than 0")
        if algorithm not in ALLOWED_ALGORITHMS:
            raise ValueError(f"JWT algorithm must be one of {', '.join(ALLOWED_ALGORITHMS)}")

        self._secret = secret
        self.ttl_seconds = ttl_seconds
        self.algorithm = algorithm
        self._clock = clock or time.time

    def issue(self, claims: Dict[str, Any]) -> str:
        """Sign `claims` plus `iat`, `exp` and a random `jti`."""
        now = int(self._clock())
        payload = dict(claims)
        payload["iat"] = now
        payload["exp"] = now + self.ttl_seconds
        # Two tokens for the same user in the same second must still differ
        payload["jti"] = secrets.token_hex(8)
        return jwt.encode(payload, self._secret, algorithm=self.algorithm)

    def issue_for_user(self, user_id: str, is_admin: bool) -> str:
        return self.issue({"user_id": user_id, "role": "admin" if is_admin else "user"})

    def verify(self, token: str) -> Dict[str, Any]:
        """
        Decode and verify a token.

        Returns:
            The claims dict.

        Raises:
            InvalidTokenError: Bad signature, expired, malformed, or wrong algorithm.
        """
        try:
            return jwt.decode(token, self._secret, algorithms=[self.algorithm])
        except ExpiredSignatureError:
            logger.debug("Rejected expired token")
            raise InvalidTokenError("Token has expired")
        except JWTError as e:
            logger.debug(f"Rejected invalid token: {e}")
            raise InvalidTokenError(str(e))
