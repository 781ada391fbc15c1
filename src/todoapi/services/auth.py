"""Login, logout and token validation."""

import logging

from .result import ServiceResult
from .users import public_user
from ..http.status_codes import HTTPStatus
from ..security.passwords import PasswordHasher
from ..security.tokens import InvalidTokenError, TokenManager
from ..storage.repositories import UserRepository


logger = logging.getLogger(__name__)


class AuthService:
    def __init__(self, repo: UserRepository, tokens: TokenManager, hasher: PasswordHasher):
        self.repo = repo
        self.tokens = tokens
        self.hasher = hasher

    def login(self, user_id: str, password: str) -> ServiceResult:
        """
        Check credentials, issue a token and remember it on the user row.

        Unknown users and wrong passwords produce the same 401 so the
        response doesn't reveal which user ids exist.
        """
        row = self.repo.find(user_id)
        if row is None or not self.hasher.verify(password, row["user_password"]):
            logger.info(f"Failed login for {user_id!r}")
            return ServiceResult.failure("Invalid credentials", HTTPStatus.UNAUTHORIZED)

        token = self.tokens.issue_for_user(row["user_id"], bool(row["is_admin"]))
        self.repo.set_token(row["user_id"], token)

        user = public_user(row)
        user["token"] = token
        logger.info(f"User {user_id!r} logged in")
        return ServiceResult.success(user)

    def logout(self, user_id: str) -> ServiceResult:
        """Forget the stored token, revoking every outstanding one."""
        if not self.repo.set_token(user_id, None):
            return ServiceResult.not_found("User not found")
        logger.info(f"User {user_id!r} logged out")
        return ServiceResult.success()

    def validate_token(self, token: str) -> ServiceResult:
        try:
            claims = self.tokens.verify(token)
        except InvalidTokenError:
            return ServiceResult.failure("Invalid or expired token", HTTPStatus.UNAUTHORIZED)
        return ServiceResult.success(claims)
