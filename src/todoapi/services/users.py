"""
User account use cases.

Anything returned from here is already safe to serialize: password hashes
and stored tokens are stripped by `public_user()`.
"""

from typing import Any, Dict, Mapping, Optional
import logging
import sqlite3

from .result import ServiceResult
from ..security.passwords import PasswordHasher
from ..storage.repositories import UserRepository


logger = logging.getLogger(__name__)


PUBLIC_FIELDS = ("user_id", "email_address", "first_name", "last_name", "is_admin")


def public_user(row: Mapping[str, Any]) -> Dict[str, Any]:
    """Client-facing view of a user row."""
    user = {key: row[key] for key in PUBLIC_FIELDS if key in row}
    if "is_admin" in user:
        user["is_admin"] = bool(user["is_admin"])
    return user


def is_admin_claims(claims: Optional[Mapping[str, Any]]) -> bool:
    return bool(claims) and claims.get("role") == "admin"


class UserService:
    def __init__(self, repo: UserRepository, hasher: PasswordHasher):
        self.repo = repo
        self.hasher = hasher

    def list_users(self) -> ServiceResult:
        return ServiceResult.success([public_user(row) for row in self.repo.all()])

    def get_user(self, user_id: str) -> ServiceResult:
        row = self.repo.find(user_id)
        if row is None:
            return ServiceResult.not_found("User not found")
        return ServiceResult.success(public_user(row))

    def register(self, data: Mapping[str, Any]) -> ServiceResult:
        """
        Create an account from validated registration data.

        Duplicate email or user id among live accounts is a 409.
        """
        if self.repo.find_by_email(data["email_address"]):
            return ServiceResult.conflict("Email already exists")
        if self.repo.find(data["user_id"]):
            return ServiceResult.conflict("User ID already exists")

        try:
            self.repo.create(
                user_id=data["user_id"],
                email_address=data["email_address"],
                user_password=self.hasher.hash(data["user_password"]),
                first_name=data["first_name"],
                last_name=data["last_name"],
                is_admin=bool(data.get("is_admin", False)),
            )
        except sqlite3.IntegrityError:
            # Lost a race with a concurrent registration
            return ServiceResult.conflict("Email already exists")

        logger.info(f"Registered user {data['user_id']!r}")
        return ServiceResult.success(public_user(self.repo.find(data["user_id"])))

    def update_user(self, user_id: str, data: Mapping[str, Any], actor: Mapping[str, Any]) -> ServiceResult:
        """
        Update profile fields of `user_id` on behalf of `actor` (token claims).

        Users may update themselves; admins may update anyone. Only admins
        may change `is_admin`.
        """
        acting_admin = is_admin_claims(actor)
        if actor.get("user_id") != user_id and not acting_admin:
            return ServiceResult.forbidden("You can only update your own account")
        if "is_admin" in data and not acting_admin:
            return ServiceResult.forbidden("Only admins can change is_admin")

        if self.repo.find(user_id) is None:
            return ServiceResult.not_found("User not found")

        changes = {key: data[key] for key in ("first_name", "last_name", "is_admin") if key in data}
        if changes:
            self.repo.update(user_id, changes)

        return ServiceResult.success(public_user(self.repo.find(user_id)))

    def delete_user(self, user_id: str, actor: Mapping[str, Any]) -> ServiceResult:
        """Soft-delete the actor's own account."""
        if actor.get("user_id") != user_id:
            return ServiceResult.forbidden("You can only delete your own account")

        if not self.repo.soft_delete(user_id):
            return ServiceResult.not_found("User not found or already deleted")

        logger.info(f"Deleted user {user_id!r}")
        return ServiceResult.success()
