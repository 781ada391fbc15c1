"""Token signing and password hashing."""

from .passwords import PasswordHasher
from .tokens import ALLOWED_ALGORITHMS, InvalidTokenError, TokenManager

__all__ = [
    "ALLOWED_ALGORITHMS",
    "InvalidTokenError",
    "PasswordHasher",
    "TokenManager",
]
