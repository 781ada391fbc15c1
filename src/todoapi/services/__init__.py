"""Use cases over the repositories. Expected failures come back as ServiceResult."""

from .auth import AuthService
from .result import ServiceResult
from .todos import TodoService
from .users import UserService, public_user

__all__ = ["AuthService", "ServiceResult", "TodoService", "UserService", "public_user"]
