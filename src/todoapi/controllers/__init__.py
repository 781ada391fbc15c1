"""Route handlers: read the request, call a service, shape the response."""

from .auth import LOGIN_RULES, AuthController
from .todos import TODO_RULES, TodoController
from .users import REGISTER_RULES, UPDATE_RULES, UserController

__all__ = [
    "AuthController",
    "LOGIN_RULES",
    "REGISTER_RULES",
    "TODO_RULES",
    "TodoController",
    "UPDATE_RULES",
    "UserController",
]
