"""SQLite persistence for todos and users."""

from .database import Database
from .repositories import RepositoryError, TodoRepository, UserRepository

__all__ = ["Database", "RepositoryError", "TodoRepository", "UserRepository"]
