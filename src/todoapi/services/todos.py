"""Todo use cases."""

import logging

from .result import ServiceResult
from ..storage.repositories import TodoRepository


logger = logging.getLogger(__name__)


class TodoService:
    def __init__(self, repo: TodoRepository):
        self.repo = repo

    def list_todos(self) -> ServiceResult:
        return ServiceResult.success(self.repo.all())

    def get_todo(self, todo_id: int) -> ServiceResult:
        todo = self.repo.find(todo_id)
        if todo is None:
            return ServiceResult.not_found("Todo not found")
        return ServiceResult.success(todo)

    def create_todo(self, title: str, user_id: str) -> ServiceResult:
        todo_id = self.repo.create(title, user_id)
        logger.info(f"Created todo {todo_id} for {user_id!r}")
        return ServiceResult.success({"id": todo_id, "title": title, "user_id": user_id})

    def update_todo(self, todo_id: int, title: str, user_id: str) -> ServiceResult:
        if not self.repo.update(todo_id, title, user_id):
            return ServiceResult.not_found("Todo not found")
        return ServiceResult.success(self.repo.find(todo_id))

    def delete_todo(self, todo_id: int) -> ServiceResult:
        """Soft delete; a second delete of the same id is a not-found."""
        if not self.repo.soft_delete(todo_id):
            return ServiceResult.not_found("Todo not found")
        logger.info(f"Deleted todo {todo_id}")
        return ServiceResult.success()
