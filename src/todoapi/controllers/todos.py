"""
/api/v1/todos handlers.

Every route here sits behind AuthMiddleware; POST and PUT also behind
ValidationMiddleware(TODO_RULES), so `request.body` only ever holds a
validated `title` and `user_id`.
"""

from typing import Any

from .base import parse_positive_int, respond
from ..http.request import Request
from ..http.response import Response, error
from ..http.status_codes import HTTPStatus
from ..services.todos import TodoService


TODO_RULES = {
    "title": "required|string|min:3|max:100",
    "user_id": "required|string|min:3|max:25",
}


class TodoController:
    def __init__(self, service: TodoService):
        self.service = service

    def index(self, request: Request) -> Any:
        # Plain list; the dispatcher wraps it in a 200 JSON response
        return self.service.list_todos().value

    def show(self, request: Request) -> Response:
        todo_id = parse_positive_int(request.param("id"))
        if todo_id is None:
            return error("Invalid ID", HTTPStatus.BAD_REQUEST)
        return respond(self.service.get_todo(todo_id))

    def store(self, request: Request) -> Response:
        result = self.service.create_todo(request.input("title"), request.input("user_id"))
        return respond(result, HTTPStatus.CREATED)

    def update(self, request: Request) -> Response:
        todo_id = parse_positive_int(request.param("id"))
        if todo_id is None:
            return error("Invalid ID", HTTPStatus.BAD_REQUEST)
        result = self.service.update_todo(todo_id, request.input("title"), request.input("user_id"))
        return respond(result)

    def destroy(self, request: Request) -> Response:
        todo_id = parse_positive_int(request.param("id"))
        if todo_id is None:
            return error("Invalid ID", HTTPStatus.BAD_REQUEST)
        return respond(
            self.service.delete_todo(todo_id),
            shape=lambda _: {"message": "Todo item deleted successfully"},
        )
