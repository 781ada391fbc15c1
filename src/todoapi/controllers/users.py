"""/api/v1/users handlers."""

from .base import respond
from ..http.request import Request
from ..http.response import Response
from ..http.status_codes import HTTPStatus
from ..middleware.auth import AUTH_ATTRIBUTE
from ..services.users import UserService


REGISTER_RULES = {
    "user_id": "required|string|min:3|max:25",
    "email_address": "required|string|email|max:100",
    "user_password": "required|string|min:8|max:100",
    "first_name": "required|string|min:3|max:50",
    "last_name": "required|string|min:3|max:50",
    "is_admin": "sometimes|boolean",
}

UPDATE_RULES = {
    "first_name": "sometimes|string|min:3|max:50",
    "last_name": "sometimes|string|min:3|max:50",
    "is_admin": "sometimes|boolean",
}


class UserController:
    def __init__(self, service: UserService):
        self.service = service

    def index(self, request: Request) -> Response:
        return respond(self.service.list_users())

    def show(self, request: Request) -> Response:
        return respond(self.service.get_user(request.param("user_id")))

    def store(self, request: Request) -> Response:
        return respond(
            self.service.register(request.body),
            HTTPStatus.CREATED,
            shape=lambda user: {"message": "User created successfully", "user": user},
        )

    def update(self, request: Request) -> Response:
        result = self.service.update_user(
            request.param("user_id"),
            request.body,
            actor=request.attributes[AUTH_ATTRIBUTE],
        )
        return respond(result, shape=lambda user: {"message": "User updated successfully", "user": user})

    def destroy(self, request: Request) -> Response:
        result = self.service.delete_user(request.param("user_id"), actor=request.attributes[AUTH_ATTRIBUTE])
        return respond(result, shape=lambda _: {"message": "User deleted successfully"})
