"""/api/v1/auth handlers."""

from .base import respond
from ..http.request import Request
from ..http.response import Response, error
from ..http.status_codes import HTTPStatus
from ..middleware.auth import AUTH_ATTRIBUTE
from ..services.auth import AuthService


LOGIN_RULES = {
    "user_id": "required|string|min:3|max:25",
    "user_password": "required|string|min:8|max:100",
}


class AuthController:
    def __init__(self, service: AuthService):
        self.service = service

    def login(self, request: Request) -> Response:
        result = self.service.login(request.input("user_id"), request.input("user_password"))
        return respond(result, shape=lambda user: {"message": "User logged in successfully", "user": user})

    def logout(self, request: Request) -> Response:
        claims = request.attributes[AUTH_ATTRIBUTE]
        result = self.service.logout(claims["user_id"])
        return respond(result, shape=lambda _: {"message": "User logged out successfully"})

    def validate(self, request: Request) -> Response:
        token = request.bearer_token
        if not token:
            return error("Authorization token is required", HTTPStatus.BAD_REQUEST)
        result = self.service.validate_token(token)
        return respond(result, shape=lambda claims: {"message": "Token is valid", "user": claims})
