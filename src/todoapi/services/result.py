"""
Structured return values for the service layer.

Services don't raise for expected domain outcomes (not found, conflict,
forbidden). They return a ServiceResult and the controller decides what
HTTP response it becomes:

    result = todos.get_todo(7)
    if not result.ok:
        return error(result.error, result.code)
    return ok(result.value)
"""

from dataclasses import dataclass
from typing import Any, Optional

from ..http.status_codes import HTTPStatus


@dataclass(frozen=True)
class ServiceResult:
    ok: bool
    value: Any = None
    error: Optional[str] = None
    code: int = HTTPStatus.OK

    @classmethod
    def success(cls, value: Any = None) -> "ServiceResult":
        return cls(ok=True, value=value)

    @classmethod
    def failure(cls, error: str, code: int) -> "ServiceResult":
        return cls(ok=False, error=error, code=code)

    @classmethod
    def not_found(cls, error: str) -> "ServiceResult":
        return cls.failure(error, HTTPStatus.NOT_FOUND)

    @classmethod
    def conflict(cls, error: str) -> "ServiceResult":
        return cls.failure(error, HTTPStatus.CONFLICT)

    @classmethod
    def forbidden(cls, error: str) -> "ServiceResult":
        return cls.failure(error, HTTPStatus.FORBIDDEN)
