"""Shared controller helpers."""

from typing import Any, Callable, Optional

from ..http.response import Response, error
from ..http.status_codes import HTTPStatus
from ..services.result import ServiceResult


def respond(
    result: ServiceResult,
    status: int = HTTPStatus.OK,
    shape: Optional[Callable[[Any], Any]] = None,
) -> Response:
    """
    Translate a ServiceResult into a JSON response.

    Failures become {"error": message} with the result's code; successes
    are optionally reshaped by `shape` and sent with `status`.
    """
    if not result.ok:
        return error(result.error, result.code)
    payload = shape(result.value) if shape else result.value
    return Response(payload=payload, status=status)


def parse_positive_int(value: Optional[str]) -> Optional[int]:
    """Parse a path id such as '42'; None unless it is a positive integer."""
    try:
        number = int(value)
    except (TypeError, ValueError):
        return None
    return number if number > 0 else None
