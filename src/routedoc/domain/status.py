from __future__ import annotations

from typing import Optional

HTTP_STATUS_CODES: dict[str, int] = {
    "OK": 200,
    "CREATED": 201,
    "ACCEPTED": 202,
    "NO_CONTENT": 204,
    "BAD_REQUEST": 400,
    "UNAUTHORIZED": 401,
    "FORBIDDEN": 403,
    "NOT_FOUND": 404,
    "CONFLICT": 409,
    "UNPROCESSABLE_ENTITY": 422,
    "TOO_MANY_REQUESTS": 429,
    "INTERNAL_SERVER_ERROR": 500,
    "SERVICE_UNAVAILABLE": 503,
}


def status_from_name(name: str) -> Optional[int]:
    """HttpStatus.NOT_FOUND / NOT_FOUND -> 404; unknown names -> None."""
    key = (name or "").strip().split(".")[-1]
    return HTTP_STATUS_CODES.get(key)
