"""HTTP-facing error taxonomy.

Every domain failure is raised as an `ApiError` (a FastAPI `HTTPException`), so the
app-level handler can render it as `{"error": message}` with the right status.
Field validation failures carry a list of errors and render as `{"errors": [...]}`.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from fastapi import HTTPException


class ApiError(HTTPException):
    status_code = 500

    def __init__(self, message: str, *, headers: Optional[Dict[str, str]] = None):
        super().__init__(status_code=self.status_code, detail=message, headers=headers)

    @property
    def message(self) -> str:
        return str(self.detail)


class Conflict(ApiError):
    status_code = 409


class NotFound(ApiError):
    status_code = 404


class Forbidden(ApiError):
    status_code = 403


class Unauthorized(ApiError):
    status_code = 401


class Internal(ApiError):
    status_code = 500


class TooManyRequests(ApiError):
    status_code = 429


class ValidationFailed(ApiError):
    status_code = 400

    def __init__(self, errors: List[Dict[str, Any]]):
        super().__init__("validation_failed")
        self.errors = list(errors)
