"""
Error taxonomy for the API.

Every error carries the HTTP status it maps to; main.py renders them as
``{"success": false, "message": ..., "errors"?: [...]}``.
"""
from typing import Any, List, Optional


class ApiError(Exception):
    """Base class for errors reported to the client."""

    status_code = 500

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code

    def to_dict(self) -> dict:
        return {"success": False, "message": self.message}


class ValidationError(ApiError):
    """Malformed or missing field, or an id that cannot be cast."""

    status_code = 400

    def __init__(self, message: str = "Validation failed", errors: Optional[List[Any]] = None):
        super().__init__(message)
        self.errors = errors

    def to_dict(self) -> dict:
        body = super().to_dict()
        if self.errors is not None:
            body["errors"] = self.errors
        return body


class AuthenticationError(ApiError):
    status_code = 401


class AuthorizationError(ApiError):
    status_code = 403


class NotFoundError(ApiError):
    status_code = 404
