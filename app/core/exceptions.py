"""
Application exceptions.

Handlers and dependencies raise these; `app.main` renders them as JSON
error bodies with the matching status code.
"""

from typing import Dict, Optional


class AppError(Exception):
    """Base application error rendered as {"error": message}."""

    status_code: int = 500
    body_key: str = "error"

    def __init__(
        self,
        message: str = "Internal server error",
        status_code: Optional[int] = None,
        headers: Optional[Dict[str, str]] = None,
    ) -> None:
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        self.headers = headers
        super().__init__(message)

    def to_dict(self) -> dict:
        return {self.body_key: self.message}


class ValidationError(AppError):
    """Missing or malformed request fields."""

    status_code = 400

    def __init__(self, message: str = "Missing required fields") -> None:
        super().__init__(message)


class UnauthorizedError(AppError):
    """Missing, invalid or expired credentials."""

    status_code = 401

    def __init__(self, message: str = "Unauthorized") -> None:
        super().__init__(message, headers={"WWW-Authenticate": "Bearer"})


class ForbiddenError(AppError):
    """Authenticated but not permitted."""

    status_code = 403

    def __init__(self, message: str = "Not enough permissions") -> None:
        super().__init__(message)


class NotFoundError(AppError):
    status_code = 404

    def __init__(self, message: str = "Not found") -> None:
        super().__init__(message)


class ConflictError(AppError):
    status_code = 409

    def __init__(self, message: str = "Username or email already registered") -> None:
        super().__init__(message)


class ProxyError(AppError):
    """
    Detection proxy failure.

    Rendered as {"detail": message}, the same shape the inference service
    uses for its own errors, so clients of /api/detect parse one format.
    """

    body_key = "detail"
