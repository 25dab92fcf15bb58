from __future__ import annotations


class AppError(Exception):
    """Base application error."""

    def __init__(self, detail: str = "") -> None:
        self.detail = detail
        super().__init__(detail)


class NotFoundError(AppError):
    pass


class ForbiddenError(AppError):
    pass


class ConflictError(AppError):
    pass


class ValidationError(AppError):
    pass


class StoreError(AppError):
    """A record store call failed (network, database). Safe to retry by hand."""


class AuthError(AppError):
    """The session provider rejected the request or could not be reached."""
