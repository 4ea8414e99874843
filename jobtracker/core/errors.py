"""Operational errors: expected failures reported to the caller with a stable message."""


class AppError(Exception):
    status_code = 400

    def __init__(self, message: str, errors: list | dict | None = None, status_code: int | None = None):
        super().__init__(message)
        self.message = message
        self.errors = errors
        if status_code is not None:
            self.status_code = status_code


class ValidationError(AppError):
    status_code = 400


class NotFoundError(AppError):
    """Record absent or not owned by the requesting user."""

    status_code = 404


class DuplicateError(AppError):
    status_code = 400


class AuthError(AppError):
    status_code = 401


class InvalidStateTransition(AppError):
    status_code = 400


class InvalidStatus(InvalidStateTransition):
    pass


class ExternalServiceError(AppError):
    status_code = 502


class AIServiceError(ExternalServiceError):
    pass


class EmailDeliveryError(ExternalServiceError):
    pass


class RenderError(ExternalServiceError):
    pass


class OAuthError(ExternalServiceError):
    pass
