"""Application exceptions, rendered into the response envelope by the API layer."""

import functools
import logging

logger = logging.getLogger(__name__)


class AppError(Exception):
    """Base error carrying an HTTP status and a machine-readable code."""

    status_code = 500
    error_code = "INTERNAL_ERROR"
    error = "Internal Server Error"

    def __init__(self, message: str, status_code: int | None = None, error_code: str | None = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        if error_code is not None:
            self.error_code = error_code


class BusinessError(AppError):
    status_code = 400
    error_code = "BUSINESS_ERROR"
    error = "Business Error"


class AuthenticationError(AppError):
    status_code = 401
    error_code = "UNAUTHORIZED"
    error = "Unauthorized"


class AccessDeniedError(AppError):
    status_code = 403
    error_code = "ACCESS_DENIED"
    error = "Forbidden"


class NotFoundError(AppError):
    status_code = 404
    error_code = "NOT_FOUND"
    error = "Resource Not Found"


class InternalServerError(AppError):
    """Unexpected failure while reading data the caller is entitled to."""


class GenerationError(AppError):
    """All configured LLM providers failed for a request."""

    status_code = 502
    error_code = "GENERATION_FAILED"
    error = "Bad Gateway"


def service_errors(message: str, error_cls: type[AppError] = BusinessError):
    """Decorate a service method: ``AppError`` passes through, anything else is
    logged with its traceback and replaced by ``error_cls(message)``.
    """

    def decorator(fn):
        @functools.wraps(fn)
        def wrapper(*args, **kwargs):
            try:
                return fn(*args, **kwargs)
            except AppError:
                raise
            except Exception as e:
                logger.exception("%s failed", fn.__qualname__)
                raise error_cls(message) from e

        return wrapper

    return decorator
