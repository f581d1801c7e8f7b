"""SchoolPay errors and the handlers that turn them into JSON responses."""

import logging
import traceback

from fastapi import Request
from fastapi.responses import JSONResponse

from schoolpay.schemas.common import ErrorDetail, ErrorResponse

logger = logging.getLogger(__name__)


class SchoolPayException(Exception):
    """Base exception for all SchoolPay-specific errors."""

    def __init__(self, message: str, status_code: int = 400):
        self.message = message
        self.status_code = status_code
        super().__init__(self.message)

    def details(self) -> list[ErrorDetail] | None:
        """Field-level problems to report alongside the message."""
        return None


class NotFoundException(SchoolPayException):
    """Referenced entity is absent or belongs to another tenant.

    Cross-tenant ids are reported exactly like missing ids so that the
    existence of another school's records is never revealed.
    """

    def __init__(self, resource: str = "Resource"):
        self.resource = resource
        super().__init__(f"{resource} not found", 404)


class ForbiddenException(SchoolPayException):
    """The caller's role may not perform the action."""

    def __init__(self, message: str = "You don't have permission to perform this action"):
        super().__init__(message, 403)


class ValidationException(SchoolPayException):
    """A request value was rejected; ``errors`` says which field and why."""

    def __init__(self, errors: list[dict] | str, field: str = "general"):
        if isinstance(errors, str):
            errors = [{"field": field, "message": errors}]
        super().__init__("Validation failed", 422)
        self.errors = errors

    def __str__(self) -> str:
        return "; ".join(f"{e['field']}: {e['message']}" for e in self.errors)

    def details(self) -> list[ErrorDetail]:
        return [ErrorDetail(**e) for e in self.errors]


class StateTransitionException(SchoolPayException):
    """Operation is illegal for the entity's current lifecycle state."""

    def __init__(self, action: str, current_status: str, expected_status: str):
        self.action = action
        self.current_status = current_status
        self.expected_status = expected_status
        super().__init__(
            f"cannot {action}: expected {expected_status}, got {current_status}",
            409,
        )

    def details(self) -> list[ErrorDetail]:
        return [ErrorDetail(field="status", message=f"current status is {self.current_status}")]


class UniquenessException(SchoolPayException):
    """A record with the same generation key already exists."""

    def __init__(self, message: str = "Record already exists"):
        super().__init__(message, 409)


class InconsistentStateException(SchoolPayException):
    """A later write of a multi-write operation failed after earlier writes.

    Raising this aborts the surrounding transaction; it must never be
    caught and turned into a success.
    """

    def __init__(self, message: str):
        super().__init__(message, 500)


class TenantContextError(SchoolPayException):
    """The caller is not bound to a school."""

    def __init__(self, message: str = "Tenant context is required"):
        super().__init__(message, 400)


class UserContextError(SchoolPayException):
    """No authenticated caller is attached to the request."""

    def __init__(self, message: str = "User context is required"):
        super().__init__(message, 401)


def create_exception_handlers():
    """Map exception classes to their JSON handlers."""

    async def schoolpay_exception_handler(request: Request, exc: SchoolPayException):
        where = f"{request.method} {request.url.path}"
        if exc.status_code >= 500:
            logger.error(f"{type(exc).__name__} on {where}: {exc.message}")
        else:
            logger.warning(f"{type(exc).__name__} on {where}: {exc} (status={exc.status_code})")

        body = ErrorResponse(message=exc.message, errors=exc.details())
        return JSONResponse(status_code=exc.status_code, content=body.to_content())

    async def generic_exception_handler(request: Request, exc: Exception):
        """Log the traceback and hide the details from the caller."""
        logger.error(f"Unhandled exception on {request.method} {request.url.path}")
        tb_lines = traceback.format_exception(type(exc), exc, exc.__traceback__)
        logger.error("".join(tb_lines))

        body = ErrorResponse(message="An unexpected error occurred")
        return JSONResponse(status_code=500, content=body.to_content())

    return {
        SchoolPayException: schoolpay_exception_handler,
        Exception: generic_exception_handler,
    }
