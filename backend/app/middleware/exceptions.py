"""Custom exceptions and handlers for consistent error responses.

Domain errors raised by the assignment engine are plain exceptions that
carry their HTTP status and machine-readable code, so services stay
independent of FastAPI while routers surface them unchanged.
"""

import logging
import traceback
from typing import Union

from fastapi import HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import ValidationError
from sqlalchemy.exc import IntegrityError, OperationalError
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)


class FreightLinkException(Exception):
    """Base exception for FreightLink application errors."""

    def __init__(
        self,
        message: str,
        status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR,
        error_code: str = "INTERNAL_ERROR",
    ):
        self.message = message
        self.status_code = status_code
        self.error_code = error_code
        super().__init__(self.message)


class BusinessLogicError(FreightLinkException):
    """Exception for business logic violations."""

    def __init__(self, message: str, error_code: str = "BUSINESS_LOGIC_ERROR"):
        super().__init__(
            message=message,
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            error_code=error_code,
        )


class ResourceNotFoundError(FreightLinkException):
    """Exception for resources not found (within the caller's tenant scope)."""

    def __init__(self, resource: str, identifier: str):
        super().__init__(
            message=f"{resource} not found: {identifier}",
            status_code=status.HTTP_404_NOT_FOUND,
            error_code="RESOURCE_NOT_FOUND",
        )


class TenantContextError(FreightLinkException):
    """Exception for tenant context errors."""

    def __init__(self, message: str = "Tenant context required"):
        super().__init__(
            message=message,
            status_code=status.HTTP_403_FORBIDDEN,
            error_code="TENANT_CONTEXT_REQUIRED",
        )


# ── Assignment / ownership errors ────────────────────────────

class ConflictingOwnershipError(FreightLinkException):
    """Customer and partner would both own the same entity."""

    def __init__(
        self,
        message: str = "Only one of customer_id or partner_id can be assigned",
        error_code: str = "CONFLICTING_OWNERSHIP",
    ):
        super().__init__(
            message=message,
            status_code=status.HTTP_409_CONFLICT,
            error_code=error_code,
        )


class PartnerOwnsAssignmentError(ConflictingOwnershipError):
    """Admin tried to set the customer on an entity a partner already owns."""

    def __init__(self, partner_id: str):
        super().__init__(
            message=f"Assigned to partner {partner_id}; the partner manages its customer",
            error_code="PARTNER_OWNS_ASSIGNMENT",
        )


class OwnershipLockedError(FreightLinkException):
    """Primary owner is already set and cannot be reassigned."""

    def __init__(self, field: str, current: str):
        super().__init__(
            message=f"{field} is already set to {current} and cannot be changed",
            status_code=status.HTTP_409_CONFLICT,
            error_code="OWNERSHIP_LOCKED",
        )


class ForbiddenOwnerError(FreightLinkException):
    """Caller does not own the entity, or tried to write an admin-only field."""

    def __init__(self, message: str = "Not the owner of this entity"):
        super().__init__(
            message=message,
            status_code=status.HTTP_403_FORBIDDEN,
            error_code="FORBIDDEN_OWNER",
        )


class HasDependentsError(FreightLinkException):
    """Deletion blocked while other records still reference the entity."""

    def __init__(self, resource: str, dependents: int):
        super().__init__(
            message=(
                f"Cannot delete {resource} with {dependents} associated shipment(s). "
                "Remove the shipments first."
            ),
            status_code=status.HTTP_409_CONFLICT,
            error_code="HAS_DEPENDENTS",
        )


class DuplicateTrackingCodeError(FreightLinkException):
    """Tracking code is already used by the other entity kind in this tenant."""

    def __init__(self, code: str, used_by: str):
        super().__init__(
            message=f"Tracking code {code} is already used by a {used_by}",
            status_code=status.HTTP_409_CONFLICT,
            error_code="DUPLICATE_TRACKING_CODE",
        )


def create_error_response(
    status_code: int,
    message: str,
    error_code: str = "ERROR",
    details: Union[dict, list, None] = None,
) -> JSONResponse:
    """Create standardized error response.

    Format:
    {
        "error": {
            "code": "ERROR_CODE",
            "message": "Human-readable error message",
            "details": {...}  // Optional additional details
        }
    }
    """
    content = {
        "error": {
            "code": error_code,
            "message": message,
        }
    }

    if details:
        content["error"]["details"] = details

    return JSONResponse(
        status_code=status_code,
        content=content,
    )


async def freightlink_exception_handler(
    request: Request,
    exc: FreightLinkException,
) -> JSONResponse:
    """Handle domain exceptions raised by services and routers."""
    logger.warning(
        "Domain error %s: %s", exc.error_code, exc.message,
        extra={
            "error_code": exc.error_code,
            "path": request.url.path,
            "method": request.method,
        },
    )

    return create_error_response(
        status_code=exc.status_code,
        message=exc.message,
        error_code=exc.error_code,
    )


async def http_exception_handler(
    request: Request,
    exc: Union[HTTPException, StarletteHTTPException],
) -> JSONResponse:
    """Handle FastAPI HTTP exceptions."""
    # Log non-4xx errors
    if exc.status_code >= 500:
        logger.error(
            "HTTP %s: %s", exc.status_code, exc.detail,
            extra={
                "path": request.url.path,
                "method": request.method,
            },
        )

    return create_error_response(
        status_code=exc.status_code,
        message=str(exc.detail),
        error_code=f"HTTP_{exc.status_code}",
    )


async def validation_exception_handler(
    request: Request,
    exc: Union[RequestValidationError, ValidationError],
) -> JSONResponse:
    """Handle Pydantic validation errors."""
    logger.warning(
        "Validation error on %s", request.url.path,
        extra={
            "path": request.url.path,
            "method": request.method,
            "errors": exc.errors(),
        },
    )

    # Format validation errors for better readability
    errors = []
    for error in exc.errors():
        field = " -> ".join(str(loc) for loc in error["loc"])
        errors.append({
            "field": field,
            "message": error["msg"],
            "type": error["type"],
        })

    return create_error_response(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        message="Validation error",
        error_code="VALIDATION_ERROR",
        details={"errors": errors},
    )


async def database_exception_handler(
    request: Request,
    exc: IntegrityError,
) -> JSONResponse:
    """Handle database integrity errors (unique violations, foreign key, etc.).

    A unique violation on a tracking code means two writers created the
    same code concurrently; the loser gets 409 and can retry, at which
    point the upsert path takes over.
    """
    logger.error(
        "Database integrity error on %s: %s", request.url.path, exc,
        extra={
            "path": request.url.path,
            "method": request.method,
        },
    )

    error_msg = (str(exc.orig) if hasattr(exc, "orig") else str(exc)).lower()
    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY

    if "unique" in error_msg or "duplicate key" in error_msg:
        message = "A record with this tracking code already exists"
        error_code = "DUPLICATE_RECORD"
        status_code = status.HTTP_409_CONFLICT
    elif "foreign key" in error_msg:
        message = "Referenced record does not exist"
        error_code = "FOREIGN_KEY_VIOLATION"
    elif "not null" in error_msg:
        message = "Required field is missing"
        error_code = "NULL_VALUE_NOT_ALLOWED"
    else:
        message = "Database constraint violation"
        error_code = "INTEGRITY_ERROR"

    return create_error_response(
        status_code=status_code,
        message=message,
        error_code=error_code,
    )


async def operational_exception_handler(
    request: Request,
    exc: OperationalError,
) -> JSONResponse:
    """Handle database operational errors (connection issues, etc.)."""
    logger.error(
        "Database operational error on %s: %s", request.url.path, exc,
        extra={
            "path": request.url.path,
            "method": request.method,
        },
    )

    return create_error_response(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        message="Database temporarily unavailable. Please try again.",
        error_code="DATABASE_UNAVAILABLE",
    )


async def general_exception_handler(
    request: Request,
    exc: Exception,
) -> JSONResponse:
    """Handle all other unhandled exceptions."""
    # Log full traceback for debugging
    logger.error(
        "Unhandled exception on %s: %s", request.url.path, exc,
        extra={
            "path": request.url.path,
            "method": request.method,
            "traceback": traceback.format_exc(),
        },
        exc_info=True,
    )

    # Return generic error to client (don't expose internal details)
    return create_error_response(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        message="An unexpected error occurred. Please try again later.",
        error_code="INTERNAL_SERVER_ERROR",
    )


def register_exception_handlers(app):
    """Register all custom exception handlers with FastAPI app."""
    app.add_exception_handler(FreightLinkException, freightlink_exception_handler)
    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(ValidationError, validation_exception_handler)
    app.add_exception_handler(IntegrityError, database_exception_handler)
    app.add_exception_handler(OperationalError, operational_exception_handler)
    app.add_exception_handler(Exception, general_exception_handler)
