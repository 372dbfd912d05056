"""
Custom exceptions and error handlers for consistent error responses.

Provides standardized error codes and global exception handlers.
Calculation errors are raised by the domain layer and only turned into
HTTP responses by the handlers registered in main.py.
"""

import logging
from fastapi import HTTPException, Request, status
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from typing import Any, Dict

logger = logging.getLogger("calctree.errors")


class AppException(Exception):
    """Base application exception."""

    def __init__(self, message: str, error_code: str, status_code: int = 500, details: Dict[str, Any] = None):
        self.message = message
        self.error_code = error_code
        self.status_code = status_code
        self.details = details or {}
        super().__init__(message)


class InvalidNumberError(AppException):
    """Raised when a value is not finite or falls outside the storable range."""

    def __init__(self, message: str = "Invalid number", details: Dict[str, Any] = None):
        super().__init__(
            message=message,
            error_code="ERR_CALC_INVALID_NUMBER",
            status_code=status.HTTP_400_BAD_REQUEST,
            details=details
        )


class DivisionByZeroError(AppException):
    """Raised when a divide operation has a zero operand."""

    def __init__(self):
        super().__init__(
            message="Division by zero is not allowed",
            error_code="ERR_CALC_DIVISION_BY_ZERO",
            status_code=status.HTTP_400_BAD_REQUEST
        )


class CalculationOverflowError(AppException):
    """Raised when an operation produces a result outside the storable range."""

    def __init__(self, message: str = "Calculation result is too large (overflow)", details: Dict[str, Any] = None):
        super().__init__(
            message=message,
            error_code="ERR_CALC_OVERFLOW",
            status_code=status.HTTP_400_BAD_REQUEST,
            details=details
        )


class ParentNotFoundError(AppException):
    """Raised when a child calculation references a missing parent."""

    def __init__(self, parent_id: Any = None):
        super().__init__(
            message="Parent calculation not found",
            error_code="ERR_CALC_PARENT_NOT_FOUND",
            status_code=status.HTTP_404_NOT_FOUND,
            details={"parent_id": parent_id}
        )


class ResourceNotFoundError(AppException):
    """Raised when requested resource is not found."""

    def __init__(self, resource: str, resource_id: Any = None):
        message = f"{resource} not found"
        if resource_id:
            message = f"{resource} with ID {resource_id} not found"
        super().__init__(
            message=message,
            error_code="ERR_NOT_FOUND_001",
            status_code=status.HTTP_404_NOT_FOUND,
            details={"resource": resource, "id": resource_id}
        )


class CalculationNotFoundError(AppException):
    """
    Raised when a delete target is missing or owned by someone else.

    Missing and not-owned rows share one message and status.
    """

    def __init__(self, calculation_id: Any = None):
        super().__init__(
            message="Calculation not found or unauthorized",
            error_code="ERR_NOT_FOUND_001",
            status_code=status.HTTP_404_NOT_FOUND,
            details={"resource": "Calculation", "id": calculation_id}
        )


class TransientResourceError(AppException):
    """Raised when no database connection could be acquired in time."""

    def __init__(self, message: str = "Database temporarily unavailable, please retry"):
        super().__init__(
            message=message,
            error_code="ERR_DB_UNAVAILABLE",
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            details={"retryable": True}
        )


# Global Exception Handlers

async def app_exception_handler(request: Request, exc: AppException) -> JSONResponse:
    """Handler for custom application exceptions."""
    request.state.error_code = exc.error_code
    headers = None
    if exc.status_code == status.HTTP_503_SERVICE_UNAVAILABLE:
        headers = {"Retry-After": "1"}
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "error_code": exc.error_code,
            "message": exc.message,
            "details": exc.details
        },
        headers=headers
    )


async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    """Handler for FastAPI HTTPException with standardized format."""
    # Map status code to error code
    error_code_map = {
        400: "ERR_BAD_REQUEST",
        401: "ERR_UNAUTHORIZED",
        403: "ERR_FORBIDDEN",
        404: "ERR_NOT_FOUND",
        409: "ERR_CONFLICT",
        500: "ERR_INTERNAL_SERVER"
    }

    error_code = error_code_map.get(exc.status_code, "ERR_UNKNOWN")
    request.state.error_code = error_code

    return JSONResponse(
        status_code=exc.status_code,
        content={
            "error_code": error_code,
            "message": exc.detail,
            "details": {}
        },
        headers=getattr(exc, "headers", None)
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Handler for Pydantic validation errors."""
    request.state.error_code = "ERR_VALIDATION"
    errors = []
    for error in exc.errors():
        field = ".".join(str(loc) for loc in error["loc"])
        errors.append({"field": field, "message": error["msg"], "type": error["type"]})

    logger.warning(
        "Validation error on %s: %d error(s)", request.url.path, len(errors)
    )

    return JSONResponse(
        status_code=422,
        content={
            "error_code": "ERR_VALIDATION",
            "message": "Validation error",
            "details": {
                "errors": errors
            }
        }
    )


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handler for unhandled exceptions."""
    logger.exception("Unhandled exception: %s", type(exc).__name__)

    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "error_code": "ERR_INTERNAL_SERVER",
            "message": "An internal server error occurred",
            "details": {}
        }
    )
