"""
Custom exceptions and error handlers for consistent error responses.

Provides standardized error codes and global exception handlers.
"""

import logging
from fastapi import HTTPException, Request, status
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from typing import Any, Dict

logger = logging.getLogger("fleetops.errors")


class AppException(Exception):
    """Base application exception."""

    def __init__(self, message: str, error_code: str, status_code: int = 500, details: Dict[str, Any] = None):
        self.message = message
        self.error_code = error_code
        self.status_code = status_code
        self.details = details or {}
        super().__init__(message)


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


class PricingNotConfiguredError(AppException):
    """Raised when no active rule or package matches the requested scope."""

    def __init__(self, service_type_id: Any, vehicle_type: str, zone: str = None, kind: str = "pricing_rule"):
        scope = f"service type {service_type_id}, vehicle type '{vehicle_type}'"
        if zone:
            scope += f", zone '{zone}'"
        super().__init__(
            message=f"No pricing configured for {scope}",
            error_code="ERR_PRICING_001",
            status_code=status.HTTP_404_NOT_FOUND,
            details={
                "service_type_id": service_type_id,
                "vehicle_type": vehicle_type,
                "zone": zone,
                "kind": kind,
            }
        )


class InvalidRuleError(AppException):
    """Raised when a resolved rule lacks fields the computation needs."""

    def __init__(self, message: str, rule_id: Any = None, missing_field: str = None):
        super().__init__(
            message=message,
            error_code="ERR_PRICING_002",
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            details={"rule_id": rule_id, "missing_field": missing_field}
        )


class FareValidationError(AppException):
    """Raised for negative or non-numeric distance, duration or amount inputs."""

    def __init__(self, field: str, value: Any, reason: str = "must be a non-negative number"):
        super().__init__(
            message=f"Invalid {field}: {reason}",
            error_code="ERR_VALIDATION_002",
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            details={"field": field, "value": repr(value)}
        )


class InvalidStateTransitionError(AppException):
    """Raised when a lifecycle or payment status change is not allowed."""

    def __init__(self, message: str, details: Dict[str, Any] = None):
        super().__init__(
            message=message,
            error_code="ERR_STATE_001",
            status_code=status.HTTP_409_CONFLICT,
            details=details
        )


class ConflictError(AppException):
    """Raised on duplicate records or edits to immutable fields."""

    def __init__(self, message: str, details: Dict[str, Any] = None):
        super().__init__(
            message=message,
            error_code="ERR_CONFLICT_001",
            status_code=status.HTTP_409_CONFLICT,
            details=details
        )


# Global Exception Handlers

async def app_exception_handler(request: Request, exc: AppException) -> JSONResponse:
    """Handler for custom application exceptions."""
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "error_code": exc.error_code,
            "message": exc.message,
            "details": exc.details
        }
    )


async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    """Handler for FastAPI HTTPException with standardized format."""
    error_code_map = {
        400: "ERR_BAD_REQUEST",
        404: "ERR_NOT_FOUND",
        409: "ERR_CONFLICT",
        500: "ERR_INTERNAL_SERVER"
    }

    error_code = error_code_map.get(exc.status_code, "ERR_UNKNOWN")

    return JSONResponse(
        status_code=exc.status_code,
        content={
            "error_code": error_code,
            "message": exc.detail,
            "details": {}
        }
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Handler for Pydantic validation errors."""
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={
            "error_code": "ERR_VALIDATION",
            "message": "Validation error",
            "details": {
                "errors": [
                    {"loc": list(err.get("loc", ())), "msg": err.get("msg"), "type": err.get("type")}
                    for err in exc.errors()
                ]
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
