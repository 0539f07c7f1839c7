"""
Error Handling Module for TDMS Analytics

This module provides centralized error handling with:
- Custom exception hierarchy for scope, filter and penalty failures
- Standardized error responses
- Error logging with request context
- Store read failures reported without query internals
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional, Union
from uuid import UUID
import logging

from fastapi import FastAPI, Request, HTTPException, status
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from sqlalchemy.exc import SQLAlchemyError, IntegrityError, OperationalError
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger("tdms.errors")


class ErrorCode(str, Enum):
    """Standardized error codes for the application"""

    # Validation Errors (400)
    VALIDATION_ERROR = "VALIDATION_ERROR"
    INVALID_FILTER = "INVALID_FILTER"
    INVALID_PERIOD = "INVALID_PERIOD"

    # Authentication/Authorization Errors (401/403)
    UNAUTHORIZED = "UNAUTHORIZED"
    INVALID_ACCESS_CODE = "INVALID_ACCESS_CODE"
    FORBIDDEN = "FORBIDDEN"
    SCOPE_VIOLATION = "SCOPE_VIOLATION"

    # Resource Errors (404/409)
    NOT_FOUND = "NOT_FOUND"
    SUBMISSION_NOT_FOUND = "SUBMISSION_NOT_FOUND"
    ESTABLISHMENT_NOT_FOUND = "ESTABLISHMENT_NOT_FOUND"
    RESOURCE_CONFLICT = "RESOURCE_CONFLICT"

    # Business Logic Errors (422)
    BUSINESS_RULE_VIOLATION = "BUSINESS_RULE_VIOLATION"
    NO_PENALTY_OWED = "NO_PENALTY_OWED"

    # Store Errors (500/503)
    STORE_READ_ERROR = "STORE_READ_ERROR"
    DATABASE_ERROR = "DATABASE_ERROR"

    # Internal Errors (500)
    INTERNAL_ERROR = "INTERNAL_ERROR"


class AppException(Exception):
    """Base exception for all application exceptions"""

    def __init__(
        self,
        code: ErrorCode,
        message: str,
        status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR,
        details: Optional[Dict[str, Any]] = None,
        field: Optional[str] = None,
        original_error: Optional[Exception] = None,
    ):
        self.code = code
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        self.field = field
        self.original_error = original_error
        self.timestamp = datetime.now(timezone.utc)
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for JSON response"""
        result = {
            "code": self.code.value,
            "message": self.message,
            "timestamp": _isoformat(self.timestamp),
        }
        if self.field:
            result["field"] = self.field
        if self.details:
            result["details"] = self.details
        return result


def _isoformat(moment: datetime) -> str:
    return moment.replace(tzinfo=None).isoformat() + "Z"


# ============================================================================
# Validation Exceptions
# ============================================================================

class ValidationException(AppException):
    """Malformed request parameter (bad year, month, filter value, grouping)."""

    def __init__(
        self,
        message: str,
        field: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
        code: ErrorCode = ErrorCode.VALIDATION_ERROR,
    ):
        super().__init__(
            code=code,
            message=message,
            status_code=status.HTTP_400_BAD_REQUEST,
            details=details,
            field=field,
        )


class InvalidFilterException(ValidationException):
    """Unknown value for an enumerated filter"""

    def __init__(self, field: str, value: Any, allowed: list):
        super().__init__(
            message=f"Invalid {field} filter: {value!r}. Allowed: {', '.join(allowed)}",
            field=field,
            code=ErrorCode.INVALID_FILTER,
            details={"provided": str(value), "allowed": allowed},
        )


class InvalidPeriodException(ValidationException):
    """Year or month outside the accepted range"""

    def __init__(self, field: str, value: Any, minimum: int, maximum: int):
        super().__init__(
            message=f"Invalid {field}: {value}. Expected {minimum}-{maximum}.",
            field=field,
            code=ErrorCode.INVALID_PERIOD,
            details={"provided": str(value), "min": minimum, "max": maximum},
        )


# ============================================================================
# Authentication/Authorization Exceptions
# ============================================================================

class AuthenticationException(AppException):
    """Base authentication exception"""

    def __init__(
        self,
        message: str = "Authentication required",
        code: ErrorCode = ErrorCode.UNAUTHORIZED,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(
            code=code,
            message=message,
            status_code=status.HTTP_401_UNAUTHORIZED,
            details=details,
        )


class InvalidAccessCodeException(AuthenticationException):
    """Penalty access code did not match"""

    def __init__(self):
        super().__init__(
            message="Invalid access code",
            code=ErrorCode.INVALID_ACCESS_CODE,
        )


class AuthorizationException(AppException):
    """Role is not allowed to perform the operation"""

    def __init__(
        self,
        message: str = "Permission denied",
        required_role: Optional[str] = None,
        code: ErrorCode = ErrorCode.FORBIDDEN,
    ):
        details = {}
        if required_role:
            details["required_role"] = required_role
        super().__init__(
            code=code,
            message=message,
            status_code=status.HTTP_403_FORBIDDEN,
            details=details,
        )


class ScopeViolationException(AuthorizationException):
    """
    Requested geography lies outside the requester's territory.

    The requested scope is never widened or narrowed to make it fit.
    """

    def __init__(self, level: str, requested: str, message: Optional[str] = None):
        super().__init__(
            message=message or f"Requested {level} '{requested}' is outside your jurisdiction",
            code=ErrorCode.SCOPE_VIOLATION,
        )
        self.details = {"level": level, "requested": requested}


# ============================================================================
# Resource Exceptions
# ============================================================================

class NotFoundException(AppException):
    """Resource not found exception"""

    def __init__(
        self,
        resource_type: str,
        resource_id: Optional[Union[str, UUID]] = None,
        message: Optional[str] = None,
        code: ErrorCode = ErrorCode.NOT_FOUND,
    ):
        if message is None:
            if resource_id:
                message = f"{resource_type} with ID '{resource_id}' not found"
            else:
                message = f"{resource_type} not found"
        super().__init__(
            code=code,
            message=message,
            status_code=status.HTTP_404_NOT_FOUND,
            details={"resource_type": resource_type, "resource_id": str(resource_id) if resource_id else None},
        )


class SubmissionNotFoundException(NotFoundException):
    def __init__(self, submission_id: Union[str, UUID]):
        super().__init__(
            resource_type="Submission",
            resource_id=submission_id,
            code=ErrorCode.SUBMISSION_NOT_FOUND,
        )


class EstablishmentNotFoundException(NotFoundException):
    def __init__(self, establishment_id: Union[str, UUID]):
        super().__init__(
            resource_type="Establishment",
            resource_id=establishment_id,
            code=ErrorCode.ESTABLISHMENT_NOT_FOUND,
        )


# ============================================================================
# Business Logic Exceptions
# ============================================================================

class BusinessRuleException(AppException):
    """Business rule violation"""

    def __init__(
        self,
        message: str,
        rule: Optional[str] = None,
        code: ErrorCode = ErrorCode.BUSINESS_RULE_VIOLATION,
        details: Optional[Dict[str, Any]] = None,
    ):
        _details = details or {}
        if rule:
            _details["rule"] = rule
        super().__init__(
            code=code,
            message=message,
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            details=_details,
        )


class NoPenaltyOwedException(BusinessRuleException):
    """Marking a penalty as paid on an on-time submission"""

    def __init__(self, submission_id: Union[str, UUID]):
        super().__init__(
            message="Submission was filed on time; no penalty is owed",
            rule="penalty_requires_late_submission",
            code=ErrorCode.NO_PENALTY_OWED,
            details={"submission_id": str(submission_id)},
        )


# ============================================================================
# Store Exceptions
# ============================================================================

class StoreReadException(AppException):
    """
    The submission store could not answer an aggregation query.

    Raised instead of returning a partial rollup. The driver error is kept
    for logging but never rendered to the client.
    """

    def __init__(
        self,
        operation: str,
        original_error: Optional[Exception] = None,
    ):
        super().__init__(
            code=ErrorCode.STORE_READ_ERROR,
            message="Submission store is unavailable. Please try again later.",
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            details={"operation": operation},
            original_error=original_error,
        )


# ============================================================================
# Exception Handlers
# ============================================================================

def create_error_response(
    code: ErrorCode,
    message: str,
    status_code: int,
    details: Optional[Dict[str, Any]] = None,
    field: Optional[str] = None,
) -> JSONResponse:
    """Create a standardized error response"""
    content = {
        "detail": {
            "code": code.value,
            "message": message,
            "timestamp": _isoformat(datetime.now(timezone.utc)),
        }
    }
    if field:
        content["detail"]["field"] = field
    if details:
        content["detail"]["details"] = details

    return JSONResponse(status_code=status_code, content=content)


async def app_exception_handler(request: Request, exc: AppException) -> JSONResponse:
    """Handle AppException"""
    log = logger.error if exc.status_code >= 500 else logger.warning
    log(
        f"AppException: {exc.code.value} - {exc.message}",
        extra={
            "code": exc.code.value,
            "path": request.url.path,
            "method": request.method,
            "details": exc.details,
        },
        exc_info=exc.original_error,
    )

    return create_error_response(
        code=exc.code,
        message=exc.message,
        status_code=exc.status_code,
        details=exc.details,
        field=exc.field,
    )


async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    """Handle HTTPException"""
    code_map = {
        400: ErrorCode.VALIDATION_ERROR,
        401: ErrorCode.UNAUTHORIZED,
        403: ErrorCode.FORBIDDEN,
        404: ErrorCode.NOT_FOUND,
        409: ErrorCode.RESOURCE_CONFLICT,
        422: ErrorCode.BUSINESS_RULE_VIOLATION,
        500: ErrorCode.INTERNAL_ERROR,
        503: ErrorCode.STORE_READ_ERROR,
    }

    error_code = code_map.get(exc.status_code, ErrorCode.INTERNAL_ERROR)
    message = exc.detail if isinstance(exc.detail, str) else str(exc.detail)

    logger.warning(
        f"HTTPException: {exc.status_code} - {message}",
        extra={"path": request.url.path, "method": request.method},
    )

    response = create_error_response(
        code=error_code,
        message=message,
        status_code=exc.status_code,
    )
    if getattr(exc, "headers", None):
        response.headers.update(exc.headers)
    return response


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Handle malformed query/body parameters as 400 Bad Request"""
    errors = []
    for error in exc.errors():
        field = ".".join(str(loc) for loc in error["loc"])
        errors.append({
            "field": field,
            "message": error["msg"],
            "type": error["type"],
        })

    logger.warning(
        f"ValidationError: {len(errors)} validation errors",
        extra={"path": request.url.path, "method": request.method, "errors": errors},
    )

    return create_error_response(
        code=ErrorCode.VALIDATION_ERROR,
        message="Request validation failed",
        status_code=status.HTTP_400_BAD_REQUEST,
        details={"errors": errors},
    )


async def sqlalchemy_exception_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    """Handle SQLAlchemy errors that escaped the service layer"""
    error_message = "A database error occurred"
    error_code = ErrorCode.DATABASE_ERROR
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    if isinstance(exc, IntegrityError):
        error_message = "Data integrity constraint violated"
        status_code = status.HTTP_409_CONFLICT
        error_code = ErrorCode.RESOURCE_CONFLICT
    elif isinstance(exc, OperationalError):
        error_message = "Submission store is unavailable. Please try again later."
        error_code = ErrorCode.STORE_READ_ERROR
        status_code = status.HTTP_503_SERVICE_UNAVAILABLE

    logger.error(
        f"SQLAlchemyError: {type(exc).__name__}",
        extra={"path": request.url.path, "method": request.method},
        exc_info=True,
    )

    return create_error_response(
        code=error_code,
        message=error_message,
        status_code=status_code,
    )


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handle unhandled exceptions"""
    logger.critical(
        f"UnhandledException: {type(exc).__name__} - {str(exc)}",
        extra={"path": request.url.path, "method": request.method},
        exc_info=True,
    )

    return create_error_response(
        code=ErrorCode.INTERNAL_ERROR,
        message="An unexpected error occurred. Please try again later.",
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
    )


def setup_exception_handlers(app: FastAPI) -> None:
    """Register all exception handlers with the FastAPI application"""
    app.add_exception_handler(AppException, app_exception_handler)
    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(SQLAlchemyError, sqlalchemy_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)


# ============================================================================
# Parameter Validation
# ============================================================================

MIN_YEAR = 2000
MAX_YEAR = 2100


def validate_year(year: Any) -> int:
    """Validate a reporting year"""
    try:
        value = int(year)
    except (TypeError, ValueError):
        raise InvalidPeriodException("year", year, MIN_YEAR, MAX_YEAR)
    if value < MIN_YEAR or value > MAX_YEAR:
        raise InvalidPeriodException("year", year, MIN_YEAR, MAX_YEAR)
    return value


def validate_month(month: Any) -> int:
    """Validate a reporting month (1-12)"""
    try:
        value = int(month)
    except (TypeError, ValueError):
        raise InvalidPeriodException("month", month, 1, 12)
    if value < 1 or value > 12:
        raise InvalidPeriodException("month", month, 1, 12)
    return value


__all__ = [
    # Base
    "AppException",
    "ErrorCode",

    # Validation
    "ValidationException",
    "InvalidFilterException",
    "InvalidPeriodException",

    # Auth
    "AuthenticationException",
    "InvalidAccessCodeException",
    "AuthorizationException",
    "ScopeViolationException",

    # Resource
    "NotFoundException",
    "SubmissionNotFoundException",
    "EstablishmentNotFoundException",

    # Business Logic
    "BusinessRuleException",
    "NoPenaltyOwedException",

    # Store
    "StoreReadException",

    # Handlers
    "setup_exception_handlers",
    "create_error_response",

    # Utilities
    "validate_year",
    "validate_month",
]
