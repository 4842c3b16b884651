"""
Central error handling for the workforce backend

Services raise the typed errors below; the handlers registered in
workforce.main map each one to a stable status code and a JSON body.
"""
import logging
import traceback
from typing import Any, Dict, List, Optional

from fastapi import Request, status
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from fastapi import HTTPException

logger = logging.getLogger(__name__)


class AppError(Exception):
    """Base class of the error taxonomy."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    code: str = "APP_ERROR"
    default_detail: str = "Request failed"

    def __init__(self, detail: Optional[str] = None):
        self.detail = detail or self.default_detail
        super().__init__(self.detail)

    def extra(self) -> Dict[str, Any]:
        """Additional response fields for this error"""
        return {}


class AuthenticationError(AppError):
    """Missing, invalid or expired token or credentials."""
    status_code = status.HTTP_401_UNAUTHORIZED
    code = "AUTHENTICATION_FAILED"
    default_detail = "Invalid authentication credentials"


class AuthorizationError(AppError):
    """Role, module, scope or branch mismatch. Always opaque to the caller."""
    status_code = status.HTTP_403_FORBIDDEN
    code = "FORBIDDEN"
    default_detail = "Forbidden"


class LicenseExpiredError(AppError):
    status_code = status.HTTP_403_FORBIDDEN
    code = "LICENSE_EXPIRED"
    default_detail = "Company license has expired"

    def __init__(self, remaining_days: int = 0, detail: Optional[str] = None):
        self.remaining_days = max(0, int(remaining_days))
        super().__init__(detail or f"Company license has expired. Remaining days: {self.remaining_days}")

    def extra(self) -> Dict[str, Any]:
        return {"remaining_days": self.remaining_days}


class NotFoundError(AppError):
    """Missing or out-of-scope resource (scope mismatches are reported here too)."""
    status_code = status.HTTP_404_NOT_FOUND
    code = "NOT_FOUND"
    default_detail = "Not found"


class ValidationError(AppError):
    status_code = status.HTTP_400_BAD_REQUEST
    code = "VALIDATION_ERROR"
    default_detail = "Invalid request"

    def __init__(self, detail: Optional[str] = None, fields: Optional[List[str]] = None):
        self.fields = list(fields or [])
        super().__init__(detail)

    def extra(self) -> Dict[str, Any]:
        return {"fields": self.fields} if self.fields else {}


class ConflictError(AppError):
    status_code = status.HTTP_400_BAD_REQUEST
    code = "CONFLICT"
    default_detail = "Conflicting request"


class AlreadyCheckedIn(ConflictError):
    code = "ALREADY_CHECKED_IN"
    default_detail = "Already checked in. Please check out first."


class NoActiveCheckIn(ConflictError):
    code = "NO_ACTIVE_CHECK_IN"
    default_detail = "No active check-in found. Please check in first."


class InfrastructureError(AppError):
    """Store unavailable or timed out."""
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    code = "INFRASTRUCTURE_ERROR"
    default_detail = "Service temporarily unavailable"


def _error_body(request: Request, status_code: int, detail: Any, code: Optional[str] = None) -> Dict[str, Any]:
    body = {
        "error": True,
        "status_code": status_code,
        "detail": detail,
        "path": str(request.url.path),
    }
    if code:
        body["code"] = code
    return body


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    """
    Render a taxonomy error.

    The full context is logged server-side; the body only carries the
    error's public detail.
    """
    log_level = logging.ERROR if exc.status_code >= 500 else logging.INFO
    logger.log(
        log_level,
        "%s %s -> %s %s: %s",
        request.method,
        request.url.path,
        exc.status_code,
        exc.code,
        exc.detail,
        exc_info=exc.status_code >= 500,
    )
    body = _error_body(request, exc.status_code, exc.detail, exc.code)
    body.update(exc.extra())
    headers = {"WWW-Authenticate": "Bearer"} if isinstance(exc, AuthenticationError) else None
    return JSONResponse(status_code=exc.status_code, content=body, headers=headers)


async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    """Handle HTTPException with the same JSON response format"""
    return JSONResponse(
        status_code=exc.status_code,
        content=_error_body(request, exc.status_code, exc.detail),
        headers=getattr(exc, "headers", None),
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """
    Handle RequestValidationError with consistent JSON response format

    Does not leak internal validation details in production.
    """
    from workforce.core.config import settings

    if settings.APP_ENV == "prod":
        return JSONResponse(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            content=_error_body(request, 422, "Validation error: Invalid request data"),
        )

    errors = []
    for e in exc.errors():
        err = dict(e)
        if "ctx" in err and isinstance(err["ctx"], dict):
            err["ctx"] = {
                k: (str(v) if not isinstance(v, (str, int, float, bool, type(None))) else v)
                for k, v in err["ctx"].items()
            }
        errors.append(err)
    body = _error_body(request, 422, "Validation error")
    body["errors"] = errors
    return JSONResponse(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, content=body)


async def store_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """SQLAlchemy connection/timeout failures surface as InfrastructureError."""
    logger.error("Data store failure on %s %s: %s", request.method, request.url.path, exc, exc_info=True)
    return await app_error_handler(request, InfrastructureError())


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """
    Handle unexpected exceptions with consistent JSON response format

    Does not leak internal error details in production.
    """
    from workforce.core.config import settings

    logger.error("Unhandled exception on %s %s: %s", request.method, request.url.path, exc, exc_info=True)

    if settings.APP_ENV == "prod":
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=_error_body(request, 500, "Internal server error"),
        )

    body = _error_body(request, 500, str(exc))
    body["traceback"] = (
        "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))
        if settings.APP_ENV == "local" else None
    )
    return JSONResponse(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content=body)
