"""
FoodDiscover API Response Utilities
Standardized response envelope and error handling
"""
from fastapi import HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from slowapi.errors import RateLimitExceeded
from typing import Any, Dict, List, Optional

from .logging_config import api_logger


SERVER_ERROR_MESSAGE = "Server error. Please try again later."


# ============================================================
# SUCCESS RESPONSES
# ============================================================

def success(message: Optional[str] = None, **payload: Any) -> Dict:
    """Create a success envelope: {success, message?, ...payload}"""
    response: Dict[str, Any] = {"success": True}
    if message:
        response["message"] = message
    response.update(payload)
    return response


def failure(message: str, errors: Optional[List[str]] = None) -> Dict:
    """Create a failure envelope"""
    response: Dict[str, Any] = {"success": False, "message": message}
    if errors:
        response["errors"] = errors
    return response


# ============================================================
# ERROR TAXONOMY
# ============================================================

class ApiException(HTTPException):
    """API exception carrying a user-facing message"""

    status_code_default = 500

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        errors: Optional[List[str]] = None,
        headers: Optional[Dict[str, str]] = None,
    ):
        self.message = message
        self.errors = errors
        super().__init__(
            status_code=status_code or self.status_code_default,
            detail=message,
            headers=headers,
        )


class ValidationError(ApiException):
    """Missing or malformed field"""
    status_code_default = 400


class DuplicateKeyError(ApiException):
    """Unique constraint collision; the message names the field"""
    status_code_default = 400


class AuthError(ApiException):
    """Absent/invalid/expired token, wrong credentials, inactive account"""
    status_code_default = 401


class AuthorizationError(ApiException):
    """Authenticated, but not allowed to touch the resource"""
    status_code_default = 403


class NotFoundError(ApiException):
    status_code_default = 404


class UploadError(ApiException):
    """File count, size, field name or type constraint failed"""
    status_code_default = 400


class ServerError(ApiException):
    status_code_default = 500

    def __init__(self, message: str = SERVER_ERROR_MESSAGE):
        super().__init__(message)


# ============================================================
# EXCEPTION HANDLERS
# ============================================================

def _validation_messages(exc: RequestValidationError) -> List[str]:
    messages = []
    for err in exc.errors():
        ctx_error = (err.get("ctx") or {}).get("error")
        if ctx_error is not None:
            messages.append(str(ctx_error))
            continue
        location = ".".join(str(part) for part in err.get("loc", ()) if part != "body")
        msg = err.get("msg", "Invalid value")
        messages.append(f"{location}: {msg}" if location else msg)
    return messages


async def api_exception_handler(request: Request, exc: ApiException) -> JSONResponse:
    api_logger.warning(
        f"API Error: {exc.message}",
        status_code=exc.status_code,
        error_type=type(exc).__name__,
        path=request.url.path,
    )
    return JSONResponse(
        status_code=exc.status_code,
        content=failure(exc.message, exc.errors),
        headers=exc.headers,
    )


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    api_logger.warning(
        f"HTTP Error: {exc.detail}",
        status_code=exc.status_code,
        path=request.url.path,
    )
    message = exc.detail if isinstance(exc.detail, str) else "Request failed"
    if exc.status_code == 404 and message == "Not Found":
        message = "Route not found"
    return JSONResponse(
        status_code=exc.status_code,
        content=failure(message),
        headers=getattr(exc, "headers", None),
    )


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    messages = _validation_messages(exc)
    api_logger.warning(
        "Request validation failed",
        path=request.url.path,
        errors=messages,
    )
    return JSONResponse(status_code=400, content=failure("Validation failed", messages))


async def rate_limit_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    api_logger.warning("Rate limit exceeded", path=request.url.path, limit=str(exc.detail))
    return JSONResponse(
        status_code=429,
        content=failure("Too many requests. Please try again later."),
    )


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Unexpected errors degrade to a generic 500; details stay in the log"""
    api_logger.error(
        f"Unexpected error: {exc}",
        error=exc,
        path=request.url.path,
    )
    return JSONResponse(status_code=500, content=failure(SERVER_ERROR_MESSAGE))


def register_exception_handlers(app) -> None:
    app.add_exception_handler(ApiException, api_exception_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(RateLimitExceeded, rate_limit_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
