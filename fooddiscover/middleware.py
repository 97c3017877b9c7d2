"""
Custom middleware for security headers and request logging.
"""
import time
import uuid

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from .logging_config import api_logger


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Add security headers to all responses."""

    async def dispatch(self, request: Request, call_next) -> Response:
        response = await call_next(request)

        # Uploaded images are served with their sniffed type only
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
        response.headers["Permissions-Policy"] = "geolocation=(), microphone=(), camera=()"
        response.headers["Content-Security-Policy"] = (
            "default-src 'none'; "
            "img-src 'self' data:; "
            "frame-ancestors 'none';"
        )

        return response


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Log each request with a request id, status and duration."""

    async def dispatch(self, request: Request, call_next) -> Response:
        request_id = request.headers.get("X-Request-ID") or uuid.uuid4().hex[:12]
        start_time = time.time()

        try:
            response = await call_next(request)
        except Exception as e:
            api_logger.error(
                f"{request.method} {request.url.path} -> ERROR",
                error=e,
                request_id=request_id,
                duration_ms=round((time.time() - start_time) * 1000, 2),
            )
            raise

        duration_ms = round((time.time() - start_time) * 1000, 2)
        level = "info" if response.status_code < 400 else "warning" if response.status_code < 500 else "error"
        getattr(api_logger, level)(
            f"{request.method} {request.url.path} -> {response.status_code}",
            request_id=request_id,
            method=request.method,
            path=request.url.path,
            status_code=response.status_code,
            duration_ms=duration_ms,
        )

        response.headers["X-Request-ID"] = request_id
        response.headers["X-Process-Time"] = str(duration_ms)
        return response
