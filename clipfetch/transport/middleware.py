# clipfetch/transport/middleware.py
"""
ASGI middleware stack for the public API.

Registered in ``http_app`` so that, from the outside in, a request passes
RequestID → RequestLogging → ErrorHandling → SecurityHeaders → routes.
"""
import re
import time
import uuid
from typing import Callable

from fastapi import Request, Response
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

from clipfetch.config import settings
from clipfetch.infra.logging_config import get_logger, LogContext
from clipfetch.transport.security import SecurityHeaders, sanitize_error_message

logger = get_logger(__name__)

# Client-supplied ids are echoed into logs and headers, so keep them boring
_REQUEST_ID_RE = re.compile(r"^[A-Za-z0-9._-]{1,64}$")

# Probes hit these every few seconds; keep them out of INFO logs
QUIET_PATHS = frozenset({"/health", "/api/health", "/metrics"})


class RequestIDMiddleware(BaseHTTPMiddleware):
    """Reuse a well-formed ``X-Request-ID`` or mint a new one"""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        incoming = request.headers.get("X-Request-ID", "")
        request_id = incoming if _REQUEST_ID_RE.match(incoming) else str(uuid.uuid4())
        request.state.request_id = request_id

        response = await call_next(request)
        response.headers["X-Request-ID"] = request_id
        return response


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """
    One line per request with status and latency.

    For ``/api/proxy`` the latency is time-to-headers; the body keeps
    streaming after this middleware has returned.
    """

    def __init__(self, app: ASGIApp, enabled: bool = True):
        super().__init__(app)
        self.enabled = enabled

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        if not self.enabled:
            return await call_next(request)

        path = request.url.path
        log_ctx = LogContext(logger, request_id=getattr(request.state, "request_id", None))
        started = time.perf_counter()

        try:
            response = await call_next(request)
        except Exception as exc:
            log_ctx.error(
                f"{request.method} {path} raised {exc.__class__.__name__} "
                f"after {(time.perf_counter() - started) * 1000:.1f}ms",
                extra={"method": request.method, "path": path, "error_type": exc.__class__.__name__},
            )
            raise

        duration_ms = (time.perf_counter() - started) * 1000
        extra = {
            "method": request.method,
            "path": path,
            "status_code": response.status_code,
            "duration_ms": duration_ms,
            "client_ip": request.client.host if request.client else None,
        }
        message = f"{request.method} {path} -> {response.status_code} in {duration_ms:.1f}ms"

        if response.status_code >= 500:
            log_ctx.warning(message, extra=extra)
        elif path in QUIET_PATHS:
            log_ctx.debug(message, extra=extra)
        else:
            log_ctx.info(message, extra=extra)

        return response


class ErrorHandlingMiddleware(BaseHTTPMiddleware):
    """Last-resort JSON 500 for anything the exception handlers did not map"""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        try:
            return await call_next(request)
        except Exception as exc:
            request_id = getattr(request.state, "request_id", "unknown")

            logger.error(
                f"Unhandled exception: {exc.__class__.__name__}: {exc}",
                extra={"request_id": request_id},
                exc_info=True
            )

            return JSONResponse(
                status_code=500,
                content={
                    "success": False,
                    "error": sanitize_error_message(exc, settings.is_production),
                    "request_id": request_id,
                }
            )


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """CORS and hardening headers on every response, errors included"""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        response = await call_next(request)
        return SecurityHeaders.add_security_headers(response)
