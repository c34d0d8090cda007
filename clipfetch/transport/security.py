# clipfetch/transport/security.py
"""
Response hardening and access guards for the public API.

The API is deliberately open (browser frontend, ``*`` origin), so this module
is about what we *send*: CORS headers, safe default headers, and error
messages that do not leak internals.
"""
from fastapi import HTTPException, status

from clipfetch.config import settings
from clipfetch.infra.logging_config import get_logger

logger = get_logger(__name__)


def cors_headers(methods: str | None = None) -> dict[str, str]:
    """Permissive CORS headers; ``methods`` is added for preflight answers."""
    headers = {
        "Access-Control-Allow-Origin": "*",
        "Access-Control-Allow-Headers": "Content-Type",
    }
    if methods:
        headers["Access-Control-Allow-Methods"] = methods
    return headers


class SecurityHeaders:
    """
    Add safe default headers without breaking media playback or the frontend.
    """

    @staticmethod
    def add_security_headers(response):
        # Prevent MIME sniffing
        response.headers["X-Content-Type-Options"] = "nosniff"

        # Referrer policy - don't leak URLs to third parties
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"

        # Relayed media must be embeddable by the frontend on another origin
        response.headers["Cross-Origin-Resource-Policy"] = "cross-origin"

        # Cache control for API responses (default no-cache, endpoints can override)
        if "Cache-Control" not in response.headers:
            response.headers["Cache-Control"] = "no-store, no-cache, must-revalidate"

        # HSTS (only in production with HTTPS)
        if settings.is_production or settings.is_staging:
            response.headers["Strict-Transport-Security"] = "max-age=31536000; includeSubDomains"

        # CORS on every response, including errors
        for name, value in cors_headers().items():
            response.headers.setdefault(name, value)

        # Hide server information
        if "Server" in response.headers:
            del response.headers["Server"]

        return response


def require_dev_environment():
    """
    Dependency that only allows access in dev environment.
    Use for endpoints that should NEVER be exposed in production or staging.
    """
    def dependency():
        if settings.app_env != "dev":
            logger.warning(
                "Attempted access to dev-only endpoint in non-dev environment",
                extra={"env": settings.app_env}
            )
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Not found"  # Don't reveal endpoint exists
            )
    return dependency


def sanitize_error_message(error: Exception, is_production: bool) -> str:
    """
    Sanitize error messages for external responses.
    In production: Generic messages
    In dev: Detailed messages
    """
    if not is_production:
        return str(error)

    # Map internal errors to generic messages
    error_type = type(error).__name__

    generic_messages = {
        "ValueError": "Invalid input",
        "KeyError": "Invalid request",
        "ConnectionError": "Service temporarily unavailable",
        "TimeoutError": "Request timeout",
    }

    return generic_messages.get(error_type, "An error occurred")
