# clipfetch/core/errors.py
"""
Typed errors for resolution and relay.

Each user-facing error maps to a specific HTTP status code.  The transport
layer catches ``ClipfetchError`` subtypes and renders ``to_payload()``
without embedding business logic in the route handlers.

``ProviderFailure`` is internal: adapters raise it, the resolver logs it and
moves on.  It never reaches a client.
"""
from __future__ import annotations

from clipfetch.core.normalize import format_file_size


class ClipfetchError(Exception):
    """Base class for all errors surfaced to clients."""

    status_code: int = 500

    def __init__(self, detail: str = "Internal error"):
        self.detail = detail
        super().__init__(detail)

    def to_payload(self) -> dict:
        return {"success": False, "error": self.detail}


class InvalidInput(ClipfetchError):
    """Missing or malformed URL (400). User-correctable, shown verbatim."""

    status_code = 400


class AllProvidersFailed(ClipfetchError):
    """Every adapter failed (500).

    The message is deliberately generic; individual provider errors are only
    logged.
    """

    status_code = 500

    MESSAGE = (
        "Unable to download this video. The video might be private, deleted, "
        "or temporarily unavailable. Please try again later."
    )

    def __init__(self):
        super().__init__(self.MESSAGE)


class TooLarge(ClipfetchError):
    """Winning result exceeds the configured size limit (400)."""

    status_code = 400

    def __init__(self, size_bytes: int, limit_bytes: int):
        self.size_bytes = size_bytes
        self.limit_bytes = limit_bytes
        super().__init__(
            f"Video is too large ({format_file_size(size_bytes)}). "
            f"Maximum allowed size is {format_file_size(limit_bytes)}. "
            f"Try a lower quality option."
        )


class RelayFailed(ClipfetchError):
    """Outbound media stream could not be opened (500)."""

    status_code = 500

    def __init__(self, detail: str = "Failed to proxy download"):
        super().__init__(detail)


class ProviderFailure(Exception):
    """
    A single adapter could not produce a result.

    Attributes:
        provider: Adapter name, for logs and metrics.
        reason: Short machine-friendly label (``"http_status"``,
            ``"bad_payload"``, ``"transport"``, ...).
    """

    def __init__(self, provider: str, message: str, reason: str = "error"):
        self.provider = provider
        self.reason = reason
        super().__init__(f"{provider}: {message}")
