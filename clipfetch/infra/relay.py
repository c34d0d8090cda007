# clipfetch/infra/relay.py
"""
Media relay: stream a remote media file through this server.

Browsers cannot download CDN media directly from the page because of
cross-origin rules, so the frontend asks ``/api/proxy`` instead.

The upstream response is opened (status checked, headers read) *before* the
first byte is handed to the caller.  Failures at that stage raise
``RelayFailed`` and no partial body is ever sent.  Once streaming starts, the
upstream response is released when iteration finishes, fails, or is cancelled
because the client went away.
"""
from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import AsyncIterator
from urllib.parse import urlsplit

import aiohttp

from clipfetch.config import settings
from clipfetch.core.errors import InvalidInput, RelayFailed
from clipfetch.infra.http_client import get_provider_session, get_relay_session
from clipfetch.infra.logging_config import get_logger, mask_url
from clipfetch.infra.metrics import AppMetrics

logger = get_logger(__name__)

_ALLOWED_SCHEMES = {"http", "https"}


def content_disposition(inline: bool, filename: str | None = None) -> str:
    """``inline`` for in-browser playback, otherwise a download with a fixed filename."""
    if inline:
        return "inline"
    return f'attachment; filename="{filename or settings.relay_filename}"'


def validate_media_url(url: str | None) -> str:
    url = (url or "").strip()
    if not url:
        raise InvalidInput("URL parameter required")

    try:
        parts = urlsplit(url)
    except ValueError as e:
        # e.g. an unterminated IPv6 literal: "http://[::1"
        raise InvalidInput("URL must be an absolute http(s) URL") from e

    if parts.scheme.lower() not in _ALLOWED_SCHEMES or not parts.netloc:
        raise InvalidInput("URL must be an absolute http(s) URL")

    return url


@dataclass
class RelayStream:
    """An opened upstream response, ready to be copied to the client."""

    response: aiohttp.ClientResponse
    content_type: str
    content_disposition: str
    chunk_size: int = 64 * 1024

    @property
    def headers(self) -> dict[str, str]:
        headers = {
            "Content-Disposition": self.content_disposition,
            "Cache-Control": "no-cache",
        }
        length = self.response.headers.get("Content-Length")
        # aiohttp decodes compressed bodies, so the upstream length would be wrong
        if length and "Content-Encoding" not in self.response.headers:
            headers["Content-Length"] = length
        return headers

    async def iter_bytes(self) -> AsyncIterator[bytes]:
        """
        Yield upstream chunks; always releases the upstream response.

        An upstream failure mid-body is re-raised so the server aborts the
        connection instead of ending a truncated body as if it were complete.
        """
        sent = 0
        completed = False
        try:
            async for chunk in self.response.content.iter_chunked(self.chunk_size):
                sent += len(chunk)
                yield chunk
            completed = True
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            logger.warning(f"Relay interrupted after {sent} bytes: {e.__class__.__name__}: {e}")
            raise
        finally:
            self.response.release()
            AppMetrics.relay_finished(sent, completed)
            logger.debug(f"Relay stream closed after {sent} bytes (completed={completed})")

    async def close(self) -> None:
        """Release the upstream response even if the body was never iterated."""
        self.response.release()


class MediaRelay:
    """Opens outbound media streams on the shared relay session."""

    def __init__(
        self,
        default_content_type: str | None = None,
        filename: str | None = None,
        chunk_size: int | None = None,
    ):
        self._default_content_type = default_content_type or settings.relay_default_content_type
        self._filename = filename or settings.relay_filename
        self._chunk_size = chunk_size or settings.relay_chunk_size

    async def open(self, media_url: str | None, inline: bool = False) -> RelayStream:
        """
        Start streaming ``media_url``.

        Raises:
            InvalidInput: URL missing or not http(s).
            RelayFailed: Upstream unreachable, timed out or returned non-2xx.
        """
        url = validate_media_url(media_url)
        logger.info(f"Proxying download: {mask_url(url)} (inline={inline})")

        session = get_relay_session()
        try:
            response = await session.get(url, allow_redirects=True)
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            logger.error(f"Proxy error: {e.__class__.__name__}: {e}")
            AppMetrics.relay_failed()
            raise RelayFailed() from e

        if not 200 <= response.status < 300:
            response.release()
            logger.error(f"Proxy error: upstream returned {response.status} for {mask_url(url)}")
            AppMetrics.relay_failed()
            raise RelayFailed()

        AppMetrics.relay_opened()
        return RelayStream(
            response=response,
            content_type=response.headers.get("Content-Type") or self._default_content_type,
            content_disposition=content_disposition(inline, self._filename),
            chunk_size=self._chunk_size,
        )


async def probe_content_length(media_url: str) -> int | None:
    """HEAD ``media_url`` and return its Content-Length, or None when unknown."""
    session = get_provider_session()
    async with session.head(media_url, allow_redirects=True) as resp:
        if resp.status != 200:
            return None
        length = resp.headers.get("Content-Length")
        return int(length) if length and length.isdigit() else None
