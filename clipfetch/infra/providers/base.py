# clipfetch/infra/providers/base.py
"""
Provider adapter abstraction layer.

Defines the protocol every extraction provider implements, plus the shared
JSON request helper.  An adapter is responsible only for calling its upstream
API and mapping the payload onto ``CanonicalResult``; ordering, timeouts and
the size policy belong to the resolver.
"""
from __future__ import annotations

import asyncio
import json
from typing import Any, Optional, Protocol

import aiohttp

from clipfetch.core.domain import CanonicalResult, ResolutionRequest
from clipfetch.core.errors import ProviderFailure
from clipfetch.infra.http_client import get_provider_session
from clipfetch.infra.logging_config import get_logger

logger = get_logger(__name__)


class ProviderAdapter(Protocol):
    """Protocol for extraction provider adapters."""

    name: str

    async def resolve(self, request: ResolutionRequest) -> CanonicalResult:
        """
        Ask the upstream provider about ``request.source_url``.

        Args:
            request: Validated resolution request.

        Returns:
            CanonicalResult built from the provider's payload.

        Raises:
            ProviderFailure: On non-success status, malformed payload or
                transport error.
        """
        ...


async def fetch_json(
    provider: str,
    method: str,
    url: str,
    *,
    params: Optional[dict[str, Any]] = None,
    json_body: Optional[dict[str, Any]] = None,
    headers: Optional[dict[str, str]] = None,
    timeout: Optional[float] = None,
) -> dict[str, Any]:
    """
    Perform one request against a provider API and decode the JSON body.

    Every failure mode is converted to ``ProviderFailure`` so the resolver only
    has one error type to reason about.
    """
    session = get_provider_session()
    request_timeout = aiohttp.ClientTimeout(total=timeout) if timeout else None

    try:
        async with session.request(
            method,
            url,
            params=params,
            json=json_body,
            headers=headers,
            timeout=request_timeout,
        ) as resp:
            if resp.status != 200:
                raise ProviderFailure(
                    provider,
                    f"HTTP {resp.status}",
                    reason="http_status",
                )

            text = await resp.text()

    except ProviderFailure:
        raise
    except asyncio.TimeoutError as e:
        raise ProviderFailure(provider, "request timed out", reason="timeout") from e
    except aiohttp.ClientError as e:
        raise ProviderFailure(
            provider,
            f"transport error: {e.__class__.__name__}: {e}",
            reason="transport",
        ) from e

    try:
        payload = json.loads(text)
    except ValueError as e:
        raise ProviderFailure(provider, "response is not JSON", reason="bad_payload") from e

    if not isinstance(payload, dict):
        raise ProviderFailure(provider, "response is not a JSON object", reason="bad_payload")

    return payload
