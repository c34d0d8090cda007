# clipfetch/core/resolver.py
"""
Ordered-fallback resolution.

The resolver walks a fixed list of provider adapters, most reliable first,
and returns the first normalized result that passes the size policy.

Outcomes per adapter:
- result within policy  → return it, later adapters are never called
- result over the limit → ``TooLarge``, stop (another provider serves the same file)
- any failure/timeout   → log, count, try the next adapter

Only ``InvalidInput``, ``TooLarge`` and ``AllProvidersFailed`` leave this
module; provider errors are logged and dropped.
"""
from __future__ import annotations

import asyncio
from typing import Awaitable, Callable, Optional, Sequence

from clipfetch.core.domain import CanonicalResult, ResolutionRequest
from clipfetch.core.errors import (
    AllProvidersFailed,
    InvalidInput,
    ProviderFailure,
    TooLarge,
)
from clipfetch.infra.logging_config import get_logger, LogContext, mask_url
from clipfetch.infra.metrics import AppMetrics
from clipfetch.infra.providers.base import ProviderAdapter

logger = get_logger(__name__)

SizeProbe = Callable[[str], Awaitable[Optional[int]]]

DEFAULT_MAX_SIZE_BYTES = 500 * 1024 * 1024
DEFAULT_TIMEOUT_SECONDS = 15.0


def validate_source_url(url: str | None, domain_markers: Sequence[str]) -> str:
    """Return the trimmed URL or raise ``InvalidInput``."""
    url = (url or "").strip()
    if not url:
        raise InvalidInput("Please provide a TikTok URL")

    lowered = url.lower()
    if not any(marker in lowered for marker in domain_markers):
        raise InvalidInput("Invalid TikTok URL")

    return url


class Resolver:
    """
    Tries each adapter in turn until one produces a usable result.

    Stateless between calls: a single instance is shared by every request.
    """

    def __init__(
        self,
        adapters: Sequence[ProviderAdapter],
        *,
        domain_markers: Sequence[str] = ("tiktok.com",),
        max_size_bytes: int | None = DEFAULT_MAX_SIZE_BYTES,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
        size_probe: SizeProbe | None = None,
    ):
        if not adapters:
            raise ValueError("Resolver needs at least one adapter")

        self._adapters = tuple(adapters)
        self._domain_markers = tuple(m.lower() for m in domain_markers)
        self._max_size_bytes = max_size_bytes
        self._timeout_seconds = timeout_seconds
        self._size_probe = size_probe

    @property
    def provider_names(self) -> list[str]:
        return [adapter.name for adapter in self._adapters]

    async def resolve(
        self,
        request: ResolutionRequest,
        request_id: str | None = None,
    ) -> CanonicalResult:
        """
        Resolve ``request`` through the adapter chain.

        Raises:
            InvalidInput: URL empty or not on the platform (no provider contacted).
            TooLarge: Winning result exceeds ``max_size_bytes``.
            AllProvidersFailed: Every adapter failed.
        """
        validate_source_url(request.source_url, self._domain_markers)

        log_ctx = LogContext(logger, request_id=request_id, quality=request.quality.value)
        log_ctx.info(f"Resolving {mask_url(request.source_url)} via {self.provider_names}")

        with AppMetrics.track_resolution_time():
            for adapter in self._adapters:
                adapter_log = log_ctx.bind(provider=adapter.name)
                AppMetrics.provider_attempt(adapter.name)

                try:
                    with AppMetrics.track_provider_call(adapter.name):
                        result = await asyncio.wait_for(
                            adapter.resolve(request),
                            timeout=self._timeout_seconds,
                        )
                except asyncio.TimeoutError:
                    adapter_log.warning(
                        f"Provider {adapter.name} timed out after {self._timeout_seconds}s, trying next"
                    )
                    AppMetrics.provider_failed(adapter.name, "timeout")
                    continue
                except ProviderFailure as e:
                    adapter_log.warning(f"Provider {adapter.name} failed: {e}. Trying next")
                    AppMetrics.provider_failed(adapter.name, e.reason)
                    continue
                except Exception as e:
                    # Unexpected payload shapes surface as KeyError/TypeError etc.
                    adapter_log.warning(
                        f"Provider {adapter.name} raised {e.__class__.__name__}: {e}. Trying next",
                        exc_info=True,
                    )
                    AppMetrics.provider_failed(adapter.name, "unexpected")
                    continue

                result = await self._apply_size_policy(result, adapter_log)

                adapter_log.info(f"Resolved with {adapter.name}")
                AppMetrics.resolution_succeeded(adapter.name)
                return result

        log_ctx.error(f"All providers failed for {mask_url(request.source_url)}")
        AppMetrics.resolution_failed("all_providers_failed")
        raise AllProvidersFailed()

    async def _apply_size_policy(
        self,
        result: CanonicalResult,
        log_ctx: LogContext,
    ) -> CanonicalResult:
        if not self._max_size_bytes:
            return result

        size = result.video.size_bytes
        if not size and self._size_probe is not None:
            size = await self._probe(result.video.no_watermark_url, log_ctx)
            if size:
                result = result.with_size(size)

        if size and size > self._max_size_bytes:
            log_ctx.warning(f"Result too large: {size} bytes > {self._max_size_bytes} bytes")
            AppMetrics.resolution_failed("too_large")
            raise TooLarge(size, self._max_size_bytes)

        return result

    async def _probe(self, media_url: str, log_ctx: LogContext) -> int | None:
        """Best-effort size lookup; any failure means "unknown"."""
        try:
            return await asyncio.wait_for(
                self._size_probe(media_url),
                timeout=self._timeout_seconds,
            )
        except Exception as e:
            log_ctx.debug(f"Size probe failed for {mask_url(media_url)}: {e.__class__.__name__}")
            return None


def build_resolver(s=None) -> Resolver:
    """Resolver wired from application settings."""
    from clipfetch.config import settings as default_settings
    from clipfetch.infra.providers import build_adapters
    from clipfetch.infra.relay import probe_content_length

    s = s or default_settings
    return Resolver(
        build_adapters(s.provider_names),
        domain_markers=s.domain_markers,
        max_size_bytes=s.max_video_size_bytes,
        timeout_seconds=s.provider_timeout_seconds,
        size_probe=probe_content_length if s.probe_content_length else None,
    )
