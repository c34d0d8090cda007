# clipfetch/infra/providers/snaptik.py
"""
snaptik.app adapter, first fallback.

API endpoint:
    POST https://snaptik.app/api/download   {"url": post_url}
    →  { "success": true, "url": "...", "title": "...", "author": "...", "thumbnail": "..." }

Returns a single media URL and no statistics, size or music details.
"""
from __future__ import annotations

from clipfetch.config import settings
from clipfetch.core.domain import (
    Author,
    CanonicalResult,
    MusicInfo,
    ResolutionRequest,
    VideoInfo,
)
from clipfetch.core.errors import ProviderFailure
from clipfetch.core.normalize import pick, quality_variants
from clipfetch.infra.providers.base import fetch_json

SNAPTIK_API_URL = "https://snaptik.app/api/download"


class SnaptikAdapter:
    """Resolves posts via snaptik.app. Success is a truthy ``success`` field."""

    name = "snaptik"

    def __init__(self, api_url: str = SNAPTIK_API_URL):
        self._api_url = api_url

    async def resolve(self, request: ResolutionRequest) -> CanonicalResult:
        payload = await fetch_json(
            self.name,
            "POST",
            self._api_url,
            json_body={"url": request.source_url},
            headers={"Content-Type": "application/json"},
            timeout=settings.provider_timeout_seconds,
        )

        if not payload.get("success"):
            raise ProviderFailure(self.name, "API reported success=false", reason="status_field")

        video_url = pick(payload, "url")
        if not video_url:
            raise ProviderFailure(self.name, "payload has no media URL", reason="bad_payload")

        # snaptik does not say whether its URL carries a watermark
        return CanonicalResult(
            title=pick(payload, "title", default="TikTok Video"),
            author=Author(username=pick(payload, "author", default="Unknown")),
            video=VideoInfo(
                no_watermark_url=video_url,
                with_watermark_url=video_url,
                cover_url=pick(payload, "thumbnail", default=""),
                resolution_label=request.quality.resolution_label,
                format=request.format.upper(),
                quality=request.quality.value,
                qualities=quality_variants([("Standard", video_url, None)]),
            ),
            music=MusicInfo(),
            source=self.name,
        )
