# clipfetch/infra/providers/tmate.py
"""
tmate.cc adapter, last resort.

API endpoint:
    POST https://tmate.cc/download   {"url": post_url}
    →  { "video_url": "...", "title": "...", "author": "...", "thumbnail": "...", "music": "..." }

There is no explicit status field: a response without ``video_url`` is a failure.
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

TMATE_API_URL = "https://tmate.cc/download"


class TmateAdapter:
    name = "tmate"

    def __init__(self, api_url: str = TMATE_API_URL):
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

        video_url = pick(payload, "video_url")
        if not video_url:
            raise ProviderFailure(self.name, "response has no video_url", reason="status_field")

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
            music=MusicInfo(title=pick(payload, "music", default="Original Sound")),
            source=self.name,
        )
