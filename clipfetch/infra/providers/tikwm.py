# clipfetch/infra/providers/tikwm.py
"""
tikwm.com adapter, primary provider.

API endpoint:
    GET https://www.tikwm.com/api/?url={post_url}&hd={0..3}
    →  { "code": 0, "msg": "success", "data": { ... } }

The richest of the three: it reports separate HD / standard / watermarked
play URLs with byte sizes, author, music and engagement counters.
"""
from __future__ import annotations

from clipfetch.config import settings
from clipfetch.core.domain import (
    Author,
    CanonicalResult,
    MusicInfo,
    Quality,
    ResolutionRequest,
    Statistics,
    VideoInfo,
)
from clipfetch.core.errors import ProviderFailure
from clipfetch.core.normalize import as_int, pick, prefer_no_watermark, quality_variants
from clipfetch.infra.providers.base import fetch_json
from clipfetch.infra.logging_config import get_logger

logger = get_logger(__name__)

TIKWM_API_URL = "https://www.tikwm.com/api/"
TIKWM_ORIGIN = "https://www.tikwm.com"

# Value of the ``hd`` query parameter per requested tier
_HD_PARAM = {
    Quality.SD: 0,
    Quality.HD: 1,
    Quality.FHD: 2,
    Quality.UHD: 3,
}


class TikwmAdapter:
    """
    Resolves posts via the tikwm.com public API.

    Success is signalled by ``code == 0``; anything else (including a missing
    ``data`` object) is a provider failure.
    """

    name = "tikwm"

    def __init__(self, api_url: str = TIKWM_API_URL):
        self._api_url = api_url

    async def resolve(self, request: ResolutionRequest) -> CanonicalResult:
        payload = await fetch_json(
            self.name,
            "GET",
            self._api_url,
            params={
                "url": request.source_url,
                "hd": _HD_PARAM.get(request.quality, 1),
            },
            timeout=settings.provider_timeout_seconds,
        )

        if payload.get("code") != 0:
            raise ProviderFailure(
                self.name,
                f"API returned code={payload.get('code')!r} msg={payload.get('msg')!r}",
                reason="status_field",
            )

        data = payload.get("data")
        if not isinstance(data, dict):
            raise ProviderFailure(self.name, "response has no data object", reason="bad_payload")

        logger.debug(
            f"tikwm payload: hdplay={bool(data.get('hdplay'))}, play={bool(data.get('play'))}, "
            f"hd_size={data.get('hd_size')}, size={data.get('size')}"
        )

        return self._normalize(data, request)

    def _normalize(self, data: dict, request: ResolutionRequest) -> CanonicalResult:
        data = _absolutize(data)
        hd_url = pick(data, "hdplay")
        sd_url = pick(data, "play")
        wm_url = pick(data, "wmplay", default="")

        if request.quality is Quality.SD:
            clean_url = pick(data, "play", "hdplay")
            size = as_int(pick(data, "size", "hd_size"))
        else:
            clean_url = pick(data, "hdplay", "play")
            size = as_int(pick(data, "hd_size", "size"))

        video_url = prefer_no_watermark(clean_url, wm_url)
        if not video_url:
            raise ProviderFailure(self.name, "payload has no playable URL", reason="bad_payload")

        return CanonicalResult(
            title=pick(data, "title", default="TikTok Video"),
            author=Author(
                username=pick(data, "author.unique_id", "author.nickname", default="Unknown"),
                avatar_url=pick(data, "author.avatar", default=""),
            ),
            video=VideoInfo(
                no_watermark_url=video_url,
                with_watermark_url=wm_url,
                cover_url=pick(data, "origin_cover", "cover", default=""),
                duration_seconds=as_int(pick(data, "duration")),
                size_bytes=size,
                resolution_label=request.quality.resolution_label,
                format=request.format.upper(),
                quality=request.quality.value,
                qualities=quality_variants([
                    ("HD (High)", hd_url, as_int(pick(data, "hd_size"))),
                    ("Standard (Low)", sd_url, as_int(pick(data, "size"))),
                ]),
            ),
            music=MusicInfo(
                title=pick(data, "music", "music_info.title", default="Original Sound"),
                author=pick(data, "music_info.author", default=""),
                url=pick(data, "music_info.play", default=""),
            ),
            statistics=Statistics(
                plays=as_int(pick(data, "play_count")),
                likes=as_int(pick(data, "digg_count")),
                comments=as_int(pick(data, "comment_count")),
                shares=as_int(pick(data, "share_count")),
            ),
            source=self.name,
        )


# Dotted paths into the payload that may hold site-relative media URLs
_MEDIA_FIELDS = (
    "hdplay",
    "play",
    "wmplay",
    "cover",
    "origin_cover",
    "author.avatar",
    "music_info.play",
    "music_info.cover",
)


def _absolutize(data: dict) -> dict:
    """tikwm sometimes returns site-relative media paths (``/video/media/...``).

    Returns a copy; nested objects on a rewritten path are copied too.
    """
    fixed = dict(data)
    for path in _MEDIA_FIELDS:
        *parents, key = path.split(".")
        target = fixed
        for parent in parents:
            child = target.get(parent)
            if not isinstance(child, dict):
                target = None
                break
            target[parent] = child = dict(child)
            target = child
        if target is None:
            continue

        value = target.get(key)
        if isinstance(value, str) and value.startswith("/"):
            target[key] = f"{TIKWM_ORIGIN}{value}"
    return fixed
