# clipfetch/core/domain.py
from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Dict


# ============================================================================
# QUALITY TIERS
# ============================================================================

class Quality(str, Enum):
    """Requested quality tier. Unknown values fall back to HD."""
    SD = "sd"
    HD = "hd"
    FHD = "fhd"
    UHD = "4k"

    @classmethod
    def parse(cls, value: "str | Quality | None") -> "Quality":
        if isinstance(value, Quality):
            return value
        try:
            return cls(str(value or "").strip().lower())
        except ValueError:
            return cls.HD

    @property
    def resolution_label(self) -> str:
        return _RESOLUTION_LABELS[self]


_RESOLUTION_LABELS = {
    Quality.SD: "480p",
    Quality.HD: "720p",
    Quality.FHD: "1080p",
    Quality.UHD: "2160p",
}


def resolution_label(quality: "str | Quality | None") -> str:
    """sd→480p, hd→720p, fhd→1080p, 4k→2160p; anything else→720p"""
    return Quality.parse(quality).resolution_label


# ============================================================================
# REQUEST
# ============================================================================

@dataclass(frozen=True)
class ResolutionRequest:
    """One resolve call. Validation of ``source_url`` happens in the resolver."""
    source_url: str
    quality: Quality = Quality.HD
    format: str = "mp4"

    @classmethod
    def create(
        cls,
        source_url: str | None,
        quality: "str | Quality | None" = None,
        format: str | None = None,
    ) -> "ResolutionRequest":
        return cls(
            source_url=(source_url or "").strip(),
            quality=Quality.parse(quality),
            format=(format or "mp4").strip() or "mp4",
        )


# ============================================================================
# CANONICAL RESULT
# ============================================================================

@dataclass(frozen=True)
class Author:
    username: str = "Unknown"
    avatar_url: str = ""


@dataclass(frozen=True)
class QualityVariant:
    label: str
    url: str
    size_label: str = "Unknown"


@dataclass(frozen=True)
class VideoInfo:
    no_watermark_url: str
    with_watermark_url: str = ""
    cover_url: str = ""
    duration_seconds: int = 0
    size_bytes: int = 0  # 0 = provider did not report a size
    resolution_label: str = "720p"
    format: str = "MP4"
    quality: str = Quality.HD.value
    qualities: tuple[QualityVariant, ...] = ()


@dataclass(frozen=True)
class MusicInfo:
    title: str = "Original Sound"
    author: str = ""
    url: str = ""


@dataclass(frozen=True)
class Statistics:
    plays: int = 0
    likes: int = 0
    comments: int = 0
    shares: int = 0


@dataclass(frozen=True)
class CanonicalResult:
    """
    Provider-independent description of a resolved post.

    ``source`` names the adapter that produced the result. It is kept for logs
    and metrics and is not part of the client-facing payload.
    """
    title: str
    author: Author
    video: VideoInfo
    music: MusicInfo = field(default_factory=MusicInfo)
    statistics: Statistics = field(default_factory=Statistics)
    source: str = ""

    def with_size(self, size_bytes: int) -> "CanonicalResult":
        """Copy with a known byte size (results are never mutated in place)."""
        return replace(self, video=replace(self.video, size_bytes=size_bytes))

    def to_dict(self) -> Dict[str, Any]:
        """JSON body returned by ``POST /api/download``."""
        video = self.video
        return {
            "success": True,
            "data": {
                "title": self.title,
                "author": {
                    "username": self.author.username,
                    "avatar": self.author.avatar_url,
                },
                "video": {
                    "noWatermark": video.no_watermark_url,
                    "withWatermark": video.with_watermark_url,
                    "cover": video.cover_url,
                    "duration": video.duration_seconds,
                    "size": video.size_bytes,
                    "resolution": video.resolution_label,
                    "format": video.format,
                    "quality": video.quality,
                    "qualities": [
                        {"type": q.label, "url": q.url, "size": q.size_label}
                        for q in video.qualities
                    ],
                },
                "music": {
                    "title": self.music.title,
                    "author": self.music.author,
                    "url": self.music.url,
                },
                "statistics": {
                    "plays": self.statistics.plays,
                    "likes": self.statistics.likes,
                    "comments": self.statistics.comments,
                    "shares": self.statistics.shares,
                },
            },
        }
