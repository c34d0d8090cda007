# tests/test_resolver.py
"""Tests for ordered-fallback resolution and the size policy"""
import asyncio
from unittest.mock import AsyncMock, patch

import pytest

from clipfetch.core.domain import Author, CanonicalResult, ResolutionRequest, VideoInfo
from clipfetch.core.errors import AllProvidersFailed, InvalidInput, ProviderFailure, TooLarge
from clipfetch.core.resolver import Resolver, build_resolver, validate_source_url

MiB = 1024 * 1024


def make_result(source: str, url: str = "https://cdn.example.com/v.mp4", size: int = 0) -> CanonicalResult:
    return CanonicalResult(
        title=f"from {source}",
        author=Author(username=source),
        video=VideoInfo(no_watermark_url=url, size_bytes=size),
        source=source,
    )


class FakeAdapter:
    def __init__(self, name, result=None, error=None, delay=0.0):
        self.name = name
        self._result = result
        self._error = error
        self._delay = delay
        self.resolve = AsyncMock(side_effect=self._resolve)

    async def _resolve(self, request):
        if self._delay:
            await asyncio.sleep(self._delay)
        if self._error is not None:
            raise self._error
        return self._result


def failing(name, reason="status_field"):
    return FakeAdapter(name, error=ProviderFailure(name, "upstream said no", reason=reason))


@pytest.fixture
def request_hd(sample_url):
    return ResolutionRequest.create(sample_url, "hd", "mp4")


# ============================================================================
# URL validation
# ============================================================================

class TestValidateSourceUrl:
    def test_trims(self):
        assert validate_source_url("  https://www.tiktok.com/@a/video/1 ", ["tiktok.com"]) == (
            "https://www.tiktok.com/@a/video/1"
        )

    @pytest.mark.parametrize("url", [None, "", "   "])
    def test_empty(self, url):
        with pytest.raises(InvalidInput, match="Please provide a TikTok URL"):
            validate_source_url(url, ["tiktok.com"])

    def test_foreign_domain(self):
        with pytest.raises(InvalidInput, match="Invalid TikTok URL"):
            validate_source_url("https://youtube.com/watch?v=x", ["tiktok.com"])

    def test_marker_is_case_insensitive(self):
        assert validate_source_url("https://VM.TIKTOK.COM/ZM123/", ["tiktok.com"])


# ============================================================================
# Fallback chain
# ============================================================================

class TestResolver:
    def test_requires_adapters(self):
        with pytest.raises(ValueError):
            Resolver([])

    def test_provider_names_in_order(self):
        resolver = Resolver([failing("a"), failing("b"), failing("c")])
        assert resolver.provider_names == ["a", "b", "c"]

    @pytest.mark.asyncio
    async def test_invalid_url_contacts_no_provider(self):
        adapter = FakeAdapter("a", result=make_result("a"))
        resolver = Resolver([adapter])

        with pytest.raises(InvalidInput):
            await resolver.resolve(ResolutionRequest.create("https://example.com/video"))

        adapter.resolve.assert_not_called()

    @pytest.mark.asyncio
    async def test_first_success_short_circuits(self, request_hd):
        first = FakeAdapter("a", result=make_result("a"))
        second = FakeAdapter("b", result=make_result("b"))

        result = await Resolver([first, second]).resolve(request_hd)

        assert result.source == "a"
        first.resolve.assert_awaited_once_with(request_hd)
        second.resolve.assert_not_called()

    @pytest.mark.asyncio
    async def test_falls_back_to_next_adapter(self, request_hd):
        expected = make_result("b", url="https://cdn.example.com/b.mp4")
        first = failing("a")
        second = FakeAdapter("b", result=expected)
        third = FakeAdapter("c", result=make_result("c"))

        result = await Resolver([first, second, third]).resolve(request_hd)

        assert result == expected
        assert first.resolve.await_count == 1
        assert second.resolve.await_count == 1
        third.resolve.assert_not_called()

    @pytest.mark.asyncio
    async def test_all_fail_is_generic(self, request_hd):
        adapters = [failing("a", "http_status"), failing("b"), failing("c", "bad_payload")]

        with pytest.raises(AllProvidersFailed) as exc_info:
            await Resolver(adapters).resolve(request_hd)

        assert exc_info.value.status_code == 500
        assert "upstream said no" not in exc_info.value.detail
        assert exc_info.value.detail.startswith("Unable to download this video")
        for adapter in adapters:
            assert adapter.resolve.await_count == 1

    @pytest.mark.asyncio
    async def test_timeout_moves_to_next(self, request_hd):
        slow = FakeAdapter("slow", result=make_result("slow"), delay=1.0)
        fast = FakeAdapter("fast", result=make_result("fast"))

        result = await Resolver([slow, fast], timeout_seconds=0.05).resolve(request_hd)

        assert result.source == "fast"

    @pytest.mark.asyncio
    async def test_unexpected_exception_moves_to_next(self, request_hd):
        broken = FakeAdapter("broken", error=KeyError("data"))
        good = FakeAdapter("good", result=make_result("good"))

        result = await Resolver([broken, good]).resolve(request_hd)

        assert result.source == "good"


# ============================================================================
# Size policy
# ============================================================================

class TestSizePolicy:
    @pytest.mark.asyncio
    async def test_too_large_is_terminal(self, request_hd):
        big = FakeAdapter("a", result=make_result("a", size=600 * MiB))
        fallback = FakeAdapter("b", result=make_result("b", size=1 * MiB))

        with pytest.raises(TooLarge) as exc_info:
            await Resolver([big, fallback], max_size_bytes=500 * MiB).resolve(request_hd)

        assert exc_info.value.status_code == 400
        assert "600 MB" in exc_info.value.detail
        assert "500 MB" in exc_info.value.detail
        fallback.resolve.assert_not_called()

    @pytest.mark.asyncio
    async def test_exactly_at_limit_passes(self, request_hd):
        adapter = FakeAdapter("a", result=make_result("a", size=500 * MiB))

        result = await Resolver([adapter], max_size_bytes=500 * MiB).resolve(request_hd)

        assert result.video.size_bytes == 500 * MiB

    @pytest.mark.asyncio
    async def test_unknown_size_passes_without_probe(self, request_hd):
        adapter = FakeAdapter("a", result=make_result("a", size=0))

        result = await Resolver([adapter], max_size_bytes=1).resolve(request_hd)

        assert result.video.size_bytes == 0

    @pytest.mark.asyncio
    async def test_probe_fills_unknown_size(self, request_hd):
        adapter = FakeAdapter("a", result=make_result("a", size=0))
        probe = AsyncMock(return_value=2 * MiB)

        result = await Resolver([adapter], size_probe=probe).resolve(request_hd)

        probe.assert_awaited_once_with("https://cdn.example.com/v.mp4")
        assert result.video.size_bytes == 2 * MiB

    @pytest.mark.asyncio
    async def test_probe_can_reject(self, request_hd):
        adapter = FakeAdapter("a", result=make_result("a", size=0))
        probe = AsyncMock(return_value=600 * MiB)

        with pytest.raises(TooLarge):
            await Resolver([adapter], max_size_bytes=500 * MiB, size_probe=probe).resolve(request_hd)

    @pytest.mark.asyncio
    async def test_probe_failure_means_unknown(self, request_hd):
        adapter = FakeAdapter("a", result=make_result("a", size=0))
        probe = AsyncMock(side_effect=RuntimeError("HEAD refused"))

        result = await Resolver([adapter], size_probe=probe).resolve(request_hd)

        assert result.video.size_bytes == 0

    @pytest.mark.asyncio
    async def test_probe_skipped_when_size_reported(self, request_hd):
        adapter = FakeAdapter("a", result=make_result("a", size=3 * MiB))
        probe = AsyncMock(return_value=999 * MiB)

        await Resolver([adapter], size_probe=probe).resolve(request_hd)

        probe.assert_not_called()


# ============================================================================
# Wiring
# ============================================================================

class TestBuildResolver:
    def test_from_settings(self):
        from clipfetch.config import Settings

        s = Settings(enabled_providers="tmate,tikwm", max_video_size_mb=10)
        resolver = build_resolver(s)

        assert resolver.provider_names == ["tikwm", "tmate"]
        assert resolver._max_size_bytes == 10 * MiB
        assert resolver._size_probe is None

    def test_probe_enabled(self):
        from clipfetch.config import Settings
        from clipfetch.infra.relay import probe_content_length

        resolver = build_resolver(Settings(probe_content_length=True))

        assert resolver._size_probe is probe_content_length
