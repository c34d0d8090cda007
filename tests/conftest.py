# tests/conftest.py
"""Pytest configuration and fixtures"""
import json
import pytest
import sys
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock

# Add project root to Python path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))


SAMPLE_URL = "https://www.tiktok.com/@zachking/video/7139337044015959342"


@pytest.fixture
def sample_url():
    return SAMPLE_URL


@pytest.fixture
def tikwm_payload():
    """Successful tikwm.com response (trimmed)"""
    return {
        "code": 0,
        "msg": "success",
        "data": {
            "id": "7139337044015959342",
            "title": "Magic trick #zachking",
            "cover": "https://cdn.example.com/cover.jpeg",
            "origin_cover": "https://cdn.example.com/origin_cover.jpeg",
            "duration": 12,
            "play": "https://cdn.example.com/play.mp4",
            "wmplay": "https://cdn.example.com/wmplay.mp4",
            "hdplay": "https://cdn.example.com/hdplay.mp4",
            "size": 1048576,
            "wm_size": 1258291,
            "hd_size": 3145728,
            "music": "original sound - zachking",
            "music_info": {
                "title": "original sound",
                "play": "https://cdn.example.com/music.mp3",
                "author": "Zach King",
            },
            "play_count": 1000,
            "digg_count": 200,
            "comment_count": 30,
            "share_count": 4,
            "author": {
                "unique_id": "zachking",
                "nickname": "Zach King",
                "avatar": "https://cdn.example.com/avatar.jpeg",
            },
        },
    }


@pytest.fixture
def snaptik_payload():
    """Successful snaptik.app response"""
    return {
        "success": True,
        "url": "https://snaptik.example.com/video.mp4",
        "title": "Snaptik title",
        "author": "snap_author",
        "thumbnail": "https://snaptik.example.com/thumb.jpg",
    }


@pytest.fixture
def tmate_payload():
    """Successful tmate.cc response"""
    return {
        "video_url": "https://tmate.example.com/video.mp4",
        "title": "Tmate title",
        "author": "tmate_author",
        "thumbnail": "https://tmate.example.com/thumb.jpg",
        "music": "tmate sound",
    }


def make_session(status: int = 200, body=None, text: str | None = None) -> MagicMock:
    """
    Build a mocked aiohttp session whose ``request()`` context manager yields
    a response with the given status and JSON body (or raw text).
    """
    resp = MagicMock()
    resp.status = status
    resp.text = AsyncMock(return_value=text if text is not None else json.dumps(body))

    ctx = MagicMock()
    ctx.__aenter__ = AsyncMock(return_value=resp)
    ctx.__aexit__ = AsyncMock(return_value=False)

    session = MagicMock()
    session.request = MagicMock(return_value=ctx)
    return session


@pytest.fixture
def mock_session():
    """Factory fixture: ``mock_session(status, body)`` → mocked aiohttp session"""
    return make_session
