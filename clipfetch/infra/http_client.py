# clipfetch/infra/http_client.py
"""
Process-wide aiohttp sessions, one per traffic profile.

- **provider**: extraction API calls and HEAD size probes. Short total
  timeout, since an answer is either quick or not coming.
- **relay**: media byte streams. No total timeout (a large video may take
  minutes to copy); connect and per-read are bounded instead.

Sessions are created lazily inside the running event loop and recreated if
closed.  ``close_all_sessions()`` is called from the app lifespan on shutdown.
"""
from __future__ import annotations

from dataclasses import dataclass

import aiohttp

from clipfetch.config import settings
from clipfetch.infra.logging_config import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class SessionProfile:
    name: str
    timeout: aiohttp.ClientTimeout
    pool_limit: int


_sessions: dict[str, aiohttp.ClientSession] = {}


def _session_for(profile: SessionProfile) -> aiohttp.ClientSession:
    session = _sessions.get(profile.name)
    if session is not None and not session.closed:
        return session

    session = aiohttp.ClientSession(
        timeout=profile.timeout,
        headers={"User-Agent": settings.user_agent},
        connector=aiohttp.TCPConnector(limit=profile.pool_limit, keepalive_timeout=30),
    )
    _sessions[profile.name] = session
    logger.debug("HTTP session '%s' created (limit=%d)", profile.name, profile.pool_limit)
    return session


def provider_profile() -> SessionProfile:
    return SessionProfile(
        name="provider",
        timeout=aiohttp.ClientTimeout(total=settings.provider_timeout_seconds, connect=5),
        pool_limit=20,
    )


def relay_profile() -> SessionProfile:
    return SessionProfile(
        name="relay",
        timeout=aiohttp.ClientTimeout(
            total=None,
            connect=settings.relay_timeout_seconds,
            sock_read=settings.relay_timeout_seconds,
        ),
        pool_limit=50,
    )


def get_provider_session() -> aiohttp.ClientSession:
    """Session for extraction provider APIs and size probes."""
    return _session_for(provider_profile())


def get_relay_session() -> aiohttp.ClientSession:
    """Session for streaming media bytes through the relay."""
    return _session_for(relay_profile())


async def close_all_sessions() -> None:
    """Close every managed session. Safe to call more than once."""
    while _sessions:
        name, session = _sessions.popitem()
        if not session.closed:
            await session.close()
            logger.debug("HTTP session '%s' closed", name)
