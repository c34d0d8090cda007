# clipfetch/infra/providers/__init__.py
"""
Extraction provider adapters.

Strategy pattern: each upstream service has one adapter implementing
``ProviderAdapter.resolve``.  ``PROVIDER_ORDER`` is the fixed priority order,
most reliable first; configuration may disable entries but never reorders them.
"""
from __future__ import annotations

from typing import Iterable

from clipfetch.infra.providers.base import ProviderAdapter, fetch_json
from clipfetch.infra.providers.tikwm import TikwmAdapter
from clipfetch.infra.providers.snaptik import SnaptikAdapter
from clipfetch.infra.providers.tmate import TmateAdapter

PROVIDER_ORDER: tuple[type, ...] = (TikwmAdapter, SnaptikAdapter, TmateAdapter)


def build_adapters(enabled: Iterable[str] | None = None) -> list[ProviderAdapter]:
    """
    Instantiate adapters in priority order.

    Args:
        enabled: Adapter names to keep. ``None`` keeps all of them.
            Unknown names are ignored.
    """
    wanted = None if enabled is None else {name.lower() for name in enabled}
    return [
        adapter_cls()
        for adapter_cls in PROVIDER_ORDER
        if wanted is None or adapter_cls.name in wanted
    ]


__all__ = [
    "PROVIDER_ORDER",
    "ProviderAdapter",
    "SnaptikAdapter",
    "TikwmAdapter",
    "TmateAdapter",
    "build_adapters",
    "fetch_json",
]
