# clipfetch/core/normalize.py
"""
Helpers shared by every provider adapter when mapping an upstream payload
onto the canonical result.

Upstream APIs name the same thing several ways (``hdplay`` / ``play`` /
``wmplay``, ``origin_cover`` / ``cover``) and leave fields empty rather than
omitting them.  ``pick`` and ``first_present`` express "the first usable value
wins" once, instead of as ad hoc ``or`` chains in each adapter.
"""
from __future__ import annotations

from typing import Any, Iterable, Mapping

from clipfetch.core.domain import QualityVariant

_SIZE_UNITS = ("Bytes", "KB", "MB", "GB", "TB")


def first_present(*candidates: Any, default: Any = None) -> Any:
    """Return the first truthy candidate, or ``default``.

    Empty strings, ``0`` and empty containers count as missing, which is how
    upstream providers signal an absent field.
    """
    for value in candidates:
        if value:
            return value
    return default


def lookup(data: Mapping[str, Any] | None, path: str) -> Any:
    """Resolve a dotted ``path`` (``"author.unique_id"``) inside nested mappings."""
    current: Any = data
    for key in path.split("."):
        if not isinstance(current, Mapping):
            return None
        current = current.get(key)
    return current


def pick(data: Mapping[str, Any] | None, *paths: str, default: Any = None) -> Any:
    """Prioritized lookup: the first dotted path holding a truthy value wins.

    >>> pick({"author": {"nickname": "zach"}}, "author.unique_id", "author.nickname")
    'zach'
    """
    return first_present(*(lookup(data, path) for path in paths), default=default)


def as_int(value: Any, default: int = 0) -> int:
    """Coerce counters and sizes that some providers send as strings."""
    if value is None or value == "":
        return default
    try:
        return int(float(value))
    except (TypeError, ValueError):
        return default


def prefer_no_watermark(no_watermark: str | None, with_watermark: str | None) -> str:
    """Clean variant when available, else whichever URL exists."""
    return first_present(no_watermark, with_watermark, default="")


def quality_variants(candidates: Iterable[tuple[str, str | None, int | None]]) -> tuple[QualityVariant, ...]:
    """Build the ordered quality list, dropping variants without a URL.

    ``candidates`` must already be ordered highest quality first.
    """
    return tuple(
        QualityVariant(label=label, url=url, size_label=format_file_size(size))
        for label, url, size in candidates
        if url
    )


def format_file_size(size_bytes: int | float | None) -> str:
    """Human-readable size in base-1024 units, at most two decimals.

    ``format_file_size(600 * 1024 * 1024)`` → ``"600 MB"``;
    missing or zero sizes → ``"Unknown"``.
    """
    if not size_bytes or size_bytes < 1:
        return "Unknown"

    value = float(size_bytes)
    index = 0
    while value >= 1024 and index < len(_SIZE_UNITS) - 1:
        value /= 1024
        index += 1

    value = round(value, 2)
    # 600.0 -> "600", 1.5 -> "1.5"
    number = f"{value:.2f}".rstrip("0").rstrip(".")
    return f"{number} {_SIZE_UNITS[index]}"
