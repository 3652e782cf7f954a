"""Player key normalization at the process boundary."""

from __future__ import annotations

from urllib.parse import quote, unquote


def normalize_player_key(raw: str) -> str:
    """Decode transport escaping once and return the canonical player key.

    Case is preserved; two keys differing only in case are distinct players.
    """
    value = unquote(str(raw)).strip()
    if not value:
        raise ValueError("player key is required")
    if "/" in value:
        raise ValueError(f"invalid player key: {raw!r}")
    return value


def escape_player_key(key: str) -> str:
    """Percent-encode a player key for use in a URL path segment."""
    return quote(key, safe="")
