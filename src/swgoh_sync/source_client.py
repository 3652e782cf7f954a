"""Profile source protocol and an HTTP client for a JSON scraping gateway."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Protocol

import httpx
from pydantic import TypeAdapter, ValidationError

from swgoh_sync.keys import escape_player_key
from swgoh_sync.profile_data.errors import SourceError
from swgoh_sync.profile_data.models import CharacterStats, CharacterSummary, ShipSummary
from swgoh_sync.settings import Settings
from swgoh_sync.time_utils import parse_iso_z

_COLLECTION = TypeAdapter(list[CharacterSummary])
_SHIPS = TypeAdapter(list[ShipSummary])
_LINEUP = TypeAdapter(list[CharacterStats])


class ProfileSource(Protocol):
    """Synchronous data source for one player's profile pages.

    Every call may raise ``SourceError``; callers do not distinguish a missing
    player from a transport failure.
    """

    def fetch_arena(
        self, player: str, *, timeout_s: float
    ) -> tuple[list[CharacterStats], datetime]:
        raise NotImplementedError

    def fetch_collection(self, player: str, *, timeout_s: float) -> list[CharacterSummary]:
        raise NotImplementedError

    def fetch_ships(self, player: str, *, timeout_s: float) -> list[ShipSummary]:
        raise NotImplementedError

    def fetch_character_stats(
        self, player: str, character: str, *, timeout_s: float
    ) -> CharacterStats:
        raise NotImplementedError


class HttpProfileSource:
    """Thin httpx client around the scraping gateway."""

    def __init__(self, settings: Settings, *, transport: httpx.BaseTransport | None = None) -> None:
        self.settings = settings
        self._base_url = settings.source_base_url.rstrip("/")
        headers = {"User-Agent": "swgoh-sync/0.1.0", "Accept": "application/json"}
        api_key = str(settings.source_api_key).strip()
        if api_key:
            headers["Authorization"] = f"Bearer {api_key}"
        limits = httpx.Limits(max_connections=16, max_keepalive_connections=8)
        self._http = httpx.Client(
            timeout=settings.source_timeout_s,
            limits=limits,
            headers=headers,
            transport=transport,
            follow_redirects=True,
        )

    def close(self) -> None:
        self._http.close()

    def __enter__(self) -> HttpProfileSource:
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    def _get(self, path: str, *, timeout_s: float) -> Any:
        url = f"{self._base_url}/{path.lstrip('/')}"
        timeout = max(0.001, min(float(timeout_s), float(self.settings.source_timeout_s)))
        try:
            response = self._http.get(url, timeout=timeout)
            response.raise_for_status()
            return response.json()
        except httpx.HTTPStatusError as exc:
            raise SourceError(f"{path} failed with status {exc.response.status_code}") from exc
        except httpx.HTTPError as exc:
            raise SourceError(f"{path} failed with transport error: {exc}") from exc
        except ValueError as exc:
            raise SourceError(f"{path} returned invalid json: {exc}") from exc

    def _player_path(self, player: str, *parts: str) -> str:
        return "/".join(["player", escape_player_key(player), *parts])

    def fetch_arena(
        self, player: str, *, timeout_s: float
    ) -> tuple[list[CharacterStats], datetime]:
        payload = self._get(self._player_path(player, "arena"), timeout_s=timeout_s)
        if not isinstance(payload, dict):
            raise SourceError(f"arena payload for {player} is not an object")
        last_update = parse_iso_z(str(payload.get("last_update", "")))
        if last_update is None:
            raise SourceError(f"arena payload for {player} has no last_update")
        try:
            lineup = _LINEUP.validate_python(payload.get("lineup") or [])
        except ValidationError as exc:
            raise SourceError(f"invalid arena lineup for {player}: {exc}") from exc
        return lineup, last_update

    def fetch_collection(self, player: str, *, timeout_s: float) -> list[CharacterSummary]:
        payload = self._get(self._player_path(player, "collection"), timeout_s=timeout_s)
        try:
            return _COLLECTION.validate_python(payload)
        except ValidationError as exc:
            raise SourceError(f"invalid collection for {player}: {exc}") from exc

    def fetch_ships(self, player: str, *, timeout_s: float) -> list[ShipSummary]:
        payload = self._get(self._player_path(player, "ships"), timeout_s=timeout_s)
        try:
            return _SHIPS.validate_python(payload)
        except ValidationError as exc:
            raise SourceError(f"invalid ships for {player}: {exc}") from exc

    def fetch_character_stats(
        self, player: str, character: str, *, timeout_s: float
    ) -> CharacterStats:
        path = self._player_path(player, "characters", escape_player_key(character))
        payload = self._get(path, timeout_s=timeout_s)
        try:
            return CharacterStats.model_validate(payload)
        except ValidationError as exc:
            raise SourceError(f"invalid stats for {player}/{character}: {exc}") from exc
