from __future__ import annotations

import json

import httpx
import pytest

from swgoh_sync.profile_data.errors import SourceError
from swgoh_sync.settings import Settings
from swgoh_sync.source_client import HttpProfileSource

ROUTES = {
    "/v1/player/Darth%20Vader/arena": {
        "last_update": "2026-10-19T10:00:00Z",
        "lineup": [{"name": "Darth Vader", "power": 21000}],
    },
    "/v1/player/Darth%20Vader/collection": [
        {"name": "Darth Vader", "stars": 7, "level": 85, "gear_level": 12},
        {"name": "Jawa", "stars": 0},
    ],
    "/v1/player/Darth%20Vader/ships": [{"name": "TIE Advanced x1", "stars": 6}],
    "/v1/player/Darth%20Vader/characters/Darth%20Vader": {
        "name": "Darth Vader",
        "power": 21000,
        "stats": {"speed": 174.0},
    },
}


def _source(handler, **overrides) -> HttpProfileSource:
    settings = Settings(
        _env_file=None,
        source_base_url="https://gateway.test/v1/",
        source_api_key=overrides.pop("api_key", ""),
    )
    return HttpProfileSource(settings, transport=httpx.MockTransport(handler))


def _routes(request: httpx.Request) -> httpx.Response:
    payload = ROUTES.get(request.url.raw_path.decode("ascii"))
    if payload is None:
        return httpx.Response(404, json={"error": "not found"})
    return httpx.Response(200, content=json.dumps(payload).encode("utf-8"))


def test_fetch_profile_pages() -> None:
    with _source(_routes) as source:
        lineup, last_update = source.fetch_arena("Darth Vader", timeout_s=5)
        collection = source.fetch_collection("Darth Vader", timeout_s=5)
        ships = source.fetch_ships("Darth Vader", timeout_s=5)
        stats = source.fetch_character_stats("Darth Vader", "Darth Vader", timeout_s=5)

    assert [char.name for char in lineup] == ["Darth Vader"]
    assert last_update.isoformat() == "2026-10-19T10:00:00+00:00"
    assert [(char.name, char.stars) for char in collection] == [("Darth Vader", 7), ("Jawa", 0)]
    assert ships[0].name == "TIE Advanced x1"
    assert stats.stats == {"speed": 174.0}


def test_api_key_is_sent_as_bearer_token() -> None:
    seen: list[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request.headers.get("Authorization", ""))
        return _routes(request)

    with _source(handler, api_key="secret") as source:
        source.fetch_ships("Darth Vader", timeout_s=5)

    assert seen == ["Bearer secret"]


def test_http_error_maps_to_source_error() -> None:
    with _source(_routes) as source, pytest.raises(SourceError, match="404"):
        source.fetch_collection("nobody", timeout_s=5)


def test_transport_error_maps_to_source_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    with _source(handler) as source, pytest.raises(SourceError, match="transport error"):
        source.fetch_ships("Darth Vader", timeout_s=5)


def test_invalid_payloads_map_to_source_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path.endswith("/arena"):
            return httpx.Response(200, json={"lineup": []})
        return httpx.Response(200, content=b"<html>maintenance</html>")

    with _source(handler) as source:
        with pytest.raises(SourceError, match="no last_update"):
            source.fetch_arena("Darth Vader", timeout_s=5)
        with pytest.raises(SourceError, match="invalid json"):
            source.fetch_ships("Darth Vader", timeout_s=5)
