from __future__ import annotations

import threading
from collections import Counter
from datetime import UTC, datetime

import pytest

from swgoh_sync.profile_data.errors import SourceError
from swgoh_sync.profile_data.models import CharacterStats, CharacterSummary, ShipSummary

NOW = datetime(2026, 10, 19, 12, 0, 0, tzinfo=UTC)


def make_collection(stars: list[int]) -> list[CharacterSummary]:
    return [
        CharacterSummary(name=f"Character {index}", stars=value, level=85 if value else 0)
        for index, value in enumerate(stars)
    ]


class FakeSource:
    """Scriptable in-memory profile source.

    ``stats_failures`` maps a character name to the number of failed attempts
    before success; a negative value fails forever.
    """

    def __init__(
        self,
        *,
        arena_updated: datetime = NOW,
        collection: list[CharacterSummary] | None = None,
        ships: list[ShipSummary] | None = None,
        arena: list[CharacterStats] | None = None,
    ) -> None:
        self.arena_updated = arena_updated
        self.collection = collection if collection is not None else make_collection([7, 5, 0])
        self.ships = ships if ships is not None else [ShipSummary(name="Ebon Hawk", stars=6)]
        self.arena = arena if arena is not None else [CharacterStats(name="Character 0")]
        self.failing: set[str] = set()
        self.stats_failures: dict[str, int] = {}
        self.calls: list[tuple[str, str]] = []
        self.stats_attempts: Counter[str] = Counter()
        self._lock = threading.Lock()

    def _record(self, call: str, arg: str) -> None:
        with self._lock:
            self.calls.append((call, arg))
        if call in self.failing:
            raise SourceError(f"{call} unavailable for {arg}")

    def fetch_arena(self, player: str, *, timeout_s: float):
        self._record("arena", player)
        return [stat.model_copy() for stat in self.arena], self.arena_updated

    def fetch_collection(self, player: str, *, timeout_s: float):
        self._record("collection", player)
        return [char.model_copy() for char in self.collection]

    def fetch_ships(self, player: str, *, timeout_s: float):
        self._record("ships", player)
        return [ship.model_copy() for ship in self.ships]

    def fetch_character_stats(self, player: str, character: str, *, timeout_s: float):
        self._record("stats", character)
        with self._lock:
            self.stats_attempts[character] += 1
            attempt = self.stats_attempts[character]
        failures = self.stats_failures.get(character, 0)
        if failures < 0 or attempt <= failures:
            raise SourceError(f"stats page failed for {character} (attempt {attempt})")
        return CharacterStats(name=character, power=1000 + attempt)

    def count(self, call: str) -> int:
        with self._lock:
            return sum(1 for name, _ in self.calls if name == call)


@pytest.fixture
def now() -> datetime:
    return NOW


@pytest.fixture
def source() -> FakeSource:
    return FakeSource()
