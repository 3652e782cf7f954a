"""Profile payload models and the persisted cache record envelope."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from swgoh_sync.profile_data.errors import DecodeError, EncodeError


class CharacterSummary(BaseModel):
    """One roster entry as listed on the collection page."""

    model_config = ConfigDict(extra="allow")

    name: str
    stars: int = 0
    level: int = 0
    gear_level: int = 0
    galactic_power: int = 0


class ShipSummary(BaseModel):
    """One owned ship."""

    model_config = ConfigDict(extra="allow")

    name: str
    stars: int = 0
    level: int = 0


class CharacterStats(BaseModel):
    """Detailed stat snapshot for one character."""

    model_config = ConfigDict(extra="allow")

    name: str
    level: int = 0
    gear_level: int = 0
    stars: int = 0
    power: int = 0
    stats: dict[str, float] = Field(default_factory=dict)


class Profile(BaseModel):
    """Aggregated account data for one player."""

    last_update: datetime | None = None
    collection: list[CharacterSummary] = Field(default_factory=list)
    ships: list[ShipSummary] = Field(default_factory=list)
    arena: list[CharacterStats] = Field(default_factory=list)
    stats: list[CharacterStats] = Field(default_factory=list)

    def __str__(self) -> str:
        return f"<Profile: {len(self.collection)} characters, {len(self.ships)} ships>"

    def is_empty(self) -> bool:
        return not (self.collection or self.ships or self.arena or self.stats)

    def active_characters(self) -> list[CharacterSummary]:
        return [char for char in self.collection if char.stars > 0]


@dataclass(frozen=True)
class PlayerData:
    """Cache record: serialized profile plus the time the data was last accurate.

    A record with no ``last_update`` and an empty payload means "not yet fetched".
    """

    key: str
    last_update: datetime | None
    data: bytes

    @classmethod
    def empty(cls, key: str) -> PlayerData:
        return cls(key=key, last_update=None, data=b"")

    @classmethod
    def encode(cls, key: str, profile: Profile) -> PlayerData:
        try:
            payload = profile.model_dump_json().encode("utf-8")
        except (ValueError, TypeError) as exc:
            raise EncodeError(f"unable to encode profile for {key}: {exc}") from exc
        return cls(key=key, last_update=profile.last_update, data=payload)

    def decode(self) -> Profile:
        if not self.data:
            if self.last_update is not None:
                raise DecodeError(f"empty payload for {self.key} with last_update set")
            return Profile()
        try:
            return Profile.model_validate_json(self.data)
        except ValidationError as exc:
            raise DecodeError(f"invalid cached profile for {self.key}: {exc}") from exc

    @property
    def is_virgin(self) -> bool:
        return self.last_update is None and not self.data
