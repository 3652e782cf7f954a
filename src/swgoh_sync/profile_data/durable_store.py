"""Durable file-backed store of player cache records."""

from __future__ import annotations

import hashlib
import json
import os
import uuid
from collections.abc import Iterator
from contextlib import suppress
from datetime import datetime
from pathlib import Path
from typing import Any

from swgoh_sync.profile_data.errors import StoreError
from swgoh_sync.profile_data.models import PlayerData
from swgoh_sync.time_utils import as_utc, iso_z, parse_iso_z

PLAYER_DATA_KIND = "ProfileCache"


def _atomic_write_json(path: Path, value: Any) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp_path = path.with_name(f".tmp-{path.name}-{uuid.uuid4().hex}")
    try:
        payload = json.dumps(value, sort_keys=True, ensure_ascii=True, indent=2) + "\n"
        tmp_path.write_text(payload, encoding="utf-8")
        os.replace(tmp_path, path)
    except OSError:
        with suppress(FileNotFoundError):
            tmp_path.unlink()
        raise


def record_id(key: str) -> str:
    """Filesystem-safe document id for a player key."""
    return hashlib.sha256(f"{PLAYER_DATA_KIND}:{key}".encode()).hexdigest()


def _to_document(record: PlayerData) -> dict[str, Any]:
    try:
        data = record.data.decode("utf-8")
    except UnicodeDecodeError as exc:
        raise StoreError(f"payload for {record.key} is not utf-8") from exc
    return {
        "kind": PLAYER_DATA_KIND,
        "key": record.key,
        "last_update": iso_z(record.last_update) if record.last_update else "",
        "data": data,
    }


def _from_document(payload: Any, *, path: Path) -> PlayerData:
    if not isinstance(payload, dict) or not isinstance(payload.get("key"), str):
        raise StoreError(f"invalid player data document at {path}")
    raw_update = str(payload.get("last_update", "") or "")
    last_update = parse_iso_z(raw_update)
    if raw_update and last_update is None:
        raise StoreError(f"invalid last_update {raw_update!r} at {path}")
    data = payload.get("data", "")
    if not isinstance(data, str):
        raise StoreError(f"invalid payload at {path}")
    return PlayerData(key=payload["key"], last_update=last_update, data=data.encode("utf-8"))


class PlayerDataStore:
    """One JSON document per player under ``<root>/profiles``.

    ``get`` returns None when the player has never been stored.
    """

    def __init__(self, root: Path | str = Path("data/swgoh_sync")) -> None:
        self.root = Path(root)
        self.records_dir = self.root / "profiles"
        self.records_dir.mkdir(parents=True, exist_ok=True)

    def _record_path(self, key: str) -> Path:
        return self.records_dir / f"{record_id(key)}.json"

    def _load(self, path: Path) -> PlayerData:
        try:
            payload = json.loads(path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as exc:
            raise StoreError(f"corrupt player data document at {path}: {exc}") from exc
        return _from_document(payload, path=path)

    def get(self, key: str) -> PlayerData | None:
        path = self._record_path(key)
        try:
            return self._load(path)
        except FileNotFoundError:
            return None
        except OSError as exc:
            raise StoreError(f"unable to read player data for {key}: {exc}") from exc

    def put(self, key: str, record: PlayerData) -> None:
        if record.key != key:
            raise StoreError(f"record key {record.key!r} does not match {key!r}")
        try:
            _atomic_write_json(self._record_path(key), _to_document(record))
        except OSError as exc:
            raise StoreError(f"unable to write player data for {key}: {exc}") from exc

    def iter_records(self) -> Iterator[PlayerData]:
        for path in sorted(self.records_dir.glob("*.json")):
            try:
                yield self._load(path)
            except FileNotFoundError:
                continue
            except OSError as exc:
                raise StoreError(f"unable to read {path}: {exc}") from exc

    def count(self) -> int:
        return sum(1 for _ in self.iter_records())

    def count_stale(self, cutoff: datetime) -> int:
        return len(self._stale(cutoff))

    def oldest_last_update(self) -> datetime | None:
        updates = [record.last_update for record in self.iter_records() if record.last_update]
        return min(updates) if updates else None

    def list_stale(self, cutoff: datetime, *, limit: int | None = None) -> list[PlayerData]:
        """Records with ``last_update <= cutoff``, oldest first."""
        rows = self._stale(cutoff)
        rows.sort(key=lambda record: (_sort_ts(record), record.key))
        if limit is not None:
            rows = rows[: max(0, int(limit))]
        return rows

    def _stale(self, cutoff: datetime) -> list[PlayerData]:
        bound = as_utc(cutoff)
        return [
            record
            for record in self.iter_records()
            if record.last_update is None or record.last_update <= bound
        ]


def _sort_ts(record: PlayerData) -> float:
    return record.last_update.timestamp() if record.last_update else float("-inf")
