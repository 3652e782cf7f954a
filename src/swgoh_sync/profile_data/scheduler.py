"""File-backed refresh job queue with named-job deduplication."""

from __future__ import annotations

import hashlib
import json
import logging
import os
import uuid
from collections.abc import Callable
from contextlib import suppress
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from pathlib import Path
from typing import Any, Protocol

from swgoh_sync.profile_data.errors import SchedulerError
from swgoh_sync.time_utils import iso_z, parse_iso_z, utc_now

logger = logging.getLogger(__name__)

DEFAULT_QUEUE_NAME = "sync"


@dataclass(frozen=True)
class RefreshJob:
    """Deferred instruction to refresh one player's profile."""

    player: str
    full_update: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {"player": self.player, "full_update": bool(self.full_update)}

    @classmethod
    def from_dict(cls, payload: dict[str, Any]) -> RefreshJob:
        player = str(payload.get("player", "")).strip()
        if not player:
            raise SchedulerError("refresh job is missing a player")
        return cls(player=player, full_update=bool(payload.get("full_update", False)))


class TaskQueue(Protocol):
    def enqueue(self, job: RefreshJob, *, dedup_key: str | None = None) -> bool:
        """Queue ``job``; return False when ``dedup_key`` was already used."""
        raise NotImplementedError

    def pending(self) -> list[RefreshJob]:
        raise NotImplementedError

    def drain(self, handler: Callable[[RefreshJob], None]) -> int:
        raise NotImplementedError

    def prune_dedup(self, *, now: datetime | None = None) -> int:
        """Forget dedup keys claimed long enough ago that they can no longer collide."""
        raise NotImplementedError


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


class FileTaskQueue:
    """Jobs are JSON files under ``<root>/queue/<name>/pending``.

    A dedup key is claimed with an exclusive-create marker file, so a second
    enqueue with the same key is a no-op even after the first job has run.
    Markers are removed by ``prune_dedup``.
    """

    def __init__(
        self,
        root: Path | str,
        *,
        name: str = DEFAULT_QUEUE_NAME,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self.clock = clock
        self.root = Path(root) / "queue" / name
        self.pending_dir = self.root / "pending"
        self.dedup_dir = self.root / "dedup"
        self.pending_dir.mkdir(parents=True, exist_ok=True)
        self.dedup_dir.mkdir(parents=True, exist_ok=True)

    def _marker_path(self, dedup_key: str) -> Path:
        digest = hashlib.sha256(dedup_key.encode("utf-8")).hexdigest()
        return self.dedup_dir / f"{digest}.json"

    def _claim(self, dedup_key: str) -> bool:
        path = self._marker_path(dedup_key)
        try:
            fd = os.open(path, os.O_CREAT | os.O_EXCL | os.O_WRONLY)
        except FileExistsError:
            return False
        try:
            marker = {"dedup_key": dedup_key, "claimed_at_utc": iso_z(self.clock())}
            os.write(fd, (json.dumps(marker, sort_keys=True) + "\n").encode("utf-8"))
        finally:
            os.close(fd)
        return True

    def enqueue(self, job: RefreshJob, *, dedup_key: str | None = None) -> bool:
        try:
            if dedup_key and not self._claim(dedup_key):
                logger.debug("Refresh for %s already scheduled (%s)", job.player, dedup_key)
                return False
            name = f"{self.clock().strftime('%Y%m%dT%H%M%S')}-{uuid.uuid4().hex}.json"
            _atomic_write_json(self.pending_dir / name, job.to_dict())
        except OSError as exc:
            if dedup_key:
                with suppress(FileNotFoundError):
                    self._marker_path(dedup_key).unlink()
            raise SchedulerError(f"unable to enqueue refresh for {job.player}: {exc}") from exc
        logger.debug("Scheduled refresh for %s (full_update=%s)", job.player, job.full_update)
        return True

    def _job_paths(self) -> list[Path]:
        return sorted(self.pending_dir.glob("*.json"))

    def _load(self, path: Path) -> RefreshJob:
        try:
            payload = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as exc:
            raise SchedulerError(f"unreadable job file {path}: {exc}") from exc
        if not isinstance(payload, dict):
            raise SchedulerError(f"invalid job file {path}")
        return RefreshJob.from_dict(payload)

    def pending(self) -> list[RefreshJob]:
        return [self._load(path) for path in self._job_paths()]

    def drain(self, handler: Callable[[RefreshJob], None]) -> int:
        """Run ``handler`` on each pending job once; returns the number handled.

        A job file is claimed by renaming it before the handler runs and is
        removed afterwards whether or not the handler raised.
        """
        handled = 0
        for path in self._job_paths():
            running = path.with_suffix(".running")
            try:
                os.replace(path, running)
            except FileNotFoundError:
                continue
            try:
                try:
                    job = self._load(running)
                except SchedulerError as exc:
                    logger.warning("Dropping job: %s", exc)
                    continue
                handler(job)
                handled += 1
            finally:
                with suppress(FileNotFoundError):
                    running.unlink()
        return handled

    def prune_dedup(
        self, *, now: datetime | None = None, keep: timedelta = timedelta(days=2)
    ) -> int:
        """Delete dedup markers older than ``keep``."""
        cutoff = (now or self.clock()) - keep
        removed = 0
        for path in self.dedup_dir.glob("*.json"):
            try:
                payload = json.loads(path.read_text(encoding="utf-8"))
            except (OSError, json.JSONDecodeError):
                payload = {}
            if not isinstance(payload, dict):
                payload = {}
            claimed_at = parse_iso_z(str(payload.get("claimed_at_utc", "")))
            if claimed_at is None:
                # Marker still being written or damaged; fall back to its mtime.
                try:
                    claimed_at = datetime.fromtimestamp(path.stat().st_mtime, tz=UTC)
                except FileNotFoundError:
                    continue
            if claimed_at < cutoff:
                try:
                    path.unlink()
                except FileNotFoundError:
                    continue
                except OSError as exc:
                    raise SchedulerError(f"unable to remove dedup marker {path}: {exc}") from exc
                removed += 1
        return removed
