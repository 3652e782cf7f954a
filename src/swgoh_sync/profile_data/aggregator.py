"""Parallel per-character stats fetch with per-item retry and single-consumer fan-in."""

from __future__ import annotations

import logging
import queue
import threading
import time
from collections.abc import Callable
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from tenacity import Retrying, retry_if_exception_type, stop_after_attempt, wait_fixed

from swgoh_sync.profile_data.deadline import Deadline
from swgoh_sync.profile_data.errors import (
    AggregateFetchError,
    BlockFetchError,
    SourceError,
    StatsDeadlineExceeded,
)
from swgoh_sync.profile_data.models import CharacterStats, CharacterSummary, Profile

if TYPE_CHECKING:
    from swgoh_sync.source_client import ProfileSource

logger = logging.getLogger(__name__)

_CLOSED = object()


def partition_blocks(total: int, workers: int) -> list[tuple[int, int]]:
    """Split ``range(total)`` into ``workers`` contiguous blocks.

    Every block has ``total // workers`` entries except the last, which also
    takes the remainder.
    """
    workers = max(1, int(workers))
    step = max(0, int(total)) // workers
    blocks: list[tuple[int, int]] = []
    start = 0
    for worker in range(workers):
        stop = total if worker == workers - 1 else start + step
        blocks.append((start, stop))
        start += step
    return blocks


@dataclass
class StatsOutcome:
    """Stats in completion order plus one error per abandoned block."""

    stats: list[CharacterStats] = field(default_factory=list)
    errors: list[BlockFetchError] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors

    def raise_for_errors(self) -> None:
        if self.errors:
            raise AggregateFetchError(self.errors)


def _drain(channel: queue.Queue, sink: Callable[[object], None]) -> None:
    while True:
        item = channel.get()
        if item is _CLOSED:
            return
        sink(item)


class StatsAggregator:
    def __init__(
        self,
        *,
        workers: int = 10,
        max_attempts: int = 3,
        retry_backoff_s: float = 1.0,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.workers = max(1, int(workers))
        self.max_attempts = max(1, int(max_attempts))
        self.retry_backoff_s = max(0.0, float(retry_backoff_s))
        self._sleep = sleep

    def _fetch_one(
        self,
        source: ProfileSource,
        player: str,
        char: CharacterSummary,
        *,
        worker: int,
        deadline: Deadline,
    ) -> CharacterStats:
        def _log_retry(retry_state) -> None:
            exc = retry_state.outcome.exception() if retry_state.outcome else None
            logger.debug(
                "[%d] Retrying %s after attempt %d: %s",
                worker,
                char.name,
                retry_state.attempt_number,
                exc,
            )

        stat: CharacterStats | None = None
        for attempt in Retrying(
            stop=stop_after_attempt(self.max_attempts),
            wait=wait_fixed(self.retry_backoff_s),
            retry=retry_if_exception_type(SourceError),
            before_sleep=_log_retry,
            sleep=self._sleep,
            reraise=True,
        ):
            with attempt:
                remaining = deadline.remaining()
                if remaining <= 0.0:
                    raise StatsDeadlineExceeded(f"deadline exceeded before loading {char.name}")
                stat = source.fetch_character_stats(player, char.name, timeout_s=remaining)
        if stat is None:
            raise SourceError(f"no stats returned for {char.name}")
        return stat

    def _run_block(
        self,
        source: ProfileSource,
        player: str,
        collection: list[CharacterSummary],
        *,
        worker: int,
        start: int,
        stop: int,
        deadline: Deadline,
        results: queue.Queue,
        errors: queue.Queue,
    ) -> None:
        logger.debug("Starting worker %d [%d:%d]", worker, start, stop)
        for index in range(start, stop):
            char = collection[index]
            if char.stars <= 0:
                logger.debug("[%d] Ignored inactive character %s", worker, char.name)
                continue
            logger.debug("[%d] Loading %s ...", worker, char.name)
            try:
                stat = self._fetch_one(source, player, char, worker=worker, deadline=deadline)
            except (SourceError, StatsDeadlineExceeded) as exc:
                errors.put(
                    BlockFetchError(
                        worker=worker, start=start, stop=stop, character=char.name, cause=exc
                    )
                )
                logger.debug("[%d] Worker abandoned its block at %s", worker, char.name)
                return
            results.put(stat)
        logger.debug("[%d] Worker completed", worker)

    def fetch_all(
        self,
        source: ProfileSource,
        player: str,
        profile: Profile,
        *,
        deadline: Deadline,
    ) -> StatsOutcome:
        """Replace ``profile.stats`` with detail stats for every active character.

        Successful items are kept even when some blocks fail; check
        ``StatsOutcome.errors`` or call ``raise_for_errors``.
        """
        collection = list(profile.collection)
        profile.stats = []
        outcome = StatsOutcome(stats=profile.stats)
        results: queue.Queue = queue.Queue()
        errors: queue.Queue = queue.Queue()

        def _append_stat(stat: object) -> None:
            profile.stats.append(stat)
            logger.debug("Stats so far %d", len(profile.stats))

        def _append_error(error: object) -> None:
            logger.debug("> Error: %s", error)
            outcome.errors.append(error)

        stats_consumer = threading.Thread(
            target=_drain, args=(results, _append_stat), name="stats-consumer", daemon=True
        )
        error_consumer = threading.Thread(
            target=_drain, args=(errors, _append_error), name="stats-errors", daemon=True
        )
        stats_consumer.start()
        error_consumer.start()

        logger.debug("Starting %d stats workers for %s ...", self.workers, player)
        try:
            with ThreadPoolExecutor(
                max_workers=self.workers, thread_name_prefix="stats-worker"
            ) as executor:
                futures = [
                    executor.submit(
                        self._run_block,
                        source,
                        player,
                        collection,
                        worker=worker,
                        start=start,
                        stop=stop,
                        deadline=deadline,
                        results=results,
                        errors=errors,
                    )
                    for worker, (start, stop) in enumerate(
                        partition_blocks(len(collection), self.workers)
                    )
                ]
                for future in futures:
                    future.result()
        finally:
            logger.debug("All workers are done! Closing channels ...")
            results.put(_CLOSED)
            errors.put(_CLOSED)
            stats_consumer.join()
            error_consumer.join()

        return outcome
