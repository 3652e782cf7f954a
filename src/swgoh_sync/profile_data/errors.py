"""Errors raised by profile cache, fetch and refresh flows."""

from __future__ import annotations

from collections.abc import Sequence
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from swgoh_sync.profile_data.models import Profile


class ProfileDataError(RuntimeError):
    """Base error for profile-data operations."""


class SourceError(ProfileDataError):
    """Raised when a single call to the external profile source fails."""


class ProfileFetchError(ProfileDataError):
    """Raised when the base profile fetch fails part way through.

    ``partial`` holds whatever was assembled before the failing call.
    """

    def __init__(self, message: str, *, partial: Profile) -> None:
        super().__init__(message)
        self.partial = partial


class FetchDeadlineExceeded(ProfileFetchError):
    """Raised when the fetch deadline elapses before a source call starts."""


class BlockFetchError(ProfileDataError):
    """One stats worker exhausted its attempts and abandoned its block."""

    def __init__(
        self,
        *,
        worker: int,
        start: int,
        stop: int,
        character: str,
        cause: BaseException,
    ) -> None:
        super().__init__(
            f"worker {worker} [{start}:{stop}] abandoned at {character!r}: {cause}"
        )
        self.worker = worker
        self.start = start
        self.stop = stop
        self.character = character
        self.cause = cause


class AggregateFetchError(ProfileDataError):
    """Raised when one or more stats workers abandoned their blocks."""

    def __init__(self, errors: Sequence[BaseException]) -> None:
        self.errors = list(errors)
        detail = "; ".join(str(error) for error in self.errors)
        super().__init__(f"{len(self.errors)} stats block(s) failed: {detail}")


class EncodeError(ProfileDataError):
    """Raised when a profile cannot be serialized into a cache record."""


class DecodeError(ProfileDataError):
    """Raised when a cached payload is not a valid profile."""


class StoreError(ProfileDataError):
    """Raised on durable store I/O or format failures."""


class PersistError(ProfileDataError):
    """Raised when a fetched profile could not be written through."""


class SchedulerError(ProfileDataError):
    """Raised when a refresh job cannot be enqueued."""


class ProfileUnavailableError(ProfileDataError):
    """Raised when no cached copy exists and the fetch produced no data."""


class StatsDeadlineExceeded(ProfileDataError):
    """Raised inside a stats worker when the refresh deadline has passed."""
