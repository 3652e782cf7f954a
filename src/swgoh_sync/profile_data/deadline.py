"""Monotonic deadline shared by one refresh call and its workers."""

from __future__ import annotations

import time


class Deadline:
    def __init__(self, seconds: float) -> None:
        self.seconds = max(0.0, float(seconds))
        self._expires_at = time.monotonic() + self.seconds

    def remaining(self) -> float:
        return max(0.0, self._expires_at - time.monotonic())
