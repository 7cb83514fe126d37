"""In-memory fixed-window request counters keyed by subject."""

from __future__ import annotations

import asyncio
import contextlib
import logging
import math
import threading
import time
from dataclasses import dataclass
from typing import Callable, Dict, Optional

from ..metrics import RATE_LIMIT_SWEPT

LOGGER = logging.getLogger("slab.ratelimit")

DEFAULT_WINDOW_MS = 60 * 60 * 1000


def _now_ms() -> float:
    return time.time() * 1000.0


@dataclass(slots=True)
class RateLimitEntry:
    subject_key: str
    count: int
    window_reset_at: float


@dataclass(slots=True, frozen=True)
class RateLimitResult:
    allowed: bool
    remaining: int
    reset_at: float
    retry_after: Optional[int] = None


class RateLimitStore:
    """Per-process quota tracker.

    Counts are not shared between processes or hosts, so a horizontally scaled
    deployment admits up to ``limit`` requests per instance. ``clock`` returns
    epoch milliseconds and is injectable for tests.
    """

    def __init__(
        self,
        *,
        clock: Callable[[], float] | None = None,
        sweep_interval: float = 300.0,
    ) -> None:
        self._clock = clock or _now_ms
        self.sweep_interval = sweep_interval
        self._entries: Dict[str, RateLimitEntry] = {}
        self._lock = threading.Lock()
        self._sweeper: Optional[asyncio.Task] = None

    def check(self, subject_key: str, limit: int, window_ms: float = DEFAULT_WINDOW_MS) -> RateLimitResult:
        """Consume one slot for ``subject_key`` if the window still has room."""

        with self._lock:
            now = self._clock()
            entry = self._entries.get(subject_key)
            if entry is None or now > entry.window_reset_at:
                reset_at = now + window_ms
                self._entries[subject_key] = RateLimitEntry(subject_key, 1, reset_at)
                return RateLimitResult(allowed=True, remaining=limit - 1, reset_at=reset_at)
            if entry.count >= limit:
                return RateLimitResult(
                    allowed=False,
                    remaining=0,
                    reset_at=entry.window_reset_at,
                    retry_after=_retry_after(entry.window_reset_at, now),
                )
            entry.count += 1
            return RateLimitResult(
                allowed=True,
                remaining=limit - entry.count,
                reset_at=entry.window_reset_at,
            )

    def status(self, subject_key: str, limit: int, window_ms: float = DEFAULT_WINDOW_MS) -> RateLimitResult:
        """Report quota without consuming a slot or creating an entry."""

        with self._lock:
            now = self._clock()
            entry = self._entries.get(subject_key)
            if entry is None or now > entry.window_reset_at:
                return RateLimitResult(allowed=True, remaining=limit, reset_at=now + window_ms)
            exhausted = entry.count >= limit
            return RateLimitResult(
                allowed=not exhausted,
                remaining=max(0, limit - entry.count),
                reset_at=entry.window_reset_at,
                retry_after=_retry_after(entry.window_reset_at, now) if exhausted else None,
            )

    def reset(self, subject_key: str) -> None:
        with self._lock:
            self._entries.pop(subject_key, None)

    def sweep(self) -> int:
        """Drop entries whose window has passed; returns how many were removed."""

        with self._lock:
            now = self._clock()
            expired = [key for key, entry in self._entries.items() if now > entry.window_reset_at]
            for key in expired:
                del self._entries[key]
        if expired:
            RATE_LIMIT_SWEPT.inc(len(expired))
            LOGGER.debug("Swept %d expired rate limit entries", len(expired))
        return len(expired)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, subject_key: object) -> bool:
        with self._lock:
            return subject_key in self._entries

    @property
    def running(self) -> bool:
        return self._sweeper is not None and not self._sweeper.done()

    def start(self) -> None:
        """Schedule the periodic sweep on the running event loop."""

        if self.running:
            return
        self._sweeper = asyncio.get_running_loop().create_task(self._sweep_forever())

    async def stop(self) -> None:
        task, self._sweeper = self._sweeper, None
        if task is None:
            return
        task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await task

    async def _sweep_forever(self) -> None:
        while True:
            await asyncio.sleep(self.sweep_interval)
            try:
                self.sweep()
            except Exception:  # pragma: no cover - keep the sweeper alive
                LOGGER.exception("Rate limit sweep failed")


def _retry_after(reset_at: float, now: float) -> int:
    # A denied caller at the exact reset instant still has to wait.
    return max(1, math.ceil((reset_at - now) / 1000.0))


__all__ = ["DEFAULT_WINDOW_MS", "RateLimitEntry", "RateLimitResult", "RateLimitStore"]
