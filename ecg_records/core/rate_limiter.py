"""Fixed-window rate limiting for the public handlers.

Window state lives behind :class:`RateLimitStore`. The in-memory store only
sees one Lambda instance; a shared deployment should back the store with an
external cache instead.
"""

import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Callable, Dict, Optional

import structlog

from ..types import Logger

logger: Logger = structlog.get_logger(__name__)


@dataclass
class RateLimitEntry:
    count: int
    reset_at: float


@dataclass
class RateLimitDecision:
    allowed: bool
    remaining: int
    reset_at: float

    def retry_after(self, now: float) -> int:
        return max(1, int(round(self.reset_at - now)))


class RateLimitStore(ABC):
    """Storage port for rate-limit windows."""

    @abstractmethod
    def get(self, identifier: str) -> Optional[RateLimitEntry]:
        ...

    @abstractmethod
    def set(self, identifier: str, entry: RateLimitEntry) -> None:
        ...

    @abstractmethod
    def sweep(self, now: float) -> int:
        """Drop expired windows and return how many were removed."""
        ...


class InMemoryRateLimitStore(RateLimitStore):
    """Per-process store."""

    def __init__(self):
        self._entries: Dict[str, RateLimitEntry] = {}

    def get(self, identifier: str) -> Optional[RateLimitEntry]:
        return self._entries.get(identifier)

    def set(self, identifier: str, entry: RateLimitEntry) -> None:
        self._entries[identifier] = entry

    def sweep(self, now: float) -> int:
        expired = [key for key, entry in self._entries.items() if now > entry.reset_at]
        for key in expired:
            del self._entries[key]
        return len(expired)

    def __len__(self) -> int:
        return len(self._entries)


class RateLimiter:
    """Allow ``limit`` requests per identifier per ``window_seconds``."""

    def __init__(
        self,
        store: RateLimitStore,
        limit: int = 100,
        window_seconds: float = 60.0,
        clock: Callable[[], float] = time.time,
    ):
        self.store = store
        self.limit = limit
        self.window_seconds = window_seconds
        self._clock = clock

    def now(self) -> float:
        return self._clock()

    def check(self, identifier: str) -> RateLimitDecision:
        now = self._clock()
        self.store.sweep(now)
        entry = self.store.get(identifier)

        if entry is None or now > entry.reset_at:
            entry = RateLimitEntry(count=1, reset_at=now + self.window_seconds)
            self.store.set(identifier, entry)
            return RateLimitDecision(allowed=True, remaining=self.limit - 1, reset_at=entry.reset_at)

        if entry.count >= self.limit:
            logger.warning("Rate limit exceeded", client=identifier, limit=self.limit)
            return RateLimitDecision(allowed=False, remaining=0, reset_at=entry.reset_at)

        entry = RateLimitEntry(count=entry.count + 1, reset_at=entry.reset_at)
        self.store.set(identifier, entry)
        return RateLimitDecision(allowed=True, remaining=self.limit - entry.count, reset_at=entry.reset_at)
