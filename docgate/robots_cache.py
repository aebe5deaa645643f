"""Process-wide robots policy cache with single-flight resolution.

The cache is an explicit object handed to :class:`~docgate.resolver.RobotsPolicyResolver`
rather than module state, so tests and embedders can supply their own
instance. All mutation happens on the event loop between ``await`` points,
which makes it safe for any number of concurrent requests without a lock
around the request pipeline.
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Awaitable, Callable, Dict, Optional

from .robots import RobotsPolicy

LOGGER = logging.getLogger(__name__)

ROBOTS_CACHE_TTL_SECONDS = 5 * 60
ROBOTS_CACHE_MAX_ENTRIES = 1000
ROBOTS_INFLIGHT_MAX_ENTRIES = 1000


@dataclass(frozen=True)
class RobotsCacheEntry:
    origin: str
    policy: RobotsPolicy
    expires_at: float


class RobotsPolicyCache:
    """TTL- and size-bounded cache of :class:`RobotsPolicy` keyed by origin.

    Entries are evicted when expired or, once ``max_entries`` is exceeded,
    oldest-inserted first. Concurrent callers asking for the same origin
    share one pending resolution.
    """

    def __init__(
        self,
        *,
        ttl: float = ROBOTS_CACHE_TTL_SECONDS,
        max_entries: int = ROBOTS_CACHE_MAX_ENTRIES,
        max_in_flight: int = ROBOTS_INFLIGHT_MAX_ENTRIES,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._ttl = ttl
        self._max_entries = max(1, max_entries)
        self._max_in_flight = max(1, max_in_flight)
        self._clock = clock
        self._entries: Dict[str, RobotsCacheEntry] = {}
        self._in_flight: Dict[str, "asyncio.Future[RobotsPolicy]"] = {}

    def __len__(self) -> int:
        return len(self._entries)

    @property
    def in_flight_count(self) -> int:
        return len(self._in_flight)

    def get(self, origin: str) -> Optional[RobotsPolicy]:
        """Return the live cached policy for *origin*, or None."""
        now = self._clock()
        self._purge_expired(now)
        entry = self._entries.get(origin)
        if entry is None or entry.expires_at <= now:
            return None
        return entry.policy

    def set(self, origin: str, policy: RobotsPolicy) -> None:
        # Re-inserting moves the origin to the newest position.
        self._entries.pop(origin, None)
        self._entries[origin] = RobotsCacheEntry(
            origin=origin,
            policy=policy,
            expires_at=self._clock() + self._ttl,
        )
        while len(self._entries) > self._max_entries:
            oldest = next(iter(self._entries))
            del self._entries[oldest]
            LOGGER.debug("Evicted robots policy for %s", oldest)

    def invalidate(self, origin: Optional[str] = None) -> None:
        """Clear cache for a specific origin, or all origins."""
        if origin is None:
            self._entries.clear()
        else:
            self._entries.pop(origin, None)

    async def get_or_resolve(
        self,
        origin: str,
        resolve: Callable[[], Awaitable[RobotsPolicy]],
    ) -> RobotsPolicy:
        """Return the policy for *origin*, calling *resolve* at most once at a time.

        *resolve* runs in a task shared by every concurrent caller for the
        same origin; a caller that is cancelled does not cancel it.
        """
        cached = self.get(origin)
        if cached is not None:
            return cached

        pending = self._in_flight.get(origin)
        if pending is None:
            self._make_room_for_in_flight()
            pending = asyncio.ensure_future(self._resolve_and_store(origin, resolve))
            self._in_flight[origin] = pending
        else:
            LOGGER.debug("Joining in-flight robots resolution for %s", origin)

        return await asyncio.shield(pending)

    async def _resolve_and_store(
        self,
        origin: str,
        resolve: Callable[[], Awaitable[RobotsPolicy]],
    ) -> RobotsPolicy:
        try:
            policy = await resolve()
            self.set(origin, policy)
            return policy
        finally:
            if self._in_flight.get(origin) is asyncio.current_task():
                del self._in_flight[origin]

    def _purge_expired(self, now: float) -> None:
        expired = [key for key, entry in self._entries.items() if entry.expires_at <= now]
        for key in expired:
            del self._entries[key]

    def _make_room_for_in_flight(self) -> None:
        # A forgotten task keeps running and still stores its result.
        while len(self._in_flight) >= self._max_in_flight:
            oldest = next(iter(self._in_flight))
            del self._in_flight[oldest]
