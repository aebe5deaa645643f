"""Robots policy resolution with caching and parent-domain fallback."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from functools import lru_cache
from typing import AsyncIterator, Optional
from urllib.parse import urlsplit

import httpx
import tldextract

from .config import DEFAULT_HTTP_TIMEOUT, ROBOTS_ACCEPT, USER_AGENT
from .robots import RobotsPolicy, RobotsPolicyKind, evaluate_policy
from .robots_cache import RobotsPolicyCache
from .urls import TargetURL

LOGGER = logging.getLogger(__name__)

NOT_FOUND_STATUSES = frozenset({404, 410})
UNAUTHORIZED_STATUSES = frozenset({401, 403})

# Results that defer to the parent domain's robots.txt when one exists.
_FALLBACK_KINDS = frozenset({RobotsPolicyKind.NOT_FOUND, RobotsPolicyKind.DENY_ALL})

# Bundled public suffix snapshot only; never fetch the list at runtime.
_EXTRACT = tldextract.TLDExtract(suffix_list_urls=(), cache_dir=None)


@lru_cache(maxsize=256)
def registrable_domain(host: str) -> Optional[str]:
    """Return the registrable domain of *host*, or None for IPs and bare names."""
    if not host or ":" in host or _looks_like_ipv4(host):
        return None
    extracted = _EXTRACT(host)
    if not extracted.domain or not extracted.suffix:
        return None
    return f"{extracted.domain}.{extracted.suffix}"


def _looks_like_ipv4(host: str) -> bool:
    parts = host.split(".")
    return len(parts) == 4 and all(part.isdigit() for part in parts)


def parent_origin(origin: str) -> Optional[str]:
    """Return the origin of *origin*'s registrable parent domain.

    ``https://a.b.example.com`` becomes ``https://example.com``. Returns None
    when the host already is its registrable domain or has none.
    """
    parsed = urlsplit(origin)
    host = (parsed.hostname or "").lower().rstrip(".")
    parent = registrable_domain(host)
    if parent is None or parent == host:
        return None
    if parsed.port is not None:
        return f"{parsed.scheme}://{parent}:{parsed.port}"
    return f"{parsed.scheme}://{parent}"


class RobotsPolicyResolver:
    """Resolve and evaluate robots.txt policies per origin.

    Args:
        cache: Shared policy cache. A private one is created when omitted.
        client: Optional ``httpx.AsyncClient``; the resolver never closes a
            client it did not create.
        user_agent: Identifying user agent sent with requests and used for
            group selection.
        timeout: Timeout for clients created by the resolver.
    """

    def __init__(
        self,
        cache: Optional[RobotsPolicyCache] = None,
        *,
        client: Optional[httpx.AsyncClient] = None,
        user_agent: str = USER_AGENT,
        timeout: float = DEFAULT_HTTP_TIMEOUT,
    ) -> None:
        self.cache = cache if cache is not None else RobotsPolicyCache()
        self.user_agent = user_agent
        self._client = client
        self._timeout = timeout

    async def is_allowed(self, target: TargetURL) -> bool:
        policy = await self.resolve(target.origin)
        return evaluate_policy(policy, str(target), self.user_agent)

    async def resolve(self, origin: str) -> RobotsPolicy:
        """Return the effective policy for *origin*, going through the cache."""
        return await self.cache.get_or_resolve(
            origin, lambda: self._resolve_uncached(origin)
        )

    async def _resolve_uncached(self, origin: str) -> RobotsPolicy:
        policy = await self.fetch_policy(origin)

        if policy.kind in _FALLBACK_KINDS:
            parent = parent_origin(origin)
            if parent is not None:
                LOGGER.info(
                    "robots.txt for %s is %s; using policy of %s",
                    origin,
                    policy.kind.value,
                    parent,
                )
                return await self.resolve(parent)

        if policy.kind is RobotsPolicyKind.NOT_FOUND:
            return RobotsPolicy.allow_all()
        return policy

    async def fetch_policy(self, origin: str) -> RobotsPolicy:
        """Fetch ``<origin>/robots.txt`` and classify the response."""
        robots_url = f"{origin}/robots.txt"
        try:
            async with self._session() as client:
                response = await client.get(
                    robots_url,
                    headers={"User-Agent": self.user_agent, "Accept": ROBOTS_ACCEPT},
                )
        except httpx.RequestError as exc:
            LOGGER.warning("robots.txt request failed for %s: %s", robots_url, exc)
            return RobotsPolicy.allow_all()

        status = response.status_code
        if status in NOT_FOUND_STATUSES:
            return RobotsPolicy.not_found()
        if status in UNAUTHORIZED_STATUSES:
            return RobotsPolicy.deny_all()
        if not response.is_success:
            LOGGER.warning(
                "robots.txt at %s returned %d; failing open", robots_url, status
            )
            return RobotsPolicy.allow_all()

        LOGGER.debug("Fetched robots.txt for %s", origin)
        return RobotsPolicy.rules(response.text)

    @asynccontextmanager
    async def _session(self) -> AsyncIterator[httpx.AsyncClient]:
        if self._client is not None:
            yield self._client
            return
        async with httpx.AsyncClient(timeout=self._timeout) as client:
            yield client
