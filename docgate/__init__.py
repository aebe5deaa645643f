"""Render external Swift-DocC documentation as Markdown, politely.

Every outbound request is guarded by an access policy: URL validation,
operator host allow/block lists, private-network filtering, robots.txt
(with parent-domain fallback) and the ``X-Robots-Tag`` opt-out header.

Example usage:

    from docgate import fetch_document, fetch_external_documents

    # Single page
    page = fetch_document(
        "https://apple.github.io/swift-argument-parser/documentation/argumentparser"
    )
    print(page.markdown)

    # Multiple pages sharing one robots.txt cache
    pages = await fetch_external_documents([
        "https://example.com/documentation/kit",
        "https://example.com/documentation/kit/widget",
    ])
    for page in pages:
        print(page.status, page.source_url)
"""

from __future__ import annotations

import asyncio
import logging
from typing import List, Optional

import httpx

from .access import AccessDecision, assert_external_access, check_external_access
from .config import __version__, Settings
from .document import DocumentationPage
from .errors import (
    AccessDeniedError,
    DocGateError,
    ExternalAccessError,
    FetchFailureError,
    HostPolicyError,
    InvalidURLError,
    NotFoundError,
    RobotsDeniedError,
)
from .fetch import failed_page, fetch_external_document, fetch_external_markdown
from .hosts import HostPolicyConfig
from .render import render_from_json
from .resolver import RobotsPolicyResolver
from .robots_cache import RobotsPolicyCache
from .urls import TargetURL, build_external_path, validate_external_url

LOGGER = logging.getLogger(__name__)

__all__ = [
    "__version__",
    # Results
    "DocumentationPage",
    "AccessDecision",
    # Errors
    "DocGateError",
    "ExternalAccessError",
    "InvalidURLError",
    "HostPolicyError",
    "RobotsDeniedError",
    "AccessDeniedError",
    "NotFoundError",
    "FetchFailureError",
    # Policy
    "Settings",
    "HostPolicyConfig",
    "RobotsPolicyCache",
    "RobotsPolicyResolver",
    "TargetURL",
    "validate_external_url",
    "build_external_path",
    "assert_external_access",
    "check_external_access",
    # Rendering
    "render_from_json",
    "fetch_external_document",
    "fetch_external_markdown",
    # Convenience
    "fetch_document",
    "fetch_document_async",
    "fetch_documents",
    "fetch_external_documents",
    # MCP Server
    "mcp",
]


# Lazy import for mcp to avoid requiring fastmcp if not used
def __getattr__(name):
    if name == "mcp":
        from .mcp_server import mcp

        return mcp
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


async def fetch_document_async(
    url: str,
    *,
    settings: Optional[Settings] = None,
    resolver: Optional[RobotsPolicyResolver] = None,
) -> DocumentationPage:
    """Fetch and render one page.

    Raises:
        DocGateError: On any validation, policy or fetch failure.
    """
    return await fetch_external_document(url, settings=settings, resolver=resolver)


def fetch_document(
    url: str,
    *,
    settings: Optional[Settings] = None,
) -> DocumentationPage:
    """Synchronous wrapper for fetch_document_async."""
    return asyncio.run(fetch_document_async(url, settings=settings))


async def fetch_external_documents(
    urls: List[str],
    *,
    settings: Optional[Settings] = None,
    cache: Optional[RobotsPolicyCache] = None,
    client: Optional[httpx.AsyncClient] = None,
    concurrency: int = 3,
) -> List[DocumentationPage]:
    """
    Fetch several pages concurrently.

    All pages share one robots.txt cache, so pages on the same origin cause
    at most one robots.txt request.

    Args:
        urls: URLs or ``/external/`` paths to fetch.
        settings: Optional settings; read from the environment when omitted.
        cache: Optional shared robots policy cache.
        client: Optional ``httpx.AsyncClient`` used for every request.
        concurrency: Maximum number of pages fetched at once.

    Returns:
        One DocumentationPage per input URL, in input order. Failed pages
        have status="failed" with error_kind and error_message set.
    """
    if not urls:
        return []

    settings = settings or Settings.from_env()
    resolver = RobotsPolicyResolver(
        cache,
        client=client,
        user_agent=settings.user_agent,
        timeout=settings.timeout,
    )
    semaphore = asyncio.Semaphore(max(1, concurrency))

    async def _fetch_one(url: str) -> DocumentationPage:
        async with semaphore:
            try:
                return await fetch_external_document(
                    url, settings=settings, resolver=resolver, client=client
                )
            except DocGateError as exc:
                LOGGER.warning("Failed to fetch %s: %s", url, exc.message)
                return failed_page(url, exc)

    return list(await asyncio.gather(*(_fetch_one(url) for url in urls)))


def fetch_documents(
    urls: List[str],
    *,
    settings: Optional[Settings] = None,
    concurrency: int = 3,
) -> List[DocumentationPage]:
    """Synchronous wrapper for fetch_external_documents."""
    return asyncio.run(
        fetch_external_documents(urls, settings=settings, concurrency=concurrency)
    )
