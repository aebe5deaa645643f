"""Fetch external Swift-DocC JSON and run the full access pipeline.

Public API::

    from docgate.fetch import fetch_external_document, fetch_external_markdown

    page = await fetch_external_document(
        "https://apple.github.io/swift-argument-parser/documentation/argumentparser"
    )
    print(page.markdown)

Every request goes through the same sequence: validate the URL, check the
host policy, consult robots.txt, fetch the JSON, then render. Policy checks
happen before any request to the target host.
"""

from __future__ import annotations

import logging
import re
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Any, AsyncIterator, Dict, Optional, Tuple

import httpx

from .access import assert_external_access
from .config import JSON_ACCEPT, Settings
from .document import DocumentationPage
from .errors import (
    AccessDeniedError,
    DocGateError,
    FetchFailureError,
    InvalidURLError,
    NotFoundError,
)
from .render import render_from_json
from .resolver import RobotsPolicyResolver
from .urls import (
    EXTERNAL_PATH_PREFIX,
    TargetURL,
    decode_external_target_path,
    validate_external_url,
)

LOGGER = logging.getLogger(__name__)

RESTRICTIVE_X_ROBOTS_TAGS = frozenset({"none", "noindex", "noai", "noimageai"})

_DOCUMENTATION_PATH = re.compile(r"^(.*?)(/documentation(?:/.*)?)$")


# ---------------------------------------------------------------------------
# URL helpers
# ---------------------------------------------------------------------------


def _split_documentation_path(target: TargetURL) -> Tuple[str, str]:
    path = target.path.rstrip("/")
    match = _DOCUMENTATION_PATH.match(path)
    if match is None:
        raise InvalidURLError("External URL must point to a Swift-DocC documentation path.")
    return match.group(1), match.group(2)


def extract_documentation_base_path(target: TargetURL) -> str:
    """Return the hosting base path in front of ``/documentation``.

    ``https://apple.github.io/swift-argument-parser/documentation/argumentparser``
    has the base path ``/swift-argument-parser``; a site hosted at the root
    has an empty base path.
    """
    base_path, _ = _split_documentation_path(target)
    return base_path


def build_docc_json_url(target: TargetURL) -> str:
    """Map a documentation page URL to the URL of its DocC JSON."""
    base_path, doc_path = _split_documentation_path(target)
    if not doc_path.endswith(".json"):
        doc_path += ".json"
    return f"{target.origin}{base_path}/data{doc_path}"


def external_origin(target: TargetURL) -> str:
    """Origin plus hosting base path, used to rewrite rendered links."""
    return f"{target.origin}{extract_documentation_base_path(target)}"


def contains_restrictive_robots_tag(header: Optional[str]) -> bool:
    if not header:
        return False
    tokens = {token.strip().lower() for token in header.split(",")}
    return not tokens.isdisjoint(RESTRICTIVE_X_ROBOTS_TAGS)


def coerce_target(url: str) -> TargetURL:
    """Validate *url*, accepting either an absolute URL or an ``/external/`` path."""
    if url.startswith(EXTERNAL_PATH_PREFIX):
        url = decode_external_target_path(url)
    return validate_external_url(url)


# ---------------------------------------------------------------------------
# Fetching
# ---------------------------------------------------------------------------


@asynccontextmanager
async def _get_client(
    client: Optional[httpx.AsyncClient], timeout: float
) -> AsyncIterator[httpx.AsyncClient]:
    if client is not None:
        yield client
        return
    async with httpx.AsyncClient(timeout=timeout) as owned:
        yield owned


async def fetch_docc_json(
    target: TargetURL,
    *,
    client: Optional[httpx.AsyncClient] = None,
    settings: Optional[Settings] = None,
) -> Dict[str, Any]:
    """Fetch the DocC JSON for an already validated and authorized *target*.

    Raises:
        AccessDeniedError: The response carries a restrictive ``X-Robots-Tag``.
            This is checked before the status code.
        NotFoundError: The JSON does not exist (404).
        FetchFailureError: Any other status, a transport error, or a body
            that is not a JSON object.
    """
    settings = settings or Settings.from_env()
    json_url = build_docc_json_url(target)
    LOGGER.debug("Fetching DocC JSON %s", json_url)

    try:
        async with _get_client(client, settings.timeout) as http:
            response = await http.get(
                json_url,
                headers={"User-Agent": settings.user_agent, "Accept": JSON_ACCEPT},
            )
    except httpx.RequestError as exc:
        raise FetchFailureError(f"Failed to fetch external DocC JSON: {exc}") from exc

    if contains_restrictive_robots_tag(response.headers.get("x-robots-tag")):
        LOGGER.info("X-Robots-Tag opt-out for %s", json_url)
        raise AccessDeniedError()

    if response.status_code == 404:
        raise NotFoundError(f"External documentation page not found: {json_url}")
    if not response.is_success:
        raise FetchFailureError(
            f"Failed to fetch external DocC JSON: {response.status_code}"
        )

    try:
        data = response.json()
    except ValueError as exc:
        raise FetchFailureError(
            "External DocC response was not valid JSON."
        ) from exc
    if not isinstance(data, dict):
        raise FetchFailureError("External DocC response was not a JSON object.")
    return data


# ---------------------------------------------------------------------------
# Pipeline
# ---------------------------------------------------------------------------


async def fetch_external_document(
    url: str,
    *,
    settings: Optional[Settings] = None,
    resolver: Optional[RobotsPolicyResolver] = None,
    client: Optional[httpx.AsyncClient] = None,
    now: Optional[datetime] = None,
) -> DocumentationPage:
    """Validate, authorize, fetch and render one external documentation page.

    Args:
        url: Absolute ``https`` URL or ``/external/<encoded url>`` path.
        settings: Host policy, user agent and timeout. Read from the
            environment when omitted.
        resolver: Robots resolver; share one across calls to share its cache.
        client: Optional ``httpx.AsyncClient`` used for every request.
        now: Timestamp written to the front matter.

    Returns:
        A successful :class:`DocumentationPage`.

    Raises:
        DocGateError: Any validation, policy or fetch failure.
    """
    settings = settings or Settings.from_env()
    if resolver is None:
        resolver = RobotsPolicyResolver(
            client=client, user_agent=settings.user_agent, timeout=settings.timeout
        )

    target = coerce_target(url)
    # Rejects non-documentation paths before any network traffic.
    json_url = build_docc_json_url(target)

    await assert_external_access(target, settings.host_policy, resolver)
    data = await fetch_docc_json(target, client=client, settings=settings)

    source_url = str(target)
    markdown = render_from_json(
        data, source_url, external_origin=external_origin(target), now=now
    )
    metadata = data.get("metadata") if isinstance(data.get("metadata"), dict) else {}
    title = metadata.get("title") if isinstance(metadata.get("title"), str) else None

    LOGGER.info("Rendered %s (%d chars)", source_url, len(markdown))
    return DocumentationPage(
        request_url=url,
        source_url=source_url,
        status="success",
        markdown=markdown,
        json_url=json_url,
        title=title,
        metadata={
            key: metadata[key]
            for key in ("role", "roleHeading", "symbolKind")
            if key in metadata
        },
    )


async def fetch_external_markdown(url: str, **kwargs: Any) -> str:
    """Like :func:`fetch_external_document` but return only the Markdown."""
    page = await fetch_external_document(url, **kwargs)
    return page.markdown


def failed_page(url: str, exc: DocGateError) -> DocumentationPage:
    """Build the failed result used by batch fetching and the CLI."""
    return DocumentationPage(
        request_url=url,
        source_url=url,
        status="failed",
        markdown="",
        error_kind=exc.kind,
        error_message=exc.message,
    )
