"""Shared fixtures: an in-memory upstream and a clean environment."""

from __future__ import annotations

import inspect
from typing import Any, Callable, Dict, List, Union

import httpx
import pytest

from docgate.config import ENV_HTTP_TIMEOUT
from docgate.hosts import ENV_HOST_ALLOWLIST, ENV_HOST_BLOCKLIST

Route = Union[httpx.Response, Exception, Callable[[httpx.Request], Any]]


class FakeUpstream:
    """Routes requests by full URL; unknown URLs answer 404.

    A route is a response, an exception to raise, or a (sync or async)
    callable taking the request.
    """

    def __init__(self, routes: Dict[str, Route] | None = None):
        self.routes: Dict[str, Route] = dict(routes or {})
        self.requests: List[httpx.Request] = []

    async def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        route = self.routes.get(str(request.url))
        if route is None:
            return httpx.Response(404)
        if isinstance(route, Exception):
            raise route
        if callable(route):
            result = route(request)
            if inspect.isawaitable(result):
                result = await result
            return result
        return route

    @property
    def urls(self) -> List[str]:
        return [str(request.url) for request in self.requests]

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self.handler))


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in (ENV_HOST_ALLOWLIST, ENV_HOST_BLOCKLIST, ENV_HTTP_TIMEOUT):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def upstream() -> FakeUpstream:
    return FakeUpstream()


@pytest.fixture
def client(upstream: FakeUpstream) -> httpx.AsyncClient:
    return upstream.client()


@pytest.fixture
def docc_page() -> dict:
    """A small but complete DocC JSON page."""
    return {
        "metadata": {
            "title": "Widget",
            "roleHeading": "Structure",
            "role": "symbol",
            "symbolKind": "struct",
            "platforms": [
                {"name": "iOS", "introducedAt": "17.0"},
                {"name": "macOS", "introducedAt": "14.0", "beta": True},
            ],
        },
        "abstract": [
            {"type": "text", "text": "A reusable "},
            {"type": "codeVoice", "code": "View"},
            {"type": "text", "text": "component."},
        ],
        "primaryContentSections": [
            {
                "kind": "declarations",
                "declarations": [
                    {
                        "languages": ["swift"],
                        "tokens": [
                            {"kind": "keyword", "text": "struct"},
                            {"kind": "text", "text": " "},
                            {"kind": "identifier", "text": "Widget"},
                        ],
                    }
                ],
            },
            {
                "kind": "content",
                "content": [
                    {"type": "heading", "level": 2, "text": "Overview"},
                    {
                        "type": "paragraph",
                        "inlineContent": [
                            {"type": "text", "text": "Use with "},
                            {
                                "type": "reference",
                                "identifier": "doc://org.example.Kit/documentation/Kit/Gadget",
                                "isActive": True,
                            },
                            {"type": "text", "text": "."},
                        ],
                    },
                ],
            },
        ],
        "topicSections": [
            {
                "title": "Creating Widgets",
                "identifiers": ["doc://org.example.Kit/documentation/Kit/Widget/init()"],
            }
        ],
        "references": {
            "doc://org.example.Kit/documentation/Kit/Gadget": {
                "title": "Gadget",
                "url": "/documentation/kit/gadget",
            },
            "doc://org.example.Kit/documentation/Kit/Widget/init()": {
                "title": "init()",
                "url": "/documentation/kit/widget/init()",
                "abstract": [{"type": "text", "text": "Creates a widget."}],
            },
        },
    }
