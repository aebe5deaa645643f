"""Tests for the docgate package API (batch fetching, lazy exports)."""

from __future__ import annotations

import asyncio

import httpx
import pytest

import docgate
from docgate import RobotsPolicyCache, Settings, fetch_external_documents
from docgate.hosts import HostPolicyConfig


def _json_route(title: str):
    return httpx.Response(200, json={"metadata": {"title": title}})


class TestFetchExternalDocuments:
    @pytest.mark.asyncio
    async def test_empty(self):
        assert await fetch_external_documents([]) == []

    @pytest.mark.asyncio
    async def test_order_failures_and_shared_robots(self, upstream, client):
        upstream.routes["https://example.com/data/documentation/kit/a.json"] = _json_route("A")
        upstream.routes["https://example.com/data/documentation/kit/b.json"] = _json_route("B")
        settings = Settings(host_policy=HostPolicyConfig.from_strings(blocklist="blocked.example"))

        pages = await fetch_external_documents(
            [
                "https://example.com/documentation/kit/a",
                "https://blocked.example/documentation/kit",
                "https://example.com/documentation/kit/b",
                "http://example.com/documentation/kit",
            ],
            settings=settings,
            client=client,
        )

        assert [p.status for p in pages] == ["success", "failed", "success", "failed"]
        assert [p.title for p in pages] == ["A", None, "B", None]
        assert pages[1].error_kind == "host_blocked"
        assert pages[3].error_kind == "unsupported_scheme"
        assert pages[3].markdown == ""
        assert upstream.urls.count("https://example.com/robots.txt") == 1

    @pytest.mark.asyncio
    async def test_uses_given_cache(self, upstream, client):
        upstream.routes["https://example.com/data/documentation/kit.json"] = _json_route("Kit")
        cache = RobotsPolicyCache()

        await fetch_external_documents(
            ["https://example.com/documentation/kit"], settings=Settings(), cache=cache, client=client
        )

        assert cache.get("https://example.com") is not None

    @pytest.mark.asyncio
    async def test_concurrency_limit(self, upstream, client):
        active = 0
        peak = 0

        async def slow_page(request: httpx.Request) -> httpx.Response:
            nonlocal active, peak
            active += 1
            peak = max(peak, active)
            await asyncio.sleep(0.01)
            active -= 1
            return _json_route("P")

        urls = [f"https://example.com/documentation/kit/p{i}" for i in range(4)]
        for i in range(4):
            upstream.routes[f"https://example.com/data/documentation/kit/p{i}.json"] = slow_page

        pages = await fetch_external_documents(
            urls, settings=Settings(), client=client, concurrency=2
        )

        assert all(p.status == "success" for p in pages)
        assert peak <= 2


class TestLazyExports:
    def test_unknown_attribute(self):
        with pytest.raises(AttributeError):
            getattr(docgate, "does_not_exist")

    def test_mcp_attribute(self):
        assert docgate.mcp is docgate.mcp_server.mcp

    def test_all_exports_resolve(self):
        for name in docgate.__all__:
            assert getattr(docgate, name) is not None
