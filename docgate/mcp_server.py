"""MCP Server exposing external documentation rendering.

Provides tools for:
- Fetching external Swift-DocC documentation as markdown
- Checking whether a URL may be fetched under the current access policy

Supports both STDIO and HTTP transports.

Usage:
    # STDIO (for Claude Desktop, etc.)
    python -m docgate.mcp_server

    # HTTP (for remote access)
    python -m docgate.mcp_server --transport http --port 8000

    # Or via FastMCP CLI
    fastmcp run docgate/mcp_server.py:mcp --transport http --port 8000

Environment Variables:
    EXTERNAL_DOC_HOST_ALLOWLIST: Hosts allowed even when local or private
    EXTERNAL_DOC_HOST_BLOCKLIST: Hosts always refused
    DOCGATE_HTTP_TIMEOUT: Request timeout in seconds (default: 30)
"""

from __future__ import annotations

import argparse
import json
import logging
from enum import Enum

from dotenv import load_dotenv
from fastmcp import FastMCP

from .access import check_external_access as evaluate_access
from .cli_output import (
    doc_to_dict,
    error_to_dict,
    format_error_markdown,
    strip_markdown_links,
)
from .config import Settings
from .errors import DocGateError
from .fetch import coerce_target, fetch_external_document
from .resolver import RobotsPolicyResolver
from .robots_cache import RobotsPolicyCache

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(message)s",
    datefmt="%H:%M:%S",
)
LOGGER = logging.getLogger(__name__)

# Load .env before reading environment variables
load_dotenv()

# Shared by every tool call for the lifetime of the process.
ROBOTS_CACHE = RobotsPolicyCache()

# Create the MCP server
mcp = FastMCP(
    name="External Documentation",
    instructions="""
    Renders third-party Swift-DocC documentation sites as markdown.

    Tools:
       - fetch_external_documentation: Fetch one documentation page
       - check_external_access: Check whether a URL may be fetched

    Requests honor robots.txt, X-Robots-Tag opt-outs and the operator's
    host allowlist/blocklist. Local and private hosts are refused unless
    allowlisted.

    Output formats for fetch_external_documentation:
    - markdown: Rendered page (default)
    - json: Page plus metadata (title, source and JSON URLs)
    """,
)


class OutputFormat(str, Enum):
    """Output format for fetched pages."""

    markdown = "markdown"
    json = "json"


def _resolver(settings: Settings) -> RobotsPolicyResolver:
    return RobotsPolicyResolver(
        ROBOTS_CACHE, user_agent=settings.user_agent, timeout=settings.timeout
    )


@mcp.tool
async def fetch_external_documentation(
    url: str,
    output_format: str = "markdown",
    remove_links: bool = False,
):
    """
    Fetch an external Swift-DocC documentation page and return it as markdown.

    Args:
        url: Absolute https:// URL of a page below /documentation/, or an
            /external/<percent-encoded URL> path
        output_format: Output format - "markdown" (default) or "json"
        remove_links: Remove all links from the markdown output (default: false)

    Returns:
        The rendered page, or an explanation when access is denied or the
        page cannot be fetched.

    Examples:
        fetch_external_documentation(
            url="https://apple.github.io/swift-argument-parser/documentation/argumentparser"
        )
    """
    try:
        fmt = OutputFormat(output_format.lower())
    except ValueError:
        fmt = OutputFormat.markdown

    settings = Settings.from_env()
    LOGGER.info("Fetching external documentation: %s", url)

    try:
        page = await fetch_external_document(
            url, settings=settings, resolver=_resolver(settings)
        )
    except DocGateError as exc:
        LOGGER.warning("Refused %s: [%s] %s", url, exc.kind, exc.message)
        if fmt == OutputFormat.json:
            return json.dumps({"url": url, **error_to_dict(exc)}, indent=2, ensure_ascii=False)
        return format_error_markdown(exc)
    except Exception as exc:
        error_msg = f"Unexpected error: {str(exc)}"
        LOGGER.error(error_msg)
        return json.dumps({"error": error_msg, "url": url}, ensure_ascii=False)

    if fmt == OutputFormat.json:
        page_dict = doc_to_dict(page)
        if remove_links and page_dict.get("markdown"):
            page_dict["markdown"] = strip_markdown_links(page_dict["markdown"])
        return json.dumps(page_dict, indent=2, ensure_ascii=False)

    if remove_links:
        return strip_markdown_links(page.markdown)
    return page.markdown


@mcp.tool
async def check_external_access(url: str):
    """
    Check whether a URL may be fetched without fetching the page itself.

    Validates the URL, applies the host allowlist/blocklist and private
    network rules, then consults robots.txt.

    Args:
        url: Absolute https:// URL or /external/<percent-encoded URL> path

    Returns:
        JSON with "allowed", and "kind"/"message" when access is denied.
    """
    settings = Settings.from_env()
    try:
        target = coerce_target(url)
    except DocGateError as exc:
        result = {"allowed": False, "kind": exc.kind, "message": exc.message}
    else:
        decision = await evaluate_access(
            target, settings.host_policy, _resolver(settings)
        )
        result = decision.to_dict()

    LOGGER.info("Access check for %s: %s", url, "allowed" if result["allowed"] else "denied")
    return json.dumps({"url": url, **result}, ensure_ascii=False)


# =============================================================================
# CLI ENTRY POINT
# =============================================================================


def main():
    """CLI entry point for running the MCP server."""
    parser = argparse.ArgumentParser(
        description="Run the external documentation MCP server.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Environment Variables:
    EXTERNAL_DOC_HOST_ALLOWLIST  Hosts allowed even when local or private
    EXTERNAL_DOC_HOST_BLOCKLIST  Hosts always refused
    DOCGATE_HTTP_TIMEOUT         Request timeout in seconds (default: 30)

Examples:
    # STDIO transport (default, for Claude Desktop)
    python -m docgate.mcp_server

    # HTTP transport (for remote access)
    python -m docgate.mcp_server --transport http --port 8000

    # Refuse a host
    EXTERNAL_DOC_HOST_BLOCKLIST=docs.example.com python -m docgate.mcp_server
""",
    )
    parser.add_argument(
        "--transport",
        choices=["stdio", "http"],
        default="stdio",
        help="Transport protocol (default: stdio)",
    )
    parser.add_argument(
        "--host",
        default="127.0.0.1",
        help="Host to bind to for HTTP transport (default: 127.0.0.1)",
    )
    parser.add_argument(
        "--port",
        type=int,
        default=8000,
        help="Port to bind to for HTTP transport (default: 8000)",
    )

    args = parser.parse_args()

    policy = Settings.from_env().host_policy
    LOGGER.info(
        "Host policy: %d allowlisted, %d blocklisted",
        len(policy.allowlist),
        len(policy.blocklist),
    )

    if args.transport == "http":
        LOGGER.info("Starting MCP server on http://%s:%d/mcp", args.host, args.port)
        mcp.run(transport="http", host=args.host, port=args.port)
    else:
        LOGGER.info("Starting MCP server with STDIO transport")
        mcp.run(transport="stdio")


if __name__ == "__main__":
    main()
