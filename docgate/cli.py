"""Command-line interface for rendering external documentation."""

from __future__ import annotations

import argparse
import asyncio
import dataclasses
import logging
import shutil
from pathlib import Path
from typing import List, Optional

from dotenv import load_dotenv

from .cli_config import CONFIG_DIR, CONFIG_ENV_FILE, load_config


def _load_config() -> None:
    load_config(
        config_dir=CONFIG_DIR,
        config_env_file=CONFIG_ENV_FILE,
        cwd=Path.cwd(),
        load_env=load_dotenv,
        copy_file=shutil.copy,
    )


_load_config()

from .cli_output import write_output
from .config import Settings
from .hosts import HostPolicyConfig, parse_host_list


def _setup_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(message)s",
        datefmt="%H:%M:%S",
    )


def _parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="docgate",
        description="Render external Swift-DocC documentation pages as markdown.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""\
Examples:
  # Single page to stdout
  docgate https://apple.github.io/swift-argument-parser/documentation/argumentparser

  # Proxy-style path
  docgate /external/https%3A%2F%2Fexample.com%2Fdocumentation%2Fkit

  # Multiple pages into a directory
  docgate https://example.com/documentation/kit https://example.com/documentation/kit/widget -o docs/

  # Output as JSON (includes metadata)
  docgate https://example.com/documentation/kit --json

  # Allow a private host for this run
  docgate https://docs.internal/documentation/kit --allowlist docs.internal

Environment Variables:
  EXTERNAL_DOC_HOST_ALLOWLIST  Hosts allowed even when private (comma/newline list)
  EXTERNAL_DOC_HOST_BLOCKLIST  Hosts always refused (comma/newline list)
  DOCGATE_HTTP_TIMEOUT         Request timeout in seconds (default: 30)
""",
    )

    parser.add_argument(
        "urls",
        nargs="+",
        help="Documentation URL(s) or /external/ path(s)",
    )
    parser.add_argument(
        "-o",
        "--output",
        type=str,
        default=None,
        help="Output file (single URL) or directory (multiple URLs)",
    )
    parser.add_argument(
        "--json",
        action="store_true",
        dest="json_output",
        help="Output as JSON (includes metadata)",
    )
    parser.add_argument(
        "--remove-links",
        action="store_true",
        help="Remove all links from markdown output",
    )
    parser.add_argument(
        "--allowlist",
        type=str,
        default=None,
        help="Override EXTERNAL_DOC_HOST_ALLOWLIST for this run",
    )
    parser.add_argument(
        "--blocklist",
        type=str,
        default=None,
        help="Override EXTERNAL_DOC_HOST_BLOCKLIST for this run",
    )
    parser.add_argument(
        "--concurrency",
        type=int,
        default=3,
        help="Concurrent fetches for multiple URLs (default: 3)",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable verbose logging",
    )

    return parser.parse_args(argv)


def _build_settings(args: argparse.Namespace) -> Settings:
    settings = Settings.from_env()
    if args.allowlist is None and args.blocklist is None:
        return settings

    env_policy = settings.host_policy
    policy = HostPolicyConfig(
        allowlist=(
            parse_host_list(args.allowlist)
            if args.allowlist is not None
            else env_policy.allowlist
        ),
        blocklist=(
            parse_host_list(args.blocklist)
            if args.blocklist is not None
            else env_policy.blocklist
        ),
    )
    return dataclasses.replace(settings, host_policy=policy)


async def _run_async(args: argparse.Namespace) -> int:
    """Main async entry point."""
    from . import fetch_external_documents

    settings = _build_settings(args)
    logging.info("Fetching %d page(s)...", len(args.urls))
    docs = await fetch_external_documents(
        args.urls, settings=settings, concurrency=args.concurrency
    )

    successful = [d for d in docs if d.status == "success"]
    failed = [d for d in docs if d.status == "failed"]

    for doc in failed:
        logging.warning(
            "Failed: %s - [%s] %s", doc.request_url, doc.error_kind, doc.error_message
        )

    if not successful and not args.json_output:
        logging.error("All fetches failed")
        return 1

    write_output(
        docs if args.json_output else successful,
        args.output,
        args.json_output,
        remove_links=args.remove_links,
    )

    return 0 if successful else 1


def main(argv: Optional[List[str]] = None) -> int:
    """CLI entry point for the docgate command."""
    args = _parse_args(argv)
    _setup_logging(args.verbose)

    try:
        return asyncio.run(_run_async(args))
    except KeyboardInterrupt:
        logging.info("Interrupted")
        return 130
    except Exception as exc:
        logging.error("Error: %s", exc)
        if args.verbose:
            logging.exception("Full traceback:")
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
