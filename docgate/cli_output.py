"""Output and formatting helpers for CLI commands and MCP tools."""

from __future__ import annotations

import json
import logging
import re
from pathlib import Path
from typing import List, Optional
from urllib.parse import urlparse

from .config import PRODUCT_NAME
from .document import DocumentationPage
from .errors import DocGateError, ExternalAccessError, NotFoundError

ATTRIBUTION = f"*[{PRODUCT_NAME}](https://github.com/docgate/docgate) - Making docs AI-readable*"


def strip_markdown_links(text: str) -> str:
    """Remove markdown links from text, keeping only the link text."""
    text = re.sub(r'\[([^\]]+)\]\([^)]+\)', r'\1', text)
    text = re.sub(r'https?://\S+', '', text)
    text = re.sub(r'  +', ' ', text)
    return text


def doc_to_dict(doc: DocumentationPage) -> dict:
    """Convert a page to a JSON-serializable dict."""
    return {
        "request_url": doc.request_url,
        "source_url": doc.source_url,
        "json_url": doc.json_url,
        "status": doc.status,
        "title": doc.title,
        "markdown": doc.markdown,
        "error_kind": doc.error_kind,
        "error_message": doc.error_message,
        "metadata": doc.metadata,
    }


def error_to_dict(exc: DocGateError) -> dict:
    if isinstance(exc, ExternalAccessError) and not isinstance(exc, NotFoundError):
        error = "External documentation access denied"
    elif isinstance(exc, NotFoundError):
        error = "External documentation not found"
    else:
        error = "External documentation unavailable"
    return {"error": error, "kind": exc.kind, "status": exc.status, "message": exc.message}


def format_error_markdown(exc: DocGateError) -> str:
    """Render a failure as a Markdown page explaining what happened."""
    if isinstance(exc, NotFoundError):
        return (
            "# Not Found\n\n"
            f"{exc.message}\n\n"
            "Check the URL or start from a higher-level documentation page.\n\n"
            f"---\n{ATTRIBUTION}"
        )

    if isinstance(exc, ExternalAccessError):
        return (
            "# External Documentation Access Denied\n\n"
            f"{exc.message}\n\n"
            "## Opt-out controls supported\n\n"
            f"- `robots.txt` disallow for `{PRODUCT_NAME}` (or `*`)\n"
            "- `X-Robots-Tag` response directives such as `noai`, `noimageai`, `noindex`\n"
            "- Local operator host controls: `EXTERNAL_DOC_HOST_ALLOWLIST`, "
            "`EXTERNAL_DOC_HOST_BLOCKLIST`\n\n"
            f"---\n{ATTRIBUTION}"
        )

    return (
        "# External Documentation Unavailable\n\n"
        f"{exc.message}\n\n"
        f"---\n{ATTRIBUTION}"
    )


def url_to_filename(url: str) -> str:
    """Convert URL to a safe filename."""
    parsed = urlparse(url)
    path = parsed.path.strip("/").replace("/", "_") or "index"
    host = parsed.netloc.replace(":", "_").replace(".", "_")
    return f"{host}_{path}"[:100]


def _page_dict(doc: DocumentationPage, remove_links: bool) -> dict:
    doc_dict = doc_to_dict(doc)
    if remove_links and doc_dict.get("markdown"):
        doc_dict["markdown"] = strip_markdown_links(doc_dict["markdown"])
    return doc_dict


def write_output(
    docs: List[DocumentationPage],
    output: Optional[str],
    json_output: bool,
    remove_links: bool = False,
) -> None:
    """Write pages to stdout, a single file, or a directory."""
    if remove_links and not json_output:
        for doc in docs:
            doc.markdown = strip_markdown_links(doc.markdown)

    if len(docs) == 1 and output is None:
        doc = docs[0]
        if json_output:
            print(json.dumps(_page_dict(doc, remove_links), indent=2, ensure_ascii=False))
        else:
            print(doc.markdown)
        return

    if len(docs) == 1 and output and not output.endswith("/"):
        doc = docs[0]
        path = Path(output)
        path.parent.mkdir(parents=True, exist_ok=True)
        if json_output:
            path.write_text(
                json.dumps(_page_dict(doc, remove_links), indent=2, ensure_ascii=False)
            )
        else:
            path.write_text(doc.markdown)
        logging.info("Wrote %s", path)
        return

    if output is None and not json_output:
        print("\n\n".join(doc.markdown for doc in docs))
        return

    out_dir = Path(output) if output else Path(".")
    out_dir.mkdir(parents=True, exist_ok=True)

    if json_output:
        all_docs = [_page_dict(doc, remove_links) for doc in docs]
        out_path = out_dir / "docgate_results.json"
        out_path.write_text(json.dumps(all_docs, indent=2, ensure_ascii=False))
        logging.info("Wrote %d documents to %s", len(docs), out_path)
    else:
        for doc in docs:
            filename = url_to_filename(doc.source_url) + ".md"
            path = out_dir / filename
            path.write_text(doc.markdown)
            logging.info("Wrote %s", path)
