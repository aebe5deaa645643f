"""Render DocC JSON content trees to Markdown.

The renderer is a pure function of its input. It never raises on malformed
content: unknown node kinds are skipped, missing fields are treated as
empty, and recursion is capped so cyclic or adversarial trees terminate
with a placeholder instead of descending further.

Example usage:

    from docgate.render import render_from_json

    markdown = render_from_json(
        data,
        "https://example.com/documentation/kit/widget",
        external_origin="https://example.com",
    )
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional
from urllib.parse import urlsplit

LOGGER = logging.getLogger(__name__)

MAX_CONTENT_DEPTH = 50
MAX_INLINE_DEPTH = 20
CONTENT_PLACEHOLDER = "[Content too deeply nested]"
INLINE_PLACEHOLDER = "[Inline content too deeply nested]"

DOCUMENTATION_ROOT = "/documentation/"
EXTERNAL_PREFIX = "/external/"

FOOTER = (
    "\n\n---\n\n"
    "*Extracted by [docgate](https://github.com/docgate/docgate) - "
    "Making documentation AI-readable.*\n"
    "*This is unofficial content. All documentation belongs to its original authors.*\n"
)

ASIDE_CALLOUTS = {
    "warning": "WARNING",
    "important": "IMPORTANT",
    "caution": "CAUTION",
    "tip": "TIP",
    "deprecated": "WARNING",
}

DECLARATION_LANGUAGES = {"occ": "objc"}

_TITLE_SUFFIX = re.compile(r"\s*\|\s*[^|]*Documentation\s*$")
_DISAMBIGUATION = re.compile(r"^(.+?)(?:-\w+)?$")
_CAMEL_BOUNDARY = re.compile(r"([a-z])([A-Z])")
_DOC_PATH = re.compile(r"/documentation/(.+)")
_WHITESPACE = re.compile(r"\s+")


@dataclass(frozen=True)
class RenderContext:
    """State threaded through every recursive render call."""

    references: Dict[str, Any] = field(default_factory=dict)
    variants: List[Any] = field(default_factory=list)
    external_origin: Optional[str] = None
    depth: int = 0
    inline_depth: int = 0

    def descend(self) -> "RenderContext":
        return replace(self, depth=self.depth + 1)

    def descend_inline(self) -> "RenderContext":
        return replace(self, inline_depth=self.inline_depth + 1)

    def reference(self, identifier: str) -> Dict[str, Any]:
        return _as_dict(self.references.get(identifier))

    def variant(self, identifier: str) -> Dict[str, Any]:
        for candidate in self.variants:
            if isinstance(candidate, dict) and candidate.get("identifier") == identifier:
                return candidate
        return {}


def _as_list(value: Any) -> List[Any]:
    return value if isinstance(value, list) else []


def _as_dict(value: Any) -> Dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _as_text(value: Any) -> str:
    return value if isinstance(value, str) else ""


def _plain_text(fragments: Any) -> str:
    """Flatten inline fragments to plain text, keeping code spans as code."""
    parts = []
    for fragment in _as_list(fragments):
        fragment = _as_dict(fragment)
        parts.append(_as_text(fragment.get("text")) or _as_text(fragment.get("code")))
    return "".join(parts)


# =============================================================================
# PAGE
# =============================================================================


def render_from_json(
    data: Dict[str, Any],
    source_url: str,
    *,
    external_origin: Optional[str] = None,
    now: Optional[datetime] = None,
) -> str:
    """Render a DocC JSON page to Markdown.

    Args:
        data: Parsed DocC JSON document.
        source_url: URL of the documentation page, used for front matter
            and breadcrumbs.
        external_origin: Origin plus hosting base path of an external
            documentation site. When set, ``/documentation/...`` links are
            rewritten to ``/external/<external_origin>/documentation/...``.
        now: Timestamp for the front matter (defaults to the current time).

    Returns:
        Markdown text ending with the attribution footer.
    """
    data = _as_dict(data)
    metadata = _as_dict(data.get("metadata"))
    ctx = RenderContext(
        references=_as_dict(data.get("references")),
        variants=_as_list(data.get("variants")),
        external_origin=external_origin,
    )

    markdown = generate_front_matter(data, source_url, now=now)
    markdown += generate_breadcrumbs(source_url, external_origin)

    role_heading = _as_text(metadata.get("roleHeading"))
    if role_heading:
        markdown += f"**{role_heading}**\n\n"

    title = _as_text(metadata.get("title"))
    if title:
        markdown += f"# {title}\n\n"

    platforms = _as_list(metadata.get("platforms"))
    if platforms:
        markdown += f"**Available on:** {_format_platforms(platforms)}\n\n"

    abstract_text = render_inline_content(_as_list(data.get("abstract")), ctx).strip()
    if abstract_text:
        markdown += f"> {abstract_text}\n\n"

    sections = [_as_dict(s) for s in _as_list(data.get("primaryContentSections"))]
    for section in sections:
        if section.get("kind") == "declarations":
            markdown += render_declarations(_as_list(section.get("declarations")))
            break
    for section in sections:
        if section.get("kind") == "parameters":
            markdown += render_parameters(_as_list(section.get("parameters")), ctx)
            break
    for section in sections:
        if section.get("kind") == "content":
            markdown += render_content(_as_list(section.get("content")), ctx)

    markdown += render_relationships(_as_list(data.get("relationshipsSections")), ctx)
    markdown += render_topic_sections(_as_list(data.get("topicSections")), ctx)

    swift_index = _as_list(_as_dict(data.get("interfaceLanguages")).get("swift"))
    if swift_index:
        children = _as_list(_as_dict(swift_index[0]).get("children"))
        markdown += render_index_content(children, external_origin)

    markdown += render_see_also(_as_list(data.get("seeAlsoSections")), ctx)

    return markdown.strip() + FOOTER


def generate_front_matter(
    data: Dict[str, Any], source_url: str, *, now: Optional[datetime] = None
) -> str:
    front_matter: Dict[str, str] = {}

    metadata = _as_dict(data.get("metadata"))
    title = _as_text(metadata.get("title"))
    if title:
        front_matter["title"] = _TITLE_SUFFIX.sub("", title).strip()
    else:
        swift_index = _as_list(_as_dict(data.get("interfaceLanguages")).get("swift"))
        index_title = _as_text(_as_dict(swift_index[0]).get("title")) if swift_index else ""
        if index_title:
            front_matter["title"] = index_title

    description = _plain_text(data.get("abstract")).strip()
    if description:
        front_matter["description"] = description

    front_matter["source"] = source_url
    timestamp = now or datetime.now(timezone.utc)
    front_matter["timestamp"] = timestamp.isoformat(timespec="seconds").replace(
        "+00:00", "Z"
    )

    lines = "\n".join(f"{key}: {value}" for key, value in front_matter.items())
    return f"---\n{lines}\n---\n\n"


def generate_breadcrumbs(source_url: str, external_origin: Optional[str] = None) -> str:
    parts = [part for part in urlsplit(source_url).path.split("/") if part]
    if "documentation" not in parts:
        return ""
    doc_index = parts.index("documentation")
    if len(parts) <= doc_index + 2:
        return ""

    framework = parts[doc_index + 1]
    framework_path = rewrite_documentation_path(
        f"/documentation/{framework}", external_origin
    )
    breadcrumbs = f"**Navigation:** [{framework[:1].upper()}{framework[1:]}]({framework_path})"

    for index in range(doc_index + 2, len(parts) - 1):
        path = "/" + "/".join(parts[doc_index : index + 1])
        link = rewrite_documentation_path(path, external_origin)
        breadcrumbs += f" › [{parts[index]}]({link})"

    return f"{breadcrumbs}\n\n"


def _format_platforms(platforms: List[Any]) -> str:
    formatted = []
    for platform in platforms:
        platform = _as_dict(platform)
        name = _as_text(platform.get("name"))
        if not name:
            continue
        introduced = platform.get("introducedAt")
        label = f"{name} {introduced}+" if introduced else name
        if platform.get("beta"):
            label += " Beta"
        formatted.append(label)
    return ", ".join(formatted)


# =============================================================================
# PRIMARY CONTENT
# =============================================================================


def render_declarations(declarations: List[Any]) -> str:
    markdown = ""
    for declaration in declarations:
        declaration = _as_dict(declaration)
        tokens = _as_list(declaration.get("tokens"))
        if not tokens:
            continue
        code = "".join(_as_text(_as_dict(token).get("text")) for token in tokens).strip()
        languages = _as_list(declaration.get("languages"))
        language = _as_text(languages[0]) if languages else ""
        language = DECLARATION_LANGUAGES.get(language, language or "swift")
        markdown += f"```{language}\n{code}\n```\n\n"
    return markdown


def render_parameters(parameters: List[Any], ctx: RenderContext) -> str:
    if not parameters:
        return ""

    markdown = "## Parameters\n\n"
    for parameter in parameters:
        parameter = _as_dict(parameter)
        markdown += f"**{_as_text(parameter.get('name'))}**\n\n"
        content = _as_list(parameter.get("content"))
        if content:
            markdown += f"{render_content(content, ctx)}\n\n"
    return markdown


def render_content(content: List[Any], ctx: RenderContext) -> str:
    """Render a list of block-level content nodes."""
    if ctx.depth > MAX_CONTENT_DEPTH:
        LOGGER.warning("Maximum recursion depth reached while rendering content")
        return CONTENT_PLACEHOLDER

    markdown = ""
    for item in content:
        item = _as_dict(item)
        kind = item.get("type")

        if kind == "heading":
            level = item.get("level")
            level = min(level if isinstance(level, int) and level > 0 else 2, 6)
            markdown += f"{'#' * level} {_as_text(item.get('text'))}\n\n"

        elif kind == "paragraph":
            inline = _as_list(item.get("inlineContent"))
            if inline:
                markdown += f"{render_inline_content(inline, ctx)}\n\n"

        elif kind == "codeListing":
            code = item.get("code")
            if isinstance(code, list):
                code = "\n".join(_as_text(line) for line in code)
            else:
                code = "" if code is None else str(code)
            syntax = _as_text(item.get("syntax")) or "swift"
            markdown += f"```{syntax}\n{code}\n```\n\n"

        elif kind in ("unorderedList", "orderedList"):
            items = _as_list(item.get("items"))
            if not items:
                continue
            for position, list_item in enumerate(items, start=1):
                text = render_content(
                    _as_list(_as_dict(list_item).get("content")), ctx.descend()
                )
                if text.endswith("\n\n"):
                    text = text[:-2]
                marker = f"{position}." if kind == "orderedList" else "-"
                markdown += f"{marker} {text}\n"
            markdown += "\n"

        elif kind == "aside":
            callout = map_aside_style_to_callout(_as_text(item.get("style")) or "note")
            aside = render_content(_as_list(item.get("content")), ctx.descend())
            body = aside.strip().replace("\n", "\n> ")
            markdown += f"> [!{callout}]\n> {body}\n\n"

        elif kind == "table":
            markdown += render_table(item, ctx)

    return markdown


def render_table(item: Dict[str, Any], ctx: RenderContext) -> str:
    """Render a table node; ``header == "row"`` marks the first row as header."""
    rows = _as_list(item.get("rows"))
    if not rows:
        return ""

    first_row_is_header = item.get("header") == "row"
    cell_ctx = ctx.descend()
    markdown = ""
    for row_index, row in enumerate(rows):
        cells = [_render_cell(cell, cell_ctx) for cell in _as_list(row)]
        if not cells:
            continue
        markdown += f"| {' | '.join(cells)} |\n"
        if first_row_is_header and row_index == 0:
            markdown += f"| {' | '.join('---' for _ in cells)} |\n"
    return f"{markdown}\n" if markdown else ""


def _render_cell(cell: Any, ctx: RenderContext) -> str:
    items = cell if isinstance(cell, list) else [cell]
    text = render_content(items, ctx)
    return text.replace("|", "\\|").replace("\n", " ").strip()


def render_inline_content(inline_content: List[Any], ctx: RenderContext) -> str:
    """Render a run of inline nodes to a single Markdown string."""
    if ctx.inline_depth > MAX_INLINE_DEPTH:
        LOGGER.warning("Maximum recursion depth reached while rendering inline content")
        return INLINE_PLACEHOLDER
    return "".join(_render_inline_item(_as_dict(item), ctx) for item in inline_content)


def _render_inline_item(item: Dict[str, Any], ctx: RenderContext) -> str:
    kind = item.get("type")

    if kind == "text":
        return _as_text(item.get("text"))

    if kind == "codeVoice":
        return f"`{_as_text(item.get('code'))}`"

    if kind == "reference":
        identifier = _as_text(item.get("identifier"))
        title = (
            _as_text(item.get("overridingTitle"))
            or _as_text(item.get("title"))
            or _as_text(item.get("text"))
            or _as_text(ctx.reference(identifier).get("title"))
            or extract_title_from_identifier(identifier)
        )
        url = convert_identifier_to_url(identifier, ctx) if identifier else ""
        return f"[{title}]({url})"

    if kind in ("emphasis", "strong", "strikethrough"):
        inner = render_inline_content(_as_list(item.get("inlineContent")), ctx.descend_inline())
        marker = {"emphasis": "*", "strong": "**", "strikethrough": "~~"}[kind]
        return f"{marker}{inner}{marker}"

    if kind in ("newTerm", "inlineHead", "superscript", "subscript"):
        return render_inline_content(_as_list(item.get("inlineContent")), ctx.descend_inline())

    if kind == "link":
        destination = _as_text(item.get("destination"))
        title = _as_text(item.get("title")) or destination
        if not destination:
            return title
        return f"[{title}]({rewrite_documentation_path(destination, ctx.external_origin)})"

    if kind == "image":
        identifier = _as_text(item.get("identifier"))
        if not identifier:
            return ""
        reference = ctx.reference(identifier)
        variants = _as_list(reference.get("variants"))
        url = _as_text(_as_dict(variants[0]).get("url")) if variants else ""
        alt = _as_text(reference.get("alt"))
        return f"![{alt}]({url})" if url else ""

    return _as_text(item.get("text"))


# =============================================================================
# LINKED SECTIONS
# =============================================================================


def _link_title(identifier: str, ctx: RenderContext) -> str:
    return (
        _as_text(ctx.variant(identifier).get("title"))
        or _as_text(ctx.reference(identifier).get("title"))
        or extract_title_from_identifier(identifier)
    )


def _render_identifier_links(identifiers: List[Any], ctx: RenderContext) -> str:
    markdown = ""
    for identifier in identifiers:
        identifier = _as_text(identifier)
        if not identifier:
            continue
        url = convert_identifier_to_url(identifier, ctx)
        markdown += f"- [{_link_title(identifier, ctx)}]({url})\n"
    return markdown


def render_relationships(relationships: List[Any], ctx: RenderContext) -> str:
    """Render "Inherited By", "Conforms To" and similar sections."""
    markdown = ""
    for relationship in relationships:
        relationship = _as_dict(relationship)
        title = _as_text(relationship.get("title"))
        identifiers = _as_list(relationship.get("identifiers"))
        if title and identifiers:
            markdown += f"## {title}\n\n"
            markdown += _render_identifier_links(identifiers, ctx)
            markdown += "\n"
    return markdown


def render_topic_sections(topics: List[Any], ctx: RenderContext) -> str:
    markdown = ""
    for topic in topics:
        topic = _as_dict(topic)
        title = _as_text(topic.get("title"))
        if not title:
            continue
        markdown += f"## {title}\n\n"

        identifiers = _as_list(topic.get("identifiers"))
        if not identifiers:
            continue
        for identifier in identifiers:
            identifier = _as_text(identifier)
            if not identifier:
                continue
            url = convert_identifier_to_url(identifier, ctx)
            variant = ctx.variant(identifier)
            reference = ctx.reference(identifier)
            abstract = _plain_text(variant.get("abstract") or reference.get("abstract"))
            markdown += f"- [{_link_title(identifier, ctx)}]({url})"
            if abstract:
                markdown += f" {abstract}"
            markdown += "\n"
        markdown += "\n"
    return markdown


def render_index_content(
    children: List[Any], external_origin: Optional[str] = None, heading_level: int = 2
) -> str:
    """Render the navigator index of a framework landing page.

    Group markers become headings; nested children move one heading level
    deeper. Heading levels stop at 6 and nesting is bounded by
    ``MAX_CONTENT_DEPTH``.
    """
    if heading_level - 2 > MAX_CONTENT_DEPTH:
        LOGGER.warning("Maximum recursion depth reached while rendering index content")
        return CONTENT_PLACEHOLDER

    markdown = ""
    for position, child in enumerate(children):
        child = _as_dict(child)
        title = _as_text(child.get("title"))
        path = _as_text(child.get("path"))

        if child.get("type") == "groupMarker":
            if position > 0:
                markdown += "\n"
            markdown += f"{'#' * min(heading_level, 6)} {title}\n\n"
        elif path and title:
            beta = " **Beta**" if child.get("beta") else ""
            markdown += f"- [{title}]({rewrite_documentation_path(path, external_origin)}){beta}\n"
            nested = _as_list(child.get("children"))
            if nested:
                markdown += "\n"
                markdown += render_index_content(nested, external_origin, heading_level + 1)
    return markdown


def render_see_also(sections: List[Any], ctx: RenderContext) -> str:
    markdown = ""
    for section in sections:
        section = _as_dict(section)
        title = _as_text(section.get("title"))
        identifiers = _as_list(section.get("identifiers"))
        if title and identifiers:
            markdown += f"## {title}\n\n"
            markdown += _render_identifier_links(identifiers, ctx)
            markdown += "\n"
    return markdown


# =============================================================================
# LINKS AND IDENTIFIERS
# =============================================================================


def map_aside_style_to_callout(style: str) -> str:
    """Map a DocC aside style to a GitHub-style callout label."""
    return ASIDE_CALLOUTS.get(style.lower(), "NOTE")


def rewrite_documentation_path(path: Optional[str], external_origin: Optional[str] = None) -> str:
    """Route ``/documentation/...`` paths back through the ``/external/`` proxy."""
    if not path:
        return ""
    if not external_origin or not path.startswith(DOCUMENTATION_ROOT):
        return path
    return f"{EXTERNAL_PREFIX}{external_origin}{path}"


def convert_identifier_to_url(identifier: str, ctx: RenderContext) -> str:
    """Resolve a ``doc://`` identifier to a link target.

    The reference map's ``url`` wins; otherwise the ``/documentation/...``
    tail of a ``doc://`` identifier is used. Anything else is returned as is.
    """
    reference_url = _as_text(ctx.reference(identifier).get("url"))
    if reference_url:
        return rewrite_documentation_path(reference_url, ctx.external_origin)

    if identifier.startswith("doc://"):
        match = _DOC_PATH.search(identifier)
        if match:
            return rewrite_documentation_path(
                f"/documentation/{match.group(1)}", ctx.external_origin
            )
    return identifier


def extract_title_from_identifier(identifier: str) -> str:
    """Derive a readable title from the last path segment of *identifier*.

    Disambiguation suffixes are dropped (``body-8kl5o`` -> ``body``), method
    signatures are kept verbatim, and camel case is split into words.
    """
    last_part = identifier.split("/")[-1]
    match = _DISAMBIGUATION.match(last_part)
    base_name = match.group(1) if match else last_part

    if "(" in base_name and ")" in base_name:
        return base_name
    return _WHITESPACE.sub(" ", _CAMEL_BOUNDARY.sub(r"\1 \2", base_name)).strip()
