"""Tests for docgate.render (DocC JSON to Markdown)."""

from __future__ import annotations

from datetime import datetime, timezone

import pytest

from docgate.render import (
    CONTENT_PLACEHOLDER,
    FOOTER,
    INLINE_PLACEHOLDER,
    MAX_CONTENT_DEPTH,
    MAX_INLINE_DEPTH,
    RenderContext,
    convert_identifier_to_url,
    extract_title_from_identifier,
    generate_breadcrumbs,
    generate_front_matter,
    map_aside_style_to_callout,
    render_content,
    render_from_json,
    render_index_content,
    render_inline_content,
    rewrite_documentation_path,
)

NOW = datetime(2025, 1, 2, 3, 4, 5, tzinfo=timezone.utc)
SOURCE = "https://example.com/documentation/kit/widget"


def _para(*inline):
    return {"type": "paragraph", "inlineContent": list(inline)}


def _text(value):
    return {"type": "text", "text": value}


class TestRenderFromJson:
    def test_full_page(self, docc_page):
        markdown = render_from_json(
            docc_page, SOURCE, external_origin="https://example.com", now=NOW
        )

        assert markdown.startswith(
            "---\n"
            "title: Widget\n"
            "description: A reusable View component.\n"
            f"source: {SOURCE}\n"
            "timestamp: 2025-01-02T03:04:05Z\n"
            "---\n\n"
            "**Navigation:** [Kit](/external/https://example.com/documentation/kit)\n\n"
            "**Structure**\n\n"
            "# Widget\n\n"
            "**Available on:** iOS 17.0+, macOS 14.0+ Beta\n\n"
            "> A reusable `View` component.\n\n"
            "```swift\nstruct Widget\n```\n\n"
            "## Overview\n\n"
            "Use with [Gadget](/external/https://example.com/documentation/kit/gadget).\n\n"
            "## Creating Widgets\n\n"
            "- [init()](/external/https://example.com/documentation/kit/widget/init()) "
            "Creates a widget."
        )
        assert markdown.endswith(FOOTER)

    def test_without_external_origin_links_stay_relative(self, docc_page):
        markdown = render_from_json(docc_page, SOURCE, now=NOW)
        assert "[Gadget](/documentation/kit/gadget)" in markdown
        assert "/external/" not in markdown

    def test_empty_document_still_has_footer(self):
        markdown = render_from_json({}, SOURCE, now=NOW)
        assert markdown.startswith("---\nsource: ")
        assert markdown.endswith(FOOTER)

    @pytest.mark.parametrize("data", [None, [], "text", {"metadata": "oops", "abstract": 3}])
    def test_malformed_input_does_not_raise(self, data):
        assert render_from_json(data, SOURCE, now=NOW).endswith(FOOTER)

    def test_parameters_and_relationships(self):
        data = {
            "primaryContentSections": [
                {
                    "kind": "parameters",
                    "parameters": [
                        {"name": "count", "content": [_para(_text("How many."))]},
                    ],
                }
            ],
            "relationshipsSections": [
                {
                    "title": "Conforms To",
                    "identifiers": ["doc://org.swift.Swift/documentation/Swift/Sendable"],
                }
            ],
            "seeAlsoSections": [
                {"title": "Related", "identifiers": ["doc://org.example.Kit/documentation/Kit/Gizmo"]}
            ],
        }
        markdown = render_from_json(data, SOURCE, external_origin="https://example.com", now=NOW)

        assert "## Parameters\n\n**count**\n\nHow many.\n\n" in markdown
        assert (
            "## Conforms To\n\n- [Sendable](/external/https://example.com/documentation/Swift/Sendable)"
            in markdown
        )
        assert "## Related\n\n- [Gizmo](/external/https://example.com/documentation/Kit/Gizmo)" in markdown

    def test_framework_index(self):
        data = {
            "interfaceLanguages": {
                "swift": [
                    {
                        "title": "Kit",
                        "children": [
                            {"type": "groupMarker", "title": "Essentials"},
                            {"title": "Widget", "path": "/documentation/kit/widget", "beta": True},
                            {
                                "title": "Gadget",
                                "path": "/documentation/kit/gadget",
                                "children": [
                                    {"type": "groupMarker", "title": "Parts"},
                                    {"title": "Gear", "path": "/documentation/kit/gadget/gear"},
                                ],
                            },
                        ],
                    }
                ]
            }
        }
        markdown = render_from_json(data, "https://example.com/documentation/kit", now=NOW)

        assert "title: Kit\n" in markdown
        assert (
            "## Essentials\n\n"
            "- [Widget](/documentation/kit/widget) **Beta**\n"
            "- [Gadget](/documentation/kit/gadget)\n\n"
            "### Parts\n\n"
            "- [Gear](/documentation/kit/gadget/gear)\n"
        ) in markdown


class TestFrontMatter:
    def test_title_suffix_removed(self):
        data = {"metadata": {"title": "Widget | Kit Documentation"}}
        front = generate_front_matter(data, SOURCE, now=NOW)
        assert "title: Widget\n" in front

    def test_now_defaults_to_current_time(self):
        front = generate_front_matter({}, SOURCE)
        assert "timestamp: " in front
        assert front.rstrip().endswith("---")


class TestBreadcrumbs:
    def test_hosted_base_path(self):
        crumbs = generate_breadcrumbs(
            "https://apple.github.io/swift-argument-parser/documentation/argumentparser/commandconfiguration",
            "https://apple.github.io/swift-argument-parser",
        )
        assert crumbs == (
            "**Navigation:** [Argumentparser]"
            "(/external/https://apple.github.io/swift-argument-parser/documentation/argumentparser)\n\n"
        )

    def test_intermediate_segments(self):
        crumbs = generate_breadcrumbs("https://example.com/documentation/kit/widget/init()")
        assert crumbs == (
            "**Navigation:** [Kit](/documentation/kit) › [widget](/documentation/kit/widget)\n\n"
        )

    @pytest.mark.parametrize(
        "url", ["https://example.com/documentation/kit", "https://example.com/blog/a/b"]
    )
    def test_no_breadcrumbs(self, url):
        assert generate_breadcrumbs(url) == ""


class TestRenderContent:
    def test_heading_level_capped(self):
        ctx = RenderContext()
        assert render_content([{"type": "heading", "level": 9, "text": "Deep"}], ctx) == "###### Deep\n\n"
        assert render_content([{"type": "heading", "text": "Default"}], ctx) == "## Default\n\n"

    def test_code_listing(self):
        ctx = RenderContext()
        item = {"type": "codeListing", "syntax": "python", "code": ["a = 1", "b = 2"]}
        assert render_content([item], ctx) == "```python\na = 1\nb = 2\n```\n\n"

    def test_lists(self):
        ctx = RenderContext()
        items = [{"content": [_para(_text("one"))]}, {"content": [_para(_text("two"))]}]
        assert render_content([{"type": "unorderedList", "items": items}], ctx) == "- one\n- two\n\n"
        assert render_content([{"type": "orderedList", "items": items}], ctx) == "1. one\n2. two\n\n"

    def test_aside(self):
        ctx = RenderContext()
        item = {
            "type": "aside",
            "style": "warning",
            "content": [_para(_text("First.")), _para(_text("Second."))],
        }
        assert render_content([item], ctx) == "> [!WARNING]\n> First.\n> \n> Second.\n\n"

    def test_table_with_header_row(self):
        ctx = RenderContext()
        item = {
            "type": "table",
            "header": "row",
            "rows": [
                [[_para(_text("Name"))], [_para(_text("Value"))]],
                [[_para(_text("a|b"))], [_para({"type": "codeVoice", "code": "1"})]],
            ],
        }
        assert render_content([item], ctx) == (
            "| Name | Value |\n| --- | --- |\n| a\\|b | `1` |\n\n"
        )

    def test_table_without_header(self):
        ctx = RenderContext()
        item = {"type": "table", "rows": [[[_para(_text("x"))]]]}
        assert render_content([item], ctx) == "| x |\n\n"

    def test_unknown_kinds_skipped(self):
        ctx = RenderContext()
        assert render_content([{"type": "video"}, "junk", None], ctx) == ""

    def test_depth_cap(self, caplog):
        item = _para(_text("leaf"))
        for _ in range(MAX_CONTENT_DEPTH + 5):
            item = {"type": "unorderedList", "items": [{"content": [item]}]}

        with caplog.at_level("WARNING"):
            markdown = render_content([item], RenderContext())

        assert CONTENT_PLACEHOLDER in markdown
        assert "leaf" not in markdown
        assert "Maximum recursion depth" in caplog.text


class TestInlineContent:
    def test_kinds(self):
        ctx = RenderContext(
            references={
                "img": {"alt": "Diagram", "variants": [{"url": "https://example.com/d.png"}]}
            }
        )
        inline = [
            _text("a "),
            {"type": "emphasis", "inlineContent": [_text("em")]},
            _text(" "),
            {"type": "strong", "inlineContent": [_text("st")]},
            _text(" "),
            {"type": "strikethrough", "inlineContent": [_text("gone")]},
            _text(" "),
            {"type": "newTerm", "inlineContent": [_text("term")]},
            _text(" "),
            {"type": "link", "title": "Site", "destination": "https://swift.org"},
            _text(" "),
            {"type": "image", "identifier": "img"},
        ]
        assert render_inline_content(inline, ctx) == (
            "a *em* **st** ~~gone~~ term [Site](https://swift.org) "
            "![Diagram](https://example.com/d.png)"
        )

    def test_reference_resolved_through_map(self):
        ctx = RenderContext(
            references={"doc://org.swift.X/documentation/X/Y": {"url": "/documentation/x/y"}},
            external_origin="https://host.example",
        )
        inline = [{"type": "reference", "identifier": "doc://org.swift.X/documentation/X/Y"}]
        assert render_inline_content(inline, ctx) == (
            "[Y](/external/https://host.example/documentation/x/y)"
        )

    def test_reference_title_precedence(self):
        ctx = RenderContext(references={"id": {"title": "Map Title", "url": "/documentation/m"}})
        inline = [{"type": "reference", "identifier": "id", "overridingTitle": "Override"}]
        assert render_inline_content(inline, ctx) == "[Override](/documentation/m)"

    def test_image_without_reference_omitted(self):
        assert render_inline_content([{"type": "image", "identifier": "nope"}], RenderContext()) == ""

    def test_inline_depth_cap(self, caplog):
        item = _text("leaf")
        for _ in range(MAX_INLINE_DEPTH + 5):
            item = {"type": "emphasis", "inlineContent": [item]}

        with caplog.at_level("WARNING"):
            markdown = render_inline_content([item], RenderContext())

        assert INLINE_PLACEHOLDER in markdown
        assert "leaf" not in markdown


class TestIdentifiers:
    def test_convert_doc_identifier(self):
        ctx = RenderContext(external_origin="https://example.com/base")
        assert (
            convert_identifier_to_url("doc://org.example.Kit/documentation/Kit/Widget", ctx)
            == "/external/https://example.com/base/documentation/Kit/Widget"
        )

    def test_convert_unknown_identifier_passthrough(self):
        assert convert_identifier_to_url("https://swift.org", RenderContext()) == "https://swift.org"

    @pytest.mark.parametrize(
        "identifier, title",
        [
            ("doc://x/documentation/Kit/body-8kl5o", "body"),
            ("doc://x/documentation/Kit/NavigationStack", "Navigation Stack"),
            ("doc://x/documentation/Kit/init(frame:)", "init(frame:)"),
            ("Plain", "Plain"),
        ],
    )
    def test_extract_title(self, identifier, title):
        assert extract_title_from_identifier(identifier) == title

    def test_rewrite_documentation_path(self):
        assert rewrite_documentation_path("/documentation/a", "https://h") == "/external/https://h/documentation/a"
        assert rewrite_documentation_path("/tutorials/a", "https://h") == "/tutorials/a"
        assert rewrite_documentation_path("/documentation/a") == "/documentation/a"
        assert rewrite_documentation_path(None, "https://h") == ""

    @pytest.mark.parametrize(
        "style, label",
        [
            ("note", "NOTE"),
            ("Tip", "TIP"),
            ("important", "IMPORTANT"),
            ("warning", "WARNING"),
            ("caution", "CAUTION"),
            ("deprecated", "WARNING"),
            ("experiment", "NOTE"),
        ],
    )
    def test_aside_callouts(self, style, label):
        assert map_aside_style_to_callout(style) == label


class TestIndexContent:
    def test_heading_levels_stop_at_six(self):
        children = [{"type": "groupMarker", "title": "G"}]
        assert render_index_content(children, heading_level=9) == "###### G\n\n"
