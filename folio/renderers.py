"""Content renderers for Folio.

This module turns a Document's raw body into an HTML fragment. Each
renderer handles one source type and the Renderer facade picks the right
one through a RendererRegistry.

Key classes:
- MarkdownRenderer: Renders Markdown to HTML with mistune, plus footnotes.
- HTMLRenderer: Passes through HTML content.
- RendererRegistry: Maps documents to renderers.
- Renderer: Fills in a Document's rendered body and TOC.
"""

from __future__ import annotations

import re
from pathlib import Path

import mistune

from .content import Document, Heading
from .errors import BuildWarning
from .footnotes import ENV_KEY, FootnoteIndex, footnotes_plugin
from .html_utils import escape_html, strip_tags
from .protocols import ContentRenderer

MARKDOWN_PLUGINS = ["strikethrough", "table", "url"]


def _generate_heading_id(text: str) -> str:
    """Generate a URL-friendly ID from heading text.

    Args:
        text: The heading text, possibly containing inline HTML.

    Returns:
        URL-friendly slug suitable for anchor links.
    """
    slug = strip_tags(text).lower().strip()
    slug = re.sub(r"[^\w\s-]", "", slug)
    slug = re.sub(r"[-\s]+", "-", slug)
    return slug.strip("-") or "section"


class _FolioHTMLRenderer(mistune.HTMLRenderer):
    """mistune renderer with heading anchors and unhighlighted code blocks.

    Attributes:
        headings: Heading objects collected during rendering.
    """

    def __init__(self):
        super().__init__(escape=False)
        self.headings: list[Heading] = []
        self._heading_id_counts: dict[str, int] = {}

    def heading(self, text: str, level: int, **attrs) -> str:
        base_id = _generate_heading_id(text)

        if base_id in self._heading_id_counts:
            self._heading_id_counts[base_id] += 1
            heading_id = f"{base_id}-{self._heading_id_counts[base_id]}"
        else:
            self._heading_id_counts[base_id] = 0
            heading_id = base_id

        self.headings.append(
            Heading(id=heading_id, text=strip_tags(text), level=level)
        )
        return f'<h{level} id="{heading_id}">{text}</h{level}>\n'

    def block_code(self, code: str, info: str | None = None) -> str:
        """Render a fenced block as escaped text, keeping its language tag.

        Highlighting is left to the browser or a client-side script.
        """
        lang = info.split()[0] if info and info.strip() else ""
        lang_class = f' class="language-{escape_html(lang)}"' if lang else ""
        return f"<pre><code{lang_class}>{escape_html(code)}</code></pre>\n"


def _create_markdown(renderer: mistune.HTMLRenderer) -> mistune.Markdown:
    return mistune.create_markdown(
        renderer=renderer, plugins=[*MARKDOWN_PLUGINS, footnotes_plugin]
    )


def render_markdown(
    text: str, source_path: str = "<string>"
) -> tuple[str, list[Heading], list[str]]:
    """Render a Markdown body to HTML.

    Args:
        text: Markdown source.
        source_path: Document path used in footnote error reports.

    Returns:
        Tuple of (HTML, headings, labels of unused footnote definitions).

    Raises:
        UnresolvedFootnote: A footnote reference has no definition.
    """
    renderer = _FolioHTMLRenderer()
    md = _create_markdown(renderer)
    state = md.block.state_cls()
    index = state.env[ENV_KEY] = FootnoteIndex(source_path)
    html, _ = md.parse(text, state)
    return html, renderer.headings, index.unused


class MarkdownRenderer:
    """Renders Markdown content to HTML with footnotes and heading anchors."""

    @property
    def source_type(self) -> str:
        return "markdown"

    def can_render(self, document: Document) -> bool:
        return document.source_type == "markdown"

    def render(self, document: Document) -> tuple[str, list[Heading], list[BuildWarning]]:
        """Render a Markdown document.

        Args:
            document: Document whose body is rendered.

        Returns:
            Tuple of (HTML, headings, warnings).
        """
        html, headings, unused = render_markdown(document.body, document.path)
        warnings = [
            BuildWarning(
                Path(document.path),
                f"footnote [^{label}] is defined but never referenced",
            )
            for label in unused
        ]
        return html, headings, warnings


class HTMLRenderer:
    """Passes through HTML content unchanged."""

    @property
    def source_type(self) -> str:
        return "html"

    def can_render(self, document: Document) -> bool:
        return document.source_type == "html"

    def render(self, document: Document) -> tuple[str, list[Heading], list[BuildWarning]]:
        return document.body, [], []


class RendererRegistry:
    """Registry for content renderers.

    New renderers can be registered without touching existing ones.
    """

    def __init__(self):
        self._renderers: list[ContentRenderer] = []
        self.register(MarkdownRenderer())
        self.register(HTMLRenderer())

    def register(self, renderer: ContentRenderer) -> None:
        self._renderers.append(renderer)

    def get_renderer(self, document: Document) -> ContentRenderer | None:
        """Get the first renderer that can handle the document, or None."""
        for renderer in self._renderers:
            if renderer.can_render(document):
                return renderer
        return None


class Renderer:
    """Fills in each Document's rendered body.

    Rendering one document never depends on another, so documents can be
    rendered in any order.
    """

    def __init__(self, registry: RendererRegistry | None = None):
        self.registry = registry or RendererRegistry()

    def render(self, document: Document) -> list[BuildWarning]:
        """Render a document in place.

        Args:
            document: Document to render; ``rendered_body`` and ``toc``
                are set on success.

        Returns:
            Non-fatal warnings found while rendering.

        Raises:
            UnresolvedFootnote: A footnote reference has no definition.
        """
        renderer = self.registry.get_renderer(document)
        if renderer is None:
            document.rendered_body = document.body
            document.toc = []
            return []
        html, headings, warnings = renderer.render(document)
        document.rendered_body = html
        document.toc = headings
        return warnings

    def render_all(self, documents: list[Document]) -> list[BuildWarning]:
        warnings: list[BuildWarning] = []
        for document in documents:
            warnings.extend(self.render(document))
        return warnings
