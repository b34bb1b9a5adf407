"""Jinja2 rendering of layout chains.

Each layout body is compiled once and rendered with ``content`` (the HTML
produced so far), ``page``, ``layout`` (its own front matter) and the
globals ``site``, ``url_for``, ``link`` and ``render_toc``. Partials are
included from ``_partials``.
"""

from __future__ import annotations

from collections.abc import Mapping
from pathlib import Path
from typing import TYPE_CHECKING, Any

from jinja2 import (
    Environment,
    FileSystemLoader,
    Template,
    TemplateError,
    TemplateSyntaxError,
    select_autoescape,
)
from markupsafe import Markup

from .content import Heading
from .errors import LayoutRenderError
from .html_utils import escape_html, is_external_url, join_root_url
from .layouts import Layout

if TYPE_CHECKING:
    from .assembler import Page

__all__ = ["TemplateEngine", "render_toc"]

PARTIALS_DIR = "_partials"


def render_toc(page: Page) -> Markup:
    """Nested ``<ul>`` of links to the page's headings; empty without any.

    A deeper heading opens a list inside the current item, a shallower one
    closes lists until its own level is reached.
    """
    parts: list[str] = []
    open_levels: list[int] = []
    for heading in page.toc or ():
        while open_levels and open_levels[-1] > heading.level:
            open_levels.pop()
            parts.append("</li></ul>")
        if open_levels and open_levels[-1] == heading.level:
            parts.append("</li>")
        else:
            parts.append("<ul>")
            open_levels.append(heading.level)
        parts.append(_toc_item(heading))
    parts.extend("</li></ul>" for _ in open_levels)
    return Markup("".join(parts))


def _toc_item(heading: Heading) -> str:
    return f'<li><a href="#{escape_html(heading.id)}">{escape_html(heading.text)}</a>'


_ERROR_LABELS = {
    "UndefinedError": "Undefined variable",
    "TypeError": "Type error",
    "AttributeError": "Attribute error",
}


def _describe_template_error(exc: Exception) -> str:
    kind = type(exc).__name__
    return f"{_ERROR_LABELS.get(kind, kind)}: {exc}"


class TemplateEngine:
    """Renders documents through their layout chains for one build.

    ``site`` is shared by every render; ``root_url``, when set, makes
    ``url_for`` return absolute URLs.
    """

    def __init__(
        self,
        source_root: Path,
        site: Mapping[str, Any],
        root_url: str | None = None,
    ):
        self.source_root = source_root
        self.site = site
        self.root_url = root_url or ""
        self.env = Environment(
            loader=FileSystemLoader(str(source_root / PARTIALS_DIR)),
            autoescape=select_autoescape(["html", "xml"]),
        )
        self.env.globals.update(
            site=site, url_for=self._url_for, link=self._link, render_toc=render_toc
        )
        self._links: dict[str, str] = {}
        self._compiled: dict[str, Template] = {}

    def set_links(self, links: Mapping[str, str]) -> None:
        """Register the source path -> URL map used by ``link()``."""
        self._links = dict(links)

    def _url_for(self, path: str) -> str:
        if is_external_url(path):
            return path
        rooted = path if path.startswith("/") else f"/{path}"
        if self.root_url:
            return join_root_url(self.root_url, rooted)
        return rooted

    def _link(self, source_path: str) -> str:
        """URL of the document built from ``source_path`` (e.g. ``posts/a.md``)."""
        key = source_path.lstrip("/")
        if key not in self._links:
            raise LookupError(f"link target '{source_path}' is not a document")
        return self._url_for(self._links[key])

    def compile(self, layout: Layout) -> Template:
        """Compile a layout once per build.

        Raises:
            LayoutRenderError: The layout has a Jinja2 syntax error.
        """
        template = self._compiled.get(layout.name)
        if template is None:
            try:
                template = self.env.from_string(layout.body)
            except TemplateSyntaxError as exc:
                raise LayoutRenderError(
                    layout.path,
                    f"Template syntax error on line {exc.lineno}: {exc.message}",
                    key=layout.name,
                    original_error=exc,
                ) from exc
            self._compiled[layout.name] = template
        return template

    def render_layout(
        self, layout: Layout, content: str, page: Page, source: Path
    ) -> str:
        """Render ``content`` through one layout.

        Args:
            layout: Layout to apply.
            content: Inner HTML substituted for ``content``.
            page: Page being rendered.
            source: Document path used in error reports.

        Returns:
            Rendered HTML.

        Raises:
            LayoutRenderError: Jinja2 failed while compiling or rendering.
        """
        template = self.compile(layout)
        try:
            return template.render(
                content=Markup(content),
                page=page,
                layout=layout.front_matter,
            )
        except (TemplateError, LookupError, TypeError, AttributeError) as exc:
            raise LayoutRenderError(
                source,
                f"layout '{layout.name}': {_describe_template_error(exc)}",
                key=layout.name,
                original_error=exc,
            ) from exc

    def apply_chain(
        self, chain: list[Layout], content: str, page: Page, source: Path
    ) -> str:
        """Wrap ``content`` in each layout of ``chain``, innermost first."""
        html = content
        for layout in chain:
            html = self.render_layout(layout, html, page, source)
        return html
