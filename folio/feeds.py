"""Feed generation for Folio.

Generates sitemap.xml and an RSS 2.0 feed from the site's pages. Feeds
need an absolute base URL, so each generator returns None when the site
configuration has no ``url`` and the feed is skipped.

Feed output is derived from page data only (no wall-clock timestamps), so
rebuilding unchanged sources produces identical files.

Classes:
    FeedGenerator: Abstract base class for feed generators.
    SitemapGenerator: Generates sitemap.xml files.
    RSSGenerator: Generates feed.xml files.
    FeedRegistry: Registry for managing feed generators.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Iterable, Mapping
from datetime import datetime
from typing import TYPE_CHECKING, Any
from xml.sax.saxutils import escape

if TYPE_CHECKING:
    from .assembler import Page

RFC822_FORMAT = "%a, %d %b %Y %H:%M:%S +0000"


class FeedGenerator(ABC):
    """Abstract base class for feed generators."""

    @property
    @abstractmethod
    def filename(self) -> str:
        """Return the output filename for this feed."""
        ...

    @abstractmethod
    def generate(self, pages: Iterable[Page], site: Mapping[str, Any]) -> str | None:
        """Generate feed content from pages.

        Args:
            pages: Pages to include in the feed.
            site: Site configuration containing the base ``url``.

        Returns:
            Feed content, or None if the feed cannot be generated.
        """
        ...


def _base_url(site: Mapping[str, Any]) -> str:
    return str(site.get("url", "") or "").rstrip("/")


class SitemapGenerator(FeedGenerator):
    """Generates sitemap.xml following the sitemaps.org protocol."""

    @property
    def filename(self) -> str:
        return "sitemap.xml"

    def generate(self, pages: Iterable[Page], site: Mapping[str, Any]) -> str | None:
        base_url = _base_url(site)
        if not base_url:
            return None

        lines = [
            '<?xml version="1.0" encoding="UTF-8"?>',
            '<urlset xmlns="http://www.sitemaps.org/schemas/sitemap/0.9">',
        ]
        for page in pages:
            loc = escape(f"{base_url}{page.url}")
            if page.date is not None:
                lastmod = page.date.strftime("%Y-%m-%d")
                lines.append(f"  <url><loc>{loc}</loc><lastmod>{lastmod}</lastmod></url>")
            else:
                lines.append(f"  <url><loc>{loc}</loc></url>")
        lines.append("</urlset>")
        return "\n".join(lines) + "\n"


class RSSGenerator(FeedGenerator):
    """Generates an RSS 2.0 feed of dated pages, newest first."""

    @property
    def filename(self) -> str:
        return "feed.xml"

    def generate(self, pages: Iterable[Page], site: Mapping[str, Any]) -> str | None:
        base_url = _base_url(site)
        if not base_url:
            return None
        title = site.get("title") or "Folio Feed"
        description = site.get("description") or ""

        dated = sorted(
            (p for p in pages if p.date is not None),
            key=lambda p: (p.date, p.path),
            reverse=True,
        )
        items = []
        for page in dated:
            link = escape(f"{base_url}{page.url}")
            summary = escape(page.description or page.title)
            items.append(
                f"<item><title>{escape(page.title)}</title><link>{link}</link>"
                f"<guid>{link}</guid><description>{summary}</description>"
                f"<pubDate>{page.date.strftime(RFC822_FORMAT)}</pubDate></item>"
            )

        rss = [
            '<?xml version="1.0" encoding="UTF-8"?>',
            '<rss version="2.0"><channel>',
            f"<title>{escape(str(title))}</title>",
            f"<link>{escape(base_url)}/</link>",
            f"<description>{escape(str(description))}</description>",
        ]
        if dated:
            newest: datetime = dated[0].date
            rss.append(f"<lastBuildDate>{newest.strftime(RFC822_FORMAT)}</lastBuildDate>")
        rss.extend(items)
        rss.append("</channel></rss>")
        return "\n".join(rss) + "\n"


class FeedRegistry:
    """Registry for managing feed generators.

    Attributes:
        _generators: List of registered feed generators.
    """

    def __init__(self) -> None:
        self._generators: list[FeedGenerator] = []

    def register(self, generator: FeedGenerator) -> None:
        self._generators.append(generator)

    def generate_all(
        self, pages: Iterable[Page], site: Mapping[str, Any]
    ) -> list[tuple[str, str]]:
        """Generate all registered feeds.

        Args:
            pages: Pages to include.
            site: Site configuration.

        Returns:
            List of (filename, content) for feeds that were generated.
        """
        pages_list = list(pages)
        generated = []
        for generator in self._generators:
            content = generator.generate(pages_list, site)
            if content is not None:
                generated.append((generator.filename, content))
        return generated


def create_default_feed_registry() -> FeedRegistry:
    """Create a registry with the sitemap and RSS generators."""
    registry = FeedRegistry()
    registry.register(SitemapGenerator())
    registry.register(RSSGenerator())
    return registry
