"""Site assembly for Folio.

The SiteAssembler takes rendered Documents and the layout registry and
builds the complete SiteTree in memory: output paths, cross-document
links, layout chains, verbatim assets and feeds. Writing the tree is a
separate, final step (SiteTree.write), so any failure during assembly
leaves the output root untouched.

Key classes:
- Page: Read-only view of a rendered Document at its output location.
- SiteTree: Mapping of output path to file bytes.
- SiteAssembler: Builds the SiteTree.
"""

from __future__ import annotations

import os
import posixpath
import shutil
import tempfile
from collections.abc import Iterator, Mapping
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Any

from .collections import CategoryCollection, PageCollection
from .content import Asset, Document, Heading
from .errors import BuildWarning, OutputPathCollision
from .feeds import FeedRegistry, create_default_feed_registry
from .html_utils import absolutize_html_urls, is_external_url, rewrite_hrefs
from .layouts import LayoutRegistry
from .permalinks import output_path_for, url_for_output_path
from .templates import TemplateEngine
from .utils import is_markdown


@dataclass(frozen=True)
class Page:
    """A rendered Document placed at its output path.

    Attributes:
        document: The underlying Document (not modified by assembly).
        output_path: Path relative to the output root, e.g. ``about/index.html``.
        url: Public URL, e.g. ``/about/``.
        content: Rendered body with links to other documents resolved.
    """

    document: Document
    output_path: str
    url: str
    content: str

    @property
    def path(self) -> str:
        return self.document.path

    @property
    def source_path(self) -> Path:
        return self.document.source_path

    @property
    def title(self) -> str:
        return self.document.title

    @property
    def description(self) -> str:
        return self.document.description

    @property
    def date(self) -> datetime | None:
        return self.document.date

    @property
    def categories(self) -> list[str]:
        return self.document.categories

    @property
    def layout(self) -> str | None:
        return self.document.layout

    @property
    def front_matter(self) -> dict[str, Any]:
        return self.document.front_matter

    @property
    def folder(self) -> str:
        return self.document.folder

    @property
    def slug(self) -> str:
        return self.document.slug

    @property
    def draft(self) -> bool:
        return self.document.draft

    @property
    def toc(self) -> list[Heading]:
        return self.document.toc


class SiteTree(Mapping[str, bytes]):
    """Output path -> file bytes for one build.

    Every entry remembers the source that produced it, so a second claim
    on the same path can name both sources.
    """

    def __init__(self) -> None:
        self._files: dict[str, bytes] = {}
        self._sources: dict[str, Path] = {}

    def __getitem__(self, key: str) -> bytes:
        return self._files[key]

    def __iter__(self) -> Iterator[str]:
        return iter(sorted(self._files))

    def __len__(self) -> int:
        return len(self._files)

    def source_of(self, output_path: str) -> Path:
        return self._sources[output_path]

    def claim(self, output_path: str, source: Path) -> None:
        """Reserve an output path for ``source``.

        Raises:
            OutputPathCollision: The path is already claimed by another source.
        """
        owner = self._sources.get(output_path)
        if owner is not None:
            raise OutputPathCollision(
                source,
                f"output path '/{output_path}' is also produced by {owner}",
                key=output_path,
            )
        self._sources[output_path] = Path(source)

    def add(self, output_path: str, content: bytes | str, source: Path) -> None:
        """Add a file, claiming its path first unless ``source`` already owns it."""
        if self._sources.get(output_path) != Path(source):
            self.claim(output_path, source)
        if isinstance(content, str):
            content = content.encode("utf-8")
        self._files[output_path] = content

    def write(self, output_dir: Path) -> None:
        """Write the tree, replacing ``output_dir`` only once every file is written.

        Files go to a staging directory beside ``output_dir`` which is then
        swapped in, so an interrupted write never leaves a partial site.
        """
        output_dir = Path(output_dir)
        output_dir.parent.mkdir(parents=True, exist_ok=True)
        staging = Path(
            tempfile.mkdtemp(prefix=f".{output_dir.name}-", dir=output_dir.parent)
        )
        try:
            for rel in self:
                target = staging / rel
                target.parent.mkdir(parents=True, exist_ok=True)
                target.write_bytes(self._files[rel])
        except BaseException:
            shutil.rmtree(staging, ignore_errors=True)
            raise
        if output_dir.exists():
            shutil.rmtree(output_dir)
        os.replace(staging, output_dir)


class SiteAssembler:
    """Builds the SiteTree from rendered Documents.

    Attributes:
        source_root: Site source root (for partials).
        layouts: Layout registry.
        site: Site configuration and data.
        root_url: Base URL for absolute links, '' to keep root-relative URLs.
        pages: Pages built by the last ``assemble`` call.
        warnings: Non-fatal problems found by the last ``assemble`` call.
    """

    def __init__(
        self,
        source_root: Path,
        layouts: LayoutRegistry,
        site: Mapping[str, Any] | None = None,
        root_url: str | None = None,
        feeds: FeedRegistry | None = None,
    ):
        self.source_root = source_root
        self.layouts = layouts
        self.site = dict(site or {})
        self.root_url = root_url or ""
        self.feeds = feeds or create_default_feed_registry()
        self.pages: list[Page] = []
        self.warnings: list[BuildWarning] = []

    def assemble(
        self, documents: list[Document], assets: list[Asset] | None = None
    ) -> SiteTree:
        """Build the complete site in memory.

        Args:
            documents: Rendered documents.
            assets: Files to copy verbatim.

        Returns:
            The SiteTree; nothing has been written yet.

        Raises:
            UnknownLayout: A document or layout names a missing layout.
            LayoutCycle: A layout chain loops.
            LayoutRenderError: A layout failed to compile or render.
            OutputPathCollision: Two sources share an output path.
        """
        self.warnings = []
        assets = list(assets or [])
        self.layouts.check()
        tree = SiteTree()

        pattern = self.site.get("permalink")
        placed: list[tuple[Document, str]] = []
        for document in documents:
            output_path = output_path_for(document, pattern)
            tree.claim(output_path, Path(document.path))
            placed.append((document, output_path))
        for asset in assets:
            tree.claim(asset.path, Path(asset.path))

        links = {doc.path: url_for_output_path(out) for doc, out in placed}
        self.pages = [
            Page(
                document=doc,
                output_path=out,
                url=links[doc.path],
                content=self._resolve_links(doc, links),
            )
            for doc, out in placed
        ]

        site = dict(self.site)
        site["pages"] = PageCollection(self.pages)
        site["categories"] = CategoryCollection.from_pages(self.pages)
        engine = TemplateEngine(self.source_root, site, root_url=self.root_url)
        engine.set_links(links)

        for page in self.pages:
            source = Path(page.path)
            chain = self.layouts.chain(page.layout, source) if page.layout else []
            html = engine.apply_chain(chain, page.content, page, source)
            if self.root_url:
                html = absolutize_html_urls(html, self.root_url)
            tree.add(page.output_path, html, source)

        for asset in assets:
            tree.add(asset.path, asset.source_path.read_bytes(), Path(asset.path))

        published = [p for p in self.pages if not p.draft]
        for filename, content in self.feeds.generate_all(published, site):
            tree.add(filename, content, Path(filename))
        return tree

    def _resolve_links(self, document: Document, links: Mapping[str, str]) -> str:
        """Point links at other documents' source files to their URLs."""

        def rewrite(href: str) -> str | None:
            if is_external_url(href):
                return None
            target, sep, fragment = href.partition("#")
            target, qsep, query = target.partition("?")
            if not is_markdown(Path(target)):
                return None
            if target.startswith("/"):
                resolved = posixpath.normpath(target.lstrip("/"))
            else:
                resolved = posixpath.normpath(posixpath.join(document.folder, target))
            url = links.get(resolved)
            if url is None:
                self.warnings.append(
                    BuildWarning(
                        Path(document.path), f"link to unknown document '{href}'"
                    )
                )
                return None
            return f"{url}{qsep}{query}{sep}{fragment}"

        return rewrite_hrefs(document.rendered_body, rewrite)
