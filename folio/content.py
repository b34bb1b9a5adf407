"""Content loading for Folio.

This module discovers content files under a source root, parses their front
matter and produces one Document per file. Files that are not content are
reported as Assets and copied verbatim later. Loading never writes.

Key classes:
- Document: A unit of content with its front matter and raw body.
- Asset: A file copied byte-for-byte to the output.
- Heading: A heading collected while rendering, for TOC generation.
- FileContentLoader: Discovers content and asset files.
- DocumentBuilder: Builds a Document from one source file.
- ContentLoader: Facade producing Documents and Assets for a source root.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import datetime
from fnmatch import fnmatch
from pathlib import Path
from typing import Any

from .extractors import CompositeMetadataExtractor, default_metadata_extractor
from .frontmatter import DELIMITER, read_source_text
from .utils import is_draft, is_html, is_ignored_path, is_markdown, slugify


@dataclass
class Heading:
    """A heading extracted from rendered markdown for TOC generation.

    Attributes:
        id: Anchor ID for the heading (URL-friendly slug).
        text: The text content of the heading.
        level: Heading level (1-6).
    """

    id: str
    text: str
    level: int


@dataclass
class Document:
    """A unit of content.

    Attributes:
        path: POSIX path relative to the source root; unique per build.
        source_path: Absolute path of the source file.
        front_matter: Parsed front matter (empty when the file has none).
        body: Raw markup after the front matter.
        title: Front matter title, first heading, or titleized filename.
        description: Front matter description or first paragraph.
        date: Front matter date or filename date prefix.
        slug: URL slug derived from the filename.
        source_type: "markdown" or "html".
        draft: Whether the file is an underscore-prefixed draft.
        rendered_body: HTML produced by the Renderer.
        toc: Headings collected by the Renderer.
    """

    path: str
    source_path: Path
    front_matter: dict[str, Any]
    body: str
    title: str
    description: str
    date: datetime | None
    slug: str
    source_type: str  # "markdown" | "html"
    draft: bool = False
    rendered_body: str = ""
    toc: list[Heading] = field(default_factory=list)

    @property
    def layout(self) -> str | None:
        return self.front_matter.get("layout") or None

    @property
    def categories(self) -> list[str]:
        return list(self.front_matter.get("categories", []))

    @property
    def permalink(self) -> str | None:
        return self.front_matter.get("permalink")

    @property
    def folder(self) -> str:
        """Source directory relative to the root, '' for top-level files."""
        parent = Path(self.path).parent
        return "" if parent == Path(".") else parent.as_posix()


@dataclass(frozen=True)
class Asset:
    """A non-content file copied verbatim to the same relative output path."""

    path: str
    source_path: Path


def has_front_matter(path: Path) -> bool:
    """Check whether a file opens with a front-matter delimiter line."""
    with open(path, "rb") as f:
        first = f.readline()
    first = first.removeprefix(b"\xef\xbb\xbf")
    return first.rstrip() == DELIMITER.encode()


class FileContentLoader:
    """Discovers content and asset files under a source root.

    Underscore-prefixed and hidden directories are internal (layouts,
    partials, data). Underscore-prefixed Markdown and HTML files are drafts.

    Attributes:
        source_root: Directory containing the site sources.
        exclude: Glob patterns of relative paths to skip.
        ignore: Absolute paths (files or directories) to skip.
    """

    def __init__(
        self,
        source_root: Path,
        exclude: Iterable[str] = (),
        ignore: Iterable[Path] = (),
    ):
        self.source_root = source_root
        self.exclude = list(exclude)
        self.ignore = [Path(p).resolve() for p in ignore]

    def _walk(self) -> list[tuple[Path, Path]]:
        entries: list[tuple[Path, Path]] = []
        for path in sorted(self.source_root.rglob("*")):
            if path.is_dir():
                continue
            rel = path.relative_to(self.source_root)
            if is_ignored_path(rel) or self._is_excluded(rel):
                continue
            if self._is_ignored(path):
                continue
            entries.append((path, rel))
        return entries

    def _is_excluded(self, rel: Path) -> bool:
        candidates = [rel.as_posix()]
        candidates.extend(parent.as_posix() for parent in rel.parents if parent != Path("."))
        return any(fnmatch(c, pattern) for c in candidates for pattern in self.exclude)

    def _is_ignored(self, path: Path) -> bool:
        resolved = path.resolve()
        for ignored in self.ignore:
            if resolved == ignored or ignored in resolved.parents:
                return True
        return False

    def is_content(self, path: Path) -> bool:
        """Markdown files always; HTML files only when they carry front matter."""
        if is_markdown(path):
            return True
        return is_html(path) and has_front_matter(path)

    def iter_files(self, include_drafts: bool = False) -> list[Path]:
        """List content files in a stable order.

        Args:
            include_drafts: Whether to include draft files.

        Returns:
            Sorted list of paths to content files.
        """
        files: list[Path] = []
        for path, _rel in self._walk():
            if not self.is_content(path):
                continue
            if is_draft(path) and not include_drafts:
                continue
            files.append(path)
        return files

    def iter_assets(self) -> list[Path]:
        """List files to copy verbatim, in a stable order."""
        return [
            path
            for path, _rel in self._walk()
            if not self.is_content(path) and not is_draft(path)
        ]


class DocumentBuilder:
    """Builds Document objects from source files.

    Attributes:
        source_root: Directory containing the site sources.
        metadata_extractor: Composite metadata extractor.
    """

    def __init__(
        self,
        source_root: Path,
        metadata_extractor: CompositeMetadataExtractor | None = None,
    ):
        self.source_root = source_root
        self.metadata_extractor = metadata_extractor or default_metadata_extractor

    def build(self, path: Path) -> Document:
        """Build a Document from a source file.

        Args:
            path: Path to the source file.

        Returns:
            Document with an empty rendered body.

        Raises:
            MalformedFrontMatter: The file's front matter is invalid.
        """
        rel = path.relative_to(self.source_root)
        raw = read_source_text(path, rel)
        metadata = self.metadata_extractor.extract(raw, rel)
        stem = path.stem.lstrip("_")
        return Document(
            path=rel.as_posix(),
            source_path=path,
            front_matter=metadata.get("front_matter", {}),
            body=metadata.get("body", raw),
            title=metadata.get("title", ""),
            description=metadata.get("description", ""),
            date=metadata.get("date"),
            slug="" if stem == "index" else slugify(stem),
            source_type="markdown" if is_markdown(path) else "html",
            draft=is_draft(path),
        )


class ContentLoader:
    """Facade producing Documents and Assets for a source root.

    Attributes:
        source_root: Directory containing the site sources.
    """

    def __init__(
        self,
        source_root: Path,
        exclude: Iterable[str] = (),
        ignore: Iterable[Path] = (),
        file_loader: FileContentLoader | None = None,
        document_builder: DocumentBuilder | None = None,
    ):
        self.source_root = source_root
        self._file_loader = file_loader or FileContentLoader(source_root, exclude, ignore)
        self._document_builder = document_builder or DocumentBuilder(source_root)

    def load(self, include_drafts: bool = False) -> list[Document]:
        """Load all content files as Documents, sorted by path.

        Raises:
            MalformedFrontMatter: Any file has invalid front matter.
        """
        documents = [
            self._document_builder.build(path)
            for path in self._file_loader.iter_files(include_drafts)
        ]
        return sorted(documents, key=lambda d: d.path)

    def load_assets(self) -> list[Asset]:
        """List the files to copy verbatim."""
        return [
            Asset(path=path.relative_to(self.source_root).as_posix(), source_path=path)
            for path in self._file_loader.iter_assets()
        ]
