"""Metadata extractors for Folio.

Each extractor derives one kind of document metadata from the raw file text
and the results are merged by CompositeMetadataExtractor. Front matter runs
first, so later extractors can prefer explicit front-matter values over
values inferred from the body or filename.

Key classes:
- FrontMatterExtractor: Splits YAML front matter from the body.
- TitleExtractor: Title from front matter, first heading, or filename.
- DateExtractor: Date from front matter or filename prefix.
- DescriptionExtractor: Description from front matter or first paragraph.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

from .frontmatter import parse_front_matter
from .utils import coerce_datetime, extract_date_from_name, first_paragraph, titleize


class FrontMatterExtractor:
    """Extracts YAML front matter (between --- markers) from content."""

    def extract(self, content: str, path: Path, metadata: dict[str, Any]) -> dict[str, Any]:
        front_matter, body = parse_front_matter(content, path)
        return {"front_matter": front_matter, "body": body}


class TitleExtractor:
    """Extracts the document title.

    Prefers the ``title`` front-matter key, then the first level-1
    heading (# Title) outside fenced code, then the titleized filename.
    """

    def extract(self, content: str, path: Path, metadata: dict[str, Any]) -> dict[str, Any]:
        front_matter = metadata.get("front_matter", {})
        if front_matter.get("title"):
            return {"title": front_matter["title"]}
        in_fence = False
        for line in metadata.get("body", content).splitlines():
            stripped = line.strip()
            if stripped.startswith(("```", "~~~")):
                in_fence = not in_fence
                continue
            if not in_fence and stripped.startswith("# "):
                return {"title": stripped[2:].strip()}
        return {"title": titleize(path.name)}


class DateExtractor:
    """Extracts the date from front matter or a YYYY-MM-DD filename prefix."""

    def extract(self, content: str, path: Path, metadata: dict[str, Any]) -> dict[str, Any]:
        front_matter = metadata.get("front_matter", {})
        date = coerce_datetime(front_matter.get("date"))
        if date is None:
            date = extract_date_from_name(path.stem)
        return {"date": date}


class DescriptionExtractor:
    """Extracts a short description, truncated to 160 characters."""

    def extract(self, content: str, path: Path, metadata: dict[str, Any]) -> dict[str, Any]:
        front_matter = metadata.get("front_matter", {})
        description = front_matter.get("description")
        if description:
            return {"description": description}
        if path.suffix.lower() == ".html":
            return {"description": ""}
        return {"description": first_paragraph(metadata.get("body", content))}


class CompositeMetadataExtractor:
    """Combines multiple metadata extractors.

    Extractors run in order; each sees the metadata gathered so far and
    later results override earlier ones.
    """

    def __init__(self, extractors: list | None = None):
        """Initialize with a list of extractors.

        Args:
            extractors: Extractor instances. If None, uses default extractors.
        """
        if extractors is None:
            self._extractors = [
                FrontMatterExtractor(),
                TitleExtractor(),
                DateExtractor(),
                DescriptionExtractor(),
            ]
        else:
            self._extractors = list(extractors)

    def add_extractor(self, extractor) -> None:
        """Add an extractor to the composite."""
        self._extractors.append(extractor)

    def extract(self, content: str, path: Path) -> dict[str, Any]:
        """Extract all metadata from content.

        Args:
            content: Raw source content.
            path: Path to the source file.

        Returns:
            Dictionary with all extracted metadata.

        Raises:
            MalformedFrontMatter: Propagated from front-matter parsing.
        """
        result: dict[str, Any] = {}
        for extractor in self._extractors:
            result.update(extractor.extract(content, path, result))
        return result


default_metadata_extractor = CompositeMetadataExtractor()
