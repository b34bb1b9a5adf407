"""Output path derivation for Folio.

A document's output path comes from, in order: its ``permalink`` front
matter, the site-wide ``permalink`` pattern, or DEFAULT_PATTERN. Patterns
may use these placeholders:

    :categories  slugified categories joined with "/"
    :path        source directory relative to the source root
    :slug        filename slug (empty for index files); :title is an alias
    :year :month :day  document date parts (empty without a date)

Empty segments collapse, so ``/:categories/:slug/`` for an uncategorised
``about.md`` is ``about/index.html``.
"""

from __future__ import annotations

import re

from .content import Document
from .utils import slugify

DEFAULT_PATTERN = "/:categories/:path/:slug/"

_PLACEHOLDER_RE = re.compile(r":(categories|path|slug|title|year|month|day)\b")


def expand_pattern(pattern: str, document: Document) -> str:
    """Substitute placeholders in a permalink pattern."""
    date = document.date
    values = {
        "categories": "/".join(slugify(c) for c in document.categories),
        "path": document.folder,
        "slug": document.slug,
        "title": document.slug,
        "year": f"{date.year:04d}" if date else "",
        "month": f"{date.month:02d}" if date else "",
        "day": f"{date.day:02d}" if date else "",
    }
    return _PLACEHOLDER_RE.sub(lambda m: values[m.group(1)], pattern)


def normalize_output_path(path: str) -> str:
    """Turn an expanded permalink into a relative output file path.

    Examples:
        >>> normalize_output_path("/about/")
        'about/index.html'
        >>> normalize_output_path("/notes/page.html")
        'notes/page.html'
        >>> normalize_output_path("/")
        'index.html'
    """
    segments = [s for s in path.split("/") if s and s != "."]
    if not segments:
        return "index.html"
    if path.endswith("/") or "." not in segments[-1]:
        segments.append("index.html")
    return "/".join(segments)


def output_path_for(document: Document, pattern: str | None = None) -> str:
    """Compute where a document is written, relative to the output root.

    Args:
        document: Document to place.
        pattern: Site-wide permalink pattern, if configured.

    Returns:
        Relative POSIX output path such as ``about/index.html``.
    """
    template = document.permalink or pattern or DEFAULT_PATTERN
    return normalize_output_path(expand_pattern(template, document))


def url_for_output_path(output_path: str) -> str:
    """Public URL of an output path, dropping a trailing ``index.html``.

    Examples:
        >>> url_for_output_path("about/index.html")
        '/about/'
        >>> url_for_output_path("index.html")
        '/'
    """
    if output_path == "index.html":
        return "/"
    if output_path.endswith("/index.html"):
        return "/" + output_path[: -len("index.html")]
    return "/" + output_path
