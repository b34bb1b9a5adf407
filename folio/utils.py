"""Filename and text helpers shared by the loader, permalinks and collections.

Source stems follow the ``[YYYY-MM-DD-][NN-]name`` convention: an optional
date prefix, an optional ordering number, then the name proper. The helpers
here pull those parts apart and classify source paths.
"""

from __future__ import annotations

import re
from datetime import date, datetime, timezone
from pathlib import Path

MARKDOWN_SUFFIXES = (".md", ".markdown")

_DATE_PREFIX_RE = re.compile(r"^(\d{4})-(\d{1,2})-(\d{1,2})-")
_DATED_STEM_RE = re.compile(r"^\d+-\d+-\d+-")
_NUMBER_PREFIX_RE = re.compile(r"^(\d+)(?:-|$)")


def _strip_date_prefix(name: str) -> str:
    return _DATED_STEM_RE.sub("", name, count=1)


def slugify(name: str) -> str:
    """Convert filename (without extension) to slug, dropping date prefix.

    Args:
        name: Filename stem or free text such as a category name.

    Returns:
        URL-friendly slug, or "index" when nothing usable remains.
    """
    cleaned = _strip_date_prefix(name)
    cleaned = re.sub(r"[^a-zA-Z0-9]+", "-", cleaned)
    cleaned = cleaned.strip("-").lower()
    return cleaned or "index"


def titleize(filename: str) -> str:
    """Fallback title for a document without one.

    The extension, a date prefix and a leading draft underscore are dropped;
    the remaining words are capitalized::

        >>> titleize("2024-01-15-hello-world.md")
        'Hello World'
    """
    base = _strip_date_prefix(Path(filename).stem)
    words = re.split(r"[\s\-_]+", base.lstrip("_"))
    return " ".join(word.capitalize() for word in words if word) or "Untitled"


def extract_date_from_name(name: str) -> datetime | None:
    """Extract a date from a filename with YYYY-MM-DD prefix.

    Args:
        name: Filename stem (without extension).

    Returns:
        datetime object if a valid date prefix is found, None otherwise.
    """
    match = _DATE_PREFIX_RE.match(name.lstrip("_") + "-")
    if not match:
        return None
    try:
        return datetime(int(match.group(1)), int(match.group(2)), int(match.group(3)))
    except ValueError:
        return None


def coerce_datetime(value) -> datetime | None:
    """Turn a front-matter date value into a naive datetime.

    PyYAML already parses unquoted ISO dates; quoted ones arrive as strings.
    Dates with a UTC offset are converted to UTC and made naive, so every
    page date compares with every other.
    """
    if isinstance(value, str):
        value = _parse_date_string(value.strip())
    elif isinstance(value, date) and not isinstance(value, datetime):
        value = datetime(value.year, value.month, value.day)
    if not isinstance(value, datetime):
        return None
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


_DATE_FORMATS = (
    "%Y-%m-%dT%H:%M:%S%z",
    "%Y-%m-%d %H:%M:%S%z",
    "%Y-%m-%dT%H:%M:%S",
    "%Y-%m-%d %H:%M:%S",
    "%Y-%m-%d %H:%M",
    "%Y-%m-%d",
)


def _parse_date_string(text: str) -> datetime | None:
    for fmt in _DATE_FORMATS:
        try:
            return datetime.strptime(text, fmt)
        except ValueError:
            continue
    return None


def first_paragraph(text: str, limit: int = 160) -> str:
    """Extract and clean the first prose paragraph from text.

    Skips headings, fenced code and images, strips HTML tags and
    collapses whitespace, then truncates to the specified limit.

    Args:
        text: Text content to extract from.
        limit: Maximum character length of result.

    Returns:
        Cleaned first paragraph, truncated to limit characters.
    """
    paragraphs = [p.strip() for p in text.split("\n\n") if p.strip()]
    for para in paragraphs:
        if para.startswith(("#", "```", "~~~", "![", "[^")):
            continue
        para = re.sub(r"<[^>]+>", "", para)
        para = re.sub(r"\[\^[^\]]+\]", "", para)
        collapsed = " ".join(para.split())
        if collapsed:
            return collapsed[:limit]
    return ""


def is_ignored_path(rel: Path) -> bool:
    """Check if a relative path is internal or hidden.

    Any directory component starting with ``_`` (layouts, partials, data)
    or ``.`` makes the path internal; so does a hidden file name.
    Underscore-prefixed file names are drafts and are not ignored here.

    Args:
        rel: Path relative to the source root.

    Returns:
        True if the path should never be loaded as content or asset.
    """
    if any(part.startswith(("_", ".")) for part in rel.parts[:-1]):
        return True
    return rel.name.startswith(".")


def is_draft(path: Path) -> bool:
    """Check if a file is a draft (underscore-prefixed file name)."""
    return path.name.startswith("_")


def is_markdown(path: Path) -> bool:
    return path.suffix.lower() in MARKDOWN_SUFFIXES


def is_html(path: Path) -> bool:
    return path.suffix.lower() == ".html"


def extract_number_from_name(name: str) -> int | None:
    """Ordering number of a stem such as ``01-intro`` or ``2024-01-01-02-intro``.

    The number is the first hyphen-separated segment after any date prefix
    and must consist of digits only. None when there is no such segment.
    """
    match = _NUMBER_PREFIX_RE.match(_strip_date_prefix(name))
    return int(match.group(1)) if match else None


def strip_number_prefix(name: str) -> str:
    """Stem with its date and ordering-number prefixes removed.

    Falls back to ``name`` when nothing would be left.
    """
    rest = _strip_date_prefix(name)
    match = _NUMBER_PREFIX_RE.match(rest)
    if match:
        rest = rest[match.end():]
    return rest or name
