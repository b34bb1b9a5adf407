"""Front matter parsing for Folio.

A content file may begin with a YAML block between two ``---`` lines:

    ---
    layout: post
    title: Hello
    categories: [hdl, tutorial]
    ---
    Body text...

The opening delimiter must be the very first line. A file that opens a
block and never closes it is rejected with MalformedFrontMatter; it is never
loaded as plain body.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml

from .errors import MalformedFrontMatter, UndecodableSource

DELIMITER = "---"

STRING_KEYS = ("title", "description", "permalink")


def read_source_text(path: Path, rel: Path) -> str:
    """UTF-8 text of ``path``; ``rel`` names it in the error report."""
    try:
        return path.read_text(encoding="utf-8")
    except UnicodeDecodeError as exc:
        raise UndecodableSource(
            rel, f"not valid UTF-8 at byte {exc.start}", original_error=exc
        ) from exc


def _is_delimiter(line: str) -> bool:
    return line.rstrip() == DELIMITER


def split_front_matter(text: str, source: Path) -> tuple[str | None, str]:
    """Split raw text into the front-matter block and the body.

    Args:
        text: Raw file content.
        source: Path used in error reports.

    Returns:
        Tuple of (YAML block or None when the file has no front matter, body).

    Raises:
        MalformedFrontMatter: The opening delimiter has no closing partner.
    """
    if text.startswith("\ufeff"):
        text = text[1:]
    lines = text.splitlines(keepends=True)
    if not lines or not _is_delimiter(lines[0]):
        return None, text
    for index in range(1, len(lines)):
        if _is_delimiter(lines[index]):
            block = "".join(lines[1:index])
            body = "".join(lines[index + 1 :])
            return block, body
    raise MalformedFrontMatter(
        source,
        f"opening '{DELIMITER}' delimiter has no matching closing delimiter",
    )


def _normalize(data: dict[str, Any], source: Path) -> dict[str, Any]:
    """Validate recognised keys and normalise ``categories`` to a list."""
    for key in data:
        if not isinstance(key, str):
            raise MalformedFrontMatter(
                source, f"front matter keys must be strings, got {key!r}", key=str(key)
            )

    for key in STRING_KEYS:
        if key in data and not isinstance(data[key], str):
            raise MalformedFrontMatter(
                source,
                f"'{key}' must be a string, got {type(data[key]).__name__}",
                key=key,
            )

    if "layout" in data and data["layout"] is not None:
        if not isinstance(data["layout"], str):
            raise MalformedFrontMatter(
                source,
                f"'layout' must be a string, got {type(data['layout']).__name__}",
                key="layout",
            )

    if "categories" in data:
        categories = data["categories"]
        if categories is None:
            data["categories"] = []
        elif isinstance(categories, str):
            data["categories"] = categories.split()
        elif isinstance(categories, list) and all(
            isinstance(item, str) for item in categories
        ):
            data["categories"] = list(categories)
        else:
            raise MalformedFrontMatter(
                source,
                "'categories' must be a string or a list of strings",
                key="categories",
            )

    permalink = data.get("permalink")
    if permalink is not None and ".." in permalink.split("/"):
        raise MalformedFrontMatter(
            source, "'permalink' may not contain '..' segments", key="permalink"
        )
    return data


def parse_front_matter(text: str, source: Path) -> tuple[dict[str, Any], str]:
    """Parse YAML front matter from content.

    Args:
        text: Raw file content.
        source: Path to the file, used in error reports.

    Returns:
        Tuple of (front matter mapping, remaining body). Files without an
        opening delimiter yield an empty mapping and the whole text as body.

    Raises:
        MalformedFrontMatter: Unterminated block, invalid YAML, a block that
            is not a mapping, or a recognised key with the wrong type.
    """
    block, body = split_front_matter(text, source)
    if block is None:
        return {}, body
    try:
        data = yaml.safe_load(block)
    except yaml.YAMLError as exc:
        mark = getattr(exc, "problem_mark", None)
        where = f" on line {mark.line + 2}" if mark is not None else ""
        problem = getattr(exc, "problem", None) or str(exc)
        raise MalformedFrontMatter(
            source, f"invalid YAML{where}: {problem}", original_error=exc
        ) from exc
    if data is None:
        return {}, body
    if not isinstance(data, dict):
        raise MalformedFrontMatter(
            source,
            f"front matter must be a mapping, got {type(data).__name__}",
        )
    return _normalize(data, source), body
