"""Small string-level HTML helpers.

Rendered bodies are never parsed into a tree; URL attributes are rewritten
with regular expressions, which is enough for the markup mistune and the
layouts produce.
"""

from __future__ import annotations

import html
import re
from collections.abc import Callable

_URL_ATTR_RE = re.compile(r'(\b(?:href|src|action)=["\'])([^"\']+)(["\'])')
_HREF_ATTR_RE = re.compile(r'(\bhref=["\'])([^"\']+)(["\'])')
_TAG_RE = re.compile(r"<[^>]+>")

_ESCAPES = str.maketrans({"&": "&amp;", "<": "&lt;", ">": "&gt;", '"': "&quot;"})

# Left alone by every rewrite.
_FOREIGN_URL_PREFIXES = ("http://", "https://", "//", "mailto:", "tel:", "#", "javascript:")


def escape_html(text: str) -> str:
    """Escape ``& < > "``; single quotes are kept as they are.

        >>> escape_html('<b title="x">')
        '&lt;b title=&quot;x&quot;&gt;'
    """
    return text.translate(_ESCAPES)


def strip_tags(fragment: str) -> str:
    """Plain text of an HTML fragment, entities decoded."""
    return html.unescape(_TAG_RE.sub("", fragment))


def is_external_url(url: str) -> bool:
    """True for absolute, protocol-relative, anchor and scheme-only links."""
    return url.startswith(_FOREIGN_URL_PREFIXES)


def join_root_url(root_url: str, path: str) -> str:
    """``root_url`` + ``path`` with exactly one slash between them.

    An empty ``root_url`` returns ``path`` unchanged.
    """
    if not root_url:
        return path
    return root_url.rstrip("/") + "/" + path.lstrip("/")


def _rewrite_attrs(
    pattern: re.Pattern, html_text: str, rewrite: Callable[[str], str | None]
) -> str:
    def substitute(match: re.Match) -> str:
        prefix, url, quote = match.groups()
        replaced = rewrite(url)
        return match.group(0) if replaced is None else f"{prefix}{replaced}{quote}"

    return pattern.sub(substitute, html_text)


def absolutize_html_urls(html_text: str, root_url: str) -> str:
    """Prefix root-relative ``href``/``src``/``action`` values with ``root_url``.

    Document-relative and external URLs are not touched, nor is anything
    when ``root_url`` is empty.
    """
    if not root_url:
        return html_text

    def absolute(url: str) -> str | None:
        if is_external_url(url) or not url.startswith("/"):
            return None
        return join_root_url(root_url, url)

    return _rewrite_attrs(_URL_ATTR_RE, html_text, absolute)


def rewrite_hrefs(html_text: str, rewrite: Callable[[str], str | None]) -> str:
    """Pass every ``href`` value through ``rewrite``; None keeps it."""
    return _rewrite_attrs(_HREF_ATTR_RE, html_text, rewrite)
