"""Layout loading and chain resolution for Folio.

Layouts live in ``_layouts/`` under the source root. A layout is a Jinja2
HTML template with one insertion point, the ``content`` variable. It may
name a parent layout in its own front matter, forming a chain that is
applied from the innermost layout outwards:

    _layouts/post.html          _layouts/default.html
    ---                         <html><body>
    layout: default             {{ content }}
    ---                         </body></html>
    <article>{{ content }}</article>

Chains must end at a layout without a parent; a cycle is a fatal error.
"""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from .errors import LayoutCycle, UnknownLayout
from .frontmatter import parse_front_matter, read_source_text

LAYOUTS_DIR = "_layouts"
LAYOUT_SUFFIX = ".html"


@dataclass
class Layout:
    """A named template wrapping rendered content.

    Attributes:
        name: Layout name, the path under ``_layouts`` without ``.html``.
        path: Source path relative to the source root.
        body: Jinja2 template text after the front matter.
        front_matter: The layout's own front matter.
    """

    name: str
    path: Path
    body: str
    front_matter: dict[str, Any] = field(default_factory=dict)

    @property
    def parent(self) -> str | None:
        return self.front_matter.get("layout") or None


class LayoutRegistry(Mapping[str, Layout]):
    """Mapping of layout name to Layout, with chain resolution."""

    def __init__(self, layouts: Mapping[str, Layout] | None = None):
        self._layouts = dict(layouts or {})

    def __getitem__(self, key: str) -> Layout:
        return self._layouts[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._layouts)

    def __len__(self) -> int:
        return len(self._layouts)

    def chain(self, name: str, source: Path) -> list[Layout]:
        """Resolve a layout and its ancestors, innermost first.

        Args:
            name: Layout named by a document (or by a layout).
            source: Path of the requesting file, used in error reports.

        Returns:
            List of layouts from ``name`` out to the root layout.

        Raises:
            UnknownLayout: ``name`` or an ancestor does not exist.
            LayoutCycle: The chain revisits a layout already on it.
        """
        chain: list[Layout] = []
        visited: list[str] = []
        current: str | None = name
        while current is not None:
            if current in visited:
                loop = " -> ".join([*visited, current])
                raise LayoutCycle(source, f"layout chain loops: {loop}", key=current)
            layout = self._layouts.get(current)
            if layout is None:
                if visited:
                    message = (
                        f"layout '{visited[-1]}' names unknown parent layout '{current}'"
                    )
                else:
                    message = f"unknown layout '{current}'"
                raise UnknownLayout(source, message, key=current)
            visited.append(current)
            chain.append(layout)
            current = layout.parent
        return chain

    def check(self) -> None:
        """Validate every layout's chain.

        Raises:
            UnknownLayout: A layout names a missing parent.
            LayoutCycle: Layouts reference each other in a loop.
        """
        for name in sorted(self._layouts):
            self.chain(name, self._layouts[name].path)


def load_layouts(source_root: Path) -> LayoutRegistry:
    """Load every layout under ``_layouts``.

    Args:
        source_root: Site source root.

    Returns:
        LayoutRegistry keyed by layout name (``post``, ``docs/page``).

    Raises:
        MalformedFrontMatter: A layout's front matter is invalid.
    """
    layout_dir = source_root / LAYOUTS_DIR
    layouts: dict[str, Layout] = {}
    if not layout_dir.is_dir():
        return LayoutRegistry(layouts)
    for path in sorted(layout_dir.rglob(f"*{LAYOUT_SUFFIX}")):
        if path.is_dir():
            continue
        rel = path.relative_to(source_root)
        name = path.relative_to(layout_dir).as_posix()[: -len(LAYOUT_SUFFIX)]
        front_matter, body = parse_front_matter(read_source_text(path, rel), rel)
        layouts[name] = Layout(name=name, path=rel, body=body, front_matter=front_matter)
    return LayoutRegistry(layouts)
