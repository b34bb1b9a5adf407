"""Page lists handed to layouts as ``site.pages`` and ``site.categories``."""

from __future__ import annotations

from collections.abc import Callable, Iterable, Iterator, Mapping, Sequence
from datetime import datetime
from typing import TYPE_CHECKING

from .utils import extract_number_from_name, strip_number_prefix

if TYPE_CHECKING:
    from .assembler import Page


def _ordering_key(page: Page, unnumbered: float):
    stem = page.source_path.stem
    number = extract_number_from_name(stem)
    return (
        page.date or datetime.min,
        unnumbered if number is None else number,
        strip_number_prefix(stem).lower(),
    )


class PageCollection(Sequence["Page"]):
    """Immutable list of pages with the filters layouts commonly need.

    Every filter returns a new collection, so calls chain in templates:
    ``site.pages.in_category("notes").published().latest(3)``.
    """

    def __init__(self, pages: Iterable[Page]):
        self._pages = tuple(pages)

    def __iter__(self) -> Iterator[Page]:
        return iter(self._pages)

    def __len__(self) -> int:
        return len(self._pages)

    def __getitem__(self, item):
        return self._pages[item]

    def where(self, predicate: Callable[[Page], bool]) -> PageCollection:
        return PageCollection(filter(predicate, self._pages))

    def in_folder(self, folder: str) -> PageCollection:
        """Pages whose source lives directly in ``folder`` ('' for the root)."""
        return self.where(lambda page: page.folder == folder)

    def in_category(self, category: str) -> PageCollection:
        return self.where(lambda page: category in page.categories)

    def dated(self) -> PageCollection:
        return self.where(lambda page: page.date is not None)

    def drafts(self) -> PageCollection:
        return self.where(lambda page: page.draft)

    def published(self) -> PageCollection:
        return self.where(lambda page: not page.draft)

    def sorted(self, reverse: bool = True) -> PageCollection:
        """Order by date, then ordering number, then bare name.

        Newest first unless ``reverse`` is false. Undated pages count as the
        oldest. Among pages sharing a date, unnumbered ones come first in
        either direction.
        """
        unnumbered = float("inf") if reverse else 0
        ordered = sorted(
            self._pages, key=lambda page: _ordering_key(page, unnumbered), reverse=reverse
        )
        return PageCollection(ordered)

    def latest(self, count: int = 5) -> PageCollection:
        return PageCollection(self.sorted()[:count])

    def __repr__(self) -> str:  # pragma: no cover
        return f"<PageCollection of {len(self._pages)}>"


class CategoryCollection(Mapping[str, PageCollection]):
    """Mapping of category name to PageCollection, in name order."""

    def __init__(self, mapping: Mapping[str, Iterable[Page]]):
        self._mapping = {k: PageCollection(mapping[k]) for k in sorted(mapping)}

    @classmethod
    def from_pages(cls, pages: Iterable[Page]) -> CategoryCollection:
        index: dict[str, list[Page]] = {}
        for page in pages:
            for category in page.categories:
                index.setdefault(category, []).append(page)
        return cls(index)

    def __getitem__(self, key: str) -> PageCollection:
        return self._mapping[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._mapping)

    def __len__(self) -> int:
        return len(self._mapping)

    def __repr__(self) -> str:  # pragma: no cover - for debugging
        return f"CategoryCollection({len(self._mapping)} categories)"
