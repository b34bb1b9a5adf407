"""Protocol definitions for Folio.

These protocols describe the seams between pipeline stages so that
alternative implementations (another markup language, a test double)
can be plugged in without touching the stages around them.
"""

from __future__ import annotations

from abc import abstractmethod
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from .content import Document, Heading
    from .errors import BuildWarning


@runtime_checkable
class ContentRenderer(Protocol):
    """Protocol for rendering a document body to HTML.

    Implementations handle one source type (Markdown, HTML).
    """

    @abstractmethod
    def can_render(self, document: Document) -> bool:
        """Check if this renderer can handle the given document."""
        ...

    @abstractmethod
    def render(
        self, document: Document
    ) -> tuple[str, list[Heading], list[BuildWarning]]:
        """Render a document body.

        Args:
            document: Document to render.

        Returns:
            Tuple of (rendered HTML, headings for TOC, non-fatal warnings).
        """
        ...

    @property
    @abstractmethod
    def source_type(self) -> str:
        """Return the source type identifier (e.g., 'markdown', 'html')."""
        ...
