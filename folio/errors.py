"""Build error taxonomy for Folio.

Every failure that aborts a build derives from BuildError, which carries the
offending source file and, where it applies, the offending key or reference.
Nothing is written to the output root when one of these is raised.

Non-fatal problems are reported as BuildWarning records instead.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path


class BuildError(Exception):
    """Error during site build with file context.

    Attributes:
        source_path: Path to the source file that caused the error.
        message: Human-readable error message.
        key: Offending front-matter key, footnote label or layout name.
        original_error: The original exception that was caught, if any.
    """

    def __init__(
        self,
        source_path: Path,
        message: str,
        key: str | None = None,
        original_error: Exception | None = None,
    ):
        self.source_path = Path(source_path)
        self.message = message
        self.key = key
        self.original_error = original_error
        super().__init__(f"{source_path}: {message}")

    @property
    def kind(self) -> str:
        """Name of the error class, as shown by the CLI."""
        return type(self).__name__


class MalformedFrontMatter(BuildError):
    """Front matter is unterminated, not YAML, or has a bad key value."""


class UnresolvedFootnote(BuildError):
    """A footnote reference has no matching definition."""


class DuplicateFootnote(UnresolvedFootnote):
    """A footnote label is defined more than once."""


class UnknownLayout(BuildError):
    """A document or layout names a layout that does not exist."""


class LayoutCycle(BuildError):
    """A layout chain revisits a layout already on the current path."""


class LayoutRenderError(BuildError):
    """Jinja2 failed to compile or render a layout."""


class OutputPathCollision(BuildError):
    """Two sources resolve to the same output path."""


class UndecodableSource(BuildError):
    """A source, layout, data or config file is not valid UTF-8."""


class UnsafeOutputDir(BuildError):
    """The output root is the source root or one of its ancestors."""


@dataclass(frozen=True)
class BuildWarning:
    """Non-fatal problem found during a build."""

    source_path: Path
    message: str

    def __str__(self) -> str:
        return f"{self.source_path}: {self.message}"
