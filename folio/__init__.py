"""Folio static site generator.

Folio turns a directory of Markdown posts with YAML front matter into a
static website. A build is a one-way pipeline:

- ContentLoader: discovers files and parses front matter into Documents
- Renderer: renders each Document body (Markdown, footnotes) to HTML
- SiteAssembler: applies nested Jinja2 layouts, resolves output paths and
  links, and builds the whole site in memory before anything is written

The CLI module provides commands for building, serving with live reload,
and starting a new post.
"""

__all__ = ["__version__"]
__version__ = "0.1.0"
