"""Site building for Folio.

This module runs one build: load configuration and data, load documents,
render them, assemble the site in memory and, only when all of that
succeeded, write it to the output root.

Key functions:
- build_site: Main function to build the entire site.
- load_config: Loads site configuration from folio.yaml.
- load_data: Loads site data from YAML files in the _data directory.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from .assembler import Page, SiteAssembler, SiteTree
from .content import ContentLoader, Document
from .errors import BuildError, BuildWarning, UnsafeOutputDir
from .frontmatter import read_source_text
from .layouts import load_layouts
from .renderers import Renderer

CONFIG_FILE = "folio.yaml"
DATA_DIR = "_data"

DEFAULT_CONFIG = {
    "title": "",
    "description": "",
    "url": "",
    "root_url": "",
    "output_dir": "_site",
    "permalink": None,
    "exclude": [],
    "port": 4000,
    "ws_port": None,
}


@dataclass
class BuildResult:
    """Result of a site build operation.

    Attributes:
        documents: Rendered documents.
        pages: Pages at their output locations.
        output_dir: Directory where the site was written.
        tree: The in-memory site that was written.
        warnings: Non-fatal problems found during the build.
    """

    documents: list[Document]
    pages: list[Page]
    output_dir: Path
    tree: SiteTree
    warnings: list[BuildWarning] = field(default_factory=list)


def load_config(source_root: Path) -> dict[str, Any]:
    """Load site configuration from folio.yaml.

    Args:
        source_root: Root directory of the site sources.

    Returns:
        Dictionary containing configuration values, with defaults applied.

    Raises:
        BuildError: The configuration file is not valid YAML.
    """
    config_path = source_root / CONFIG_FILE
    config = DEFAULT_CONFIG.copy()
    config["exclude"] = []
    if config_path.exists():
        text = read_source_text(config_path, Path(CONFIG_FILE))
        try:
            loaded = yaml.safe_load(text) or {}
        except yaml.YAMLError as exc:
            raise BuildError(
                Path(CONFIG_FILE), f"invalid YAML: {exc}", original_error=exc
            ) from exc
        if isinstance(loaded, dict):
            config.update(loaded)
    return config


def load_data(source_root: Path) -> dict[str, Any]:
    """Load site data from YAML files in the _data directory.

    Each ``_data/<name>.yaml`` becomes ``site.data.<name>``.

    Args:
        source_root: Root directory of the site sources.

    Returns:
        Dictionary of data keyed by file stem.
    """
    data_dir = source_root / DATA_DIR
    data: dict[str, Any] = {}
    if not data_dir.exists():
        return data
    for path in sorted([*data_dir.glob("*.yaml"), *data_dir.glob("*.yml")]):
        rel = path.relative_to(source_root)
        try:
            payload = yaml.safe_load(read_source_text(path, rel))
        except yaml.YAMLError as exc:
            raise BuildError(rel, f"invalid YAML: {exc}", original_error=exc) from exc
        data[path.stem] = payload
    return data


def _check_output_dir(source_root: Path, output_dir: Path) -> None:
    """Refuse an output root that would hold the sources.

    Writing replaces the whole output root, so one that is the source root
    or an ancestor of it would delete the sources.
    """
    source = source_root.resolve()
    output = output_dir.resolve()
    if output == source or output in source.parents:
        raise UnsafeOutputDir(
            output_dir,
            f"output directory must not be the source root or contain it ({source})",
        )


def build_site(
    source_root: Path,
    output_dir: Path | None = None,
    include_drafts: bool = False,
    root_url: str | None = None,
) -> BuildResult:
    """Build the entire static site.

    Load, render and assemble run completely in memory; the output root is
    written only after all three succeed.

    Args:
        source_root: Root directory of the site sources.
        output_dir: Output root; defaults to the configured ``output_dir``
            relative to the source root.
        include_drafts: Whether to include draft documents (starting with _).
        root_url: Optional base URL to absolutize links with.

    Returns:
        BuildResult describing what was written.

    Raises:
        FileNotFoundError: The source root does not exist.
        BuildError: Any load, render or assembly failure; nothing is written.
    """
    source_root = Path(source_root)
    if not source_root.is_dir():
        raise FileNotFoundError(f"Expected source directory at {source_root}")

    config = load_config(source_root)
    if root_url is not None:
        config["root_url"] = root_url
    output_dir = Path(output_dir) if output_dir else source_root / config["output_dir"]
    _check_output_dir(source_root, output_dir)

    site = dict(config)
    site["data"] = load_data(source_root)

    loader = ContentLoader(
        source_root,
        exclude=config.get("exclude") or [],
        ignore=[output_dir, source_root / CONFIG_FILE],
    )
    documents = loader.load(include_drafts=include_drafts)
    assets = loader.load_assets()
    layouts = load_layouts(source_root)

    warnings = Renderer().render_all(documents)

    assembler = SiteAssembler(
        source_root, layouts, site=site, root_url=str(config.get("root_url") or "")
    )
    tree = assembler.assemble(documents, assets)
    warnings.extend(assembler.warnings)

    tree.write(output_dir)
    return BuildResult(
        documents=documents,
        pages=assembler.pages,
        output_dir=output_dir,
        tree=tree,
        warnings=warnings,
    )
