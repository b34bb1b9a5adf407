from pathlib import Path

import pytest

from folio.content import Document


def write_tree(root: Path, files: dict) -> Path:
    for rel, text in files.items():
        path = root / rel
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(text, encoding="utf-8")
    return root


def make_document(path="about.md", body="", front_matter=None, **overrides):
    stem = Path(path).stem.lstrip("_")
    values = dict(
        path=path,
        source_path=Path("/site") / path,
        front_matter=dict(front_matter or {}),
        body=body,
        title=stem.title(),
        description="",
        date=None,
        slug="" if stem == "index" else stem,
        source_type="html" if path.endswith(".html") else "markdown",
    )
    values.update(overrides)
    return Document(**values)


@pytest.fixture
def site(tmp_path):
    """Factory writing a source tree under ``tmp_path / 'site'``."""
    root = tmp_path / "site"
    root.mkdir()

    def _write(files: dict) -> Path:
        return write_tree(root, files)

    return _write
