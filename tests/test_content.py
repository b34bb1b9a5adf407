from datetime import datetime
from pathlib import Path

import pytest

from folio.content import (
    ContentLoader,
    DocumentBuilder,
    FileContentLoader,
    has_front_matter,
)
from folio.errors import MalformedFrontMatter
from folio.extractors import (
    CompositeMetadataExtractor,
    DateExtractor,
    DescriptionExtractor,
    FrontMatterExtractor,
    TitleExtractor,
)

SITE_FILES = {
    "index.md": "# Welcome\n\nHome page.\n",
    "about.md": "---\ntitle: About Me\nlayout: default\n---\nI write about hardware.\n",
    "posts/2024-01-15-hello-world.md": (
        "---\ntitle: Hello\ncategories: hdl\n---\nFirst post.\n"
    ),
    "posts/_draft-idea.md": "Unfinished\n",
    "_layouts/default.html": "{{ content }}",
    "_partials/nav.html": "<nav></nav>",
    "_data/authors.yaml": "sam: Sam\n",
    ".git/config": "[core]\n",
    ".hidden.md": "secret\n",
    "assets/style.css": "body {}\n",
    "assets/_notes.txt": "private\n",
    "page.html": "---\ntitle: Page\n---\n<p>Hi</p>\n",
    "raw.html": "<p>raw</p>\n",
    "folio.yaml": "title: Site\n",
}


@pytest.fixture
def root(site):
    return site(SITE_FILES)


def test_loads_documents_sorted_by_path(root):
    loader = ContentLoader(root, ignore=[root / "folio.yaml"])
    docs = loader.load()
    assert [d.path for d in docs] == [
        "about.md",
        "index.md",
        "page.html",
        "posts/2024-01-15-hello-world.md",
    ]


def test_drafts_are_opt_in(root):
    loader = ContentLoader(root)
    docs = loader.load(include_drafts=True)
    draft = docs[-1]
    assert draft.path == "posts/_draft-idea.md"
    assert draft.draft is True
    assert draft.slug == "draft-idea"
    assert draft.title == "Draft Idea"


def test_assets_exclude_content_internal_and_drafts(root):
    loader = ContentLoader(root, ignore=[root / "folio.yaml"])
    assert [a.path for a in loader.load_assets()] == ["assets/style.css", "raw.html"]
    assert loader.load_assets()[0].source_path == root / "assets" / "style.css"


def test_document_fields(root):
    docs = {d.path: d for d in ContentLoader(root).load()}

    post = docs["posts/2024-01-15-hello-world.md"]
    assert post.title == "Hello"
    assert post.date == datetime(2024, 1, 15)
    assert post.slug == "hello-world"
    assert post.categories == ["hdl"]
    assert post.folder == "posts"
    assert post.description == "First post."
    assert post.body == "First post.\n"
    assert post.rendered_body == ""
    assert post.source_type == "markdown"
    assert post.layout is None

    index = docs["index.md"]
    assert index.title == "Welcome"
    assert index.slug == ""
    assert index.folder == ""
    assert index.description == "Home page."
    assert index.front_matter == {}

    about = docs["about.md"]
    assert about.layout == "default"
    assert about.title == "About Me"

    page = docs["page.html"]
    assert page.source_type == "html"
    assert page.description == ""
    assert page.body == "<p>Hi</p>\n"


def test_loading_is_deterministic(root):
    loader = ContentLoader(root)
    assert loader.load() == loader.load()
    assert ContentLoader(root).load() == loader.load()


def test_exclude_patterns(root):
    loader = ContentLoader(root, exclude=["posts"])
    assert all(not d.path.startswith("posts/") for d in loader.load())
    loader = ContentLoader(root, exclude=["*.html"])
    assert "page.html" not in [d.path for d in loader.load()]


def test_malformed_front_matter_rejects_the_load(site):
    root = site({"good.md": "fine\n", "bad.md": "---\ntitle: never closed\n\nbody\n"})
    with pytest.raises(MalformedFrontMatter) as excinfo:
        ContentLoader(root).load()
    assert excinfo.value.source_path == Path("bad.md")


def test_empty_front_matter_block_is_not_an_error(site):
    root = site({"empty.md": "---\n---\nBody\n"})
    (doc,) = ContentLoader(root).load()
    assert doc.front_matter == {}
    assert doc.body == "Body\n"


def test_front_matter_date_overrides_filename(site):
    root = site({"2020-01-01-x.md": "---\ndate: 2023-05-01\n---\nx\n"})
    (doc,) = ContentLoader(root).load()
    assert doc.date == datetime(2023, 5, 1)


def test_has_front_matter(site):
    root = site({"a.html": "---\n---\n<p></p>", "b.html": "<p>---</p>"})
    assert has_front_matter(root / "a.html")
    assert not has_front_matter(root / "b.html")


def test_file_loader_ignores_output_dir(site):
    root = site({"index.md": "x", "_site/index.md": "old", "out/page.md": "old"})
    loader = FileContentLoader(root, ignore=[root / "out"])
    assert [p.relative_to(root).as_posix() for p in loader.iter_files()] == ["index.md"]


def test_document_builder_uses_custom_extractor(site):
    root = site({"note.md": "# Heading\n"})

    class Shout:
        def extract(self, content, path, metadata):
            return {"title": metadata["title"].upper()}

    extractor = CompositeMetadataExtractor()
    extractor.add_extractor(Shout())
    doc = DocumentBuilder(root, extractor).build(root / "note.md")
    assert doc.title == "HEADING"


def test_title_extractor_skips_fenced_headings():
    body = "```\n# not a title\n```\n\n# Real\n"
    meta = {"front_matter": {}, "body": body}
    assert TitleExtractor().extract(body, Path("x.md"), meta) == {"title": "Real"}
    meta = {"front_matter": {}, "body": "no heading"}
    assert TitleExtractor().extract("", Path("2024-01-01-my_post.md"), meta) == {
        "title": "My Post"
    }


def test_date_and_description_extractors():
    meta = {"front_matter": {"date": "2024-03-04"}}
    assert DateExtractor().extract("", Path("x.md"), meta) == {
        "date": datetime(2024, 3, 4)
    }
    assert DateExtractor().extract("", Path("x.md"), {}) == {"date": None}

    meta = {"front_matter": {}, "body": "# T\n\n![img](a.png)\n\nSome <b>bold</b> text[^1].\n"}
    assert DescriptionExtractor().extract("", Path("x.md"), meta) == {
        "description": "Some bold text."
    }


def test_front_matter_extractor():
    result = FrontMatterExtractor().extract("---\na: 1\n---\nbody", Path("x.md"), {})
    assert result == {"front_matter": {"a": 1}, "body": "body"}
