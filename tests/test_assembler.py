from pathlib import Path

import pytest

from folio.assembler import SiteAssembler, SiteTree
from folio.content import ContentLoader
from folio.errors import LayoutCycle, OutputPathCollision, UnknownLayout
from folio.layouts import load_layouts
from folio.renderers import Renderer

LAYOUTS = {
    "_layouts/default.html": "<html><body>{{ content }}</body></html>",
    "_layouts/post.html": (
        "---\nlayout: default\n---\n"
        '<article class="post"><h1>{{ page.title }}</h1>{{ content }}</article>'
    ),
}


def _assemble(root, site=None, root_url=None, include_drafts=False):
    loader = ContentLoader(root)
    documents = loader.load(include_drafts=include_drafts)
    Renderer().render_all(documents)
    assembler = SiteAssembler(root, load_layouts(root), site=site, root_url=root_url)
    tree = assembler.assemble(documents, loader.load_assets())
    return assembler, tree


def test_nested_layouts_wrap_innermost_first(site):
    root = site({**LAYOUTS, "post.md": "---\nlayout: post\ntitle: T\n---\nHello\n"})
    _, tree = _assemble(root)
    assert tree["post/index.html"].decode() == (
        '<html><body><article class="post"><h1>T</h1><p>Hello</p>\n'
        "</article></body></html>"
    )


def test_document_without_layout_is_bare_fragment(site):
    root = site({"note.md": "Just text\n"})
    _, tree = _assemble(root)
    assert tree["note/index.html"] == b"<p>Just text</p>\n"


def test_unknown_layout(site):
    root = site({**LAYOUTS, "a.md": "---\nlayout: fancy\n---\nx\n"})
    with pytest.raises(UnknownLayout) as excinfo:
        _assemble(root)
    assert excinfo.value.source_path == Path("a.md")
    assert excinfo.value.key == "fancy"


def test_layout_cycle_fails_even_when_unused(site):
    root = site(
        {
            "_layouts/a.html": "---\nlayout: b\n---\n{{ content }}",
            "_layouts/b.html": "---\nlayout: a\n---\n{{ content }}",
            "index.md": "x\n",
        }
    )
    with pytest.raises(LayoutCycle, match="a -> b -> a"):
        _assemble(root)


def test_output_path_collision_between_documents(site):
    root = site({"about.md": "one\n", "about/index.md": "two\n"})
    with pytest.raises(OutputPathCollision) as excinfo:
        _assemble(root)
    error = excinfo.value
    assert error.source_path == Path("about/index.md")
    assert error.key == "about/index.html"
    assert "/about/index.html" in error.message
    assert "about.md" in error.message


def test_output_path_collision_via_permalink(site):
    root = site({"about.md": "one\n", "me.md": "---\npermalink: /about/\n---\ntwo\n"})
    with pytest.raises(OutputPathCollision):
        _assemble(root)


def test_output_path_collision_with_asset(site):
    root = site({"about.md": "one\n", "about/index.html": "<p>static</p>"})
    with pytest.raises(OutputPathCollision) as excinfo:
        _assemble(root)
    assert excinfo.value.source_path == Path("about/index.html")


def test_assets_are_copied_verbatim(site):
    root = site({"index.md": "x\n"})
    (root / "img").mkdir()
    (root / "img" / "dot.png").write_bytes(b"\x89PNG\x00\xff")
    _, tree = _assemble(root)
    assert tree["img/dot.png"] == b"\x89PNG\x00\xff"
    assert tree.source_of("img/dot.png") == Path("img/dot.png")
    assert list(tree) == ["img/dot.png", "index.html"]


def test_links_to_source_documents_are_resolved(site):
    root = site(
        {
            "a.md": (
                "[B](b.md) [C](sub/c.md#part) [R](/b.md) "
                "[X](https://e.com/x.md) [M](missing.md)\n"
            ),
            "b.md": "b\n",
            "sub/c.md": "[A](../a.md)\n",
        }
    )
    assembler, tree = _assemble(root)
    a = tree["a/index.html"].decode()
    assert '<a href="/b/">B</a>' in a
    assert '<a href="/sub/c/#part">C</a>' in a
    assert a.count('href="/b/"') == 2
    assert '<a href="https://e.com/x.md">X</a>' in a
    assert '<a href="missing.md">M</a>' in a
    assert '<a href="/a/">A</a>' in tree["sub/c/index.html"].decode()
    assert [str(w) for w in assembler.warnings] == [
        "a.md: link to unknown document 'missing.md'"
    ]


def test_root_url_absolutizes_links(site):
    root = site(
        {
            "_layouts/default.html": '<a href="/">home</a><img src="/img.png">{{ content }}',
            "index.md": "---\nlayout: default\n---\n[B](b.md)\n",
            "b.md": "b\n",
        }
    )
    _, tree = _assemble(root, root_url="https://x.com")
    html = tree["index.html"].decode()
    assert '<a href="https://x.com/">home</a>' in html
    assert 'src="https://x.com/img.png"' in html
    assert 'href="https://x.com/b/"' in html


def test_site_collections_in_layouts(site):
    root = site(
        {
            "_layouts/list.html": (
                "{% for p in site.pages.dated().sorted() %}{{ p.title }};{% endfor %}"
                "{% for name, pages in site.categories.items() %}"
                "[{{ name }}:{{ pages|length }}]{% endfor %}"
            ),
            "index.md": "---\nlayout: list\ntitle: Home\n---\n",
            "2024-01-01-old.md": "---\ntitle: Old\ncategories: [hdl]\n---\nx\n",
            "2024-02-01-new.md": "---\ntitle: New\ncategories: [hdl, python]\n---\nx\n",
        }
    )
    _, tree = _assemble(root)
    assert tree["index.html"].decode() == "New;Old;[hdl:2][python:1]"


def test_feeds_need_site_url_and_skip_drafts(site):
    root = site(
        {
            "2024-01-01-post.md": "---\ntitle: Post\n---\nx\n",
            "_2024-02-01-wip.md": "---\ntitle: WIP\n---\nx\n",
        }
    )
    _, tree = _assemble(root, include_drafts=True)
    assert "sitemap.xml" not in tree
    _, tree = _assemble(root, site={"url": "https://x.com"}, include_drafts=True)
    assert "wip/index.html" in tree
    sitemap = tree["sitemap.xml"].decode()
    assert "<loc>https://x.com/post/</loc>" in sitemap
    assert "wip" not in sitemap
    assert "WIP" not in tree["feed.xml"].decode()


def test_assembly_leaves_documents_untouched(site):
    root = site({"a.md": "[B](b.md)\n", "b.md": "b\n"})
    loader = ContentLoader(root)
    documents = loader.load()
    Renderer().render_all(documents)
    before = [d.rendered_body for d in documents]
    SiteAssembler(root, load_layouts(root)).assemble(documents)
    assert [d.rendered_body for d in documents] == before


def test_site_tree_write_replaces_output(tmp_path):
    out = tmp_path / "out"
    (out / "stale").mkdir(parents=True)
    (out / "stale" / "old.html").write_text("old", encoding="utf-8")
    tree = SiteTree()
    tree.add("index.html", "<p>new</p>", Path("index.md"))
    tree.add("a/b/c.txt", b"bytes", Path("a/b/c.txt"))
    tree.write(out)
    assert (out / "index.html").read_text(encoding="utf-8") == "<p>new</p>"
    assert (out / "a" / "b" / "c.txt").read_bytes() == b"bytes"
    assert not (out / "stale").exists()
    assert [p.name for p in tmp_path.iterdir()] == ["out"]


def test_site_tree_claim_is_exclusive():
    tree = SiteTree()
    tree.claim("x.html", Path("x.md"))
    tree.add("x.html", "ok", Path("x.md"))
    with pytest.raises(OutputPathCollision):
        tree.add("x.html", "again", Path("y.md"))
    assert len(tree) == 1
