from datetime import datetime

from folio.assembler import Page
from folio.collections import CategoryCollection, PageCollection

from conftest import make_document


def _page(path, date=None, categories=(), draft=False):
    doc = make_document(
        path, date=date, draft=draft, front_matter={"categories": list(categories)}
    )
    return Page(document=doc, output_path=path, url=f"/{path}", content="")


def test_filters():
    pages = PageCollection(
        [
            _page("posts/a.md", datetime(2024, 1, 1), ["hdl"]),
            _page("posts/_b.md", datetime(2024, 2, 1), draft=True),
            _page("about.md"),
        ]
    )
    assert [p.path for p in pages.in_folder("posts")] == ["posts/a.md", "posts/_b.md"]
    assert [p.path for p in pages.in_folder("")] == ["about.md"]
    assert [p.path for p in pages.in_category("hdl")] == ["posts/a.md"]
    assert len(pages.dated()) == 2
    assert [p.path for p in pages.drafts()] == ["posts/_b.md"]
    assert len(pages.published()) == 2
    assert pages[0].path == "posts/a.md"
    assert [p.path for p in pages.where(lambda p: p.path.endswith("b.md"))] == [
        "posts/_b.md"
    ]
    assert [p.path for p in pages.in_folder("posts").published()] == ["posts/a.md"]


def test_sorted_by_date_then_number_then_name():
    pages = PageCollection(
        [
            _page("2024-01-01-02-second.md", datetime(2024, 1, 1)),
            _page("2024-01-01-01-first.md", datetime(2024, 1, 1)),
            _page("2024-03-01-later.md", datetime(2024, 3, 1)),
            _page("undated.md"),
        ]
    )
    newest = [p.path for p in pages.sorted()]
    assert newest == [
        "2024-03-01-later.md",
        "2024-01-01-02-second.md",
        "2024-01-01-01-first.md",
        "undated.md",
    ]
    assert [p.path for p in pages.sorted(reverse=False)] == list(reversed(newest))
    assert [p.path for p in pages.latest(1)] == ["2024-03-01-later.md"]


def test_sorted_by_name_without_numbers():
    pages = PageCollection([_page("b.md"), _page("a.md"), _page("c.md")])
    assert [p.path for p in pages.sorted(reverse=False)] == ["a.md", "b.md", "c.md"]


def test_category_collection():
    a = _page("a.md", categories=["python", "hdl"])
    b = _page("b.md", categories=["hdl"])
    categories = CategoryCollection.from_pages([a, b])
    assert list(categories) == ["hdl", "python"]
    assert [p.path for p in categories["hdl"]] == ["a.md", "b.md"]
    assert len(categories) == 2
