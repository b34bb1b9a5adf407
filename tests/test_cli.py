from datetime import datetime

import yaml
from click.testing import CliRunner

from folio import __version__
from folio.cli import _get_content_folders, cli, main

from conftest import write_tree


def test_build_command(tmp_path):
    runner = CliRunner()
    src = write_tree(tmp_path / "src", {"index.md": "# Home\n", "about.md": "About\n"})
    out = tmp_path / "out"
    result = runner.invoke(cli, ["build", "--source", str(src), "--output", str(out)])
    assert result.exit_code == 0, result.output
    assert "Built 2 pages (2 files)" in result.output
    assert (out / "index.html").exists()
    assert (out / "about" / "index.html").exists()


def test_build_command_defaults_to_current_directory(tmp_path, monkeypatch):
    write_tree(tmp_path, {"index.md": "hi\n"})
    monkeypatch.chdir(tmp_path)
    result = CliRunner().invoke(cli, ["build"])
    assert result.exit_code == 0, result.output
    assert (tmp_path / "_site" / "index.html").exists()


def test_build_command_reports_error_taxonomy(tmp_path):
    src = write_tree(tmp_path / "src", {"post.md": "---\nlayout: nope\n---\nx\n"})
    out = tmp_path / "out"
    result = CliRunner().invoke(cli, ["build", "-s", str(src), "-o", str(out)])
    assert result.exit_code == 1
    assert "Build failed: UnknownLayout" in result.output
    assert "File: post.md" in result.output
    assert "Key: nope" in result.output
    assert not out.exists()


def test_build_command_prints_warnings(tmp_path):
    src = write_tree(tmp_path / "src", {"index.md": "x\n\n[^a]: unused\n"})
    result = CliRunner().invoke(cli, ["build", "-s", str(src), "-o", str(tmp_path / "o")])
    assert result.exit_code == 0
    assert "Warning: index.md: footnote [^a] is defined but never referenced" in result.output


def test_build_command_reports_undecodable_source(tmp_path):
    src = write_tree(tmp_path / "src", {"index.md": "fine\n"})
    (src / "a.md").write_bytes(b"caf\xe9\n")
    out = tmp_path / "out"
    result = CliRunner().invoke(cli, ["build", "-s", str(src), "-o", str(out)])
    assert result.exit_code == 1
    assert "Build failed: UndecodableSource" in result.output
    assert "File: a.md" in result.output
    assert "not valid UTF-8" in result.output
    assert not out.exists()


def test_build_command_refuses_source_root_as_output(tmp_path):
    src = write_tree(tmp_path / "src", {"index.md": "# Home\n", "post.md": "Post\n"})
    result = CliRunner().invoke(cli, ["build", "-s", str(src), "-o", str(src)])
    assert result.exit_code == 1
    assert "Build failed: UnsafeOutputDir" in result.output
    assert (src / "post.md").read_text(encoding="utf-8") == "Post\n"


def test_build_command_missing_source(tmp_path):
    result = CliRunner().invoke(cli, ["build", "-s", str(tmp_path / "missing")])
    assert result.exit_code != 0
    assert "Expected source directory" in result.output


def test_serve_command(monkeypatch, tmp_path):
    called = {}

    class DummyServer:
        def __init__(self, root, http_port=None, ws_port=None):
            called["root"] = root
            called["port"] = http_port
            called["ws_port"] = ws_port

        def start(self, include_drafts=False):
            called["drafts"] = include_drafts

    monkeypatch.setattr("folio.server.DevServer", DummyServer)
    result = CliRunner().invoke(
        cli,
        ["serve", "-s", str(tmp_path), "--drafts", "--port", "5050", "--ws-port", "5051"],
        catch_exceptions=False,
    )
    assert result.exit_code == 0
    assert called == {
        "root": tmp_path.resolve(),
        "port": 5050,
        "ws_port": 5051,
        "drafts": True,
    }


def test_version_option():
    result = CliRunner().invoke(cli, ["--version"])
    assert __version__ in result.output


def test_main_invokes_cli(monkeypatch):
    called = {}
    monkeypatch.setattr("folio.cli.cli", lambda: called.setdefault("ran", True))
    main()
    assert called["ran"]


def test_module_main_entrypoint():
    import folio.__main__ as entry

    assert entry.main is main


def test_get_content_folders(tmp_path):
    for name in ("posts", "_layouts", ".git", "about"):
        (tmp_path / name).mkdir()
    assert _get_content_folders(tmp_path) == [". (root)", "about", "posts"]


def _answer(monkeypatch, answers):
    responses = iter(answers)

    class MockQuestion:
        def ask(self):
            return next(responses)

    def prompt(*args, **kwargs):
        return MockQuestion()

    monkeypatch.setattr("folio.cli.questionary.select", prompt)
    monkeypatch.setattr("folio.cli.questionary.text", prompt)
    monkeypatch.setattr("folio.cli.questionary.confirm", prompt)


def test_post_command_creates_file(tmp_path, monkeypatch):
    write_tree(tmp_path, {"_layouts/post.html": "{{ content }}", "posts/.keep": ""})
    _answer(monkeypatch, ["posts", "My New Post", "hdl python", True])

    result = CliRunner().invoke(cli, ["post", "-s", str(tmp_path)], catch_exceptions=False)
    assert result.exit_code == 0

    prefix = datetime.now().strftime("%Y-%m-%d")
    created = tmp_path / "posts" / f"{prefix}-my-new-post.md"
    assert created.exists()
    text = created.read_text(encoding="utf-8")
    assert text.startswith("---\n")
    header = yaml.safe_load(text.split("---\n")[1])
    assert header == {
        "layout": "post",
        "title": "My New Post",
        "categories": ["hdl", "python"],
    }


def test_post_command_without_date_or_layout(tmp_path, monkeypatch):
    _answer(monkeypatch, [". (root)", "About", "", False])
    result = CliRunner().invoke(cli, ["post", "-s", str(tmp_path)], catch_exceptions=False)
    assert result.exit_code == 0
    text = (tmp_path / "about.md").read_text(encoding="utf-8")
    assert text == "---\ntitle: About\n---\n\n"


def test_post_command_duplicate_slug(tmp_path, monkeypatch):
    write_tree(tmp_path, {"posts/2024-01-01-existing-post.md": "# Existing\n"})
    _answer(monkeypatch, ["posts", "Existing Post", "", True])
    result = CliRunner().invoke(cli, ["post", "-s", str(tmp_path)])
    assert result.exit_code != 0
    assert "already exists" in result.output


def test_post_command_aborts_on_cancel(tmp_path, monkeypatch):
    _answer(monkeypatch, [None])
    result = CliRunner().invoke(cli, ["post", "-s", str(tmp_path)])
    assert result.exit_code != 0
    assert not list(tmp_path.glob("*.md"))
