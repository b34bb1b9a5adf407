"""``folio`` command line: ``build``, ``serve`` and ``post``.

Build failures are printed as their error kind, source path and message,
and exit with status 1.
"""

from __future__ import annotations

from datetime import datetime
from pathlib import Path

import click
import questionary
import yaml

from . import __version__
from .errors import BuildError
from .utils import slugify

_SOURCE_OPTION = click.option(
    "--source",
    "-s",
    type=click.Path(file_okay=False, path_type=Path),
    default=".",
    show_default=True,
    help="Site source root",
)

ROOT_FOLDER = ". (root)"

PROMPT_STYLE = questionary.Style(
    [
        ("qmark", "fg:green bold"),
        ("question", "bold"),
        ("answer", "fg:green"),
        ("pointer", "fg:green bold"),
        ("highlighted", "fg:green bold"),
    ]
)


@click.group()
@click.version_option(version=__version__, prog_name="folio")
def cli():
    """Folio static site generator."""


@cli.command()
@_SOURCE_OPTION
@click.option(
    "--output",
    "-o",
    type=click.Path(file_okay=False, path_type=Path),
    default=None,
    help="Output root (defaults to output_dir from folio.yaml, '_site')",
)
@click.option("--drafts", is_flag=True, help="Include draft content")
@click.option("--root-url", default=None, help="Base URL for absolute links")
def build(source: Path, output: Path | None, drafts: bool, root_url: str | None):
    """Build the site into the output directory."""
    from .build import build_site

    try:
        result = build_site(
            source, output_dir=output, include_drafts=drafts, root_url=root_url
        )
    except BuildError as exc:
        _report_build_error(exc)
        raise SystemExit(1) from None
    except FileNotFoundError as exc:
        raise click.ClickException(str(exc)) from None
    for warning in result.warnings:
        click.echo(click.style(f"Warning: {warning}", fg="yellow"), err=True)
    click.echo(
        f"Built {len(result.pages)} pages ({len(result.tree)} files) "
        f"into {result.output_dir}"
    )


def _report_build_error(exc: BuildError) -> None:
    """Print a build error with its kind, file and key."""
    click.echo(click.style(f"Build failed: {exc.kind}", fg="red", bold=True), err=True)
    click.echo(click.style(f"  File: {exc.source_path.as_posix()}", fg="yellow"), err=True)
    if exc.key is not None:
        click.echo(click.style(f"  Key: {exc.key}", fg="yellow"), err=True)
    click.echo(click.style(f"  Error: {exc.message}", fg="white"), err=True)


@cli.command()
@_SOURCE_OPTION
@click.option("--drafts", is_flag=True, help="Include draft content")
@click.option(
    "--port",
    type=int,
    required=False,
    help="Port to run the dev server (overrides folio.yaml)",
)
@click.option(
    "--ws-port",
    type=int,
    required=False,
    help="Port for the live reload websocket server (overrides folio.yaml ws_port)",
)
def serve(source: Path, drafts: bool, port: int | None, ws_port: int | None):
    """Run dev server with live reload."""
    from .server import DevServer

    server = DevServer(source.resolve(), http_port=port, ws_port=ws_port)
    server.start(include_drafts=drafts)


@cli.command()
@_SOURCE_OPTION
def post(source: Path):
    """Create a new Markdown post interactively."""
    source_root = source.resolve()
    if not source_root.is_dir():
        raise click.ClickException(f"No source directory at {source_root}")

    folders = _get_content_folders(source_root)
    folder = _ask(questionary.select("Folder:", choices=folders, style=PROMPT_STYLE))
    title = _ask(
        questionary.text(
            "Title:",
            validate=lambda text: bool(text.strip()) or "A title is required",
            style=PROMPT_STYLE,
        )
    ).strip()
    categories = _ask(
        questionary.text("Categories (space separated, optional):", style=PROMPT_STYLE)
    ).split()
    dated = _ask(
        questionary.confirm(
            "Prefix the file name with today's date?", default=True, style=PROMPT_STYLE
        )
    )

    slug = slugify(title)
    target_dir = source_root if folder == ROOT_FOLDER else source_root / folder
    clash = next(
        (path for path in _iter_markdown(target_dir) if slugify(path.stem) == slug), None
    )
    if clash is not None:
        raise click.ClickException(f"'{clash.name}' already exists with slug '{slug}'")

    stamp = datetime.now().strftime("%Y-%m-%d-") if dated else ""
    target = target_dir / f"{stamp}{slug}.md"
    front_matter: dict = {}
    if (source_root / "_layouts" / "post.html").exists():
        front_matter["layout"] = "post"
    front_matter["title"] = title
    if categories:
        front_matter["categories"] = categories

    target_dir.mkdir(parents=True, exist_ok=True)
    header = yaml.safe_dump(front_matter, sort_keys=False, allow_unicode=True)
    target.write_text(f"---\n{header}---\n\n", encoding="utf-8")
    click.echo(f"Created {target.relative_to(source_root).as_posix()}")


def _ask(question):
    """Answer to a questionary prompt; Ctrl-C aborts the command."""
    answer = question.ask()
    if answer is None:
        raise click.Abort()
    return answer


def _get_content_folders(source_root: Path) -> list[str]:
    """Top-level folders a post can go in, the root first."""
    return [ROOT_FOLDER] + sorted(
        path.name
        for path in source_root.iterdir()
        if path.is_dir() and not path.name.startswith(("_", "."))
    )


def _iter_markdown(folder: Path) -> list[Path]:
    if not folder.exists():
        return []
    return [f for f in folder.iterdir() if f.is_file() and f.suffix == ".md"]


def main():
    cli()
