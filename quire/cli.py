"""Command-line interface for Quire.

This module defines the CLI commands using the Click framework.

Commands:
- new: Scaffold a new Quire project.
- build: Build the site into the output directory.
- serve: Run the development server with live reload.
- post: Create a new post interactively.
"""

from __future__ import annotations

import os
import shutil
import subprocess
from datetime import datetime, timezone
from pathlib import Path

import click
import questionary
import yaml

from . import __version__
from .utils import slugify

# Files copied into every new project
_SCAFFOLD_DIR = Path(__file__).parent / "scaffold"

_ROOT_CHOICE = ". (root)"


@click.group()
@click.version_option(version=__version__, prog_name="quire")
def cli():
    """Quire static blog generator."""


@cli.command()
@click.argument("name")
def new(name: str):
    """Scaffold a new Quire project."""
    target = Path(name).resolve()
    if target.exists() and any(target.iterdir()):
        raise click.ClickException(
            f"Refusing to initialize into non-empty directory: {target}"
        )
    _scaffold(target)
    click.echo(f"New Quire site created at {target}")


@cli.command()
@click.option("--drafts", is_flag=True, help="Render draft pages (never listed)")
@click.option(
    "--environment",
    "-e",
    default=None,
    help="Build environment (defaults to $QUIRE_ENV or 'development')",
)
@click.option(
    "--output",
    "-o",
    type=click.Path(file_okay=False, path_type=Path),
    default=None,
    help="Output directory (overrides quire.yaml output_dir)",
)
def build(drafts: bool, environment: str | None, output: Path | None):
    """Build the site into the output directory."""
    project_root = Path.cwd()
    from .build import build_site
    from .errors import BuildError

    try:
        result = build_site(
            project_root,
            include_drafts=drafts,
            environment=environment,
            output_dir_override=output.resolve() if output else None,
        )
    except BuildError as exc:
        _report_build_error(project_root, exc)
        raise SystemExit(1) from None
    except FileNotFoundError as exc:
        raise click.ClickException(str(exc)) from None
    click.echo(
        f"Built {len(result.pages)} pages ({result.environment}) into {result.output_dir}"
    )


def _report_build_error(project_root: Path, exc) -> None:
    try:
        rel_path = exc.source_path.resolve().relative_to(project_root.resolve())
    except ValueError:
        rel_path = exc.source_path
    click.echo(click.style("Build failed:", fg="red", bold=True), err=True)
    click.echo(click.style(f"  File: {rel_path}", fg="yellow"), err=True)
    click.echo(click.style(f"  Error: {exc.message}", fg="white"), err=True)


@cli.command()
@click.option("--drafts", is_flag=True, help="Render draft pages (never listed)")
@click.option(
    "--port",
    type=int,
    required=False,
    help="Port to run the dev server (overrides quire.yaml)",
)
@click.option(
    "--ws-port",
    type=int,
    required=False,
    help="Port for the live reload websocket server (defaults to port + 1)",
)
def serve(drafts: bool, port: int | None, ws_port: int | None):
    """Run dev server with live reload."""
    project_root = Path.cwd()
    from .errors import BuildError
    from .server import DevServer

    try:
        server = DevServer(project_root, http_port=port, ws_port=ws_port)
        server.start(include_drafts=drafts)
    except BuildError as exc:
        _report_build_error(project_root, exc)
        raise SystemExit(1) from None


@cli.command()
def post():
    """Create a new post interactively."""
    project_root = Path.cwd()
    from .config import load_config
    from .errors import BuildError

    try:
        config = load_config(project_root)
    except BuildError as exc:
        _report_build_error(project_root, exc)
        raise SystemExit(1) from None
    content_dir = project_root / config.content_dir
    if not content_dir.exists():
        raise click.ClickException(
            f"No {config.content_dir}/ directory found. Run this command from a Quire project root."
        )

    folders = _get_content_folders(content_dir)
    default_folder = next(
        (s for s in config.main_sections if s in folders), folders[0]
    )
    folder = questionary.select(
        "Select section:",
        choices=folders,
        default=default_folder,
        style=_questionary_style(),
    ).ask()
    if folder is None:
        raise click.Abort()

    title = questionary.text(
        "Title:",
        validate=lambda x: len(x.strip()) > 0 or "Title cannot be empty",
        style=_questionary_style(),
    ).ask()
    if title is None:
        raise click.Abort()
    title = title.strip()

    draft = questionary.confirm(
        "Start as a draft?",
        default=True,
        style=_questionary_style(),
    ).ask()
    if draft is None:
        raise click.Abort()

    target_dir = content_dir if folder == _ROOT_CHOICE else content_dir / folder
    now = datetime.now(timezone.utc).replace(microsecond=0)
    slug = slugify(title)
    target_path = target_dir / f"{now.strftime('%Y-%m-%d')}-{slug}.md"

    if slug in _get_existing_slugs(target_dir):
        raise click.ClickException(
            f"A post with slug '{slug}' already exists in {target_dir.relative_to(project_root)}"
        )

    target_dir.mkdir(parents=True, exist_ok=True)
    target_path.write_text(_new_post_text(title, now, draft), encoding="utf-8")
    click.echo(f"Created {target_path.relative_to(project_root)}")


def _new_post_text(title: str, date: datetime, draft: bool) -> str:
    frontmatter = {
        "title": title,
        "date": date.isoformat(),
        "draft": draft,
        "description": "",
        "categories": [],
        "tags": [],
    }
    block = yaml.safe_dump(frontmatter, sort_keys=False, allow_unicode=True)
    return f"---\n{block}---\n\n"


def _get_content_folders(content_dir: Path) -> list[str]:
    """List content folders, skipping hidden ones, with the root option first."""
    folders = sorted(
        path.name
        for path in content_dir.iterdir()
        if path.is_dir() and not path.name.startswith(".")
    )
    folders.insert(0, _ROOT_CHOICE)
    return folders


def _get_existing_slugs(folder: Path) -> set[str]:
    slugs = set()
    if folder.exists():
        for f in folder.iterdir():
            if f.is_file() and f.suffix == ".md":
                slugs.add(slugify(f.stem))
    return slugs


def _questionary_style():
    """Return consistent questionary style."""
    return questionary.Style(
        [
            ("qmark", "fg:cyan bold"),
            ("question", "bold"),
            ("answer", "fg:cyan"),
            ("pointer", "fg:cyan bold"),
            ("highlighted", "fg:cyan bold"),
            ("selected", "fg:cyan"),
        ]
    )


def main():
    """Entry point for the CLI application."""
    cli()


def _scaffold(root: Path) -> None:
    """Create the directory structure and files for a new Quire project."""
    for src_path in _SCAFFOLD_DIR.rglob("*"):
        if src_path.is_dir():
            continue
        dest_path = root / src_path.relative_to(_SCAFFOLD_DIR)
        dest_path.parent.mkdir(parents=True, exist_ok=True)
        shutil.copy2(src_path, dest_path)
    (root / ".gitignore").write_text("/public/\n", encoding="utf-8")
    _try_git_init(root)


def _try_git_init(root: Path) -> None:
    """Initialize a git repository if git is available."""
    if os.environ.get("QUIRE_SKIP_GIT_INIT") == "1":
        return
    git_bin = shutil.which("git")
    if not git_bin:
        return
    try:
        subprocess.run(
            [git_bin, "init"],
            cwd=root,
            check=True,
            capture_output=True,
        )
    except (OSError, subprocess.CalledProcessError):
        click.echo("git init failed; run it manually if you want version control.")
