"""Site building functionality for Quire.

This module contains the single render pass that turns a project into a
static site: load configuration and documents, drop drafts from every
listing, compile the stylesheet, render pages through the theme and write
the output tree.

Key functions:
- build_site: Build the entire site.
- render_pages: Render every page of a build to HTML, keyed by URL.

Draft policy: a normal build treats drafts as if they did not exist. A
``include_drafts`` build renders each draft's own page so it can be
previewed, but drafts still never appear in listings, taxonomies, feeds or
the sitemap.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path

from jinja2 import TemplateSyntaxError

from .assets import AssetPipeline, Stylesheet
from .collections import DocumentCollection, build_taxonomies
from .config import SiteConfig, load_config, resolve_environment
from .content import ContentStore, Document, DocumentBuilder
from .errors import BuildError, DuplicateDocumentError
from .feeds import FeedContext, create_default_feed_registry, feed_pages
from .templates import TemplateEngine
from .theme import Theme
from .utils import ensure_clean_dir

__all__ = ["BuildError", "BuildResult", "RenderedPage", "build_site", "render_pages"]


@dataclass
class RenderedPage:
    """One HTML page produced by a build.

    Attributes:
        url: URL path of the page.
        html: Rendered HTML.
        lastmod: Last modification time for the sitemap, if known.
        listed: Whether the page belongs in the sitemap.
    """

    url: str
    html: str
    lastmod: datetime | None = None
    listed: bool = True


@dataclass
class BuildResult:
    """Result of a site build operation.

    Attributes:
        documents: Every document rendered in this build (drafts only when included).
        published: Published documents, newest first.
        pages: URLs of every page written.
        output_dir: Directory where the site was built.
        config: Site configuration used.
        environment: Build environment name.
        stylesheet: Compiled stylesheet.
        feeds: Feed filenames written.
    """

    documents: list[Document]
    published: DocumentCollection
    pages: list[str]
    output_dir: Path
    config: SiteConfig
    environment: str
    stylesheet: Stylesheet
    feeds: list[str]


def build_site(
    project_root: Path,
    include_drafts: bool = False,
    environment: str | None = None,
    base_url: str | None = None,
    clean_output: bool = True,
    output_dir_override: Path | None = None,
) -> BuildResult:
    """Build the entire static site.

    Args:
        project_root: Root directory of the project.
        include_drafts: Render draft documents' own pages (never listed).
        environment: Build environment; defaults to QUIRE_ENV or "development".
        base_url: Optional override of the configured base URL.
        clean_output: Whether to wipe the output directory before building.
        output_dir_override: Write the build here instead of config output_dir.

    Returns:
        BuildResult describing what was written.

    Raises:
        BuildError: If the configuration, a document or a template is invalid.
        FileNotFoundError: If the content directory does not exist.
    """
    config = load_config(project_root)
    if base_url is not None:
        config = config.with_base_url(base_url)
    resolved_env = resolve_environment(environment)
    output_dir = output_dir_override or (project_root / config.output_dir)

    content_dir = project_root / config.content_dir
    if not content_dir.exists():
        raise FileNotFoundError(f"Expected content directory at {content_dir}")
    builder = DocumentBuilder(content_dir, summary_length=config.summary_length)
    documents = ContentStore(content_dir, builder=builder).load(
        include_drafts=include_drafts
    )

    theme = Theme(overrides_dir=project_root / config.layouts_dir)
    pipeline = AssetPipeline(theme, project_root / config.static_dir, output_dir)
    try:
        stylesheet = pipeline.compile_stylesheet(config.style)
    except Exception as exc:
        raise BuildError(
            theme.assets_dir, _format_error_message(exc), exc
        ) from exc

    engine = TemplateEngine(config, theme, stylesheet, environment=resolved_env)
    published = DocumentCollection(documents).published().sorted()
    pages = render_pages(engine, config, documents)

    if clean_output:
        ensure_clean_dir(output_dir)
    else:
        output_dir.mkdir(parents=True, exist_ok=True)
    pipeline.copy_static()
    stylesheet.write(output_dir)
    for page in pages:
        _write_page(output_dir, page)

    feed_context = FeedContext(
        config=config,
        listing=published.in_sections(config.main_sections),
        pages=feed_pages((p.url, p.lastmod) for p in pages if p.listed),
    )
    feeds = create_default_feed_registry().generate_all(output_dir, feed_context)

    return BuildResult(
        documents=documents,
        published=published,
        pages=[p.url for p in pages],
        output_dir=output_dir,
        config=config,
        environment=resolved_env,
        stylesheet=stylesheet,
        feeds=feeds,
    )


def render_pages(
    engine: TemplateEngine, config: SiteConfig, documents: list[Document]
) -> list[RenderedPage]:
    """Render every page of the site.

    Generated pages (home, sections, taxonomies) are computed from the
    published documents only. Each document in ``documents`` gets its own
    page; drafts among them are excluded from the sitemap.

    Raises:
        DuplicateDocumentError: If a document's URL is one the build generates.
        BuildError: If a template fails to render.
    """
    published = DocumentCollection(documents).published().sorted()
    taxonomies = build_taxonomies(published)
    engine.update_collections(published, taxonomies)
    newest = published[0].date if published else None

    generated: list[tuple[str, Callable[[], str], datetime | None]] = []
    generated.append(
        ("/", lambda: engine.render_home(published.in_sections(config.main_sections)), newest)
    )
    sections = sorted({d.section for d in published if d.section})
    for name in sections:
        listing = published.section(name)
        generated.append(
            (f"/{name}/", _bind(engine.render_section, name, listing), listing[0].date)
        )
    for taxonomy in taxonomies.values():
        if not taxonomy:
            continue
        generated.append((taxonomy.url, _bind(engine.render_taxonomy, taxonomy), newest))
        for name, term in taxonomy.items():
            generated.append(
                (term.url, _bind(engine.render_term, taxonomy, name), term.documents[0].date)
            )

    reserved = {url for url, _, _ in generated}
    theme_source = engine.theme.layouts_dir
    pages: list[RenderedPage] = []
    for url, render, lastmod in generated:
        pages.append(RenderedPage(url, _render(theme_source, render), lastmod))
    for document in sorted(documents, key=lambda d: d.id):
        if document.url in reserved:
            raise DuplicateDocumentError(
                document.path, f"URL {document.url} is reserved for a generated page"
            )
        html = _render(document.path, _bind(engine.render_document, document))
        pages.append(
            RenderedPage(document.url, html, document.modified, listed=not document.draft)
        )
    pages.append(
        RenderedPage("/404.html", _render(theme_source, engine.render_not_found), listed=False)
    )
    return pages


def _bind(func: Callable[..., str], *args) -> Callable[[], str]:
    return lambda: func(*args)


def _render(source_path: Path, render: Callable[[], str]) -> str:
    try:
        return render()
    except TemplateSyntaxError as exc:
        raise BuildError(
            Path(exc.filename) if exc.filename else source_path,
            f"Template syntax error on line {exc.lineno}: {exc.message}",
            exc,
        ) from exc
    except Exception as exc:
        raise BuildError(source_path, _format_error_message(exc), exc) from exc


def _format_error_message(exc: Exception) -> str:
    """Format an exception into a user-friendly error message."""
    error_type = type(exc).__name__
    error_msg = str(exc)

    if error_type == "UndefinedError":
        return f"Undefined variable: {error_msg}"
    if error_type == "TemplateNotFound":
        return f"Template not found: {error_msg}"
    if error_type == "TypeError":
        return f"Type error: {error_msg}"
    if error_type == "AttributeError":
        return f"Attribute error: {error_msg}"

    return f"{error_type}: {error_msg}"


def _write_page(output_dir: Path, page: RenderedPage) -> None:
    """Write a rendered page; directory URLs become ``<url>/index.html``."""
    url_path = page.url.strip("/")
    if url_path.endswith(".html"):
        html_path = output_dir / url_path
    else:
        html_path = output_dir / url_path / "index.html"
    html_path.parent.mkdir(parents=True, exist_ok=True)
    with open(html_path, "w", encoding="utf-8") as f:
        f.write(page.html)
