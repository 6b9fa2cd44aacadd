"""Feed generation for Quire.

This module generates ``index.xml`` (RSS 2.0) and ``sitemap.xml`` from the
published documents. Both need an absolute ``base_url`` and are skipped
when none is configured.

Neither feed embeds wall-clock time: RSS uses the newest document's date
as its ``lastBuildDate``.

Classes:
    FeedGenerator: Base class for feed generators.
    SitemapGenerator: Generates sitemap.xml.
    RSSGenerator: Generates index.xml.
    FeedRegistry: Runs every registered generator.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path

from .collections import DocumentCollection
from .config import SiteConfig
from .html_utils import escape_html, join_root_url, xml_date


@dataclass(frozen=True)
class FeedContext:
    """Everything a feed needs from a build.

    Attributes:
        config: Site configuration.
        listing: Published documents in the main sections, newest first.
        pages: Every rendered URL with its last modification time.
    """

    config: SiteConfig
    listing: DocumentCollection
    pages: tuple[tuple[str, datetime | None], ...]


class FeedGenerator(ABC):
    """Abstract base class for feed generators."""

    @property
    @abstractmethod
    def filename(self) -> str:
        """Return the output filename for this feed."""
        ...

    @abstractmethod
    def generate(self, context: FeedContext) -> str | None:
        """Generate feed content, or None if the feed cannot be generated."""
        ...

    def write(self, output_dir: Path, context: FeedContext) -> bool:
        """Generate and write the feed to the output directory.

        Returns:
            True if the feed was written, False if skipped.
        """
        content = self.generate(context)
        if content is None:
            return False
        (output_dir / self.filename).write_text(content, encoding="utf-8")
        return True


class SitemapGenerator(FeedGenerator):
    """Generates sitemap.xml following the sitemaps.org protocol."""

    @property
    def filename(self) -> str:
        return "sitemap.xml"

    def generate(self, context: FeedContext) -> str | None:
        base_url = context.config.base_url
        if not base_url:
            return None
        lines = [
            '<?xml version="1.0" encoding="UTF-8"?>',
            '<urlset xmlns="http://www.sitemaps.org/schemas/sitemap/0.9">',
        ]
        for url, lastmod in context.pages:
            loc = escape_html(join_root_url(base_url, url))
            if lastmod is None:
                lines.append(f"  <url><loc>{loc}</loc></url>")
            else:
                lines.append(
                    f"  <url><loc>{loc}</loc>"
                    f"<lastmod>{lastmod.strftime('%Y-%m-%d')}</lastmod></url>"
                )
        lines.append("</urlset>")
        return "\n".join(lines) + "\n"


class RSSGenerator(FeedGenerator):
    """Generates an RSS 2.0 feed of the main-section documents."""

    def __init__(self, limit: int | None = None):
        self.limit = limit

    @property
    def filename(self) -> str:
        return "index.xml"

    def generate(self, context: FeedContext) -> str | None:
        config = context.config
        if not config.base_url:
            return None
        listing = list(context.listing)
        if self.limit is not None:
            listing = listing[: self.limit]

        rss = [
            '<?xml version="1.0" encoding="UTF-8"?>',
            '<rss version="2.0"><channel>',
            f"<title>{escape_html(config.title)}</title>",
            f"<link>{escape_html(join_root_url(config.base_url, '/'))}</link>",
            f"<description>{escape_html(config.description or config.title)}</description>",
            f"<language>{escape_html(config.language_code)}</language>",
        ]
        if listing:
            rss.append(f"<lastBuildDate>{xml_date(listing[0].date)}</lastBuildDate>")
        for document in listing:
            link = escape_html(join_root_url(config.base_url, document.url))
            rss.append(
                f"<item><title>{escape_html(document.title)}</title>"
                f"<link>{link}</link><guid>{link}</guid>"
                f"<description>{escape_html(document.description or document.title)}</description>"
                f"<pubDate>{xml_date(document.date)}</pubDate></item>"
            )
        rss.append("</channel></rss>")
        return "\n".join(rss) + "\n"


class FeedRegistry:
    """Registry for feed generators run at the end of a build."""

    def __init__(self) -> None:
        self._generators: list[FeedGenerator] = []

    def register(self, generator: FeedGenerator) -> None:
        self._generators.append(generator)

    def generate_all(self, output_dir: Path, context: FeedContext) -> list[str]:
        """Generate all registered feeds.

        Returns:
            Filenames that were written.
        """
        generated = []
        for generator in self._generators:
            if generator.write(output_dir, context):
                generated.append(generator.filename)
        return generated


def create_default_feed_registry() -> FeedRegistry:
    registry = FeedRegistry()
    registry.register(RSSGenerator())
    registry.register(SitemapGenerator())
    return registry


def feed_pages(
    urls: Iterable[tuple[str, datetime | None]],
) -> tuple[tuple[str, datetime | None], ...]:
    """Sort rendered URLs so sitemap output does not depend on write order."""
    return tuple(sorted(urls, key=lambda item: item[0]))
