from datetime import datetime, timezone
from pathlib import Path

from quire.collections import DocumentCollection
from quire.config import SiteConfig
from quire.content import Document
from quire.feeds import (
    FeedContext,
    RSSGenerator,
    SitemapGenerator,
    create_default_feed_registry,
    feed_pages,
)


def make_doc(slug, day, title=None):
    date = datetime(2024, 5, day, tzinfo=timezone.utc)
    return Document(
        id=f"posts/{slug}.md",
        title=title or slug.title(),
        description="",
        date=date,
        modified=date,
        categories=[],
        tags=[],
        draft=False,
        body="",
        content="",
        slug=slug,
        url=f"/posts/{slug}/",
        section="posts",
        path=Path(f"{slug}.md"),
    )


def make_context(base_url="https://example.com", docs=None):
    listing = DocumentCollection(docs or []).sorted()
    pages = feed_pages(
        [("/posts/", None)] + [(d.url, d.modified) for d in listing]
    )
    return FeedContext(config=SiteConfig(base_url=base_url), listing=listing, pages=pages)


def test_rss_items_newest_first_and_escaped():
    docs = [make_doc("older", 1), make_doc("newer", 9, title="Fish & Chips")]
    rss = RSSGenerator().generate(make_context(docs=docs))

    assert rss.startswith('<?xml version="1.0" encoding="UTF-8"?>')
    assert "<title>Fish &amp; Chips</title>" in rss
    assert rss.index("/posts/newer/") < rss.index("/posts/older/")
    assert "<guid>https://example.com/posts/newer/</guid>" in rss
    assert "<lastBuildDate>Thu, 09 May 2024 00:00:00 +0000</lastBuildDate>" in rss


def test_rss_limit():
    docs = [make_doc(f"p{day}", day) for day in range(1, 6)]
    rss = RSSGenerator(limit=2).generate(make_context(docs=docs))
    assert rss.count("<item>") == 2
    assert "/posts/p5/" in rss and "/posts/p4/" in rss


def test_empty_rss_has_no_build_date():
    rss = RSSGenerator().generate(make_context())
    assert "<lastBuildDate>" not in rss
    assert "<item>" not in rss


def test_sitemap_sorted_by_url():
    sitemap = SitemapGenerator().generate(make_context(docs=[make_doc("b", 2), make_doc("a", 1)]))
    locs = [line for line in sitemap.splitlines() if "<loc>" in line]
    assert locs == [
        "  <url><loc>https://example.com/posts/</loc></url>",
        "  <url><loc>https://example.com/posts/a/</loc><lastmod>2024-05-01</lastmod></url>",
        "  <url><loc>https://example.com/posts/b/</loc><lastmod>2024-05-02</lastmod></url>",
    ]


def test_registry_skips_feeds_without_base_url(tmp_path):
    registry = create_default_feed_registry()
    assert registry.generate_all(tmp_path, make_context(base_url="")) == []
    assert list(tmp_path.iterdir()) == []

    written = registry.generate_all(tmp_path, make_context(docs=[make_doc("a", 1)]))
    assert written == ["index.xml", "sitemap.xml"]
    assert (tmp_path / "index.xml").exists()
