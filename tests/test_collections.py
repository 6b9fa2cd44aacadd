from datetime import datetime, timezone
from pathlib import Path

from quire.collections import DocumentCollection, TaxonomyCollection, build_taxonomies
from quire.content import Document


def make_doc(title, date, section="posts", tags=None, categories=None, draft=False):
    slug = title.lower().replace(" ", "-")
    return Document(
        id=f"{section}/{slug}.md" if section else f"{slug}.md",
        title=title,
        description="",
        date=datetime(*date, tzinfo=timezone.utc),
        modified=datetime(*date, tzinfo=timezone.utc),
        categories=categories or [],
        tags=tags or [],
        draft=draft,
        body="",
        content="",
        slug=slug,
        url=f"/{section}/{slug}/" if section else f"/{slug}/",
        section=section,
        path=Path(f"{slug}.md"),
    )


def test_filters_and_latest():
    docs = DocumentCollection(
        [
            make_doc("A", (2024, 1, 2), tags=["python"]),
            make_doc("B", (2024, 1, 3), draft=True),
            make_doc("C", (2024, 1, 1), section="", categories=["meta"]),
        ]
    )
    assert len(docs) == 3
    assert [d.title for d in docs.published()] == ["A", "C"]
    assert [d.title for d in docs.drafts()] == ["B"]
    assert [d.title for d in docs.section("posts")] == ["A", "B"]
    assert [d.title for d in docs.in_sections(["posts", ""])] == ["A", "B", "C"]
    assert [d.title for d in docs.with_tag("python")] == ["A"]
    assert [d.title for d in docs.in_category("meta")] == ["C"]
    assert docs.latest(1)[0].title == "B"


def test_tag_and_category_lookups_match_by_slug():
    docs = DocumentCollection(
        [
            make_doc("A", (2024, 1, 2), tags=["Python"], categories=["Release Notes"]),
            make_doc("B", (2024, 1, 3), tags=["python"]),
            make_doc("C", (2024, 1, 1), tags=["Rust"]),
        ]
    )
    assert [d.title for d in docs.with_tag("python")] == ["A", "B"]
    assert [d.title for d in docs.with_tag("PYTHON")] == ["A", "B"]
    assert [d.title for d in docs.in_category("release-notes")] == ["A"]
    assert [d.title for d in docs.in_category("Release Notes")] == ["A"]


def test_sorted_is_non_increasing_by_date():
    docs = DocumentCollection(
        [
            make_doc("Middle", (2024, 2, 1)),
            make_doc("Old", (2023, 12, 31)),
            make_doc("New", (2024, 3, 1)),
        ]
    )
    ordered = docs.sorted()
    assert [d.title for d in ordered] == ["New", "Middle", "Old"]
    dates = [d.date for d in ordered]
    assert all(a >= b for a, b in zip(dates, dates[1:]))
    assert [d.title for d in docs.sorted(reverse=False)] == ["Old", "Middle", "New"]


def test_sorted_ties_break_on_title():
    docs = DocumentCollection(
        [
            make_doc("Zebra", (2024, 1, 1)),
            make_doc("apple", (2024, 1, 1)),
            make_doc("Mango", (2024, 1, 1)),
        ]
    )
    assert [d.title for d in docs.sorted()] == ["apple", "Mango", "Zebra"]
    assert [d.title for d in docs.sorted(reverse=False)] == ["apple", "Mango", "Zebra"]


def test_taxonomy_collection_groups_terms():
    docs = [
        make_doc("One", (2024, 1, 1), tags=["Python", "web"]),
        make_doc("Two", (2024, 2, 1), tags=["python"]),
        make_doc("Three", (2024, 3, 1), tags=["Art"]),
    ]
    tags = TaxonomyCollection("tags", docs, "tags")
    assert list(tags) == ["Art", "Python", "web"]
    python = tags["Python"]
    assert python.url == "/tags/python/"
    assert [d.title for d in python.documents] == ["Two", "One"]
    assert len(python) == 2
    assert tags.url == "/tags/"
    assert tags.get("missing") is None


def test_build_taxonomies():
    docs = [make_doc("One", (2024, 1, 1), tags=["a"], categories=["notes"])]
    taxonomies = build_taxonomies(docs)
    assert set(taxonomies) == {"tags", "categories"}
    assert [t.name for t in taxonomies["categories"].terms()] == ["notes"]
