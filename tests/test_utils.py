from datetime import datetime, timezone

from quire import utils
from quire.html_utils import escape_html, join_root_url, xml_date


def test_slugify_and_titleize_strip_date_prefix():
    assert utils.slugify("2024-01-02-post-title") == "post-title"
    assert utils.slugify("Hello, World!") == "hello-world"
    assert utils.slugify("!!!") == "index"
    assert utils.titleize("2024-01-02-post-title.md") == "Post Title"
    assert utils.titleize("getting_started.md") == "Getting Started"


def test_extract_date_from_name():
    assert utils.extract_date_from_name("2024-01-15-cool") == datetime(
        2024, 1, 15, tzinfo=timezone.utc
    )
    assert utils.extract_date_from_name("invalid") is None
    assert utils.extract_date_from_name("2024-13-32-post") is None


def test_first_paragraph_skips_headings_and_truncates():
    text = "# Title\n\nSome *emphasised* text with a [link](/x/).\n\nSecond."
    assert utils.first_paragraph(text) == "Some emphasised text with a link."
    assert utils.first_paragraph("") == ""

    long_text = "word " * 50
    summary = utils.first_paragraph(long_text, limit=20)
    assert summary.endswith("…")
    assert len(summary) <= 21


def test_unique_keeps_order():
    assert utils.unique(["b", "a", "b", "c", "a"]) == ["b", "a", "c"]


def test_ensure_clean_dir(tmp_path):
    target = tmp_path / "build"
    (target / "nested").mkdir(parents=True)
    (target / "nested" / "old.txt").write_text("old", encoding="utf-8")
    utils.ensure_clean_dir(target)
    assert list(target.iterdir()) == []

    missing = tmp_path / "missing-dir"
    utils.ensure_clean_dir(missing)
    assert missing.exists()


def test_html_helpers():
    assert escape_html('<a href="x">&</a>') == "&lt;a href=&quot;x&quot;&gt;&amp;&lt;/a&gt;"
    assert join_root_url("https://example.com/", "about/") == "https://example.com/about/"
    assert join_root_url("", "about/") == "/about/"
    assert xml_date(datetime(2024, 1, 15, tzinfo=timezone.utc)) == "Mon, 15 Jan 2024 00:00:00 +0000"
