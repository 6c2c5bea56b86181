import os
from datetime import datetime

import pytest

from inkpress.content import ContentScanner, extract_frontmatter
from inkpress.errors import BuildError


def scanner_for(tmp_path):
    return ContentScanner(tmp_path / "posts", tmp_path / "pages", tmp_path / "build")


def test_extract_frontmatter():
    meta, body = extract_frontmatter("---\ntitle: Hi\ntags: [a, b]\n---\n# Body\n")
    assert meta == {"title": "Hi", "tags": ["a", "b"]}
    assert body == "# Body\n"


def test_extract_frontmatter_absent_or_invalid():
    assert extract_frontmatter("# Just text") == ({}, "# Just text")
    text = "---\ntitle: [unclosed\n---\nbody"
    assert extract_frontmatter(text) == ({}, text)
    listy = "---\n- a\n- b\n---\nbody"
    assert extract_frontmatter(listy) == ({}, listy)


def test_scan_missing_directories(tmp_path):
    assert scanner_for(tmp_path).scan() == ([], [])


def test_scan_discovers_posts_and_pages(tmp_path):
    (tmp_path / "posts").mkdir()
    (tmp_path / "pages" / "docs").mkdir(parents=True)
    (tmp_path / "posts" / "2024-01-01-older.md").write_text("# Older", encoding="utf-8")
    (tmp_path / "posts" / "2024-02-01-newer.md").write_text("# Newer", encoding="utf-8")
    (tmp_path / "posts" / "_draft.md").write_text("# Draft", encoding="utf-8")
    (tmp_path / "posts" / "notes.txt").write_text("ignored", encoding="utf-8")
    (tmp_path / "pages" / "docs" / "guide.md").write_text("Guide body", encoding="utf-8")

    posts, pages = scanner_for(tmp_path).scan()
    assert [p.slug for p in posts] == ["newer", "older"]
    assert posts[0].date == datetime(2024, 2, 1)
    assert posts[0].title == "Newer"
    assert posts[0].link == "/posts/newer.html"
    assert posts[0].output_path == tmp_path / "build" / "posts" / "newer.html"
    assert posts[0].kind == "post"
    assert posts[0].rendered_flag is False

    assert [p.slug for p in pages] == ["guide"]
    assert pages[0].title == "Guide"
    assert pages[0].kind == "page"
    assert pages[0].output_path == tmp_path / "build" / "pages" / "guide.html"


def test_scan_uses_frontmatter(tmp_path):
    (tmp_path / "posts").mkdir()
    source = tmp_path / "posts" / "whatever.md"
    source.write_text(
        "---\ntitle: Custom Title\ndate: 2023-05-04\nslug: Custom Slug\ndescription: Short\n---\n# Heading\n",
        encoding="utf-8",
    )
    os.utime(source, (1_000_000_000, 1_000_000_000))
    posts, _ = scanner_for(tmp_path).scan()
    item = posts[0]
    assert item.title == "Custom Title"
    assert item.date == datetime(2023, 5, 4)
    assert item.slug == "custom-slug"
    assert item.description == "Short"
    assert item.last_modified_time == 1_000_000_000
    assert item.read_body() == "# Heading\n"


def test_scan_falls_back_to_mtime_date(tmp_path):
    (tmp_path / "posts").mkdir()
    source = tmp_path / "posts" / "undated.md"
    source.write_text("no heading here", encoding="utf-8")
    os.utime(source, (1_000_000_000, 1_000_000_000))
    posts, _ = scanner_for(tmp_path).scan()
    assert posts[0].date == datetime.fromtimestamp(1_000_000_000)
    assert posts[0].title == "Undated"


def test_scan_normalizes_timezone_aware_dates(tmp_path):
    (tmp_path / "posts").mkdir()
    (tmp_path / "posts" / "a.md").write_text(
        "---\ndate: 2024-01-01T10:00:00+02:00\n---\nA", encoding="utf-8"
    )
    (tmp_path / "posts" / "b.md").write_text("---\ndate: 2024-01-02\n---\nB", encoding="utf-8")
    posts, _ = scanner_for(tmp_path).scan()
    assert [p.slug for p in posts] == ["b", "a"]
    assert all(p.date.tzinfo is None for p in posts)


def test_scan_rejects_dated_and_undated_sources_with_same_slug(tmp_path):
    (tmp_path / "posts").mkdir()
    (tmp_path / "posts" / "2024-01-01-hello.md").write_text("# Dated", encoding="utf-8")
    (tmp_path / "posts" / "hello.md").write_text("# Undated", encoding="utf-8")
    with pytest.raises(BuildError) as excinfo:
        scanner_for(tmp_path).scan()
    assert excinfo.value.source_path == tmp_path / "posts" / "hello.md"
    assert "2024-01-01-hello.md" in excinfo.value.message
    assert "hello.html" in excinfo.value.message


def test_scan_rejects_same_name_in_nested_folders(tmp_path):
    (tmp_path / "pages" / "a").mkdir(parents=True)
    (tmp_path / "pages" / "b").mkdir(parents=True)
    (tmp_path / "pages" / "a" / "x.md").write_text("A", encoding="utf-8")
    (tmp_path / "pages" / "b" / "x.md").write_text("B", encoding="utf-8")
    with pytest.raises(BuildError, match="x.html"):
        scanner_for(tmp_path).scan()


def test_scan_allows_same_slug_for_post_and_page(tmp_path):
    (tmp_path / "posts").mkdir()
    (tmp_path / "pages").mkdir()
    (tmp_path / "posts" / "about.md").write_text("Post", encoding="utf-8")
    (tmp_path / "pages" / "about.md").write_text("Page", encoding="utf-8")
    posts, pages = scanner_for(tmp_path).scan()
    assert posts[0].output_path != pages[0].output_path
