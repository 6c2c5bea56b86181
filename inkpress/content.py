"""Content discovery for Inkpress.

This module scans the posts and pages directories and creates one
ContentItem per Markdown source. Items are rebuilt from the filesystem on
every build pass; nothing about them is persisted.

Key classes:
- ContentItem: Dataclass describing one source file and its output.
- ContentScanner: Discovers items and reads their metadata.

Key functions:
- extract_frontmatter: Split YAML front matter from a Markdown body.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import date, datetime
from pathlib import Path
from typing import Any

import yaml

from .errors import BuildError
from .utils import extract_date_from_name, is_markdown, slugify, titleize

FRONTMATTER_RE = re.compile(r"^---\s*\n(.*?)\n---\s*\n", re.DOTALL)

POST = "post"
PAGE = "page"


def extract_frontmatter(text: str) -> tuple[dict[str, Any], str]:
    """Extract YAML frontmatter from content.

    Args:
        text: Raw file content.

    Returns:
        Tuple of (frontmatter dict, remaining content).
    """
    match = FRONTMATTER_RE.match(text)
    if not match:
        return {}, text
    try:
        data = yaml.safe_load(match.group(1)) or {}
        if not isinstance(data, dict):
            return {}, text
        return data, text[match.end() :]
    except yaml.YAMLError:
        return {}, text


def _title_from_body(body: str) -> str | None:
    for line in body.splitlines():
        stripped = line.strip()
        if stripped.startswith("# "):
            return stripped.lstrip("# ").strip()
    return None


def _coerce_date(value: Any) -> datetime | None:
    if isinstance(value, date) and not isinstance(value, datetime):
        return datetime(value.year, value.month, value.day)
    if isinstance(value, str):
        try:
            value = datetime.fromisoformat(value.strip())
        except ValueError:
            return None
    if not isinstance(value, datetime):
        return None
    # Items are sorted together, so keep every date naive local time.
    if value.tzinfo is not None:
        value = value.astimezone().replace(tzinfo=None)
    return value


@dataclass
class ContentItem:
    """A post or page discovered during one build pass.

    Attributes:
        source_path: Markdown source file.
        output_path: HTML file the item renders to.
        last_modified_time: Source modification time (seconds since epoch).
        kind: "post" or "page".
        slug: URL-friendly name derived from the filename.
        link: Site-relative URL of the output file.
        title: Title from front matter, first heading or filename.
        date: Date from front matter, filename prefix or mtime.
        description: Optional summary from front matter.
        metadata: Parsed YAML front matter.
        rendered_flag: Set once the item has been rendered in this pass.
    """

    source_path: Path
    output_path: Path
    last_modified_time: float
    kind: str
    slug: str
    link: str
    title: str = ""
    date: datetime = field(default_factory=datetime.now)
    description: str = ""
    metadata: dict[str, Any] = field(default_factory=dict)
    rendered_flag: bool = False

    def read_body(self) -> str:
        """Return the Markdown body with front matter removed."""
        text = self.source_path.read_text(encoding="utf-8")
        _, body = extract_frontmatter(text)
        return body


class ContentScanner:
    """Discovers posts and pages below the project root.

    Attributes:
        posts_dir: Directory of post sources.
        pages_dir: Directory of page sources.
        build_dir: Directory items are rendered into.
    """

    def __init__(self, posts_dir: Path, pages_dir: Path, build_dir: Path):
        self.posts_dir = posts_dir
        self.pages_dir = pages_dir
        self.build_dir = build_dir

    def scan(self) -> tuple[list[ContentItem], list[ContentItem]]:
        """Discover all items.

        Returns:
            Tuple of (posts newest first, pages in filename order).

        Raises:
            OSError: If a source file cannot be read.
            BuildError: If two sources would be rendered to the same file.
        """
        posts = [self._load(path, POST) for path in self._iter_sources(self.posts_dir)]
        pages = [self._load(path, PAGE) for path in self._iter_sources(self.pages_dir)]
        _check_unique_outputs([*posts, *pages])
        posts.sort(key=lambda item: (item.date, item.slug), reverse=True)
        return posts, pages

    def _iter_sources(self, folder: Path) -> list[Path]:
        if not folder.is_dir():
            return []
        return sorted(path for path in folder.rglob("*.md") if path.is_file() and is_markdown(path))

    def _load(self, path: Path, kind: str) -> ContentItem:
        stat = path.stat()
        text = path.read_text(encoding="utf-8")
        frontmatter, body = extract_frontmatter(text)

        slug = slugify(str(frontmatter.get("slug") or path.stem))
        section = "posts" if kind == POST else "pages"
        link = f"/{section}/{slug}.html"

        item_date = (
            _coerce_date(frontmatter.get("date"))
            or extract_date_from_name(path.stem)
            or datetime.fromtimestamp(stat.st_mtime)
        )
        return ContentItem(
            source_path=path,
            output_path=self.build_dir / section / f"{slug}.html",
            last_modified_time=stat.st_mtime,
            kind=kind,
            slug=slug,
            link=link,
            title=str(frontmatter.get("title") or _title_from_body(body) or titleize(path.name)),
            date=item_date,
            description=str(frontmatter.get("description") or ""),
            metadata=frontmatter,
        )


def _check_unique_outputs(items: list[ContentItem]) -> None:
    seen: dict[Path, Path] = {}
    for item in items:
        other = seen.setdefault(item.output_path, item.source_path)
        if other != item.source_path:
            raise BuildError(
                item.source_path,
                f"Output {item.output_path.name} is also produced by {other}; "
                "rename one of them or give it a distinct slug",
            )
