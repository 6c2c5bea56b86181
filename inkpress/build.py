"""Site building functionality for Inkpress.

This module contains the incremental build pass. It scans posts and pages,
re-renders the items whose sources changed, writes the aggregate pages
(post index and RSS feed), copies static directories and finally records
the site URL in the cache marker.

Key functions:
- build_site: Run one build pass, raising on the first hard error.
- build: Run one build pass and report (success, error) instead of raising.
- is_stale: Decide whether an item needs to be rendered.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from jinja2 import TemplateSyntaxError
from markupsafe import Markup

from .cache import write_marker
from .config import BuildConfig
from .content import ContentItem, ContentScanner
from .errors import BuildError
from .renderers import render_markdown
from .templates import TemplateEngine
from .utils import copy_tree, escape_html, join_root_url

logger = logging.getLogger(__name__)


class RenderError(BuildError):
    """Markdown or template rendering failed for a file."""


@dataclass
class BuildResult:
    """Result of a build pass.

    Attributes:
        items: Every item discovered in this pass.
        rendered: Items rendered in this pass.
        output_dir: Directory the site was built into.
        cache_enabled: Whether unchanged items could be skipped.
        marker_written: Whether the cache marker was updated.
        extra_files: Index pages and feed written alongside the items.
    """

    items: list[ContentItem]
    rendered: list[ContentItem]
    output_dir: Path
    cache_enabled: bool
    marker_written: bool = False
    extra_files: list[Path] = field(default_factory=list)

    @property
    def skipped(self) -> list[ContentItem]:
        return [item for item in self.items if not item.rendered_flag]


def is_stale(item: ContentItem, cache_enabled: bool) -> bool:
    """Return True when item must be rendered in this pass.

    With caching on, an item is stale when its output is missing or its
    source was modified after the output. Only modification times are
    compared.

    Raises:
        BuildError: If the output path exists but cannot be inspected.
    """
    if not cache_enabled:
        return True
    try:
        output_mtime = item.output_path.stat().st_mtime
    except FileNotFoundError:
        return True
    except OSError as exc:
        raise BuildError(item.output_path, f"Cannot check output: {exc}", exc) from exc
    return item.last_modified_time > output_mtime


def build_site(
    config: BuildConfig,
    markdown_renderer: Callable[[str], str] = render_markdown,
    engine: TemplateEngine | None = None,
) -> BuildResult:
    """Run one build pass.

    Args:
        config: Effective configuration; config.cache_enabled is the cache
            decision for this pass.
        markdown_renderer: Markdown to HTML function.
        engine: Optional template engine; built from config when omitted.

    Returns:
        BuildResult describing what was rendered.

    Raises:
        BuildError: If a source cannot be read or an output cannot be written.
        RenderError: If rendering an item or aggregate page fails.
    """
    output_dir = config.build_path
    try:
        output_dir.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        raise BuildError(output_dir, f"Cannot create build directory: {exc}", exc) from exc

    scanner = ContentScanner(config.posts_path, config.pages_path, output_dir)
    try:
        posts, pages = scanner.scan()
    except (OSError, UnicodeDecodeError) as exc:
        source = getattr(exc, "filename", None) or config.root
        raise BuildError(Path(source), f"Cannot read source: {exc}", exc) from exc

    if engine is None:
        engine = TemplateEngine(config.template_path, root_url=config.url, site=_site_data(config))
    items = [*posts, *pages]
    rendered: list[ContentItem] = []

    for item in items:
        if not is_stale(item, config.cache_enabled):
            logger.debug("Skipping unchanged %s", item.source_path.name)
            continue
        html = _render_item(item, engine, markdown_renderer, posts, pages)
        _write_output(item.output_path, html, item.source_path)
        item.rendered_flag = True
        rendered.append(item)
        logger.debug("Rendered %s -> %s", item.source_path.name, item.output_path)

    extra_files = _write_index(config, engine, posts, pages)
    if config.rss:
        extra_files.append(_write_rss(config, posts))
    _copy_static(config)

    marker_written = write_marker(config.marker_path, config.url)
    return BuildResult(
        items=items,
        rendered=rendered,
        output_dir=output_dir,
        cache_enabled=config.cache_enabled,
        marker_written=marker_written,
        extra_files=extra_files,
    )


def build(config: BuildConfig, **kwargs: Any) -> tuple[bool, BuildError | None]:
    """Run one build pass without raising build errors.

    Returns:
        Tuple of (success, error); error is None on success.
    """
    try:
        build_site(config, **kwargs)
    except BuildError as exc:
        return False, exc
    return True, None


def _site_data(config: BuildConfig) -> dict[str, Any]:
    return {
        "title": config.title,
        "description": config.description,
        "url": config.url,
        "rss": config.rss,
    }


def _render_item(
    item: ContentItem,
    engine: TemplateEngine,
    markdown_renderer: Callable[[str], str],
    posts: Sequence[ContentItem],
    pages: Sequence[ContentItem],
) -> str:
    try:
        body = item.read_body()
    except (OSError, UnicodeDecodeError) as exc:
        raise BuildError(item.source_path, f"Cannot read source: {exc}", exc) from exc
    try:
        content = markdown_renderer(body)
    except Exception as exc:
        raise RenderError(item.source_path, _format_error_message(exc), exc) from exc
    return _render_template(
        engine,
        item.kind,
        {"item": item, "content": Markup(content), "posts": posts, "pages": pages},
        item.source_path,
    )


def _render_template(
    engine: TemplateEngine, name: str, variables: dict[str, Any], source_path: Path
) -> str:
    try:
        return engine.render_template(name, variables)
    except TemplateSyntaxError as exc:
        raise RenderError(
            Path(exc.filename or source_path),
            f"Template syntax error on line {exc.lineno}: {exc.message}",
            exc,
        ) from exc
    except Exception as exc:
        raise RenderError(source_path, _format_error_message(exc), exc) from exc


def _format_error_message(exc: Exception) -> str:
    """Format an exception into a user-friendly error message.

    Args:
        exc: The exception to format.

    Returns:
        A human-readable error message.
    """
    error_type = type(exc).__name__
    error_msg = str(exc)

    if error_type == "TemplateNotFound":
        return f"Template not found: {error_msg}"
    if error_type == "UndefinedError":
        return f"Undefined variable: {error_msg}"

    return f"{error_type}: {error_msg}"


def _write_output(path: Path, content: str, source_path: Path) -> None:
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w", encoding="utf-8") as f:
            f.write(content)
    except OSError as exc:
        raise BuildError(source_path, f"Cannot write {path}: {exc}", exc) from exc


def _index_path(output_dir: Path, number: int) -> Path:
    if number == 1:
        return output_dir / "index.html"
    return output_dir / "index" / f"{number}.html"


def _index_link(number: int) -> str:
    return "/" if number == 1 else f"/index/{number}.html"


def _write_index(
    config: BuildConfig,
    engine: TemplateEngine,
    posts: Sequence[ContentItem],
    pages: Sequence[ContentItem],
) -> list[Path]:
    """Render the paginated post index, newest posts first.

    Returns:
        Paths of the index pages written.
    """
    per_page = config.posts_per_page
    total_pages = max(1, -(-len(posts) // per_page))
    written: list[Path] = []
    for number in range(1, total_pages + 1):
        chunk = posts[(number - 1) * per_page : number * per_page]
        variables = {
            "posts": chunk,
            "pages": pages,
            "page_number": number,
            "total_pages": total_pages,
            "previous_url": _index_link(number - 1) if number > 1 else None,
            "next_url": _index_link(number + 1) if number < total_pages else None,
        }
        html = _render_template(engine, "index", variables, config.template_path)
        path = _index_path(config.build_path, number)
        _write_output(path, html, config.template_path)
        written.append(path)
    return written


def _write_rss(config: BuildConfig, posts: Sequence[ContentItem]) -> Path:
    """Generate and write the index.xml RSS feed.

    Args:
        config: Effective configuration.
        posts: Posts, newest first.

    Returns:
        Path of the feed file.
    """
    items = []
    for post in posts[: config.posts_per_page]:
        link = escape_html(join_root_url(config.url, post.link))
        pub_date = post.date.strftime("%a, %d %b %Y %H:%M:%S +0000")
        description = escape_html(post.description or post.title)
        items.append(
            f"<item><title>{escape_html(post.title)}</title><link>{link}</link>"
            f"<guid>{link}</guid><description>{description}</description>"
            f"<pubDate>{pub_date}</pubDate></item>"
        )
    rss = [
        '<?xml version="1.0" encoding="UTF-8"?>',
        '<rss version="2.0"><channel>',
        f"<title>{escape_html(config.title)}</title>",
        f"<link>{escape_html(config.url)}</link>",
        f"<description>{escape_html(config.description)}</description>",
        f"<lastBuildDate>{datetime.now(timezone.utc).strftime('%a, %d %b %Y %H:%M:%S +0000')}</lastBuildDate>",
    ]
    rss.extend(items)
    rss.append("</channel></rss>")
    path = config.build_path / "index.xml"
    _write_output(path, "\n".join(rss), config.root)
    return path


def _copy_static(config: BuildConfig) -> None:
    """Copy static directories from the template set and the project root.

    Project files are copied last so they override template files.
    """
    for base in (config.template_path, config.root):
        for name in config.static_dirs:
            source = base / name
            if not source.is_dir():
                continue
            try:
                copied = copy_tree(source, config.build_path / name)
            except OSError as exc:
                raise BuildError(source, f"Cannot copy static files: {exc}", exc) from exc
            logger.debug("Copied %d static files from %s", copied, source)
