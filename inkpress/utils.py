"""Utility functions for Inkpress.

This module contains small helpers shared by the content scanner, the
build pipeline and the feed writer.

Key functions:
    slugify: Convert filenames to URL slugs.
    titleize: Convert filenames to human-readable titles.
    extract_date_from_name: Extract date from filename prefix.
    is_markdown: Check if a path is a Markdown source file.
    join_root_url: Join a base URL with a path.
    escape_html: Escape special HTML characters.
    copy_tree: Copy a static directory into the build directory.
"""

from __future__ import annotations

import re
import shutil
from datetime import datetime
from pathlib import Path


def slugify(name: str) -> str:
    """Convert filename (without extension) to slug, dropping date prefix.

    Args:
        name: Filename stem.

    Returns:
        URL-friendly slug.
    """
    cleaned = name
    if "-" in cleaned:
        parts = cleaned.split("-")
        if len(parts) >= 4 and all(p.isdigit() for p in parts[:3]):
            cleaned = "-".join(parts[3:])
    cleaned = re.sub(r"[^a-zA-Z0-9]+", "-", cleaned)
    cleaned = cleaned.strip("-").lower()
    return cleaned or "index"


def titleize(filename: str) -> str:
    """Convert a filename to a human-readable title.

    Removes date prefixes (YYYY-MM-DD), replaces hyphens and underscores
    with spaces, and capitalizes each word.

    Examples:
        >>> titleize("2024-01-15-hello-world.md")
        'Hello World'

        >>> titleize("getting-started.md")
        'Getting Started'
    """
    base = Path(filename).stem
    if "-" in base:
        parts = base.split("-")
        if len(parts) >= 4 and all(p.isdigit() for p in parts[:3]):
            base = "-".join(parts[3:])
    words = re.split(r"[\s\-_]+", base)
    return " ".join(word.capitalize() for word in words if word) or "Untitled"


def extract_date_from_name(name: str) -> datetime | None:
    """Extract a date from a filename with YYYY-MM-DD prefix.

    Args:
        name: Filename stem (without extension).

    Returns:
        datetime object if a valid date prefix is found, None otherwise.
    """
    parts = name.split("-")
    if len(parts) >= 3 and all(p.isdigit() for p in parts[:3]):
        try:
            return datetime(int(parts[0]), int(parts[1]), int(parts[2]))
        except ValueError:
            return None
    return None


def is_markdown(path: Path) -> bool:
    """Check if a path is a Markdown source file.

    Hidden files and files starting with an underscore are not sources.
    """
    if path.name.startswith(("_", ".")):
        return False
    return path.suffix.lower() == ".md"


def join_root_url(root_url: str, path: str) -> str:
    """Join a base URL with a path, avoiding duplicate slashes.

    Examples:
        >>> join_root_url("https://example.com/", "/posts/hello.html")
        'https://example.com/posts/hello.html'
    """
    if not root_url:
        return path
    return f"{root_url.rstrip('/')}/{path.lstrip('/')}"


def escape_html(text: str) -> str:
    """Escape special HTML characters in a string.

    Examples:
        >>> escape_html('Tom & Jerry')
        'Tom &amp; Jerry'
    """
    return (
        text.replace("&", "&amp;")
        .replace("<", "&lt;")
        .replace(">", "&gt;")
        .replace('"', "&quot;")
    )


def copy_tree(source: Path, target: Path) -> int:
    """Copy every file below source into target, overwriting existing files.

    Args:
        source: Directory to copy from.
        target: Directory to copy into; created if missing.

    Returns:
        Number of files copied.
    """
    copied = 0
    for src_path in sorted(source.rglob("*")):
        if src_path.is_dir():
            continue
        dest_path = target / src_path.relative_to(source)
        dest_path.parent.mkdir(parents=True, exist_ok=True)
        shutil.copy2(src_path, dest_path)
        copied += 1
    return copied
