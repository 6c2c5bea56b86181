"""Build cache gate for Inkpress.

Every successful build records the site URL it was built with in a marker
file (.inkpress) in the working directory. Rendered pages embed absolute
links, so when the URL changes the previous output can no longer be reused
and the next build has to re-render everything.
"""

from __future__ import annotations

import dataclasses
import logging
from pathlib import Path

from .config import BuildConfig

logger = logging.getLogger(__name__)


def read_marker(path: Path) -> str | None:
    """Return the URL recorded by the last successful build, if any."""
    try:
        return path.read_text(encoding="utf-8").strip()
    except FileNotFoundError:
        return None


def write_marker(path: Path, url: str) -> bool:
    """Record url as the last built URL.

    Returns:
        True when the marker was written. Failures are logged, not raised.
    """
    try:
        path.write_text(url, encoding="utf-8")
    except OSError as exc:
        logger.warning("Could not write cache marker %s: %s", path, exc)
        return False
    return True


class CacheGate:
    """Decides whether incremental caching applies to a build pass.

    Attributes:
        marker_path: Location of the last-built-URL marker file.
    """

    def __init__(self, marker_path: Path):
        self.marker_path = marker_path

    def evaluate(self, config: BuildConfig, no_cache: bool = False) -> bool:
        """Return the effective cache flag for this pass.

        Args:
            config: Resolved configuration for the invocation.
            no_cache: Whether --no-cache was passed.

        Returns:
            False when caching is forced off, disabled in config, or the URL
            differs from the one recorded by the previous build or the marker
            cannot be decoded.
        """
        if no_cache:
            logger.debug("Cache disabled by --no-cache")
            return False
        if not config.cache_enabled:
            logger.debug("Cache disabled in configuration")
            return False
        try:
            previous = read_marker(self.marker_path)
        except UnicodeDecodeError:
            logger.warning(
                "Cache marker %s is unreadable; disabling cache for this build",
                self.marker_path,
            )
            return False
        if previous is not None and previous != config.url:
            logger.warning(
                "Site URL changed from %s to %s; disabling cache for this build",
                previous,
                config.url,
            )
            return False
        return True


def apply_cache_gate(config: BuildConfig, no_cache: bool = False) -> BuildConfig:
    """Return a copy of config carrying this pass's cache decision."""
    enabled = CacheGate(config.marker_path).evaluate(config, no_cache=no_cache)
    return dataclasses.replace(config, cache_enabled=enabled)
