"""Inkpress static site builder.

This package turns a directory of Markdown posts and pages into a static
HTML site using Jinja2 template sets. Builds are incremental: an item is
only re-rendered when its source is newer than its output, and caching is
switched off automatically whenever the site URL changes between builds.

The main entry point is the CLI module, which provides the build command
and its watch mode.
"""

__all__ = ["__version__"]
__version__ = "0.1.0"
