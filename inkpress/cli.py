"""Command-line interface for Inkpress.

This module defines the CLI commands using Click framework.

Commands:
- build: Build the site into the build directory, optionally watching for changes.
"""

from __future__ import annotations

import logging
from pathlib import Path

import click

from . import __version__
from .errors import InkpressError

_LEVEL_STYLES = {
    logging.DEBUG: {"fg": "bright_black"},
    logging.WARNING: {"fg": "yellow"},
    logging.ERROR: {"fg": "red", "bold": True},
    logging.CRITICAL: {"fg": "red", "bold": True},
}


class _ClickHandler(logging.Handler):
    """Logging handler that writes records through click.echo."""

    def emit(self, record: logging.LogRecord) -> None:
        try:
            message = self.format(record)
            style = _LEVEL_STYLES.get(record.levelno)
            if style:
                message = click.style(message, **style)
            click.echo(message, err=record.levelno >= logging.WARNING)
        except Exception:
            self.handleError(record)


def _configure_logging(verbose: bool) -> None:
    logger = logging.getLogger("inkpress")
    for handler in list(logger.handlers):
        if isinstance(handler, _ClickHandler):
            logger.removeHandler(handler)
    handler = _ClickHandler()
    handler.setFormatter(logging.Formatter("%(message)s"))
    logger.addHandler(handler)
    logger.setLevel(logging.DEBUG if verbose else logging.INFO)


@click.group()
@click.version_option(version=__version__, prog_name="inkpress")
def cli():
    """Inkpress static site builder."""


@cli.command()
@click.argument("target", required=False)
@click.option("--no-cache", is_flag=True, help="Re-render every post and page")
@click.option("--watch", is_flag=True, help="Rebuild whenever sources change")
@click.option("-v", "--verbose", is_flag=True, help="Log every rendered and skipped item")
def build(target: str | None, no_cache: bool, watch: bool, verbose: bool):
    """Build the site into the build directory.

    TARGET is either the name of an environment from inkpress.yaml or a
    literal site URL.
    """
    _configure_logging(verbose)
    project_root = Path.cwd()
    from .config import DEFAULT_CONFIG, load_config, resolve_config

    try:
        config = resolve_config(load_config(project_root), DEFAULT_CONFIG, target, root=project_root)
    except InkpressError as exc:
        _fail("Configuration error:", str(exc))

    if not _run_pass(config, no_cache):
        raise SystemExit(1)

    if watch:
        from .watcher import Watcher

        watcher = Watcher(
            config.watch_paths(),
            lambda: _run_pass(config, no_cache),
            ignore=[config.build_path, config.marker_path],
        )
        try:
            watcher.watch()
        except InkpressError as exc:
            _fail("Watch error:", str(exc))
        except KeyboardInterrupt:
            click.echo("Stopped watching.")


def _run_pass(config, no_cache: bool) -> bool:
    """Evaluate the cache gate and run one build pass, reporting errors.

    Returns:
        True if the pass succeeded.
    """
    from .build import BuildError, build_site
    from .cache import apply_cache_gate

    try:
        effective = apply_cache_gate(config, no_cache=no_cache)
        result = build_site(effective)
    except BuildError as exc:
        _report_build_error(config.root, exc)
        return False
    except OSError as exc:
        click.echo(click.style("Build failed:", fg="red", bold=True), err=True)
        click.echo(click.style(f"  Error: {exc}", fg="white"), err=True)
        return False
    click.echo(
        f"Built {len(result.rendered)} of {len(result.items)} items into {result.output_dir}"
    )
    return True


def _report_build_error(project_root: Path, exc) -> None:
    try:
        rel_path = Path(exc.source_path).relative_to(project_root)
    except ValueError:
        rel_path = exc.source_path
    click.echo(click.style("Build failed:", fg="red", bold=True), err=True)
    click.echo(click.style(f"  File: {rel_path}", fg="yellow"), err=True)
    click.echo(click.style(f"  Error: {exc.message}", fg="white"), err=True)


def _fail(title: str, message: str):
    click.echo(click.style(title, fg="red", bold=True), err=True)
    click.echo(click.style(f"  {message}", fg="white"), err=True)
    raise SystemExit(1) from None


def main():
    """Entry point for the CLI application."""
    cli()
