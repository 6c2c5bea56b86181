"""Configuration loading and resolution for Inkpress.

This module turns the user's inkpress.yaml, the built-in defaults and the
optional CLI target into a single immutable BuildConfig.

The CLI target is either an environment name or a literal URL. A token made
only of letters, digits and underscores names an environment; anything else
is taken as a URL. "staging2" is therefore always an environment and never a
bare hostname.

Key functions:
- load_config: Load inkpress.yaml from the project root.
- apply_defaults: Fill in missing keys from the defaults.
- classify_target: Decide whether a CLI token is an environment or a URL.
- resolve_config: Produce the effective BuildConfig.
"""

from __future__ import annotations

import re
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType
from typing import Any

import yaml

from .errors import InkpressError

CONFIG_FILENAME = "inkpress.yaml"
MARKER_FILENAME = ".inkpress"

ENVIRONMENT_RE = re.compile(r"[A-Za-z0-9_]+")

DEFAULT_CONFIG: dict[str, Any] = {
    "build_dir": "build",
    "template": "default",
    "cache": True,
    "posts_dir": "posts",
    "pages_dir": "pages",
    "title": "Inkpress",
    "description": "",
    "posts_per_page": 5,
    "rss": True,
    "static_dirs": ["inc"],
    "environments": {},
}


class ConfigurationError(InkpressError):
    """Invalid or incomplete configuration; no build is attempted."""


@dataclass(frozen=True)
class BuildConfig:
    """Effective configuration for one invocation.

    Attributes:
        url: Canonical base URL of the built site.
        build_dir: Output directory, relative to root unless absolute.
        root: Working directory the tool was invoked from.
        template: Name of the active template set.
        cache_enabled: Whether unchanged items may be skipped.
        environments: Named url/build_dir override sets.
        posts_dir: Directory holding post sources.
        pages_dir: Directory holding page sources.
        title: Site title.
        description: Site description.
        posts_per_page: Number of posts per index page.
        rss: Whether to write the RSS feed.
        static_dirs: Directories copied verbatim into the build.
    """

    url: str
    build_dir: str
    root: Path
    template: str = "default"
    cache_enabled: bool = True
    environments: Mapping[str, Mapping[str, Any]] = field(
        default_factory=lambda: MappingProxyType({})
    )
    posts_dir: str = "posts"
    pages_dir: str = "pages"
    title: str = "Inkpress"
    description: str = ""
    posts_per_page: int = 5
    rss: bool = True
    static_dirs: tuple[str, ...] = ("inc",)

    @property
    def build_path(self) -> Path:
        return self.root / self.build_dir

    @property
    def posts_path(self) -> Path:
        return self.root / self.posts_dir

    @property
    def pages_path(self) -> Path:
        return self.root / self.pages_dir

    @property
    def template_path(self) -> Path:
        return self.root / "templates" / self.template

    @property
    def marker_path(self) -> Path:
        return self.root / MARKER_FILENAME

    def watch_paths(self) -> list[Path]:
        """Directories whose changes should trigger a rebuild."""
        paths = [self.template_path, self.posts_path, self.pages_path]
        paths.extend(self.root / name for name in self.static_dirs)
        return paths


def load_config(project_root: Path) -> dict[str, Any]:
    """Load site configuration from inkpress.yaml.

    Args:
        project_root: Root directory of the project.

    Returns:
        Dictionary of configuration values as written by the user.

    Raises:
        ConfigurationError: If the file is missing or is not a YAML mapping.
    """
    config_path = project_root / CONFIG_FILENAME
    if not config_path.exists():
        raise ConfigurationError(f"No {CONFIG_FILENAME} found in {project_root}")
    try:
        with open(config_path, encoding="utf-8") as f:
            loaded = yaml.safe_load(f)
    except yaml.YAMLError as exc:
        raise ConfigurationError(f"Invalid YAML in {config_path}: {exc}") from exc
    except OSError as exc:
        raise ConfigurationError(f"Could not read {config_path}: {exc}") from exc
    if loaded is None:
        return {}
    if not isinstance(loaded, dict):
        raise ConfigurationError(f"{CONFIG_FILENAME} must contain a mapping")
    return loaded


def apply_defaults(base: Mapping[str, Any], defaults: Mapping[str, Any]) -> dict[str, Any]:
    """Fill keys missing from base with values from defaults.

    A key counts as set when it is present and not null, so explicit false,
    zero or empty values in the user config are kept while a key left blank
    in YAML falls back to its default.
    """
    merged = {key: value for key, value in base.items() if value is not None}
    for key, value in defaults.items():
        if key not in merged:
            merged[key] = value
    return merged


def classify_target(token: str) -> tuple[str, str]:
    """Classify a CLI target as an environment name or a literal URL.

    Examples:
        >>> classify_target("staging2")
        ('environment', 'staging2')

        >>> classify_target("https://example.com")
        ('url', 'https://example.com')
    """
    if ENVIRONMENT_RE.fullmatch(token):
        return "environment", token
    return "url", token


def resolve_config(
    base: Mapping[str, Any],
    defaults: Mapping[str, Any] | None = None,
    target: str | None = None,
    root: Path | None = None,
) -> BuildConfig:
    """Merge config, defaults and CLI target into a BuildConfig.

    Args:
        base: Configuration loaded from inkpress.yaml.
        defaults: Default values; DEFAULT_CONFIG when omitted.
        target: Optional CLI token naming an environment or giving a URL.
        root: Working directory; the current directory when omitted.

    Returns:
        Immutable effective configuration.

    Raises:
        ConfigurationError: For an unknown environment or a missing url.
    """
    config = apply_defaults(base, DEFAULT_CONFIG if defaults is None else defaults)
    environments = _environments(config.get("environments"))

    if target:
        kind, value = classify_target(target)
        if kind == "url":
            config["url"] = value
        else:
            if value not in environments:
                raise ConfigurationError(f"Unknown environment: {value}")
            env = environments[value]
            if env.get("build_dir"):
                config["build_dir"] = env["build_dir"]
            if env.get("url"):
                config["url"] = env["url"]

    url = config.get("url")
    if not url:
        raise ConfigurationError(
            "Missing required config field 'url' "
            "(set it in inkpress.yaml, an environment, or on the command line)"
        )

    return BuildConfig(
        url=str(url),
        build_dir=str(config.get("build_dir") or "build"),
        root=(root or Path.cwd()),
        template=str(config.get("template", "default")),
        cache_enabled=bool(config.get("cache", True)),
        environments=MappingProxyType(
            {name: MappingProxyType(dict(env)) for name, env in environments.items()}
        ),
        posts_dir=str(config.get("posts_dir", "posts")),
        pages_dir=str(config.get("pages_dir", "pages")),
        title=str(config.get("title", "")),
        description=str(config.get("description", "")),
        posts_per_page=_positive_int(config.get("posts_per_page", 5), "posts_per_page"),
        rss=bool(config.get("rss", True)),
        static_dirs=tuple(str(name) for name in (config.get("static_dirs") or ())),
    )


def _environments(value: Any) -> dict[str, Mapping[str, Any]]:
    if value is None:
        return {}
    if not isinstance(value, Mapping):
        raise ConfigurationError("'environments' must be a mapping of name to settings")
    environments: dict[str, Mapping[str, Any]] = {}
    for name, env in value.items():
        if env is None:
            env = {}
        if not isinstance(env, Mapping):
            raise ConfigurationError(f"Environment '{name}' must be a mapping")
        environments[str(name)] = env
    return environments


def _positive_int(value: Any, name: str) -> int:
    try:
        number = int(value)
    except (TypeError, ValueError):
        raise ConfigurationError(f"'{name}' must be an integer") from None
    if number < 1:
        raise ConfigurationError(f"'{name}' must be at least 1")
    return number
