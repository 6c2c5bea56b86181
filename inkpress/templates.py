"""Template rendering engine for Inkpress.

This module uses Jinja2 to render template sets. A template set is a
directory under templates/<name>/ in the project; any template the project
does not provide is taken from the default set shipped with the package.

Key class:
- TemplateEngine: Loads a template set and renders named templates.
"""

from __future__ import annotations

from collections.abc import Mapping
from pathlib import Path
from typing import Any

from jinja2 import ChoiceLoader, Environment, FileSystemLoader, select_autoescape

from .renderers import pygments_css
from .utils import join_root_url

# Path to the template set bundled with the package
BUILTIN_TEMPLATES_DIR = Path(__file__).parent / "templates" / "default"


class TemplateEngine:
    """Template rendering engine using Jinja2.

    Attributes:
        template_dir: Project directory of the active template set.
        root_url: Base URL used by url_for.
        env: Jinja2 environment.
    """

    def __init__(self, template_dir: Path, root_url: str = "", site: Mapping[str, Any] | None = None):
        """Initialize the template engine.

        Args:
            template_dir: Directory of the active template set.
            root_url: Base URL for absolute links.
            site: Site-wide values exposed to every template as ``site``.
        """
        self.template_dir = template_dir
        self.root_url = root_url
        self.env = Environment(
            loader=ChoiceLoader(
                [
                    FileSystemLoader(str(template_dir)),
                    FileSystemLoader(str(BUILTIN_TEMPLATES_DIR)),
                ]
            ),
            autoescape=select_autoescape(["html", "xml"]),
            enable_async=False,
        )
        self.env.globals["site"] = dict(site or {})
        self.env.globals["url_for"] = self.url_for
        self.env.globals["pygments_css"] = pygments_css

    def url_for(self, path: str) -> str:
        """Generate an absolute URL for a site-relative path.

        Args:
            path: Path to generate URL for.

        Returns:
            Full URL with root_url prefix if configured.
        """
        if path.startswith(("http://", "https://", "//")):
            return path
        return join_root_url(self.root_url, path if path.startswith("/") else f"/{path}")

    def render_template(self, name: str, variables: Mapping[str, Any]) -> str:
        """Render the named template of the active set.

        Args:
            name: Template name without extension, e.g. "post".
            variables: Context for the template.

        Returns:
            Rendered HTML document.

        Raises:
            jinja2.TemplateNotFound: If neither the project nor the default
                set provides the template.
            jinja2.TemplateSyntaxError: If the template is malformed.
        """
        template = self.env.get_template(f"{name}.html")
        return template.render(**variables)
