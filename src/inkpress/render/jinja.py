"""Default rendering collaborator: Markdown → HTML, then a Jinja2 template."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from pathlib import Path
from typing import Any

import jinja2
import markdown
from jinja2 import ChoiceLoader, Environment, FileSystemLoader, PackageLoader, select_autoescape

from inkpress.render.base import MarkupError, RenderCollaborator, TemplateNotFound

logger = logging.getLogger(__name__)

TEMPLATE_SUFFIX = ".html"
DEFAULT_EXTENSIONS = ("fenced_code", "tables", "toc")


class JinjaMarkdownRenderer(RenderCollaborator):
    """Renders Markdown with python-markdown and wraps it in a Jinja2 template.

    Templates are looked up as ``<name>.html``, first in ``templates_dir``
    (when given) and then in the templates bundled with inkpress.
    """

    def __init__(
        self,
        templates_dir: Path | None = None,
        extensions: Iterable[str] = DEFAULT_EXTENSIONS,
        site_globals: Mapping[str, Any] | None = None,
    ) -> None:
        loaders: list[jinja2.BaseLoader] = []
        if templates_dir is not None:
            loaders.append(FileSystemLoader(str(templates_dir)))
        loaders.append(PackageLoader("inkpress.render", "templates"))
        self.env = Environment(
            loader=ChoiceLoader(loaders),
            autoescape=select_autoescape(["html", "xml"]),
            keep_trailing_newline=True,
        )
        if site_globals:
            self.env.globals.update(site_globals)
        self.extensions = list(extensions)

    def to_html(self, markup: str) -> str:
        """Markdown → HTML fragment."""
        try:
            # A fresh Markdown instance per call: instances keep state and are not thread-safe.
            return markdown.Markdown(extensions=self.extensions).convert(markup)
        except Exception as exc:
            raise MarkupError(f"markdown conversion failed: {exc}") from exc

    def render(
        self,
        markup: str,
        template_name: str,
        context: Mapping[str, Any] | None = None,
    ) -> str:
        content = self.to_html(markup)
        try:
            template = self.env.get_template(f"{template_name}{TEMPLATE_SUFFIX}")
        except jinja2.TemplateNotFound as exc:
            raise TemplateNotFound(template_name) from exc
        except jinja2.TemplateError as exc:
            raise MarkupError(f"template {template_name!r} is invalid: {exc}") from exc

        try:
            return template.render(content=content, **dict(context or {}))
        except jinja2.TemplateError as exc:
            raise MarkupError(f"template {template_name!r} failed: {exc}") from exc
