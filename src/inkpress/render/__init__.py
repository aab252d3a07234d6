"""Rendering — the facade that publishes pages and the collaborators it calls."""

from inkpress.render.base import (
    CollaboratorError,
    MarkupError,
    PageWriter,
    RenderCollaborator,
    TemplateNotFound,
)
from inkpress.render.facade import Page, RendererFacade
from inkpress.render.jinja import JinjaMarkdownRenderer

__all__ = [
    "CollaboratorError",
    "JinjaMarkdownRenderer",
    "MarkupError",
    "Page",
    "PageWriter",
    "RenderCollaborator",
    "RendererFacade",
    "TemplateNotFound",
]
