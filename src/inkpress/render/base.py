"""Interfaces for the external collaborators the renderer calls into."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Mapping
from pathlib import Path
from typing import Any, Protocol


class CollaboratorError(Exception):
    """Base error raised by a rendering collaborator."""


class TemplateNotFound(CollaboratorError):
    """The requested template does not exist."""

    def __init__(self, template_name: str) -> None:
        super().__init__(f"template not found: {template_name!r}")
        self.template_name = template_name


class MarkupError(CollaboratorError):
    """The markup or template failed to render."""


class RenderCollaborator(ABC):
    """Converts markup to HTML and applies a named template."""

    @abstractmethod
    def render(
        self,
        markup: str,
        template_name: str,
        context: Mapping[str, Any] | None = None,
    ) -> str:
        """Render ``markup`` through ``template_name``.

        Raises:
            TemplateNotFound: No template called ``template_name``.
            MarkupError: Markup conversion or template rendering failed.
        """


class PageWriter(Protocol):
    """Destination the facade publishes rendered artifacts to."""

    def write(self, path: str | Path, data: bytes) -> Path: ...
