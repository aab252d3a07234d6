"""Error types and the per-run build report.

Fatal errors abort the whole build.  Per-post errors are recorded on a
:class:`BuildReport` so one broken post never stops the rest of the site
from being published.
"""

from __future__ import annotations

import logging
from enum import StrEnum

from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)


class InkpressError(Exception):
    """Base error for the build pipeline."""


# ── Fatal ────────────────────────────────────────────────────────


class FatalBuildError(InkpressError):
    """Aborts the whole build run."""


class SourceDirectoryError(FatalBuildError):
    """The source directory is missing or unreadable."""


class NoPostsError(FatalBuildError):
    """Not a single post could be parsed."""


# ── Per-post ─────────────────────────────────────────────────────


class PostError(InkpressError):
    """An error confined to a single post."""

    error_type = "post_error"

    def __init__(self, message: str, *, source: str = "", identifier: str = "") -> None:
        super().__init__(message)
        self.message = message
        self.source = source
        self.identifier = identifier


class FrontMatterError(PostError):
    """Base for front-matter problems."""

    error_type = "front_matter"


class MalformedFrontMatter(FrontMatterError):
    error_type = "malformed_front_matter"


class MissingRequiredField(FrontMatterError):
    error_type = "missing_required_field"

    def __init__(self, field: str, *, source: str = "") -> None:
        super().__init__(f"missing required field '{field}'", source=source)
        self.field = field


class InvalidFieldValue(FrontMatterError):
    error_type = "invalid_field_value"


class DuplicateIdentifier(PostError):
    error_type = "duplicate_identifier"


class DuplicatePermalink(PostError):
    """Two posts resolve to the same output path."""

    error_type = "duplicate_permalink"


class RenderCollaboratorError(PostError):
    """The external rendering collaborator failed for one artifact."""

    error_type = "render_collaborator_error"


# ── Store / index misuse ─────────────────────────────────────────


class PostNotFound(InkpressError, KeyError):
    """No post with the requested identifier."""

    def __str__(self) -> str:
        return f"post not found: {self.args[0]!r}" if self.args else "post not found"


class StoreFrozenError(InkpressError):
    """The content store was frozen after ingestion."""


class StaleIndexError(InkpressError):
    """An index was read after the store changed without a rebuild."""


# ── Report ───────────────────────────────────────────────────────


class PageKind(StrEnum):
    POST = "post"
    INDEX = "index"
    FEED = "feed"


class BuildFailure(BaseModel):
    """A per-post error recorded during a run."""

    stage: str
    message: str
    source: str = ""
    error_type: str = ""


class BuildWarning(BaseModel):
    """A non-blocking diagnostic recorded during a run."""

    source: str
    identifier: str
    kind: str
    rule: str
    message: str


class PageRecord(BaseModel):
    """A page written to the destination."""

    path: str
    kind: PageKind
    size: int
    title: str = ""


class BuildReport(BaseModel):
    """Summary of one ingestion run."""

    sources_read: int = 0
    posts_parsed: int = 0
    posts_published: int = 0
    pages: list[PageRecord] = Field(default_factory=list)
    failures: list[BuildFailure] = Field(default_factory=list)
    warnings: list[BuildWarning] = Field(default_factory=list)

    def add_error(
        self,
        stage: str,
        message: str,
        *,
        source: str = "",
        error_type: str = "",
    ) -> None:
        """Record a per-post error without aborting the run."""
        logger.warning("[%s] %s%s", stage, f"{source}: " if source else "", message)
        self.failures.append(
            BuildFailure(stage=stage, message=message, source=source, error_type=error_type)
        )

    def add_post_error(self, stage: str, exc: PostError) -> None:
        self.add_error(stage, exc.message, source=exc.source, error_type=exc.error_type)

    def add_page(self, record: PageRecord) -> None:
        self.pages.append(record)

    @property
    def has_errors(self) -> bool:
        return bool(self.failures)

    def exit_code(self, *, strict: bool = False) -> int:
        """0 when clean, 1 when any per-post error (or warning, if strict) was recorded."""
        if self.failures:
            return 1
        if strict and self.warnings:
            return 1
        return 0
