"""Content domain models — pure Pydantic v2 data types.

A Post is created by parsing exactly one source file.  Its metadata is
frozen once parsed; only the ``diagnostics`` list grows, when the
validator runs.
"""

from __future__ import annotations

import re
from datetime import datetime
from enum import StrEnum
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

from inkpress.shared.errors import DuplicateIdentifier

_DATE_PREFIX = re.compile(r"^\d{4}-\d{2}-\d{2}-")


class DiagnosticKind(StrEnum):
    """Severity of a validation finding."""

    STYLE_WARNING = "style_warning"
    CONTENT_WARNING = "content_warning"
    CONTENT_ERROR = "content_error"

    @property
    def blocks_publishing(self) -> bool:
        return self is DiagnosticKind.CONTENT_ERROR


class Diagnostic(BaseModel):
    """A single validation finding attached to a post."""

    model_config = ConfigDict(frozen=True)

    kind: DiagnosticKind
    rule: str
    message: str


class ImageRef(BaseModel):
    """Cover image reference."""

    model_config = ConfigDict(frozen=True)

    path: str
    alt: str = ""


class Post(BaseModel):
    """One article: metadata, raw Markdown body, and validation findings."""

    model_config = ConfigDict(frozen=True)

    identifier: str
    source: str = ""
    title: str
    date: datetime
    layout: str = "post"
    categories: tuple[str, ...] = ()
    tags: tuple[str, ...] = ()
    image: ImageRef | None = None
    body: str = ""
    extra: dict[str, Any] = Field(default_factory=dict)
    diagnostics: list[Diagnostic] = Field(default_factory=list)

    @property
    def slug(self) -> str:
        """Identifier without its leading ``YYYY-MM-DD-`` date."""
        return _DATE_PREFIX.sub("", self.identifier, count=1) or self.identifier

    @property
    def errors(self) -> list[Diagnostic]:
        return [d for d in self.diagnostics if d.kind.blocks_publishing]

    @property
    def warnings(self) -> list[Diagnostic]:
        return [d for d in self.diagnostics if not d.kind.blocks_publishing]

    @property
    def is_publishable(self) -> bool:
        return not self.errors


class ParseErrorKind(StrEnum):
    MALFORMED_FRONT_MATTER = "malformed_front_matter"
    MISSING_REQUIRED_FIELD = "missing_required_field"
    INVALID_FIELD_VALUE = "invalid_field_value"


class ParsedPost(BaseModel):
    """Successful parse outcome."""

    ok: Literal[True] = True
    post: Post


class ParseFailure(BaseModel):
    """Failed parse outcome with the specific failure kind."""

    ok: Literal[False] = False
    source: str
    kind: ParseErrorKind
    message: str
    field: str | None = None


ParseOutcome = ParsedPost | ParseFailure


class InsertStatus(StrEnum):
    INSERTED = "inserted"
    CONFLICT = "conflict"


class InsertOutcome(BaseModel):
    """Result of ContentStore.insert."""

    status: InsertStatus
    identifier: str
    source: str = ""
    existing_source: str = ""

    @property
    def inserted(self) -> bool:
        return self.status is InsertStatus.INSERTED

    def raise_for_conflict(self) -> None:
        """Raise DuplicateIdentifier if the insert was rejected."""
        if self.status is InsertStatus.CONFLICT:
            owner = self.existing_source or "another post"
            raise DuplicateIdentifier(
                f"identifier {self.identifier!r} already used by {owner}",
                source=self.source,
                identifier=self.identifier,
            )
