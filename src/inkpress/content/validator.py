"""Post validation rules.

Each rule is independent and every rule runs; none short-circuits the
others.  Findings are appended to ``post.diagnostics``; the post's metadata
itself is never touched (tags are not normalized, for instance).
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from datetime import UTC, datetime

from inkpress.content.models import Diagnostic, DiagnosticKind, Post

logger = logging.getLogger(__name__)

DEFAULT_LAYOUTS = ("post", "page", "default")

Rule = Callable[[Post], list[Diagnostic]]


class Validator:
    """Checks posts against style and content rules."""

    def __init__(
        self,
        allowed_layouts: Iterable[str] = DEFAULT_LAYOUTS,
        now: datetime | None = None,
    ) -> None:
        self.allowed_layouts = frozenset(allowed_layouts)
        now = now or datetime.now(tz=UTC)
        self.now = now if now.tzinfo is not None else now.replace(tzinfo=UTC)
        self._rules: list[Rule] = [
            self._check_tags_lowercase,
            self._check_date_not_future,
            self._check_image_path,
            self._check_layout,
        ]

    def validate(self, post: Post) -> list[Diagnostic]:
        """Run every rule, attach the findings to the post and return them."""
        findings: list[Diagnostic] = []
        for rule in self._rules:
            findings.extend(rule(post))
        post.diagnostics.extend(findings)
        for d in findings:
            logger.debug("%s [%s] %s", post.identifier, d.kind, d.message)
        return findings

    # ── Rules ────────────────────────────────────────────────────

    def _check_tags_lowercase(self, post: Post) -> list[Diagnostic]:
        return [
            Diagnostic(
                kind=DiagnosticKind.STYLE_WARNING,
                rule="tag-lowercase",
                message=f"tag {tag!r} is not lowercase",
            )
            for tag in post.tags
            if tag != tag.lower()
        ]

    def _check_date_not_future(self, post: Post) -> list[Diagnostic]:
        if post.date <= self.now:
            return []
        return [
            Diagnostic(
                kind=DiagnosticKind.CONTENT_WARNING,
                rule="date-in-future",
                message=f"date {post.date.isoformat()} is after {self.now.isoformat()}",
            )
        ]

    def _check_image_path(self, post: Post) -> list[Diagnostic]:
        if post.image is None:
            return []
        path = post.image.path
        if not path.strip():
            problem = "image path is empty"
        elif any(ord(c) < 32 for c in path):
            problem = f"image path {path!r} contains control characters"
        else:
            return []
        return [Diagnostic(kind=DiagnosticKind.CONTENT_ERROR, rule="image-path", message=problem)]

    def _check_layout(self, post: Post) -> list[Diagnostic]:
        if post.layout in self.allowed_layouts:
            return []
        allowed = ", ".join(sorted(self.allowed_layouts))
        return [
            Diagnostic(
                kind=DiagnosticKind.CONTENT_ERROR,
                rule="layout",
                message=f"unknown layout {post.layout!r} (allowed: {allowed})",
            )
        ]
