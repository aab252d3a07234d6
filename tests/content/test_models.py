"""Tests for content models."""

from datetime import UTC, datetime

import pytest
from inkpress.content.models import (
    Diagnostic,
    DiagnosticKind,
    InsertOutcome,
    InsertStatus,
    ParsedPost,
    ParseErrorKind,
    ParseFailure,
    Post,
)
from pydantic import ValidationError


def _make_post(identifier: str = "2023-03-14-efcore-loading", **kwargs: object) -> Post:
    return Post(
        identifier=identifier,
        title="EF Core loading",
        date=datetime(2023, 3, 14, tzinfo=UTC),
        **kwargs,  # type: ignore[arg-type]
    )


class TestPost:
    def test_slug_strips_date_prefix(self):
        assert _make_post().slug == "efcore-loading"

    def test_slug_without_date_prefix(self):
        assert _make_post("about").slug == "about"

    def test_metadata_is_frozen(self):
        post = _make_post()
        with pytest.raises(ValidationError):
            post.title = "Changed"  # type: ignore[misc]

    def test_diagnostics_can_grow(self):
        post = _make_post()
        post.diagnostics.append(
            Diagnostic(kind=DiagnosticKind.STYLE_WARNING, rule="r", message="m")
        )
        assert len(post.diagnostics) == 1

    def test_publishable_with_only_warnings(self):
        post = _make_post()
        post.diagnostics.append(
            Diagnostic(kind=DiagnosticKind.CONTENT_WARNING, rule="r", message="m")
        )
        assert post.is_publishable
        assert len(post.warnings) == 1
        assert post.errors == []

    def test_not_publishable_with_error(self):
        post = _make_post()
        post.diagnostics.append(
            Diagnostic(kind=DiagnosticKind.CONTENT_ERROR, rule="layout", message="bad")
        )
        assert not post.is_publishable
        assert [d.rule for d in post.errors] == ["layout"]

    def test_defaults(self):
        post = _make_post()
        assert post.layout == "post"
        assert post.categories == ()
        assert post.tags == ()
        assert post.image is None
        assert post.extra == {}


class TestDiagnosticKind:
    @pytest.mark.parametrize(
        ("kind", "blocks"),
        [
            (DiagnosticKind.STYLE_WARNING, False),
            (DiagnosticKind.CONTENT_WARNING, False),
            (DiagnosticKind.CONTENT_ERROR, True),
        ],
    )
    def test_blocks_publishing(self, kind: DiagnosticKind, blocks: bool):
        assert kind.blocks_publishing is blocks


class TestOutcomes:
    def test_parsed_post_is_ok(self):
        assert ParsedPost(post=_make_post()).ok is True

    def test_parse_failure_is_not_ok(self):
        failure = ParseFailure(
            source="x.md",
            kind=ParseErrorKind.MISSING_REQUIRED_FIELD,
            message="missing required field 'date'",
            field="date",
        )
        assert failure.ok is False

    def test_inserted_outcome_does_not_raise(self):
        outcome = InsertOutcome(status=InsertStatus.INSERTED, identifier="a")
        outcome.raise_for_conflict()
        assert outcome.inserted
