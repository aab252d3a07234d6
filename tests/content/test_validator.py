"""Tests for post validation rules."""

from datetime import UTC, datetime

from inkpress.content.models import DiagnosticKind, ImageRef, Post
from inkpress.content.validator import Validator

NOW = datetime(2024, 1, 1, tzinfo=UTC)


def _make_post(**kwargs: object) -> Post:
    fields: dict[str, object] = {
        "identifier": "2023-09-13-identity-api",
        "source": "2023-09-13-identity-api.md",
        "title": "Identity API",
        "date": datetime(2023, 9, 13, 10, 0, tzinfo=UTC),
        "tags": ("dotnet",),
    }
    fields.update(kwargs)
    return Post(**fields)  # type: ignore[arg-type]


def _rules(post: Post) -> list[str]:
    return [d.rule for d in post.diagnostics]


class TestCleanPost:
    def test_no_findings(self):
        post = _make_post(image=ImageRef(path="/assets/img/identity.png"))
        assert Validator(now=NOW).validate(post) == []
        assert post.is_publishable


class TestTagLowercase:
    def test_mixed_case_tag_is_style_warning(self):
        post = _make_post(tags=("DotNet", "efcore"))
        findings = Validator(now=NOW).validate(post)

        assert len(findings) == 1
        assert findings[0].kind == DiagnosticKind.STYLE_WARNING
        assert findings[0].rule == "tag-lowercase"
        assert "DotNet" in findings[0].message
        assert post.is_publishable

    def test_tags_are_not_rewritten(self):
        post = _make_post(tags=("DotNet",))
        Validator(now=NOW).validate(post)
        assert post.tags == ("DotNet",)

    def test_one_warning_per_offending_tag(self):
        post = _make_post(tags=("DotNet", "AspNetCore"))
        Validator(now=NOW).validate(post)
        assert _rules(post) == ["tag-lowercase", "tag-lowercase"]


class TestFutureDate:
    def test_future_date_is_content_warning(self):
        post = _make_post(date=datetime(2030, 1, 1, tzinfo=UTC))
        findings = Validator(now=NOW).validate(post)

        assert [f.kind for f in findings] == [DiagnosticKind.CONTENT_WARNING]
        assert post.is_publishable

    def test_date_equal_to_now_is_fine(self):
        post = _make_post(date=NOW)
        assert Validator(now=NOW).validate(post) == []

    def test_naive_now_is_treated_as_utc(self):
        validator = Validator(now=datetime(2024, 1, 1))
        assert validator.now.tzinfo is UTC


class TestImagePath:
    def test_empty_path_is_error(self):
        post = _make_post(image=ImageRef(path="  "))
        findings = Validator(now=NOW).validate(post)

        assert [f.rule for f in findings] == ["image-path"]
        assert findings[0].kind == DiagnosticKind.CONTENT_ERROR
        assert not post.is_publishable

    def test_control_characters_are_error(self):
        post = _make_post(image=ImageRef(path="/img/a\x00.png"))
        Validator(now=NOW).validate(post)
        assert _rules(post) == ["image-path"]


class TestLayout:
    def test_unknown_layout_is_error(self):
        post = _make_post(layout="fancy")
        findings = Validator(now=NOW).validate(post)

        assert findings[0].kind == DiagnosticKind.CONTENT_ERROR
        assert "fancy" in findings[0].message
        assert not post.is_publishable

    def test_custom_allow_list(self):
        post = _make_post(layout="fancy")
        assert Validator(allowed_layouts=["fancy"], now=NOW).validate(post) == []


class TestAllRulesRun:
    def test_every_rule_reports(self):
        post = _make_post(
            tags=("DotNet",),
            date=datetime(2030, 1, 1, tzinfo=UTC),
            image=ImageRef(path=""),
            layout="fancy",
        )
        Validator(now=NOW).validate(post)
        assert _rules(post) == ["tag-lowercase", "date-in-future", "image-path", "layout"]
        assert len(post.errors) == 2
        assert len(post.warnings) == 2
