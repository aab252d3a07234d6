"""Tests for front-matter parsing and serialization."""

from datetime import UTC, datetime, timedelta, timezone

import pytest
from inkpress.content.frontmatter import (
    derive_identifier,
    dump_front_matter,
    dump_post,
    parse_front_matter,
    parse_post,
    split_front_matter,
)
from inkpress.content.models import ImageRef, ParsedPost, ParseErrorKind, ParseFailure
from inkpress.shared.errors import MalformedFrontMatter, MissingRequiredField

IDENTITY_POST = """---
title: Identity API endpoints in .NET 8
date: 2023-09-13 10:00:00 +0200
layout: post
categories: [identity]
tags: [dotnet, aspnetcore]
image:
  path: /assets/img/identity.png
  alt: Login form
series: net8
---

Body text here.
"""

SOURCE = "_posts/2023-09-13-identity-api-endpoints.md"


def _parse_ok(text: str, source: str = SOURCE, **kwargs):
    outcome = parse_post(text, source, **kwargs)
    assert isinstance(outcome, ParsedPost), outcome
    return outcome.post


def _parse_fail(text: str, source: str = SOURCE) -> ParseFailure:
    outcome = parse_post(text, source)
    assert isinstance(outcome, ParseFailure), outcome
    return outcome


class TestParseFields:
    def test_recognized_fields(self):
        post = _parse_ok(IDENTITY_POST)
        assert post.title == "Identity API endpoints in .NET 8"
        assert post.date == datetime(2023, 9, 13, 10, 0, tzinfo=timezone(timedelta(hours=2)))
        assert post.date.utcoffset() == timedelta(hours=2)
        assert post.layout == "post"
        assert post.categories == ("identity",)
        assert post.tags == ("dotnet", "aspnetcore")
        assert post.image == ImageRef(path="/assets/img/identity.png", alt="Login form")

    def test_body_excludes_front_matter(self):
        post = _parse_ok(IDENTITY_POST)
        assert post.body == "Body text here.\n"
        assert "title:" not in post.body

    def test_unrecognized_keys_preserved_in_extra(self):
        post = _parse_ok(IDENTITY_POST)
        assert post.extra == {"series": "net8"}

    def test_source_recorded(self):
        post = _parse_ok(IDENTITY_POST)
        assert post.source == SOURCE

    def test_diagnostics_start_empty(self):
        post = _parse_ok(IDENTITY_POST)
        assert post.diagnostics == []

    def test_layout_defaults_to_post(self):
        post = _parse_ok("---\ntitle: T\ndate: 2023-03-14\n---\nbody\n")
        assert post.layout == "post"

    def test_layout_default_is_configurable(self):
        post = _parse_ok("---\ntitle: T\ndate: 2023-03-14\n---\n", default_layout="page")
        assert post.layout == "page"

    def test_date_only_becomes_midnight_utc(self):
        post = _parse_ok("---\ntitle: T\ndate: 2023-03-14\n---\n")
        assert post.date == datetime(2023, 3, 14, 0, 0, tzinfo=UTC)

    def test_naive_datetime_gets_default_timezone(self):
        tz = timezone(timedelta(hours=-5))
        post = _parse_ok("---\ntitle: T\ndate: 2023-03-14 08:30:00\n---\n", default_tz=tz)
        assert post.date.utcoffset() == timedelta(hours=-5)
        assert post.date.hour == 8

    def test_iso_string_date(self):
        post = _parse_ok("---\ntitle: T\ndate: '2023-03-14T08:30:00+01:00'\n---\n")
        assert post.date == datetime(2023, 3, 14, 7, 30, tzinfo=UTC)

    def test_whitespace_separated_categories(self):
        post = _parse_ok("---\ntitle: T\ndate: 2023-03-14\ncategories: efcore performance\n---\n")
        assert post.categories == ("efcore", "performance")

    def test_duplicate_categories_collapse_in_order(self):
        post = _parse_ok("---\ntitle: T\ndate: 2023-03-14\ncategories: [b, a, b]\n---\n")
        assert post.categories == ("b", "a")

    def test_tags_keep_their_case(self):
        post = _parse_ok("---\ntitle: T\ndate: 2023-03-14\ntags: [DotNet]\n---\n")
        assert post.tags == ("DotNet",)

    def test_scalar_tags_become_strings(self):
        post = _parse_ok("---\ntitle: T\ndate: 2023-03-14\ntags: [2023, csharp]\n---\n")
        assert post.tags == ("2023", "csharp")

    def test_image_as_plain_path(self):
        post = _parse_ok("---\ntitle: T\ndate: 2023-03-14\nimage: /img/cover.png\n---\n")
        assert post.image == ImageRef(path="/img/cover.png")

    def test_no_image(self):
        post = _parse_ok("---\ntitle: T\ndate: 2023-03-14\n---\n")
        assert post.image is None

    def test_crlf_line_endings(self):
        text = "---\r\ntitle: T\r\ndate: 2023-03-14\r\n---\r\nBody\r\n"
        post = _parse_ok(text)
        assert post.title == "T"
        assert post.body == "Body\n"

    def test_toml_front_matter(self):
        text = (
            "+++\n"
            'title = "Benchmarking tuples"\n'
            "date = 2023-05-01T09:00:00+01:00\n"
            'tags = ["benchmarkdotnet"]\n'
            "+++\n"
            "Body\n"
        )
        post = _parse_ok(text)
        assert post.title == "Benchmarking tuples"
        assert post.date == datetime(2023, 5, 1, 8, 0, tzinfo=UTC)
        assert post.tags == ("benchmarkdotnet",)


class TestParseFailures:
    def test_missing_date(self):
        failure = _parse_fail("---\ntitle: No date here\n---\nbody\n")
        assert failure.kind == ParseErrorKind.MISSING_REQUIRED_FIELD
        assert failure.field == "date"
        assert failure.source == SOURCE

    def test_missing_title(self):
        failure = _parse_fail("---\ndate: 2023-03-14\n---\n")
        assert failure.kind == ParseErrorKind.MISSING_REQUIRED_FIELD
        assert failure.field == "title"

    def test_blank_title(self):
        failure = _parse_fail("---\ntitle: '   '\ndate: 2023-03-14\n---\n")
        assert failure.field == "title"

    def test_no_front_matter_at_all(self):
        failure = _parse_fail("Just a body.\n")
        assert failure.kind == ParseErrorKind.MISSING_REQUIRED_FIELD

    def test_unclosed_block(self):
        failure = _parse_fail("---\ntitle: T\ndate: 2023-03-14\n\nBody without closing marker\n")
        assert failure.kind == ParseErrorKind.MALFORMED_FRONT_MATTER

    def test_invalid_yaml(self):
        failure = _parse_fail("---\ntitle: [unclosed\ndate: 2023-03-14\n---\n")
        assert failure.kind == ParseErrorKind.MALFORMED_FRONT_MATTER

    def test_non_mapping_block(self):
        failure = _parse_fail("---\n- just\n- a list\n---\n")
        assert failure.kind == ParseErrorKind.MALFORMED_FRONT_MATTER

    def test_unparseable_date(self):
        failure = _parse_fail("---\ntitle: T\ndate: sometime last spring\n---\n")
        assert failure.kind == ParseErrorKind.INVALID_FIELD_VALUE

    def test_impossible_calendar_date(self):
        failure = _parse_fail("---\ntitle: T\ndate: 2023-02-30\n---\nbody\n")
        assert failure.kind == ParseErrorKind.INVALID_FIELD_VALUE
        assert failure.source == SOURCE

    def test_impossible_date_string(self):
        failure = _parse_fail("---\ntitle: T\ndate: '2023-02-30 10:00'\n---\n")
        assert failure.kind == ParseErrorKind.INVALID_FIELD_VALUE

    def test_empty_tag(self):
        failure = _parse_fail("---\ntitle: T\ndate: 2023-03-14\ntags: [dotnet, '']\n---\n")
        assert failure.kind == ParseErrorKind.INVALID_FIELD_VALUE

    def test_nested_category(self):
        failure = _parse_fail("---\ntitle: T\ndate: 2023-03-14\ncategories: [[a, b]]\n---\n")
        assert failure.kind == ParseErrorKind.INVALID_FIELD_VALUE

    def test_raising_api(self):
        with pytest.raises(MissingRequiredField) as excinfo:
            parse_front_matter("---\ntitle: T\n---\n", SOURCE)
        assert excinfo.value.field == "date"
        assert excinfo.value.source == SOURCE

    def test_raising_api_malformed(self):
        with pytest.raises(MalformedFrontMatter):
            parse_front_matter("---\ntitle: T\n", SOURCE)


class TestSplitFrontMatter:
    def test_without_marker(self):
        meta, body = split_front_matter("# Heading\n\ntext\n")
        assert meta == {}
        assert body == "# Heading\n\ntext\n"

    def test_empty_block(self):
        meta, body = split_front_matter("---\n---\nbody\n")
        assert meta == {}
        assert body == "body\n"

    def test_byte_order_mark_is_ignored(self):
        meta, _ = split_front_matter("\ufeff---\ntitle: T\n---\n")
        assert meta == {"title": "T"}


class TestIdentifier:
    def test_dated_filename_used_verbatim(self):
        post = _parse_ok(IDENTITY_POST)
        assert post.identifier == "2023-09-13-identity-api-endpoints"
        assert post.slug == "identity-api-endpoints"

    def test_undated_filename_gets_date_prefix(self):
        post = _parse_ok(IDENTITY_POST, source="drafts/My Draft Post.md")
        assert post.identifier == "2023-09-13-my-draft-post"

    def test_falls_back_to_title(self):
        when = datetime(2023, 3, 14, tzinfo=UTC)
        assert derive_identifier("", when, "Loading Strategies") == "2023-03-14-loading-strategies"


class TestRoundTrip:
    def test_recognized_keys_survive(self):
        original = _parse_ok(IDENTITY_POST)
        reparsed = _parse_ok(dump_post(original))

        assert reparsed.title == original.title
        assert reparsed.date == original.date
        assert reparsed.date.utcoffset() == original.date.utcoffset()
        assert reparsed.layout == original.layout
        assert reparsed.categories == original.categories
        assert reparsed.tags == original.tags
        assert reparsed.image == original.image
        assert reparsed.extra == original.extra
        assert reparsed.body == original.body

    def test_minimal_post(self):
        original = _parse_ok("---\ntitle: T\ndate: 2023-03-14\n---\n")
        reparsed = _parse_ok(dump_post(original))
        assert reparsed.date == original.date
        assert reparsed.categories == ()
        assert reparsed.image is None

    def test_dump_is_fenced_yaml(self):
        dumped = dump_front_matter(_parse_ok(IDENTITY_POST))
        assert dumped.startswith("---\n")
        assert dumped.endswith("---\n")
        assert "title: Identity API endpoints in .NET 8" in dumped
