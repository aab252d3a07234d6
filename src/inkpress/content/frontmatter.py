"""Front-matter parsing and serialization.

A post file starts with a metadata block fenced by a marker line::

    ---
    title: Identity API endpoints in .NET 8
    date: 2023-09-13 10:00:00 +0200
    categories: [identity]
    tags: [dotnet, aspnetcore]
    image:
      path: /assets/img/identity.png
      alt: Login form
    ---

    Post body in Markdown...

``---`` fences YAML, ``+++`` fences TOML.  Everything after the closing
marker is the body.
"""

from __future__ import annotations

import logging
import re
import tomllib
from collections.abc import Mapping
from datetime import UTC, date, datetime, time, tzinfo
from pathlib import PurePath
from typing import Any

import yaml

from inkpress.content.models import (
    ImageRef,
    ParsedPost,
    ParseErrorKind,
    ParseFailure,
    ParseOutcome,
    Post,
)
from inkpress.shared.errors import (
    FrontMatterError,
    InvalidFieldValue,
    MalformedFrontMatter,
    MissingRequiredField,
)
from inkpress.shared.text import slugify

logger = logging.getLogger(__name__)

YAML_MARKER = "---"
TOML_MARKER = "+++"
MARKERS = (YAML_MARKER, TOML_MARKER)

RECOGNIZED_KEYS = frozenset({"title", "date", "layout", "categories", "tags", "image"})

_DATED_STEM = re.compile(r"^\d{4}-\d{2}-\d{2}-.+$")

# Tried after datetime.fromisoformat; covers Jekyll's "2023-09-13 10:00:00 +0200".
_DATE_FORMATS = (
    "%Y-%m-%d %H:%M:%S %z",
    "%Y-%m-%d %H:%M %z",
    "%Y-%m-%d %H:%M:%S",
    "%Y-%m-%d %H:%M",
)

_ERROR_KINDS: dict[type[FrontMatterError], ParseErrorKind] = {
    MalformedFrontMatter: ParseErrorKind.MALFORMED_FRONT_MATTER,
    MissingRequiredField: ParseErrorKind.MISSING_REQUIRED_FIELD,
    InvalidFieldValue: ParseErrorKind.INVALID_FIELD_VALUE,
}


def split_front_matter(text: str, source: str = "") -> tuple[dict[str, Any], str]:
    """Split raw file text into the decoded metadata mapping and the body.

    Text that does not open with a marker line has no front matter: the
    mapping is empty and the whole text is the body.

    Raises:
        MalformedFrontMatter: Unclosed block, undecodable block, or a block
            that is not a mapping.
        InvalidFieldValue: A YAML value that cannot be constructed, such as an
            impossible calendar date.
    """
    text = text.lstrip("\ufeff").replace("\r\n", "\n")
    lines = text.split("\n")
    marker = lines[0].rstrip()
    if marker not in MARKERS:
        return {}, text

    closing = None
    for i in range(1, len(lines)):
        if lines[i].rstrip() == marker:
            closing = i
            break
    if closing is None:
        raise MalformedFrontMatter(f"no closing '{marker}' for front matter", source=source)

    raw = "\n".join(lines[1:closing])
    body = "\n".join(lines[closing + 1 :]).lstrip("\n")

    if marker == TOML_MARKER:
        try:
            data: Any = tomllib.loads(raw)
        except tomllib.TOMLDecodeError as exc:
            raise MalformedFrontMatter(f"invalid TOML front matter: {exc}", source=source) from exc
    else:
        try:
            data = yaml.safe_load(raw)
        except yaml.YAMLError as exc:
            raise MalformedFrontMatter(f"invalid YAML front matter: {exc}", source=source) from exc
        except ValueError as exc:
            # Raised by the timestamp constructor for dates like 2023-02-30.
            raise InvalidFieldValue(f"invalid value in front matter: {exc}", source=source) from exc

    if data is None:
        data = {}
    if not isinstance(data, Mapping):
        raise MalformedFrontMatter(
            f"front matter must be a mapping, got {type(data).__name__}", source=source
        )
    return {str(k): v for k, v in data.items()}, body


def parse_front_matter(
    text: str,
    source: str = "",
    *,
    default_layout: str = "post",
    default_tz: tzinfo = UTC,
) -> Post:
    """Parse one post file into a Post.

    Raises:
        MalformedFrontMatter: See :func:`split_front_matter`.
        MissingRequiredField: ``title`` or ``date`` is absent.
        InvalidFieldValue: ``date`` is unparseable, or a list field holds
            an empty or non-scalar value.
    """
    meta, body = split_front_matter(text, source)

    title = meta.get("title")
    if title is None or not str(title).strip():
        raise MissingRequiredField("title", source=source)
    if meta.get("date") in (None, ""):
        raise MissingRequiredField("date", source=source)

    post_date = _coerce_date(meta["date"], default_tz, source)
    layout = meta.get("layout")

    return Post(
        identifier=derive_identifier(source, post_date, str(title)),
        source=source,
        title=str(title).strip(),
        date=post_date,
        layout=str(layout).strip() if layout not in (None, "") else default_layout,
        categories=_coerce_strings(meta.get("categories"), "categories", source),
        tags=_coerce_strings(meta.get("tags"), "tags", source),
        image=_coerce_image(meta.get("image"), source),
        body=body,
        extra={k: v for k, v in meta.items() if k not in RECOGNIZED_KEYS},
    )


def parse_post(
    text: str,
    source: str = "",
    *,
    default_layout: str = "post",
    default_tz: tzinfo = UTC,
) -> ParseOutcome:
    """Parse one post file, returning a success or failure outcome instead of raising."""
    try:
        post = parse_front_matter(
            text, source, default_layout=default_layout, default_tz=default_tz
        )
    except FrontMatterError as exc:
        logger.debug("Rejected %s: %s", source or "<text>", exc.message)
        return ParseFailure(
            source=source,
            kind=_ERROR_KINDS.get(type(exc), ParseErrorKind.MALFORMED_FRONT_MATTER),
            message=exc.message,
            field=getattr(exc, "field", None),
        )
    return ParsedPost(post=post)


def derive_identifier(source: str, post_date: datetime, title: str = "") -> str:
    """Stable identifier from the filename: ``YYYY-MM-DD-slug``.

    A dated stem is kept verbatim; any other stem (or the title, when
    there is no filename) is slugified and prefixed with the post date.
    """
    stem = PurePath(source).stem if source else ""
    if _DATED_STEM.match(stem):
        return stem
    slug = slugify(stem) or slugify(title) or "post"
    return f"{post_date:%Y-%m-%d}-{slug}"


def dump_front_matter(post: Post) -> str:
    """Serialize a post's metadata back to a ``---`` YAML block."""
    data: dict[str, Any] = {
        "title": post.title,
        "date": post.date.isoformat(),
        "layout": post.layout,
    }
    if post.categories:
        data["categories"] = list(post.categories)
    if post.tags:
        data["tags"] = list(post.tags)
    if post.image is not None:
        image: dict[str, str] = {"path": post.image.path}
        if post.image.alt:
            image["alt"] = post.image.alt
        data["image"] = image
    data.update(post.extra)

    dumped = yaml.safe_dump(data, sort_keys=False, allow_unicode=True, default_flow_style=False)
    return f"{YAML_MARKER}\n{dumped}{YAML_MARKER}\n"


def dump_post(post: Post) -> str:
    """Front matter followed by the body, as it would appear on disk."""
    return f"{dump_front_matter(post)}\n{post.body}"


# ---------------------------------------------------------------------------
# Field coercion
# ---------------------------------------------------------------------------


def _coerce_date(value: Any, default_tz: tzinfo, source: str) -> datetime:
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        parsed = datetime.combine(value, time.min)
    elif isinstance(value, str):
        parsed = _parse_date_string(value.strip(), source)
    else:
        raise InvalidFieldValue(f"unparseable date {value!r}", source=source)

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=default_tz)
    return parsed


def _parse_date_string(text: str, source: str) -> datetime:
    try:
        return datetime.fromisoformat(text)
    except ValueError:
        pass
    for fmt in _DATE_FORMATS:
        try:
            return datetime.strptime(text, fmt)
        except ValueError:
            continue
    raise InvalidFieldValue(f"unparseable date {text!r}", source=source)


def _coerce_strings(value: Any, field: str, source: str) -> tuple[str, ...]:
    """Normalize a list field: sequence or whitespace-separated string, duplicates collapsed."""
    if value is None:
        return ()
    if isinstance(value, str):
        items: list[Any] = value.split()
    elif isinstance(value, (list, tuple, set)):
        items = list(value)
    else:
        items = [value]

    result: list[str] = []
    for item in items:
        if isinstance(item, (Mapping, list, tuple, set)):
            raise InvalidFieldValue(f"{field} must contain plain strings", source=source)
        text = "" if item is None else str(item).strip()
        if not text:
            raise InvalidFieldValue(f"{field} contains an empty value", source=source)
        if text not in result:
            result.append(text)
    return tuple(result)


def _coerce_image(value: Any, source: str) -> ImageRef | None:
    if value is None:
        return None
    if isinstance(value, str):
        return ImageRef(path=value)
    if isinstance(value, Mapping):
        path = value.get("path")
        alt = value.get("alt")
        return ImageRef(
            path="" if path is None else str(path),
            alt="" if alt is None else str(alt),
        )
    raise InvalidFieldValue(f"image must be a path or a mapping, got {value!r}", source=source)
