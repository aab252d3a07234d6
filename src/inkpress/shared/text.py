"""Small text helpers shared by parsing and rendering."""

from __future__ import annotations

import re
import unicodedata

_NON_SLUG = re.compile(r"[^a-z0-9\s-]")
_SEPARATORS = re.compile(r"[\s_]+")
_DASHES = re.compile(r"-+")


def slugify(text: str, *, max_length: int = 80) -> str:
    """Lowercase ASCII slug.

    ``"Tuple Deconstruction in C#"`` becomes ``"tuple-deconstruction-in-c"``.
    """
    ascii_text = unicodedata.normalize("NFKD", text).encode("ascii", "ignore").decode("ascii")
    slug = _NON_SLUG.sub("", ascii_text.lower())
    slug = _SEPARATORS.sub("-", slug)
    slug = _DASHES.sub("-", slug).strip("-")
    return slug[:max_length].rstrip("-")
