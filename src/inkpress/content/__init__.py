"""Content domain — post models, front-matter parsing, store, indices, validation.

Posts flow one way through this package: raw text is parsed into a
Post, inserted into the ContentStore, checked by the Validator and
grouped by the Indexer into chronological, category and tag views.
"""

from inkpress.content.frontmatter import dump_front_matter, parse_front_matter, parse_post
from inkpress.content.indexer import IndexKind, Indexer, IndexSnapshot, IndexView, SiteIndex
from inkpress.content.models import (
    Diagnostic,
    DiagnosticKind,
    ImageRef,
    InsertOutcome,
    InsertStatus,
    ParsedPost,
    ParseErrorKind,
    ParseFailure,
    Post,
)
from inkpress.content.store import ContentStore
from inkpress.content.validator import Validator

__all__ = [
    "ContentStore",
    "Diagnostic",
    "DiagnosticKind",
    "ImageRef",
    "IndexKind",
    "IndexSnapshot",
    "IndexView",
    "Indexer",
    "InsertOutcome",
    "InsertStatus",
    "ParseErrorKind",
    "ParseFailure",
    "ParsedPost",
    "Post",
    "SiteIndex",
    "Validator",
    "dump_front_matter",
    "parse_front_matter",
    "parse_post",
]
