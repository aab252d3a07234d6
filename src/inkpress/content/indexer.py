"""Derived, read-only views over the content store.

Indices are always rebuilt wholesale from the store; there is no
incremental update.  A :class:`SiteIndex` remembers the store generation
it was built from and refuses to be read once the store has moved on.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field

from inkpress.content.models import Post
from inkpress.content.store import ContentStore
from inkpress.shared.errors import StaleIndexError
from inkpress.shared.text import slugify

logger = logging.getLogger(__name__)


class IndexKind(StrEnum):
    HOME = "home"
    CATEGORY = "category"
    TAG = "tag"


class IndexSnapshot(BaseModel):
    """The three derived indices, as identifiers."""

    model_config = ConfigDict(frozen=True)

    generation: int
    chronological: tuple[str, ...] = ()
    categories: dict[str, tuple[str, ...]] = Field(default_factory=dict)
    tags: dict[str, tuple[str, ...]] = Field(default_factory=dict)


class IndexView(BaseModel):
    """One index page to render: the home page, a category, or a tag."""

    model_config = ConfigDict(frozen=True)

    kind: IndexKind
    key: str = ""
    slug: str = ""
    title: str
    identifiers: tuple[str, ...] = ()


def chronological_order(posts: Iterable[Post]) -> list[Post]:
    """Newest first; equal dates fall back to identifier ascending."""
    by_identifier = sorted(posts, key=lambda p: p.identifier)
    return sorted(by_identifier, key=lambda p: p.date, reverse=True)


class SiteIndex:
    """Index handle bound to the store generation it was built from."""

    def __init__(self, store: ContentStore, snapshot: IndexSnapshot) -> None:
        self._store = store
        self._snapshot = snapshot

    @property
    def is_stale(self) -> bool:
        return self._store.generation != self._snapshot.generation

    @property
    def snapshot(self) -> IndexSnapshot:
        if self.is_stale:
            raise StaleIndexError(
                f"index built at generation {self._snapshot.generation}, "
                f"store is at {self._store.generation}; rebuild before reading"
            )
        return self._snapshot

    @property
    def chronological(self) -> tuple[str, ...]:
        return self.snapshot.chronological

    @property
    def categories(self) -> dict[str, tuple[str, ...]]:
        return dict(self.snapshot.categories)

    @property
    def tags(self) -> dict[str, tuple[str, ...]]:
        return dict(self.snapshot.tags)

    def posts(self, identifiers: Iterable[str] | None = None) -> list[Post]:
        """Resolve identifiers (default: the chronological index) to posts."""
        ids = self.chronological if identifiers is None else identifiers
        return [self._store.get(i) for i in ids]

    def __contains__(self, identifier: object) -> bool:
        return identifier in self.snapshot.chronological

    def neighbours(self, identifier: str) -> tuple[str | None, str | None]:
        """(newer, older) identifiers around a post in chronological order."""
        order = self.chronological
        try:
            pos = order.index(identifier)
        except ValueError:
            return None, None
        newer = order[pos - 1] if pos > 0 else None
        older = order[pos + 1] if pos + 1 < len(order) else None
        return newer, older

    def views(self, site_title: str = "") -> list[IndexView]:
        """Home view, then one view per category and per tag."""
        snap = self.snapshot
        result = [
            IndexView(
                kind=IndexKind.HOME,
                title=site_title or "Home",
                identifiers=snap.chronological,
            )
        ]
        for kind, mapping in ((IndexKind.CATEGORY, snap.categories), (IndexKind.TAG, snap.tags)):
            taken: set[str] = set()
            for key, ids in mapping.items():
                slug = _unique_slug(key, taken)
                result.append(
                    IndexView(kind=kind, key=key, slug=slug, title=key, identifiers=ids)
                )
        return result


class Indexer:
    """Builds SiteIndex handles from a ContentStore."""

    def rebuild(
        self,
        store: ContentStore,
        include: Callable[[Post], bool] | None = None,
    ) -> SiteIndex:
        """Rebuild every index from the full current store content.

        Args:
            store: The content store to read.
            include: Optional predicate; posts it rejects are left out of
                all three indices.
        """
        generation = store.generation
        posts = [p for p in store.all() if include is None or include(p)]
        ordered = chronological_order(posts)

        categories: dict[str, list[str]] = {}
        tags: dict[str, list[str]] = {}
        for post in ordered:
            for category in post.categories:
                categories.setdefault(category, []).append(post.identifier)
            for tag in post.tags:
                tags.setdefault(tag, []).append(post.identifier)

        snapshot = IndexSnapshot(
            generation=generation,
            chronological=tuple(p.identifier for p in ordered),
            categories={k: tuple(categories[k]) for k in sorted(categories)},
            tags={k: tuple(tags[k]) for k in sorted(tags)},
        )
        logger.info(
            "Indexed %d posts: %d categories, %d tags",
            len(ordered),
            len(categories),
            len(tags),
        )
        return SiteIndex(store, snapshot)


def _unique_slug(key: str, taken: set[str]) -> str:
    base = slugify(key) or "untitled"
    slug = base
    n = 2
    while slug in taken:
        slug = f"{base}-{n}"
        n += 1
    taken.add(slug)
    return slug
