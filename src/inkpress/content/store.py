"""In-memory content store for parsed posts.

Posts are keyed by identifier.  Every successful mutation bumps
``generation`` so derived indices can detect that they are stale.  After
ingestion the store is frozen and stays read-only for the rest of the run.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Iterator, ValuesView

from inkpress.content.models import InsertOutcome, InsertStatus, Post
from inkpress.shared.errors import PostNotFound, StoreFrozenError

logger = logging.getLogger(__name__)


class PostsView:
    """Restartable, lazy view over the posts currently in a store."""

    def __init__(self, posts: ValuesView[Post]) -> None:
        self._posts = posts

    def __iter__(self) -> Iterator[Post]:
        return iter(self._posts)

    def __len__(self) -> int:
        return len(self._posts)


class ContentStore:
    """CRUD store for posts keyed by identifier."""

    def __init__(self) -> None:
        self._posts: dict[str, Post] = {}
        self._lock = threading.Lock()
        self._generation = 0
        self._frozen = False

    # ── Write operations ─────────────────────────────────────────

    def insert(self, post: Post) -> InsertOutcome:
        """Insert a post unless its identifier is taken.

        Returns an outcome instead of raising so a batch of inserts keeps
        going past conflicts; the existing post is left untouched.
        """
        with self._lock:
            self._check_writable()
            existing = self._posts.get(post.identifier)
            if existing is not None:
                logger.debug(
                    "Conflict on %s: %s vs %s", post.identifier, existing.source, post.source
                )
                return InsertOutcome(
                    status=InsertStatus.CONFLICT,
                    identifier=post.identifier,
                    source=post.source,
                    existing_source=existing.source,
                )
            self._posts[post.identifier] = post
            self._generation += 1
        return InsertOutcome(
            status=InsertStatus.INSERTED, identifier=post.identifier, source=post.source
        )

    def remove(self, identifier: str) -> Post:
        """Remove and return a post.

        Raises PostNotFound if the identifier does not exist.
        """
        with self._lock:
            self._check_writable()
            try:
                post = self._posts.pop(identifier)
            except KeyError:
                raise PostNotFound(identifier) from None
            self._generation += 1
        return post

    def freeze(self) -> None:
        """Make the store read-only."""
        self._frozen = True

    # ── Read operations ──────────────────────────────────────────

    def get(self, identifier: str) -> Post:
        """Return a post by identifier.

        Raises PostNotFound if the identifier does not exist.
        """
        try:
            return self._posts[identifier]
        except KeyError:
            raise PostNotFound(identifier) from None

    def all(self) -> PostsView:
        """All posts, in no particular order.  The view can be iterated repeatedly."""
        return PostsView(self._posts.values())

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def frozen(self) -> bool:
        return self._frozen

    def __len__(self) -> int:
        return len(self._posts)

    def __contains__(self, identifier: object) -> bool:
        return identifier in self._posts

    # ── Private helpers ──────────────────────────────────────────

    def _check_writable(self) -> None:
        if self._frozen:
            raise StoreFrozenError("content store is frozen after ingestion")
