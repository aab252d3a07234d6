"""Renderer facade: turns posts and index views into published pages.

The facade owns everything about a page except the markup conversion:
output paths and permalinks, breadcrumbs, newer/older navigation and the
Markdown listing behind each index page.  Conversion is delegated to a
:class:`~inkpress.render.base.RenderCollaborator`, and every rendered page
is handed to the storage collaborator.
"""

from __future__ import annotations

import logging
import re
import xml.etree.ElementTree as ET
from email.utils import formatdate
from typing import Any
from urllib.parse import urlsplit

from pydantic import BaseModel

from inkpress.config import SiteConfig
from inkpress.content.indexer import IndexKind, IndexView, SiteIndex
from inkpress.content.models import Post
from inkpress.render.base import PageWriter, RenderCollaborator
from inkpress.shared.errors import PageKind, PageRecord, RenderCollaboratorError
from inkpress.shared.text import slugify

logger = logging.getLogger(__name__)

INDEX_TEMPLATE = "index"
_MD_SPECIAL = re.compile(r"([\\\[\]*_`])")
_MULTI_SLASH = re.compile(r"/{2,}")
# C0 controls other than tab, LF and CR are not allowed in XML 1.0.
_XML_INVALID = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f]")


class Page(BaseModel):
    """A rendered artifact ready for static hosting."""

    path: str
    url: str
    kind: PageKind
    title: str = ""
    content: bytes

    def record(self) -> PageRecord:
        return PageRecord(path=self.path, kind=self.kind, size=len(self.content), title=self.title)


class RendererFacade:
    """Renders posts and index views through a collaborator and publishes them."""

    def __init__(
        self,
        config: SiteConfig,
        index: SiteIndex | None = None,
        storage: PageWriter | None = None,
    ) -> None:
        self.config = config
        self.index = index
        self.storage = storage
        self._base_path = urlsplit(config.site.base_url).path.rstrip("/")
        self._view_urls: dict[tuple[IndexKind, str], str] = {}
        if index is not None:
            for view in index.views(config.site.title):
                self._view_urls[(view.kind, view.key)] = self.site_url(self.index_url(view))

    # ── URLs and paths ───────────────────────────────────────────

    def permalink(self, post: Post) -> str:
        """Site-relative URL of a post, from the configured pattern."""
        first_category = slugify(post.categories[0]) if post.categories else ""
        url = self.config.build.permalink.format(
            year=f"{post.date:%Y}",
            month=f"{post.date:%m}",
            day=f"{post.date:%d}",
            slug=post.slug,
            identifier=post.identifier,
            category=first_category,
        )
        url = _MULTI_SLASH.sub("/", "/" + url.lstrip("/"))
        return url

    def index_url(self, view: IndexView) -> str:
        if view.kind is IndexKind.HOME:
            return "/"
        section = "categories" if view.kind is IndexKind.CATEGORY else "tags"
        return f"/{section}/{view.slug}/"

    def absolute_url(self, url: str) -> str:
        return self.config.site.base_url.rstrip("/") + url

    def site_url(self, url: str) -> str:
        """Link target for a site-relative URL, under the path of ``base_url``.

        A site served from ``https://user.github.io/blog`` links to
        ``/blog/2023/09/13/x/`` while still writing ``2023/09/13/x/index.html``.
        """
        return self._base_path + url

    @staticmethod
    def output_path(url: str) -> str:
        """Destination path for a URL: directory-style URLs get an ``index.html``."""
        path = url.lstrip("/")
        if not path or path.endswith("/"):
            return path + "index.html"
        if "." not in path.rsplit("/", 1)[-1]:
            return path + ".html"
        return path

    # ── Rendering ────────────────────────────────────────────────

    def render(self, post: Post, collaborator: RenderCollaborator) -> Page:
        """Render and publish one post.

        Raises:
            RenderCollaboratorError: The collaborator (or the write) failed.
        """
        url = self.permalink(post)
        newer, older = (None, None)
        if self.index is not None:
            newer, older = self.index.neighbours(post.identifier)
        context = {
            "site": self._site_context(),
            "page": {
                "title": post.title,
                "url": self.site_url(url),
                "date": post.date.isoformat(),
                "date_display": f"{post.date:%B} {post.date.day}, {post.date:%Y}",
                "layout": post.layout,
                "categories": [
                    {"title": c, "url": self._link(IndexKind.CATEGORY, c)} for c in post.categories
                ],
                "tags": [{"title": t, "url": self._link(IndexKind.TAG, t)} for t in post.tags],
                "image": post.image.model_dump() if post.image else None,
                "extra": post.extra,
            },
            "breadcrumbs": self._post_breadcrumbs(post),
            "newer": self._nav_link(newer),
            "older": self._nav_link(older),
        }
        html = self._call(
            collaborator, post.body, post.layout, context, post.source, post.identifier
        )
        page = Page(
            path=self.output_path(url),
            url=url,
            kind=PageKind.POST,
            title=post.title,
            content=html.encode("utf-8"),
        )
        return self._publish(page, post.source, post.identifier)

    def render_index(self, view: IndexView, collaborator: RenderCollaborator) -> Page:
        """Render and publish one index page (home, category or tag).

        Raises:
            RenderCollaboratorError: The collaborator (or the write) failed.
        """
        if self.index is None:
            raise ValueError("render_index needs a SiteIndex")
        posts = self.index.posts(view.identifiers)
        url = self.index_url(view)
        title = self._view_title(view)
        context = {
            "site": self._site_context(),
            "page": {"title": title, "url": self.site_url(url)},
            "index": {
                "kind": str(view.kind),
                "key": view.key,
                "entries": [
                    {
                        "title": p.title,
                        "url": self.site_url(self.permalink(p)),
                        "date": p.date.isoformat(),
                    }
                    for p in posts
                ],
            },
            "breadcrumbs": self._index_breadcrumbs(view, title),
        }
        markup = self.format_listing(posts)
        label = f"{view.kind}:{view.key}" if view.key else str(view.kind)
        html = self._call(collaborator, markup, INDEX_TEMPLATE, context, label, "")
        page = Page(
            path=self.output_path(url),
            url=url,
            kind=PageKind.INDEX,
            title=title,
            content=html.encode("utf-8"),
        )
        return self._publish(page, label, "")

    def format_listing(self, posts: list[Post]) -> str:
        """Markdown list of links, one line per post."""
        lines: list[str] = []
        for post in posts:
            title = _MD_SPECIAL.sub(r"\\\1", post.title)
            url = self.site_url(self.permalink(post))
            lines.append(f"- [{title}]({url}) ({post.date:%Y-%m-%d})")
        if not lines:
            lines.append("_No posts yet._")
        lines.append("")
        return "\n".join(lines)

    def render_feed(self) -> Page:
        """Render and publish the RSS 2.0 feed of the newest posts."""
        if self.index is None:
            raise ValueError("render_feed needs a SiteIndex")
        site = self.config.site
        feed = self.config.feed
        posts = self.index.posts()[: max(feed.limit, 0)]

        rss = ET.Element("rss", version="2.0")
        channel = ET.SubElement(rss, "channel")
        ET.SubElement(channel, "title").text = _xml_text(site.title)
        ET.SubElement(channel, "link").text = self.absolute_url("/")
        ET.SubElement(channel, "description").text = _xml_text(site.description or site.title)
        if posts:
            ET.SubElement(channel, "lastBuildDate").text = _rfc822(posts[0])
        for post in posts:
            link = self.absolute_url(self.permalink(post))
            item = ET.SubElement(channel, "item")
            ET.SubElement(item, "title").text = _xml_text(post.title)
            ET.SubElement(item, "link").text = link
            ET.SubElement(item, "guid").text = link
            ET.SubElement(item, "pubDate").text = _rfc822(post)
            summary = _xml_text(post.extra.get("description") or _first_paragraph(post.body))
            if summary:
                ET.SubElement(item, "description").text = summary
            for category in (*post.categories, *post.tags):
                ET.SubElement(item, "category").text = _xml_text(category)

        content = ET.tostring(rss, encoding="utf-8", xml_declaration=True)
        url = "/" + feed.path.lstrip("/")
        page = Page(
            path=feed.path.lstrip("/"),
            url=url,
            kind=PageKind.FEED,
            title=site.title,
            content=content,
        )
        return self._publish(page, feed.path, "")

    # ── Private helpers ──────────────────────────────────────────

    def _call(
        self,
        collaborator: RenderCollaborator,
        markup: str,
        template: str,
        context: dict[str, Any],
        source: str,
        identifier: str,
    ) -> str:
        try:
            return collaborator.render(markup, template, context)
        except Exception as exc:
            raise RenderCollaboratorError(
                f"rendering with template {template!r} failed: {exc}",
                source=source,
                identifier=identifier,
            ) from exc

    def _publish(self, page: Page, source: str, identifier: str) -> Page:
        if self.storage is not None:
            try:
                self.storage.write(page.path, page.content)
            except (OSError, ValueError) as exc:
                raise RenderCollaboratorError(
                    f"could not write {page.path}: {exc}", source=source, identifier=identifier
                ) from exc
        logger.debug("Rendered %s → %s", source or page.url, page.path)
        return page

    def _site_context(self) -> dict[str, Any]:
        site = self.config.site
        base_url = site.base_url.rstrip("/")
        feed_url = ""
        if self.config.feed.enabled:
            feed_url = f"{base_url}/{self.config.feed.path.lstrip('/')}"
        return {
            "title": site.title,
            "description": site.description,
            "author": site.author,
            "base_url": base_url,
            "feed_url": feed_url,
        }

    def _link(self, kind: IndexKind, key: str) -> str:
        return self._view_urls.get((kind, key), "")

    def _nav_link(self, identifier: str | None) -> dict[str, str] | None:
        if identifier is None or self.index is None:
            return None
        post = self.index.posts([identifier])[0]
        return {"title": post.title, "url": self.site_url(self.permalink(post))}

    def _post_breadcrumbs(self, post: Post) -> list[dict[str, str]]:
        crumbs = [{"title": "Home", "url": self.site_url("/")}]
        if post.categories:
            category = post.categories[0]
            crumbs.append({"title": category, "url": self._link(IndexKind.CATEGORY, category)})
        crumbs.append({"title": post.title, "url": ""})
        return crumbs

    def _index_breadcrumbs(self, view: IndexView, title: str) -> list[dict[str, str]]:
        if view.kind is IndexKind.HOME:
            return []
        return [{"title": "Home", "url": self.site_url("/")}, {"title": title, "url": ""}]

    def _view_title(self, view: IndexView) -> str:
        if view.kind is IndexKind.CATEGORY:
            return f"Category: {view.key}"
        if view.kind is IndexKind.TAG:
            return f"Tag: {view.key}"
        return view.title


def _rfc822(post: Post) -> str:
    return formatdate(post.date.timestamp(), usegmt=True)


def _xml_text(value: Any) -> str:
    return _XML_INVALID.sub("", str(value))


def _first_paragraph(body: str) -> str:
    for block in body.strip().split("\n\n"):
        text = " ".join(line.strip() for line in block.splitlines()).strip()
        if text and not text.startswith(("#", "```", "!", "<", "|")):
            return text
    return ""
