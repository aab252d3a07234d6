"""Build pipeline — source files → parsed posts → store → validation → index → pages.

One strict pass per run.  Parsing, validation and rendering fan out over a
thread pool; inserting into the store and rebuilding the index are the
synchronization points between those phases.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from concurrent.futures import Future, ThreadPoolExecutor
from datetime import UTC, datetime
from pathlib import Path

from inkpress.config import SiteConfig
from inkpress.content.frontmatter import parse_post
from inkpress.content.indexer import Indexer, SiteIndex
from inkpress.content.models import ParseFailure, ParseOutcome, Post
from inkpress.content.store import ContentStore
from inkpress.content.validator import Validator
from inkpress.render.base import RenderCollaborator
from inkpress.render.facade import Page, RendererFacade
from inkpress.render.jinja import JinjaMarkdownRenderer
from inkpress.shared.errors import (
    BuildReport,
    BuildWarning,
    DuplicateIdentifier,
    DuplicatePermalink,
    NoPostsError,
    PageKind,
    RenderCollaboratorError,
)
from inkpress.storage import FileSystemStorage

logger = logging.getLogger(__name__)


def build_site(
    config: SiteConfig,
    *,
    collaborator: RenderCollaborator | None = None,
    storage: FileSystemStorage | None = None,
    now: datetime | None = None,
) -> BuildReport:
    """Build the whole site described by ``config``.

    Args:
        config: Site configuration (source and destination included).
        collaborator: Markup/template renderer. Defaults to
            :class:`JinjaMarkdownRenderer` configured from ``config``.
        storage: Filesystem collaborator. Defaults to one rooted at the
            configured destination.
        now: Ingestion time for the future-date rule. Defaults to now (UTC).

    Returns:
        The run's BuildReport.

    Raises:
        SourceDirectoryError: The source directory is missing or unreadable.
        NoPostsError: No post could be parsed.
    """
    storage = storage or FileSystemStorage(config.destination_dir)
    collaborator = collaborator or JinjaMarkdownRenderer(
        templates_dir=config.templates_dir,
        extensions=config.build.markdown_extensions,
    )
    report = BuildReport()

    store = _ingest(config, storage, report, now)
    blocked = _claim_output_paths(store, config, report)
    index = Indexer().rebuild(
        store, include=lambda p: p.is_publishable and p.identifier not in blocked
    )
    facade = RendererFacade(config, index=index, storage=storage)

    pages = _render_all(facade, index, collaborator, config, report)
    for page in pages:
        report.add_page(page.record())
    report.posts_published = sum(1 for p in pages if p.kind is PageKind.POST)

    if config.feed.enabled:
        try:
            report.add_page(facade.render_feed().record())
        except RenderCollaboratorError as exc:
            report.add_post_error("feed", exc)

    logger.info(
        "Built %d pages (%d posts) into %s; %d errors, %d warnings",
        len(report.pages),
        report.posts_published,
        storage.destination,
        len(report.failures),
        len(report.warnings),
    )
    return report


def check_site(config: SiteConfig, *, now: datetime | None = None) -> BuildReport:
    """Parse and validate every post without rendering anything."""
    report = BuildReport()
    store = _ingest(config, FileSystemStorage(config.destination_dir), report, now)
    _claim_output_paths(store, config, report)
    return report


# ---------------------------------------------------------------------------
# Phases
# ---------------------------------------------------------------------------


def _ingest(
    config: SiteConfig,
    storage: FileSystemStorage,
    report: BuildReport,
    now: datetime | None,
) -> ContentStore:
    """Read, parse, store and validate.  Returns the frozen store."""
    source_dir = config.source_dir

    def on_read_error(path: Path, exc: Exception) -> None:
        report.add_error(
            "read", str(exc), source=_relative(path, source_dir), error_type="unreadable_source"
        )

    files = storage.read_all(source_dir, on_error=on_read_error)
    report.sources_read = len(files)

    default_layout = config.build.default_layout
    default_tz = config.build.tz

    def parse(item: tuple[Path, str]) -> ParseOutcome:
        path, text = item
        return parse_post(
            text,
            _relative(path, source_dir),
            default_layout=default_layout,
            default_tz=default_tz,
        )

    with ThreadPoolExecutor(max_workers=config.build.workers) as pool:
        outcomes = list(pool.map(parse, files))

    store = ContentStore()
    for outcome in outcomes:
        if isinstance(outcome, ParseFailure):
            report.add_error(
                "parse", outcome.message, source=outcome.source, error_type=outcome.kind
            )
            continue
        result = store.insert(outcome.post)
        if not result.inserted:
            report.add_error(
                "store",
                f"identifier {result.identifier!r} already used by {result.existing_source}",
                source=result.source,
                error_type=DuplicateIdentifier.error_type,
            )
    store.freeze()
    report.posts_parsed = len(store)

    if not len(store):
        raise NoPostsError(f"no posts could be parsed from {source_dir}")

    _validate_all(store, config, report, now)
    return store


def _validate_all(
    store: ContentStore,
    config: SiteConfig,
    report: BuildReport,
    now: datetime | None,
) -> None:
    validator = Validator(config.build.allowed_layouts, now=now or datetime.now(tz=UTC))
    posts = sorted(store.all(), key=lambda p: p.source)

    with ThreadPoolExecutor(max_workers=config.build.workers) as pool:
        list(pool.map(validator.validate, posts))

    for post in posts:
        _record_diagnostics(post, report)


def _record_diagnostics(post: Post, report: BuildReport) -> None:
    for diagnostic in post.diagnostics:
        if diagnostic.kind.blocks_publishing:
            report.add_error(
                "validate", diagnostic.message, source=post.source, error_type=diagnostic.kind
            )
            continue
        logger.warning("%s: %s", post.source, diagnostic.message)
        report.warnings.append(
            BuildWarning(
                source=post.source,
                identifier=post.identifier,
                kind=diagnostic.kind,
                rule=diagnostic.rule,
                message=diagnostic.message,
            )
        )


def _claim_output_paths(store: ContentStore, config: SiteConfig, report: BuildReport) -> set[str]:
    """Give every output path to exactly one publishable post.

    Posts are visited in source path order, so the first source to resolve
    to a path keeps it.  Every later post resolving to the same path is
    reported and its identifier returned, to be left out of the index.
    """
    urls = RendererFacade(config)
    owners: dict[str, Post] = {}
    blocked: set[str] = set()
    for post in sorted(store.all(), key=lambda p: p.source):
        if not post.is_publishable:
            continue
        path = urls.output_path(urls.permalink(post))
        owner = owners.setdefault(path, post)
        if owner is post:
            continue
        blocked.add(post.identifier)
        report.add_error(
            "permalink",
            f"output path {path} already used by {owner.source}",
            source=post.source,
            error_type=DuplicatePermalink.error_type,
        )
    return blocked


def _render_all(
    facade: RendererFacade,
    index: SiteIndex,
    collaborator: RenderCollaborator,
    config: SiteConfig,
    report: BuildReport,
) -> list[Page]:
    """Render every post and index view; failures are reported and skipped."""
    jobs: list[Callable[[], Page]] = []
    for post in index.posts():
        jobs.append(lambda post=post: facade.render(post, collaborator))
    for view in index.views(config.site.title):
        jobs.append(lambda view=view: facade.render_index(view, collaborator))

    pages: list[Page] = []
    with ThreadPoolExecutor(max_workers=config.build.workers) as pool:
        futures: list[Future[Page]] = [pool.submit(job) for job in jobs]
        for future in futures:
            try:
                pages.append(future.result())
            except RenderCollaboratorError as exc:
                report.add_post_error("render", exc)
    return pages


def _relative(path: Path, root: Path) -> str:
    try:
        return str(path.relative_to(root))
    except ValueError:
        return str(path)
