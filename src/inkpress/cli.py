"""CLI interface for inkpress."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Annotated, Optional

import typer
from rich.console import Console
from rich.markup import escape
from rich.progress import Progress, SpinnerColumn, TextColumn

from inkpress.config import SiteConfig, load_config, merge_cli_overrides
from inkpress.pipeline import build_site, check_site
from inkpress.shared.errors import BuildReport, FatalBuildError

app = typer.Typer(
    name="inkpress",
    help="Build a static blog from Markdown posts with front matter.",
    no_args_is_help=True,
)

console = Console()

EXIT_FATAL = 2


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        from inkpress import __version__

        console.print(f"inkpress {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: Annotated[
        bool,
        typer.Option(
            "--version",
            "-V",
            help="Show version and exit.",
            callback=version_callback,
            is_eager=True,
        ),
    ] = False,
) -> None:
    """inkpress - parse, validate, index and render blog posts."""


def _configure_logging(level: str, verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else getattr(logging, level.upper(), logging.INFO),
        format="[%(levelname)s] %(name)s: %(message)s",
        force=True,
    )


def _load(
    config_path: Path | None,
    **overrides: object,
) -> SiteConfig:
    config = load_config(config_path)
    return merge_cli_overrides(config, **overrides)


def _print_report(report: BuildReport, *, strict: bool) -> None:
    console.print()
    console.print(f"  Sources read: {report.sources_read}")
    console.print(f"  Posts parsed: {report.posts_parsed}")
    if report.pages:
        console.print(f"  Posts published: {report.posts_published}")
        console.print(f"  Pages written: {len(report.pages)}")

    if report.warnings:
        console.print()
        console.print(f"[yellow]{len(report.warnings)} warning(s):[/yellow]")
        for w in report.warnings:
            console.print(f"  - {escape(w.source)}: {escape(w.message)} [dim]({w.rule})[/dim]")

    if report.failures:
        console.print()
        console.print(f"[red]{len(report.failures)} error(s):[/red]")
        for f in report.failures:
            where = f"{f.source}: " if f.source else ""
            line = f"[{f.stage}] {where}{f.message}"
            console.print(f"  - {escape(line)}")

    console.print()
    if report.exit_code(strict=strict) == 0:
        console.print("[bold green]Done.[/bold green]")
    elif report.failures:
        console.print("[bold red]Finished with errors.[/bold red]")
    else:
        console.print("[bold yellow]Finished with warnings (strict mode).[/bold yellow]")


@app.command()
def build(
    source: Annotated[
        Optional[Path],
        typer.Argument(help="Directory of Markdown posts (default: build.source)."),
    ] = None,
    destination: Annotated[
        Optional[Path],
        typer.Argument(help="Output directory (default: build.destination)."),
    ] = None,
    config_path: Annotated[
        Optional[Path],
        typer.Option("--config", "-c", help="Path to a .inkpress.toml file."),
    ] = None,
    base_url: Annotated[
        Optional[str],
        typer.Option("--base-url", help="Absolute URL prefix for links and the feed."),
    ] = None,
    templates_dir: Annotated[
        Optional[Path],
        typer.Option("--templates", help="Jinja templates overriding the built-ins."),
    ] = None,
    workers: Annotated[
        Optional[int],
        typer.Option("--workers", "-w", help="Parallel workers for parsing and rendering."),
    ] = None,
    strict: Annotated[
        bool,
        typer.Option("--strict", help="Exit non-zero on warnings too."),
    ] = False,
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-v", help="Debug logging."),
    ] = False,
) -> None:
    """Build the site: parse, validate, index and render every post.

    Exits 0 on success, 1 when any post failed, 2 when the build could not
    run at all (unreadable source directory, no parseable posts).
    """
    config = _load(
        config_path,
        source=source,
        destination=destination,
        base_url=base_url,
        templates_dir=templates_dir,
        workers=workers,
    )
    _configure_logging(config.logging.level, verbose)

    console.print(f"Building {config.source_dir} → {config.destination_dir}")
    try:
        with Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            console=console,
        ) as progress:
            progress.add_task("Building site...", total=None)
            report = build_site(config)
    except FatalBuildError as exc:
        console.print(f"[red]Error:[/red] {escape(str(exc))}")
        raise typer.Exit(EXIT_FATAL)

    _print_report(report, strict=strict)
    raise typer.Exit(report.exit_code(strict=strict))


@app.command()
def check(
    source: Annotated[
        Optional[Path],
        typer.Argument(help="Directory of Markdown posts (default: build.source)."),
    ] = None,
    config_path: Annotated[
        Optional[Path],
        typer.Option("--config", "-c", help="Path to a .inkpress.toml file."),
    ] = None,
    strict: Annotated[
        bool,
        typer.Option("--strict", help="Exit non-zero on warnings too."),
    ] = False,
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-v", help="Debug logging."),
    ] = False,
) -> None:
    """Parse and validate posts without writing anything."""
    config = _load(config_path, source=source)
    _configure_logging(config.logging.level, verbose)

    try:
        report = check_site(config)
    except FatalBuildError as exc:
        console.print(f"[red]Error:[/red] {escape(str(exc))}")
        raise typer.Exit(EXIT_FATAL)

    _print_report(report, strict=strict)
    raise typer.Exit(report.exit_code(strict=strict))


if __name__ == "__main__":
    app()
