"""Filesystem storage collaborator: reading sources, writing the built site."""

from __future__ import annotations

import logging
import os
import tempfile
from collections.abc import Callable
from pathlib import Path

from inkpress.shared.errors import SourceDirectoryError

logger = logging.getLogger(__name__)

SOURCE_SUFFIXES = (".md", ".markdown")

ReadErrorHandler = Callable[[Path, Exception], None]


def _atomic_write(path: Path, data: bytes) -> None:
    """Write bytes via a temp file in the same directory, then rename over the target."""
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "wb") as f:
            f.write(data)
        os.replace(tmp_name, path)
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise


class FileSystemStorage:
    """Reads post sources and writes output artifacts under a destination root."""

    def __init__(self, destination: Path) -> None:
        self.destination = Path(destination)

    def read_all(
        self,
        directory: Path,
        on_error: ReadErrorHandler | None = None,
    ) -> list[tuple[Path, str]]:
        """Read every Markdown file under ``directory``, sorted by path.

        Files that cannot be read or decoded are passed to ``on_error`` (or
        logged) and skipped.

        Raises:
            SourceDirectoryError: The directory is missing or unreadable.
        """
        directory = Path(directory)
        if not directory.is_dir():
            raise SourceDirectoryError(f"source directory not found: {directory}")
        try:
            candidates = sorted(
                p for p in directory.rglob("*") if p.is_file() and p.suffix in SOURCE_SUFFIXES
            )
        except OSError as exc:
            raise SourceDirectoryError(f"cannot read source directory {directory}: {exc}") from exc

        files: list[tuple[Path, str]] = []
        for path in candidates:
            try:
                files.append((path, path.read_text(encoding="utf-8")))
            except (OSError, UnicodeDecodeError) as exc:
                if on_error is not None:
                    on_error(path, exc)
                else:
                    logger.warning("Could not read %s: %s", path, exc)
        logger.info("Read %d source files from %s", len(files), directory)
        return files

    def write(self, path: str | Path, data: bytes) -> Path:
        """Write one artifact, relative to the destination root."""
        relative = Path(str(path).lstrip("/"))
        if ".." in relative.parts:
            raise ValueError(f"refusing to write outside destination: {path}")
        target = self.destination / relative
        _atomic_write(target, data)
        logger.debug("Wrote %s (%d bytes)", target, len(data))
        return target
