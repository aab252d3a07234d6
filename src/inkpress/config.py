"""Unified configuration loaded from .inkpress.toml, env vars, and CLI flags.

Loading order: defaults → TOML file → env vars → CLI flags.
"""

from __future__ import annotations

import logging
import os
import tomllib
from datetime import UTC, tzinfo
from pathlib import Path
from string import Formatter
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import BaseModel, Field, ValidationError, field_validator

logger = logging.getLogger(__name__)

CONFIG_FILENAME = ".inkpress.toml"
CONFIG_SEARCH_PATHS = [
    Path("."),
]
GLOBAL_CONFIG_PATH = Path.home() / ".config" / "inkpress" / "config.toml"
PERMALINK_FIELDS = frozenset({"year", "month", "day", "slug", "identifier", "category"})


class SiteSectionConfig(BaseModel):
    """[site] section."""

    title: str = "My Blog"
    description: str = ""
    base_url: str = ""
    author: str = ""


class BuildSectionConfig(BaseModel):
    """[build] section."""

    source: str = "_posts"
    destination: str = "_site"
    default_layout: str = "post"
    allowed_layouts: list[str] = Field(default_factory=lambda: ["post", "page", "default"])
    permalink: str = "/{year}/{month}/{day}/{slug}/"
    timezone: str = "UTC"
    workers: int = 4
    markdown_extensions: list[str] = Field(
        default_factory=lambda: ["fenced_code", "tables", "toc"]
    )

    @field_validator("workers")
    @classmethod
    def _at_least_one_worker(cls, value: int) -> int:
        return max(1, value)

    @field_validator("permalink")
    @classmethod
    def _known_placeholders(cls, value: str) -> str:
        names = {name for _, name, _, _ in Formatter().parse(value) if name is not None}
        unknown = names - PERMALINK_FIELDS
        if unknown:
            raise ValueError(f"unknown permalink placeholder(s): {', '.join(sorted(unknown))}")
        return value

    @property
    def tz(self) -> tzinfo:
        """Timezone applied to front-matter dates without an offset."""
        if self.timezone.upper() == "UTC":
            return UTC
        try:
            return ZoneInfo(self.timezone)
        except (ZoneInfoNotFoundError, ValueError):
            logger.warning("Unknown timezone %r, falling back to UTC", self.timezone)
            return UTC


class FeedSectionConfig(BaseModel):
    """[feed] section."""

    enabled: bool = True
    path: str = "feed.xml"
    limit: int = 20


class TemplatesSectionConfig(BaseModel):
    """[templates] section."""

    directory: str = ""


class LoggingSectionConfig(BaseModel):
    """[logging] section."""

    level: str = "INFO"


class SiteConfig(BaseModel):
    """Top-level configuration for a site build."""

    site: SiteSectionConfig = Field(default_factory=SiteSectionConfig)
    build: BuildSectionConfig = Field(default_factory=BuildSectionConfig)
    feed: FeedSectionConfig = Field(default_factory=FeedSectionConfig)
    templates: TemplatesSectionConfig = Field(default_factory=TemplatesSectionConfig)
    logging: LoggingSectionConfig = Field(default_factory=LoggingSectionConfig)

    @property
    def source_dir(self) -> Path:
        return Path(self.build.source)

    @property
    def destination_dir(self) -> Path:
        return Path(self.build.destination)

    @property
    def templates_dir(self) -> Path | None:
        return Path(self.templates.directory) if self.templates.directory else None


def load_config(path: str | Path | None = None) -> SiteConfig:
    """Load configuration from a TOML file.

    Search order:
    1. Explicit path (if provided)
    2. .inkpress.toml in CWD
    3. ~/.config/inkpress/config.toml

    Then overlay environment variables.

    Args:
        path: Explicit path to a TOML file.

    Returns:
        Merged SiteConfig.
    """
    config: SiteConfig | None = None

    if path is not None:
        toml_path = Path(path)
        if toml_path.exists():
            config = _read_config(toml_path)
        else:
            logger.warning("Config file not found: %s", toml_path)
    else:
        for search_dir in CONFIG_SEARCH_PATHS:
            candidate = search_dir / CONFIG_FILENAME
            if candidate.exists():
                config = _read_config(candidate)
                break
        if config is None and GLOBAL_CONFIG_PATH.exists():
            config = _read_config(GLOBAL_CONFIG_PATH)

    return _apply_env_vars(config or SiteConfig())


def merge_cli_overrides(config: SiteConfig, **cli_kwargs: object) -> SiteConfig:
    """Overlay explicitly-set CLI flags onto the config.

    Only overrides values where the CLI flag was explicitly provided
    (i.e., not None).
    """
    data = config.model_dump()

    mapping: dict[str, tuple[str, str]] = {
        "source": ("build", "source"),
        "destination": ("build", "destination"),
        "workers": ("build", "workers"),
        "base_url": ("site", "base_url"),
        "templates_dir": ("templates", "directory"),
        "log_level": ("logging", "level"),
    }

    for key, value in cli_kwargs.items():
        if value is None:
            continue
        if key in mapping:
            section, field = mapping[key]
            data[section][field] = str(value) if isinstance(value, Path) else value
        else:
            logger.debug("Ignoring unknown CLI override %r", key)

    return SiteConfig.model_validate(data)


def _read_config(path: Path) -> SiteConfig | None:
    """Parse and validate one TOML file.

    Returns None for a file that cannot be used, logging the reason, so the
    caller falls back to the next location or to the defaults.
    """
    try:
        with open(path, "rb") as f:
            data = tomllib.load(f)
    except (tomllib.TOMLDecodeError, OSError) as exc:
        logger.warning("Failed to parse %s: %s", path, exc)
        return None
    if not data:
        return None
    try:
        config = SiteConfig.model_validate(data)
    except ValidationError as exc:
        logger.warning("Ignoring invalid config %s: %s", path, exc)
        return None
    logger.info("Loaded config from %s", path)
    return config


def _apply_env_vars(config: SiteConfig) -> SiteConfig:
    """Apply environment variable overrides to config."""
    data = config.model_dump()

    env_mapping: dict[str, tuple[str, str]] = {
        "INKPRESS_SOURCE": ("build", "source"),
        "INKPRESS_DESTINATION": ("build", "destination"),
        "INKPRESS_BASE_URL": ("site", "base_url"),
        "INKPRESS_TEMPLATES_DIR": ("templates", "directory"),
        "INKPRESS_LOG_LEVEL": ("logging", "level"),
    }

    for env_var, (section, field) in env_mapping.items():
        value = os.environ.get(env_var)
        if value is not None:
            data[section][field] = value

    workers_raw = os.environ.get("INKPRESS_WORKERS")
    if workers_raw is not None:
        try:
            data["build"]["workers"] = int(workers_raw)
        except ValueError:
            logger.warning("Ignoring non-integer INKPRESS_WORKERS=%r", workers_raw)

    return SiteConfig.model_validate(data)
