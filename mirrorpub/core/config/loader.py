"""
Configuration loader — reads publish.yml into the publisher model.

It reads YAML, validates against the Pydantic schema, and returns a
typed ``PublisherConfig``.  Relative paths inside the file (oracle
file, passthrough, workspace, hosting directory) are resolved against
the directory holding publish.yml.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from mirrorpub.core.models.publisher import PublisherConfig

logger = logging.getLogger(__name__)

PUBLISH_CONFIG_FILE = "publish.yml"


class ConfigError(Exception):
    """Raised when publisher configuration is invalid or missing."""


def find_config_file(start_dir: Path | None = None) -> Path | None:
    """Find publish.yml in ``start_dir`` (default: cwd) or its nearest ancestor.

    The search does not leave the enclosing git repository.
    """
    start = (start_dir or Path.cwd()).resolve()
    for directory in (start, *start.parents):
        candidate = directory / PUBLISH_CONFIG_FILE
        if candidate.is_file():
            return candidate
        if (directory / ".git").exists():
            break
    return None


def _read_mapping(path: Path) -> dict[str, Any]:
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8"))
    except OSError as e:
        raise ConfigError(f"Cannot read {path}: {e}") from e
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}") from e
    if not isinstance(data, dict):
        raise ConfigError(f"Expected a YAML mapping in {path}, got {type(data).__name__}")
    return data


def load_config(path: Path | None = None) -> PublisherConfig:
    """Load and validate publisher configuration.

    Args:
        path: Explicit path to publish.yml. If None, searches upward.

    Raises:
        ConfigError: the file is missing, unreadable or fails validation.
    """
    path = path or find_config_file()
    if path is None:
        raise ConfigError(f"No {PUBLISH_CONFIG_FILE} found. Specify one with --config.")
    if not path.is_file():
        raise ConfigError(f"Config file not found: {path}")

    logger.debug("Loading publisher config from %s", path)
    try:
        config = PublisherConfig.model_validate(_read_mapping(path))
    except ValidationError as e:
        raise ConfigError(f"Invalid publisher configuration in {path}: {e}") from e

    logger.info(
        "Loaded publisher '%s' with %d regions (oracle=%s, hosting=%s)",
        config.name, len(config.regions), config.oracle.kind, config.hosting.kind,
    )
    return config


def config_root(config_path: Path) -> Path:
    """Directory that relative paths in ``config_path`` are resolved against."""
    return config_path.parent.resolve()


def resolve_path(root: Path, value: str) -> Path:
    """Resolve a possibly-relative path from publish.yml."""
    p = Path(value).expanduser()
    return p if p.is_absolute() else (root / p)
