"""
Config check use case — validate publish.yml and report issues.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

from mirrorpub.core.config.loader import (
    ConfigError,
    config_root,
    find_config_file,
    load_config,
    resolve_path,
)
from mirrorpub.core.models.publisher import PublisherConfig


@dataclass
class ConfigCheckResult:
    """Result of configuration validation."""

    valid: bool = False
    config: PublisherConfig | None = None
    config_path: Path | None = None
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "valid": self.valid,
            "config_path": str(self.config_path) if self.config_path else None,
            "errors": self.errors,
            "warnings": self.warnings,
            "name": self.config.name if self.config else None,
            "group": self.config.group if self.config else None,
            "regions": {r.path: r.output for r in self.config.regions} if self.config else {},
            "oracle": self.config.oracle.kind if self.config else None,
            "hosting": self.config.hosting.kind if self.config else None,
        }


def check_config(config_path: Path | None = None) -> ConfigCheckResult:
    """Validate publisher configuration and report issues.

    Schema violations are errors; things that would only bite at run
    time (missing passthrough directory, missing oracle file, nothing
    to publish) are warnings.
    """
    result = ConfigCheckResult()

    if config_path is None:
        config_path = find_config_file()
    if config_path is None:
        result.errors.append("No publish.yml found.")
        return result
    result.config_path = config_path

    try:
        config = load_config(config_path)
    except ConfigError as e:
        result.errors.append(str(e))
        return result
    result.config = config

    root = config_root(config_path)

    if not config.regions:
        result.warnings.append("No regions configured. Runs will publish passthrough content only.")

    if config.passthrough and not resolve_path(root, config.passthrough).is_dir():
        result.warnings.append(f"Passthrough directory does not exist: {config.passthrough}")

    if config.oracle.file and not resolve_path(root, config.oracle.file).is_file():
        result.warnings.append(f"Oracle file does not exist: {config.oracle.file}")

    if config.hosting.kind == "ghpages" and not config.hosting.base_url:
        result.warnings.append("hosting.base_url is empty; outcomes will report the git remote instead.")

    result.valid = not result.errors
    return result
