"""Hosting targets — where a finished artifact gets published."""

from __future__ import annotations

from pathlib import Path

from mirrorpub.adapters.hosting.base import HostingTarget
from mirrorpub.adapters.hosting.command import CommandTarget
from mirrorpub.adapters.hosting.directory import DirectoryTarget
from mirrorpub.adapters.hosting.ghpages import GhPagesTarget
from mirrorpub.core.config.loader import resolve_path
from mirrorpub.core.models.publisher import HostingConfig


def build_hosting_target(config: HostingConfig, root: Path) -> HostingTarget:
    """Create the hosting target declared in publish.yml."""
    if config.kind == "directory":
        return DirectoryTarget(
            resolve_path(root, config.path), config.timeout_s, base_url=config.base_url,
        )
    if config.kind == "command":
        return CommandTarget(
            config.command, config.timeout_s, base_url=config.base_url, cwd=root,
        )
    return GhPagesTarget(
        branch=config.branch,
        remote=config.remote,
        project_root=root,
        timeout_s=config.timeout_s,
        base_url=config.base_url,
    )


__all__ = [
    "CommandTarget",
    "DirectoryTarget",
    "GhPagesTarget",
    "HostingTarget",
    "build_hosting_target",
]
