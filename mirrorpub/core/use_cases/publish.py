"""
Publish use case — wire config, pipeline and coordinator together.

This is the vertical slice every trigger surface goes through: the CLI
``run`` command, the scheduler and the web routes all submit to the
coordinator returned here, so they share one group's single-flight
guarantee within the process.  Other processes are kept out by the
group lock the pipeline holds around each run.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path

from mirrorpub.core.config.loader import ConfigError, config_root, find_config_file, load_config
from mirrorpub.core.models.publisher import PublisherConfig
from mirrorpub.core.persistence.run_history import RunHistory, default_state_dir
from mirrorpub.core.services.coordinator import PublishCoordinator, get_coordinator
from mirrorpub.core.services.pipeline import DeploymentPipeline

logger = logging.getLogger(__name__)


@dataclass
class Publisher:
    """Everything a trigger surface needs."""

    config: PublisherConfig
    config_path: Path
    root: Path
    pipeline: DeploymentPipeline
    coordinator: PublishCoordinator

    @property
    def history(self) -> RunHistory:
        return self.pipeline.history


def open_publisher(config_path: Path | None = None) -> Publisher:
    """Load publish.yml and return the publisher for its group.

    Raises:
        ConfigError: publish.yml is missing or invalid.
    """
    if config_path is None:
        config_path = find_config_file()
    if config_path is None:
        raise ConfigError("No publish.yml found. Specify one with --config.")

    config = load_config(config_path)
    root = config_root(config_path)
    pipeline = DeploymentPipeline(config, root, history=RunHistory(default_state_dir(root)))
    coordinator = get_coordinator(config.group, pipeline.run)
    logger.debug("Publisher '%s' ready (group=%s, root=%s)", config.name, config.group, root)
    return Publisher(
        config=config,
        config_path=config_path,
        root=root,
        pipeline=pipeline,
        coordinator=coordinator,
    )
