"""
Command target — hand the artifact directory to an arbitrary uploader.

Useful for rsync, object storage CLIs and the like::

    hosting:
      kind: command
      command: "rsync -a --delete {dir}/ mirrors@host:/srv/www/mirrors/"
"""

from __future__ import annotations

import logging
import shlex
from pathlib import Path

from mirrorpub.adapters.hosting.base import HostingTarget, run_checked
from mirrorpub.core.models.selection import PublishArtifact

logger = logging.getLogger(__name__)


class CommandTarget(HostingTarget):
    def __init__(
        self,
        command: str,
        timeout_s: float,
        base_url: str = "",
        cwd: Path | None = None,
    ) -> None:
        super().__init__(timeout_s, base_url)
        self.command = command
        self.cwd = cwd

    @property
    def name(self) -> str:
        return "command"

    def upload(self, artifact: PublishArtifact) -> str:
        command = self.command.replace("{dir}", shlex.quote(str(artifact.path)))
        result = run_checked(
            command,
            cwd=self.cwd,
            timeout_s=self.timeout_s,
            what="Upload command",
            shell=True,
        )
        output = result.stdout.strip()
        logger.info("Upload command finished for %s", artifact.path.name)
        # An uploader may print the served URL as its last line
        last_line = output.splitlines()[-1] if output else ""
        if not self.base_url and last_line.startswith(("http://", "https://")):
            return last_line
        return self.base_url
