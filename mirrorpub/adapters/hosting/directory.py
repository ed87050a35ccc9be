"""
Directory target — publish into a directory served by a web server.

The new content is copied into a sibling directory and then swapped
in by renames, so a reader sees the old tree or the new tree, never a
mix of both.  There is a brief window between the two renames where
the path does not exist; web servers answer 404 for that instant,
never stale-mixed content.
"""

from __future__ import annotations

import logging
import shutil
import tempfile
from pathlib import Path

from mirrorpub.adapters.hosting.base import HostingTarget
from mirrorpub.core.errors import UploadFailed
from mirrorpub.core.models.selection import PublishArtifact

logger = logging.getLogger(__name__)


class DirectoryTarget(HostingTarget):
    def __init__(self, path: Path, timeout_s: float, base_url: str = "") -> None:
        super().__init__(timeout_s, base_url)
        self.path = path

    @property
    def name(self) -> str:
        return "directory"

    def upload(self, artifact: PublishArtifact) -> str:
        target = self.path
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            incoming = Path(tempfile.mkdtemp(dir=target.parent, prefix=f".{target.name}.new-"))
        except OSError as e:
            raise UploadFailed(f"Cannot prepare {target}: {e}") from e

        try:
            shutil.copytree(artifact.path, incoming, dirs_exist_ok=True)
            incoming.chmod(0o755)
        except OSError as e:
            shutil.rmtree(incoming, ignore_errors=True)
            raise UploadFailed(f"Cannot copy artifact into {target.parent}: {e}") from e

        retired = target.parent / f".{target.name}.old-{artifact.path.name}"
        try:
            if target.exists():
                target.rename(retired)
            incoming.rename(target)
        except OSError as e:
            shutil.rmtree(incoming, ignore_errors=True)
            if retired.exists() and not target.exists():
                retired.rename(target)
            raise UploadFailed(f"Cannot swap in new content at {target}: {e}") from e

        shutil.rmtree(retired, ignore_errors=True)
        logger.info("Published artifact %s into %s", artifact.path.name, target)
        return self.base_url or target.resolve().as_uri()
