"""
GitHub Pages target — force-push the artifact to a pages branch.

A scratch copy of the artifact becomes a one-commit repository that
replaces the branch wholesale.  Until the push lands the branch still
serves the previous publish.
"""

from __future__ import annotations

import logging
import shutil
import tempfile
from pathlib import Path

from mirrorpub.adapters.hosting.base import HostingTarget, run_checked
from mirrorpub.core.errors import UploadFailed
from mirrorpub.core.models.selection import PublishArtifact

logger = logging.getLogger(__name__)

_COMMIT_IDENTITY = ["-c", "user.name=mirrorpub", "-c", "user.email=mirrorpub@localhost"]


class GhPagesTarget(HostingTarget):
    """Push to ``branch`` of ``remote`` (default: the project's origin)."""

    def __init__(
        self,
        *,
        branch: str,
        remote: str,
        project_root: Path,
        timeout_s: float,
        base_url: str = "",
    ) -> None:
        super().__init__(timeout_s, base_url)
        self.branch = branch
        self.remote = remote
        self.project_root = project_root

    @property
    def name(self) -> str:
        return "ghpages"

    def _remote_url(self) -> str:
        if self.remote:
            return self.remote
        r = run_checked(
            ["git", "remote", "get-url", "origin"],
            cwd=self.project_root,
            timeout_s=self.timeout_s,
            what="Resolving origin remote",
        )
        url = r.stdout.strip()
        if not url:
            raise UploadFailed("No 'origin' remote configured")
        return url

    def upload(self, artifact: PublishArtifact) -> str:
        remote_url = self._remote_url()

        with tempfile.TemporaryDirectory(prefix="mirrorpub-ghpages-") as scratch:
            worktree = Path(scratch) / "site"
            try:
                shutil.copytree(artifact.path, worktree)
                # GitHub Pages would otherwise run Jekyll over plain text files
                (worktree / ".nojekyll").touch()
            except OSError as e:
                raise UploadFailed(f"Cannot prepare pages worktree: {e}") from e

            def git(*args: str, what: str) -> None:
                run_checked(
                    ["git", *args], cwd=worktree, timeout_s=self.timeout_s, what=what,
                )

            git("init", "--quiet", what="git init")
            git("checkout", "--quiet", "-b", self.branch, what="git checkout")
            git("add", "-A", what="git add")
            git(
                *_COMMIT_IDENTITY, "commit", "--quiet", "-m",
                f"Publish mirror lists ({artifact.path.name})",
                what="git commit",
            )
            git(
                "push", "--force", "--quiet", remote_url, f"HEAD:refs/heads/{self.branch}",
                what="git push",
            )

        logger.info("Pushed artifact %s to %s (%s)", artifact.path.name, remote_url, self.branch)
        return self.base_url or remote_url
