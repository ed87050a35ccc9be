"""
Hosting target base — the contract between the pipeline and a host.

Uploading is treated as an opaque "upload directory, get back a served
URL" operation.  Implementations raise ``UploadFailed`` on any failure
and must leave the previously published content untouched when they do.
"""

from __future__ import annotations

import logging
import subprocess
from abc import ABC, abstractmethod
from pathlib import Path

from mirrorpub.core.errors import UploadFailed
from mirrorpub.core.models.selection import PublishArtifact

logger = logging.getLogger(__name__)


class HostingTarget(ABC):
    """Abstract base class for all hosting targets."""

    def __init__(self, timeout_s: float, base_url: str = "") -> None:
        self.timeout_s = timeout_s
        self.base_url = base_url

    @property
    @abstractmethod
    def name(self) -> str:
        """The target identifier (e.g., 'ghpages', 'directory')."""

    @abstractmethod
    def upload(self, artifact: PublishArtifact) -> str:
        """Publish the artifact directory and return the served URL.

        Raises:
            UploadFailed: the target rejected the upload or timed out.
        """

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} name={self.name!r}>"


def run_checked(
    args: list[str] | str,
    *,
    cwd: Path | None,
    timeout_s: float,
    what: str,
    shell: bool = False,
) -> subprocess.CompletedProcess[str]:
    """Run a command for an upload step, mapping every failure to UploadFailed."""
    logger.debug("%s: %s (cwd=%s)", what, args, cwd)
    try:
        result = subprocess.run(
            args,
            cwd=str(cwd) if cwd else None,
            shell=shell,
            capture_output=True,
            text=True,
            timeout=timeout_s,
        )
    except subprocess.TimeoutExpired as e:
        raise UploadFailed(f"{what} timed out after {timeout_s:.0f}s") from e
    except OSError as e:
        raise UploadFailed(f"{what} could not start: {e}") from e

    if result.returncode != 0:
        detail = result.stderr.strip() or result.stdout.strip()
        raise UploadFailed(
            f"{what} failed (exit {result.returncode})" + (f": {detail}" if detail else "")
        )
    return result
