"""
Oracle sources — fetch the raw mirror status snapshot.

The oracle is an external process; this module only knows how to get
its JSON output from a URL, a file, or a command's stdout.  Every
failure mode (I/O, timeout, non-zero exit, bad JSON) becomes
``OracleUnavailable`` so a half-read snapshot is never used.
"""

from __future__ import annotations

import http.client
import json
import logging
import subprocess
import time
import urllib.request
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any

from mirrorpub import __version__
from mirrorpub.core.config.loader import resolve_path
from mirrorpub.core.errors import OracleUnavailable
from mirrorpub.core.models.publisher import OracleConfig
from mirrorpub.core.models.snapshot import Snapshot

logger = logging.getLogger(__name__)


def parse_snapshot(raw: str | bytes, origin: str) -> Snapshot:
    """Decode oracle output into a Snapshot."""
    try:
        data: Any = json.loads(raw)
    except ValueError as e:  # bad JSON, bad UTF-8, oversized integers
        raise OracleUnavailable(f"Oracle output from {origin} is not valid JSON: {e}") from e
    if not isinstance(data, dict):
        raise OracleUnavailable(
            f"Oracle output from {origin} must be a JSON object, got {type(data).__name__}"
        )
    return Snapshot(data)


class OracleSource(ABC):
    """Something that yields a fresh Snapshot on every call."""

    def __init__(self, timeout_s: float) -> None:
        self.timeout_s = timeout_s

    @property
    @abstractmethod
    def name(self) -> str:
        """The source identifier (e.g., 'url', 'file', 'command')."""

    @abstractmethod
    def fetch(self) -> Snapshot:
        """Fetch and decode a snapshot.

        Raises:
            OracleUnavailable: on any failure, including timeout.
        """

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} name={self.name!r}>"


class UrlOracle(OracleSource):
    """GET a JSON document over HTTP(S) (or file://)."""

    def __init__(self, url: str, timeout_s: float) -> None:
        super().__init__(timeout_s)
        self.url = url

    @property
    def name(self) -> str:
        return "url"

    def fetch(self) -> Snapshot:
        logger.debug("Fetching snapshot from %s (timeout %.0fs)", self.url, self.timeout_s)
        try:
            req = urllib.request.Request(
                self.url,
                headers={"User-Agent": f"mirrorpub/{__version__}", "Accept": "application/json"},
            )
            with urllib.request.urlopen(req, timeout=self.timeout_s) as resp:
                body = resp.read()
        # ValueError: malformed URL; HTTPException: broken response
        except (OSError, ValueError, http.client.HTTPException) as e:
            raise OracleUnavailable(f"Cannot fetch snapshot from {self.url}: {e}") from e
        return parse_snapshot(body, self.url)


class FileOracle(OracleSource):
    """Read a JSON snapshot some other job already wrote to disk."""

    def __init__(self, path: Path, timeout_s: float) -> None:
        super().__init__(timeout_s)
        self.path = path

    @property
    def name(self) -> str:
        return "file"

    def fetch(self) -> Snapshot:
        try:
            raw = self.path.read_bytes()
        except OSError as e:
            raise OracleUnavailable(f"Cannot read snapshot file {self.path}: {e}") from e
        return parse_snapshot(raw, str(self.path))


class CommandOracle(OracleSource):
    """Run a command and read the snapshot from its stdout.

    e.g. ``podman run ghcr.io/zauguin/get-tl-mirror-status:get-tl-mirror-status``
    """

    def __init__(self, command: str, timeout_s: float, cwd: Path | None = None) -> None:
        super().__init__(timeout_s)
        self.command = command
        self.cwd = cwd

    @property
    def name(self) -> str:
        return "command"

    def fetch(self) -> Snapshot:
        logger.debug("Running oracle command: %s (timeout %.0fs)", self.command, self.timeout_s)
        start = time.monotonic()
        try:
            result = subprocess.run(
                self.command,
                shell=True,
                cwd=str(self.cwd) if self.cwd else None,
                capture_output=True,
                timeout=self.timeout_s,
            )
        except subprocess.TimeoutExpired as e:
            raise OracleUnavailable(
                f"Oracle command timed out after {self.timeout_s:.0f}s"
            ) from e
        except OSError as e:
            raise OracleUnavailable(f"Cannot run oracle command: {e}") from e

        elapsed_ms = int((time.monotonic() - start) * 1000)
        if result.returncode != 0:
            stderr = result.stderr.decode("utf-8", errors="replace").strip()
            raise OracleUnavailable(
                stderr or f"Oracle command exited with code {result.returncode}"
            )
        logger.debug("Oracle command finished in %dms (%d bytes)", elapsed_ms, len(result.stdout))
        return parse_snapshot(result.stdout, "oracle command")


def build_oracle(config: OracleConfig, root: Path) -> OracleSource:
    """Create the oracle source declared in publish.yml."""
    if config.url:
        return UrlOracle(config.url, config.timeout_s)
    if config.file:
        return FileOracle(resolve_path(root, config.file), config.timeout_s)
    assert config.command
    return CommandOracle(config.command, config.timeout_s, cwd=root)
