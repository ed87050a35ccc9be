"""
Selection and artifact models — what the selector and writer hand on.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from mirrorpub.core.models.snapshot import RegionPath


@dataclass(frozen=True)
class SelectionResult:
    """The alive mirrors of one region tied for most current.

    ``urls`` keeps snapshot order and never holds duplicates.
    ``freshness`` is the winning ``(release_version, revision)`` pair,
    or None when no mirror in the region is alive.
    """

    region: RegionPath
    urls: tuple[str, ...] = ()
    freshness: tuple[int, int] | None = None

    @property
    def is_empty(self) -> bool:
        return not self.urls

    def to_dict(self) -> dict[str, Any]:
        return {
            "region": str(self.region),
            "urls": list(self.urls),
            "release_version": self.freshness[0] if self.freshness else None,
            "revision": self.freshness[1] if self.freshness else None,
        }


@dataclass(frozen=True)
class PublishArtifact:
    """A complete, immutable bundle of output files ready for upload.

    Only ever constructed once every file is in place; the directory
    is not touched again until it is pruned.
    """

    path: Path
    generated: dict[str, str] = field(default_factory=dict)    # file name → region
    passthrough: tuple[str, ...] = ()
    created_at: str = field(default_factory=lambda: datetime.now(UTC).isoformat())

    @property
    def files(self) -> list[str]:
        return sorted(set(self.generated) | set(self.passthrough))

    def to_dict(self) -> dict[str, Any]:
        return {
            "path": str(self.path),
            "generated": dict(self.generated),
            "passthrough": list(self.passthrough),
            "created_at": self.created_at,
        }
