"""
Snapshot model — typed view over the raw mirror status feed.

The oracle produces a nested mapping of arbitrary depth::

    {"North America": {"USA": {"https://mirror/": {"status": "Alive", ...}}}}

The tree is kept as-is at the boundary.  Only the leaves the selector
actually reads are narrowed into ``MirrorRecord`` objects, so region
names never need to be known up front.
"""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from dataclasses import dataclass
from enum import StrEnum
from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

REGION_SEPARATOR = "/"


class MirrorStatus(StrEnum):
    """Reported reachability of a mirror."""

    ALIVE = "Alive"
    DEAD = "Dead"
    TIMEOUT = "Timeout"
    UNKNOWN = "Unknown"

    @classmethod
    def _missing_(cls, value: object) -> MirrorStatus:
        return cls.UNKNOWN


class MirrorRecord(BaseModel):
    """One mirror's reported state, immutable once read.

    ``release_version`` and ``revision`` stay raw text tokens here;
    numeric parsing (and its failure mode) belongs to the selector.
    """

    model_config = ConfigDict(frozen=True, extra="ignore", populate_by_name=True)

    mirror_id: str
    url: str
    status: MirrorStatus = MirrorStatus.UNKNOWN
    release_version: str | None = Field(
        default=None,
        validation_alias=AliasChoices("releaseVersion", "release_version", "texlive_version"),
    )
    revision: str | None = None

    @field_validator("status", mode="before")
    @classmethod
    def _coerce_status(cls, value: Any) -> MirrorStatus:
        if isinstance(value, MirrorStatus):
            return value
        if isinstance(value, str):
            return MirrorStatus(value)
        return MirrorStatus.UNKNOWN

    @field_validator("release_version", "revision", mode="before")
    @classmethod
    def _coerce_token(cls, value: Any) -> str | None:
        # JSON numbers become their text form; booleans stay recognisably
        # non-numeric so the selector rejects them.
        if value is None or isinstance(value, str):
            return value
        if isinstance(value, bool):
            return str(value).lower()
        return str(value)

    @property
    def is_alive(self) -> bool:
        return self.status == MirrorStatus.ALIVE

    @classmethod
    def from_entry(cls, mirror_id: str, entry: Mapping[str, Any]) -> MirrorRecord:
        """Narrow one raw feed entry; the url defaults to the entry key."""
        data = dict(entry)
        url = data.get("url")
        data["url"] = url if isinstance(url, str) and url else mirror_id
        data["mirror_id"] = mirror_id
        return cls.model_validate(data)


@dataclass(frozen=True)
class RegionPath:
    """Hierarchical key selecting a bucket of mirrors, e.g. continent/country."""

    parts: tuple[str, ...]

    def __post_init__(self) -> None:
        if not self.parts or any(not p for p in self.parts):
            raise ValueError(f"Invalid region path: {self.parts!r}")

    @classmethod
    def parse(cls, text: str | RegionPath) -> RegionPath:
        if isinstance(text, RegionPath):
            return text
        parts = tuple(p.strip() for p in text.split(REGION_SEPARATOR))
        return cls(parts)

    def __str__(self) -> str:
        return REGION_SEPARATOR.join(self.parts)


def _is_record_entry(value: Any) -> bool:
    return isinstance(value, Mapping) and "status" in value


class Snapshot:
    """One fetch's full raw status data.

    Built fresh for every run and discarded afterwards.  Records are
    narrowed lazily per region; feed order is preserved throughout.
    """

    def __init__(self, tree: Mapping[str, Any]) -> None:
        if not isinstance(tree, Mapping):
            raise TypeError(f"Snapshot root must be a mapping, got {type(tree).__name__}")
        self._tree = tree

    @property
    def tree(self) -> Mapping[str, Any]:
        return self._tree

    def _node(self, region: RegionPath) -> Mapping[str, Any] | None:
        node: Any = self._tree
        for part in region.parts:
            if not isinstance(node, Mapping) or part not in node:
                return None
            node = node[part]
        return node if isinstance(node, Mapping) else None

    def records(self, region: RegionPath | str) -> tuple[MirrorRecord, ...]:
        """Return the mirror records directly under ``region``, in feed order.

        A missing region yields an empty tuple.  Deeper nesting levels
        and non-mapping values under the region are skipped.
        """
        node = self._node(RegionPath.parse(region))
        if node is None:
            return ()
        return tuple(
            MirrorRecord.from_entry(str(key), value)
            for key, value in node.items()
            if _is_record_entry(value)
        )

    def regions(self) -> Iterator[RegionPath]:
        """Yield every region path whose node directly holds mirror records."""
        stack: list[tuple[tuple[str, ...], Mapping[str, Any]]] = [((), self._tree)]
        while stack:
            prefix, node = stack.pop()
            children: list[tuple[tuple[str, ...], Mapping[str, Any]]] = []
            has_records = False
            for key, value in node.items():
                if _is_record_entry(value):
                    has_records = True
                elif isinstance(value, Mapping):
                    children.append((prefix + (str(key),), value))
            if has_records and prefix:
                yield RegionPath(prefix)
            stack.extend(reversed(children))
