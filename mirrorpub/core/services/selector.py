"""
Freshness selector — the alive mirrors on the newest release, per region.

Freshness is a two-level ordering: ``release_version`` first, then
``revision`` within the winning release.  Every mirror tied at the top
is returned, in snapshot order, so consumers get a fallback set
instead of one arbitrarily chosen winner.

Tokens arrive as text.  They are parsed as decimal integers and
anything else raises ``MalformedRecord``; comparing them as strings
would rank "9" above "10".
"""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable

from mirrorpub.core.errors import MalformedRecord
from mirrorpub.core.models.selection import SelectionResult
from mirrorpub.core.models.snapshot import MirrorRecord, RegionPath, Snapshot

logger = logging.getLogger(__name__)

_NUMERIC_TOKEN = re.compile(r"[0-9]+")


def parse_ordinal(token: str | None, *, region: RegionPath, mirror_id: str, field: str) -> int:
    """Parse a version/revision token as a non-negative integer."""
    if token is None:
        raise MalformedRecord(str(region), mirror_id, field, token)
    stripped = token.strip()
    if not _NUMERIC_TOKEN.fullmatch(stripped):
        raise MalformedRecord(str(region), mirror_id, field, token)
    try:
        return int(stripped)
    except ValueError as e:
        # past the interpreter's integer string conversion limit
        raise MalformedRecord(str(region), mirror_id, field, token) from e


def _max_group(
    records: list[MirrorRecord],
    region: RegionPath,
    field: str,
) -> tuple[int, list[MirrorRecord]]:
    """Return the maximal ordinal of ``field`` and the records holding it."""
    best: int | None = None
    group: list[MirrorRecord] = []
    for record in records:
        value = parse_ordinal(
            getattr(record, field), region=region, mirror_id=record.mirror_id, field=field,
        )
        if best is None or value > best:
            best, group = value, [record]
        elif value == best:
            group.append(record)
    assert best is not None
    return best, group


def select(snapshot: Snapshot, region: RegionPath | str) -> SelectionResult:
    """Compute the best-available mirror set for one region.

    Raises:
        MalformedRecord: an alive mirror has a non-numeric version, or a
            mirror on the newest version has a non-numeric revision.
    """
    region = RegionPath.parse(region)
    alive = [r for r in snapshot.records(region) if r.is_alive]
    if not alive:
        logger.debug("Region %s: no alive mirrors", region)
        return SelectionResult(region=region)

    version, newest = _max_group(alive, region, "release_version")
    revision, current = _max_group(newest, region, "revision")

    urls: list[str] = []
    for record in current:
        if record.url not in urls:
            urls.append(record.url)

    logger.debug(
        "Region %s: %d of %d alive mirrors at %d/r%d",
        region, len(urls), len(alive), version, revision,
    )
    return SelectionResult(region=region, urls=tuple(urls), freshness=(version, revision))


def select_many(
    snapshot: Snapshot,
    regions: Iterable[RegionPath | str],
) -> list[SelectionResult]:
    """Run ``select`` for each region independently, in the given order."""
    return [select(snapshot, region) for region in regions]
