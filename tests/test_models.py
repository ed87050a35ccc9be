"""
Tests for models — snapshot tree, mirror records, region paths, outcomes.
"""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from mirrorpub.core.models.run import (
    DeploymentOutcome,
    RunStatus,
    Trigger,
    TriggerKind,
    generate_run_id,
)
from mirrorpub.core.models.selection import SelectionResult
from mirrorpub.core.models.snapshot import MirrorRecord, MirrorStatus, RegionPath, Snapshot


class TestRegionPath:
    """Tests for RegionPath."""

    def test_parse(self):
        region = RegionPath.parse("North America/USA")
        assert region.parts == ("North America", "USA")
        assert str(region) == "North America/USA"

    def test_parse_strips_parts(self):
        assert RegionPath.parse(" Europe / Germany ").parts == ("Europe", "Germany")

    def test_parse_passthrough(self):
        region = RegionPath(("A", "B"))
        assert RegionPath.parse(region) is region

    @pytest.mark.parametrize("text", ["", "A//B", "/A", "A/"])
    def test_empty_parts_rejected(self, text):
        with pytest.raises(ValueError):
            RegionPath.parse(text)

    def test_hashable(self):
        assert {RegionPath.parse("A/B"), RegionPath.parse("A/B")} == {RegionPath(("A", "B"))}


class TestMirrorRecord:
    """Tests for MirrorRecord narrowing."""

    def test_release_version_aliases(self):
        for key in ("releaseVersion", "release_version", "texlive_version"):
            record = MirrorRecord.from_entry("m", {"status": "Alive", key: "2024"})
            assert record.release_version == "2024"

    def test_numbers_become_text(self):
        record = MirrorRecord.from_entry("m", {"status": "Alive", "texlive_version": 2024, "revision": 7})
        assert record.release_version == "2024"
        assert record.revision == "7"

    def test_url_defaults_to_mirror_id(self):
        record = MirrorRecord.from_entry("https://m/", {"status": "Dead"})
        assert record.url == "https://m/"
        assert record.mirror_id == "https://m/"

    def test_explicit_url_wins(self):
        record = MirrorRecord.from_entry("m1", {"status": "Dead", "url": "https://x/"})
        assert record.url == "https://x/"

    def test_unknown_status(self):
        assert MirrorRecord.from_entry("m", {"status": "Flaky"}).status == MirrorStatus.UNKNOWN
        assert MirrorRecord.from_entry("m", {"status": 3}).status == MirrorStatus.UNKNOWN

    def test_is_alive(self):
        assert MirrorRecord.from_entry("m", {"status": "Alive"}).is_alive
        assert not MirrorRecord.from_entry("m", {"status": "Timeout"}).is_alive

    def test_frozen(self):
        record = MirrorRecord.from_entry("m", {"status": "Alive"})
        with pytest.raises(ValidationError):
            record.url = "other"  # type: ignore[misc]


class TestSnapshot:
    """Tests for the Snapshot tree view."""

    def test_rejects_non_mapping(self):
        with pytest.raises(TypeError):
            Snapshot(["not", "a", "mapping"])  # type: ignore[arg-type]

    def test_records_in_feed_order(self, status_feed):
        records = Snapshot(status_feed).records("North America/USA")
        assert [r.mirror_id for r in records] == [
            "https://us1.example.org/tex/",
            "https://us2.example.org/tex/",
            "https://us3.example.org/tex/",
            "https://us4.example.org/tex/",
            "https://us5.example.org/tex/",
        ]

    def test_missing_region(self, status_feed):
        assert Snapshot(status_feed).records("Asia/Japan") == ()

    def test_region_pointing_at_record(self):
        snap = Snapshot({"R": {"m": {"status": "Alive", "revision": "1"}}})
        assert snap.records("R/m") == ()
        assert snap.records("R/m/status") == ()

    def test_regions(self, status_feed):
        regions = [str(r) for r in Snapshot(status_feed).regions()]
        assert regions == ["North America/USA", "North America/Canada", "Europe/Germany"]

    def test_regions_any_depth(self):
        snap = Snapshot({"A": {"B": {"C": {"m": {"status": "Alive"}}}, "m2": {"status": "Dead"}}})
        assert [str(r) for r in snap.regions()] == ["A", "A/B/C"]


class TestOutcome:
    """Tests for run models."""

    def test_run_id_sortable(self):
        rid = generate_run_id()
        stamp, suffix = rid.split("-")
        assert len(stamp) == 15 and stamp[8] == "T"
        assert len(suffix) == 6

    def test_superseded(self):
        trigger = Trigger(kind=TriggerKind.PUSH, source="webhook", ref="refs/heads/main")
        outcome = DeploymentOutcome.superseded(trigger)
        assert outcome.status == RunStatus.SUPERSEDED
        assert not outcome.ok
        assert outcome.trigger.ref == "refs/heads/main"

    def test_json_roundtrip(self):
        outcome = DeploymentOutcome(regions={"A/B": 2}, page_url="https://x/")
        loaded = DeploymentOutcome.model_validate_json(outcome.model_dump_json())
        assert loaded == outcome

    def test_selection_to_dict(self):
        result = SelectionResult(RegionPath.parse("A/B"), ("u1", "u2"), (2024, 5))
        assert result.to_dict() == {
            "region": "A/B", "urls": ["u1", "u2"], "release_version": 2024, "revision": 5,
        }
