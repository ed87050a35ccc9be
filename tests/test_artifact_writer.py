"""
Tests for the artifact writer — rendering, staging, passthrough, pruning.
"""

from __future__ import annotations

import os
from pathlib import Path

import pytest

from mirrorpub.core.errors import ArtifactError
from mirrorpub.core.models.selection import SelectionResult
from mirrorpub.core.models.snapshot import RegionPath
from mirrorpub.core.services.artifact_writer import ArtifactWriter, render_mirror_list


def _result(region: str, *urls: str) -> SelectionResult:
    return SelectionResult(RegionPath.parse(region), tuple(urls), (2024, 1) if urls else None)


@pytest.fixture
def writer(tmp_path: Path) -> ArtifactWriter:
    return ArtifactWriter(
        workspace=tmp_path / ".publish",
        outputs={"NA/USA": "us", "EU/DE": "de"},
    )


class TestRender:
    def test_one_url_per_line(self):
        assert render_mirror_list(_result("A/B", "u1", "u2")) == "u1\nu2\n"

    def test_empty(self):
        assert render_mirror_list(_result("A/B")) == ""


class TestWrite:
    def test_writes_each_region(self, writer: ArtifactWriter):
        artifact = writer.write([_result("NA/USA", "a", "b"), _result("EU/DE")], run_id="r1")
        assert artifact.path == writer.artifacts_dir / "r1"
        assert (artifact.path / "us").read_text() == "a\nb\n"
        assert (artifact.path / "de").read_text() == ""
        assert artifact.generated == {"us": "NA/USA", "de": "EU/DE"}
        assert artifact.files == ["de", "us"]

    def test_no_staging_left_behind(self, writer: ArtifactWriter):
        writer.write([_result("NA/USA", "a")], run_id="r1")
        leftovers = [p.name for p in writer.workspace.iterdir() if p.name.startswith(".staging-")]
        assert leftovers == []

    def test_default_run_id(self, writer: ArtifactWriter):
        artifact = writer.write([_result("NA/USA", "a")])
        assert artifact.path.parent == writer.artifacts_dir
        assert "T" in artifact.path.name

    def test_unconfigured_region_fails_cleanly(self, writer: ArtifactWriter):
        with pytest.raises(ArtifactError, match="No output file"):
            writer.write([_result("NA/USA", "a"), _result("Asia/JP", "x")], run_id="r1")
        assert not (writer.artifacts_dir / "r1").exists()
        assert [p.name for p in writer.workspace.iterdir()] == ["artifacts"]

    def test_existing_run_id_rejected(self, writer: ArtifactWriter):
        writer.write([_result("NA/USA", "a")], run_id="r1")
        with pytest.raises(ArtifactError, match="already exists"):
            writer.write([_result("NA/USA", "b")], run_id="r1")
        assert (writer.artifacts_dir / "r1" / "us").read_text() == "a\n"


class TestPassthrough:
    def test_copied_unchanged(self, tmp_path: Path):
        static = tmp_path / "static"
        (static / "css").mkdir(parents=True)
        (static / "index.html").write_text("<p>hi</p>")
        (static / "css" / "site.css").write_text("body {}")
        writer = ArtifactWriter(tmp_path / "ws", {"NA/USA": "us"}, passthrough=static)

        artifact = writer.write([_result("NA/USA", "a")], run_id="r1")
        assert (artifact.path / "index.html").read_text() == "<p>hi</p>"
        assert (artifact.path / "css" / "site.css").read_text() == "body {}"
        assert artifact.passthrough == ("css/site.css", "index.html")
        assert artifact.files == ["css/site.css", "index.html", "us"]

    def test_generated_overrides_passthrough(self, tmp_path: Path, caplog):
        static = tmp_path / "static"
        static.mkdir()
        (static / "us").write_text("stale\n")
        writer = ArtifactWriter(tmp_path / "ws", {"NA/USA": "us"}, passthrough=static)

        with caplog.at_level("WARNING"):
            artifact = writer.write([_result("NA/USA", "fresh")], run_id="r1")
        assert (artifact.path / "us").read_text() == "fresh\n"
        assert "us" not in artifact.passthrough
        assert "replaces the passthrough file" in caplog.text

    def test_missing_passthrough_dir(self, tmp_path: Path):
        writer = ArtifactWriter(tmp_path / "ws", {"NA/USA": "us"}, passthrough=tmp_path / "nope")
        with pytest.raises(ArtifactError, match="Passthrough directory not found"):
            writer.write([_result("NA/USA", "a")], run_id="r1")


class TestPrune:
    def test_keeps_newest(self, tmp_path: Path):
        writer = ArtifactWriter(tmp_path / "ws", {"NA/USA": "us"}, keep=2)
        for i, run_id in enumerate(["r1", "r2", "r3"]):
            path = writer.write([_result("NA/USA", "a")], run_id=run_id).path
            os.utime(path, ns=(i * 10**9, i * 10**9))
        writer.prune()
        assert sorted(p.name for p in writer.artifacts_dir.iterdir()) == ["r2", "r3"]

    def test_prune_reports_removed(self, tmp_path: Path):
        writer = ArtifactWriter(tmp_path / "ws", {}, keep=1)
        writer.artifacts_dir.mkdir(parents=True)
        for i, name in enumerate(["old", "new"]):
            (writer.artifacts_dir / name).mkdir()
            os.utime(writer.artifacts_dir / name, ns=(i * 10**9, i * 10**9))
        assert writer.prune() == ["old"]

    def test_prune_without_artifacts(self, tmp_path: Path):
        assert ArtifactWriter(tmp_path / "ws", {}).prune() == []
