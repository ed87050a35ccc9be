"""
Tests for oracle sources — file, url (file://) and command fetches.
"""

from __future__ import annotations

import http.client
import json
import shlex
import sys
import urllib.request
from pathlib import Path

import pytest

from mirrorpub.adapters.oracle import (
    CommandOracle,
    FileOracle,
    UrlOracle,
    build_oracle,
    parse_snapshot,
)
from mirrorpub.core.errors import OracleUnavailable
from mirrorpub.core.models.publisher import OracleConfig


@pytest.fixture
def feed_file(tmp_path: Path, status_feed: dict) -> Path:
    path = tmp_path / "mirrors.json"
    path.write_text(json.dumps(status_feed))
    return path


class TestParseSnapshot:
    def test_object(self):
        snap = parse_snapshot(b'{"A": {"B": {}}}', "test")
        assert "A" in snap.tree

    def test_bad_json(self):
        with pytest.raises(OracleUnavailable, match="not valid JSON"):
            parse_snapshot("{nope", "test")

    def test_not_an_object(self):
        with pytest.raises(OracleUnavailable, match="JSON object"):
            parse_snapshot("[1, 2]", "test")

    @pytest.mark.skipif(sys.get_int_max_str_digits() == 0, reason="no integer digit limit")
    def test_oversized_integer(self):
        raw = '{"A": {"B": {"m": {"status": "Alive", "revision": ' + "9" * 5000 + "}}}}"
        with pytest.raises(OracleUnavailable, match="not valid JSON"):
            parse_snapshot(raw, "test")


class TestFileOracle:
    def test_fetch(self, feed_file: Path):
        snap = FileOracle(feed_file, timeout_s=5).fetch()
        assert [str(r) for r in snap.regions()][0] == "North America/USA"

    def test_missing(self, tmp_path: Path):
        with pytest.raises(OracleUnavailable, match="Cannot read"):
            FileOracle(tmp_path / "absent.json", timeout_s=5).fetch()


class TestUrlOracle:
    def test_file_url(self, feed_file: Path):
        snap = UrlOracle(feed_file.as_uri(), timeout_s=5).fetch()
        assert len(snap.records("Europe/Germany")) == 1

    def test_unreachable(self, tmp_path: Path):
        with pytest.raises(OracleUnavailable, match="Cannot fetch"):
            UrlOracle((tmp_path / "absent.json").as_uri(), timeout_s=5).fetch()

    @pytest.mark.parametrize("url", ["mirrors.example.org/status.json", "http://[::1"])
    def test_malformed_url(self, url: str):
        with pytest.raises(OracleUnavailable, match="Cannot fetch"):
            UrlOracle(url, timeout_s=5).fetch()

    def test_truncated_response(self, monkeypatch):
        class Truncated:
            def __enter__(self):
                return self

            def __exit__(self, *exc):
                return False

            def read(self):
                raise http.client.IncompleteRead(b"{\"North", 100)

        monkeypatch.setattr(urllib.request, "urlopen", lambda req, timeout: Truncated())
        with pytest.raises(OracleUnavailable, match="Cannot fetch"):
            UrlOracle("https://mirrors.example.org/status.json", timeout_s=5).fetch()


class TestCommandOracle:
    def test_stdout(self, feed_file: Path):
        oracle = CommandOracle(f"cat {shlex.quote(str(feed_file))}", timeout_s=10)
        assert len(oracle.fetch().records("North America/USA")) == 5

    def test_cwd(self, feed_file: Path):
        oracle = CommandOracle("cat mirrors.json", timeout_s=10, cwd=feed_file.parent)
        assert oracle.fetch().records("Europe/Germany")

    def test_nonzero_exit_uses_stderr(self):
        oracle = CommandOracle("echo 'registry unreachable' >&2; exit 3", timeout_s=10)
        with pytest.raises(OracleUnavailable, match="registry unreachable"):
            oracle.fetch()

    def test_nonzero_exit_without_stderr(self):
        with pytest.raises(OracleUnavailable, match="code 4"):
            CommandOracle("exit 4", timeout_s=10).fetch()

    def test_timeout(self):
        with pytest.raises(OracleUnavailable, match="timed out"):
            CommandOracle("sleep 5", timeout_s=0.2).fetch()

    def test_garbage_output(self):
        with pytest.raises(OracleUnavailable, match="not valid JSON"):
            CommandOracle("echo hello", timeout_s=10).fetch()


class TestBuildOracle:
    def test_kinds(self, tmp_path: Path):
        assert isinstance(build_oracle(OracleConfig(url="https://x/"), tmp_path), UrlOracle)
        assert isinstance(build_oracle(OracleConfig(command="true"), tmp_path), CommandOracle)

        oracle = build_oracle(OracleConfig(file="feed.json", timeout_s=9), tmp_path)
        assert isinstance(oracle, FileOracle)
        assert oracle.path == tmp_path / "feed.json"
        assert oracle.timeout_s == 9
        assert repr(oracle) == "<FileOracle name='file'>"
