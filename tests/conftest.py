"""
Shared test fixtures and configuration.
"""

from __future__ import annotations

import json
import textwrap
from pathlib import Path

import pytest

from mirrorpub.core.services.coordinator import shutdown_coordinators


@pytest.fixture(autouse=True)
def _fresh_coordinators():
    """Every test starts and ends with an empty coordinator registry."""
    yield
    shutdown_coordinators(timeout=5)


@pytest.fixture
def tmp_state_dir(tmp_path: Path) -> Path:
    """An empty .state directory."""
    state = tmp_path / ".state"
    state.mkdir()
    return state


@pytest.fixture
def status_feed() -> dict:
    """A small oracle feed: two continents, mixed statuses and versions."""
    return {
        "North America": {
            "USA": {
                "https://us1.example.org/tex/": {
                    "status": "Alive", "texlive_version": 2024, "revision": 71000,
                },
                "https://us2.example.org/tex/": {
                    "status": "Alive", "texlive_version": 2024, "revision": 71234,
                },
                "https://us3.example.org/tex/": {
                    "status": "Alive", "texlive_version": 2023, "revision": 99999,
                },
                "https://us4.example.org/tex/": {"status": "Dead"},
                "https://us5.example.org/tex/": {
                    "status": "Alive", "texlive_version": 2024, "revision": 71234,
                },
            },
            "Canada": {
                "https://ca1.example.org/tex/": {"status": "Timeout"},
            },
        },
        "Europe": {
            "Germany": {
                "https://de1.example.org/tex/": {
                    "status": "Alive", "texlive_version": 2024, "revision": 71234,
                },
            },
        },
    }


@pytest.fixture
def publish_project(tmp_path: Path, status_feed: dict) -> Path:
    """A publisher project publishing into a local directory.  Returns publish.yml."""
    (tmp_path / "mirrors.json").write_text(json.dumps(status_feed))

    static = tmp_path / "static"
    static.mkdir()
    (static / "index.html").write_text("<h1>mirrors</h1>\n")

    config = tmp_path / "publish.yml"
    config.write_text(textwrap.dedent("""\
        name: test-mirrors
        group: test-pages
        oracle:
          file: mirrors.json
          timeout_s: 5
        regions:
          - path: North America/USA
            output: us
          - path: Europe/Germany
        hosting:
          kind: directory
          path: site
          base_url: https://mirrors.example.org/
        passthrough: static
        schedule:
          interval_s: 3600
          run_on_start: false
    """))
    return config
