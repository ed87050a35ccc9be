"""
Run history — completed deployment runs, newest last on disk.

Two files under ``.state/`` next to publish.yml:

    runs.jsonl     — one DeploymentOutcome per line, trimmed to the last N
    last_run.json  — the most recent outcome, written atomically

The hosting target keeps its own deployment history; this is only the
operator-facing record of what the publisher did and why runs failed.
"""

from __future__ import annotations

import json
import logging
import tempfile
import threading
from pathlib import Path

from mirrorpub.core.models.run import DeploymentOutcome

logger = logging.getLogger(__name__)

DEFAULT_STATE_DIR = ".state"
RUNS_FILE = "runs.jsonl"
LAST_RUN_FILE = "last_run.json"
RUNS_MAX = 200  # keep last N runs


def default_state_dir(root: Path) -> Path:
    """Get the default state directory for a publisher root."""
    return root / DEFAULT_STATE_DIR


class RunHistory:
    """Append-only run log with a bounded length.

    Thread-safe: the coordinator's worker appends while the web
    surface reads.
    """

    def __init__(self, state_dir: Path, max_runs: int = RUNS_MAX) -> None:
        self.state_dir = state_dir
        self.max_runs = max_runs
        self._lock = threading.Lock()

    @property
    def runs_path(self) -> Path:
        return self.state_dir / RUNS_FILE

    @property
    def last_run_path(self) -> Path:
        return self.state_dir / LAST_RUN_FILE

    def record(self, outcome: DeploymentOutcome) -> None:
        """Append an outcome and refresh last_run.json."""
        data = outcome.model_dump(mode="json")
        line = json.dumps(data, ensure_ascii=False)

        with self._lock:
            self.state_dir.mkdir(parents=True, exist_ok=True)
            with self.runs_path.open("a", encoding="utf-8") as f:
                f.write(line + "\n")
            self._trim()
            self._write_atomic(self.last_run_path, json.dumps(data, indent=2) + "\n")

        logger.debug("Recorded run %s (%s)", outcome.run_id, outcome.status)

    def load(self, n: int = 50) -> list[DeploymentOutcome]:
        """Load the latest N runs, newest-first.  Corrupt lines are skipped."""
        with self._lock:
            if not self.runs_path.is_file():
                return []
            try:
                lines = self.runs_path.read_text(encoding="utf-8").splitlines()
            except OSError as e:
                logger.warning("Cannot read run history %s: %s", self.runs_path, e)
                return []

        entries: list[DeploymentOutcome] = []
        for line in reversed(lines):
            line = line.strip()
            if not line:
                continue
            try:
                entries.append(DeploymentOutcome.model_validate_json(line))
            except ValueError:
                logger.debug("Skipping corrupt run history line")
                continue
            if len(entries) >= n:
                break
        return entries

    def last(self) -> DeploymentOutcome | None:
        """The most recent outcome, or None if nothing ran yet."""
        path = self.last_run_path
        if not path.is_file():
            return None
        try:
            return DeploymentOutcome.model_validate_json(path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            logger.warning("Cannot load last run from %s: %s", path, e)
            return None

    def _trim(self) -> None:
        lines = self.runs_path.read_text(encoding="utf-8").splitlines()
        if len(lines) > self.max_runs:
            self._write_atomic(self.runs_path, "\n".join(lines[-self.max_runs:]) + "\n")

    def _write_atomic(self, path: Path, content: str) -> None:
        """Write-to-temp-then-rename so readers never see a partial file."""
        _fd, tmp_path = tempfile.mkstemp(dir=path.parent, prefix=".state_", suffix=".tmp")
        tmp = Path(tmp_path)
        try:
            with open(_fd, "w", encoding="utf-8") as f:
                f.write(content)
            tmp.replace(path)
        except Exception:
            tmp.unlink(missing_ok=True)
            raise
