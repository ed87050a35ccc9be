"""
Deployment pipeline — one run from trigger to published artifact.

    fetching   → oracle snapshot (bounded timeout)
    selecting  → freshness selection for every configured region
    writing    → staged, sealed PublishArtifact
    uploading  → hosting target (bounded timeout)

Any step's error ends the run as failed.  There is no retry inside a
run; the next trigger is the retry.  The coordinator keeps one ``run()``
per group in flight inside a process; the group lock held around each
run extends that to every process sharing the state directory.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from datetime import UTC, datetime
from pathlib import Path

from mirrorpub.adapters.hosting import HostingTarget, build_hosting_target
from mirrorpub.adapters.oracle import OracleSource, build_oracle
from mirrorpub.core.config.loader import resolve_path
from mirrorpub.core.errors import PipelineError
from mirrorpub.core.models.publisher import PublisherConfig
from mirrorpub.core.models.run import DeploymentOutcome, RunPhase, RunStatus, Trigger
from mirrorpub.core.persistence.group_lock import GroupLock, group_lock_path
from mirrorpub.core.persistence.run_history import RunHistory, default_state_dir
from mirrorpub.core.services.artifact_writer import ArtifactWriter
from mirrorpub.core.services.selector import select_many

logger = logging.getLogger(__name__)

PhaseCallback = Callable[[RunPhase, str], None]


def _now_iso() -> str:
    return datetime.now(UTC).isoformat()


class DeploymentPipeline:
    """Runs fetch → select → write → upload for one publisher config.

    Collaborators are injectable so tests can swap the oracle and the
    hosting target without touching the network.
    """

    def __init__(
        self,
        config: PublisherConfig,
        root: Path,
        *,
        oracle: OracleSource | None = None,
        hosting: HostingTarget | None = None,
        history: RunHistory | None = None,
    ) -> None:
        self.config = config
        self.root = root
        self.oracle = oracle or build_oracle(config.oracle, root)
        self.hosting = hosting or build_hosting_target(config.hosting, root)
        self.history = history if history is not None else RunHistory(default_state_dir(root))
        self.lock = GroupLock(group_lock_path(self.history.state_dir, config.group), config.group)
        self.writer = ArtifactWriter(
            workspace=resolve_path(root, config.workspace),
            outputs={r.path: r.output for r in config.regions},
            passthrough=resolve_path(root, config.passthrough) if config.passthrough else None,
            keep=config.keep_artifacts,
        )

    def run(
        self,
        trigger: Trigger,
        on_phase: PhaseCallback | None = None,
        run_id: str | None = None,
    ) -> DeploymentOutcome:
        """Execute one deployment run to completion and record its outcome.

        Holds the group lock for the whole run, so runs of the same group
        in other processes wait instead of overlapping.
        """
        with self.lock:
            return self._run(trigger, on_phase, run_id)

    def _run(
        self,
        trigger: Trigger,
        on_phase: PhaseCallback | None,
        run_id: str | None,
    ) -> DeploymentOutcome:
        outcome = DeploymentOutcome(trigger=trigger)
        if run_id:
            outcome.run_id = run_id
        phase = RunPhase.IDLE
        t0 = time.monotonic()

        def enter(next_phase: RunPhase) -> None:
            nonlocal phase
            phase = next_phase
            logger.info("Run %s: %s", outcome.run_id, next_phase)
            if on_phase is not None:
                on_phase(next_phase, outcome.run_id)

        logger.info(
            "Run %s started (trigger=%s source=%s)",
            outcome.run_id, trigger.kind, trigger.source or "-",
        )

        try:
            enter(RunPhase.FETCHING)
            snapshot = self.oracle.fetch()

            enter(RunPhase.SELECTING)
            results = select_many(snapshot, (r.region for r in self.config.regions))
            for result in results:
                outcome.regions[str(result.region)] = len(result.urls)
                if result.is_empty:
                    logger.warning("Region %s has no alive up-to-date mirror", result.region)

            enter(RunPhase.WRITING)
            artifact = self.writer.write(results, outcome.run_id)

            enter(RunPhase.UPLOADING)
            outcome.page_url = self.hosting.upload(artifact) or None

            outcome.status = RunStatus.SUCCESS
        except PipelineError as e:
            outcome.status = RunStatus.FAILED
            outcome.failed_phase = phase
            outcome.error_kind = e.kind
            outcome.error = str(e)
            logger.error("Run %s failed while %s: %s: %s", outcome.run_id, phase, e.kind, e)
        except Exception as e:
            outcome.status = RunStatus.FAILED
            outcome.failed_phase = phase
            outcome.error = f"{type(e).__name__}: {e}"
            logger.exception("Run %s crashed while %s", outcome.run_id, phase)
        finally:
            outcome.ended_at = _now_iso()
            outcome.duration_ms = int((time.monotonic() - t0) * 1000)
            if on_phase is not None:
                on_phase(RunPhase.IDLE, outcome.run_id)

        if outcome.ok:
            logger.info(
                "Run %s published %d regions in %dms → %s",
                outcome.run_id, len(outcome.regions), outcome.duration_ms,
                outcome.page_url or "-",
            )

        try:
            self.history.record(outcome)
        except OSError as e:
            logger.warning("Failed to record run %s: %s", outcome.run_id, e)

        return outcome
