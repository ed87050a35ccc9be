"""
Publish coordinator — single-flight, coalescing deployment runs.

Concurrency model
─────────────────
- One coordinator per named group, one worker thread per coordinator.
  At most one run of the group is past ``idle`` at any time.
- Triggers land in a capacity-1 slot.  A newer trigger overwrites the
  one waiting there; the overwritten ticket resolves as ``superseded``.
- The worker drains the slot only when idle.  A run in progress is
  never cancelled or preempted, it always reaches success or failure.
- ``_cond`` guards ``_pending``, ``_current``, ``_phase``,
  ``_last_outcome`` and ``_closed``.  The runner itself executes
  outside the lock.

The runner is opaque: any ``(trigger, on_phase, run_id) -> outcome``
callable.  ``DeploymentPipeline.run`` is the production one.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from typing import Any

from mirrorpub.core.models.run import (
    DeploymentOutcome,
    RunPhase,
    RunStatus,
    Trigger,
    generate_run_id,
)

logger = logging.getLogger(__name__)

Runner = Callable[[Trigger, Callable[[RunPhase, str], None], str], DeploymentOutcome]


class CoordinatorClosed(RuntimeError):
    """Raised when submitting to a coordinator that has been closed."""


class RunTicket:
    """Handle for one submitted trigger; resolves exactly once."""

    def __init__(self, trigger: Trigger) -> None:
        self.trigger = trigger
        self.run_id = generate_run_id()
        self._done = threading.Event()
        self._outcome: DeploymentOutcome | None = None

    @property
    def done(self) -> bool:
        return self._done.is_set()

    @property
    def outcome(self) -> DeploymentOutcome | None:
        return self._outcome

    def wait(self, timeout: float | None = None) -> DeploymentOutcome | None:
        """Block until the run finished or was superseded.  None on timeout."""
        self._done.wait(timeout)
        return self._outcome

    def _resolve(self, outcome: DeploymentOutcome) -> None:
        if self._done.is_set():
            return
        self._outcome = outcome
        self._done.set()

    def _supersede(self) -> None:
        outcome = DeploymentOutcome.superseded(self.trigger)
        outcome.run_id = self.run_id
        self._resolve(outcome)


class PublishCoordinator:
    """Group-scoped mutual exclusion for deployment runs.

    Parameters
    ----------
    group : str
        Coordination group name; all runs of this system share one.
    runner : Runner
        Executes one run synchronously and returns its outcome.
    """

    def __init__(self, group: str, runner: Runner) -> None:
        self.group = group
        self._runner = runner
        self._cond = threading.Condition()
        self._pending: RunTicket | None = None
        self._current: RunTicket | None = None
        self._phase: RunPhase = RunPhase.IDLE
        self._last_outcome: DeploymentOutcome | None = None
        self._closed = False
        self._worker: threading.Thread | None = None

    # ── Properties ──────────────────────────────────────────────

    @property
    def phase(self) -> RunPhase:
        with self._cond:
            return self._phase

    @property
    def busy(self) -> bool:
        """Whether a run is in progress or a trigger is waiting."""
        with self._cond:
            return self._current is not None or self._pending is not None

    @property
    def last_outcome(self) -> DeploymentOutcome | None:
        with self._cond:
            return self._last_outcome

    @property
    def closed(self) -> bool:
        with self._cond:
            return self._closed

    # ── Submitting ──────────────────────────────────────────────

    def submit(self, trigger: Trigger) -> RunTicket:
        """Queue a trigger without waiting for it to run.

        If another trigger is already waiting it is discarded and its
        ticket resolves as superseded.  The in-progress run, if any,
        is left alone.
        """
        ticket = RunTicket(trigger)
        with self._cond:
            if self._closed:
                raise CoordinatorClosed(f"Coordinator for group '{self.group}' is closed")
            replaced = self._pending
            self._pending = ticket
            running = self._current is not None
            self._ensure_worker()
            self._cond.notify_all()

        if replaced is not None:
            replaced._supersede()
            logger.info(
                "[%s] trigger %s (%s) superseded by %s (%s)",
                self.group, replaced.run_id, replaced.trigger.kind,
                ticket.run_id, trigger.kind,
            )
        if running:
            logger.info("[%s] run in progress; queued %s", self.group, ticket.run_id)
        return ticket

    def run_deployment(self, trigger: Trigger, timeout: float | None = None) -> DeploymentOutcome:
        """Submit a trigger and wait for its outcome.

        The outcome may be ``superseded`` if a newer trigger replaced
        this one before it started.

        Raises:
            TimeoutError: no outcome within ``timeout`` seconds.
        """
        ticket = self.submit(trigger)
        outcome = ticket.wait(timeout)
        if outcome is None:
            raise TimeoutError(f"Run {ticket.run_id} did not finish within {timeout}s")
        return outcome

    # ── Lifecycle ───────────────────────────────────────────────

    def wait_idle(self, timeout: float | None = None) -> bool:
        """Block until nothing is running or queued.  False on timeout."""
        with self._cond:
            return self._cond.wait_for(
                lambda: self._current is None and self._pending is None, timeout,
            )

    def close(self, timeout: float | None = None) -> None:
        """Stop accepting triggers, drop the queued one, finish the current run."""
        with self._cond:
            self._closed = True
            dropped = self._pending
            self._pending = None
            self._cond.notify_all()
            worker = self._worker

        if dropped is not None:
            dropped._supersede()
            logger.info("[%s] dropped queued trigger %s on close", self.group, dropped.run_id)
        if worker is not None and worker is not threading.current_thread():
            worker.join(timeout)

    def status(self) -> dict[str, Any]:
        """Snapshot of the coordinator for CLI/web status output."""
        with self._cond:
            return {
                "group": self.group,
                "phase": str(self._phase),
                "current_run": self._current.run_id if self._current else None,
                "queued_run": self._pending.run_id if self._pending else None,
                "closed": self._closed,
                "last_outcome": (
                    self._last_outcome.model_dump(mode="json") if self._last_outcome else None
                ),
            }

    # ── Worker ──────────────────────────────────────────────────

    def _ensure_worker(self) -> None:
        """Start the worker thread if needed.  Caller holds ``_cond``."""
        if self._worker is not None and self._worker.is_alive():
            return
        self._worker = threading.Thread(
            target=self._work_loop,
            daemon=True,
            name=f"publish-{self.group}",
        )
        self._worker.start()

    def _set_phase(self, phase: RunPhase, run_id: str) -> None:
        with self._cond:
            self._phase = phase

    def _work_loop(self) -> None:
        while True:
            with self._cond:
                self._cond.wait_for(lambda: self._pending is not None or self._closed)
                if self._pending is None:
                    return  # closed and drained
                ticket = self._pending
                self._pending = None
                self._current = ticket

            try:
                outcome = self._runner(ticket.trigger, self._set_phase, ticket.run_id)
            except Exception as e:
                # Runners report failures in the outcome; this only catches bugs.
                logger.exception("[%s] runner raised for %s", self.group, ticket.run_id)
                outcome = DeploymentOutcome(
                    run_id=ticket.run_id,
                    trigger=ticket.trigger,
                    status=RunStatus.FAILED,
                    error=f"{type(e).__name__}: {e}",
                )

            with self._cond:
                # resolved before _current clears, so wait_idle implies done
                ticket._resolve(outcome)
                self._current = None
                self._phase = RunPhase.IDLE
                self._last_outcome = outcome
                self._cond.notify_all()


# ── Group registry ─────────────────────────────────────────────────

_registry_lock = threading.Lock()
_coordinators: dict[str, PublishCoordinator] = {}


def get_coordinator(group: str, runner: Runner | None = None) -> PublishCoordinator:
    """Return the process-wide coordinator for ``group``, creating it if needed.

    A closed coordinator is replaced when a runner is given.

    Raises:
        KeyError: the group has no coordinator yet and no runner was given.
    """
    with _registry_lock:
        coordinator = _coordinators.get(group)
        if coordinator is None or (coordinator.closed and runner is not None):
            if runner is None:
                raise KeyError(f"No coordinator for group '{group}'")
            coordinator = PublishCoordinator(group, runner)
            _coordinators[group] = coordinator
        return coordinator


def shutdown_coordinators(timeout: float | None = None) -> None:
    """Close and forget every registered coordinator."""
    with _registry_lock:
        coordinators = list(_coordinators.values())
        _coordinators.clear()
    for coordinator in coordinators:
        coordinator.close(timeout)
