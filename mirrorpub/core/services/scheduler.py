"""
Scheduler — fixed-interval trigger source.

Submits a ``schedule`` trigger to the coordinator every
``interval_s`` seconds from a daemon thread.  The scheduler never
waits for runs: if a run is still going when the next tick comes, the
tick simply lands in the coordinator's slot like any other trigger.

Ticks are aligned to the start time (start + k × interval), so a slow
``submit`` never makes the schedule drift.
"""

from __future__ import annotations

import logging
import threading
import time

from mirrorpub.core.models.run import Trigger, TriggerKind
from mirrorpub.core.services.coordinator import CoordinatorClosed, PublishCoordinator

logger = logging.getLogger(__name__)


class Scheduler:
    """Periodic trigger source for one coordinator."""

    def __init__(
        self,
        coordinator: PublishCoordinator,
        interval_s: float,
        run_on_start: bool = True,
    ) -> None:
        if interval_s <= 0:
            raise ValueError("interval_s must be positive")
        self.coordinator = coordinator
        self.interval_s = interval_s
        self.run_on_start = run_on_start
        self.ticks = 0
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None

    def start(self) -> threading.Thread:
        """Start the daemon thread.  It runs until ``stop()`` or process exit."""
        if self._thread is not None and self._thread.is_alive():
            return self._thread
        self._stop.clear()
        self._thread = threading.Thread(
            target=self._loop,
            daemon=True,
            name=f"scheduler-{self.coordinator.group}",
        )
        self._thread.start()
        logger.info(
            "Scheduler started for group '%s' (every %.0fs)",
            self.coordinator.group, self.interval_s,
        )
        return self._thread

    def stop(self, timeout: float | None = None) -> None:
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout)

    def _tick(self) -> bool:
        """Submit one schedule trigger.  False once the coordinator is closed."""
        try:
            self.coordinator.submit(Trigger(kind=TriggerKind.SCHEDULE, source="scheduler"))
        except CoordinatorClosed:
            logger.info("Coordinator closed; scheduler stopping")
            return False
        self.ticks += 1
        return True

    def _loop(self) -> None:
        started = time.monotonic()
        if self.run_on_start and not self._tick():
            return

        k = 1
        while True:
            next_at = started + k * self.interval_s
            if self._stop.wait(max(0.0, next_at - time.monotonic())):
                return
            if not self._tick():
                return
            k += 1
