"""
Group lock — one deployment run per group across processes.

The coordinator serialises runs inside one process.  A ``mirrorpub
run`` from cron and a long-lived ``mirrorpub serve`` are separate
processes, so the pipeline also holds an exclusive ``flock`` on
``.state/<group>.lock`` for the whole run.  A second process blocks
until the first run finishes; it never interrupts it.

The lock file keeps the PID of the last holder for diagnostics.  The
kernel drops the lock when the holder exits, so a crashed run never
leaves the group stuck.
"""

from __future__ import annotations

import fcntl
import logging
import os
from pathlib import Path
from typing import IO

logger = logging.getLogger(__name__)


def group_lock_path(state_dir: Path, group: str) -> Path:
    """``.state/<group>.lock``"""
    return state_dir / f"{group}.lock"


class GroupLock:
    """Exclusive advisory lock on a group's lock file.

    Not reentrant.  Use as a context manager around one run.
    """

    def __init__(self, path: Path, group: str) -> None:
        self.path = path
        self.group = group
        self._handle: IO[str] | None = None

    @property
    def held(self) -> bool:
        return self._handle is not None

    def holder(self) -> str:
        """PID recorded by the current or last holder, or ``""``."""
        try:
            return self.path.read_text(encoding="utf-8").strip()
        except OSError:
            return ""

    def acquire(self) -> None:
        """Block until this process holds the group lock."""
        self.path.parent.mkdir(parents=True, exist_ok=True)
        # "a+" so opening never truncates the holder's PID
        handle = open(self.path, "a+", encoding="utf-8")
        try:
            try:
                fcntl.flock(handle, fcntl.LOCK_EX | fcntl.LOCK_NB)
            except BlockingIOError:
                logger.info(
                    "[%s] run in progress in process %s; waiting for it to finish",
                    self.group, self.holder() or "?",
                )
                fcntl.flock(handle, fcntl.LOCK_EX)
            handle.seek(0)
            handle.truncate()
            handle.write(str(os.getpid()))
            handle.flush()
        except BaseException:
            handle.close()
            raise
        self._handle = handle
        logger.debug("[%s] group lock acquired (%s)", self.group, self.path)

    def release(self) -> None:
        handle, self._handle = self._handle, None
        if handle is None:
            return
        try:
            fcntl.flock(handle, fcntl.LOCK_UN)
        finally:
            handle.close()
        logger.debug("[%s] group lock released", self.group)

    def __enter__(self) -> GroupLock:
        self.acquire()
        return self

    def __exit__(self, *exc: object) -> None:
        self.release()
