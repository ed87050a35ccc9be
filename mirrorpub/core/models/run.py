"""
Run models — triggers, phases, and deployment outcomes.

A deployment run has no identity of its own beyond the trigger that
caused it; the outcome is what gets recorded to the run history.
"""

from __future__ import annotations

import uuid
from datetime import UTC, datetime
from enum import StrEnum

from pydantic import BaseModel, Field


def _now_iso() -> str:
    """Current UTC time as ISO string."""
    return datetime.now(UTC).isoformat()


def generate_run_id() -> str:
    """Sortable run id: UTC timestamp plus a short random suffix."""
    return f"{datetime.now(UTC).strftime('%Y%m%dT%H%M%S')}-{uuid.uuid4().hex[:6]}"


class TriggerKind(StrEnum):
    PUSH = "push"
    MANUAL = "manual"
    SCHEDULE = "schedule"


class RunPhase(StrEnum):
    """Where a run currently is.  ``idle`` means no run in progress."""

    IDLE = "idle"
    FETCHING = "fetching"
    SELECTING = "selecting"
    WRITING = "writing"
    UPLOADING = "uploading"


class RunStatus(StrEnum):
    SUCCESS = "success"
    FAILED = "failed"
    SUPERSEDED = "superseded"   # queued, then replaced by a newer trigger


class Trigger(BaseModel):
    """A request to run a deployment."""

    kind: TriggerKind = TriggerKind.MANUAL
    source: str = ""                 # cli, webhook, scheduler, api
    ref: str | None = None           # git ref for push triggers
    received_at: str = Field(default_factory=_now_iso)


class DeploymentOutcome(BaseModel):
    """Terminal status of one deployment run."""

    run_id: str = Field(default_factory=generate_run_id)
    trigger: Trigger = Field(default_factory=Trigger)
    status: RunStatus = RunStatus.SUCCESS

    failed_phase: RunPhase | None = None
    error_kind: str | None = None
    error: str | None = None

    started_at: str = Field(default_factory=_now_iso)
    ended_at: str = ""
    duration_ms: int = 0

    regions: dict[str, int] = Field(default_factory=dict)   # region → url count
    page_url: str | None = None

    @property
    def ok(self) -> bool:
        return self.status == RunStatus.SUCCESS

    @classmethod
    def superseded(cls, trigger: Trigger) -> DeploymentOutcome:
        now = _now_iso()
        return cls(
            trigger=trigger,
            status=RunStatus.SUPERSEDED,
            started_at=now,
            ended_at=now,
        )
