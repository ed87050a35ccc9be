"""
Domain models for the mirror publisher.

All models are re-exported here for convenient access:

    from mirrorpub.core.models import Snapshot, RegionPath, SelectionResult, Trigger
"""

from mirrorpub.core.models.run import (
    DeploymentOutcome,
    RunPhase,
    RunStatus,
    Trigger,
    TriggerKind,
    generate_run_id,
)
from mirrorpub.core.models.selection import PublishArtifact, SelectionResult
from mirrorpub.core.models.snapshot import MirrorRecord, MirrorStatus, RegionPath, Snapshot

__all__ = [
    # run.py
    "DeploymentOutcome",
    "RunPhase",
    "RunStatus",
    "Trigger",
    "TriggerKind",
    "generate_run_id",
    # selection.py
    "PublishArtifact",
    "SelectionResult",
    # snapshot.py
    "MirrorRecord",
    "MirrorStatus",
    "RegionPath",
    "Snapshot",
]
