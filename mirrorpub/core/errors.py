"""
Pipeline errors — the failure taxonomy of a deployment run.

Each error carries a ``kind`` string that ends up verbatim in the
run's ``DeploymentOutcome.error_kind`` and in the run history.
"""

from __future__ import annotations

import reprlib


class PipelineError(Exception):
    """Base class for every error that ends a deployment run as failed."""

    kind = "PipelineError"


class OracleUnavailable(PipelineError):
    """The status snapshot could not be fetched, parsed, or timed out."""

    kind = "OracleUnavailable"


class MalformedRecord(PipelineError):
    """A mirror record carries a version or revision that is not a number."""

    kind = "MalformedRecord"

    def __init__(self, region: str, mirror_id: str, field: str, token: object) -> None:
        self.region = region
        self.mirror_id = mirror_id
        self.field = field
        self.token = token
        super().__init__(
            f"Mirror '{mirror_id}' in region '{region}' has a malformed "
            f"{field}: {reprlib.repr(token)}"
        )


class ArtifactError(PipelineError):
    """The publish artifact could not be staged completely."""

    kind = "ArtifactError"


class UploadFailed(PipelineError):
    """The hosting target rejected the artifact or timed out."""

    kind = "UploadFailed"
