"""
Publisher model — the declared configuration of a mirror publisher.

Loaded from publish.yml.  This is the canonical truth about where the
snapshot comes from, which regions get published under which file
names, and where the artifact goes.
"""

from __future__ import annotations

import re
from typing import Literal

from pydantic import BaseModel, Field, field_validator, model_validator

from mirrorpub.core.models.snapshot import RegionPath


def default_output_name(region: str) -> str:
    """``North America/USA`` → ``north-america-usa``.  Keeps non-ASCII letters."""
    return re.sub(r"[\W_]+", "-", region.lower()).strip("-")


class OracleConfig(BaseModel):
    """Where the raw status snapshot comes from.  Exactly one source."""

    url: str | None = None
    file: str | None = None
    command: str | None = None
    timeout_s: float = 600.0

    @model_validator(mode="after")
    def _one_source(self) -> OracleConfig:
        given = [k for k in ("url", "file", "command") if getattr(self, k)]
        if len(given) != 1:
            raise ValueError(
                f"oracle needs exactly one of url, file, command (got {given or 'none'})"
            )
        return self

    @property
    def kind(self) -> str:
        if self.url:
            return "url"
        if self.file:
            return "file"
        return "command"


class RegionConfig(BaseModel):
    """A region of interest and the file its mirror list is published as."""

    path: str
    output: str = ""

    @field_validator("path")
    @classmethod
    def _valid_path(cls, value: str) -> str:
        return str(RegionPath.parse(value))

    @field_validator("output")
    @classmethod
    def _plain_name(cls, value: str) -> str:
        if value and ("/" in value or "\\" in value or value in (".", "..")):
            raise ValueError(f"output must be a plain file name: {value!r}")
        return value

    @model_validator(mode="after")
    def _default_output(self) -> RegionConfig:
        if not self.output:
            self.output = default_output_name(self.path)
        if not self.output:
            raise ValueError(
                f"cannot derive an output name from region '{self.path}'; set 'output'"
            )
        return self

    @property
    def region(self) -> RegionPath:
        return RegionPath.parse(self.path)


class HostingConfig(BaseModel):
    """Where the finished artifact is uploaded."""

    kind: Literal["ghpages", "directory", "command"] = "ghpages"
    base_url: str = ""
    timeout_s: float = 300.0

    # ghpages
    branch: str = "gh-pages"
    remote: str = ""                 # empty → origin of the repo holding publish.yml

    # directory
    path: str = ""

    # command: "{dir}" is replaced by the artifact directory
    command: str = ""

    @model_validator(mode="after")
    def _kind_fields(self) -> HostingConfig:
        if self.kind == "directory" and not self.path:
            raise ValueError("hosting kind 'directory' requires 'path'")
        if self.kind == "command" and not self.command:
            raise ValueError("hosting kind 'command' requires 'command'")
        return self


class ScheduleConfig(BaseModel):
    interval_s: float = Field(default=3 * 60 * 60, gt=0)
    run_on_start: bool = True


class TriggerConfig(BaseModel):
    push_branch: str = "main"


class PublisherConfig(BaseModel):
    """Root configuration — loaded from publish.yml."""

    version: int = 1

    name: str = "mirrors"
    group: str = "pages"             # single-flight coordination group

    oracle: OracleConfig
    regions: list[RegionConfig] = Field(default_factory=list)
    hosting: HostingConfig = Field(default_factory=HostingConfig)

    passthrough: str | None = None   # directory of static files, published as-is
    workspace: str = ".publish"
    keep_artifacts: int = Field(default=3, ge=1)

    schedule: ScheduleConfig = Field(default_factory=ScheduleConfig)
    triggers: TriggerConfig = Field(default_factory=TriggerConfig)

    @model_validator(mode="after")
    def _unique_regions(self) -> PublisherConfig:
        paths: set[str] = set()
        seen: dict[str, str] = {}
        for region in self.regions:
            if region.path in paths:
                raise ValueError(f"region '{region.path}' is listed more than once")
            paths.add(region.path)
            if region.output in seen:
                raise ValueError(
                    f"regions '{seen[region.output]}' and '{region.path}' "
                    f"both publish to '{region.output}'"
                )
            seen[region.output] = region.path
        return self

