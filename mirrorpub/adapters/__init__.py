"""Adapters — bindings to the status oracle and the hosting target.

Public re-exports for convenient access.
"""

from mirrorpub.adapters.hosting import HostingTarget, build_hosting_target
from mirrorpub.adapters.oracle import OracleSource, build_oracle

__all__ = [
    "HostingTarget",
    "OracleSource",
    "build_hosting_target",
    "build_oracle",
]
