"""mirrorpub — publish curated, always-current mirror lists."""

__version__ = "0.1.0"
