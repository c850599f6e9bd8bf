"""Building blocks for Dapr tooling: status, listings, chart values, metadata and certificates."""

__version__ = "0.1.0"

__all__ = [
    "printing",
    "chart_versions",
    "rundata",
    "metadata",
    "pods",
    "status",
    "common",
    "resources",
    "upgrade",
    "certs",
]