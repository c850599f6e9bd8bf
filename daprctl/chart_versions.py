"""Mapping from runtime versions to Helm chart versions."""

from __future__ import annotations

_CHART_VERSIONS = {
    "0.7.0": "0.4.0",
    "0.7.1": "0.4.1",
    "0.8.0": "0.4.2",
    "0.9.0": "0.4.3",
}


def chart_version(runtime_version: str) -> str:
    """Return the chart version for a runtime version.

    Versions without an entry use the runtime version as the chart version.
    """
    return _CHART_VERSIONS.get(runtime_version, runtime_version)