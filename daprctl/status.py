"""Status of the control plane services in a cluster."""

from __future__ import annotations

import sys
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from datetime import datetime, timezone

from daprctl.pods import PodSource, age, list_pods_interface
from daprctl.printing import warning_status_event

CONTROL_PLANE_LABELS = (
    "dapr-operator",
    "dapr-sentry",
    "dapr-placement",
    "dapr-placement-server",
    "dapr-sidecar-injector",
    "dapr-dashboard",
)

CREATED_FORMAT = "%Y-%m-%d %H:%M.%S"


@dataclass
class StatusOutput:
    """Status of one named control plane service."""

    name: str = ""
    namespace: str = ""
    healthy: str = ""
    status: str = ""
    replicas: int = 0
    version: str = ""
    age: str = ""
    created: str = ""


class StatusClient:
    """Reports the status of control plane services from a pod source."""

    def __init__(self, client: PodSource | None = None) -> None:
        self.client = client

    def status(self) -> list[StatusOutput]:
        """Return the status of every control plane service that has pods."""
        client = self.client
        if client is None:
            raise RuntimeError("kubernetes client not initialized")
        with ThreadPoolExecutor(max_workers=len(CONTROL_PLANE_LABELS)) as pool:
            results = pool.map(lambda label: _label_status(client, label), CONTROL_PLANE_LABELS)
            return [result for result in results if result is not None]


def _label_status(client: PodSource, label: str) -> StatusOutput | None:
    try:
        pods = list_pods_interface(client, {"app": label})
    except Exception as exc:
        warning_status_event(sys.stdout, "Failed to get status for %s: %s", label, exc)
        return None
    if not pods:
        return None

    first = pods[0]
    image = first.containers[0].image if first.containers else ""
    # The image tag is the version, e.g. daprio/dapr:1.8.0 or 1.8.0-mariner.
    version = image[image.rfind(":") + 1:]

    status = ""
    healthy = "False"
    running = True
    for pod in pods:
        statuses = pod.container_statuses
        if not statuses:
            status = pod.phase
        elif statuses[0].state.waiting is not None:
            status = f"Waiting ({statuses[0].state.waiting})"
        elif first.container_statuses and first.container_statuses[0].state.terminated:
            status = "Terminated"

        if not statuses or not statuses[0].state.running:
            running = False
            break
        if statuses[0].ready:
            healthy = "True"

    if running:
        status = "Running"

    now = datetime.now(first.created.tzinfo) if first.created.tzinfo else datetime.now(timezone.utc).replace(tzinfo=None)
    return StatusOutput(
        name=label,
        namespace=first.namespace,
        healthy=healthy,
        status=status,
        replicas=len(pods),
        version=version,
        age=age(first.created, now),
        created=first.created.strftime(CREATED_FORMAT),
    )