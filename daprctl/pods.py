"""Pod records, an in-memory pod source and pod queries."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Protocol

POD_RUNNING = "Running"
POD_PENDING = "Pending"
NAMESPACE_ALL = ""
NAMESPACE_DEFAULT = "default"


@dataclass
class Container:
    """A container in a pod spec."""

    name: str = ""
    image: str = ""
    args: list[str] = field(default_factory=list)


@dataclass
class ContainerState:
    """State of a container.

    ``waiting`` holds the reason when the container is waiting.
    """

    waiting: str | None = None
    running: bool = False
    terminated: bool = False


@dataclass
class ContainerStatus:
    """Observed status of one container."""

    state: ContainerState = field(default_factory=ContainerState)
    ready: bool = False


@dataclass
class Pod:
    """A pod with the fields the command line needs."""

    name: str
    namespace: str = NAMESPACE_DEFAULT
    labels: dict[str, str] = field(default_factory=dict)
    created: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    phase: str = ""
    containers: list[Container] = field(default_factory=list)
    container_statuses: list[ContainerStatus] = field(default_factory=list)


class PodSource(Protocol):
    def list_pods(self, namespace: str, label_selector: Mapping[str, str] | None) -> list[Pod]: ...


@dataclass
class InMemoryPodClient:
    """A pod source holding its pods in memory."""

    pods: list[Pod] = field(default_factory=list)

    def list_pods(
        self, namespace: str = NAMESPACE_ALL, label_selector: Mapping[str, str] | None = None
    ) -> list[Pod]:
        """Return pods in the namespace (all when empty) carrying every selected label."""
        selector = dict(label_selector or {})
        return [
            pod
            for pod in self.pods
            if (namespace == NAMESPACE_ALL or pod.namespace == namespace)
            and all(pod.labels.get(key) == value for key, value in selector.items())
        ]


def format_labels(labels: Mapping[str, str] | None) -> str:
    """Render labels as a selector string, sorted by key."""
    if not labels:
        return "<none>"
    return ",".join(f"{key}={labels[key]}" for key in sorted(labels))


def age(created: datetime, now: datetime | None = None) -> str:
    """Return a short human age such as ``45s``, ``20m``, ``3h`` or ``2d``."""
    if now is None:
        now = datetime.now(created.tzinfo) if created.tzinfo else datetime.now()
    seconds = max(int((now - created).total_seconds()), 0)
    if seconds < 60:
        return f"{seconds}s"
    minutes = seconds // 60
    if minutes < 60:
        return f"{minutes}m"
    hours = minutes // 60
    if hours < 24:
        return f"{hours}h"
    return f"{hours // 24}d"


def list_pods_interface(client: PodSource, label_selector: Mapping[str, str] | None = None) -> list[Pod]:
    """List pods in all namespaces matching the label selector."""
    return client.list_pods(NAMESPACE_ALL, label_selector)


def list_pods(
    client: PodSource, namespace: str, label_selector: Mapping[str, str] | None = None
) -> list[Pod]:
    """List pods in one namespace matching the label selector."""
    return client.list_pods(namespace, label_selector)


def check_pod_exists(
    client: PodSource,
    namespace: str,
    label_selector: Mapping[str, str] | None,
    deploy_name: str,
) -> tuple[bool, str]:
    """Return whether a running pod of the deployment exists, and its namespace."""
    try:
        pods = client.list_pods(namespace, label_selector)
    except Exception:
        return False, ""
    for pod in pods:
        if pod.phase == POD_RUNNING and pod.name.startswith(deploy_name):
            return True, pod.namespace
    return False, ""