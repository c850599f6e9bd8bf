"""Cluster-wide queries: control plane status, apps and sidecar pods."""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from datetime import datetime

from daprctl.pods import NAMESPACE_DEFAULT, PodSource, age, list_pods
from daprctl.status import CREATED_FORMAT, StatusClient, StatusOutput

DAPR_RELEASE_NAME = "dapr"
OPERATOR_NAME = "dapr-operator"
DAPRD_CONTAINER_NAME = "daprd"
APP_ID_ARG = "--app-id"
APP_PORT_ARG = "--app-port"


@dataclass
class ListOutput:
    """An app with a sidecar: namespace, app id, app port and creation time."""

    namespace: str = ""
    app_id: str = ""
    app_port: str = ""
    age: str = ""
    created: str = ""


def get_dapr_resources_status(client: PodSource) -> list[StatusOutput]:
    """Return the control plane status, raising if nothing is installed."""
    status = StatusClient(client).status()
    if not status:
        raise RuntimeError("dapr is not installed in your cluster")
    return status


def get_dapr_version(status: Iterable[StatusOutput]) -> str:
    """Return the operator's version, or an empty string."""
    version = ""
    for entry in status:
        if entry.name == OPERATOR_NAME:
            version = entry.version
    return version


def get_dapr_namespace(client: PodSource) -> str:
    """Return the namespace the control plane runs in."""
    return get_dapr_resources_status(client)[0].namespace


def find_dapr_helm_chart_name(releases: Iterable[tuple[str, str | None]]) -> str:
    """Return the name of the first release whose chart name contains ``dapr``.

    ``releases`` holds (release name, chart name) pairs; chart name may be None.
    """
    entries = list(releases)
    if not entries:
        raise LookupError(f'could not find release name "{DAPR_RELEASE_NAME}" in your helm releases')
    for release_name, chart_name in entries:
        if chart_name is not None and "dapr" in chart_name:
            return release_name
    return ""


def _arg_values(args: Sequence[str]) -> Iterable[tuple[str, str]]:
    return zip(args, args[1:])


def list_apps(client: PodSource, namespace: str = "") -> list[ListOutput]:
    """List apps that run with a sidecar, sorted by namespace descending."""
    now = datetime.now()
    apps = []
    for pod in list_pods(client, namespace, None):
        for container in pod.containers:
            if container.name != DAPRD_CONTAINER_NAME:
                continue
            entry = ListOutput()
            for arg, value in _arg_values(container.args):
                if arg == APP_PORT_ARG:
                    entry.app_port = value
                elif arg == APP_ID_ARG:
                    entry.app_id = value
            entry.namespace = pod.namespace
            entry.created = pod.created.strftime(CREATED_FORMAT)
            entry.age = age(pod.created, now.astimezone(pod.created.tzinfo) if pod.created.tzinfo else now)
            apps.append(entry)
    return sorted(apps, key=lambda item: item.namespace, reverse=True)


def find_app_pod(client: PodSource, app_id: str, namespace: str = "") -> str:
    """Return the name of the first pod whose sidecar runs the given app id."""
    if not namespace:
        namespace = NAMESPACE_DEFAULT
    try:
        pods = list_pods(client, namespace, None)
    except Exception as exc:
        raise RuntimeError(f"could not get logs {exc}") from exc
    for pod in pods:
        for container in pod.containers:
            if container.name != DAPRD_CONTAINER_NAME:
                continue
            for arg, value in _arg_values(container.args):
                if arg == APP_ID_ARG and value == app_id:
                    return pod.name
    raise LookupError(
        f"could not get logs. Please check app-id ({app_id}) and namespace ({namespace})"
    )