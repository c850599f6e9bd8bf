from datetime import datetime, timedelta, timezone

import pytest

from daprctl.common import (
    find_app_pod,
    find_dapr_helm_chart_name,
    get_dapr_namespace,
    get_dapr_resources_status,
    get_dapr_version,
    list_apps,
)
from daprctl.pods import Container, ContainerState, ContainerStatus, InMemoryPodClient, Pod
from daprctl.status import StatusOutput


class _FailingClient:
    def list_pods(self, namespace, label_selector):
        raise ConnectionError("unreachable")


def _sidecar_pod(name, namespace, app_id, app_port):
    return Pod(
        name=name,
        namespace=namespace,
        created=datetime.now(timezone.utc) - timedelta(minutes=5),
        containers=[
            Container(name="app", image="app:1"),
            Container(name="daprd", args=["--app-id", app_id, "--app-port", app_port]),
        ],
    )


def test_resources_status_not_installed():
    with pytest.raises(RuntimeError, match="dapr is not installed in your cluster"):
        get_dapr_resources_status(InMemoryPodClient())


def test_dapr_namespace_from_control_plane():
    pod = Pod(
        name="dapr-operator-x",
        namespace="control",
        labels={"app": "dapr-operator"},
        containers=[Container(image="daprio/dapr:1.10.0")],
        container_statuses=[ContainerStatus(ContainerState(running=True), True)],
    )
    client = InMemoryPodClient([pod])
    assert get_dapr_namespace(client) == "control"
    assert get_dapr_version(get_dapr_resources_status(client)) == "1.10.0"


def test_dapr_version_picks_operator():
    status = [
        StatusOutput(name="dapr-sentry", version="9.9.9"),
        StatusOutput(name="dapr-operator", version="1.2.3"),
    ]
    assert get_dapr_version(status) == "1.2.3"
    assert get_dapr_version([StatusOutput(name="dapr-sentry", version="9.9.9")]) == ""


def test_helm_chart_name():
    releases = [("other", "nginx"), ("my-release", "dapr"), ("second", "dapr")]
    assert find_dapr_helm_chart_name(releases) == "my-release"
    assert find_dapr_helm_chart_name([("other", None)]) == ""


def test_helm_chart_name_no_releases():
    with pytest.raises(LookupError, match='could not find release name "dapr"'):
        find_dapr_helm_chart_name([])


def test_list_apps_sorted_by_namespace_descending():
    client = InMemoryPodClient(
        [
            _sidecar_pod("a", "alpha", "app-a", "3000"),
            _sidecar_pod("z", "zeta", "app-z", "4000"),
            Pod(name="plain", namespace="omega", containers=[Container(name="app")]),
        ]
    )
    apps = list_apps(client, "")
    assert [app.namespace for app in apps] == ["zeta", "alpha"]
    assert (apps[0].app_id, apps[0].app_port) == ("app-z", "4000")
    assert (apps[1].app_id, apps[1].app_port) == ("app-a", "3000")
    assert all(app.age.endswith("m") for app in apps)


def test_find_app_pod():
    client = InMemoryPodClient(
        [
            _sidecar_pod("first", "default", "other", "1"),
            _sidecar_pod("second", "default", "target", "2"),
        ]
    )
    assert find_app_pod(client, "target") == "second"


def test_find_app_pod_missing():
    client = InMemoryPodClient([_sidecar_pod("p", "elsewhere", "target", "2")])
    with pytest.raises(LookupError, match=r"app-id \(target\) and namespace \(default\)"):
        find_app_pod(client, "target")


def test_find_app_pod_list_failure():
    with pytest.raises(RuntimeError, match="could not get logs"):
        find_app_pod(_FailingClient(), "target", "ns")