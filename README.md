# daprctl

Building blocks for tools that inspect and manage a Dapr control plane and
Dapr sidecars: status reporting, listings of components and configurations,
Helm chart values, version checks and trust-chain certificates.

## Installation

```
pip install daprctl
```

To run the test suite:

```
pip install "daprctl[test]"
pytest
```

## Modules

- `daprctl.printing`: status events written to a stream with
  `success_status_event`, `failure_status_event`, `warning_status_event`,
  `pending_status_event`, `info_status_event` and `status_event`. On standard
  output and error they carry a status symbol; after `enable_json_format()`
  every event is written as a JSON line with `time`, `status` and `msg`.
  `spinner()` shows a spinner on a terminal and returns a function that
  reports success or failure once. `CustomLogWriter` strips terminal colour
  codes when writing to anything other than standard output or error.
- `daprctl.chart_versions`: `chart_version()` maps a runtime version to its
  Helm chart version; unknown versions map to themselves.
- `daprctl.rundata`: `delete_run_data_file()` removes the old
  `dapr-run-data.ldj` file from a temporary directory while holding its lock
  file, and raises `RunDataLockError` if the lock cannot be taken.
- `daprctl.metadata`: `get()` fetches a sidecar's metadata as a dict and
  `put()` sets one attribute, retrying transient failures, over TCP on
  127.0.0.1 or over a Unix socket. `make_metadata_get_endpoint()` and
  `make_metadata_put_endpoint()` build the URLs.
- `daprctl.pods`: `Pod`, `Container`, `ContainerState` and `ContainerStatus`
  records, `InMemoryPodClient` as a pod source, `format_labels()`, `age()`,
  `list_pods()`, `list_pods_interface()` and `check_pod_exists()`.
- `daprctl.status`: `StatusClient(client).status()` returns a `StatusOutput`
  for each control plane service that has pods: namespace, health, status,
  replicas, version (the image tag) and age.
- `daprctl.common`: `list_apps()` lists pods running a `daprd` sidecar with
  their app id and port; `find_app_pod()` finds the pod of an app id;
  `get_dapr_resources_status()`, `get_dapr_version()`, `get_dapr_namespace()`
  and `find_dapr_helm_chart_name()`.
- `daprctl.resources`: `Component` and `Configuration` records;
  `write_components()` and `write_configurations()` write them as a table, as
  JSON or as YAML, leaving out the `daprsystem` entry; `write_table()`,
  `print_detail()`, `tracing_enabled()` and `default_configuration()`.
- `daprctl.upgrade`: `parse_into()` reads Helm-style `a.b=c,d[0]=e`
  assignments; `chart_values()` and `upgrade_chart_values()` build install and
  upgrade values from `InitConfiguration` and `UpgradeConfig`;
  `high_availability_enabled()`, `is_downgrade()`, `crd_urls()` and
  `resolve_version()`.
- `daprctl.certs`: `parse_certificate_files()`,
  `create_helm_params_for_new_certificates()`, `certificate_expiry()`,
  `cert_expiry_warning()`, `export_trust_chain()` and `find_system_config()`.

## Examples

```python
import sys
from datetime import datetime, timedelta

from daprctl.pods import Container, ContainerState, ContainerStatus, InMemoryPodClient, Pod
from daprctl.status import StatusClient

pod = Pod(
    name="dapr-sentry-0",
    namespace="dapr-system",
    labels={"app": "dapr-sentry"},
    created=datetime.now() - timedelta(minutes=20),
    containers=[Container(image="daprio/dapr:1.10.0")],
    container_statuses=[ContainerStatus(ContainerState(running=True), ready=True)],
)
for row in StatusClient(InMemoryPodClient([pod])).status():
    print(row.name, row.status, row.healthy, row.version, row.age)
# dapr-sentry Running True 1.10.0 20m
```

```python
from daprctl.upgrade import UpgradeConfig, upgrade_chart_values

values = upgrade_chart_values(
    "ca-pem", "issuer-pem", "issuer-key-pem",
    True, True,
    UpgradeConfig(runtime_version="1.10.0"),
)
# {'global': {'tag': '1.10.0', 'ha': {'enabled': True}}, 'dapr_sentry': {'tls': {...}}}
```

## What it does not do

- There is no command-line program; everything is a library call.
- It does not connect to a Kubernetes cluster. Pod queries work on any object
  with a `list_pods(namespace, label_selector)` method, such as
  `InMemoryPodClient`, and components, configurations and secrets are passed in
  by the caller.
- It does not run Helm or `kubectl`: it builds chart values and CRD URLs but
  does not install, upgrade or uninstall releases, and does not apply CRDs.
- It does not generate new certificates, stream sidecar logs or open port
  forwards.