import io
import json
from datetime import datetime

import pytest
import yaml

from daprctl.resources import (
    Component,
    Configuration,
    default_configuration,
    print_detail,
    tracing_enabled,
    write_components,
    write_configurations,
    write_table,
)

NOW = datetime.now().replace(microsecond=0)
FORMATTED_NOW = NOW.strftime("%Y-%m-%d %H:%M.%S")

ONE_ROW = (
    "  NAMESPACE  NAME       TYPE         VERSION  SCOPES  CREATED              AGE  \n"
    "  default    appConfig  state.redis  v1               " + FORMATTED_NOW + "  0s   \n"
)

YAML_SPEC = (
    "  spec:\n    type: state.redis\n    version: v1\n    ignoreerrors: false\n"
    "    metadata: []\n    inittimeout: \"\"\n"
)

JSON_SPEC = (
    '    "spec": {\n      "type": "state.redis",\n      "version": "v1",\n'
    '      "ignoreErrors": false,\n      "metadata": null,\n      "initTimeout": ""\n    }\n'
)


def _component(name, namespace=""):
    return Component(name=name, namespace=namespace, type="state.redis", version="v1", created=NOW)


def _run_components(items, name="", output_format=""):
    buff = io.StringIO()
    write_components(buff, lambda: list(items), name, output_format)
    return buff.getvalue()


def test_list_one_component():
    assert _run_components([_component("appConfig", "default")]) == ONE_ROW


def test_error_on_fetching_components():
    def fetch():
        raise RuntimeError("could not fetch config")

    with pytest.raises(RuntimeError, match="^could not fetch config$"):
        write_components(io.StringIO(), fetch, "", "")


def test_filters_out_daprsystem():
    items = [_component("appConfig", "default"), Component(name="daprsystem", created=NOW)]
    assert _run_components(items) == ONE_ROW


def test_name_does_match():
    assert _run_components([_component("appConfig", "default")], "appConfig", "list") == ONE_ROW


def test_name_match_ignores_case():
    assert _run_components([_component("appConfig", "default")], "APPCONFIG", "list") == ONE_ROW


def test_name_does_not_match():
    output = _run_components([_component("not config")], "appConfig", "list")
    assert output == "  NAMESPACE  NAME  TYPE  VERSION  SCOPES  CREATED  AGE  \n"


def test_yaml_one_component():
    output = _run_components([_component("appConfig")], "", "yaml")
    assert output == '- name: appConfig\n  namespace: ""\n' + YAML_SPEC


def test_yaml_two_components():
    output = _run_components([_component("appConfig1"), _component("appConfig2")], "", "yaml")
    expected = (
        '- name: appConfig1\n  namespace: ""\n' + YAML_SPEC
        + '- name: appConfig2\n  namespace: ""\n' + YAML_SPEC
    )
    assert output == expected


def test_json_one_component():
    output = _run_components([_component("appConfig")], "", "json")
    expected = '[\n  {\n    "name": "appConfig",\n    "namespace": "",\n' + JSON_SPEC + "  }\n]"
    assert output == expected


def test_json_two_components():
    output = _run_components([_component("appConfig1"), _component("appConfig2")], "", "json")
    expected = (
        '[\n  {\n    "name": "appConfig1",\n    "namespace": "",\n' + JSON_SPEC + "  },\n"
        '  {\n    "name": "appConfig2",\n    "namespace": "",\n' + JSON_SPEC + "  }\n]"
    )
    assert output == expected


def test_component_table_sorted_by_namespace_descending():
    items = [_component("a", "alpha"), _component("z", "zeta"), _component("m", "mu")]
    lines = _run_components(items).splitlines()[1:]
    assert [line.split()[0] for line in lines] == ["zeta", "mu", "alpha"]


def test_component_scopes_joined():
    item = _component("appConfig", "default")
    item.scopes = ["app1", "app2"]
    row = _run_components([item]).splitlines()[1]
    assert row.split()[4] == "app1,app2"


def test_unsupported_detail_format():
    with pytest.raises(ValueError, match="unsupported output format"):
        _run_components([_component("appConfig")], "", "xml")


def test_configuration_table():
    conf = Configuration(
        name="appConfig",
        namespace="default",
        spec={"tracing": {"samplingRate": "1"}, "metric": {"enabled": False}},
        created=NOW,
    )
    buff = io.StringIO()
    write_configurations(buff, lambda: [conf, default_configuration()], "", "")
    expected = (
        "  NAMESPACE  NAME       TRACING-ENABLED  METRICS-ENABLED  AGE  CREATED"
        + " " * 14 + "\n"
        + "  default    appConfig  true" + " " * 13 + "false" + " " * 12
        + "0s   " + FORMATTED_NOW + "  \n"
    )
    assert buff.getvalue() == expected


def test_configuration_json_detail():
    conf = Configuration(name="appConfig", spec={"metric": {"enabled": True}}, created=NOW)
    buff = io.StringIO()
    write_configurations(buff, lambda: [conf], "appconfig", "json")
    assert json.loads(buff.getvalue()) == [
        {"name": "appConfig", "namespace": "", "spec": {"metric": {"enabled": True}}}
    ]


def test_configuration_yaml_detail_round_trip():
    conf = Configuration(
        name="appConfig", namespace="ns", spec={"tracing": {"samplingRate": "0.5"}}, created=NOW
    )
    buff = io.StringIO()
    write_configurations(buff, lambda: [conf], "", "yaml")
    assert yaml.safe_load(buff.getvalue()) == [
        {"name": "appConfig", "namespace": "ns", "spec": {"tracing": {"samplingRate": "0.5"}}}
    ]


def test_configuration_fetch_error_propagates():
    def fetch():
        raise LookupError("no configurations")

    with pytest.raises(LookupError, match="no configurations"):
        write_configurations(io.StringIO(), fetch, "", "")


@pytest.mark.parametrize(
    ("rate", "expected"),
    [("1", True), ("0.5", True), ("0", False), ("-1", False), ("", False), ("abc", False), (None, False)],
)
def test_tracing_enabled(rate, expected):
    assert tracing_enabled(rate) is expected


def test_default_configuration():
    conf = default_configuration()
    assert conf.name == "daprsystem"
    assert conf.mtls_enabled is True
    assert conf.spec["mtls"]["workloadCertTTL"] == "24h"
    assert conf.spec["mtls"]["allowedClockSkew"] == "15m"


def test_write_table_alignment():
    buff = io.StringIO()
    write_table(buff, [("A", "BB"), ("ccc", "d")])
    assert buff.getvalue() == "  A    BB  \n  ccc  d   \n"


def test_print_detail_yaml_quotes_ambiguous_strings():
    buff = io.StringIO()
    print_detail(buff, "yaml", [{"value": "true", "empty": ""}])
    assert buff.getvalue() == '- value: "true"\n  empty: ""\n'


def test_print_detail_empty_json():
    buff = io.StringIO()
    print_detail(buff, "json", [])
    assert buff.getvalue() == "[]"