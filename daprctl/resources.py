"""Listing components and configurations as tables, JSON or YAML."""

from __future__ import annotations

import dataclasses
import json
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass, field
from datetime import datetime
from typing import IO, Any

import yaml

from daprctl.pods import age
from daprctl.status import CREATED_FORMAT

SYSTEM_CONFIG_NAME = "daprsystem"

_LIST_FORMATS = ("", "list")
_DETAIL_FORMATS = ("json", "yaml")


@dataclass
class Component:
    """A component resource with the fields shown by the command line."""

    name: str
    namespace: str = ""
    type: str = ""
    version: str = ""
    ignore_errors: bool = False
    metadata: list[dict[str, Any]] | None = None
    init_timeout: str = ""
    scopes: list[str] = field(default_factory=list)
    created: datetime = field(default_factory=datetime.now)


@dataclass
class Configuration:
    """A configuration resource; ``spec`` keeps the resource's spec as a mapping."""

    name: str
    namespace: str = ""
    spec: dict[str, Any] = field(default_factory=dict)
    created: datetime = field(default_factory=datetime.now)

    @property
    def sampling_rate(self) -> str:
        return str((self.spec.get("tracing") or {}).get("samplingRate", ""))

    @property
    def metrics_enabled(self) -> bool:
        return bool((self.spec.get("metric") or {}).get("enabled", False))

    @property
    def mtls_enabled(self) -> bool:
        return bool((self.spec.get("mtls") or {}).get("enabled", False))


@dataclass
class ComponentsOutput:
    """One row of the component table."""

    namespace: str = field(default="", metadata={"header": "NAMESPACE"})
    name: str = field(default="", metadata={"header": "NAME"})
    type: str = field(default="", metadata={"header": "TYPE"})
    version: str = field(default="", metadata={"header": "VERSION"})
    scopes: str = field(default="", metadata={"header": "SCOPES"})
    created: str = field(default="", metadata={"header": "CREATED"})
    age: str = field(default="", metadata={"header": "AGE"})


@dataclass
class ConfigurationsOutput:
    """One row of the configuration table."""

    namespace: str = field(default="", metadata={"header": "NAMESPACE"})
    name: str = field(default="", metadata={"header": "NAME"})
    tracing_enabled: bool = field(default=False, metadata={"header": "TRACING-ENABLED"})
    metrics_enabled: bool = field(default=False, metadata={"header": "METRICS-ENABLED"})
    age: str = field(default="", metadata={"header": "AGE"})
    created: str = field(default="", metadata={"header": "CREATED"})


def _headers(row_type: type) -> list[str]:
    return [f.metadata["header"] for f in dataclasses.fields(row_type)]


def _cell(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def _cells(row: Any) -> list[str]:
    return [_cell(getattr(row, f.name)) for f in dataclasses.fields(row)]


def write_table(stream: IO[str], rows: Iterable[Sequence[Any]]) -> None:
    """Write rows as an aligned borderless table; the first row is the header."""
    table = [[_cell(value) for value in row] for row in rows]
    if not table:
        return
    widths = [max(len(row[column]) for row in table) for column in range(len(table[0]))]
    for row in table:
        cells = "  ".join(value.ljust(width) for value, width in zip(row, widths))
        stream.write(f"  {cells}  \n")


class _DetailDumper(yaml.SafeDumper):
    """YAML dumper that double-quotes strings which cannot stay plain."""


def _represent_str(dumper: yaml.SafeDumper, data: str) -> yaml.ScalarNode:
    style = None
    plain_tag = dumper.resolve(yaml.ScalarNode, data, (True, False))
    if data == "" or plain_tag != "tag:yaml.org,2002:str":
        style = '"'
    return dumper.represent_scalar("tag:yaml.org,2002:str", data, style=style)


_DetailDumper.add_representer(str, _represent_str)


def print_detail(stream: IO[str], output_format: str, items: Any) -> None:
    """Write items as indented JSON or as YAML."""
    if output_format == "json":
        stream.write(json.dumps(items, indent=2, ensure_ascii=False))
    elif output_format == "yaml":
        stream.write(
            yaml.dump(
                items,
                Dumper=_DetailDumper,
                sort_keys=False,
                default_flow_style=False,
                allow_unicode=True,
            )
        )
    else:
        raise ValueError(f"unsupported output format: {output_format}")


def _selected(items: Iterable[Any], name: str) -> list[Any]:
    wanted = name.casefold()
    return [
        item
        for item in items
        if item.name != SYSTEM_CONFIG_NAME and (not name or item.name.casefold() == wanted)
    ]


def _component_spec(component: Component, yaml_keys: bool) -> dict[str, Any]:
    if yaml_keys:
        return {
            "type": component.type,
            "version": component.version,
            "ignoreerrors": component.ignore_errors,
            "metadata": list(component.metadata or []),
            "inittimeout": component.init_timeout,
        }
    return {
        "type": component.type,
        "version": component.version,
        "ignoreErrors": component.ignore_errors,
        "metadata": component.metadata,
        "initTimeout": component.init_timeout,
    }


def _by_namespace_desc(items: Iterable[Any]) -> list[Any]:
    return sorted(items, key=lambda item: item.namespace, reverse=True)


def write_components(
    stream: IO[str],
    fetch: Callable[[], Iterable[Component]],
    name: str = "",
    output_format: str = "",
) -> None:
    """Write the fetched components, optionally filtered by name."""
    components = _selected(fetch(), name)

    if output_format in _LIST_FORMATS:
        rows = _by_namespace_desc(
            ComponentsOutput(
                namespace=c.namespace,
                name=c.name,
                type=c.type,
                version=c.version,
                scopes=",".join(c.scopes),
                created=c.created.strftime(CREATED_FORMAT),
                age=age(c.created),
            )
            for c in components
        )
        write_table(stream, [_headers(ComponentsOutput), *map(_cells, rows)])
        return

    yaml_keys = output_format == "yaml"
    details = [
        {"name": c.name, "namespace": c.namespace, "spec": _component_spec(c, yaml_keys)}
        for c in _by_namespace_desc(components)
    ]
    print_detail(stream, output_format, details)


def tracing_enabled(sampling_rate: str | None) -> bool:
    """Return whether a sampling rate parses as a number above zero."""
    if not sampling_rate or sampling_rate != sampling_rate.strip() or "_" in sampling_rate:
        return False
    try:
        rate = float(sampling_rate)
    except ValueError:
        return False
    return rate > 0


def write_configurations(
    stream: IO[str],
    fetch: Callable[[], Iterable[Configuration]],
    name: str = "",
    output_format: str = "",
) -> None:
    """Write the fetched configurations, optionally filtered by name."""
    configurations = _selected(fetch(), name)

    if output_format in _LIST_FORMATS:
        rows = _by_namespace_desc(
            ConfigurationsOutput(
                namespace=c.namespace,
                name=c.name,
                tracing_enabled=tracing_enabled(c.sampling_rate),
                metrics_enabled=c.metrics_enabled,
                age=age(c.created),
                created=c.created.strftime(CREATED_FORMAT),
            )
            for c in configurations
        )
        write_table(stream, [_headers(ConfigurationsOutput), *map(_cells, rows)])
        return

    details = [
        {"name": c.name, "namespace": c.namespace, "spec": c.spec}
        for c in _by_namespace_desc(configurations)
    ]
    print_detail(stream, output_format, details)


def default_configuration() -> Configuration:
    """Return the default system configuration with mTLS enabled."""
    return Configuration(
        name=SYSTEM_CONFIG_NAME,
        spec={
            "mtls": {
                "enabled": True,
                "workloadCertTTL": "24h",
                "allowedClockSkew": "15m",
            }
        },
    )