"""Helm values for installing and upgrading the control plane, and version checks."""

from __future__ import annotations

import re
from collections.abc import Callable, Iterable, MutableMapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from daprctl.common import DAPR_RELEASE_NAME
from daprctl.status import StatusOutput

DASHBOARD_RELEASE_NAME = "dapr-dashboard"
LATEST_VERSION = "latest"

CRDS = ("components", "configuration", "subscription", "resiliency")
CRDS_FULL_RESOURCES = (
    "components.dapr.io",
    "configurations.dapr.io",
    "subscriptions.dapr.io",
    "resiliencies.dapr.io",
)

_CRD_URL = "https://raw.githubusercontent.com/dapr/dapr/{version}/charts/dapr/crds/{crd}.yaml"
_IMAGE_VARIANTS = ("", "mariner")
_INT64_MIN = -(2**63)
_INT64_MAX = 2**63 - 1
_INTEGER = re.compile(r"[+-]?[0-9]+")


class StrvalsError(ValueError):
    """A ``key=value`` expression could not be parsed."""


@dataclass
class UpgradeConfig:
    """Options for upgrading the control plane."""

    runtime_version: str = ""
    dashboard_version: str = ""
    args: list[str] = field(default_factory=list)
    timeout: int = 0
    image_registry_uri: str = ""
    image_variant: str = ""


@dataclass
class InitConfiguration:
    """Options for installing the control plane."""

    version: str = ""
    dashboard_version: str = ""
    namespace: str = ""
    enable_mtls: bool = False
    enable_ha: bool = False
    args: list[str] = field(default_factory=list)
    wait: bool = False
    timeout: int = 0
    image_registry_uri: str = ""
    image_variant: str = ""
    root_certificate_file_path: str = ""
    issuer_certificate_file_path: str = ""
    issuer_private_key_file_path: str = ""


# --- key=value expressions -------------------------------------------------


def _typed(value: str) -> Any:
    lowered = value.lower()
    if lowered == "true":
        return True
    if lowered == "false":
        return False
    if lowered == "null":
        return None
    if value == "0":
        return 0
    if value and value[0] != "0" and _INTEGER.fullmatch(value):
        number = int(value)
        if _INT64_MIN <= number <= _INT64_MAX:
            return number
    return value


def _set_index(items: list[Any], index: int, value: Any) -> list[Any]:
    if index < 0:
        raise StrvalsError(f"negative {index} index not allowed")
    if index >= len(items):
        items.extend([None] * (index + 1 - len(items)))
    items[index] = value
    return items


class _Parser:
    """Reads comma-separated ``path=value`` assignments into nested mappings."""

    def __init__(self, text: str) -> None:
        self._text = text
        self._pos = 0

    def _read(self) -> str | None:
        if self._pos >= len(self._text):
            return None
        char = self._text[self._pos]
        self._pos += 1
        return char

    def _unread(self) -> None:
        self._pos -= 1

    def _until(self, stops: str) -> tuple[str, str | None]:
        chars: list[str] = []
        while True:
            char = self._read()
            if char is None:
                return "".join(chars), None
            if char in stops:
                return "".join(chars), char
            if char == "\\":
                escaped = self._read()
                if escaped is None:
                    return "".join(chars), None
                chars.append(escaped)
            else:
                chars.append(char)

    def parse(self, data: MutableMapping[str, Any]) -> None:
        while self._key(data):
            pass

    def _index(self) -> int:
        text, last = self._until("]")
        if last is None:
            raise StrvalsError("error parsing index")
        try:
            return int(text)
        except ValueError as exc:
            raise StrvalsError(f"error parsing index: {text!r}") from exc

    def _value_list(self) -> list[Any]:
        items: list[Any] = []
        while True:
            text, last = self._until(",}")
            if last is None:
                raise StrvalsError("list must terminate with '}'")
            items.append(_typed(text))
            if last == "}":
                following = self._read()
                if following is not None and following != ",":
                    self._unread()
                return items

    def _value(self) -> tuple[Any, bool]:
        """Read a value after '='; return it and whether more input follows."""
        char = self._read()
        if char is None:
            return "", False
        if char == "{":
            return self._value_list(), True
        self._unread()
        text, last = self._until(",")
        return _typed(text), last is not None

    def _key(self, data: MutableMapping[str, Any]) -> bool:
        key, last = self._until("=[,.")
        if last is None:
            if not key:
                return False
            raise StrvalsError(f'key "{key}" has no value')
        if last == ",":
            data[key] = ""
            raise StrvalsError(f'key "{key}" has no value (cannot end with ,)')
        if last == "=":
            value, more = self._value()
            data[key] = value
            return more
        if last == "[":
            index = self._index()
            existing = data.get(key)
            items = existing if isinstance(existing, list) else []
            items, more = self._list_item(items, index)
            data[key] = items
            return more
        existing = data.get(key)
        inner = existing if isinstance(existing, dict) else {}
        more = self._key(inner)
        if not inner:
            raise StrvalsError(f'key map "{key}" has no value')
        data[key] = inner
        return more

    def _list_item(self, items: list[Any], index: int) -> tuple[list[Any], bool]:
        text, last = self._until("[.=")
        if text:
            raise StrvalsError(f'unexpected data at end of array index: "{text}"')
        if last is None:
            return items, False
        if last == "=":
            value, more = self._value()
            return _set_index(items, index, value), more
        if last == "[":
            inner_index = self._index()
            current = items[index] if 0 <= index < len(items) else None
            nested = current if isinstance(current, list) else []
            nested, more = self._list_item(nested, inner_index)
            return _set_index(items, index, nested), more
        current = items[index] if 0 <= index < len(items) else None
        inner = current if isinstance(current, dict) else {}
        more = self._key(inner)
        return _set_index(items, index, inner), more


def parse_into(expression: str, values: MutableMapping[str, Any]) -> MutableMapping[str, Any]:
    """Merge ``a.b=c,d[0]=e`` style assignments into ``values`` and return it."""
    _Parser(expression).parse(values)
    return values


# --- chart values ----------------------------------------------------------


def _validate_image_variant(variant: str) -> None:
    if variant not in _IMAGE_VARIANTS:
        raise ValueError(f"image variant {variant} is not supported")


def _variant_version(version: str, variant: str) -> str:
    return f"{version}-{variant}" if variant else version


def _collect(expressions: Iterable[str]) -> dict[str, Any]:
    values: dict[str, Any] = {}
    for expression in expressions:
        parse_into(expression, values)
    return values


def _certificate_values(ca: str, issuer_cert: str, issuer_key: str) -> list[str]:
    return [
        f"dapr_sentry.tls.root.certPEM={ca}",
        f"dapr_sentry.tls.issuer.certPEM={issuer_cert}",
        f"dapr_sentry.tls.issuer.keyPEM={issuer_key}",
    ]


def high_availability_enabled(status: Iterable[StatusOutput]) -> bool:
    """Return whether any service other than the dashboard runs more than one replica."""
    return any(entry.replicas > 1 for entry in status if entry.name != DASHBOARD_RELEASE_NAME)


def upgrade_chart_values(
    ca: str,
    issuer_cert: str,
    issuer_key: str,
    ha_mode: bool,
    mtls: bool,
    conf: UpgradeConfig,
) -> dict[str, Any]:
    """Build the Helm values used for an upgrade."""
    _validate_image_variant(conf.image_variant)
    expressions = [
        *conf.args,
        f"global.tag={_variant_version(conf.runtime_version, conf.image_variant)}",
    ]
    if mtls and ca and issuer_cert and issuer_key:
        expressions.extend(_certificate_values(ca, issuer_cert, issuer_key))
    else:
        expressions.append("global.mtls.enabled=false")
    if conf.image_registry_uri:
        expressions.append(f"global.registry={conf.image_registry_uri}")
    if ha_mode:
        expressions.append("global.ha.enabled=true")
    return _collect(expressions)


def chart_values(config: InitConfiguration, version: str) -> dict[str, Any]:
    """Build the Helm values used for an install."""
    _validate_image_variant(config.image_variant)
    expressions = [
        f"global.ha.enabled={'true' if config.enable_ha else 'false'}",
        f"global.mtls.enabled={'true' if config.enable_mtls else 'false'}",
        f"global.tag={_variant_version(version, config.image_variant)}",
    ]
    if config.image_registry_uri:
        expressions.append(f"global.registry={config.image_registry_uri}")
    expressions.extend(config.args)

    paths = (
        config.root_certificate_file_path,
        config.issuer_certificate_file_path,
        config.issuer_private_key_file_path,
    )
    if all(paths):
        ca, issuer_cert, issuer_key = (Path(path).read_text() for path in paths)
        expressions.extend(_certificate_values(ca, issuer_cert, issuer_key))

    return _collect(expressions)


# --- versions --------------------------------------------------------------

_VERSION = re.compile(
    r"v?(?P<segments>[0-9]+(?:\.[0-9]+)*?)"
    r"(?:-(?P<numpre>[0-9]+[0-9A-Za-z\-~]*(?:\.[0-9A-Za-z\-~]+)*)"
    r"|(?:-?(?P<alphapre>[A-Za-z\-~]+[0-9A-Za-z\-~]*(?:\.[0-9A-Za-z\-~]+)*)))?"
    r"(?:\+(?P<meta>[0-9A-Za-z\-~]+(?:\.[0-9A-Za-z\-~]+)*))?"
)


@dataclass(frozen=True)
class _Version:
    segments: tuple[int, ...]
    prerelease: str


def _parse_version(text: str) -> _Version:
    match = _VERSION.fullmatch(text)
    if match is None:
        raise ValueError(f"Malformed version: {text}")
    segments = [int(part) for part in match["segments"].split(".")]
    segments.extend([0] * (3 - len(segments)))
    prerelease = match["alphapre"] or match["numpre"] or ""
    return _Version(tuple(segments), prerelease)


def _as_int(part: str) -> int | None:
    return int(part) if _INTEGER.fullmatch(part) else None


def _compare_part(mine: str, theirs: str) -> int:
    if mine == theirs:
        return 0
    mine_int, theirs_int = _as_int(mine), _as_int(theirs)
    if mine == "":
        return -1 if theirs_int is not None else 1
    if theirs == "":
        return 1 if mine_int is not None else -1
    if mine_int is not None and theirs_int is None:
        return -1
    if mine_int is None and theirs_int is not None:
        return 1
    if mine_int is None and theirs_int is None:
        return 1 if mine > theirs else -1
    return 1 if mine_int > theirs_int else -1


def _compare_prereleases(mine: str, theirs: str) -> int:
    if mine == theirs:
        return 0
    my_parts, their_parts = mine.split("."), theirs.split(".")
    for position in range(max(len(my_parts), len(their_parts))):
        left = my_parts[position] if position < len(my_parts) else ""
        right = their_parts[position] if position < len(their_parts) else ""
        result = _compare_part(left, right)
        if result:
            return result
    return 0


def _compare(mine: _Version, theirs: _Version) -> int:
    if mine.segments == theirs.segments:
        if not mine.prerelease and not theirs.prerelease:
            return 0
        if not mine.prerelease:
            return 1
        if not theirs.prerelease:
            return -1
        return _compare_prereleases(mine.prerelease, theirs.prerelease)
    width = max(len(mine.segments), len(theirs.segments))
    left = mine.segments + (0,) * (width - len(mine.segments))
    right = theirs.segments + (0,) * (width - len(theirs.segments))
    return (left > right) - (left < right)


def is_downgrade(target_version: str, existing_version: str) -> bool:
    """Return whether moving from the existing version to the target goes backwards."""
    try:
        existing = _parse_version(existing_version)
    except ValueError as exc:
        raise ValueError(
            f"Upgrade failed, {exc}. The current installed version does not have sematic versioning"
        ) from exc
    target = _parse_version(target_version)
    return _compare(target, existing) < 0


def crd_urls(version: str) -> list[str]:
    """Return the URLs of the custom resource definitions for a release tag."""
    return [_CRD_URL.format(version=version, crd=crd) for crd in CRDS]


def resolve_version(
    release_name: str, version: str, latest_lookup: Callable[[str], str]
) -> str:
    """Return the concrete version, asking ``latest_lookup`` when it is ``latest``."""
    if version != LATEST_VERSION:
        return version
    if release_name not in (DAPR_RELEASE_NAME, DASHBOARD_RELEASE_NAME):
        raise ValueError(f"cannot get latest version for unknown chart: {release_name}")
    try:
        latest = latest_lookup(release_name)
    except Exception as exc:
        raise RuntimeError(f"cannot get the latest release version: {exc}") from exc
    return latest[1:] if latest.startswith("v") else latest