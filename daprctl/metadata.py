"""Reading and writing sidecar metadata over HTTP."""

from __future__ import annotations

import http.client
import json
import os
import socket as sockets
import time
from typing import Any
from urllib.parse import urlsplit

RUNTIME_API_VERSION = "1.0"

_RETRY_MAX = 4
_RETRY_WAIT_MIN = 1.0
_RETRY_WAIT_MAX = 30.0


class MetadataError(Exception):
    """A metadata request failed."""


class _UnixHTTPConnection(http.client.HTTPConnection):
    """HTTP connection over a Unix domain socket."""

    def __init__(self, path: str) -> None:
        super().__init__("unix")
        self._path = path

    def connect(self) -> None:
        sock = sockets.socket(sockets.AF_UNIX, sockets.SOCK_STREAM)
        try:
            sock.connect(self._path)
        except OSError:
            sock.close()
            raise
        self.sock = sock


def _socket_path(directory: str, app_id: str, protocol: str) -> str:
    return f"{directory}/dapr-{app_id}-{protocol}.socket"


def make_metadata_get_endpoint(http_port: int) -> str:
    if http_port == 0:
        return f"http://unix/v{RUNTIME_API_VERSION}/metadata"
    return f"http://127.0.0.1:{http_port}/v{RUNTIME_API_VERSION}/metadata"


def make_metadata_put_endpoint(http_port: int, key: str) -> str:
    if http_port == 0:
        return f"http://unix/v{RUNTIME_API_VERSION}/metadata/{key}"
    return f"http://127.0.0.1:{http_port}/v{RUNTIME_API_VERSION}/metadata/{key}"


def _send(method: str, url: str, body: bytes | None, unix_path: str | None) -> tuple[int, bytes]:
    parts = urlsplit(url)
    if unix_path:
        conn: http.client.HTTPConnection = _UnixHTTPConnection(unix_path)
    else:
        conn = http.client.HTTPConnection(parts.hostname or "127.0.0.1", parts.port or 80)
    target = parts.path + (f"?{parts.query}" if parts.query else "")
    try:
        conn.request(method, target, body=body)
        response = conn.getresponse()
        return response.status, response.read()
    finally:
        conn.close()


def get(http_port: int, app_id: str = "", socket: str = "") -> dict[str, Any]:
    """Fetch the metadata of an app's sidecar.

    A socket that names a directory is resolved to the app's HTTP socket in it.
    """
    url = make_metadata_get_endpoint(http_port)
    unix_path = None
    if socket:
        if os.path.isdir(os.fspath(socket)) or _is_dir(socket):
            socket = _socket_path(socket, app_id, "http")
        unix_path = socket
    _, body = _send("GET", url, None, unix_path)
    return json.loads(body)


def _is_dir(path: str) -> bool:
    import stat

    return stat.S_ISDIR(os.stat(path).st_mode)


def _should_retry(status: int) -> bool:
    return status == 0 or status == 429 or (status >= 500 and status != 501)


def put(http_port: int, key: str, value: str, app_id: str = "", socket: str = "") -> None:
    """Set one metadata attribute on an app's sidecar, retrying transient failures."""
    url = make_metadata_put_endpoint(http_port, key)
    unix_path = _socket_path(socket, app_id, "http") if socket else None
    body = value.encode("utf-8")
    last_error: OSError | None = None
    attempts = _RETRY_MAX + 1
    for attempt in range(attempts):
        try:
            status, _ = _send("PUT", url, body, unix_path)
        except OSError as exc:
            last_error = exc
        else:
            last_error = None
            if not _should_retry(status):
                return
        if attempt < _RETRY_MAX:
            time.sleep(min(_RETRY_WAIT_MIN * 2**attempt, _RETRY_WAIT_MAX))
    message = f"PUT {url} giving up after {attempts} attempt(s)"
    if last_error is not None:
        raise MetadataError(f"{message}: {last_error}") from last_error
    raise MetadataError(message)