"""Console status reporting: status prefixes, JSON log lines and a spinner."""

from __future__ import annotations

import enum
import itertools
import json
import re
import sys
import threading
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import IO, Any, Callable

_WINDOWS = "win32"


class LogStatus(str, enum.Enum):
    """Status of a reported event."""

    SUCCESS = "success"
    FAILURE = "failure"
    WARNING = "warning"
    INFO = "info"
    PENDING = "pending"


_PREFIXES = {
    LogStatus.SUCCESS: "✅  ",
    LogStatus.FAILURE: "❌  ",
    LogStatus.WARNING: "⚠  ",
    LogStatus.PENDING: "⌛  ",
    LogStatus.INFO: "ℹ️  ",
}

_ANSI_COLOR = re.compile("\x1b\\[[\\d;]+m")
_ANSI_COLOR_BYTES = re.compile(b"\x1b\\[[\\d;]+m")

_SPINNER_FRAMES = "←↖↑↗→↘↓↙"
_CYAN = "\x1b[36m"
_RESET = "\x1b[0m"


@dataclass
class _OutputSettings:
    """Process-wide output settings."""

    log_as_json: bool = False


_settings = _OutputSettings()


def enable_json_format() -> None:
    """Switch all status output to JSON lines."""
    _settings.log_as_json = True


def is_json_log_enabled() -> bool:
    return _settings.log_as_json


def _is_windows() -> bool:
    return sys.platform == _WINDOWS


def _format(message: str, args: tuple[Any, ...]) -> str:
    return message % args if args else message


def _log_json(stream: IO[str], status: str, message: str) -> None:
    timestamp = datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")
    record = {"time": timestamp, "status": status, "msg": message}
    try:
        line = json.dumps(record, ensure_ascii=False, separators=(",", ":"))
    except (TypeError, ValueError):
        stream.write(f"{message}\n")
        return
    stream.write(f"{line}\n")


def _coerce_status(status: LogStatus | str) -> LogStatus | None:
    try:
        return LogStatus(status)
    except ValueError:
        return None


def status_event(stream: IO[str], status: LogStatus | str, message: str, *args: Any) -> None:
    """Report an event with the given status.

    Prefixes are only used on the process's own stdout and stderr.
    """
    text = _format(message, args)
    known = _coerce_status(status)
    if _settings.log_as_json:
        _log_json(stream, known.value if known else str(status), text)
        return
    if (stream is not sys.stdout and stream is not sys.stderr) or _is_windows():
        stream.write(f"{text}\n")
        return
    prefix = _PREFIXES.get(known, "") if known else ""
    stream.write(f"{prefix}{text}\n")


def _prefixed_event(stream: IO[str], status: LogStatus, message: str, args: tuple[Any, ...]) -> None:
    text = _format(message, args)
    if _settings.log_as_json:
        _log_json(stream, status.value, text)
    elif _is_windows():
        stream.write(f"{text}\n")
    else:
        stream.write(f"{_PREFIXES[status]}{text}\n")


def success_status_event(stream: IO[str], message: str, *args: Any) -> None:
    _prefixed_event(stream, LogStatus.SUCCESS, message, args)


def failure_status_event(stream: IO[str], message: str, *args: Any) -> None:
    _prefixed_event(stream, LogStatus.FAILURE, message, args)


def warning_status_event(stream: IO[str], message: str, *args: Any) -> None:
    _prefixed_event(stream, LogStatus.WARNING, message, args)


def pending_status_event(stream: IO[str], message: str, *args: Any) -> None:
    _prefixed_event(stream, LogStatus.PENDING, message, args)


def info_status_event(stream: IO[str], message: str, *args: Any) -> None:
    _prefixed_event(stream, LogStatus.INFO, message, args)


class _Spinner:
    """A terminal spinner animated from a background thread."""

    def __init__(self, stream: IO[str], suffix: str, interval: float = 0.1) -> None:
        self._stream = stream
        self._suffix = suffix
        self._interval = interval
        self._stopped = threading.Event()
        self._thread: threading.Thread | None = None

    def start(self) -> None:
        isatty = getattr(self._stream, "isatty", None)
        if not (callable(isatty) and isatty()):
            return
        self._thread = threading.Thread(target=self._run, daemon=True)
        self._thread.start()

    def _run(self) -> None:
        for frame in itertools.cycle(_SPINNER_FRAMES):
            if self._stopped.is_set():
                break
            self._stream.write(f"\r{_CYAN}{frame}{_RESET}{self._suffix}")
            self._stream.flush()
            self._stopped.wait(self._interval)

    def stop(self) -> None:
        if self._thread is None:
            return
        self._stopped.set()
        self._thread.join()
        self._thread = None
        self._stream.write("\r\x1b[K")
        self._stream.flush()


def spinner(stream: IO[str], message: str, *args: Any) -> Callable[[bool], None]:
    """Show a spinner and return a function that ends it with a result.

    The returned function reports success or failure once; later calls do nothing.
    """
    text = _format(message, args)
    active: _Spinner | None = None

    if _settings.log_as_json:
        _log_json(stream, LogStatus.PENDING.value, text)
    elif _is_windows():
        stream.write(f"{text}\n")
        return lambda result: None
    else:
        active = _Spinner(stream, f"  {text}")
        active.start()

    lock = threading.Lock()
    finished = False

    def finish(result: bool) -> None:
        nonlocal finished
        with lock:
            if finished:
                return
            finished = True
            if active is not None:
                active.stop()
            if result:
                success_status_event(stream, text)
            else:
                failure_status_event(stream, text)

    return finish


@dataclass
class CustomLogWriter:
    """Writer that strips colour codes unless writing to stdout or stderr."""

    stream: IO[Any]

    def write(self, data: str | bytes) -> int:
        is_std = self.stream is sys.stdout or self.stream is sys.stderr
        if not is_std:
            if isinstance(data, bytes):
                data = _ANSI_COLOR_BYTES.sub(b"", data)
            else:
                data = _ANSI_COLOR.sub("", data)
        written = self.stream.write(data)
        if written is not None and written != len(data):
            raise OSError("short write")
        return len(data)