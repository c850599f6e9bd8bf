"""Removal of the deprecated local run-data file."""

from __future__ import annotations

import tempfile
import time
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path

from filelock import FileLock, Timeout

RUN_DATA_FILE = "dapr-run-data.ldj"
RUN_DATA_LOCK_FILE = "dapr-run-data.lock"

_LOCK_ATTEMPTS = 10
_LOCK_RETRY_DELAY = 0.05


class RunDataLockError(RuntimeError):
    """The run-data lock could not be taken."""


@dataclass
class RunData:
    """A record of one sidecar run."""

    dapr_run_id: str
    dapr_http_port: int
    dapr_grpc_port: int
    app_id: str
    app_port: int
    command: str
    created: datetime
    pid: int


@contextmanager
def _run_data_lock(directory: Path) -> Iterator[None]:
    lock = FileLock(str(directory / RUN_DATA_LOCK_FILE))
    last_error: Timeout | None = None
    for _ in range(_LOCK_ATTEMPTS):
        try:
            lock.acquire(timeout=0)
            break
        except Timeout as exc:
            last_error = exc
            time.sleep(_LOCK_RETRY_DELAY)
    else:
        raise RunDataLockError(f"could not lock {directory / RUN_DATA_LOCK_FILE}") from last_error
    try:
        yield
    finally:
        lock.release()


def delete_run_data_file(temp_dir: str | Path | None = None) -> None:
    """Delete the run-data file from the temporary directory under its lock.

    Raises FileNotFoundError if there is no such file.
    """
    directory = Path(temp_dir) if temp_dir is not None else Path(tempfile.gettempdir())
    with _run_data_lock(directory):
        (directory / RUN_DATA_FILE).unlink()