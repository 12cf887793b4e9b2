"""
Blob path derivation.

Every uploaded file lands at:

    {owner_id}/{schedule_id}/{timestamp_ms}_{sanitized_file_name}

Owner and schedule namespace the path, the millisecond timestamp keeps two
uploads of the same file name apart.
"""

import re
import time
from typing import Callable, Optional


_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9.-]")


def sanitize_file_name(file_name: str) -> str:
    """
    Replace every character outside [A-Za-z0-9.-] with an underscore.

    Idempotent: underscores are themselves replaced by underscores.
    """
    return _UNSAFE_CHARS.sub("_", file_name)


def schedule_prefix(owner_id: str, schedule_id: str) -> str:
    """The path prefix all blobs of one schedule share."""
    return f"{owner_id}/{schedule_id}/"


def build_blob_path(
    owner_id: str,
    schedule_id: str,
    timestamp_ms: int,
    file_name: str,
) -> str:
    if not owner_id or not schedule_id:
        raise ValueError("owner_id and schedule_id are required to build a blob path")
    if not file_name:
        raise ValueError("file_name is required to build a blob path")

    sanitized = sanitize_file_name(file_name)
    return f"{schedule_prefix(owner_id, schedule_id)}{timestamp_ms}_{sanitized}"


class MillisecondClock:
    """
    Epoch-millisecond timestamps that never repeat within a process.

    If two paths are requested in the same millisecond (or the wall clock
    steps backwards) the second one gets last + 1. There is one instance
    per application, created at startup. The event loop is single threaded,
    so the read-compare-store below needs no lock.
    """

    def __init__(self, time_source: Optional[Callable[[], float]] = None) -> None:
        self._time_source = time_source or time.time
        self._last = 0

    def next_timestamp(self) -> int:
        now_ms = int(self._time_source() * 1000)
        if now_ms <= self._last:
            now_ms = self._last + 1
        self._last = now_ms
        return now_ms
