"""Process and rendering metrics read from /proc and the swap log."""

from __future__ import annotations

import os
import re
from enum import IntEnum

_SWAPLOG_PATH = "/tmp/swaplog"
_FPS_MARKER = b"apfs_64:"
_LINE_LIMIT = 1000
_LEADING_INT = re.compile(rb"[ \t\n\x0b\f\r]*([+-]?[0-9]+)")


class ProcStatMetric(IntEnum):
    """Field positions in ``/proc/<pid>/stat``."""

    UTIME = 13
    STIME = 14
    THREAD_COUNT = 19
    VSIZE = 22
    RSS = 23


def _to_int(text: str) -> int:
    try:
        return int(text)
    except ValueError:
        return 0


def read_proc_stat(metric: ProcStatMetric, pid: int | None = None) -> int:
    """Read one numeric field from a process's stat file (the current process by default).

    Raises ``OSError`` when the file cannot be read and ``ValueError`` when the
    field is missing; a field that is not a number reads as 0.
    """
    if pid is None:
        pid = os.getpid()
    with open(f"/proc/{pid}/stat", encoding="ascii", errors="replace") as handle:
        entries = handle.readline().split(" ")
    index = int(metric)
    if index >= len(entries):
        raise ValueError(f"stat line has no field {index}")
    return _to_int(entries[index])


def thread_count(pid: int | None = None) -> int:
    """Number of threads of a process (the current process by default)."""
    return read_proc_stat(ProcStatMetric.THREAD_COUNT, pid)


def parse_swaplog_fps(data: bytes) -> int | None:
    """Extract the ``apfs_64:`` frame rate from the third line from the end of a swap log.

    Only the last 1000 bytes of that line are examined. Returns ``None`` when the
    marker is absent; a marker without a number reads as 0.
    """
    segments = bytes(data).split(b"\n")
    line = segments[max(len(segments) - 3, 0)][-_LINE_LIMIT:]
    position = line.find(_FPS_MARKER)
    if position < 0:
        return None
    match = _LEADING_INT.match(line, position + len(_FPS_MARKER))
    return int(match.group(1)) if match else 0


def swaplog_fps(path: str | os.PathLike[str] = _SWAPLOG_PATH) -> int | None:
    """Read the frame rate from a swap log file; raises ``OSError`` if it cannot be read."""
    with open(path, "rb") as handle:
        return parse_swaplog_fps(handle.read())