from __future__ import annotations

import time
import uuid
from threading import Lock


def now_ms() -> int:
    """Wall-clock time in integer milliseconds."""
    return int(time.time() * 1000)


def new_task_id() -> str:
    return uuid.uuid4().hex


# PUBLIC_INTERFACE
class MonotonicClock:
    """
    Millisecond clock whose readings never repeat or go backwards.

    Each call returns max(wall clock, previous reading + 1). Used to stamp
    last_updated on local mutations, so two edits made within the same
    millisecond still order correctly under last-write-wins.
    """

    def __init__(self) -> None:
        self._lock = Lock()
        self._last = 0

    def __call__(self) -> int:
        with self._lock:
            self._last = max(now_ms(), self._last + 1)
            return self._last
