from __future__ import annotations

import time
from typing import Callable


def poll_until(
    predicate: Callable[[], bool],
    timeout_ms: int,
    interval_ms: int,
    sleep: Callable[[float], None] = time.sleep,
    clock: Callable[[], float] = time.monotonic,
) -> bool:
    """
    Re-check `predicate` every `interval_ms` until it holds or `timeout_ms` elapses.

    Returns True on success and False on timeout. "Not yet" is a normal
    result here, not an exception.
    """
    deadline = clock() + timeout_ms / 1000.0
    while clock() < deadline:
        sleep(interval_ms / 1000.0)
        if predicate():
            return True
    return False
