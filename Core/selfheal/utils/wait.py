from __future__ import annotations

import time
from typing import Callable, TypeVar

T = TypeVar("T")


def wait_until(predicate: Callable[[], T | None], timeout: float, interval: float = 0.2) -> T | None:
    """Polls ``predicate`` until it returns a truthy value or ``timeout`` elapses.

    The predicate always runs at least once, and once more at the deadline, so
    a zero timeout still performs a single check.
    """

    deadline = time.monotonic() + timeout
    while True:
        result = predicate()
        if result:
            return result
        remaining = deadline - time.monotonic()
        if remaining <= 0:
            return None
        time.sleep(min(interval, remaining))
