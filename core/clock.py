"""
core/clock.py -- Epoch-millisecond time source.

Code expiry timestamps are stored as integer epoch milliseconds. Services take
a zero-argument callable returning "now" in that unit so tests can move time
forward without sleeping.
"""

import time
from typing import Callable

Clock = Callable[[], int]


def now_ms() -> int:
    """Return the current UTC time as integer epoch milliseconds."""
    return int(time.time() * 1000)
