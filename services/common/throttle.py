"""
Simple process-wide throttler for calls to council websites.
"""

import os
import random
import threading
import time

_lock = threading.Lock()
_last_call: dict[str, float] = {}


def throttle(key: str, min_seconds: float = 0.5, max_seconds: float = 1.0) -> None:
    """
    Enforce a minimum delay between calls sharing the same key.
    """
    if os.getenv("THROTTLE_DISABLED") == "1":
        return
    delay = random.uniform(min_seconds, max_seconds)
    now = time.monotonic()
    with _lock:
        wait_for = (_last_call.get(key, 0.0) + delay) - now
        if wait_for > 0:
            time.sleep(wait_for)
            now = time.monotonic()
        _last_call[key] = now
