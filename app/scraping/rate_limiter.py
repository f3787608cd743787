"""
Host-aware request throttling shared by concurrent fetch threads.
"""

from __future__ import annotations

import threading
import time
from urllib.parse import urlparse


class DomainRateLimiter:
    """
    Spaces out requests to the same host by a minimum interval.

    Each caller reserves its slot under the lock and sleeps outside it, so
    requests to different hosts never wait on each other.
    """

    def __init__(self, *, rate_limit_per_second: float) -> None:
        self._min_interval = 1.0 / max(0.1, rate_limit_per_second)
        self._next_slot_by_host: dict[str, float] = {}
        self._lock = threading.Lock()

    def wait(self, url: str) -> float:
        """
        Block until `url`'s host may be requested again. Returns seconds slept.
        """

        parsed = urlparse(url)
        host = parsed.netloc.lower() or parsed.path.lower()
        if not host:
            return 0.0

        with self._lock:
            now = time.monotonic()
            slot = max(now, self._next_slot_by_host.get(host, 0.0))
            self._next_slot_by_host[host] = slot + self._min_interval

        delay = slot - now
        if delay > 0:
            time.sleep(delay)
        return max(0.0, delay)
