"""Per-client request limiter with a fixed one-hour window."""

import logging
import threading
import time
from dataclasses import dataclass

log = logging.getLogger("palace")

RATE_LIMIT = 20  # requests per window
WINDOW_SECONDS = 3600
UNKNOWN_CLIENT = "unknown"


@dataclass
class RateLimitEntry:
    count: int
    reset_time: float  # epoch seconds


class RateLimiter:
    """Counts requests per identifier; entries live until ``clear()``.

    The window restarts at ``now + window_seconds`` once ``now`` passes the
    stored reset time. Rejected calls do not increment the counter.
    """

    def __init__(self, limit: int = RATE_LIMIT, window_seconds: int = WINDOW_SECONDS):
        self.limit = limit
        self.window_seconds = window_seconds
        self._lock = threading.Lock()
        self._entries: dict[str, RateLimitEntry] = {}

    def allow(self, identifier: str) -> bool:
        now = time.time()
        with self._lock:
            entry = self._entries.get(identifier)
            if entry is None:
                entry = RateLimitEntry(count=0, reset_time=now + self.window_seconds)
                self._entries[identifier] = entry

            if now > entry.reset_time:
                entry.count = 0
                entry.reset_time = now + self.window_seconds

            if entry.count >= self.limit:
                log.info("    rate_limiter: %s over limit (%d/%d)", identifier, entry.count, self.limit)
                return False

            entry.count += 1
            return True

    def get(self, identifier: str) -> RateLimitEntry | None:
        with self._lock:
            entry = self._entries.get(identifier)
            if entry is None:
                return None
            return RateLimitEntry(entry.count, entry.reset_time)

    def clear(self):
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


def client_identifier(headers, remote_addr: str | None) -> str:
    """Pick the bucket key for a request.

    Falls through X-Forwarded-For, X-Real-IP and the socket address; clients
    with none of them share the ``"unknown"`` bucket.
    """
    for header in ("X-Forwarded-For", "X-Real-IP"):
        value = headers.get(header)
        if value:
            return value
    return remote_addr or UNKNOWN_CLIENT
