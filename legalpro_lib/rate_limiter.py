from collections import defaultdict, deque
from datetime import datetime, timedelta
from threading import Lock
from typing import Deque, Dict, Optional


class RateLimiter:
    def __init__(self, max_requests: int = 100, window: timedelta = timedelta(hours=1)):
        self.MAX_REQUESTS = max_requests  # per key per window
        self.window = window
        self.limits: Dict[str, Deque[datetime]] = defaultdict(deque)
        self._lock = Lock()

    def check_limit(self, key: str, now: Optional[datetime] = None) -> bool:
        """Record a request for key and return False once it is over the limit"""
        now = now or datetime.now()
        with self._lock:
            hits = self.limits[key]
            while hits and now - hits[0] >= self.window:
                hits.popleft()
            if len(hits) >= self.MAX_REQUESTS:
                return False
            hits.append(now)
            return True

    def reset(self) -> None:
        with self._lock:
            self.limits.clear()
