# quiz_app/guard/ratelimit.py
"""
Sliding-window signup limiter.

Attempts are kept per key (``email:<addr>`` and ``ip:<addr>``) in an
``AttemptStore``. The default store is process-local and forgets everything
on restart, so treat the limit as a deterrent, not a guarantee.
"""
from __future__ import annotations
import time
from collections import deque, defaultdict
from dataclasses import dataclass
from typing import Callable, Deque, Dict, List, Optional, Protocol

EMAIL_RATE_LIMIT = "EMAIL_RATE_LIMIT"
IP_RATE_LIMIT = "IP_RATE_LIMIT"

UNKNOWN_IP = "unknown"


class AttemptStore(Protocol):
    def get(self, key: str) -> List[float]: ...
    def append(self, key: str, ts: float) -> None: ...
    def prune(self, older_than: float) -> int: ...


class InMemoryAttemptStore:
    def __init__(self):
        self._buckets: Dict[str, Deque[float]] = defaultdict(deque)

    def get(self, key: str) -> List[float]:
        q = self._buckets.get(key)
        return list(q) if q else []

    def append(self, key: str, ts: float) -> None:
        self._buckets[key].append(ts)

    def prune(self, older_than: float) -> int:
        """Drop timestamps <= older_than; delete keys left empty. Returns keys removed."""
        removed = 0
        for key in list(self._buckets):
            q = self._buckets[key]
            while q and q[0] <= older_than:
                q.popleft()
            if not q:
                del self._buckets[key]
                removed += 1
        return removed

    def keys(self) -> List[str]:
        return list(self._buckets)


@dataclass
class RateLimitDecision:
    allowed: bool
    reason: Optional[str] = None


def email_key(email: str) -> str:
    return f"email:{email}"

def ip_key(ip: str) -> str:
    return f"ip:{ip}"

def _has_ip(ip: Optional[str]) -> bool:
    return bool(ip) and ip != UNKNOWN_IP


class SignupRateLimiter:
    def __init__(
        self,
        store: Optional[AttemptStore] = None,
        *,
        window_sec: int = 15 * 60,
        max_per_email: int = 3,
        max_per_ip: int = 6,
        prune_interval_sec: int = 5 * 60,
        time_fn: Callable[[], float] = time.time,
    ):
        self.store = store if store is not None else InMemoryAttemptStore()
        self.window_sec = window_sec
        self.max_per_email = max_per_email
        self.max_per_ip = max_per_ip
        self.prune_interval_sec = prune_interval_sec
        self.time_fn = time_fn
        self._last_prune = self.time_fn()

    def _recent(self, key: str, now: float) -> int:
        return sum(1 for t in self.store.get(key) if now - t < self.window_sec)

    def _maybe_prune(self, now: float) -> None:
        if now - self._last_prune >= self.prune_interval_sec:
            self.store.prune(now - self.window_sec)
            self._last_prune = now

    def check(self, email: str, ip: Optional[str] = None) -> RateLimitDecision:
        now = self.time_fn()
        self._maybe_prune(now)

        if self._recent(email_key(email), now) >= self.max_per_email:
            return RateLimitDecision(False, EMAIL_RATE_LIMIT)
        if _has_ip(ip) and self._recent(ip_key(ip), now) >= self.max_per_ip:
            return RateLimitDecision(False, IP_RATE_LIMIT)
        return RateLimitDecision(True)

    def record(self, email: str, ip: Optional[str] = None) -> None:
        now = self.time_fn()
        self.store.append(email_key(email), now)
        if _has_ip(ip):
            self.store.append(ip_key(ip), now)
