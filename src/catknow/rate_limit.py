"""Per-identity sliding-window request counter guarding the proxy endpoints."""
from __future__ import annotations
import threading
from dataclasses import dataclass
from typing import Callable, Dict, List

from .errors import RateLimitError
from .utils import now_ms

DEFAULT_LIMIT = 60
DEFAULT_WINDOW_MS = 60_000
DEFAULT_MAX_IDENTITIES = 10_000

@dataclass(frozen=True)
class RateDecision:
    allowed: bool
    limit: int
    remaining: int
    retry_after_ms: int = 0

class RateLimiter:
    def __init__(self, limit: int = DEFAULT_LIMIT, window_ms: int = DEFAULT_WINDOW_MS,
                 *, clock: Callable[[], int] = now_ms, max_identities: int = DEFAULT_MAX_IDENTITIES):
        self.limit = limit
        self.window_ms = window_ms
        self.clock = clock
        self.max_identities = max_identities
        self._windows: Dict[str, List[int]] = {}
        self._lock = threading.Lock()

    def check_and_record(self, identity: str) -> RateDecision:
        """
        Prune timestamps outside the trailing window, then deny if the identity is
        at/over its limit. Allowed checks are recorded; denied ones are not.
        """
        with self._lock:
            now = self.clock()
            if identity not in self._windows and len(self._windows) >= self.max_identities:
                self._sweep(now)
            recent = [t for t in self._windows.get(identity, []) if now - t < self.window_ms]

            if len(recent) >= self.limit:
                self._windows[identity] = recent
                retry_after = self.window_ms - (now - recent[0]) if recent else self.window_ms
                return RateDecision(False, self.limit, 0, max(0, retry_after))

            recent.append(now)
            self._windows[identity] = recent
            return RateDecision(True, self.limit, self.limit - len(recent))

    def _sweep(self, now: int) -> None:
        """Forget identities with no hit inside the window; callers hold the lock."""
        idle = [k for k, hits in self._windows.items() if not hits or now - hits[-1] >= self.window_ms]
        for k in idle:
            del self._windows[k]

    def enforce(self, identity: str) -> RateDecision:
        decision = self.check_and_record(identity)
        if not decision.allowed:
            raise RateLimitError(retry_after_ms=decision.retry_after_ms)
        return decision

    def reset(self) -> None:
        with self._lock:
            self._windows.clear()
