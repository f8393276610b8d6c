"""Per-client daily scan limits."""

import threading
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Protocol

from lumenclew.models import RateLimitState


@dataclass(frozen=True)
class RateLimitDecision:
    allowed: bool
    state: RateLimitState


class RateLimiter(Protocol):
    def check_and_consume(self, client_ip: str) -> RateLimitDecision:
        ...

    def peek(self, client_ip: str) -> RateLimitState:
        ...


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _next_reset(now: datetime) -> datetime:
    midnight = now.replace(hour=0, minute=0, second=0, microsecond=0)
    return midnight + timedelta(days=1)


class InMemoryRateLimiter:
    """Counts scans per client IP; counters reset at the next UTC midnight.

    Nothing is persisted, so limits only hold for the lifetime of the process.
    """

    def __init__(self, max_scans_per_day: int, clock: Callable[[], datetime] = _utc_now):
        self.max_scans_per_day = max_scans_per_day
        self.clock = clock
        self._counts: dict[str, tuple[datetime, int]] = {}
        self._lock = threading.Lock()

    def _current(self, client_ip: str, now: datetime) -> tuple[datetime, int]:
        reset_at, count = self._counts.get(client_ip, (_next_reset(now), 0))
        if now >= reset_at:
            return _next_reset(now), 0
        return reset_at, count

    def _state(self, reset_at: datetime, count: int) -> RateLimitState:
        remaining = max(self.max_scans_per_day - count, 0)
        return RateLimitState(
            scans_today=count,
            max_scans_per_day=self.max_scans_per_day,
            reset_time=reset_at.isoformat(),
            remaining=remaining,
            can_scan=remaining > 0,
        )

    def peek(self, client_ip: str) -> RateLimitState:
        with self._lock:
            return self._state(*self._current(client_ip, self.clock()))

    def _prune(self, now: datetime) -> None:
        expired = [ip for ip, (reset_at, _) in self._counts.items() if now >= reset_at]
        for ip in expired:
            del self._counts[ip]

    def check_and_consume(self, client_ip: str) -> RateLimitDecision:
        with self._lock:
            now = self.clock()
            self._prune(now)
            reset_at, count = self._current(client_ip, now)
            if count >= self.max_scans_per_day:
                return RateLimitDecision(False, self._state(reset_at, count))
            count += 1
            self._counts[client_ip] = (reset_at, count)
            return RateLimitDecision(True, self._state(reset_at, count))
