"""Counter stores holding fixed rate windows.

A store owns every window and is the only thing that mutates counts. The
in-memory store gives each key its own lock, so calls on the same key are
serialized while calls on different keys never contend. A distributed
deployment would implement the same interface on top of an atomic
increment store.
"""

import math
import threading
from abc import ABC, abstractmethod
from contextlib import ExitStack
from typing import Sequence

from .models import RateLimitResult, ScopeBudget


class RateWindow:
    """Fixed counting window for one (client, scope) key.

    ``start`` is always a multiple of ``size`` and only ever moves forward.
    """

    __slots__ = ("key", "size", "limit", "start", "count", "last_seen", "evicted", "lock")

    def __init__(self, key: str, size: int, limit: int, now: float):
        self.key = key
        self.size = size
        self.limit = limit
        self.start = self.boundary(now)
        self.count = 0
        self.last_seen = now
        self.evicted = False
        self.lock = threading.Lock()

    def boundary(self, now: float) -> float:
        return math.floor(now / self.size) * self.size

    def roll(self, now: float) -> None:
        """Advance to the window containing ``now``; a boundary instant opens the new window."""
        start = self.boundary(now)
        if start > self.start:
            self.start = start
            self.count = 0

    @property
    def reset_at(self) -> float:
        return self.start + self.size

    def retry_after(self, now: float) -> float:
        return max(self.reset_at - now, 0.0)


class CounterStore(ABC):
    """Storage contract for rate windows."""

    @abstractmethod
    def consume(self, budgets: Sequence[ScopeBudget], cost: int, now: float) -> RateLimitResult:
        """Atomically check every budget and, only if all pass, charge ``cost`` to each."""

    @abstractmethod
    def peek(self, budget: ScopeBudget, now: float) -> RateLimitResult:
        """Report whether ``budget`` has room left without consuming anything."""

    @abstractmethod
    def refund(self, budget: ScopeBudget, cost: int, reset_at: int, now: float) -> None:
        """Return ``cost`` units to ``budget`` if its window ending at ``reset_at`` is still current."""

    @abstractmethod
    def sweep(self, now: float, idle_seconds: float) -> int:
        """Evict closed windows idle longer than ``idle_seconds``. Returns the number evicted."""


class InMemoryCounterStore(CounterStore):
    """Single-process store with per-key locks."""

    def __init__(self):
        self._windows: dict[str, RateWindow] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._windows)

    def __contains__(self, key: str) -> bool:
        return key in self._windows

    def _window(self, budget: ScopeBudget, now: float) -> RateWindow:
        with self._lock:
            window = self._windows.get(budget.key)
            if window is None:
                window = RateWindow(budget.key, budget.window_seconds, budget.limit, now)
                self._windows[budget.key] = window
            return window

    def consume(self, budgets: Sequence[ScopeBudget], cost: int, now: float) -> RateLimitResult:
        if not budgets:
            raise ValueError("at least one budget is required")
        if len({budget.key for budget in budgets}) != len(budgets):
            raise ValueError("budget keys must be distinct")

        while True:
            windows = [self._window(budget, now) for budget in budgets]
            # Lock in key order so overlapping calls cannot deadlock.
            with ExitStack() as stack:
                for window in sorted(windows, key=lambda w: w.key):
                    stack.enter_context(window.lock)
                if any(window.evicted for window in windows):
                    # Lost a race with the sweep; fetch fresh windows.
                    continue
                return self._check_then_commit(budgets, windows, cost, now)

    def _check_then_commit(
        self,
        budgets: Sequence[ScopeBudget],
        windows: list[RateWindow],
        cost: int,
        now: float,
    ) -> RateLimitResult:
        denied: list[tuple[ScopeBudget, RateWindow]] = []
        for budget, window in zip(budgets, windows):
            window.limit = budget.limit
            window.roll(now)
            if window.count + cost > window.limit:
                denied.append((budget, window))

        if denied:
            # Report the scope that stays exhausted longest.
            budget, window = max(denied, key=lambda item: item[1].retry_after(now))
            return RateLimitResult(
                allowed=False,
                limit=window.limit,
                remaining=max(window.limit - window.count, 0),
                reset_at=int(math.ceil(window.reset_at)),
                retry_after=window.retry_after(now),
                scope=budget.scope,
            )

        for window in windows:
            window.count += cost
            window.last_seen = now

        budget, window = min(
            zip(budgets, windows), key=lambda item: item[1].limit - item[1].count
        )
        return RateLimitResult(
            allowed=True,
            limit=window.limit,
            remaining=window.limit - window.count,
            reset_at=int(math.ceil(window.reset_at)),
            scope=budget.scope,
        )

    def peek(self, budget: ScopeBudget, now: float) -> RateLimitResult:
        with self._lock:
            window = self._windows.get(budget.key)
        if window is None:
            return RateLimitResult(
                allowed=True,
                limit=budget.limit,
                remaining=budget.limit,
                reset_at=0,
                scope=budget.scope,
            )
        with window.lock:
            window.limit = budget.limit
            window.roll(now)
            remaining = max(window.limit - window.count, 0)
            return RateLimitResult(
                allowed=remaining > 0,
                limit=window.limit,
                remaining=remaining,
                reset_at=int(math.ceil(window.reset_at)),
                retry_after=0.0 if remaining > 0 else window.retry_after(now),
                scope=budget.scope,
            )

    def refund(self, budget: ScopeBudget, cost: int, reset_at: int, now: float) -> None:
        with self._lock:
            window = self._windows.get(budget.key)
        if window is None:
            return
        with window.lock:
            window.roll(now)
            if window.evicted or int(math.ceil(window.reset_at)) != reset_at:
                return
            window.count = max(window.count - cost, 0)

    def sweep(self, now: float, idle_seconds: float) -> int:
        cutoff = now - idle_seconds

        def expired(window: RateWindow) -> bool:
            # An exhausted window must survive until it closes, however idle.
            return window.last_seen < cutoff and window.reset_at <= now

        with self._lock:
            candidates = [key for key, window in self._windows.items() if expired(window)]

        evicted = 0
        for key in candidates:
            with self._lock:
                window = self._windows.get(key)
                if window is None:
                    continue
                # Never wait on a window that a live call is using.
                if not window.lock.acquire(blocking=False):
                    continue
                try:
                    if expired(window):
                        window.evicted = True
                        del self._windows[key]
                        evicted += 1
                finally:
                    window.lock.release()
        return evicted
