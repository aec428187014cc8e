"""Fixed-window rate limiter over a pluggable counter store."""

import asyncio
import time
from typing import Callable

import structlog

from toolgate.auth.models import ClientIdentity
from toolgate.registry.models import Tool

from .models import AUTH_SCOPE, GLOBAL_SCOPE, RateLimitConfig, RateLimitResult, ScopeBudget
from .store import CounterStore, InMemoryCounterStore

logger = structlog.get_logger("ratelimit")


class RateLimiter:
    """Multi-scope rate limiter.

    Every invocation is counted against two windows: the client's global
    window and the client's window for the tool being called. Both must have
    room for the tool's cost, otherwise nothing is consumed. Authentication
    failures are counted separately per caller source.
    """

    def __init__(
        self,
        config: RateLimitConfig | None = None,
        store: CounterStore | None = None,
        clock: Callable[[], float] = time.time,
    ):
        """Initialize rate limiter.

        Args:
            config: Budgets and window sizes. Uses defaults if not provided.
            store: Counter store. In-memory if not provided.
            clock: Wall-clock source in Unix seconds.
        """
        self.config = config or RateLimitConfig()
        self.store = store or InMemoryCounterStore()
        self._clock = clock

    def _global_budget(self, client_id: str, limit: int | None) -> ScopeBudget:
        return ScopeBudget(
            key=f"client:{client_id}:global",
            scope=GLOBAL_SCOPE,
            limit=limit or self.config.global_limit,
            window_seconds=self.config.window_seconds,
        )

    def _tool_budget(self, client_id: str, tool_name: str, limit: int | None) -> ScopeBudget:
        return ScopeBudget(
            key=f"client:{client_id}:tool:{tool_name}",
            scope=tool_name,
            limit=limit or self.config.tool_limit,
            window_seconds=self.config.window_seconds,
        )

    def _auth_budget(self, source: str) -> ScopeBudget:
        return ScopeBudget(
            key=f"source:{source}:{AUTH_SCOPE}",
            scope=AUTH_SCOPE,
            limit=self.config.auth_failure_limit,
            window_seconds=self.config.auth_failure_window_seconds,
        )

    def check_and_consume(
        self,
        client_id: str,
        tool_name: str,
        cost: int = 1,
        global_limit: int | None = None,
        tool_limit: int | None = None,
    ) -> RateLimitResult:
        """Check both scopes for a client and charge ``cost`` only if both pass.

        Args:
            client_id: Client identifier.
            tool_name: Tool being invoked.
            cost: Units the invocation consumes.
            global_limit: Client's global budget (config default if None).
            tool_limit: Budget for this client and tool (config default if None).

        Returns:
            RateLimitResult; when denied, ``retry_after`` is the longest wait
            among the exhausted scopes.
        """
        if cost < 1:
            raise ValueError("cost must be a positive integer")
        budgets = [
            self._global_budget(client_id, global_limit),
            self._tool_budget(client_id, tool_name, tool_limit),
        ]
        return self.store.consume(budgets, cost, self._clock())

    def check_invocation(self, client: ClientIdentity, tool: Tool) -> RateLimitResult:
        """Resolve budgets for a client/tool pair and check them.

        The per-tool budget is the client's override for the tool, else the
        tool's own default, else the configured default.
        """
        tool_limit = client.budget_for_tool(tool.name) or tool.rate_limit
        return self.check_and_consume(
            client.client_id,
            tool.name,
            cost=tool.cost,
            global_limit=client.rate_limit,
            tool_limit=tool_limit,
        )

    def check_auth_allowed(self, source: str) -> RateLimitResult:
        """Whether ``source`` may attempt authentication. Consumes nothing."""
        return self.store.peek(self._auth_budget(source), self._clock())

    def reserve_auth_attempt(self, source: str) -> RateLimitResult:
        """Charge one authentication attempt to ``source`` before the credential is checked.

        Concurrent attempts each take their own unit, so no more than the
        failure budget can reach the credential store at once. A successful
        attempt hands its unit back through ``release_auth_attempt``.
        """
        return self.store.consume([self._auth_budget(source)], 1, self._clock())

    def release_auth_attempt(self, source: str, reservation: RateLimitResult) -> None:
        """Refund a reserved attempt that turned out not to be a failure."""
        self.store.refund(self._auth_budget(source), 1, reservation.reset_at, self._clock())

    def sweep(self) -> int:
        """Evict idle windows."""
        evicted = self.store.sweep(self._clock(), self.config.idle_seconds)
        if evicted:
            logger.debug("rate_windows_evicted", count=evicted)
        return evicted


async def run_sweeper(limiter: RateLimiter, interval_seconds: float) -> None:
    """Periodically evict idle windows until cancelled."""
    while True:
        await asyncio.sleep(interval_seconds)
        try:
            await asyncio.to_thread(limiter.sweep)
        except Exception:
            logger.exception("rate_window_sweep_failed")
