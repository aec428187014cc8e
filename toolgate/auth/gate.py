"""Auth gate: turns a raw credential into a client identity or a rejection."""

import asyncio
import re
import threading
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Callable

import structlog
from cachetools import TTLCache

from toolgate.config import Settings
from toolgate.ratelimit.exceptions import RateLimitExceededError
from toolgate.ratelimit.models import AUTH_SCOPE

from .exceptions import (
    CredentialError,
    ExpiredTokenError,
    InternalError,
    InvalidTokenError,
    RevokedCredentialError,
    UnauthorizedError,
    UnknownCredentialError,
)
from .models import ClientIdentity, CredentialState
from .store import CredentialStore, credential_digest

if TYPE_CHECKING:
    from toolgate.ratelimit.limiter import RateLimiter

logger = structlog.get_logger("auth")

MIN_CREDENTIAL_LENGTH = 8
MAX_CREDENTIAL_LENGTH = 4096
# Printable ASCII without whitespace
_CREDENTIAL_RE = re.compile(r"^[\x21-\x7e]+$")


def is_well_formed(credential: object) -> bool:
    """Structural check run before any store lookup."""
    return (
        isinstance(credential, str)
        and MIN_CREDENTIAL_LENGTH <= len(credential) <= MAX_CREDENTIAL_LENGTH
        and _CREDENTIAL_RE.match(credential) is not None
    )


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class AuthGate:
    """Authenticates callers.

    Every failure, whatever the reason, reaches the caller as the same
    ``UnauthorizedError``; the reason is only logged. Failures are counted
    per caller source in a dedicated rate-limit scope. Each attempt reserves
    a unit of that scope before the lookup and only a rejection keeps it, so
    a source that exhausts it is refused before its credential is even
    looked at.
    """

    def __init__(
        self,
        store: CredentialStore,
        limiter: "RateLimiter",
        lookup_timeout: float = 2.0,
        cache_ttl: int = 0,
        now: Callable[[], datetime] = _utcnow,
    ):
        """Initialize the gate.

        Args:
            store: Credential store collaborator.
            limiter: Rate limiter holding the auth-failure scope.
            lookup_timeout: Seconds to wait on the store.
            cache_ttl: Seconds to cache resolved identities (0 disables).
            now: Clock used for expiry checks.
        """
        self.store = store
        self.limiter = limiter
        self.lookup_timeout = lookup_timeout
        self._now = now
        self._cache: TTLCache[str, ClientIdentity] | None = None
        self._cache_lock = threading.Lock()
        if cache_ttl > 0:
            self._cache = TTLCache(maxsize=10_000, ttl=cache_ttl)

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        store: CredentialStore,
        limiter: "RateLimiter",
    ) -> "AuthGate":
        return cls(
            store=store,
            limiter=limiter,
            lookup_timeout=settings.CREDENTIAL_LOOKUP_TIMEOUT_SECONDS,
            cache_ttl=settings.AUTH_CACHE_TTL_SECONDS,
        )

    async def authenticate(self, credential: str | None, source: str = "unknown") -> ClientIdentity:
        """Validate a credential and resolve the client behind it.

        Args:
            credential: Raw credential from the caller (may be missing).
            source: Caller address, used to key the auth-failure budget.

        Returns:
            The authenticated ClientIdentity.

        Raises:
            UnauthorizedError: For any invalid credential.
            RateLimitExceededError: If the source has too many recent failures.
            InternalError: If the credential store fails or times out.
        """
        reservation = self.limiter.reserve_auth_attempt(source)
        if not reservation.allowed:
            logger.warning("auth_throttled", source=source, retry_after=reservation.retry_after)
            raise RateLimitExceededError(
                limit=reservation.limit,
                retry_after=reservation.retry_after,
                scope=AUTH_SCOPE,
            )

        # The reserved unit is kept only when the credential is rejected.
        rejected = False
        try:
            identity = await self._resolve(credential)
        except CredentialError as e:
            rejected = True
            logger.info("auth_rejected", source=source, state=e.state, reason=e.message)
            raise UnauthorizedError() from None
        finally:
            if not rejected:
                self.limiter.release_auth_attempt(source, reservation)

        logger.debug("auth_accepted", client_id=identity.client_id, source=source)
        return identity

    async def _resolve(self, credential: str | None) -> ClientIdentity:
        if not is_well_formed(credential):
            raise InvalidTokenError("credential failed structural checks")

        digest = credential_digest(credential)
        identity = self._cached(digest)
        fresh = identity is None
        if fresh:
            identity = await self._lookup(credential)
            if identity is None:
                raise UnknownCredentialError("credential not recognised")

        state = identity.credential_state(self._now())
        if state == CredentialState.expired:
            self._evict(digest)
            raise ExpiredTokenError("credential has expired")
        if state == CredentialState.revoked:
            self._evict(digest)
            raise RevokedCredentialError("credential has been revoked")

        if fresh:
            self._remember(digest, identity)
        return identity

    async def _lookup(self, credential: str) -> ClientIdentity | None:
        try:
            return await asyncio.wait_for(self.store.lookup(credential), timeout=self.lookup_timeout)
        except CredentialError:
            raise
        except asyncio.TimeoutError:
            logger.error("credential_lookup_timeout", timeout=self.lookup_timeout)
            raise InternalError()
        except Exception:
            logger.exception("credential_lookup_failed")
            raise InternalError()

    def _cached(self, digest: str) -> ClientIdentity | None:
        if self._cache is None:
            return None
        with self._cache_lock:
            return self._cache.get(digest)

    def _remember(self, digest: str, identity: ClientIdentity) -> None:
        if self._cache is None:
            return
        with self._cache_lock:
            self._cache[digest] = identity

    def _evict(self, digest: str) -> None:
        if self._cache is None:
            return
        with self._cache_lock:
            self._cache.pop(digest, None)
