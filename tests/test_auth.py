"""Unit tests for authentication."""

import asyncio
import hmac
import time
from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock, patch

import pytest

from toolgate.auth.dependencies import get_credential_from_header, require_admin
from toolgate.auth.exceptions import (
    AuthorizationError,
    ExpiredTokenError,
    InternalError,
    InvalidTokenError,
    UnauthorizedError,
)
from toolgate.auth.gate import AuthGate, is_well_formed
from toolgate.auth.models import ClientIdentity, CredentialState
from toolgate.auth.policy import PolicyConfig, RolePolicy
from toolgate.auth.store import (
    ChainedCredentialStore,
    ClientConfig,
    JWTCredentialStore,
    StaticCredentialStore,
    credential_digest,
    load_clients,
)
from toolgate.auth.utils import JWTRules, create_test_jwt, decode_jwt
from toolgate.config import Settings
from toolgate.ratelimit.exceptions import RateLimitExceededError
from toolgate.ratelimit.limiter import RateLimiter
from toolgate.ratelimit.models import AUTH_SCOPE, RateLimitConfig

from conftest import (
    ADMIN_KEY,
    EXPIRED_KEY,
    REPO_ROOT,
    REVOKED_KEY,
    SUPPORT_KEY,
    FakeClock,
    make_clients,
)


@pytest.fixture
def jwt_settings() -> Settings:
    return Settings(
        JWT_ENABLED=True,
        JWT_SECRET_KEY="unit-test-secret",
        JWT_ISSUER="toolgate-tests",
        JWT_AUDIENCE="toolgate",
    )


@pytest.fixture
def limiter() -> RateLimiter:
    return RateLimiter(RateLimitConfig(auth_failure_limit=3), clock=FakeClock())


@pytest.fixture
def gate(limiter) -> AuthGate:
    return AuthGate(StaticCredentialStore(make_clients()), limiter)


class TestWellFormed:
    """Tests for the structural credential check."""

    @pytest.mark.parametrize("credential", [None, "", "short", "has space inside", "x" * 5000, 12345678])
    def test_rejects(self, credential):
        assert not is_well_formed(credential)

    def test_accepts_printable_token(self):
        assert is_well_formed("abc.DEF-123_xyz")


class TestClientIdentity:
    """Tests for ClientIdentity."""

    def test_wildcard_grants_everything(self):
        client = ClientIdentity(client_id="c", allowed_tools={"*"})

        assert client.can_use_tool("anything")

    def test_explicit_permissions(self):
        client = ClientIdentity(client_id="c", allowed_tools={"a"})

        assert client.can_use_tool("a")
        assert not client.can_use_tool("b")

    def test_credential_state(self):
        now = datetime(2030, 1, 1, tzinfo=timezone.utc)

        assert ClientIdentity(client_id="c").credential_state(now) == CredentialState.valid
        assert (
            ClientIdentity(client_id="c", revoked=True).credential_state(now)
            == CredentialState.revoked
        )
        assert (
            ClientIdentity(client_id="c", expires_at=now).credential_state(now)
            == CredentialState.expired
        )

    def test_naive_expiry_treated_as_utc(self):
        client = ClientIdentity(client_id="c", expires_at=datetime(2030, 1, 1))

        assert client.expires_at.tzinfo == timezone.utc


class TestStaticCredentialStore:
    """Tests for API-key lookups."""

    @pytest.mark.asyncio
    async def test_lookup(self):
        store = StaticCredentialStore(make_clients())

        identity = await store.lookup(SUPPORT_KEY)

        assert identity.client_id == "support-bot"
        assert await store.lookup("not-a-real-key") is None

    @pytest.mark.asyncio
    async def test_hashed_key(self):
        store = StaticCredentialStore(
            [ClientConfig(client_id="h", api_key_sha256=credential_digest("hashed-key-001").upper())]
        )

        assert (await store.lookup("hashed-key-001")).client_id == "h"

    @pytest.mark.asyncio
    async def test_lookup_compares_every_key_in_constant_time(self):
        store = StaticCredentialStore(make_clients())

        with patch("toolgate.auth.store.hmac.compare_digest", wraps=hmac.compare_digest) as compare:
            assert await store.lookup("not-a-real-key") is None
            assert compare.call_count == len(store._identities)

            compare.reset_mock()
            assert (await store.lookup(SUPPORT_KEY)).client_id == "support-bot"
            assert compare.call_count == len(store._identities)

    def test_client_needs_a_key(self):
        with pytest.raises(ValueError):
            ClientConfig(client_id="nokey")

    def test_duplicate_key_rejected(self):
        with pytest.raises(ValueError):
            StaticCredentialStore(
                [
                    ClientConfig(client_id="a", api_key="same-key-0001"),
                    ClientConfig(client_id="b", api_key="same-key-0001"),
                ]
            )

    def test_bundled_clients_load(self):
        config = load_clients(str(REPO_ROOT / "config" / "clients.yaml"))

        assert {c.client_id for c in config.clients} >= {"support-bot", "ops-admin"}


class TestJWTCredentialStore:
    """Tests for bearer JWT lookups."""

    @pytest.mark.asyncio
    async def test_valid_token_maps_roles(self, jwt_settings):
        policy = PolicyConfig(roles={"support": RolePolicy(allowed_tools=["check_order"], rate_limit=30)})
        store = JWTCredentialStore(jwt_settings, policy=policy)
        token = create_test_jwt("user-1", jwt_settings, roles=["support"])

        identity = await store.lookup(token)

        assert identity.client_id == "user-1"
        assert identity.allowed_tools == frozenset({"check_order"})
        assert identity.rate_limit == 30
        assert identity.expires_at is not None

    @pytest.mark.asyncio
    async def test_non_jwt_is_not_recognised(self, jwt_settings):
        store = JWTCredentialStore(jwt_settings, policy=PolicyConfig())

        assert await store.lookup(SUPPORT_KEY) is None

    @pytest.mark.asyncio
    async def test_expired_token(self, jwt_settings):
        store = JWTCredentialStore(jwt_settings, policy=PolicyConfig())
        token = create_test_jwt("user-1", jwt_settings, expire_minutes=-10)

        with pytest.raises(ExpiredTokenError):
            await store.lookup(token)

    def test_bad_signature(self, jwt_settings):
        other = jwt_settings.model_copy(update={"JWT_SECRET_KEY": "another-secret"})
        token = create_test_jwt("user-1", other)

        with pytest.raises(InvalidTokenError):
            decode_jwt(token, jwt_settings)

    def test_issuer_required(self, jwt_settings):
        token = create_test_jwt("user-1", jwt_settings)
        unconfigured = jwt_settings.model_copy(update={"JWT_ISSUER": ""})

        with pytest.raises(InvalidTokenError):
            decode_jwt(token, unconfigured)

    def test_too_old_token_is_expired(self, jwt_settings):
        token = create_test_jwt("user-1", jwt_settings, expire_minutes=600)

        assert decode_jwt(token, jwt_settings)["sub"] == "user-1"
        with pytest.raises(ExpiredTokenError):
            decode_jwt(token, jwt_settings, now=time.time() + 3 * 3600)

    def test_none_algorithm_refused(self, jwt_settings):
        unsafe = jwt_settings.model_copy(update={"JWT_ALLOWED_ALGORITHMS": "HS256,none"})

        with pytest.raises(InvalidTokenError):
            JWTRules.from_settings(unsafe)


class TestChainedCredentialStore:
    """Tests for store chaining."""

    @pytest.mark.asyncio
    async def test_first_match_wins(self):
        first = AsyncMock()
        first.lookup.return_value = None
        second = AsyncMock()
        second.lookup.return_value = ClientIdentity(client_id="second")

        store = ChainedCredentialStore([first, second])

        assert (await store.lookup("credential")).client_id == "second"

    @pytest.mark.asyncio
    async def test_error_raised_only_if_nothing_matches(self):
        failing = AsyncMock()
        failing.lookup.side_effect = ExpiredTokenError("expired")
        empty = AsyncMock()
        empty.lookup.return_value = None

        with pytest.raises(ExpiredTokenError):
            await ChainedCredentialStore([failing, empty]).lookup("credential")

        matching = AsyncMock()
        matching.lookup.return_value = ClientIdentity(client_id="ok")
        assert (await ChainedCredentialStore([failing, matching]).lookup("credential")).client_id == "ok"


class TestAuthGate:
    """Tests for the auth gate."""

    @pytest.mark.asyncio
    async def test_valid_credential(self, gate):
        identity = await gate.authenticate(SUPPORT_KEY, source="10.0.0.1")

        assert identity.client_id == "support-bot"

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "credential",
        [None, "bad", "unknown-key-0001", EXPIRED_KEY, REVOKED_KEY],
    )
    async def test_every_failure_is_unauthorized(self, gate, credential):
        with pytest.raises(UnauthorizedError) as exc_info:
            await gate.authenticate(credential, source="10.0.0.1")

        assert exc_info.value.message == "Invalid or missing credential"
        assert exc_info.value.status_code == 401

    @pytest.mark.asyncio
    async def test_expired_and_malformed_are_indistinguishable(self, gate):
        with pytest.raises(UnauthorizedError) as expired:
            await gate.authenticate(EXPIRED_KEY, source="a")
        with pytest.raises(UnauthorizedError) as malformed:
            await gate.authenticate("!", source="b")

        assert (expired.value.code, expired.value.message) == (
            malformed.value.code,
            malformed.value.message,
        )
        assert expired.value.__cause__ is None
        assert malformed.value.__cause__ is None

    @pytest.mark.asyncio
    async def test_failures_throttle_source(self, gate):
        for _ in range(3):
            with pytest.raises(UnauthorizedError):
                await gate.authenticate("unknown-key-0001", source="10.0.0.9")

        with pytest.raises(RateLimitExceededError) as exc_info:
            await gate.authenticate(SUPPORT_KEY, source="10.0.0.9")

        assert exc_info.value.scope == AUTH_SCOPE
        assert (await gate.authenticate(SUPPORT_KEY, source="10.0.0.10")).client_id == "support-bot"

    @pytest.mark.asyncio
    async def test_concurrent_guesses_stay_within_budget(self, limiter):
        async def slow_lookup(credential):
            await asyncio.sleep(0.05)
            return None

        store = AsyncMock()
        store.lookup.side_effect = slow_lookup
        gate = AuthGate(store, limiter)

        results = await asyncio.gather(
            *(gate.authenticate(f"guess-key-{i:04d}", source="10.0.0.7") for i in range(20)),
            return_exceptions=True,
        )

        assert store.lookup.await_count == 3
        assert sum(isinstance(r, UnauthorizedError) for r in results) == 3
        assert sum(isinstance(r, RateLimitExceededError) for r in results) == 17

    @pytest.mark.asyncio
    async def test_success_does_not_consume_auth_budget(self, gate, limiter):
        for _ in range(10):
            await gate.authenticate(SUPPORT_KEY, source="10.0.0.1")

        assert limiter.check_auth_allowed("10.0.0.1").remaining == 3

    @pytest.mark.asyncio
    async def test_store_timeout_is_internal_error(self, limiter):
        async def slow_lookup(credential):
            await asyncio.sleep(1)

        store = AsyncMock()
        store.lookup.side_effect = slow_lookup
        gate = AuthGate(store, limiter, lookup_timeout=0.01)

        with pytest.raises(InternalError):
            await gate.authenticate(SUPPORT_KEY)

    @pytest.mark.asyncio
    async def test_store_failure_is_internal_error(self, limiter):
        store = AsyncMock()
        store.lookup.side_effect = ConnectionError("store down")
        gate = AuthGate(store, limiter)

        with pytest.raises(InternalError) as exc_info:
            await gate.authenticate(SUPPORT_KEY)

        assert "store down" not in exc_info.value.message
        assert limiter.check_auth_allowed("unknown").remaining == 3

    @pytest.mark.asyncio
    async def test_cache_skips_store(self, limiter):
        store = AsyncMock()
        store.lookup.return_value = ClientIdentity(client_id="cached")
        gate = AuthGate(store, limiter, cache_ttl=60)

        await gate.authenticate(SUPPORT_KEY)
        await gate.authenticate(SUPPORT_KEY)

        assert store.lookup.await_count == 1

    @pytest.mark.asyncio
    async def test_cache_never_serves_past_expiry(self, limiter):
        now = datetime(2030, 1, 1, tzinfo=timezone.utc)
        clock = {"now": now}
        store = AsyncMock()
        store.lookup.return_value = ClientIdentity(
            client_id="short-lived", expires_at=now + timedelta(seconds=5)
        )
        gate = AuthGate(store, limiter, cache_ttl=3600, now=lambda: clock["now"])

        assert (await gate.authenticate(SUPPORT_KEY)).client_id == "short-lived"

        clock["now"] = now + timedelta(seconds=10)
        with pytest.raises(UnauthorizedError):
            await gate.authenticate(SUPPORT_KEY)


class TestDependencies:
    """Tests for FastAPI auth helpers."""

    @pytest.mark.asyncio
    async def test_bearer_header_parsing(self):
        assert await get_credential_from_header("Bearer abc.def.ghi") == "abc.def.ghi"
        assert await get_credential_from_header("Basic abc") is None
        assert await get_credential_from_header("Bearer") is None
        assert await get_credential_from_header(None) is None

    def test_require_admin(self):
        admin = ClientIdentity(client_id="a", roles=["admin"])
        plain = ClientIdentity(client_id="p")

        assert require_admin(admin) is admin
        with pytest.raises(AuthorizationError):
            require_admin(plain)

    def test_admin_key_in_fixture_is_admin(self):
        clients = {c.client_id: c for c in make_clients()}

        assert clients["ops-admin"].api_key == ADMIN_KEY
        assert clients["ops-admin"].to_identity().is_admin
