# Test configuration
import asyncio
import sys
from pathlib import Path

import pytest

REPO_ROOT = Path(__file__).parent.parent

# Add repo root to path so tests can import modules
sys.path.insert(0, str(REPO_ROOT))

from toolgate.audit.logger import MemoryAuditSink  # noqa: E402
from toolgate.auth.store import ClientConfig, StaticCredentialStore  # noqa: E402
from toolgate.config import Settings  # noqa: E402
from toolgate.gateway.executor import LocalToolExecutor  # noqa: E402
from toolgate.gateway.service import Gateway, build_gateway  # noqa: E402
from toolgate.ratelimit.limiter import RateLimiter  # noqa: E402
from toolgate.ratelimit.models import RateLimitConfig  # noqa: E402
from toolgate.registry.models import FieldSpec, Tool  # noqa: E402
from toolgate.registry.service import ToolRegistry  # noqa: E402

# Start of a 60 second window
WINDOW_START = 1_000_020.0

SUPPORT_KEY = "support-key-0001"
ADMIN_KEY = "admin-key-00001"
EXPIRED_KEY = "expired-key-0001"
REVOKED_KEY = "revoked-key-0001"


class FakeClock:
    """Manually advanced Unix clock."""

    def __init__(self, now: float = WINDOW_START):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def make_check_order_tool(**overrides) -> Tool:
    data = {
        "name": "check_order",
        "description": "Look up an order",
        "input_fields": [
            FieldSpec(name="order_id", type="string", required=True, min_length=1),
            FieldSpec(name="include_items", type="boolean", default=False),
        ],
        "output_fields": [
            FieldSpec(name="order_id", type="string", required=True),
            FieldSpec(name="status", type="string", required=True),
        ],
        "rate_limit": 3,
    }
    data.update(overrides)
    return Tool(**data)


def make_tools() -> list[Tool]:
    return [
        make_check_order_tool(),
        Tool(
            name="refund_order",
            description="Refund an order",
            input_fields=[
                FieldSpec(name="order_id", type="string", required=True),
                FieldSpec(name="amount", type="number", required=True, minimum=0.01, coerce=True),
            ],
            cost=5,
        ),
        Tool(name="slow_tool", description="Sleeps before answering"),
        Tool(name="broken_tool", description="Always raises"),
    ]


def make_clients() -> list[ClientConfig]:
    return [
        ClientConfig(
            client_id="support-bot",
            api_key=SUPPORT_KEY,
            allowed_tools=["check_order", "slow_tool", "broken_tool"],
        ),
        ClientConfig(client_id="ops-admin", api_key=ADMIN_KEY, allowed_tools=["*"], roles=["admin"]),
        ClientConfig(
            client_id="old-bot",
            api_key=EXPIRED_KEY,
            allowed_tools=["*"],
            expires_at="2020-01-01T00:00:00Z",
        ),
        ClientConfig(client_id="gone-bot", api_key=REVOKED_KEY, allowed_tools=["*"], revoked=True),
    ]


def make_executor() -> LocalToolExecutor:
    executor = LocalToolExecutor()

    @executor.handler("check_order")
    def check_order(order_id: str, include_items: bool = False) -> dict:
        return {"order_id": order_id, "status": "shipped"}

    @executor.handler("refund_order")
    async def refund_order(order_id: str, amount: float) -> dict:
        return {"refund_id": f"r-{order_id}", "amount": amount}

    @executor.handler("slow_tool")
    async def slow_tool() -> dict:
        await asyncio.sleep(5)
        return {}

    @executor.handler("broken_tool")
    def broken_tool() -> dict:
        raise RuntimeError("database unreachable")

    return executor


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def settings() -> Settings:
    return Settings(
        RATE_LIMIT_WINDOW_SECONDS=60,
        RATE_LIMIT_GLOBAL_DEFAULT=100,
        RATE_LIMIT_TOOL_DEFAULT=50,
        AUTH_FAILURE_LIMIT=5,
        AUTH_FAILURE_WINDOW_SECONDS=300,
        DEFAULT_INVOKE_TIMEOUT_SECONDS=2.0,
    )


@pytest.fixture
def audit_sink() -> MemoryAuditSink:
    return MemoryAuditSink()


@pytest.fixture
def gateway(settings: Settings, clock: FakeClock, audit_sink: MemoryAuditSink) -> Gateway:
    """Fully wired gateway with in-process tools and a fake clock."""
    registry = ToolRegistry()
    for tool in make_tools():
        registry.register(tool)
    return build_gateway(
        settings,
        registry=registry,
        credential_store=StaticCredentialStore(make_clients()),
        executor=make_executor(),
        audit_sink=audit_sink,
        limiter=RateLimiter(RateLimitConfig.from_settings(settings), clock=clock),
    )
