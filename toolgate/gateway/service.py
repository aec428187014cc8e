"""Dispatcher: the single entry point that runs one tool invocation end to end."""

import asyncio
import time
from dataclasses import dataclass
from typing import Any

import httpx
import structlog

from toolgate.audit.logger import (
    AuditContext,
    AuditSink,
    DatabaseAuditSink,
    LoggingAuditSink,
)
from toolgate.audit.schemas import AuditRecord
from toolgate.auth.exceptions import InternalError, ToolGatewayError, ToolNotAllowedError
from toolgate.auth.gate import AuthGate
from toolgate.auth.store import CredentialStore, build_credential_store
from toolgate.config import Settings
from toolgate.database import get_session_factory
from toolgate.discovery.service import DiscoveryService
from toolgate.ratelimit.exceptions import RateLimitExceededError
from toolgate.ratelimit.limiter import RateLimiter
from toolgate.ratelimit.models import RateLimitConfig
from toolgate.registry.exceptions import ToolDisabledError
from toolgate.registry.service import ToolRegistry
from toolgate.validation.validator import SchemaValidator

from .exceptions import ExecutionTimeoutError, ExecutorError
from .executor import LocalToolExecutor, RoutingToolExecutor, ToolExecutor
from .proxy import HttpToolExecutor
from .schemas import ErrorDetail, ExecutionMetadata, InvocationRequest, InvocationResult

logger = structlog.get_logger("gateway")


# Configuration defaults
DEFAULT_TIMEOUT_SECONDS = 30.0
MAX_TIMEOUT_SECONDS = 120.0


class Dispatcher:
    """Runs invocations through auth, lookup, permission, rate limit,
    validation and execution, in that order.

    ``invoke`` never raises for a failed invocation: every outcome, including
    unexpected faults, comes back as an ``InvocationResult``.
    """

    def __init__(
        self,
        auth_gate: AuthGate,
        registry: ToolRegistry,
        limiter: RateLimiter,
        validator: SchemaValidator,
        executor: ToolExecutor,
        audit_sink: AuditSink | None = None,
        default_timeout: float = DEFAULT_TIMEOUT_SECONDS,
        max_timeout: float = MAX_TIMEOUT_SECONDS,
    ):
        self.auth_gate = auth_gate
        self.registry = registry
        self.limiter = limiter
        self.validator = validator
        self.executor = executor
        self.audit_sink = audit_sink
        self.default_timeout = default_timeout
        self.max_timeout = max_timeout
        self._pending_audits: set[asyncio.Task] = set()

    def effective_timeout(self, requested: float | None) -> float:
        return min(requested or self.default_timeout, self.max_timeout)

    async def invoke(self, request: InvocationRequest) -> InvocationResult:
        """Invoke a tool on behalf of whoever holds ``request.credential``.

        Args:
            request: The invocation to run.

        Returns:
            InvocationResult with output on success or a typed error, always
            with execution metadata.
        """
        started = time.perf_counter()
        timeout = self.effective_timeout(request.timeout)
        deadline = time.monotonic() + timeout
        audit = AuditContext(request.request_id, request.tool_name)

        output: Any = None
        error: ErrorDetail | None = None
        try:
            output = await self._dispatch(request, audit, deadline, timeout)
        except ToolGatewayError as e:
            audit.mark_failure(e.kind, e.code)
            error = ErrorDetail.from_exception(e)
            logger.info(
                "invocation_failed",
                request_id=request.request_id,
                tool_name=request.tool_name,
                client_id=audit.client_id,
                kind=e.kind.value,
                code=e.code,
            )
        except Exception:
            logger.exception(
                "invocation_internal_error",
                request_id=request.request_id,
                tool_name=request.tool_name,
                client_id=audit.client_id,
            )
            internal = InternalError()
            audit.mark_failure(internal.kind, internal.code)
            error = ErrorDetail.from_exception(internal)

        metadata = ExecutionMetadata(
            request_id=request.request_id,
            tool_name=request.tool_name,
            client_id=audit.client_id,
            elapsed_ms=round((time.perf_counter() - started) * 1000, 3),
        )
        self._emit_audit(audit.to_record())

        if error is not None:
            return InvocationResult.failure(error, metadata)
        return InvocationResult.ok(output, metadata)

    async def _dispatch(
        self,
        request: InvocationRequest,
        audit: AuditContext,
        deadline: float,
        timeout: float,
    ) -> Any:
        # 1. Authenticate
        client = await self.auth_gate.authenticate(request.credential, source=request.source)
        audit.client_id = client.client_id

        # 2. Look up tool; this snapshot is used for the rest of the request
        tool = self.registry.get(request.tool_name)
        if not tool.enabled:
            raise ToolDisabledError(tool.name)

        # 3. Check permission
        if not client.can_use_tool(tool.name):
            raise ToolNotAllowedError(tool_name=tool.name, client_id=client.client_id)

        # 4. Charge budget before validation
        rate_result = self.limiter.check_invocation(client, tool)
        if not rate_result.allowed:
            raise RateLimitExceededError(
                limit=rate_result.limit,
                retry_after=rate_result.retry_after,
                scope=rate_result.scope,
            )

        # 5. Validate input
        arguments = self.validator.validate(tool, request.arguments)

        # 6. Execute under the remaining deadline
        remaining = deadline - time.monotonic()
        if remaining <= 0:
            raise ExecutionTimeoutError(tool.name, timeout)
        try:
            output = await asyncio.wait_for(
                self.executor.execute(
                    tool,
                    arguments,
                    deadline,
                    request_id=request.request_id,
                    client_id=client.client_id,
                ),
                timeout=remaining,
            )
        except ToolGatewayError:
            raise
        except asyncio.TimeoutError:
            raise ExecutionTimeoutError(tool.name, timeout)
        except Exception as e:
            logger.warning(
                "executor_raised",
                request_id=request.request_id,
                tool_name=tool.name,
                error=repr(e),
            )
            raise ExecutorError(tool.name, f"Tool '{tool.name}' failed") from e

        # 7. Check output against the declared output fields
        violations = self.validator.check_output(tool, output)
        if violations:
            logger.warning(
                "tool_output_mismatch",
                request_id=request.request_id,
                tool_name=tool.name,
                fields=[v.field for v in violations],
            )
            raise ExecutorError(tool.name, f"Tool '{tool.name}' returned output that does not match its schema")

        return output

    def _emit_audit(self, record: AuditRecord) -> None:
        if self.audit_sink is None:
            return
        task = asyncio.create_task(self._deliver_audit(record))
        self._pending_audits.add(task)
        task.add_done_callback(self._pending_audits.discard)

    async def _deliver_audit(self, record: AuditRecord) -> None:
        try:
            await self.audit_sink.emit(record)
        except Exception:
            logger.exception("audit_emit_failed", request_id=record.request_id)

    async def drain_audits(self) -> None:
        """Wait for audit records still being delivered."""
        if self._pending_audits:
            await asyncio.gather(*list(self._pending_audits))


@dataclass
class Gateway:
    """Every long-lived component, wired together once at startup."""

    settings: Settings
    registry: ToolRegistry
    limiter: RateLimiter
    auth_gate: AuthGate
    validator: SchemaValidator
    executor: ToolExecutor
    audit_sink: AuditSink
    dispatcher: Dispatcher
    discovery: DiscoveryService

    async def invoke(self, request: InvocationRequest) -> InvocationResult:
        return await self.dispatcher.invoke(request)


def build_audit_sink(settings: Settings) -> AuditSink:
    if settings.AUDIT_SINK == "database":
        return DatabaseAuditSink(get_session_factory())
    return LoggingAuditSink()


def build_gateway(
    settings: Settings,
    http_client: httpx.AsyncClient | None = None,
    registry: ToolRegistry | None = None,
    credential_store: CredentialStore | None = None,
    executor: ToolExecutor | None = None,
    audit_sink: AuditSink | None = None,
    limiter: RateLimiter | None = None,
) -> Gateway:
    """Assemble a gateway from settings.

    Any component passed in is used as-is instead of being built from
    configuration.
    """
    if registry is None:
        registry = ToolRegistry.from_config(
            settings.TOOLS_CONFIG_PATH,
            allow_replace=settings.REGISTRY_ALLOW_REPLACE,
        )
    if limiter is None:
        limiter = RateLimiter(RateLimitConfig.from_settings(settings))
    if credential_store is None:
        credential_store = build_credential_store(settings)
    if executor is None:
        remote = None
        if http_client is not None:
            remote = HttpToolExecutor(http_client, settings.TOOL_GATEWAY_SHARED_SECRET)
        executor = RoutingToolExecutor(LocalToolExecutor(), remote)
    if audit_sink is None:
        audit_sink = build_audit_sink(settings)

    auth_gate = AuthGate.from_settings(settings, credential_store, limiter)
    validator = SchemaValidator(
        closed_by_default=settings.SCHEMA_CLOSED_BY_DEFAULT,
        max_payload_bytes=settings.MAX_PAYLOAD_BYTES,
    )
    dispatcher = Dispatcher(
        auth_gate=auth_gate,
        registry=registry,
        limiter=limiter,
        validator=validator,
        executor=executor,
        audit_sink=audit_sink,
        default_timeout=settings.DEFAULT_INVOKE_TIMEOUT_SECONDS,
        max_timeout=settings.MAX_INVOKE_TIMEOUT_SECONDS,
    )
    logger.info("gateway_built", tools=len(registry), audit_sink=type(audit_sink).__name__)
    return Gateway(
        settings=settings,
        registry=registry,
        limiter=limiter,
        auth_gate=auth_gate,
        validator=validator,
        executor=executor,
        audit_sink=audit_sink,
        dispatcher=dispatcher,
        discovery=DiscoveryService(registry, validator),
    )
