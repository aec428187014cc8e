import asyncio
import contextlib
import logging

import httpx
import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from contextlib import asynccontextmanager

from .config import get_settings
from .database import create_tables, get_engine
from .auth.exceptions import ErrorKind, ToolGatewayError
from .ratelimit import RateLimitExceededError, run_sweeper
from .gateway.service import build_gateway
from .gateway.router import router as gateway_router
from .discovery.router import router as discovery_router
from .registry.router import router as registry_router
from .audit.router import router as audit_router

settings = get_settings()
logger = structlog.get_logger("app")


def configure_logging(level: str = "INFO") -> None:
    """Configure structlog event logging at the given level."""
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(
            logging.getLevelName(level.upper())
        ),
        cache_logger_on_first_use=True,
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging(settings.LOG_LEVEL)

    # Initialize global HTTP client for connection pooling
    # timeouts=None removes global default timeout, allowing per-request timeouts
    app.state.http_client = httpx.AsyncClient(timeout=None)
    app.state.gateway = build_gateway(settings, http_client=app.state.http_client)

    if settings.AUDIT_SINK == "database":
        await create_tables()

    sweeper = asyncio.create_task(
        run_sweeper(app.state.gateway.limiter, settings.RATE_LIMIT_SWEEP_INTERVAL_SECONDS)
    )
    logger.info("gateway_started", app=settings.APP_NAME)

    yield

    # Shutdown: stop the sweeper, flush audits, close clients
    sweeper.cancel()
    with contextlib.suppress(asyncio.CancelledError):
        await sweeper
    await app.state.gateway.dispatcher.drain_audits()
    await app.state.http_client.aclose()
    if settings.AUDIT_SINK == "database":
        await get_engine().dispose()


app = FastAPI(
    title=settings.APP_NAME,
    lifespan=lifespan,
    debug=settings.DEBUG
)


# Global exception handlers
@app.exception_handler(ToolGatewayError)
async def gateway_exception_handler(request: Request, exc: ToolGatewayError):
    headers = None
    if isinstance(exc, RateLimitExceededError):
        headers = {"Retry-After": exc.retry_after_header}
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "success": False,
            "error": exc.code,
            "kind": exc.kind.value,
            "message": exc.message,
        },
        headers=headers,
    )


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(
        status_code=ErrorKind.validation_error.http_status,
        content={
            "success": False,
            "error": "VALIDATION_ERROR",
            "kind": ErrorKind.validation_error.value,
            "message": "Malformed request body",
        },
    )


@app.get("/health")
async def health_check():
    return {"status": "ok", "app": settings.APP_NAME}


# Include routers
app.include_router(discovery_router)
app.include_router(gateway_router)
app.include_router(registry_router)
if settings.AUDIT_SINK == "database":
    app.include_router(audit_router)
