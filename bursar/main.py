"""Bursar Backend - FastAPI Application."""

import time
import traceback
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import UTC, datetime
from typing import Any
from uuid import uuid4

from fastapi import Depends, FastAPI, Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from redis.exceptions import RedisError
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.exceptions import HTTPException as StarletteHTTPException

from bursar.config import settings
from bursar.database import get_db, init_db
from bursar.logger import bind_request_context, configure_logging, get_logger
from bursar.routers import analytics, currency, expenses, payments, reports
from bursar.schemas import jsend_error, jsend_fail
from bursar.services.cache import create_redis_client

# Initialize logging early
configure_logging()
logger = get_logger(__name__)

API_PREFIX = "/api/v1"
NOT_AVAILABLE_MESSAGE = "This resource is not available"


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Application lifespan - database readiness and the shared cache client."""
    await init_db()
    app.state.redis = create_redis_client()
    logger.info("Application started", version="0.1.0", cache_enabled=app.state.redis is not None)
    yield
    if app.state.redis is not None:
        await app.state.redis.aclose()
    logger.info("Application shutting down")


app = FastAPI(
    title="Bursar API",
    description="University finance back office: payments, expenses, currency rates and reports",
    version="0.1.0",
    lifespan=lifespan,
)


@app.middleware("http")
async def logging_middleware(request: Request, call_next: Any) -> Response:
    """Middleware to inject Request-ID and log request details."""
    request_id = request.headers.get("X-Request-ID", str(uuid4()))
    bind_request_context(request_id, request.method, request.url.path)

    start_time = time.perf_counter()
    try:
        response = await call_next(request)
        duration = time.perf_counter() - start_time

        logger.info(
            "HTTP Request",
            status_code=response.status_code,
            duration_ms=round(duration * 1000, 2),
        )

        response.headers["X-Request-ID"] = request_id
        return response
    except Exception as exc:
        duration = time.perf_counter() - start_time
        logger.exception(
            "HTTP Request Failed",
            duration_ms=round(duration * 1000, 2),
            error=str(exc),
        )
        raise


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Render HTTP errors as JSend: 4xx as ``fail``, 5xx as ``error``."""
    message = str(exc.detail)
    if exc.status_code == 404 and exc.detail == "Not Found":
        message = NOT_AVAILABLE_MESSAGE

    content = jsend_error(message) if exc.status_code >= 500 else jsend_fail(message)
    return JSONResponse(status_code=exc.status_code, content=content, headers=exc.headers)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Malformed parameters or bodies are client failures (400)."""
    errors = exc.errors()
    if errors:
        first = errors[0]
        location = ".".join(str(part) for part in first.get("loc", ()) if part not in ("body", "query", "path"))
        message = f"{location}: {first.get('msg')}" if location else str(first.get("msg"))
    else:
        message = "Invalid request"
    logger.info("Request validation failed", errors=len(errors), message=message)
    return JSONResponse(status_code=400, content=jsend_fail(message))


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Unhandled errors become a generic JSend ``error``."""
    logger.error("Unhandled exception", error=str(exc), error_type=type(exc).__name__, exc_info=exc)

    # Only show exception details in DEBUG mode
    if settings.debug:
        message = f"{type(exc).__name__}: {exc}\n{traceback.format_exc()}"
    else:
        message = "An internal server error occurred. Please try again later."
    return JSONResponse(status_code=500, content=jsend_error(message))


# CORS for the admin dashboard
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "PATCH"],
    allow_headers=["Content-Type", "Authorization", "X-Request-ID"],
)

app.include_router(payments.router, prefix=API_PREFIX)
app.include_router(expenses.router, prefix=API_PREFIX)
app.include_router(reports.router, prefix=API_PREFIX)
app.include_router(currency.router, prefix=API_PREFIX)
app.include_router(analytics.router, prefix=API_PREFIX)


@app.get("/health")
async def health_check(request: Request, db: AsyncSession = Depends(get_db)) -> JSONResponse:
    """Database and cache reachability.

    Returns 503 only when the database is down; the cache is optional and an
    unreachable cache is reported as degraded.
    """
    checks: dict[str, str] = {}

    try:
        await db.execute(text("SELECT 1"))
        checks["database"] = "ok"
    except SQLAlchemyError as exc:
        logger.error("Health check: database unreachable", error=str(exc))
        checks["database"] = "error"

    redis_client = getattr(request.app.state, "redis", None)
    if redis_client is None:
        checks["cache"] = "disabled"
    else:
        try:
            await redis_client.ping()
            checks["cache"] = "ok"
        except (RedisError, OSError) as exc:
            logger.warning("Health check: cache unreachable", error=str(exc))
            checks["cache"] = "degraded"

    healthy = checks["database"] == "ok"
    return JSONResponse(
        status_code=200 if healthy else 503,
        content={
            "status": "healthy" if healthy else "unhealthy",
            "timestamp": datetime.now(UTC).isoformat(),
            "checks": checks,
        },
    )
