"""
FastAPI web application for StorePulse Analytics.
"""
import os
from fastapi import FastAPI, Request
from fastapi.responses import ORJSONResponse, JSONResponse
from starlette.middleware.gzip import GZipMiddleware

from slowapi.util import get_remote_address
from slowapi.errors import RateLimitExceeded

from web.config import VERSION
from web.routes import api
from web.routes.api._deps import limiter
from web.middleware import RequestContextMiddleware
from storepulse.duckdb_store import get_store, close_store
from storepulse.config import validate_config, ConfigurationError
from storepulse.exceptions import MetricsStoreError, StoreNotFoundError, ValidationError
from storepulse.observability import setup_logging, get_logger, get_correlation_id, metrics

# Configure structured logging
# Use JSON format in production (LOG_FORMAT=json), human-readable otherwise
log_format = os.getenv("LOG_FORMAT", "text")
log_level = os.getenv("LOG_LEVEL", "INFO")
setup_logging(level=log_level, json_format=(log_format == "json"))
logger = get_logger(__name__)

# Create FastAPI app
app = FastAPI(
    title="StorePulse Analytics",
    description="Per-store performance analytics for e-commerce stores",
    version=VERSION,
    default_response_class=ORJSONResponse  # 3-10x faster JSON serialization
)

# Add rate limiter to app state
app.state.limiter = limiter

# Custom rate limit exceeded handler
@app.exception_handler(RateLimitExceeded)
async def rate_limit_handler(request: Request, exc: RateLimitExceeded):
    logger.warning(f"Rate limit exceeded for {get_remote_address(request)}")
    return JSONResponse(
        status_code=429,
        content={
            "error": "Rate limit exceeded",
            "detail": "Too many requests. Please try again later.",
            "retry_after": exc.detail
        }
    )


@app.exception_handler(ValidationError)
async def validation_error_handler(request: Request, exc: ValidationError):
    return JSONResponse(status_code=400, content={"detail": str(exc)})


@app.exception_handler(StoreNotFoundError)
async def store_not_found_handler(request: Request, exc: StoreNotFoundError):
    return JSONResponse(status_code=404, content={"detail": str(exc)})


@app.exception_handler(MetricsStoreError)
async def metrics_store_error_handler(request: Request, exc: MetricsStoreError):
    logger.error(
        f"Metrics store error on {request.method} {request.url.path}: {exc}",
        extra={"operation": exc.operation},
    )
    metrics.record_error(type(exc).__name__)
    return JSONResponse(
        status_code=503,
        content={
            "error": "Metrics store unavailable",
            "detail": str(exc),
            "correlation_id": get_correlation_id(),
        }
    )


# Correlation IDs, access log, timeouts and per-route metrics
app.add_middleware(RequestContextMiddleware)

# Add Gzip compression (min 500 bytes to compress)
app.add_middleware(GZipMiddleware, minimum_size=500)

# Include routers
app.include_router(api.router, prefix="/api")


@app.on_event("startup")
async def startup_event():
    logger.info("StorePulse Analytics starting...")

    # Validate configuration early - fail fast with clear errors
    try:
        validate_config()
        logger.info("Configuration validated")
    except ConfigurationError as e:
        logger.critical(f"Configuration error: {e}")
        raise SystemExit(1)

    logger.info("Opening DuckDB metrics store...")
    try:
        store = await get_store()
        stats = await store.get_stats()
        logger.info(
            f"DuckDB ready: {stats['stores']} stores, "
            f"{stats['daily_metrics']} daily rows, "
            f"{stats['db_size_mb']} MB"
        )
    except MetricsStoreError as e:
        logger.error(f"DuckDB initialization failed: {e}", exc_info=True)
        raise  # Fail fast - DuckDB is required

    logger.info("StorePulse Analytics ready")


@app.on_event("shutdown")
async def shutdown_event():
    await close_store()
    logger.info("StorePulse Analytics stopped")
