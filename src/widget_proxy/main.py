"""
FastAPI application entry point for the Widget Proxy.
"""

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from prometheus_fastapi_instrumentator import Instrumentator

from widget_proxy.api.dependencies import get_key_pool, get_openai_client
from widget_proxy.api.error_handlers import EXCEPTION_HANDLERS
from widget_proxy.api.middleware import RequestTracingMiddleware
from widget_proxy.api.routes import router
from widget_proxy.config import settings, validate_key_config
from widget_proxy.keys.exceptions import ConfigurationError
from widget_proxy.logging_config import configure_logging

# Configure structured logging before anything logs
configure_logging(settings.LOG_LEVEL, settings.ENVIRONMENT)
logger = structlog.get_logger(__name__)

app = FastAPI(
    title="Widget Proxy",
    description="Upstream LLM proxy for the storefront widget with API key rotation",
    version=settings.APP_VERSION,
    docs_url="/docs",
    redoc_url="/redoc",
)

# Request tracing middleware (outermost, so request_id is in all logs)
app.add_middleware(RequestTracingMiddleware)

# The widget is embedded in third-party storefronts
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ALLOW_ORIGINS,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["Origin", "X-Requested-With", "Content-Type", "Accept", "Authorization"],
)

for exc_class, handler in EXCEPTION_HANDLERS.items():
    app.add_exception_handler(exc_class, handler)

app.include_router(router)


@app.on_event("startup")
async def startup():
    """Application startup - validate key configuration and build the key pool."""
    logger.info(
        "Application startup",
        version=settings.APP_VERSION,
        environment=settings.ENVIRONMENT,
        upstream_base_url=settings.OPENAI_BASE_URL,
    )

    validation = validate_key_config(settings)
    if not validation.valid:
        for error in validation.errors:
            logger.error("API key configuration error", error=error)
        raise ConfigurationError(
            "Invalid API key configuration", errors=validation.errors
        )

    logger.info("API key configuration valid", key_count=validation.key_count)

    # Build the shared pool now so the first request does not pay for it
    get_key_pool()

    logger.info("Application startup complete")


@app.on_event("shutdown")
async def shutdown():
    """Application shutdown - close upstream connections."""
    logger.info("Application shutdown")
    await get_openai_client().close()
    logger.info("Application shutdown complete")


if settings.PROMETHEUS_ENABLED:
    Instrumentator().instrument(app).expose(app)


@app.get("/")
async def root():
    """Root endpoint with API documentation links."""
    return {
        "service": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "docs": "/docs",
        "health": "/health",
        "keys": "/api/health/keys",
        "metrics": "/metrics" if settings.PROMETHEUS_ENABLED else None,
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "widget_proxy.main:app",
        host="0.0.0.0",
        port=settings.PORT,
    )
