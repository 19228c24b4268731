"""
Volunteer Events API - Main Application Entry Point

Backend for the volunteer coordination frontend:
- Users are created/refreshed on sign-in and keep owned/joined event lists
- Events carry a volunteer roster with optional capacity
- Join/leave update the event and the user in one optimistically-locked transaction
- Redis caching of event listings, structured logging, Prometheus metrics
"""

from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import PlainTextResponse

from volunteer_api.core.config import get_settings
from volunteer_api.core.errors import register_exception_handlers
from volunteer_api.core.logging import setup_logging, get_logger
from volunteer_api.core.metrics import metrics_endpoint
from volunteer_api.api.router import api_router
from volunteer_api.api.middleware import RequestLoggingMiddleware
from volunteer_api.db import session as db_session
from volunteer_api.services.cache_service import get_redis, close_redis, get_cache_stats

settings = get_settings()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifecycle: the database must be reachable before traffic is
    accepted. A failed connection aborts startup, and uvicorn exits non-zero.
    """
    setup_logging()
    logger = get_logger(__name__)

    logger.info(
        "application_starting",
        app=settings.APP_NAME,
        version=settings.APP_VERSION,
        environment=settings.ENVIRONMENT,
    )

    try:
        await db_session.connect()
    except Exception as e:
        logger.error("database_connection_failed", error=str(e))
        raise

    redis_client = await get_redis()
    if redis_client:
        logger.info("redis_ready")
    else:
        logger.warning("redis_unavailable", message="Running without cache")

    yield

    await close_redis()
    await db_session.disconnect()
    logger.info("application_shutdown")


app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description="Volunteer event coordination API: users, events and join/leave membership",
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)

# CORS: browsers from the known frontends only; no Origin header passes through
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.add_middleware(RequestLoggingMiddleware)

register_exception_handlers(app)

app.include_router(api_router)


@app.get("/", tags=["Root"], response_class=PlainTextResponse)
async def root():
    return "Server is running"


@app.get("/health", tags=["Health"])
async def health_check():
    """Health check endpoint for Docker and load balancers."""
    database_ok = await db_session.ping()
    cache_stats = await get_cache_stats()
    return {
        "status": "healthy" if database_ok else "degraded",
        "version": settings.APP_VERSION,
        "environment": settings.ENVIRONMENT,
        "database": "connected" if database_ok else "unavailable",
        "cache": cache_stats,
    }


@app.get("/metrics", tags=["Health"], include_in_schema=False)
async def metrics():
    return metrics_endpoint()


def run() -> None:
    import uvicorn

    uvicorn.run("volunteer_api.main:app", host=settings.HOST, port=settings.PORT)
