"""
FastAPI application entry point.
Configures routes, middleware, and lifecycle events.
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.config import settings
from app.database import create_database
from app.logging_config import configure_logging
from app.redis import RedisClient
import logging

# Import routers - MUST BE AT TOP LEVEL
from app.api.analytics import router as analytics_router
from app.api.admin.sync import router as sync_router
from app.api.webhooks.cal import router as cal_webhook_router


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifecycle manager."""
    # Startup
    configure_logging()
    logging.info(f"Starting up {settings.app_name}...")

    if getattr(app.state, "db", None) is None:
        app.state.db = create_database()
    app.state.db.open()

    # Initialize Redis
    try:
        RedisClient.get_client()
    except Exception as e:
        logging.warning(f"Failed to initialize Redis: {e}")

    yield

    # Shutdown
    await RedisClient.close()
    await app.state.db.close()
    logging.info("Shutting down...")


app = FastAPI(
    title="Ink Studio Analytics",
    description="Studio analytics and Cal.com booking sync",
    version="1.0.0",
    lifespan=lifespan,
    debug=settings.debug,
)


# Global Exception Handler
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    logging.error(f"Global exception: {exc}", exc_info=True)
    return JSONResponse(
        status_code=500,
        content={"status": "error", "message": "Internal Server Error"},
    )


# CORS middleware
origins = []
if settings.is_development:
    origins.append("*")

app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Health check endpoint
@app.get("/health")
async def health_check(request: Request):
    """Health check endpoint."""
    database = getattr(request.app.state, "db", None)
    try:
        database_ok = database is not None and await database.ping()
    except Exception as e:
        logging.error(f"Health check: database unreachable: {e}")
        database_ok = False

    return {
        "status": "healthy" if database_ok else "degraded",
        "app": settings.app_name,
        "env": settings.app_env,
        "database": database_ok,
    }


app.include_router(
    analytics_router,
    prefix="/analytics",
    tags=["analytics"],
)

# Register webhook routes
app.include_router(
    cal_webhook_router,
    prefix="/webhooks",
    tags=["webhooks"],
)

# Register admin routes
app.include_router(
    sync_router,
    prefix="/admin",
    tags=["admin"],
)
