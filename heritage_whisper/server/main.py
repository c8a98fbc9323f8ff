"""
Main Application Entry Point.

This module initializes the FastAPI application, configures middleware (CORS,
request timing), registers exception handlers and includes all API routers.
It serves as the root of the web server.
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from heritage_whisper.core.database import dispose_engine
from heritage_whisper.core.logging_config import get_logger, setup_logging
from heritage_whisper.core.monitoring import initialize_logfire

from .api.v1 import (
    account,
    activity,
    billing,
    book,
    cron,
    export,
    family,
    health,
    prompts,
    shares,
    stories,
    timeline,
    transcribe,
    treasures,
)
from .core import constant
from .core.config import settings
from .exception_handlers import setup_exception_handlers
from .middleware import LogfireMiddleware
from .services.deps import close_clients

# Initialize logging
setup_logging(log_level=settings.log_level, log_format=settings.log_format, enable_file=settings.enable_file_logging)
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Manage application lifespan events.

    Shutdown closes the HTTP pools of the integration clients and the
    database connection pool. The schema is managed by Alembic migrations.
    """
    logger.info(f"Starting up {constant.PROJECT_NAME} ({settings.environment})...")

    yield

    logger.info(f"Shutting down {constant.PROJECT_NAME}...")
    await close_clients()
    await dispose_engine()


app = FastAPI(
    title=constant.PROJECT_NAME,
    description="""
    HeritageWhisper API

    Backend for recording, transcribing and sharing family stories. It serves
    stories and photos, the timeline and memory book, storytelling prompts,
    family sharing, share links, keepsake treasures and Premium billing.
    """,
    version=constant.VERSION,
    openapi_url=f"{constant.API_V1_STR}/openapi.json",
    docs_url=f"{constant.API_V1_STR}/docs",
    redoc_url=f"{constant.API_V1_STR}/redoc",
    lifespan=lifespan,
)

cors = settings.cors
app.add_middleware(
    CORSMiddleware,
    allow_origins=cors.origins,
    allow_credentials=cors.allow_credentials,
    allow_methods=cors.allow_methods,
    allow_headers=cors.allow_headers,
)
app.add_middleware(LogfireMiddleware)

setup_exception_handlers(app)
initialize_logfire(app)


app.include_router(health.router, tags=["health"])
app.include_router(stories.router, prefix=f"{constant.API_V1_STR}/stories")
app.include_router(timeline.router, prefix=f"{constant.API_V1_STR}/timeline")
app.include_router(book.router, prefix=f"{constant.API_V1_STR}/book")
app.include_router(transcribe.router, prefix=constant.API_V1_STR)
app.include_router(prompts.router, prefix=f"{constant.API_V1_STR}/prompts")
app.include_router(family.router, prefix=f"{constant.API_V1_STR}/family")
app.include_router(shares.router, prefix=f"{constant.API_V1_STR}/shares")
app.include_router(shares.public_router, prefix=constant.API_V1_STR)
app.include_router(treasures.router, prefix=f"{constant.API_V1_STR}/treasures")
app.include_router(billing.router, prefix=f"{constant.API_V1_STR}/billing")
app.include_router(account.router, prefix=f"{constant.API_V1_STR}/account")
app.include_router(activity.router, prefix=f"{constant.API_V1_STR}/activity")
app.include_router(export.router, prefix=f"{constant.API_V1_STR}/export")
app.include_router(cron.router, prefix=f"{constant.API_V1_STR}/cron")
