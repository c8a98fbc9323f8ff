"""
Liveness, readiness and version endpoints.

``/health`` only says the process is serving requests. ``/ready`` also checks
the database and reports which integrations are configured, so a deploy can
be held back until the app can actually record stories.
"""

from __future__ import annotations

import logging
from typing import Dict

from fastapi import APIRouter
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from heritage_whisper.server.core import constant
from heritage_whisper.server.core.config import settings
from heritage_whisper.server.services.deps import SessionDep

logger = logging.getLogger(__name__)

router = APIRouter()


def configured_integrations() -> Dict[str, bool]:
    return {
        "supabase": bool(settings.supabase.url and settings.supabase.service_role_key),
        "openai": bool(settings.openai.api_key),
        "stripe": bool(settings.stripe.secret_key),
        "resend": bool(settings.resend.api_key),
        "pdfshift": bool(settings.pdfshift.api_key),
    }


@router.get(
    "/health",
    summary="Health Check",
    description="Liveness check: the API process is up.",
    response_description="Status object.",
)
async def health_check():
    return {"status": "ok", "environment": settings.environment}


@router.get(
    "/ready",
    summary="Readiness Check",
    description="Check the database connection and report configured integrations.",
    response_description="Readiness object; 503 while the database is unreachable.",
    responses={503: {"description": "Database unreachable"}},
)
async def readiness_check(session: SessionDep):
    try:
        await session.execute(text("SELECT 1"))
        database = "reachable"
    except SQLAlchemyError as e:
        logger.error(f"Readiness check could not reach the database: {e}")
        database = "unreachable"

    ready = database == "reachable"
    return JSONResponse(
        status_code=200 if ready else 503,
        content={"ready": ready, "database": database, "integrations": configured_integrations()},
    )


@router.get(
    "/version",
    summary="Get Version",
    description="Retrieve version information for the API server.",
    response_description="Version object.",
)
async def version():
    return {
        "project": constant.PROJECT_NAME,
        "version": constant.VERSION,
        "api_path": constant.API_V1_STR,
        "schema_version": "v1",
    }
