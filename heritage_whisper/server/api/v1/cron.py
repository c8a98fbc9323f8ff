"""
Scheduled job endpoints.

Called by the platform scheduler with ``Authorization: Bearer <CRON_SECRET>``.
"""

from __future__ import annotations

from dataclasses import asdict

from fastapi import APIRouter, Depends

from heritage_whisper.core.logging_config import get_logger
from heritage_whisper.server.services.deps import ResendDep, SessionDep, SupabaseDep, require_cron_secret
from heritage_whisper.server.services.notifications import NotificationService
from heritage_whisper.server.services.prompts import PromptService

logger = get_logger(__name__)

router = APIRouter(tags=["cron"], dependencies=[Depends(require_cron_secret)])


@router.get(
    "/daily-story-notifications",
    summary="Send Daily Digests",
    description="Email each family member a digest of stories recorded since their last notification.",
    response_description="Totals of members, emails sent, skips and errors.",
    responses={401: {"description": "Missing or wrong cron secret"}},
)
async def daily_story_notifications(session: SessionDep, resend: ResendDep, supabase: SupabaseDep):
    report = await NotificationService(session, resend=resend, supabase=supabase).send_daily_digests()
    return {"success": True, **asdict(report)}


@router.get(
    "/expire-prompts",
    summary="Expire Prompts",
    description="Archive generated prompts whose expiry has passed.",
    response_description="Number of prompts archived.",
    responses={401: {"description": "Missing or wrong cron secret"}},
)
async def expire_prompts(session: SessionDep):
    expired = await PromptService(session).expire_prompts()
    logger.info(f"Expired {expired} prompts")
    return {"success": True, "expired": expired}
