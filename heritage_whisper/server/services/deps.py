"""
API dependencies.

Provides database sessions, the authenticated storyteller, family sessions,
integration clients and rate limits to the routers. Integration providers
return ``None`` when the service is not configured so that optional side
effects can be skipped; tests replace them through
``app.dependency_overrides``.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Annotated, Awaitable, Callable, Optional

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from heritage_whisper.core.database import async_session_maker, get_session
from heritage_whisper.core.database.entities import User
from heritage_whisper.core.database.repositories import UserRepository
from heritage_whisper.core.errors import AuthenticationError, PaymentRequiredError
from heritage_whisper.core.logging_config import get_logger
from heritage_whisper.integrations import (
    PDFShiftClient,
    ResendClient,
    StripeBillingClient,
    SupabaseClient,
    TranscriptionClient,
    create_text_model,
)
from heritage_whisper.prompts.tier3 import Tier3Analyzer
from heritage_whisper.server.core.config import settings
from heritage_whisper.storytelling.transcripts import TranscriptAssistant
from heritage_whisper.storytelling.years import normalize_year

from .notifications import NotificationService
from .rate_limit import (
    SlidingWindowRateLimiter,
    ai_limiter,
    api_limiter,
    auth_limiter,
    prompt_submit_limiter,
    upload_limiter,
)

logger = get_logger(__name__)

FAMILY_SESSION_COOKIE = "family_session"

SessionDep = Annotated[AsyncSession, Depends(get_session)]


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    """Session factory for background tasks that outlive the request session."""
    return async_session_maker


SessionFactoryDep = Annotated[async_sessionmaker[AsyncSession], Depends(get_session_factory)]


# =====================================================================
# Integration clients
# =====================================================================


@lru_cache(maxsize=1)
def get_supabase_client() -> Optional[SupabaseClient]:
    config = settings.supabase
    if not config.url or not config.service_role_key:
        logger.warning("Supabase is not configured; authentication and storage are unavailable")
        return None
    return SupabaseClient(config.url, service_role_key=config.service_role_key)


@lru_cache(maxsize=1)
def get_transcription_client() -> Optional[TranscriptionClient]:
    config = settings.openai
    if not config.api_key:
        return None
    return TranscriptionClient(config.api_key, model=config.transcription_model, base_url=config.base_url)


@lru_cache(maxsize=1)
def get_transcript_assistant() -> TranscriptAssistant:
    config = settings.openai
    model = create_text_model(config.model, api_key=config.api_key, base_url=config.base_url, temperature=0.3)
    return TranscriptAssistant(model=model)


@lru_cache(maxsize=1)
def get_tier3_analyzer() -> Tier3Analyzer:
    config = settings.openai
    model = create_text_model(
        config.tier3_model, api_key=config.api_key, base_url=config.base_url, temperature=0.7, max_tokens=3000
    )
    return Tier3Analyzer(model=model, model_version=config.tier3_model if model else None)


@lru_cache(maxsize=1)
def get_resend_client() -> Optional[ResendClient]:
    config = settings.resend
    if not config.api_key:
        return None
    return ResendClient(config.api_key, from_email=config.from_email, base_url=config.base_url)


@lru_cache(maxsize=1)
def get_stripe_client() -> Optional[StripeBillingClient]:
    config = settings.stripe
    if not config.secret_key:
        return None
    return StripeBillingClient(
        config.secret_key,
        webhook_secret=config.webhook_secret,
        price_id=config.price_id,
        gift_price_id=config.gift_price_id,
        app_url=settings.app_url,
    )


@lru_cache(maxsize=1)
def get_pdfshift_client() -> Optional[PDFShiftClient]:
    config = settings.pdfshift
    if not config.api_key:
        return None
    return PDFShiftClient(config.api_key, base_url=config.base_url)


SupabaseDep = Annotated[Optional[SupabaseClient], Depends(get_supabase_client)]
TranscriptionDep = Annotated[Optional[TranscriptionClient], Depends(get_transcription_client)]
TranscriptAssistantDep = Annotated[TranscriptAssistant, Depends(get_transcript_assistant)]
Tier3AnalyzerDep = Annotated[Tier3Analyzer, Depends(get_tier3_analyzer)]
ResendDep = Annotated[Optional[ResendClient], Depends(get_resend_client)]
StripeDep = Annotated[Optional[StripeBillingClient], Depends(get_stripe_client)]
PDFShiftDep = Annotated[Optional[PDFShiftClient], Depends(get_pdfshift_client)]


# =====================================================================
# Authentication
# =====================================================================


def bearer_token(request: Request) -> Optional[str]:
    header = request.headers.get("Authorization", "")
    scheme, _, token = header.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


def client_ip(request: Request) -> str:
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return forwarded.split(",")[0].strip()
    real_ip = request.headers.get("X-Real-IP")
    if real_ip:
        return real_ip.strip()
    return request.client.host if request.client else "unknown"


async def get_current_user(
    request: Request, session: SessionDep, supabase: SupabaseDep, resend: ResendDep
) -> User:
    """
    Resolve the Supabase access token into the storyteller's user row.

    The row is created on first sight so that a fresh Supabase account can use
    the API immediately.
    """
    token = bearer_token(request)
    if not token:
        raise AuthenticationError("Authentication required")
    if supabase is None:
        raise AuthenticationError("Authentication is not available")

    auth_user = await supabase.get_user(token)
    if auth_user is None:
        raise AuthenticationError("Invalid or expired token")

    users = UserRepository(session)
    user = await users.get_by_id(auth_user.id)
    if user is None:
        email = (auth_user.email or "").lower()
        metadata = auth_user.user_metadata or {}
        user = User(
            id=auth_user.id,
            email=email,
            name=metadata.get("name") or metadata.get("full_name") or (email.split("@")[0] if email else "User"),
            birth_year=normalize_year(metadata.get("birth_year") or metadata.get("birthYear")),
        )
        user = await users.create(user)
        logger.info(f"Created user record for {user.id}")
        if user.email:
            await NotificationService(session, resend=resend).send(
                "welcome", user.email, {"name": user.name, "app_url": settings.app_url}
            )
    return user


CurrentUserDep = Annotated[User, Depends(get_current_user)]


async def require_paid_user(user: CurrentUserDep) -> User:
    if not user.is_paid:
        raise PaymentRequiredError("This feature requires a HeritageWhisper subscription")
    return user


PaidUserDep = Annotated[User, Depends(require_paid_user)]


def family_session_token(request: Request) -> Optional[str]:
    """Family session token from the cookie, or the Bearer header as fallback."""
    return request.cookies.get(FAMILY_SESSION_COOKIE) or bearer_token(request)


async def require_cron_secret(request: Request) -> None:
    secret = settings.cron_secret
    if not secret:
        raise AuthenticationError("Scheduled jobs are not configured")
    if bearer_token(request) != secret:
        raise AuthenticationError("Unauthorized")


# =====================================================================
# Rate limits
# =====================================================================


def limit_by_ip(limiter: SlidingWindowRateLimiter) -> Callable[[Request], Awaitable[None]]:
    async def _dependency(request: Request) -> None:
        await limiter.check(f"ip:{client_ip(request)}")

    return _dependency


def limit_by_user(limiter: SlidingWindowRateLimiter) -> Callable[..., Awaitable[None]]:
    async def _dependency(user: CurrentUserDep) -> None:
        await limiter.check(f"user:{user.id}")

    return _dependency


def limit_by_family_session(limiter: SlidingWindowRateLimiter) -> Callable[[Request], Awaitable[None]]:
    async def _dependency(request: Request) -> None:
        await limiter.check(f"family:{family_session_token(request) or client_ip(request)}")

    return _dependency


AuthRateLimit = Depends(limit_by_ip(auth_limiter))
UploadRateLimit = Depends(limit_by_user(upload_limiter))
ApiRateLimit = Depends(limit_by_user(api_limiter))
AIRateLimit = Depends(limit_by_user(ai_limiter))
PromptSubmitRateLimit = Depends(limit_by_family_session(prompt_submit_limiter))


async def close_clients() -> None:
    """Close the HTTP pools of integration clients that were created."""
    for provider in (get_supabase_client, get_resend_client, get_pdfshift_client):
        if not provider.cache_info().currsize:
            continue
        client = provider()
        if client is not None:
            await client.aclose()


def reset_client_caches() -> None:
    """Forget cached integration clients, for example after settings change."""
    for provider in (
        get_supabase_client,
        get_transcription_client,
        get_transcript_assistant,
        get_tier3_analyzer,
        get_resend_client,
        get_stripe_client,
        get_pdfshift_client,
    ):
        provider.cache_clear()

