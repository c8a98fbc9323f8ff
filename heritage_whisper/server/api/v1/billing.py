"""
API endpoints for HeritageWhisper Premium: subscription checkout, gift codes
and the Stripe webhook.
"""

from __future__ import annotations

from typing import Annotated, Optional

from fastapi import APIRouter, Depends, Header, Request

from heritage_whisper.core.errors import NotFoundError
from heritage_whisper.core.models.io import (
    CheckoutRequest,
    CheckoutResponse,
    GiftCheckoutRequest,
    GiftCodeRequest,
    GiftRedeemResponse,
    GiftValidationResponse,
    WebhookAck,
)
from heritage_whisper.server.services.billing import BillingService
from heritage_whisper.server.services.deps import (
    AuthRateLimit,
    CurrentUserDep,
    ResendDep,
    SessionDep,
    StripeDep,
)
from heritage_whisper.server.services.notifications import NotificationService

router = APIRouter(tags=["billing"])


def billing_service(session: SessionDep, stripe: StripeDep, resend: ResendDep) -> BillingService:
    return BillingService(session, stripe=stripe, notifications=NotificationService(session, resend=resend))


BillingServiceDep = Annotated[BillingService, Depends(billing_service)]


@router.post(
    "/checkout",
    response_model=CheckoutResponse,
    summary="Start Subscription Checkout",
    description="Create a Stripe Checkout session for the annual subscription.",
    response_description="The Checkout URL to redirect to.",
    responses={
        200: {"description": "Checkout session created"},
        400: {"description": "The user already has an active subscription"},
        503: {"description": "Billing is not configured"},
    },
)
async def create_checkout(data: CheckoutRequest, user: CurrentUserDep, service: BillingServiceDep) -> CheckoutResponse:
    """
    Start a subscription checkout.

    - **trigger_location**: Where in the app the upgrade was started, kept for analytics.
    """
    return await service.create_checkout(user, data.trigger_location)


@router.post(
    "/gift-checkout",
    response_model=CheckoutResponse,
    dependencies=[AuthRateLimit],
    summary="Start Gift Checkout",
    description="Create a one-time Stripe Checkout session for a one-year gift code. No account required.",
    response_description="The Checkout URL to redirect to.",
    responses={503: {"description": "Billing is not configured"}},
)
async def create_gift_checkout(data: GiftCheckoutRequest, service: BillingServiceDep) -> CheckoutResponse:
    return await service.create_gift_checkout(data.purchaser_email, data.purchaser_name)


@router.get(
    "/gift/session/{session_id}",
    response_model=GiftValidationResponse,
    summary="Gift Code for Checkout",
    description="The gift code created for a completed gift checkout, shown on the success page.",
    responses={404: {"description": "The gift code has not been created yet"}},
)
async def gift_for_checkout(session_id: str, service: BillingServiceDep) -> GiftValidationResponse:
    gift = await service.get_gift_for_checkout(session_id)
    if gift is None:
        raise NotFoundError("Gift code not found for this checkout")
    return GiftValidationResponse(
        valid=gift.status == "active",
        code=gift.code,
        expires_at=gift.expires_at,
        purchaser_name=gift.purchaser_name,
    )


@router.post(
    "/gift/validate",
    response_model=GiftValidationResponse,
    dependencies=[AuthRateLimit],
    summary="Validate Gift Code",
    description="Check whether a gift code can be redeemed. Dashes and letter case are ignored.",
    response_description="Whether the code is valid, with the reason when it is not.",
)
async def validate_gift_code(data: GiftCodeRequest, service: BillingServiceDep) -> GiftValidationResponse:
    validation, _ = await service.validate_gift_code(data.code)
    return validation


@router.post(
    "/gift/redeem",
    response_model=GiftRedeemResponse,
    dependencies=[AuthRateLimit],
    summary="Redeem Gift Code",
    description="Redeem a gift code for the signed-in user.",
    response_description="The plan and its new end date.",
    responses={
        200: {"description": "Gift redeemed"},
        400: {"description": "The code is invalid, used, refunded or expired"},
    },
)
async def redeem_gift_code(data: GiftCodeRequest, user: CurrentUserDep, service: BillingServiceDep) -> GiftRedeemResponse:
    """
    Redeem a gift code.

    An active subscription is extended by one year; otherwise a one-year gift
    plan starts today.
    """
    return await service.redeem_gift_code(user, data.code)


@router.post(
    "/webhook",
    response_model=WebhookAck,
    summary="Stripe Webhook",
    description="Receive Stripe events. The payload must carry a valid stripe-signature header.",
    responses={
        200: {"description": "Event received"},
        400: {"description": "Missing or invalid signature"},
        503: {"description": "Webhook secret is not configured"},
    },
)
async def stripe_webhook(
    request: Request,
    service: BillingServiceDep,
    stripe_signature: Optional[str] = Header(default=None, alias="stripe-signature"),
) -> WebhookAck:
    return await service.handle_webhook(await request.body(), stripe_signature)
