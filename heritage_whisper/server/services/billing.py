"""
Service for subscriptions and gift codes.

Stripe webhook events arrive as ``stripe.Event`` objects, which behave like
dicts; tests pass plain dicts. Fields are read with ``.get`` so both work.
"""

from __future__ import annotations

import logging
import re
import secrets
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional, Tuple

from sqlalchemy.ext.asyncio import AsyncSession

from heritage_whisper.core.database.base import utc_now
from heritage_whisper.core.database.entities import GiftCode, StripeCustomer, User
from heritage_whisper.core.database.repositories import GiftCodeRepository, StripeCustomerRepository, UserRepository
from heritage_whisper.core.errors import ValidationFailedError
from heritage_whisper.core.models.io import CheckoutResponse, GiftRedeemResponse, GiftValidationResponse, WebhookAck
from heritage_whisper.integrations import IntegrationNotConfiguredError, StripeBillingClient
from heritage_whisper.server.core.config import settings

from .notifications import NotificationService
from .prompts import PromptService

logger = logging.getLogger(__name__)

SAFE_CHARS = "ABCDEFGHJKLMNPQRSTUVWXYZ23456789"
CODE_SEGMENTS = 3
CODE_SEGMENT_LENGTH = 4
GIFT_PRICE_CENTS = 7900
DEFAULT_PERIOD_DAYS = 30

PLAN_SUBSCRIPTION = "founding_family"
PLAN_GIFT = "gift_annual"

PAID_STATUSES = ("active", "trialing")


def generate_gift_code() -> str:
    """A fresh code in the form ``GIFT-XXXX-XXXX-XXXX``."""
    segments = [
        "".join(secrets.choice(SAFE_CHARS) for _ in range(CODE_SEGMENT_LENGTH)) for _ in range(CODE_SEGMENTS)
    ]
    return "GIFT-" + "-".join(segments)


def normalize_gift_code(code: str) -> str:
    """Accept codes typed with or without dashes, in any case."""
    cleaned = re.sub(r"[^A-Za-z0-9]", "", code).upper()
    if cleaned.startswith("GIFT") and len(cleaned) == 16:
        cleaned = cleaned[4:]
    if len(cleaned) == 12:
        return f"GIFT-{cleaned[0:4]}-{cleaned[4:8]}-{cleaned[8:12]}"
    return code.upper().strip()


def add_one_year(moment: datetime) -> datetime:
    try:
        return moment.replace(year=moment.year + 1)
    except ValueError:
        # 29 February
        return moment.replace(year=moment.year + 1, day=28)


def _from_timestamp(value: Optional[int]) -> Optional[datetime]:
    if not value:
        return None
    return datetime.fromtimestamp(value, tz=timezone.utc).replace(tzinfo=None)


def _period(subscription: Any) -> Tuple[Optional[int], Optional[int]]:
    """Billing period of a subscription; newer API versions keep it on the items."""
    start, end = subscription.get("current_period_start"), subscription.get("current_period_end")
    if start and end:
        return start, end
    items = (subscription.get("items") or {}).get("data") or []
    if items:
        return items[0].get("current_period_start"), items[0].get("current_period_end")
    return None, None


def _metadata(obj: Any) -> Dict[str, Any]:
    return obj.get("metadata") or {}


def _object_id(value: Any) -> Optional[str]:
    if value is None or isinstance(value, str):
        return value
    return value.get("id")


class BillingService:
    """Subscription lifecycle and gift codes for HeritageWhisper Premium."""

    def __init__(
        self,
        session: AsyncSession,
        *,
        stripe: Optional[StripeBillingClient] = None,
        notifications: Optional[NotificationService] = None,
    ):
        self.session = session
        self.stripe = stripe
        self.notifications = notifications
        self.customers = StripeCustomerRepository(session)
        self.gift_codes = GiftCodeRepository(session)
        self.users = UserRepository(session)

    # -----------------------------------------------------------------
    # Checkout
    # -----------------------------------------------------------------

    def _client(self) -> StripeBillingClient:
        if self.stripe is None:
            raise IntegrationNotConfiguredError("Stripe")
        return self.stripe

    async def create_checkout(self, user: User, trigger_location: str) -> CheckoutResponse:
        stripe = self._client()
        customer_id = await stripe.get_or_create_customer(user_id=user.id, email=user.email, name=user.name)
        if await stripe.has_active_subscription(customer_id):
            raise ValidationFailedError("You already have an active subscription")
        checkout = await stripe.create_subscription_checkout(
            customer_id=customer_id, user_id=user.id, trigger_location=trigger_location
        )
        return CheckoutResponse(**checkout)

    async def create_gift_checkout(
        self, purchaser_email: str, purchaser_name: Optional[str] = None, purchaser: Optional[User] = None
    ) -> CheckoutResponse:
        checkout = await self._client().create_gift_checkout(
            purchaser_email=purchaser_email.lower(),
            purchaser_name=purchaser_name,
            purchaser_user_id=purchaser.id if purchaser else None,
        )
        return CheckoutResponse(**checkout)

    # -----------------------------------------------------------------
    # Webhooks
    # -----------------------------------------------------------------

    async def handle_webhook(self, payload: bytes, signature: Optional[str]) -> WebhookAck:
        """Verify the Stripe signature, then apply the event."""
        event = self._client().construct_event(payload, signature)
        await self.handle_event(event)
        return WebhookAck()

    async def handle_event(self, event: Any) -> None:
        """Apply one verified Stripe event. Unknown event types are ignored."""
        event_type = event.get("type")
        obj = event["data"]["object"]
        logger.info(f"Received Stripe event {event_type}")

        if event_type == "checkout.session.completed":
            if _metadata(obj).get("purchase_type") == "gift":
                await self._gift_checkout_completed(obj)
            else:
                await self._checkout_completed(obj)
        elif event_type == "customer.subscription.updated":
            await self._subscription_updated(obj)
        elif event_type == "customer.subscription.deleted":
            await self._subscription_deleted(obj)
        elif event_type == "invoice.payment_failed":
            await self._payment_failed(obj)
        elif event_type == "charge.refunded":
            await self._charge_refunded(obj)
        else:
            logger.info(f"Unhandled Stripe event type: {event_type}")

    async def _set_user_status(self, user_id: str, status: str, *, is_paid: Optional[bool] = None) -> Optional[User]:
        user = await self.users.get_by_id(user_id)
        if user is None:
            logger.error(f"Stripe event references unknown user {user_id}")
            return None
        user.subscription_status = status
        if is_paid is not None:
            user.is_paid = is_paid
        user.updated_at = utc_now()
        user = await self.users.update(user)
        if is_paid:
            await PromptService(self.session).unlock_prompts(user.id)
        return user

    async def _checkout_completed(self, checkout: Any) -> None:
        user_id = _metadata(checkout).get("supabase_user_id")
        if not user_id:
            logger.error("No supabase_user_id in checkout session metadata")
            return

        subscription_id = _object_id(checkout.get("subscription"))
        subscription = None
        if subscription_id and self.stripe is not None:
            subscription = await self.stripe.retrieve_subscription(subscription_id)

        if await self._set_user_status(user_id, "active", is_paid=True) is None:
            return

        if subscription is not None:
            now = utc_now()
            start, end = _period(subscription)
            customer = await self.customers.get_by_user(user_id) or StripeCustomer(
                user_id=user_id, stripe_customer_id=""
            )
            customer.stripe_customer_id = _object_id(checkout.get("customer")) or customer.stripe_customer_id
            customer.stripe_subscription_id = subscription_id
            customer.status = subscription.get("status") or "active"
            customer.plan_type = PLAN_SUBSCRIPTION
            customer.current_period_start = _from_timestamp(start) or now
            customer.current_period_end = _from_timestamp(end) or now + timedelta(days=DEFAULT_PERIOD_DAYS)
            customer.cancel_at_period_end = bool(subscription.get("cancel_at_period_end"))
            customer.updated_at = now
            await self.customers.update(customer)

        logger.info(
            f"User {user_id} upgraded to Premium (subscription {subscription_id}, "
            f"from {_metadata(checkout).get('trigger_location', 'direct_link')})"
        )

    async def _subscription_updated(self, subscription: Any) -> None:
        user_id = _metadata(subscription).get("supabase_user_id")
        if not user_id:
            logger.error("No supabase_user_id in subscription metadata")
            return
        status = subscription.get("status") or "active"
        await self._set_user_status(user_id, status, is_paid=status in PAID_STATUSES)

        customer = await self.customers.get_by_user(user_id)
        if customer is not None:
            now = utc_now()
            start, end = _period(subscription)
            customer.status = status
            customer.current_period_start = _from_timestamp(start) or now
            customer.current_period_end = _from_timestamp(end) or now + timedelta(days=DEFAULT_PERIOD_DAYS)
            customer.cancel_at_period_end = bool(subscription.get("cancel_at_period_end"))
            customer.updated_at = now
            await self.customers.update(customer)

    async def _subscription_deleted(self, subscription: Any) -> None:
        user_id = _metadata(subscription).get("supabase_user_id")
        if not user_id:
            logger.error("No supabase_user_id in subscription metadata")
            return
        await self._set_user_status(user_id, "canceled", is_paid=False)
        customer = await self.customers.get_by_user(user_id)
        if customer is not None:
            customer.status = "canceled"
            customer.updated_at = utc_now()
            await self.customers.update(customer)
        logger.info(f"User {user_id} subscription canceled")

    async def _payment_failed(self, invoice: Any) -> None:
        subscription_id = _object_id(invoice.get("subscription"))
        if not subscription_id or self.stripe is None:
            return
        subscription = await self.stripe.retrieve_subscription(subscription_id)
        user_id = _metadata(subscription).get("supabase_user_id")
        if not user_id:
            logger.error("No supabase_user_id in subscription metadata")
            return
        await self._set_user_status(user_id, "past_due")
        customer = await self.customers.get_by_user(user_id)
        if customer is not None:
            customer.status = "past_due"
            customer.updated_at = utc_now()
            await self.customers.update(customer)
        logger.warning(f"User {user_id} payment failed for invoice {invoice.get('id')}, status set to past_due")

    async def _gift_checkout_completed(self, checkout: Any) -> None:
        metadata = _metadata(checkout)
        purchaser_email = metadata.get("purchaser_email") or checkout.get("customer_email")
        if not purchaser_email:
            logger.error("No purchaser email in gift checkout session")
            return
        if await self.gift_codes.get_by_checkout_session(checkout["id"]) is not None:
            logger.info(f"Gift code for checkout {checkout['id']} already exists")
            return

        gift = await self.create_gift_code(
            checkout_session_id=checkout["id"],
            payment_intent_id=_object_id(checkout.get("payment_intent")),
            purchaser_email=purchaser_email.lower(),
            purchaser_name=metadata.get("purchaser_name"),
            purchaser_user_id=metadata.get("purchaser_user_id"),
            amount_paid_cents=checkout.get("amount_total") or GIFT_PRICE_CENTS,
        )
        if self.notifications is not None:
            await self.notifications.send(
                "gift_code",
                gift.purchaser_email,
                {
                    "purchaser_name": gift.purchaser_name,
                    "code": gift.code,
                    "redeem_link": f"{settings.app_url.rstrip('/')}/gift/redeem?code={gift.code}",
                    "expires_on": gift.expires_at.strftime("%B %d, %Y"),
                },
            )

    async def _charge_refunded(self, charge: Any) -> None:
        payment_intent_id = _object_id(charge.get("payment_intent"))
        if not payment_intent_id or self.stripe is None:
            return
        checkout = await self.stripe.find_checkout_session_for_payment_intent(payment_intent_id)
        if checkout is None or _metadata(checkout).get("purchase_type") != "gift":
            return
        await self.mark_gift_refunded(checkout["id"])

    # -----------------------------------------------------------------
    # Gift codes
    # -----------------------------------------------------------------

    async def create_gift_code(
        self,
        *,
        checkout_session_id: Optional[str],
        purchaser_email: str,
        payment_intent_id: Optional[str] = None,
        purchaser_name: Optional[str] = None,
        purchaser_user_id: Optional[str] = None,
        amount_paid_cents: int = GIFT_PRICE_CENTS,
    ) -> GiftCode:
        """Issue an active code valid for one year from purchase."""
        code = generate_gift_code()
        while await self.gift_codes.get_by_code(code) is not None:
            code = generate_gift_code()
        gift = await self.gift_codes.create(
            GiftCode(
                code=code,
                stripe_checkout_session_id=checkout_session_id,
                stripe_payment_intent_id=payment_intent_id,
                amount_paid_cents=amount_paid_cents,
                purchaser_email=purchaser_email,
                purchaser_name=purchaser_name,
                purchaser_user_id=purchaser_user_id,
                status="active",
                expires_at=add_one_year(utc_now()),
            )
        )
        logger.info(f"Gift code created for {purchaser_email} (checkout {checkout_session_id})")
        return gift

    async def get_gift_for_checkout(self, checkout_session_id: str) -> Optional[GiftCode]:
        return await self.gift_codes.get_by_checkout_session(checkout_session_id)

    async def validate_gift_code(self, code: str) -> Tuple[GiftValidationResponse, Optional[GiftCode]]:
        normalized = normalize_gift_code(code)
        if len(normalized) < 16:
            return GiftValidationResponse(valid=False, error="Invalid gift code format"), None

        gift = await self.gift_codes.get_by_code(normalized)
        if gift is None:
            return GiftValidationResponse(valid=False, code=normalized, error="Gift code not found"), None

        error = None
        if gift.status == "redeemed":
            error = "This gift code has already been redeemed"
        elif gift.status == "refunded":
            error = "This gift code has been refunded"
        elif gift.status == "expired":
            error = "This gift code has expired"
        elif gift.expires_at < utc_now():
            gift.status = "expired"
            gift = await self.gift_codes.update(gift)
            error = "This gift code has expired"
        elif gift.status == "pending":
            error = "This gift code is not yet active"

        return (
            GiftValidationResponse(
                valid=error is None,
                code=gift.code,
                error=error,
                expires_at=gift.expires_at,
                purchaser_name=gift.purchaser_name,
            ),
            gift,
        )

    async def redeem_gift_code(self, user: User, code: str) -> GiftRedeemResponse:
        """
        Redeem a gift for ``user``.

        An active subscription with a known end date is extended by a year;
        otherwise a new one-year gift plan starts today. The code is claimed
        first and everything is committed together, so a code grants one year
        even when two redemptions race.
        """
        validation, gift = await self.validate_gift_code(code)
        if not validation.valid or gift is None:
            raise ValidationFailedError(validation.error or "Invalid gift code")

        now = utc_now()
        if not await self.gift_codes.claim(gift, user.id, user.email, user.name, now):
            logger.warning(f"Gift code {gift.id} was claimed before user {user.id} could redeem it")
            raise ValidationFailedError("This gift code has already been redeemed")

        customer = await self.customers.get_by_user(user.id)
        extended = customer is not None and customer.status == "active" and customer.current_period_end is not None
        if extended:
            customer.current_period_end = add_one_year(customer.current_period_end)
            customer.plan_type = PLAN_GIFT
        else:
            customer = customer or StripeCustomer(user_id=user.id, stripe_customer_id=f"gift_{gift.id}")
            customer.stripe_customer_id = customer.stripe_customer_id or f"gift_{gift.id}"
            customer.status = "active"
            customer.plan_type = PLAN_GIFT
            customer.current_period_start = now
            customer.current_period_end = add_one_year(now)
            customer.cancel_at_period_end = False
        customer.updated_at = now
        self.session.add(customer)

        user.is_paid = True
        user.subscription_status = "active"
        user.updated_at = now
        self.session.add(user)
        await PromptService(self.session).unlock_prompts(user.id, commit=False)

        await self.session.commit()
        await self.session.refresh(customer)
        logger.info(f"User {user.id} redeemed gift code {gift.id} (extended: {extended})")

        return GiftRedeemResponse(
            plan_type=PLAN_GIFT, current_period_end=customer.current_period_end, extended=extended
        )

    async def mark_gift_refunded(self, checkout_session_id: str) -> bool:
        """Refund only codes that are still active."""
        gift = await self.gift_codes.get_by_checkout_session(checkout_session_id)
        if gift is None or gift.status != "active":
            return False
        gift.status = "refunded"
        await self.gift_codes.update(gift)
        logger.info(f"Gift code for checkout {checkout_session_id} marked refunded")
        return True
