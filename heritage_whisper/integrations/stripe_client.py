"""Stripe access for subscriptions, gift purchases and webhooks.

The official ``stripe`` SDK is synchronous; calls run in a worker thread so
they never block the event loop.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, Optional

import stripe

from .errors import BillingError

logger = logging.getLogger(__name__)


class StripeBillingClient:
    """Wrapper over the Stripe SDK with the calls HeritageWhisper needs.

    Args:
        secret_key: Stripe secret API key.
        webhook_secret: Signing secret used to verify webhook payloads.
        price_id: Price of the annual subscription.
        gift_price_id: Price of a one-year gift code.
        app_url: Public web application URL used for redirect targets.
    """

    def __init__(
        self,
        secret_key: str,
        *,
        webhook_secret: Optional[str] = None,
        price_id: Optional[str] = None,
        gift_price_id: Optional[str] = None,
        app_url: str = "http://localhost:3000",
    ) -> None:
        self.secret_key = secret_key
        self.webhook_secret = webhook_secret
        self.price_id = price_id
        self.gift_price_id = gift_price_id
        self.app_url = app_url.rstrip("/")

    async def _call(self, operation: str, func: Any, *args: Any, **kwargs: Any) -> Any:
        try:
            return await asyncio.to_thread(func, *args, api_key=self.secret_key, **kwargs)
        except stripe.StripeError as e:
            raise BillingError(
                f"Stripe {operation} failed: {e.user_message or e}",
                status_code=e.http_status,
                details=str(e),
            ) from e

    async def get_or_create_customer(self, *, user_id: str, email: str, name: Optional[str] = None) -> str:
        existing = await self._call("customer search", stripe.Customer.list, email=email, limit=1)
        if existing.data:
            return existing.data[0].id
        customer = await self._call(
            "customer create", stripe.Customer.create, email=email, name=name, metadata={"supabase_user_id": user_id}
        )
        return customer.id

    async def has_active_subscription(self, customer_id: str) -> bool:
        subscriptions = await self._call(
            "subscription list", stripe.Subscription.list, customer=customer_id, status="active", limit=1
        )
        return bool(subscriptions.data)

    async def create_subscription_checkout(
        self, *, customer_id: str, user_id: str, trigger_location: str
    ) -> Dict[str, str]:
        if not self.price_id:
            raise BillingError("Subscription price is not configured", status_code=503)
        session = await self._call(
            "checkout create",
            stripe.checkout.Session.create,
            customer=customer_id,
            mode="subscription",
            payment_method_types=["card"],
            line_items=[{"price": self.price_id, "quantity": 1}],
            success_url=f"{self.app_url}/upgrade/success?session_id={{CHECKOUT_SESSION_ID}}",
            cancel_url=f"{self.app_url}/upgrade?canceled=true",
            metadata={"supabase_user_id": user_id, "trigger_location": trigger_location},
            subscription_data={"metadata": {"supabase_user_id": user_id}},
            allow_promotion_codes=True,
            billing_address_collection="required",
        )
        logger.info("Created subscription checkout %s for user %s", session.id, user_id)
        return {"url": session.url, "session_id": session.id}

    async def create_gift_checkout(
        self, *, purchaser_email: str, purchaser_name: Optional[str] = None, purchaser_user_id: Optional[str] = None
    ) -> Dict[str, str]:
        if not self.gift_price_id:
            raise BillingError("Gift price is not configured", status_code=503)
        metadata = {"purchase_type": "gift", "purchaser_email": purchaser_email}
        if purchaser_name:
            metadata["purchaser_name"] = purchaser_name
        if purchaser_user_id:
            metadata["purchaser_user_id"] = purchaser_user_id
        session = await self._call(
            "gift checkout create",
            stripe.checkout.Session.create,
            mode="payment",
            payment_method_types=["card"],
            customer_email=purchaser_email,
            line_items=[{"price": self.gift_price_id, "quantity": 1}],
            success_url=f"{self.app_url}/gift/success?session_id={{CHECKOUT_SESSION_ID}}",
            cancel_url=f"{self.app_url}/gift?canceled=true",
            metadata=metadata,
        )
        logger.info("Created gift checkout %s for %s", session.id, purchaser_email)
        return {"url": session.url, "session_id": session.id}

    async def retrieve_subscription(self, subscription_id: str) -> Any:
        return await self._call("subscription retrieve", stripe.Subscription.retrieve, subscription_id)

    async def find_checkout_session_for_payment_intent(self, payment_intent_id: str) -> Optional[Any]:
        sessions = await self._call(
            "checkout list", stripe.checkout.Session.list, payment_intent=payment_intent_id, limit=1
        )
        return sessions.data[0] if sessions.data else None

    def construct_event(self, payload: bytes, signature: Optional[str]) -> Any:
        """Verify a webhook payload and return the parsed event."""
        if not self.webhook_secret:
            raise BillingError("Webhook secret is not configured", status_code=503)
        if not signature:
            raise BillingError("Missing stripe-signature header", status_code=400)
        try:
            return stripe.Webhook.construct_event(payload, signature, self.webhook_secret)
        except (ValueError, stripe.SignatureVerificationError) as e:
            raise BillingError("Invalid signature", status_code=400, details=str(e)) from e
