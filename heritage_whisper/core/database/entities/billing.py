"""
Billing entity models.

``StripeCustomer`` tracks one subscription per user. ``GiftCode`` tracks
one-year gift purchases from checkout to redemption or refund.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlmodel import Field

from ..base import Base, new_id, utc_now


class StripeCustomer(Base, table=True):
    """Subscription state for a user.

    Table: stripe_customers
    """

    __tablename__ = "stripe_customers"
    __table_args__ = ({"extend_existing": True},)

    id: str = Field(default_factory=new_id, primary_key=True)
    user_id: str = Field(foreign_key="users.id", unique=True, index=True)
    stripe_customer_id: str
    stripe_subscription_id: Optional[str] = Field(default=None)
    status: str = Field(default="active", description="active, trialing, past_due, canceled")
    plan_type: str = Field(default="founding_family", description="founding_family, gift_annual")
    current_period_start: Optional[datetime] = Field(default=None)
    current_period_end: Optional[datetime] = Field(default=None)
    cancel_at_period_end: bool = Field(default=False)
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now, sa_column_kwargs={"onupdate": utc_now})


class GiftCode(Base, table=True):
    """Prepaid year of membership.

    Table: gift_codes
    """

    __tablename__ = "gift_codes"
    __table_args__ = ({"extend_existing": True},)

    id: str = Field(default_factory=new_id, primary_key=True)
    code: str = Field(unique=True, index=True, description="GIFT-XXXX-XXXX-XXXX")
    stripe_checkout_session_id: Optional[str] = Field(default=None)
    stripe_payment_intent_id: Optional[str] = Field(default=None, index=True)
    amount_paid_cents: int = Field(default=7900)
    purchaser_email: str
    purchaser_name: Optional[str] = Field(default=None)
    purchaser_user_id: Optional[str] = Field(default=None)
    recipient_email: Optional[str] = Field(default=None)
    recipient_name: Optional[str] = Field(default=None)
    redeemed_by_user_id: Optional[str] = Field(default=None)
    redeemed_at: Optional[datetime] = Field(default=None)
    status: str = Field(default="pending", description="pending, active, redeemed, expired, refunded")
    expires_at: datetime
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now, sa_column_kwargs={"onupdate": utc_now})
