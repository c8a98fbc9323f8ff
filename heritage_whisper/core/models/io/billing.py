"""
Billing and gift code I/O models.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from .types import Email


class CheckoutRequest(BaseModel):
    trigger_location: str = Field(default="unknown", max_length=60, description="Where the upgrade was started")


class CheckoutResponse(BaseModel):
    url: str
    session_id: str


class GiftCheckoutRequest(BaseModel):
    purchaser_email: Email
    purchaser_name: Optional[str] = Field(default=None, max_length=120)


class GiftCodeRequest(BaseModel):
    code: str = Field(min_length=1, max_length=40)


class GiftValidationResponse(BaseModel):
    valid: bool
    code: Optional[str] = None
    error: Optional[str] = None
    expires_at: Optional[datetime] = None
    purchaser_name: Optional[str] = None


class GiftRedeemResponse(BaseModel):
    success: bool = True
    plan_type: str
    current_period_end: datetime
    extended: bool = Field(description="An active subscription was extended instead of starting a new plan")


class WebhookAck(BaseModel):
    received: bool = True
