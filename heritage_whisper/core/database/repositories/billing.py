"""Billing repositories."""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from ..entities.billing import GiftCode, StripeCustomer
from .base import SQLModelRepository


class StripeCustomerRepository(SQLModelRepository[StripeCustomer]):
    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session, StripeCustomer)

    async def get_by_user(self, user_id: str) -> Optional[StripeCustomer]:
        stmt = select(StripeCustomer).where(StripeCustomer.user_id == user_id)
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_by_subscription(self, subscription_id: str) -> Optional[StripeCustomer]:
        stmt = select(StripeCustomer).where(StripeCustomer.stripe_subscription_id == subscription_id)
        result = await self.session.execute(stmt)
        return result.scalars().first()

    async def get_by_customer(self, customer_id: str) -> Optional[StripeCustomer]:
        stmt = select(StripeCustomer).where(StripeCustomer.stripe_customer_id == customer_id)
        result = await self.session.execute(stmt)
        return result.scalars().first()


class GiftCodeRepository(SQLModelRepository[GiftCode]):
    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session, GiftCode)

    async def get_by_code(self, code: str) -> Optional[GiftCode]:
        stmt = select(GiftCode).where(GiftCode.code == code)
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_by_payment_intent(self, payment_intent_id: str) -> Optional[GiftCode]:
        stmt = select(GiftCode).where(GiftCode.stripe_payment_intent_id == payment_intent_id)
        result = await self.session.execute(stmt)
        return result.scalars().first()

    async def get_by_checkout_session(self, session_id: str) -> Optional[GiftCode]:
        stmt = select(GiftCode).where(GiftCode.stripe_checkout_session_id == session_id)
        result = await self.session.execute(stmt)
        return result.scalars().first()

    async def claim(self, gift: GiftCode, user_id: str, email: str, name: Optional[str], now: datetime) -> bool:
        """Mark an active code redeemed by ``user_id``; False when it is no longer active.

        The conditional update is the claim: of two concurrent redemptions only
        one matches ``status = 'active'``. The caller commits.
        """
        stmt = (
            update(GiftCode)
            .where(GiftCode.id == gift.id, GiftCode.status == "active")
            .values(
                status="redeemed",
                redeemed_by_user_id=user_id,
                redeemed_at=now,
                recipient_email=email,
                recipient_name=name,
            )
        )
        result = await self.session.execute(stmt)
        return result.rowcount == 1
