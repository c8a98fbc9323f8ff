"""
Data access layer, one repository per table.

Every repository takes an ``AsyncSession`` and scopes its queries to the
owner where the table has one.
"""

from .activity import ActivityEventRepository
from .base import OwnedRepository, SQLModelRepository, apply_filters, paginate
from .billing import GiftCodeRepository, StripeCustomerRepository
from .family import (
    FamilyInviteRepository,
    FamilyMemberRepository,
    FamilyPromptRepository,
    FamilySessionRepository,
)
from .prompts import ActivePromptRepository, PromptHistoryRepository, UserPromptRepository
from .shares import SharedAccessRepository
from .stories import StoryRepository
from .treasures import TreasureRepository
from .users import UserRepository

__all__ = [
    "ActivePromptRepository",
    "ActivityEventRepository",
    "FamilyInviteRepository",
    "FamilyMemberRepository",
    "FamilyPromptRepository",
    "FamilySessionRepository",
    "GiftCodeRepository",
    "PromptHistoryRepository",
    "OwnedRepository",
    "SQLModelRepository",
    "apply_filters",
    "paginate",
    "SharedAccessRepository",
    "StoryRepository",
    "StripeCustomerRepository",
    "TreasureRepository",
    "UserPromptRepository",
    "UserRepository",
]
