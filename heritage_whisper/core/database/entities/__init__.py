"""
Database entities, one module per business area.

Importing this package registers every table with ``Base.metadata``.
"""

from .activity import ActivityEvent
from .billing import GiftCode, StripeCustomer
from .family import FamilyInvite, FamilyMember, FamilyPrompt, FamilySession
from .prompts import ActivePrompt, PromptHistory, UserPrompt
from .shares import SharedAccess
from .stories import Story
from .treasures import Treasure
from .users import User

__all__ = [
    "ActivePrompt",
    "ActivityEvent",
    "FamilyInvite",
    "FamilyMember",
    "FamilyPrompt",
    "FamilySession",
    "GiftCode",
    "PromptHistory",
    "SharedAccess",
    "Story",
    "StripeCustomer",
    "Treasure",
    "User",
    "UserPrompt",
]
