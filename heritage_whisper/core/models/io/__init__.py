"""
I/O models for API requests and responses.

This package contains Pydantic-based I/O schemas that define the contract
between API endpoints and clients. These models are separate from database
entities to allow independent evolution of API contracts.

Modules:
- users: profile, export and activity models
- stories: stories, photos, timeline and book models
- prompts: generated, catalog and follow-up prompt models
- family: family members, invites, sessions and family prompts
- shares: share link models
- treasures: keepsake photo models
- billing: checkout and gift code models
- transcription: transcription and transcript clean-up models
"""

from .billing import (
    CheckoutRequest,
    CheckoutResponse,
    GiftCheckoutRequest,
    GiftCodeRequest,
    GiftRedeemResponse,
    GiftValidationResponse,
    WebhookAck,
)
from .family import (
    FamilyInviteCreate,
    FamilyJoinRequest,
    FamilyJoinResponse,
    FamilyMemberList,
    FamilyMemberRead,
    FamilyMemberUpdate,
    FamilyPromptCreate,
    FamilyPromptRead,
    FamilyPromptUpdate,
    FamilySessionRead,
    InviteSentResponse,
    PermissionLevel,
)
from .prompts import (
    CatalogCategoryRead,
    CatalogItemRead,
    CatalogResponse,
    FollowUpRequest,
    FollowUpResponse,
    NextPromptResponse,
    PromptActionRequest,
    PromptActionResponse,
    PromptRead,
    PromptSource,
    SavedPromptList,
    SavedPromptRead,
    SkipPromptResponse,
)
from .shares import ShareCreate, SharedTimelineResponse, SharePermission, ShareRead, ShareUpdate
from .stories import (
    MAX_PHOTOS_PER_STORY,
    BookResponse,
    PhotoCreate,
    PhotoRead,
    PhotoTransform,
    PhotoUpdate,
    StoryCreate,
    StoryListResponse,
    StoryRead,
    StoryUpdate,
    TimelineResponse,
    TimelineSectionRead,
)
from .transcription import EnhanceRequest, EnhanceResponse, TranscribeJsonRequest, TranscriptionResponse
from .treasures import TreasureCreate, TreasureRead, TreasureUpdate
from .users import AccountExport, ActivityEventRead, ProfileUpdate, UserRead

__all__ = [
    "MAX_PHOTOS_PER_STORY",
    "AccountExport",
    "ActivityEventRead",
    "BookResponse",
    "CatalogCategoryRead",
    "CatalogItemRead",
    "CatalogResponse",
    "CheckoutRequest",
    "CheckoutResponse",
    "EnhanceRequest",
    "EnhanceResponse",
    "FamilyInviteCreate",
    "FamilyJoinRequest",
    "FamilyJoinResponse",
    "FamilyMemberList",
    "FamilyMemberRead",
    "FamilyMemberUpdate",
    "FamilyPromptCreate",
    "FamilyPromptRead",
    "FamilyPromptUpdate",
    "FamilySessionRead",
    "FollowUpRequest",
    "FollowUpResponse",
    "GiftCheckoutRequest",
    "GiftCodeRequest",
    "GiftRedeemResponse",
    "GiftValidationResponse",
    "InviteSentResponse",
    "NextPromptResponse",
    "PermissionLevel",
    "PhotoCreate",
    "PhotoRead",
    "PhotoTransform",
    "PhotoUpdate",
    "ProfileUpdate",
    "PromptActionRequest",
    "PromptActionResponse",
    "PromptRead",
    "PromptSource",
    "SavedPromptList",
    "SavedPromptRead",
    "ShareCreate",
    "SharePermission",
    "ShareRead",
    "ShareUpdate",
    "SharedTimelineResponse",
    "SkipPromptResponse",
    "StoryCreate",
    "StoryListResponse",
    "StoryRead",
    "StoryUpdate",
    "TimelineResponse",
    "TimelineSectionRead",
    "TranscribeJsonRequest",
    "TranscriptionResponse",
    "TreasureCreate",
    "TreasureRead",
    "TreasureUpdate",
    "UserRead",
    "WebhookAck",
]
