"""Initial schema for HeritageWhisper

Revision ID: 20260301_000000
Revises: None
Create Date: 2026-03-01 00:00:00.000000

Creates every table the service uses:
- Storytellers and their stories and treasures
- Storytelling prompts (active, history, catalog selections)
- Family sharing (members, invites, sessions, submitted prompts)
- Share links and the activity feed
- Billing (Stripe customers and gift codes)

Revision format: YYYYMMDD_HHMMSS_description

"""

from typing import Sequence, Union

import sqlalchemy as sa

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "20260301_000000"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create all tables."""

    op.create_table(
        "users",
        sa.Column("id", sa.String(), nullable=False),
        sa.Column("email", sa.String(), nullable=False),
        sa.Column("name", sa.String(), nullable=False, server_default="User"),
        sa.Column("birth_year", sa.Integer(), nullable=True),
        sa.Column("bio", sa.Text(), nullable=True),
        sa.Column("profile_photo_url", sa.String(), nullable=True),
        sa.Column("email_notifications", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("weekly_digest", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("default_story_visibility", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("story_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("free_stories_used", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("is_paid", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("subscription_status", sa.String(), nullable=False, server_default="none"),
        sa.Column("pdf_exports_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("last_pdf_export_at", sa.DateTime(), nullable=True),
        sa.Column("data_exports_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("last_data_export_at", sa.DateTime(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_users_email", "users", ["email"], unique=True)

    op.create_table(
        "stories",
        sa.Column("id", sa.String(), nullable=False),
        sa.Column("user_id", sa.String(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("title", sa.String(), nullable=False),
        sa.Column("transcription", sa.Text(), nullable=True),
        sa.Column("audio_url", sa.String(), nullable=True),
        sa.Column("duration_seconds", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("wisdom_clip_text", sa.Text(), nullable=True),
        sa.Column("wisdom_clip_url", sa.String(), nullable=True),
        sa.Column("story_year", sa.Integer(), nullable=True),
        sa.Column("story_date", sa.DateTime(), nullable=True),
        sa.Column("life_age", sa.Integer(), nullable=True),
        sa.Column("lesson_learned", sa.Text(), nullable=True),
        sa.Column("photo_url", sa.String(), nullable=True),
        sa.Column("pivotal_category", sa.String(), nullable=True),
        sa.Column("include_in_book", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("include_in_timeline", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("is_favorite", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("source_prompt_id", sa.String(), nullable=True),
        sa.Column("photos", sa.Text(), nullable=False, server_default="[]"),
        sa.Column("emotions", sa.Text(), nullable=False, server_default="[]"),
        sa.Column("photo_transform", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_stories_user_id", "stories", ["user_id"])
    op.create_index("ix_stories_story_year", "stories", ["story_year"])

    op.create_table(
        "treasures",
        sa.Column("id", sa.String(), nullable=False),
        sa.Column("user_id", sa.String(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("title", sa.String(), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("category", sa.String(), nullable=False, server_default="other"),
        sa.Column("image_url", sa.String(), nullable=False),
        sa.Column("year", sa.Integer(), nullable=True),
        sa.Column("linked_story_id", sa.String(), nullable=True),
        sa.Column("transform", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_treasures_user_id", "treasures", ["user_id"])

    op.create_table(
        "active_prompts",
        sa.Column("id", sa.String(), nullable=False),
        sa.Column("user_id", sa.String(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("prompt_text", sa.Text(), nullable=False),
        sa.Column("context_note", sa.Text(), nullable=True),
        sa.Column("anchor_entity", sa.String(), nullable=True),
        sa.Column("anchor_year", sa.Integer(), nullable=True),
        sa.Column("anchor_hash", sa.String(), nullable=False),
        sa.Column("tier", sa.Integer(), nullable=False),
        sa.Column("memory_type", sa.String(), nullable=True),
        sa.Column("prompt_score", sa.Integer(), nullable=True),
        sa.Column("score_reason", sa.Text(), nullable=True),
        sa.Column("model_version", sa.String(), nullable=True),
        sa.Column("expires_at", sa.DateTime(), nullable=False),
        sa.Column("is_locked", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("shown_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("last_shown_at", sa.DateTime(), nullable=True),
        sa.Column("user_status", sa.String(), nullable=False, server_default="available"),
        sa.Column("queue_position", sa.Integer(), nullable=True),
        sa.Column("queued_at", sa.DateTime(), nullable=True),
        sa.Column("dismissed_at", sa.DateTime(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("user_id", "anchor_hash", name="uq_active_prompts_user_anchor"),
    )
    op.create_index("ix_active_prompts_user_id", "active_prompts", ["user_id"])

    op.create_table(
        "prompt_history",
        sa.Column("id", sa.String(), nullable=False),
        sa.Column("user_id", sa.String(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("prompt_text", sa.Text(), nullable=False),
        sa.Column("anchor_hash", sa.String(), nullable=True),
        sa.Column("anchor_entity", sa.String(), nullable=True),
        sa.Column("anchor_year", sa.Integer(), nullable=True),
        sa.Column("tier", sa.Integer(), nullable=True),
        sa.Column("memory_type", sa.String(), nullable=True),
        sa.Column("prompt_score", sa.Integer(), nullable=True),
        sa.Column("shown_count", sa.Integer(), nullable=True),
        sa.Column("outcome", sa.String(), nullable=False),
        sa.Column("story_id", sa.String(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=True),
        sa.Column("resolved_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_prompt_history_user_id", "prompt_history", ["user_id"])

    op.create_table(
        "user_prompts",
        sa.Column("id", sa.String(), nullable=False),
        sa.Column("user_id", sa.String(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("text", sa.Text(), nullable=False),
        sa.Column("category", sa.String(), nullable=False),
        sa.Column("source", sa.String(), nullable=False, server_default="catalog"),
        sa.Column("status", sa.String(), nullable=False, server_default="ready"),
        sa.Column("queue_position", sa.Integer(), nullable=True),
        sa.Column("queued_at", sa.DateTime(), nullable=True),
        sa.Column("dismissed_at", sa.DateTime(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_user_prompts_user_id", "user_prompts", ["user_id"])

    op.create_table(
        "family_members",
        sa.Column("id", sa.String(), nullable=False),
        sa.Column("user_id", sa.String(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("email", sa.String(), nullable=False),
        sa.Column("name", sa.String(), nullable=True),
        sa.Column("relationship", sa.String(), nullable=True),
        sa.Column("status", sa.String(), nullable=False, server_default="pending"),
        sa.Column("permission_level", sa.String(), nullable=False, server_default="viewer"),
        sa.Column("email_notifications", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("custom_message", sa.Text(), nullable=True),
        sa.Column("invited_at", sa.DateTime(), nullable=False),
        sa.Column("first_accessed_at", sa.DateTime(), nullable=True),
        sa.Column("last_accessed_at", sa.DateTime(), nullable=True),
        sa.Column("access_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("last_story_notification_sent_at", sa.DateTime(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_family_members_user_id", "family_members", ["user_id"])
    op.create_index("ix_family_members_email", "family_members", ["email"])

    op.create_table(
        "family_invites",
        sa.Column("id", sa.String(), nullable=False),
        sa.Column("family_member_id", sa.String(), sa.ForeignKey("family_members.id"), nullable=False),
        sa.Column("token", sa.String(), nullable=False),
        sa.Column("expires_at", sa.DateTime(), nullable=False),
        sa.Column("used_at", sa.DateTime(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_family_invites_family_member_id", "family_invites", ["family_member_id"])
    op.create_index("ix_family_invites_token", "family_invites", ["token"], unique=True)

    op.create_table(
        "family_sessions",
        sa.Column("id", sa.String(), nullable=False),
        sa.Column("family_member_id", sa.String(), sa.ForeignKey("family_members.id"), nullable=False),
        sa.Column("token", sa.String(), nullable=False),
        sa.Column("user_agent", sa.String(), nullable=True),
        sa.Column("ip_address", sa.String(), nullable=True),
        sa.Column("expires_at", sa.DateTime(), nullable=False),
        sa.Column("absolute_expires_at", sa.DateTime(), nullable=False),
        sa.Column("last_active_at", sa.DateTime(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_family_sessions_family_member_id", "family_sessions", ["family_member_id"])
    op.create_index("ix_family_sessions_token", "family_sessions", ["token"], unique=True)

    op.create_table(
        "family_prompts",
        sa.Column("id", sa.String(), nullable=False),
        sa.Column("storyteller_user_id", sa.String(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("family_member_id", sa.String(), sa.ForeignKey("family_members.id"), nullable=False),
        sa.Column("prompt_text", sa.Text(), nullable=False),
        sa.Column("context", sa.Text(), nullable=True),
        sa.Column("status", sa.String(), nullable=False, server_default="pending"),
        sa.Column("answered_story_id", sa.String(), nullable=True),
        sa.Column("answered_at", sa.DateTime(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_family_prompts_storyteller_user_id", "family_prompts", ["storyteller_user_id"])

    op.create_table(
        "shared_access",
        sa.Column("id", sa.String(), nullable=False),
        sa.Column("owner_user_id", sa.String(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("shared_with_email", sa.String(), nullable=False),
        sa.Column("permission_level", sa.String(), nullable=False, server_default="view"),
        sa.Column("share_token", sa.String(), nullable=False),
        sa.Column("expires_at", sa.DateTime(), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("last_accessed_at", sa.DateTime(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_shared_access_owner_user_id", "shared_access", ["owner_user_id"])
    op.create_index("ix_shared_access_share_token", "shared_access", ["share_token"], unique=True)

    op.create_table(
        "activity_events",
        sa.Column("id", sa.String(), nullable=False),
        sa.Column("user_id", sa.String(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("actor_id", sa.String(), nullable=True),
        sa.Column("family_member_id", sa.String(), nullable=True),
        sa.Column("story_id", sa.String(), nullable=True),
        sa.Column("event_type", sa.String(), nullable=False),
        sa.Column("event_metadata", sa.Text(), nullable=False, server_default="{}"),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_activity_events_user_id", "activity_events", ["user_id"])
    op.create_index("ix_activity_events_created_at", "activity_events", ["created_at"])

    op.create_table(
        "stripe_customers",
        sa.Column("id", sa.String(), nullable=False),
        sa.Column("user_id", sa.String(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("stripe_customer_id", sa.String(), nullable=False),
        sa.Column("stripe_subscription_id", sa.String(), nullable=True),
        sa.Column("status", sa.String(), nullable=False, server_default="active"),
        sa.Column("plan_type", sa.String(), nullable=False, server_default="founding_family"),
        sa.Column("current_period_start", sa.DateTime(), nullable=True),
        sa.Column("current_period_end", sa.DateTime(), nullable=True),
        sa.Column("cancel_at_period_end", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_stripe_customers_user_id", "stripe_customers", ["user_id"], unique=True)

    op.create_table(
        "gift_codes",
        sa.Column("id", sa.String(), nullable=False),
        sa.Column("code", sa.String(), nullable=False),
        sa.Column("stripe_checkout_session_id", sa.String(), nullable=True),
        sa.Column("stripe_payment_intent_id", sa.String(), nullable=True),
        sa.Column("amount_paid_cents", sa.Integer(), nullable=False, server_default="7900"),
        sa.Column("purchaser_email", sa.String(), nullable=False),
        sa.Column("purchaser_name", sa.String(), nullable=True),
        sa.Column("purchaser_user_id", sa.String(), nullable=True),
        sa.Column("recipient_email", sa.String(), nullable=True),
        sa.Column("recipient_name", sa.String(), nullable=True),
        sa.Column("redeemed_by_user_id", sa.String(), nullable=True),
        sa.Column("redeemed_at", sa.DateTime(), nullable=True),
        sa.Column("status", sa.String(), nullable=False, server_default="pending"),
        sa.Column("expires_at", sa.DateTime(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_gift_codes_code", "gift_codes", ["code"], unique=True)
    op.create_index("ix_gift_codes_stripe_payment_intent_id", "gift_codes", ["stripe_payment_intent_id"])


def downgrade() -> None:
    """Drop all tables created in upgrade."""
    op.drop_table("gift_codes")
    op.drop_table("stripe_customers")
    op.drop_table("activity_events")
    op.drop_table("shared_access")
    op.drop_table("family_prompts")
    op.drop_table("family_sessions")
    op.drop_table("family_invites")
    op.drop_table("family_members")
    op.drop_table("user_prompts")
    op.drop_table("prompt_history")
    op.drop_table("active_prompts")
    op.drop_table("treasures")
    op.drop_table("stories")
    op.drop_table("users")
