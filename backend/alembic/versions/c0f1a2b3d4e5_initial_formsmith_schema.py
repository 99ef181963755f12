"""initial formsmith schema: users, forms, responses, collaboration and integrations

Revision ID: c0f1a2b3d4e5
Revises:
Create Date: 2026-10-19 09:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = "c0f1a2b3d4e5"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

SHARE_ROLES = ("owner", "editor", "viewer", "response_manager")
TEMPLATE_CATEGORIES = (
    "contact",
    "survey",
    "registration",
    "feedback",
    "product",
    "education",
    "travel",
    "appointment",
    "event",
    "other",
)


def _timestamps(updated: bool = True) -> list[sa.Column]:
    columns = [
        sa.Column("created_at", sa.DateTime(), server_default=sa.text("now()"), nullable=False),
    ]
    if updated:
        columns.append(
            sa.Column("updated_at", sa.DateTime(), server_default=sa.text("now()"), nullable=False)
        )
    return columns


def upgrade() -> None:
    share_role = postgresql.ENUM(*SHARE_ROLES, name="share_role", create_type=False)
    share_role.create(op.get_bind(), checkfirst=True)
    template_category = postgresql.ENUM(*TEMPLATE_CATEGORIES, name="template_category", create_type=False)
    template_category.create(op.get_bind(), checkfirst=True)

    # users
    op.create_table(
        "users",
        sa.Column("id", sa.UUID(), nullable=False),
        sa.Column("name", sa.String(length=150), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("password_hash", sa.String(length=255), nullable=False),
        sa.Column("avatar", sa.String(length=500), nullable=True),
        sa.Column("is_active", sa.Boolean(), server_default="true", nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_users_email", "users", ["email"], unique=True)

    # forms
    op.create_table(
        "forms",
        sa.Column("id", sa.UUID(), nullable=False),
        sa.Column("owner_id", sa.UUID(), nullable=False),
        sa.Column("title", sa.String(length=255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("kind", sa.String(length=30), server_default="general", nullable=False),
        sa.Column("kind_details", postgresql.JSONB(), nullable=False),
        sa.Column("fields", postgresql.JSONB(), nullable=False),
        sa.Column("settings", postgresql.JSONB(), nullable=False),
        sa.Column("logo", sa.String(length=1000), nullable=True),
        sa.Column("header_image", sa.String(length=1000), nullable=True),
        sa.Column("source_template_id", sa.UUID(), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(["owner_id"], ["users.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_forms_owner_id", "forms", ["owner_id"], unique=False)
    op.create_index("ix_forms_owner_updated", "forms", ["owner_id", "updated_at"], unique=False)

    # form_responses
    op.create_table(
        "form_responses",
        sa.Column("id", sa.UUID(), nullable=False),
        sa.Column("form_id", sa.UUID(), nullable=False),
        sa.Column("answers", postgresql.JSONB(), nullable=False),
        sa.Column("ip", sa.String(length=64), nullable=True),
        sa.Column("user_agent", sa.String(length=512), nullable=True),
        sa.Column("responder_email", sa.String(length=255), nullable=True),
        sa.Column("send_copy", sa.Boolean(), server_default="false", nullable=False),
        sa.Column(
            "submitted_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        *_timestamps(updated=False),
        sa.ForeignKeyConstraint(["form_id"], ["forms.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_form_responses_form_id", "form_responses", ["form_id"], unique=False)
    op.create_index(
        "ix_form_responses_form_submitted",
        "form_responses",
        ["form_id", "submitted_at"],
        unique=False,
    )

    # form_views
    op.create_table(
        "form_views",
        sa.Column("id", sa.UUID(), nullable=False),
        sa.Column("form_id", sa.UUID(), nullable=False),
        sa.Column("ip", sa.String(length=64), nullable=True),
        sa.Column("user_agent", sa.String(length=512), nullable=True),
        sa.Column(
            "viewed_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.ForeignKeyConstraint(["form_id"], ["forms.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_form_views_form_id", "form_views", ["form_id"], unique=False)

    # comments
    op.create_table(
        "comments",
        sa.Column("id", sa.UUID(), nullable=False),
        sa.Column("response_id", sa.UUID(), nullable=False),
        sa.Column("form_id", sa.UUID(), nullable=False),
        sa.Column("author_id", sa.UUID(), nullable=False),
        sa.Column("parent_id", sa.UUID(), nullable=True),
        sa.Column("text", sa.Text(), nullable=False),
        sa.Column("mentions", postgresql.JSONB(), nullable=False),
        sa.Column("likes", postgresql.JSONB(), nullable=False),
        sa.Column("edited", sa.Boolean(), server_default="false", nullable=False),
        sa.Column("edited_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("is_resolved", sa.Boolean(), server_default="false", nullable=False),
        *_timestamps(),
        sa.ForeignKeyConstraint(["response_id"], ["form_responses.id"]),
        sa.ForeignKeyConstraint(["form_id"], ["forms.id"]),
        sa.ForeignKeyConstraint(["author_id"], ["users.id"]),
        sa.ForeignKeyConstraint(["parent_id"], ["comments.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "ix_comments_response_created", "comments", ["response_id", "created_at"], unique=False
    )
    op.create_index("ix_comments_form_id", "comments", ["form_id"], unique=False)
    op.create_index("ix_comments_author_id", "comments", ["author_id"], unique=False)

    # form_shares
    op.create_table(
        "form_shares",
        sa.Column("id", sa.UUID(), nullable=False),
        sa.Column("form_id", sa.UUID(), nullable=False),
        sa.Column("shared_by_id", sa.UUID(), nullable=False),
        sa.Column("shared_with_id", sa.UUID(), nullable=False),
        sa.Column(
            "role",
            postgresql.ENUM(*SHARE_ROLES, name="share_role", create_type=False),
            server_default="viewer",
            nullable=False,
        ),
        sa.Column("message", sa.Text(), nullable=True),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("shared_at", sa.DateTime(), server_default=sa.text("now()"), nullable=False),
        sa.Column("updated_at", sa.DateTime(), server_default=sa.text("now()"), nullable=False),
        sa.ForeignKeyConstraint(["form_id"], ["forms.id"]),
        sa.ForeignKeyConstraint(["shared_by_id"], ["users.id"]),
        sa.ForeignKeyConstraint(["shared_with_id"], ["users.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("form_id", "shared_with_id", name="uq_form_shares_form_user"),
    )
    op.create_index("ix_form_shares_shared_with_id", "form_shares", ["shared_with_id"], unique=False)

    # templates
    op.create_table(
        "templates",
        sa.Column("id", sa.UUID(), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("description", sa.Text(), server_default="", nullable=False),
        sa.Column(
            "category",
            postgresql.ENUM(*TEMPLATE_CATEGORIES, name="template_category", create_type=False),
            server_default="other",
            nullable=False,
        ),
        sa.Column("thumbnail", sa.String(length=500), server_default="", nullable=False),
        sa.Column("is_premade", sa.Boolean(), server_default="false", nullable=False),
        sa.Column("fields", postgresql.JSONB(), nullable=False),
        sa.Column("settings", postgresql.JSONB(), nullable=False),
        sa.Column("created_by_id", sa.UUID(), nullable=True),
        sa.Column("usage_count", sa.Integer(), server_default="0", nullable=False),
        *_timestamps(),
        sa.ForeignKeyConstraint(["created_by_id"], ["users.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "ix_templates_category_premade", "templates", ["category", "is_premade"], unique=False
    )
    op.create_index("ix_templates_created_by_id", "templates", ["created_by_id"], unique=False)

    # form_versions
    op.create_table(
        "form_versions",
        sa.Column("id", sa.UUID(), nullable=False),
        sa.Column("form_id", sa.UUID(), nullable=False),
        sa.Column("version_number", sa.Integer(), nullable=False),
        sa.Column("fields", postgresql.JSONB(), nullable=False),
        sa.Column("settings", postgresql.JSONB(), nullable=False),
        sa.Column("created_by_id", sa.UUID(), nullable=False),
        sa.Column("changes_summary", sa.Text(), server_default="", nullable=False),
        sa.Column("is_published", sa.Boolean(), server_default="true", nullable=False),
        *_timestamps(updated=False),
        sa.ForeignKeyConstraint(["form_id"], ["forms.id"]),
        sa.ForeignKeyConstraint(["created_by_id"], ["users.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("form_id", "version_number", name="uq_form_versions_form_number"),
    )
    op.create_index("ix_form_versions_form_id", "form_versions", ["form_id"], unique=False)

    # webhooks
    op.create_table(
        "webhooks",
        sa.Column("id", sa.UUID(), nullable=False),
        sa.Column("form_id", sa.UUID(), nullable=False),
        sa.Column("owner_id", sa.UUID(), nullable=False),
        sa.Column("url", sa.String(length=2000), nullable=False),
        sa.Column("events", postgresql.JSONB(), nullable=False),
        sa.Column("secret", sa.String(length=255), nullable=True),
        sa.Column("active", sa.Boolean(), server_default="true", nullable=False),
        sa.Column("max_retries", sa.Integer(), server_default="3", nullable=False),
        sa.Column("retry_delay_ms", sa.Integer(), server_default="1000", nullable=False),
        sa.Column("last_triggered", sa.DateTime(timezone=True), nullable=True),
        sa.Column("last_status", sa.String(length=20), nullable=True),
        sa.Column("success_count", sa.Integer(), server_default="0", nullable=False),
        sa.Column("failure_count", sa.Integer(), server_default="0", nullable=False),
        sa.Column("description", sa.String(length=500), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(["form_id"], ["forms.id"]),
        sa.ForeignKeyConstraint(["owner_id"], ["users.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_webhooks_form_active", "webhooks", ["form_id", "active"], unique=False)
    op.create_index("ix_webhooks_owner_active", "webhooks", ["owner_id", "active"], unique=False)

    # slack_integrations
    op.create_table(
        "slack_integrations",
        sa.Column("id", sa.UUID(), nullable=False),
        sa.Column("form_id", sa.UUID(), nullable=False),
        sa.Column("owner_id", sa.UUID(), nullable=False),
        sa.Column("workspace_id", sa.String(length=100), nullable=True),
        sa.Column("webhook_url", sa.String(length=2000), nullable=True),
        sa.Column("channel", sa.String(length=100), nullable=True),
        sa.Column("bot_token", sa.String(length=500), nullable=True),
        sa.Column("active", sa.Boolean(), server_default="true", nullable=False),
        sa.Column("notify_on", postgresql.JSONB(), nullable=False),
        sa.Column("mention_users", postgresql.JSONB(), nullable=False),
        sa.Column("thread_replies", sa.Boolean(), server_default="false", nullable=False),
        sa.Column("include_answers", sa.Boolean(), server_default="true", nullable=False),
        sa.Column("message_template", sa.Text(), nullable=False),
        sa.Column("notification_count", sa.Integer(), server_default="0", nullable=False),
        sa.Column("error_count", sa.Integer(), server_default="0", nullable=False),
        sa.Column("last_notified_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("error_log", postgresql.JSONB(), nullable=False),
        *_timestamps(),
        sa.ForeignKeyConstraint(["form_id"], ["forms.id"]),
        sa.ForeignKeyConstraint(["owner_id"], ["users.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_slack_integrations_form_id", "slack_integrations", ["form_id"], unique=True)

    # google_sheets_integrations
    op.create_table(
        "google_sheets_integrations",
        sa.Column("id", sa.UUID(), nullable=False),
        sa.Column("form_id", sa.UUID(), nullable=False),
        sa.Column("owner_id", sa.UUID(), nullable=False),
        sa.Column("spreadsheet_id", sa.String(length=255), nullable=False),
        sa.Column("sheet_name", sa.String(length=255), nullable=False),
        sa.Column("refresh_token", sa.Text(), nullable=False),
        sa.Column("access_token", sa.Text(), nullable=False),
        sa.Column("token_expiry", sa.DateTime(timezone=True), nullable=False),
        sa.Column("active", sa.Boolean(), server_default="true", nullable=False),
        sa.Column("sync_on_submit", sa.Boolean(), server_default="true", nullable=False),
        sa.Column("header_row_created", sa.Boolean(), server_default="false", nullable=False),
        sa.Column("last_synced_response_id", sa.UUID(), nullable=True),
        sa.Column("last_sync_time", sa.DateTime(timezone=True), nullable=True),
        sa.Column("sync_count", sa.Integer(), server_default="0", nullable=False),
        sa.Column("error_log", postgresql.JSONB(), nullable=False),
        *_timestamps(),
        sa.ForeignKeyConstraint(["form_id"], ["forms.id"]),
        sa.ForeignKeyConstraint(["owner_id"], ["users.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "ix_google_sheets_integrations_form_id",
        "google_sheets_integrations",
        ["form_id"],
        unique=True,
    )


def downgrade() -> None:
    op.drop_index("ix_google_sheets_integrations_form_id", table_name="google_sheets_integrations")
    op.drop_table("google_sheets_integrations")

    op.drop_index("ix_slack_integrations_form_id", table_name="slack_integrations")
    op.drop_table("slack_integrations")

    op.drop_index("ix_webhooks_owner_active", table_name="webhooks")
    op.drop_index("ix_webhooks_form_active", table_name="webhooks")
    op.drop_table("webhooks")

    op.drop_index("ix_form_versions_form_id", table_name="form_versions")
    op.drop_table("form_versions")

    op.drop_index("ix_templates_created_by_id", table_name="templates")
    op.drop_index("ix_templates_category_premade", table_name="templates")
    op.drop_table("templates")

    op.drop_index("ix_form_shares_shared_with_id", table_name="form_shares")
    op.drop_table("form_shares")

    op.drop_index("ix_comments_author_id", table_name="comments")
    op.drop_index("ix_comments_form_id", table_name="comments")
    op.drop_index("ix_comments_response_created", table_name="comments")
    op.drop_table("comments")

    op.drop_index("ix_form_views_form_id", table_name="form_views")
    op.drop_table("form_views")

    op.drop_index("ix_form_responses_form_submitted", table_name="form_responses")
    op.drop_index("ix_form_responses_form_id", table_name="form_responses")
    op.drop_table("form_responses")

    op.drop_index("ix_forms_owner_updated", table_name="forms")
    op.drop_index("ix_forms_owner_id", table_name="forms")
    op.drop_table("forms")

    op.drop_index("ix_users_email", table_name="users")
    op.drop_table("users")

    op.execute("DROP TYPE IF EXISTS template_category")
    op.execute("DROP TYPE IF EXISTS share_role")
