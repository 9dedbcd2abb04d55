"""Initial schema: user, shortlink, clickevent

Revision ID: 0001_initial_schema
"""
from alembic import op
import sqlalchemy as sa

revision = "0001_initial_schema"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "user",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("email", sa.String(), nullable=False),
        sa.Column("username", sa.String(64), nullable=False),
        sa.Column("display_name", sa.String(100), nullable=True),
        sa.Column("bio", sa.Text(), nullable=True),
        sa.Column("subdomain", sa.String(63), nullable=True),
        sa.Column("custom_domain", sa.String(255), nullable=True),
        sa.Column("domain_verified", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("root_domain_mode", sa.String(16), nullable=False, server_default="profile"),
        sa.Column("root_domain_redirect_url", sa.String(2048), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("ix_user_id", "user", ["id"])
    op.create_index("ix_user_email", "user", ["email"], unique=True)
    op.create_index("ix_user_username", "user", ["username"], unique=True)
    op.create_index("ix_user_subdomain", "user", ["subdomain"], unique=True)
    op.create_index("ix_user_custom_domain", "user", ["custom_domain"], unique=True)

    op.create_table(
        "shortlink",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("user_id", sa.Uuid(), sa.ForeignKey("user.id", ondelete="CASCADE"), nullable=False),
        sa.Column("slug", sa.String(64), nullable=False),
        sa.Column("title", sa.String(200), nullable=True),
        sa.Column("target_url", sa.String(2048), nullable=False),
        sa.Column("position", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("clicks", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.UniqueConstraint("user_id", "slug", name="uq_shortlink_user_slug"),
    )
    op.create_index("ix_shortlink_id", "shortlink", ["id"])
    op.create_index("ix_shortlink_user_id", "shortlink", ["user_id"])
    op.create_index("ix_shortlink_slug", "shortlink", ["slug"])

    op.create_table(
        "clickevent",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("user_id", sa.Uuid(), sa.ForeignKey("user.id", ondelete="CASCADE"), nullable=False),
        sa.Column("link_id", sa.Uuid(), sa.ForeignKey("shortlink.id", ondelete="SET NULL"), nullable=True),
        sa.Column("event_type", sa.String(32), nullable=False),
        sa.Column("target_url", sa.String(2048), nullable=False),
        sa.Column("custom_domain", sa.String(255), nullable=True),
        sa.Column("subdomain", sa.String(63), nullable=True),
        sa.Column("client_ip", sa.String(45), nullable=True),
        sa.Column("user_agent", sa.String(512), nullable=True),
        sa.Column("referer", sa.String(2048), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index("ix_clickevent_id", "clickevent", ["id"])
    op.create_index("ix_clickevent_user_id", "clickevent", ["user_id"])
    op.create_index("ix_clickevent_link_id", "clickevent", ["link_id"])
    op.create_index("ix_clickevent_created_at", "clickevent", ["created_at"])


def downgrade() -> None:
    op.drop_table("clickevent")
    op.drop_table("shortlink")
    op.drop_table("user")
