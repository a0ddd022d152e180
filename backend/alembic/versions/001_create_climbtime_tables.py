"""Create ClimbTime tables

Revision ID: 001
Revises: None
Create Date: 2024-06-01 00:00:00.000000+00:00

What:  Initial schema: users, the post engagement tables, the follow graph
       and direct messaging.
How:   UUID primary keys (generated by the application), TIMESTAMP WITH
       TIME ZONE everywhere, unique constraints for one-like / one-share /
       one-follow per pair.

Rollback: downgrade() drops every table (all data lost).
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers
revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _id_column() -> sa.Column:
    return sa.Column("id", sa.Uuid(), nullable=False)


def _created_at() -> sa.Column:
    return sa.Column(
        "created_at",
        sa.TIMESTAMP(timezone=True),
        server_default=sa.text("CURRENT_TIMESTAMP"),
        nullable=False,
    )


def _user_fk(name: str = "user_id") -> sa.Column:
    return sa.Column(name, sa.Uuid(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False)


def _post_fk() -> sa.Column:
    return sa.Column("post_id", sa.Uuid(), sa.ForeignKey("posts.id", ondelete="CASCADE"), nullable=False)


def upgrade() -> None:
    # ── Users ─────────────────────────────────────────────────────────────
    op.create_table(
        "users",
        _id_column(),
        sa.Column("name", sa.String(50), nullable=False),
        sa.Column("email", sa.String(255), nullable=False, comment="Lowercased login identifier"),
        sa.Column("password_hash", sa.String(255), nullable=False),
        sa.Column("image", sa.Text(), nullable=True),
        sa.Column("banner_image", sa.Text(), nullable=True),
        sa.Column("bio", sa.String(160), nullable=True),
        sa.Column("location", sa.String(30), nullable=True),
        sa.Column("website", sa.String(100), nullable=True),
        _created_at(),
        sa.Column(
            "updated_at",
            sa.TIMESTAMP(timezone=True),
            server_default=sa.text("CURRENT_TIMESTAMP"),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_users_email", "users", ["email"], unique=True)

    # ── Posts ─────────────────────────────────────────────────────────────
    op.create_table(
        "posts",
        _id_column(),
        sa.Column("content", sa.String(500), nullable=False),
        sa.Column("image_url", sa.Text(), nullable=True),
        _user_fk(),
        _created_at(),
        sa.Column(
            "updated_at",
            sa.TIMESTAMP(timezone=True),
            server_default=sa.text("CURRENT_TIMESTAMP"),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("id"),
    )
    # Feed and profile timelines read newest first
    op.create_index("idx_posts_created_at", "posts", [sa.text("created_at DESC")])
    op.create_index("idx_posts_user_created", "posts", ["user_id", sa.text("created_at DESC")])

    # ── Engagement ────────────────────────────────────────────────────────
    op.create_table(
        "likes",
        _id_column(),
        _user_fk(),
        _post_fk(),
        _created_at(),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("user_id", "post_id", name="uq_likes_user_post"),
    )
    op.create_index("ix_likes_post_id", "likes", ["post_id"])

    op.create_table(
        "comments",
        _id_column(),
        sa.Column("content", sa.String(500), nullable=False),
        _user_fk(),
        _post_fk(),
        _created_at(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_comments_post_id", "comments", ["post_id"])

    op.create_table(
        "shares",
        _id_column(),
        _user_fk(),
        _post_fk(),
        _created_at(),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("user_id", "post_id", name="uq_shares_user_post"),
    )
    op.create_index("ix_shares_post_id", "shares", ["post_id"])

    # ── Follow graph ──────────────────────────────────────────────────────
    op.create_table(
        "follows",
        _id_column(),
        _user_fk("follower_id"),
        _user_fk("following_id"),
        _created_at(),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("follower_id", "following_id", name="uq_follows_pair"),
        sa.CheckConstraint("follower_id <> following_id", name="ck_follows_not_self"),
    )
    op.create_index("ix_follows_follower_id", "follows", ["follower_id"])
    op.create_index("ix_follows_following_id", "follows", ["following_id"])

    # ── Messaging ─────────────────────────────────────────────────────────
    op.create_table(
        "conversations",
        _id_column(),
        _user_fk("initiator_id"),
        _user_fk("receiver_id"),
        _created_at(),
        sa.Column(
            "updated_at",
            sa.TIMESTAMP(timezone=True),
            server_default=sa.text("CURRENT_TIMESTAMP"),
            nullable=False,
        ),
        sa.Column(
            "last_message_at",
            sa.TIMESTAMP(timezone=True),
            server_default=sa.text("CURRENT_TIMESTAMP"),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_conversations_initiator_id", "conversations", ["initiator_id"])
    op.create_index("ix_conversations_receiver_id", "conversations", ["receiver_id"])

    op.create_table(
        "messages",
        _id_column(),
        sa.Column("content", sa.Text(), nullable=False),
        _user_fk("sender_id"),
        _user_fk("receiver_id"),
        sa.Column(
            "conversation_id",
            sa.Uuid(),
            sa.ForeignKey("conversations.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("read", sa.Boolean(), server_default=sa.false(), nullable=False),
        _created_at(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("idx_messages_conversation_created", "messages", ["conversation_id", "created_at"])
    op.create_index("idx_messages_receiver_read", "messages", ["receiver_id", "read"])


def downgrade() -> None:
    op.drop_table("messages")
    op.drop_table("conversations")
    op.drop_table("follows")
    op.drop_table("shares")
    op.drop_table("comments")
    op.drop_table("likes")
    op.drop_table("posts")
    op.drop_index("ix_users_email", table_name="users")
    op.drop_table("users")
