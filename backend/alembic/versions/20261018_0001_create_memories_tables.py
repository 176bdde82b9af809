"""create memories, media items and likes tables

Revision ID: 20261018_0001
Revises:
Create Date: 2026-10-18 00:00:00.000000
"""

from alembic import op
import sqlalchemy as sa


revision = "20261018_0001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "memories",
        sa.Column("id", sa.String(64), primary_key=True, nullable=False),
        sa.Column("access_code", sa.String(16), nullable=False),
        sa.Column("memory_type", sa.String(16), nullable=True),
        sa.Column("is_video", sa.Boolean(), nullable=True),
        sa.Column("media_url", sa.Text(), nullable=True),
        sa.Column("caption", sa.Text(), nullable=True),
        sa.Column("event_date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("location", sa.String(255), nullable=True),
        sa.Column("created_by", sa.String(64), nullable=True),
        sa.Column("likes", sa.Integer(), nullable=True),
        sa.Column("moderation_status", sa.String(16), server_default="approved", nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
    )
    op.create_index("ix_memories_access_code", "memories", ["access_code"])
    op.create_index("ix_memories_created_by", "memories", ["created_by"])
    op.create_index("ix_memories_access_code_event_date", "memories", ["access_code", "event_date"])

    op.create_table(
        "memory_media_items",
        sa.Column("id", sa.String(64), primary_key=True, nullable=False),
        sa.Column("memory_id", sa.String(64), sa.ForeignKey("memories.id", ondelete="CASCADE"), nullable=False),
        sa.Column("url", sa.Text(), nullable=False),
        sa.Column("is_video", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("order", sa.Integer(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
    )
    op.create_index("ix_memory_media_items_memory_id", "memory_media_items", ["memory_id"])

    op.create_table(
        "memory_likes",
        sa.Column("memory_id", sa.String(64), sa.ForeignKey("memories.id", ondelete="CASCADE"), primary_key=True, nullable=False),
        sa.Column("user_id", sa.String(64), primary_key=True, nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
    )


def downgrade() -> None:
    op.drop_table("memory_likes")
    op.drop_index("ix_memory_media_items_memory_id", table_name="memory_media_items")
    op.drop_table("memory_media_items")
    op.drop_index("ix_memories_access_code_event_date", table_name="memories")
    op.drop_index("ix_memories_created_by", table_name="memories")
    op.drop_index("ix_memories_access_code", table_name="memories")
    op.drop_table("memories")
