"""create boards, board members and drafts tables

Revision ID: 20261018_0002
Revises: 20261018_0001
Create Date: 2026-10-18 00:00:00.000000
"""

from alembic import op
import sqlalchemy as sa


revision = "20261018_0002"
down_revision = "20261018_0001"
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "boards",
        sa.Column("id", sa.String(64), primary_key=True, nullable=False),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("owner_id", sa.String(64), nullable=False),
        sa.Column("access_code", sa.String(16), nullable=False, unique=True),
        sa.Column("share_code", sa.String(16), nullable=False, unique=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
    )
    op.create_index("ix_boards_owner_id", "boards", ["owner_id"])

    op.create_table(
        "board_members",
        sa.Column("board_id", sa.String(64), sa.ForeignKey("boards.id", ondelete="CASCADE"), primary_key=True, nullable=False),
        sa.Column("user_id", sa.String(64), primary_key=True, nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
    )
    op.create_index("ix_board_members_user_id", "board_members", ["user_id"])

    op.create_table(
        "memory_drafts",
        sa.Column("id", sa.String(64), primary_key=True, nullable=False),
        sa.Column("user_id", sa.String(64), nullable=False),
        sa.Column("board_id", sa.String(64), nullable=True),
        sa.Column("content", sa.JSON(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
    )
    op.create_index("ix_memory_drafts_user_id", "memory_drafts", ["user_id"])


def downgrade() -> None:
    op.drop_index("ix_memory_drafts_user_id", table_name="memory_drafts")
    op.drop_table("memory_drafts")
    op.drop_index("ix_board_members_user_id", table_name="board_members")
    op.drop_table("board_members")
    op.drop_index("ix_boards_owner_id", table_name="boards")
    op.drop_table("boards")
